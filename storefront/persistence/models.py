from __future__ import annotations

import uuid
from datetime import datetime
from decimal import Decimal
from typing import Optional

from sqlalchemy import (
    Boolean,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    Text,
)
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship
from sqlalchemy.types import JSON


def _json_type():
    return JSON().with_variant(JSONB(astext_type=Text()), "postgresql")


def _money():
    return Numeric(12, 2, asdecimal=True)


def _uuid() -> str:
    return str(uuid.uuid4())


class Base(DeclarativeBase):
    pass


class ProductModel(Base):
    __tablename__ = "products"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    slug: Mapped[str] = mapped_column(String(255), unique=True, nullable=False)
    sku: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    base_price: Mapped[Decimal] = mapped_column(_money(), nullable=False)
    status: Mapped[str] = mapped_column(String(16), default="DRAFT", nullable=False)

    variants: Mapped[list["ProductVariantModel"]] = relationship(
        back_populates="product", cascade="all, delete-orphan", order_by="ProductVariantModel.sort_order"
    )
    addons: Mapped[list["ProductAddonModel"]] = relationship(
        back_populates="product", cascade="all, delete-orphan", order_by="ProductAddonModel.sort_order"
    )
    configs: Mapped[list["ProductConfigModel"]] = relationship(
        back_populates="product", cascade="all, delete-orphan", order_by="ProductConfigModel.sort_order"
    )


class ProductVariantModel(Base):
    __tablename__ = "product_variants"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    product_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("products.id", ondelete="CASCADE"), nullable=False
    )
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    sku: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    price: Mapped[Decimal] = mapped_column(_money(), nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    sort_order: Mapped[int] = mapped_column(Integer, default=0, nullable=False)

    product: Mapped[ProductModel] = relationship(back_populates="variants")


class ProductAddonModel(Base):
    __tablename__ = "product_addons"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    product_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("products.id", ondelete="CASCADE"), nullable=False
    )
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    price: Mapped[Decimal] = mapped_column(_money(), nullable=False)
    pricing_type: Mapped[str] = mapped_column(String(32), default="ONE_TIME", nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    sort_order: Mapped[int] = mapped_column(Integer, default=0, nullable=False)

    product: Mapped[ProductModel] = relationship(back_populates="addons")


class ProductConfigModel(Base):
    __tablename__ = "product_configs"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    product_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("products.id", ondelete="CASCADE"), nullable=False
    )
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    # [{"value": "eu-west", "label": "EU West", "priceModifier": 5}, ...]
    options: Mapped[list] = mapped_column(_json_type(), default=list, nullable=False)
    is_required: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    default_value: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    sort_order: Mapped[int] = mapped_column(Integer, default=0, nullable=False)

    product: Mapped[ProductModel] = relationship(back_populates="configs")


class BundleModel(Base):
    __tablename__ = "bundles"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    slug: Mapped[str] = mapped_column(String(255), unique=True, nullable=False)
    price: Mapped[Decimal] = mapped_column(_money(), nullable=False)
    status: Mapped[str] = mapped_column(String(16), default="DRAFT", nullable=False)
    valid_from: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    valid_until: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)


class DiscountModel(Base):
    __tablename__ = "discounts"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    code: Mapped[str] = mapped_column(String(50), unique=True, nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    type: Mapped[str] = mapped_column(String(16), nullable=False)
    value: Mapped[Decimal] = mapped_column(_money(), nullable=False)
    min_purchase: Mapped[Optional[Decimal]] = mapped_column(_money(), nullable=True)
    max_discount: Mapped[Optional[Decimal]] = mapped_column(_money(), nullable=True)
    usage_limit: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    usage_count: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    starts_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    expires_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)


class OrderModel(Base):
    __tablename__ = "orders"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    order_number: Mapped[str] = mapped_column(String(32), unique=True, nullable=False)
    email: Mapped[str] = mapped_column(String(255), nullable=False)
    phone: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    status: Mapped[str] = mapped_column(String(16), default="PENDING", nullable=False)
    payment_status: Mapped[str] = mapped_column(String(24), default="PENDING", nullable=False)
    payment_method: Mapped[str] = mapped_column(String(16), nullable=False)
    payment_reference: Mapped[Optional[str]] = mapped_column(String(128), nullable=True)
    payment_session_ref: Mapped[Optional[str]] = mapped_column(String(128), nullable=True)
    subtotal: Mapped[Decimal] = mapped_column(_money(), nullable=False)
    discount_amount: Mapped[Decimal] = mapped_column(_money(), nullable=False)
    tax_amount: Mapped[Decimal] = mapped_column(_money(), nullable=False)
    shipping_amount: Mapped[Decimal] = mapped_column(_money(), nullable=False)
    total: Mapped[Decimal] = mapped_column(_money(), nullable=False)
    currency: Mapped[str] = mapped_column(String(8), nullable=False)
    discount_id: Mapped[Optional[str]] = mapped_column(
        String(36), ForeignKey("discounts.id", ondelete="SET NULL"), nullable=True
    )
    discount_code: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    shipping_address: Mapped[Optional[dict]] = mapped_column(_json_type(), nullable=True)
    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    items: Mapped[list["OrderItemModel"]] = relationship(
        back_populates="order", cascade="all, delete-orphan", order_by="OrderItemModel.position"
    )


class OrderItemModel(Base):
    __tablename__ = "order_items"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    order_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("orders.id", ondelete="CASCADE"), nullable=False
    )
    position: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    product_id: Mapped[Optional[str]] = mapped_column(String(36), nullable=True)
    variant_id: Mapped[Optional[str]] = mapped_column(String(36), nullable=True)
    bundle_id: Mapped[Optional[str]] = mapped_column(String(36), nullable=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    sku: Mapped[str] = mapped_column(String(64), default="", nullable=False)
    quantity: Mapped[int] = mapped_column(Integer, nullable=False)
    unit_price: Mapped[Decimal] = mapped_column(_money(), nullable=False)
    total_price: Mapped[Decimal] = mapped_column(_money(), nullable=False)
    configuration: Mapped[Optional[dict]] = mapped_column(_json_type(), nullable=True)

    order: Mapped[OrderModel] = relationship(back_populates="items")
    addons: Mapped[list["OrderItemAddonModel"]] = relationship(
        back_populates="order_item", cascade="all, delete-orphan"
    )


class OrderItemAddonModel(Base):
    __tablename__ = "order_item_addons"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    order_item_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("order_items.id", ondelete="CASCADE"), nullable=False
    )
    addon_id: Mapped[str] = mapped_column(String(36), nullable=False)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    price: Mapped[Decimal] = mapped_column(_money(), nullable=False)
    quantity: Mapped[int] = mapped_column(Integer, nullable=False)

    order_item: Mapped[OrderItemModel] = relationship(back_populates="addons")


class DiscountRedemptionModel(Base):
    __tablename__ = "discount_redemptions"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    discount_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("discounts.id", ondelete="CASCADE"), nullable=False
    )
    order_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("orders.id", ondelete="CASCADE"), unique=True, nullable=False
    )
    redeemed_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)


class PaymentSessionModel(Base):
    """Every provider session opened for an order. A retry adds a row; older references stay resolvable."""

    __tablename__ = "payment_sessions"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    order_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("orders.id", ondelete="CASCADE"), nullable=False
    )
    provider: Mapped[str] = mapped_column(String(16), nullable=False)
    reference: Mapped[str] = mapped_column(String(128), unique=True, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)


Index("ix_orders_status", OrderModel.status)
Index("ix_orders_created_at", OrderModel.created_at)
Index("ix_product_variants_product_id", ProductVariantModel.product_id)
Index("ix_product_addons_product_id", ProductAddonModel.product_id)
Index("ix_product_configs_product_id", ProductConfigModel.product_id)
Index("ix_orders_payment_session_ref", OrderModel.payment_session_ref)
Index("ix_payment_sessions_order_id", PaymentSessionModel.order_id)
