from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Literal

from fastapi import APIRouter, Depends, HTTPException, Query, Response
from pydantic import Field, model_validator
from sqlalchemy import or_, select
from sqlalchemy.orm import Session

from storefront.core.clock import ensure_utc, isoformat_z, now_utc
from storefront.core.security import Actor, require_admin
from storefront.core.money import quantize_money
from storefront.persistence.db import get_session
from storefront.persistence.models import DiscountModel
from storefront.pricing import DiscountValidator, SqlCatalog
from storefront.pricing.models import CamelModel

router = APIRouter(tags=["discounts"])

DiscountType = Literal["PERCENTAGE", "FIXED"]
# Columns that are NOT NULL; an update may omit them but never clear them.
REQUIRED_DISCOUNT_FIELDS = ("code", "type", "value", "is_active")


def _check_bounds(type_: str | None, value: Decimal | None, starts_at: datetime | None, expires_at: datetime | None):
    if type_ == "PERCENTAGE" and value is not None and value > 100:
        raise ValueError("percentage discounts cannot exceed 100")
    if starts_at and expires_at and ensure_utc(expires_at) <= ensure_utc(starts_at):
        raise ValueError("expiresAt must be after startsAt")


class DiscountCreate(CamelModel):
    code: str = Field(min_length=1, max_length=50)
    description: str | None = None
    type: DiscountType
    value: Decimal = Field(ge=0)
    min_purchase: Decimal | None = Field(default=None, ge=0)
    max_discount: Decimal | None = Field(default=None, ge=0)
    usage_limit: int | None = Field(default=None, ge=1)
    is_active: bool = True
    starts_at: datetime | None = None
    expires_at: datetime | None = None

    @model_validator(mode="after")
    def _bounds(self) -> "DiscountCreate":
        _check_bounds(self.type, self.value, self.starts_at, self.expires_at)
        return self


class DiscountUpdate(CamelModel):
    code: str | None = Field(default=None, min_length=1, max_length=50)
    description: str | None = None
    type: DiscountType | None = None
    value: Decimal | None = Field(default=None, ge=0)
    min_purchase: Decimal | None = Field(default=None, ge=0)
    max_discount: Decimal | None = Field(default=None, ge=0)
    usage_limit: int | None = Field(default=None, ge=1)
    is_active: bool | None = None
    starts_at: datetime | None = None
    expires_at: datetime | None = None

    @model_validator(mode="after")
    def _required_fields_not_null(self) -> "DiscountUpdate":
        cleared = sorted(
            name for name in REQUIRED_DISCOUNT_FIELDS if name in self.model_fields_set and getattr(self, name) is None
        )
        if cleared:
            raise ValueError(f"fields cannot be null: {', '.join(cleared)}")
        return self


class DiscountCheck(CamelModel):
    code: str = Field(min_length=1)
    subtotal: Decimal = Field(ge=0)


def discount_to_dict(row: DiscountModel) -> dict:
    return {
        "id": row.id,
        "code": row.code,
        "description": row.description,
        "type": row.type,
        "value": str(row.value),
        "minPurchase": str(row.min_purchase) if row.min_purchase is not None else None,
        "maxDiscount": str(row.max_discount) if row.max_discount is not None else None,
        "usageLimit": row.usage_limit,
        "usageCount": row.usage_count,
        "isActive": row.is_active,
        "startsAt": isoformat_z(row.starts_at),
        "expiresAt": isoformat_z(row.expires_at),
    }


def _get_or_404(session: Session, discount_id: str) -> DiscountModel:
    row = session.get(DiscountModel, discount_id)
    if row is None:
        raise HTTPException(status_code=404, detail="discount not found")
    return row


def _code_taken(session: Session, code: str) -> bool:
    return session.scalar(select(DiscountModel.id).where(DiscountModel.code == code)) is not None


@router.post("/discounts/validate")
def validate_discount(payload: DiscountCheck, session: Session = Depends(get_session)):
    decision = DiscountValidator(SqlCatalog(session)).validate(payload.code, quantize_money(payload.subtotal))
    return {
        "code": decision.code,
        "usable": decision.usable,
        "amount": str(decision.amount),
        "reason": decision.reason.value if decision.reason else None,
        "message": decision.message,
    }


@router.get("/discounts")
def list_discounts(
    status: Literal["all", "active", "expired", "inactive"] = Query(default="all"),
    discount_type: Literal["all", "PERCENTAGE", "FIXED"] = Query(default="all", alias="type"),
    _: Actor = Depends(require_admin),
    session: Session = Depends(get_session),
):
    now = now_utc()
    stmt = select(DiscountModel).order_by(DiscountModel.created_at.desc())
    if status == "active":
        stmt = stmt.where(DiscountModel.is_active.is_(True)).where(
            or_(DiscountModel.expires_at.is_(None), DiscountModel.expires_at >= now)
        )
    elif status == "expired":
        stmt = stmt.where(DiscountModel.expires_at < now)
    elif status == "inactive":
        stmt = stmt.where(DiscountModel.is_active.is_(False))
    if discount_type != "all":
        stmt = stmt.where(DiscountModel.type == discount_type)
    rows = list(session.scalars(stmt).all())
    return {"count": len(rows), "discounts": [discount_to_dict(row) for row in rows]}


@router.post("/discounts", status_code=201)
def create_discount(
    payload: DiscountCreate,
    _: Actor = Depends(require_admin),
    session: Session = Depends(get_session),
):
    code = payload.code.strip().upper()
    if _code_taken(session, code):
        raise HTTPException(status_code=400, detail="A discount with this code already exists")
    now = now_utc()
    row = DiscountModel(
        code=code,
        description=payload.description,
        type=payload.type,
        value=payload.value,
        min_purchase=payload.min_purchase,
        max_discount=payload.max_discount,
        usage_limit=payload.usage_limit,
        usage_count=0,
        is_active=payload.is_active,
        starts_at=ensure_utc(payload.starts_at),
        expires_at=ensure_utc(payload.expires_at),
        created_at=now,
        updated_at=now,
    )
    session.add(row)
    session.flush()
    return discount_to_dict(row)


@router.get("/discounts/{discount_id}")
def get_discount(discount_id: str, _: Actor = Depends(require_admin), session: Session = Depends(get_session)):
    return discount_to_dict(_get_or_404(session, discount_id))


@router.put("/discounts/{discount_id}")
def update_discount(
    discount_id: str,
    payload: DiscountUpdate,
    _: Actor = Depends(require_admin),
    session: Session = Depends(get_session),
):
    row = _get_or_404(session, discount_id)
    changes = payload.model_dump(exclude_unset=True)
    if changes.get("code"):
        code = changes["code"].strip().upper()
        if code != row.code and _code_taken(session, code):
            raise HTTPException(status_code=400, detail="A discount with this code already exists")
        changes["code"] = code
    for key in ("starts_at", "expires_at"):
        if key in changes:
            changes[key] = ensure_utc(changes[key])

    try:
        _check_bounds(
            changes.get("type", row.type),
            changes.get("value", row.value),
            changes.get("starts_at", row.starts_at),
            changes.get("expires_at", row.expires_at),
        )
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc

    for key, value in changes.items():
        setattr(row, key, value)
    row.updated_at = now_utc()
    session.flush()
    return discount_to_dict(row)


@router.delete("/discounts/{discount_id}", status_code=204)
def delete_discount(discount_id: str, _: Actor = Depends(require_admin), session: Session = Depends(get_session)):
    row = _get_or_404(session, discount_id)
    session.delete(row)
    session.flush()
    return Response(status_code=204)
