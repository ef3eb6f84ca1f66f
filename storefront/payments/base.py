from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any, Protocol


@dataclass(frozen=True)
class PaymentLine:
    name: str
    unit_amount: Decimal
    quantity: int


@dataclass(frozen=True)
class PaymentRequest:
    order_id: str
    order_number: str
    email: str
    total: Decimal
    tax_amount: Decimal
    discount_amount: Decimal
    shipping_amount: Decimal = Decimal("0")
    lines: tuple[PaymentLine, ...] = ()
    metadata: dict[str, str] = field(default_factory=dict)


@dataclass(frozen=True)
class PaymentSession:
    provider: str
    reference: str
    data: dict[str, Any]


class PaymentGateway(Protocol):
    provider: str

    def create_session(self, request: PaymentRequest) -> PaymentSession:
        ...
