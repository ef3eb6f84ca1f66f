from __future__ import annotations

from typing import Any


class PricingError(Exception):
    """Base for every checkout failure that is reported back to the caller."""

    code = "pricing_error"
    status_code = 400

    def __init__(self, message: str, details: list[dict[str, Any]] | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or []

    def to_payload(self) -> dict[str, Any]:
        payload: dict[str, Any] = {"error": self.message, "code": self.code}
        if self.details:
            payload["details"] = self.details
        return payload


class CheckoutValidationError(PricingError):
    code = "validation_error"


class EntityNotFound(PricingError):
    code = "entity_not_found"


class EntityUnavailable(PricingError):
    code = "entity_unavailable"


class VariantNotFound(EntityNotFound):
    code = "variant_not_found"


class ModifierNotFound(EntityNotFound):
    code = "modifier_not_found"


class DiscountRejected(PricingError):
    code = "discount_rejected"

    def __init__(self, reason: str, message: str, details: list[dict[str, Any]] | None = None):
        super().__init__(message, details)
        self.reason = reason

    def to_payload(self) -> dict[str, Any]:
        payload = super().to_payload()
        payload["reason"] = self.reason
        return payload


class PaymentSessionError(PricingError):
    code = "payment_session_error"
    status_code = 502

    def __init__(self, message: str, order_id: str | None = None, details: list[dict[str, Any]] | None = None):
        super().__init__(message, details)
        self.order_id = order_id

    def to_payload(self) -> dict[str, Any]:
        payload = super().to_payload()
        if self.order_id:
            payload["orderId"] = self.order_id
        return payload


class OrderStateError(PricingError):
    code = "order_state_error"
    status_code = 409


class WebhookRejected(PricingError):
    code = "webhook_rejected"
