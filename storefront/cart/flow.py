from __future__ import annotations

from dataclasses import dataclass, replace
from enum import Enum


class CheckoutStatus(str, Enum):
    IDLE = "idle"
    SUBMITTING = "submitting"
    REDIRECTING = "redirecting"
    FAILED = "failed"


class InvalidTransition(RuntimeError):
    pass


@dataclass(frozen=True)
class CheckoutFlow:
    status: CheckoutStatus = CheckoutStatus.IDLE
    error: str | None = None
    redirect: dict | None = None

    @property
    def cart_locked(self) -> bool:
        # advisory; the engine never consults this
        return self.status is CheckoutStatus.SUBMITTING

    def _require(self, *allowed: CheckoutStatus) -> None:
        if self.status not in allowed:
            raise InvalidTransition(f"cannot leave {self.status.value} this way")

    def submit(self) -> "CheckoutFlow":
        self._require(CheckoutStatus.IDLE)
        return replace(self, status=CheckoutStatus.SUBMITTING, error=None, redirect=None)

    def succeed(self, payment: dict) -> "CheckoutFlow":
        self._require(CheckoutStatus.SUBMITTING)
        return replace(self, status=CheckoutStatus.REDIRECTING, redirect=dict(payment))

    def fail(self, reason: str) -> "CheckoutFlow":
        self._require(CheckoutStatus.SUBMITTING)
        return replace(self, status=CheckoutStatus.FAILED, error=reason)

    def acknowledge(self) -> "CheckoutFlow":
        """Return to idle after the failure was shown. The error text is kept for display."""
        self._require(CheckoutStatus.FAILED)
        return replace(self, status=CheckoutStatus.IDLE)
