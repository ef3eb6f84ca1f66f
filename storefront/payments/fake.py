from __future__ import annotations

from collections import deque

from storefront.core.money import to_minor_units
from storefront.payments.base import PaymentRequest, PaymentSession

MAX_RECORDED_REQUESTS = 100


class FakeGateway:
    """Local stand-in used in dev and tests; remembers the most recent charges it was asked for."""

    def __init__(self, provider: str, max_recorded: int = MAX_RECORDED_REQUESTS):
        self.provider = provider
        self.requests: deque[PaymentRequest] = deque(maxlen=max_recorded)
        self._attempts = 0

    def create_session(self, request: PaymentRequest) -> PaymentSession:
        self.requests.append(request)
        self._attempts += 1
        reference = f"fake_{self.provider}_{request.order_number}_{self._attempts}"
        return PaymentSession(
            provider=self.provider,
            reference=reference,
            data={
                "sessionId": reference,
                "amount": to_minor_units(request.total),
                "url": f"https://payments.invalid/{self.provider}/{reference}",
            },
        )
