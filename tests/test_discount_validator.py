from __future__ import annotations

from datetime import datetime, timedelta, timezone
from decimal import Decimal

from storefront.pricing import DiscountSnapshot, DiscountValidator, InMemoryCatalog, RejectionReason

NOW = datetime(2026, 3, 1, tzinfo=timezone.utc)


def _validator(**fields) -> DiscountValidator:
    base = {"id": "d1", "code": "CODE", "type": "PERCENTAGE", "value": Decimal("10")}
    base.update(fields)
    catalog = InMemoryCatalog()
    catalog.add_discount(DiscountSnapshot(**base))
    return DiscountValidator(catalog)


def test_lookup_is_case_insensitive():
    decision = _validator().validate("  code ", Decimal("50"), NOW)
    assert decision.usable is True
    assert decision.code == "CODE"
    assert decision.amount == Decimal("5.00")
    assert decision.discount_id == "d1"


def test_unknown_and_inactive_codes():
    assert _validator().validate("OTHER", Decimal("50"), NOW).reason is RejectionReason.CODE_NOT_FOUND
    inactive = _validator(is_active=False).validate("CODE", Decimal("50"), NOW)
    assert inactive.reason is RejectionReason.CODE_NOT_FOUND


def test_window_checks():
    early = _validator(starts_at=NOW + timedelta(hours=1)).validate("CODE", Decimal("50"), NOW)
    assert early.reason is RejectionReason.NOT_YET_STARTED
    late = _validator(expires_at=NOW - timedelta(seconds=1)).validate("CODE", Decimal("50"), NOW)
    assert late.reason is RejectionReason.EXPIRED
    edge = _validator(starts_at=NOW, expires_at=NOW).validate("CODE", Decimal("50"), NOW)
    assert edge.usable is True


def test_usage_limit():
    spent = _validator(usage_limit=3, usage_count=3).validate("CODE", Decimal("50"), NOW)
    assert spent.reason is RejectionReason.USAGE_LIMIT_REACHED
    assert _validator(usage_limit=3, usage_count=2).validate("CODE", Decimal("50"), NOW).usable


def test_minimum_purchase_carries_required_amount():
    decision = _validator(min_purchase=Decimal("100")).validate("CODE", Decimal("80"), NOW)
    assert decision.reason is RejectionReason.MINIMUM_PURCHASE_NOT_MET
    assert decision.required_minimum == Decimal("100")
    assert "100" in decision.message
    assert _validator(min_purchase=Decimal("100")).validate("CODE", Decimal("100"), NOW).usable


def test_expired_wins_even_when_everything_else_matches():
    decision = _validator(expires_at=NOW - timedelta(days=1), min_purchase=Decimal("1")).validate(
        "CODE", Decimal("500"), NOW
    )
    assert decision.usable is False
    assert decision.amount == Decimal("0")


def test_amount_rounding_and_caps():
    odd = _validator(value=Decimal("15")).validate("CODE", Decimal("33.33"), NOW)
    assert odd.amount == Decimal("5.00")  # 4.9995 rounds half-up
    capped = _validator(value=Decimal("50"), max_discount=Decimal("7.50")).validate("CODE", Decimal("100"), NOW)
    assert capped.amount == Decimal("7.50")
    fixed = _validator(type="FIXED", value=Decimal("50")).validate("CODE", Decimal("30"), NOW)
    assert fixed.amount == Decimal("30")
