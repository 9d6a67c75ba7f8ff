"""Unit tests for the booking price computation."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime, time, timedelta, timezone
from decimal import ROUND_HALF_UP, Decimal
from typing import Optional

import pytest

from apps.bookings.domain.pricing import (
    FIXED_AMOUNT,
    PERCENTAGE,
    Discount,
    adjusted_rate,
    applicable_rule,
    calculate_price,
    change_cost,
    discount_amount,
    duration_hours,
    owner_payout,
    resolve_window,
)
from apps.bookings.exceptions import PricingError

UTC = timezone.utc


@dataclass
class Rule:
    modifier_type: str
    modifier_value: Decimal
    priority: int = 0
    is_active: bool = True
    days_of_week: list[int] = field(default_factory=list)
    start_date: Optional[date] = None
    end_date: Optional[date] = None


def at(day: int, hour: int, minute: int = 0) -> datetime:
    return datetime(2030, 6, day, hour, minute, tzinfo=UTC)


def test_simple_four_hour_event() -> None:
    quote = calculate_price(Decimal("100"), at(1, 18), at(1, 22))

    assert quote.hours == Decimal("4.00")
    assert quote.base_amount == Decimal("400.00")
    assert str(quote.discount_amount) == "0.00"
    assert quote.subtotal == Decimal("400.00")
    assert quote.platform_fee == Decimal("10.00")
    assert quote.total_amount == Decimal("410.00")


def test_overnight_event_rolls_end_forward_one_day() -> None:
    # 22:00 to 02:00 on the same calendar date is four hours, not minus twenty
    quote = calculate_price(Decimal("50"), at(1, 22), at(1, 2))

    assert quote.hours == Decimal("4.00")
    assert quote.base_amount == Decimal("200.00")


def test_equal_start_and_end_is_a_full_day() -> None:
    quote = calculate_price(Decimal("10"), at(1, 9), at(1, 9))

    assert quote.hours == Decimal("24.00")


def test_partial_hours_use_minutes() -> None:
    quote = calculate_price(Decimal("60"), at(1, 10), at(1, 11, 45))

    assert quote.hours == Decimal("1.75")
    assert quote.base_amount == Decimal("105.00")


def test_percentage_discount() -> None:
    quote = calculate_price(
        Decimal("100"), at(1, 10), at(1, 14), discount=Discount(PERCENTAGE, Decimal("10"))
    )

    assert quote.discount_amount == Decimal("40.00")
    assert quote.subtotal == Decimal("360.00")
    assert quote.platform_fee == Decimal("9.00")
    assert quote.total_amount == Decimal("369.00")


def test_fixed_discount_larger_than_base_never_goes_negative() -> None:
    quote = calculate_price(
        Decimal("20"), at(1, 10), at(1, 12), discount=Discount(FIXED_AMOUNT, Decimal("500"))
    )

    assert quote.discount_amount == Decimal("40.00")
    assert quote.subtotal == Decimal("0")
    assert quote.platform_fee == Decimal("0.00")
    assert quote.total_amount == Decimal("0.00")


@pytest.mark.parametrize(
    "rate,hours,discount",
    [
        (Decimal("75"), 3, None),
        (Decimal("199.99"), 5, Discount(PERCENTAGE, Decimal("15"))),
        (Decimal("33.33"), 7, Discount(FIXED_AMOUNT, Decimal("12.50"))),
        (Decimal("10"), 1, Discount(PERCENTAGE, Decimal("150"))),
    ],
)
def test_fee_is_two_and_a_half_percent_of_subtotal(rate, hours, discount) -> None:
    quote = calculate_price(rate, at(2, 8), at(2, 8 + hours), discount=discount)

    assert quote.subtotal >= 0
    assert quote.base_amount - quote.discount_amount == quote.subtotal
    expected_fee = (quote.subtotal * Decimal("0.025")).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)
    assert quote.platform_fee == expected_fee
    assert quote.total_amount == quote.subtotal + quote.platform_fee


def test_fee_rounds_half_up() -> None:
    # 1.5 hours at 15.00 = 22.50; 2.5 % of 22.50 = 0.5625 -> 0.56
    quote = calculate_price(Decimal("15"), at(1, 10), at(1, 11, 30))
    assert quote.platform_fee == Decimal("0.56")

    # 0.5 hours at 1.00 = 0.50; 2.5 % = 0.0125 -> 0.01
    quote = calculate_price(Decimal("1"), at(1, 10), at(1, 10, 30))
    assert quote.platform_fee == Decimal("0.01")


def test_negative_rate_is_rejected() -> None:
    with pytest.raises(PricingError):
        calculate_price(Decimal("-1"), at(1, 10), at(1, 11))


def test_resolve_window_same_day() -> None:
    start, end = resolve_window(date(2030, 6, 1), time(18), time(23), tz=UTC)

    assert start == at(1, 18)
    assert end == at(1, 23)


def test_resolve_window_overnight() -> None:
    start, end = resolve_window(date(2030, 6, 1), time(22), time(3), tz=UTC)

    assert end - start == timedelta(hours=5)
    assert end.date() == date(2030, 6, 2)


def test_resolve_window_explicit_end_date_is_literal() -> None:
    start, end = resolve_window(date(2030, 6, 1), time(10), time(12), date(2030, 6, 3), tz=UTC)

    assert end - start == timedelta(days=2, hours=2)


def test_resolve_window_explicit_end_before_start_is_rejected() -> None:
    with pytest.raises(PricingError):
        resolve_window(date(2030, 6, 2), time(10), time(9), date(2030, 6, 1), tz=UTC)


def test_duration_hours_is_never_negative() -> None:
    assert duration_hours(at(1, 12), at(1, 10)) == Decimal("0")


def test_applicable_rule_prefers_highest_priority() -> None:
    weekend = Rule(PERCENTAGE, Decimal("20"), priority=1, days_of_week=[5, 6])
    summer = Rule(FIXED_AMOUNT, Decimal("30"), priority=5, start_date=date(2030, 6, 1), end_date=date(2030, 8, 31))
    inactive = Rule(PERCENTAGE, Decimal("90"), priority=10, is_active=False)

    saturday = date(2030, 6, 1)
    assert saturday.weekday() == 5
    assert applicable_rule([weekend, summer, inactive], saturday) is summer
    assert applicable_rule([weekend, inactive], saturday) is weekend
    assert applicable_rule([weekend], date(2030, 6, 3)) is None


def test_adjusted_rate() -> None:
    assert adjusted_rate(Decimal("100"), None) == Decimal("100")
    assert adjusted_rate(Decimal("100"), Rule(PERCENTAGE, Decimal("25"))) == Decimal("125.00")
    assert adjusted_rate(Decimal("100"), Rule(PERCENTAGE, Decimal("-10"))) == Decimal("90.00")
    assert adjusted_rate(Decimal("100"), Rule(FIXED_AMOUNT, Decimal("-150"))) == Decimal("0.00")


def test_rule_is_applied_before_discount() -> None:
    rule = Rule(PERCENTAGE, Decimal("50"))
    quote = calculate_price(
        Decimal("100"), at(1, 10), at(1, 12), discount=Discount(FIXED_AMOUNT, Decimal("50")), rule=rule
    )

    assert quote.rate == Decimal("150.00")
    assert quote.base_amount == Decimal("300.00")
    assert quote.subtotal == Decimal("250.00")


def test_discount_amount_caps_percentage() -> None:
    assert discount_amount(Decimal("80"), PERCENTAGE, Decimal("120")) == Decimal("80.00")
    with pytest.raises(PricingError):
        discount_amount(Decimal("80"), "bogus", Decimal("1"))


def test_unknown_discount_kind_is_rejected() -> None:
    with pytest.raises(PricingError):
        Discount("bogus", Decimal("1"))


def test_change_cost() -> None:
    assert change_cost(Decimal("4"), Decimal("6"), Decimal("100")) == Decimal("205.00")
    assert change_cost(Decimal("4"), Decimal("3"), Decimal("100")) == Decimal("0")


def test_owner_payout_is_85_percent() -> None:
    assert owner_payout(Decimal("410.00")) == Decimal("348.50")
    assert owner_payout(Decimal("100"), Decimal("20")) == Decimal("80.00")
