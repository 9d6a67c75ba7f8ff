"""
Booking price computation.

All amounts are ``Decimal`` and rounded to cents with ROUND_HALF_UP only
where a value is stored or shown (base, discount, fee, total).

    hours     = minutes(end - start) / 60
    base      = hours * rate
    subtotal  = max(0, base - discount)
    fee       = subtotal * fee_percent / 100
    total     = subtotal + fee

An event whose end is not after its start is an overnight event: the end
moves forward by exactly one day.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass
from datetime import date, datetime, time, timedelta, tzinfo
from decimal import Decimal
from typing import Iterable, Optional, Protocol

from shared.domain.value_objects import to_cents

from ..exceptions import PricingError

DEFAULT_FEE_PERCENT = Decimal("2.5")
DEFAULT_COMMISSION_PERCENT = Decimal("15")

PERCENTAGE = "percentage"
FIXED_AMOUNT = "fixed_amount"
MODIFIER_KINDS = (PERCENTAGE, FIXED_AMOUNT)

ZERO = Decimal("0")
HUNDRED = Decimal("100")


class PricingRule(Protocol):
    """Shape of a dynamic pricing rule (``venues.VenuePricing`` satisfies it)."""

    is_active: bool
    priority: int
    days_of_week: list[int]
    start_date: Optional[date]
    end_date: Optional[date]
    modifier_type: str
    modifier_value: Decimal


@dataclass(frozen=True)
class Discount:
    kind: str
    value: Decimal

    def __post_init__(self):
        if self.kind not in MODIFIER_KINDS:
            raise PricingError(f"Unknown discount type: {self.kind}")
        if Decimal(self.value) < 0:
            raise PricingError("Discount value cannot be negative")


@dataclass(frozen=True)
class PriceQuote:
    hours: Decimal
    rate: Decimal
    base_amount: Decimal
    discount_amount: Decimal
    subtotal: Decimal
    platform_fee: Decimal
    total_amount: Decimal

    def as_dict(self) -> dict[str, Decimal]:
        return asdict(self)


def resolve_window(
    event_date: date,
    start_time: time,
    end_time: time,
    end_date: Optional[date] = None,
    tz: Optional[tzinfo] = None,
) -> tuple[datetime, datetime]:
    """
    Turn a calendar date and wall-clock times into a concrete window.

    Without ``end_date`` (or with ``end_date == event_date``) an end time
    that is not after the start rolls over to the next day, so
    ``22:00 - 02:00`` lasts four hours. An explicit later ``end_date`` is
    taken literally.
    """
    start = datetime.combine(event_date, start_time, tzinfo=tz)
    end = datetime.combine(end_date or event_date, end_time, tzinfo=tz)

    if end_date is None or end_date == event_date:
        if end <= start:
            end += timedelta(days=1)
    elif end <= start:
        raise PricingError("Event end must be after its start")
    return start, end


def duration_hours(start: datetime, end: datetime) -> Decimal:
    """Whole minutes between start and end expressed in hours, never negative."""
    minutes = int((end - start).total_seconds() // 60)
    if minutes <= 0:
        return ZERO
    return Decimal(minutes) / Decimal(60)


def _rule_matches(rule: PricingRule, event_date: date) -> bool:
    if not rule.is_active:
        return False
    if rule.days_of_week and event_date.weekday() not in rule.days_of_week:
        return False
    if rule.start_date and event_date < rule.start_date:
        return False
    if rule.end_date and event_date > rule.end_date:
        return False
    return True


def applicable_rule(rules: Iterable[PricingRule], event_date: date) -> Optional[PricingRule]:
    """Highest priority active rule that covers ``event_date``; ties keep input order."""
    matching = [rule for rule in rules if _rule_matches(rule, event_date)]
    if not matching:
        return None
    return sorted(matching, key=lambda rule: -rule.priority)[0]


def adjusted_rate(rate: Decimal, rule: Optional[PricingRule]) -> Decimal:
    """Apply a percentage or fixed modifier to an hourly rate (floored at zero)."""
    rate = Decimal(rate)
    if rule is None:
        return rate
    value = Decimal(rule.modifier_value)
    if rule.modifier_type == PERCENTAGE:
        adjusted = rate * (HUNDRED + value) / HUNDRED
    elif rule.modifier_type == FIXED_AMOUNT:
        adjusted = rate + value
    else:
        raise PricingError(f"Unknown modifier type: {rule.modifier_type}")
    return to_cents(max(ZERO, adjusted))


def discount_amount(base: Decimal, kind: str, value: Decimal) -> Decimal:
    """Discount in money for a base amount; percentages are capped at 100 %."""
    value = Decimal(value)
    if value < 0:
        raise PricingError("Discount value cannot be negative")
    if kind == PERCENTAGE:
        return to_cents(Decimal(base) * min(value, HUNDRED) / HUNDRED)
    if kind == FIXED_AMOUNT:
        return to_cents(value)
    raise PricingError(f"Unknown discount type: {kind}")


def calculate_price(
    rate: Decimal,
    start: datetime,
    end: datetime,
    discount: Optional[Discount] = None,
    fee_percent: Decimal = DEFAULT_FEE_PERCENT,
    rule: Optional[PricingRule] = None,
) -> PriceQuote:
    """Price an event window at an hourly rate."""
    rate = Decimal(rate)
    if rate < 0:
        raise PricingError("Hourly rate cannot be negative")
    if end <= start:
        end += timedelta(days=1)

    effective_rate = adjusted_rate(rate, rule)
    hours = duration_hours(start, end)
    base = to_cents(hours * effective_rate)

    reduction = to_cents(ZERO)
    if discount is not None:
        # Never discount more than the base so base - discount == subtotal holds
        reduction = min(discount_amount(base, discount.kind, discount.value), base)

    subtotal = max(ZERO, base - reduction)
    fee = to_cents(subtotal * Decimal(fee_percent) / HUNDRED)

    return PriceQuote(
        hours=to_cents(hours),
        rate=effective_rate,
        base_amount=base,
        discount_amount=reduction,
        subtotal=subtotal,
        platform_fee=fee,
        total_amount=subtotal + fee,
    )


def change_cost(
    original_hours: Decimal,
    new_hours: Decimal,
    rate: Decimal,
    fee_percent: Decimal = DEFAULT_FEE_PERCENT,
) -> Decimal:
    """Extra amount due when an event is lengthened; shortening costs nothing."""
    extra_hours = Decimal(new_hours) - Decimal(original_hours)
    if extra_hours <= 0:
        return ZERO
    extra = to_cents(extra_hours * Decimal(rate))
    return extra + to_cents(extra * Decimal(fee_percent) / HUNDRED)


def owner_payout(total: Decimal, commission_percent: Decimal = DEFAULT_COMMISSION_PERCENT) -> Decimal:
    """Share of a booking total paid out to the venue owner."""
    return to_cents(Decimal(total) * (HUNDRED - Decimal(commission_percent)) / HUNDRED)
