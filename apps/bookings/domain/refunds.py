"""Cancellation refund tiers by time left before the event."""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal

from shared.domain.value_objects import to_cents

SECONDS_PER_DAY = Decimal(86400)

# (minimum days before the event, refunded percentage), checked in order
REFUND_TIERS: tuple[tuple[Decimal, int], ...] = (
    (Decimal(7), 90),
    (Decimal(3), 70),
    (Decimal(1), 50),
    (Decimal(0), 25),
)


def days_until(event_start: datetime, now: datetime) -> Decimal:
    """Fractional days from ``now`` until the event starts (negative once it began)."""
    return Decimal(str((event_start - now).total_seconds())) / SECONDS_PER_DAY


def refund_percentage(days: Decimal) -> int:
    if days < 0:
        return 0
    for threshold, percentage in REFUND_TIERS:
        if days >= threshold:
            return percentage
    return 0


def refund_amount(total: Decimal, event_start: datetime, now: datetime) -> tuple[int, Decimal]:
    """Refunded percentage and amount of ``total`` for a cancellation made at ``now``."""
    percentage = refund_percentage(days_until(event_start, now))
    return percentage, to_cents(Decimal(total) * percentage / 100)
