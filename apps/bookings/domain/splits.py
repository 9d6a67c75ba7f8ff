"""Splitting a group booking total between contributors and over time."""

from __future__ import annotations

import calendar
from datetime import date
from decimal import Decimal
from typing import Iterable

from shared.domain.value_objects import to_cents

from ..exceptions import GroupBookingError

TOLERANCE = Decimal("0.01")


def split_equally(total: Decimal, count: int) -> list[Decimal]:
    """
    Split ``total`` into ``count`` shares that add up to it exactly.

    Leftover cents go to the first contributors, one each:
    ``split_equally(Decimal("100"), 3) == [33.34, 33.33, 33.33]``.
    """
    if count < 1:
        raise GroupBookingError("At least one contributor is required")
    cents = int(to_cents(total) * 100)
    if cents < 0:
        raise GroupBookingError("Total cannot be negative")
    share, remainder = divmod(cents, count)
    return [
        Decimal(share + (1 if index < remainder else 0)) / 100
        for index in range(count)
    ]


def validate_contributions(amounts: Iterable[Decimal], total: Decimal) -> None:
    """Contributions must be positive and sum to the total within one cent."""
    amounts = [Decimal(amount) for amount in amounts]
    if not amounts:
        raise GroupBookingError("At least one contribution is required")
    if any(amount <= 0 for amount in amounts):
        raise GroupBookingError("Every contribution must be positive")
    difference = abs(sum(amounts, Decimal("0")) - Decimal(total))
    if difference > TOLERANCE:
        raise GroupBookingError(
            f"Contributions add up to {sum(amounts)} but the booking total is {total}"
        )


def add_months(start: date, months: int) -> date:
    """Same day ``months`` later, clamped to the end of shorter months."""
    month_index = start.month - 1 + months
    year = start.year + month_index // 12
    month = month_index % 12 + 1
    day = min(start.day, calendar.monthrange(year, month)[1])
    return date(year, month, day)


def installment_schedule(total: Decimal, count: int, first_due: date) -> list[tuple[date, Decimal]]:
    """Equal monthly installments starting on ``first_due``."""
    return [
        (add_months(first_due, index), amount)
        for index, amount in enumerate(split_equally(total, count))
    ]
