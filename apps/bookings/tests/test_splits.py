"""Unit tests for group booking splits and installments."""

from __future__ import annotations

from datetime import date
from decimal import Decimal

import pytest

from apps.bookings.domain.splits import add_months, installment_schedule, split_equally, validate_contributions
from apps.bookings.exceptions import GroupBookingError


def test_split_equally_gives_leftover_cents_to_first_contributors() -> None:
    assert split_equally(Decimal("100"), 3) == [Decimal("33.34"), Decimal("33.33"), Decimal("33.33")]
    assert split_equally(Decimal("0.05"), 4) == [Decimal("0.02"), Decimal("0.01"), Decimal("0.01"), Decimal("0.01")]


@pytest.mark.parametrize("total,count", [(Decimal("1025.00"), 7), (Decimal("0.01"), 3), (Decimal("999.99"), 11)])
def test_split_equally_sums_exactly(total: Decimal, count: int) -> None:
    shares = split_equally(total, count)

    assert len(shares) == count
    assert sum(shares) == total


def test_split_requires_a_contributor() -> None:
    with pytest.raises(GroupBookingError):
        split_equally(Decimal("10"), 0)


def test_validate_contributions_tolerates_one_cent() -> None:
    validate_contributions([Decimal("50"), Decimal("50.01")], Decimal("100"))

    with pytest.raises(GroupBookingError):
        validate_contributions([Decimal("50"), Decimal("49")], Decimal("100"))
    with pytest.raises(GroupBookingError):
        validate_contributions([Decimal("100"), Decimal("0")], Decimal("100"))


def test_add_months_clamps_to_month_end() -> None:
    assert add_months(date(2030, 1, 31), 1) == date(2030, 2, 28)
    assert add_months(date(2030, 11, 15), 3) == date(2031, 2, 15)


def test_installment_schedule_is_monthly() -> None:
    schedule = installment_schedule(Decimal("100"), 3, date(2030, 1, 10))

    assert [due for due, _ in schedule] == [date(2030, 1, 10), date(2030, 2, 10), date(2030, 3, 10)]
    assert sum(amount for _, amount in schedule) == Decimal("100")
