"""Domain errors raised by finance services."""

from __future__ import annotations


class FinanceError(Exception):
    """Base class for finance domain errors."""


class PaymentError(FinanceError):
    """A payment cannot be taken for this booking."""


class RefundError(FinanceError):
    """A refund cannot be requested or decided."""


class PayoutError(FinanceError):
    """A payout cannot be created or processed."""
