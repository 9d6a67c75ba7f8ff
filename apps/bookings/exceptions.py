"""Domain errors raised by booking, pricing and group booking services."""

from __future__ import annotations


class BookingError(Exception):
    """Base class for booking domain errors."""


class BookingConflictError(BookingError):
    """The requested time window overlaps a booking or an owner block."""


class PricingError(BookingError, ValueError):
    """Inputs to the price computation are invalid."""


class DiscountCodeError(BookingError):
    """A discount code cannot be applied to this booking."""


class BookingStateError(BookingError):
    """The booking is not in a state that allows the requested transition."""


class GroupBookingError(BookingError, ValueError):
    """A group booking or its contributions are inconsistent."""
