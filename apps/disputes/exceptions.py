"""Domain errors raised by dispute services."""

from __future__ import annotations


class DisputeError(Exception):
    """A dispute or report cannot be opened or moved to the requested status."""
