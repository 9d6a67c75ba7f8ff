"""Pure booking arithmetic: pricing, refund tiers and group payment splits.

Nothing in this package touches the ORM, so every rule can be exercised
with plain values in unit tests.
"""
