"""Finances app package.

Payments for bookings (through a simulated provider), refund requests
priced by the cancellation policy, and payouts of the owner share to an
encrypted bank account.
"""
