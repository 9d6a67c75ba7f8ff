"""Bookings app package.

Hourly venue reservations with slot holds, change requests and group
bookings whose cost is split between participants.
"""
