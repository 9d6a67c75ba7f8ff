"""Disputes app package.

Booking disputes between guests and venue owners, and user reports on
venue listings. Both are moderated by platform admins.
"""
