"""Notifications app package.

In-app notifications stored per user plus e-mail fan-out for booking,
moderation, group booking and refund events.
"""
