"""Notification model.

A notification is created by domain services (booking requests,
confirmations, refund decisions, announcements) and shown in the
recipient's notification centre until it is read and eventually purged.
"""

from __future__ import annotations

from django.db import models  # type: ignore
from django.utils.translation import gettext_lazy as _  # type: ignore


class Notification(models.Model):
    """A message sent to a user about some event."""

    class Type(models.TextChoices):
        BOOKING_REQUEST = "booking_request", _("Booking request")
        BOOKING_CONFIRMED = "booking_confirmed", _("Booking confirmed")
        BOOKING_REJECTED = "booking_rejected", _("Booking rejected")
        BOOKING_CANCELLED = "booking_cancelled", _("Booking cancelled")
        BOOKING_EXPIRED = "booking_expired", _("Booking expired")
        BOOKING_REMINDER = "booking_reminder", _("Booking reminder")
        BOOKING_CHANGE = "booking_change", _("Booking change")
        REVIEW_REQUEST = "review_request", _("Review request")
        VENUE_APPROVED = "venue_approved", _("Venue approved")
        VENUE_REJECTED = "venue_rejected", _("Venue rejected")
        GROUP_INVITATION = "group_invitation", _("Group booking invitation")
        REFUND_DECISION = "refund_decision", _("Refund decision")
        PAYOUT = "payout", _("Payout")
        DISPUTE = "dispute", _("Dispute")
        ANNOUNCEMENT = "announcement", _("Announcement")

    user = models.ForeignKey(
        'users.CustomUser', on_delete=models.CASCADE, related_name='notifications'
    )
    type = models.CharField(max_length=30, choices=Type.choices, default=Type.ANNOUNCEMENT)
    title = models.CharField(max_length=255)
    message = models.TextField()
    link = models.CharField(max_length=255, blank=True)
    is_read = models.BooleanField(default=False)
    read_at = models.DateTimeField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['user', 'is_read']),
        ]

    def __str__(self) -> str:
        return f"Notification to {self.user_id}: {self.title}"
