"""Models for booking disputes and venue reports.

A ``Dispute`` is opened by one side of a booking against the other: the
guest against the venue owner or the owner against the guest. A
``VenueReport`` flags a listing for moderation and can be filed by any
signed-in user.
"""

from __future__ import annotations

from django.conf import settings  # type: ignore
from django.db import models  # type: ignore
from django.utils.translation import gettext_lazy as _  # type: ignore


class Dispute(models.Model):
    """Conflict about a booking raised by the guest or the venue owner."""

    class Reason(models.TextChoices):
        NO_SHOW = "no_show", _("Venue or guest did not show up")
        NOT_AS_DESCRIBED = "not_as_described", _("Venue not as described")
        DAMAGE = "damage", _("Property damage")
        PAYMENT = "payment", _("Payment issue")
        CANCELLATION = "cancellation", _("Cancellation disagreement")
        BEHAVIOUR = "behaviour", _("Inappropriate behaviour")
        OTHER = "other", _("Other")

    class Status(models.TextChoices):
        OPEN = "open", _("Open")
        INVESTIGATING = "investigating", _("Investigating")
        AWAITING_RESPONSE = "awaiting_response", _("Awaiting response")
        RESOLVED = "resolved", _("Resolved")
        CLOSED = "closed", _("Closed")

    ACTIVE_STATUSES = (Status.OPEN, Status.INVESTIGATING, Status.AWAITING_RESPONSE)
    FINAL_STATUSES = (Status.RESOLVED, Status.CLOSED)

    booking = models.ForeignKey("bookings.Booking", on_delete=models.CASCADE, related_name="disputes")
    venue = models.ForeignKey("venues.Venue", on_delete=models.CASCADE, related_name="disputes")
    reporter = models.ForeignKey(
        settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name="disputes_opened"
    )
    defendant = models.ForeignKey(
        settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name="disputes_against"
    )
    reason = models.CharField(max_length=32, choices=Reason.choices)
    description = models.TextField()
    desired_outcome = models.TextField()
    status = models.CharField(max_length=20, choices=Status.choices, default=Status.OPEN, db_index=True)
    resolution_notes = models.TextField(blank=True)
    resolved_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="disputes_resolved",
    )
    resolved_at = models.DateTimeField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        verbose_name = _("Dispute")
        verbose_name_plural = _("Disputes")
        ordering = ["-created_at"]
        indexes = [models.Index(fields=["status", "created_at"])]

    def __str__(self) -> str:
        return f"Dispute #{self.pk} on booking {self.booking_id} ({self.status})"

    @property
    def is_active(self) -> bool:
        return self.status in self.ACTIVE_STATUSES


class VenueReport(models.Model):
    """User report flagging a venue listing."""

    class ReportType(models.TextChoices):
        INAPPROPRIATE_CONTENT = "inappropriate_content", _("Inappropriate content")
        MISLEADING_INFO = "misleading_info", _("Misleading information")
        SAFETY_CONCERN = "safety_concern", _("Safety concern")
        FAKE_LISTING = "fake_listing", _("Fake listing")
        SPAM = "spam", _("Spam")
        OTHER = "other", _("Other")

    class Status(models.TextChoices):
        PENDING = "pending", _("Pending")
        INVESTIGATING = "investigating", _("Investigating")
        RESOLVED = "resolved", _("Resolved")
        DISMISSED = "dismissed", _("Dismissed")

    venue = models.ForeignKey("venues.Venue", on_delete=models.CASCADE, related_name="reports")
    reporter = models.ForeignKey(
        settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name="venue_reports"
    )
    report_type = models.CharField(max_length=32, choices=ReportType.choices)
    description = models.TextField()
    status = models.CharField(max_length=20, choices=Status.choices, default=Status.PENDING, db_index=True)
    admin_notes = models.TextField(blank=True)
    reviewed_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="venue_reports_reviewed",
    )
    reviewed_at = models.DateTimeField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        verbose_name = _("Venue report")
        verbose_name_plural = _("Venue reports")
        ordering = ["-created_at"]

    def __str__(self) -> str:
        return f"{self.get_report_type_display()} report on venue {self.venue_id}"
