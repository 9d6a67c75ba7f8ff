"""Dispute and venue report workflows.

Disputes may only be opened by the two parties of a booking; the other
party becomes the defendant. Status changes are made by platform admins
and both parties are notified of each move.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from django.conf import settings  # type: ignore
from django.db import transaction  # type: ignore
from django.utils import timezone  # type: ignore

from apps.notifications.models import Notification
from apps.notifications.services import notify_user

from .exceptions import DisputeError
from .models import Dispute, VenueReport

if TYPE_CHECKING:  # pragma: no cover
    from apps.bookings.models import Booking
    from apps.users.models import CustomUser
    from apps.venues.models import Venue

logger = logging.getLogger(__name__)


def _dispute_link(dispute: Dispute) -> str:
    return f"{settings.SITE_URL}/disputes/{dispute.pk}"


def defendant_for(booking: "Booking", reporter: "CustomUser") -> "CustomUser":
    """The other party of the booking; raises when ``reporter`` is not a party."""
    owner = booking.venue.owner
    if reporter.id == booking.guest_id:
        return owner
    if reporter.id == owner.id:
        return booking.guest
    raise DisputeError("Only the guest or the venue owner of this booking can open a dispute.")


@transaction.atomic
def open_dispute(
    booking: "Booking",
    reporter: "CustomUser",
    *,
    reason: str,
    description: str,
    desired_outcome: str,
) -> Dispute:
    defendant = defendant_for(booking, reporter)
    if Dispute.objects.filter(
        booking=booking, reporter=reporter, status__in=Dispute.ACTIVE_STATUSES
    ).exists():
        raise DisputeError("You already have an open dispute for this booking.")

    dispute = Dispute.objects.create(
        booking=booking,
        venue=booking.venue,
        reporter=reporter,
        defendant=defendant,
        reason=reason,
        description=description,
        desired_outcome=desired_outcome,
    )
    logger.info(
        "Dispute %s opened on booking %s by user %s against user %s",
        dispute.pk,
        booking.pk,
        reporter.pk,
        defendant.pk,
    )

    notify_user(
        defendant,
        f"Dispute opened for booking #{booking.booking_code}",
        f"{reporter.display_name} opened a dispute: {dispute.get_reason_display()}. "
        "Our team will review it and may contact you.",
        type=Notification.Type.DISPUTE,
        link=_dispute_link(dispute),
    )
    return dispute


@transaction.atomic
def update_dispute_status(
    dispute: Dispute,
    admin: "CustomUser",
    new_status: str,
    resolution_notes: str = "",
) -> Dispute:
    if dispute.status in Dispute.FINAL_STATUSES and new_status in Dispute.ACTIVE_STATUSES:
        raise DisputeError("A resolved or closed dispute cannot be reopened.")
    if new_status == dispute.status and not resolution_notes:
        raise DisputeError(f"Dispute is already {dispute.status}.")

    previous = dispute.status
    dispute.status = new_status
    if resolution_notes:
        dispute.resolution_notes = resolution_notes
    if new_status in Dispute.FINAL_STATUSES:
        dispute.resolved_by = admin
        dispute.resolved_at = timezone.now()
    dispute.save(update_fields=["status", "resolution_notes", "resolved_by", "resolved_at", "updated_at"])
    logger.info("Dispute %s moved from %s to %s by admin %s", dispute.pk, previous, new_status, admin.pk)

    message = f"Your dispute about booking #{dispute.booking.booking_code} is now {dispute.get_status_display().lower()}."
    if dispute.resolution_notes:
        message += f" {dispute.resolution_notes}"
    for party in (dispute.reporter, dispute.defendant):
        notify_user(
            party,
            f"Dispute #{dispute.pk} updated",
            message,
            type=Notification.Type.DISPUTE,
            link=_dispute_link(dispute),
        )
    return dispute


def report_venue(venue: "Venue", reporter: "CustomUser", *, report_type: str, description: str) -> VenueReport:
    if venue.owner_id == reporter.id:
        raise DisputeError("You cannot report your own venue.")
    if VenueReport.objects.filter(
        venue=venue,
        reporter=reporter,
        status__in=[VenueReport.Status.PENDING, VenueReport.Status.INVESTIGATING],
    ).exists():
        raise DisputeError("You have already reported this venue.")

    report = VenueReport.objects.create(
        venue=venue,
        reporter=reporter,
        report_type=report_type,
        description=description,
    )
    logger.info("Venue %s reported by user %s: %s", venue.pk, reporter.pk, report_type)
    return report


def update_report_status(
    report: VenueReport,
    admin: "CustomUser",
    new_status: str,
    admin_notes: str = "",
) -> VenueReport:
    report.status = new_status
    if admin_notes:
        report.admin_notes = admin_notes
    report.reviewed_by = admin
    report.reviewed_at = timezone.now()
    report.save(update_fields=["status", "admin_notes", "reviewed_by", "reviewed_at"])
    logger.info("Venue report %s set to %s by admin %s", report.pk, new_status, admin.pk)
    return report
