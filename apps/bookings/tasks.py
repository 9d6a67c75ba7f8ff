"""Celery tasks for the booking domain."""

from __future__ import annotations

import logging
from datetime import timedelta

from celery import shared_task  # type: ignore
from django.utils import timezone  # type: ignore

from .exceptions import BookingStateError
from .models import Booking
from .services import complete_booking, expire_booking

logger = logging.getLogger(__name__)


@shared_task(name="bookings.schedule_hold_expiration")
def schedule_hold_expiration(booking_id: int) -> bool:
    """Expire one booking whose payment hold ran out. Queued with a countdown at creation."""
    try:
        booking = Booking.objects.select_related("venue").get(pk=booking_id)
    except Booking.DoesNotExist:
        return False

    if not booking.is_hold_expired:
        return False

    expire_booking(booking)
    notify_booking_expired.delay(booking.id)
    return True


# ============================================================================
# PERIODIC TASKS (run by Celery Beat)
# ============================================================================

@shared_task(name="bookings.expire_pending_bookings")
def expire_pending_bookings() -> dict[str, int]:
    """
    Release unpaid slot holds.

    Finds bookings awaiting payment whose ``expires_at`` has passed and
    moves them to ``expired``. Runs every minute.

    Returns:
        dict: {"expired": number of expired bookings}
    """
    now = timezone.now()
    expired_count = 0

    expired_bookings = Booking.objects.filter(
        status=Booking.Status.PENDING_PAYMENT,
        expires_at__lte=now,
    ).select_related("venue", "guest")

    for booking in expired_bookings:
        try:
            expire_booking(booking, now=now)
        except BookingStateError as e:
            logger.error(f"Error expiring booking {booking.id}: {e}", exc_info=True)
            continue
        notify_booking_expired.delay(booking.id)
        expired_count += 1

    if expired_count > 0:
        logger.info(f"Expired {expired_count} pending bookings")

    return {"expired": expired_count}


@shared_task(name="bookings.complete_finished_bookings")
def complete_finished_bookings() -> dict[str, int]:
    """
    Mark confirmed bookings whose event has ended as completed and ask the
    guest for a review. Runs hourly.

    Returns:
        dict: {"completed": number of completed bookings}
    """
    now = timezone.now()
    completed_count = 0

    bookings_to_complete = Booking.objects.filter(
        status=Booking.Status.CONFIRMED,
        ends_at__lte=now,
    ).select_related("venue", "guest")

    for booking in bookings_to_complete:
        try:
            complete_booking(booking, now=now)
        except BookingStateError as e:
            logger.error(f"Error completing booking {booking.id}: {e}", exc_info=True)
            continue
        notify_review_request.delay(booking.id)
        completed_count += 1

    if completed_count > 0:
        logger.info(f"Completed {completed_count} bookings")

    return {"completed": completed_count}


@shared_task(name="bookings.send_upcoming_booking_reminders")
def send_upcoming_booking_reminders() -> dict[str, int]:
    """
    Remind guests of events starting within the next 24 hours.

    Each booking is reminded once (``reminder_sent_at``). Runs every 6 hours.

    Returns:
        dict: {"sent": number of reminders}
    """
    now = timezone.now()
    sent_count = 0

    upcoming_bookings = Booking.objects.filter(
        status=Booking.Status.CONFIRMED,
        starts_at__gt=now,
        starts_at__lte=now + timedelta(hours=24),
        reminder_sent_at__isnull=True,
    ).select_related("venue", "guest")

    for booking in upcoming_bookings:
        notify_booking_reminder.delay(booking.id)
        booking.reminder_sent_at = now
        booking.save(update_fields=["reminder_sent_at"])
        sent_count += 1
        logger.info(f"Sent reminder for booking {booking.booking_code}")

    if sent_count > 0:
        logger.info(f"Sent {sent_count} booking reminders")

    return {"sent": sent_count}


# ============================================================================
# NOTIFICATION TASKS
# ============================================================================

def _load(booking_id: int) -> Booking | None:
    try:
        return Booking.objects.select_related("guest", "venue", "venue__owner").get(id=booking_id)
    except Booking.DoesNotExist:
        logger.error(f"Booking {booking_id} not found for notification")
        return None


@shared_task(name="bookings.notify_booking_requested")
def notify_booking_requested(booking_id: int) -> bool:
    """The venue owner learns about a new reservation."""
    booking = _load(booking_id)
    if booking is None:
        return False
    from apps.notifications.services import notify_booking_requested as send

    send(booking)
    logger.info(f"[NOTIFICATION] Booking request {booking.booking_code} sent to owner {booking.venue.owner_id}")
    return True


@shared_task(name="bookings.notify_booking_confirmed")
def notify_booking_confirmed(booking_id: int) -> bool:
    booking = _load(booking_id)
    if booking is None:
        return False
    from apps.notifications.services import notify_booking_confirmed as send

    send(booking)
    logger.info(f"[NOTIFICATION] Booking confirmed notification sent: {booking.booking_code}")
    return True


@shared_task(name="bookings.notify_booking_rejected")
def notify_booking_rejected(booking_id: int) -> bool:
    booking = _load(booking_id)
    if booking is None:
        return False
    from apps.notifications.services import notify_booking_rejected as send

    send(booking)
    return True


@shared_task(name="bookings.notify_booking_cancelled")
def notify_booking_cancelled(booking_id: int) -> bool:
    booking = _load(booking_id)
    if booking is None:
        return False
    from apps.notifications.services import notify_booking_cancelled as send

    send(booking)
    logger.info(f"[NOTIFICATION] Booking cancelled: {booking.booking_code}")
    return True


@shared_task(name="bookings.notify_booking_expired")
def notify_booking_expired(booking_id: int) -> bool:
    booking = _load(booking_id)
    if booking is None:
        return False
    from apps.notifications.services import notify_booking_expired as send

    send(booking)
    logger.info(f"[NOTIFICATION] Booking expired notification sent: {booking.booking_code}")
    return True


@shared_task(name="bookings.notify_booking_reminder")
def notify_booking_reminder(booking_id: int) -> bool:
    booking = _load(booking_id)
    if booking is None:
        return False
    from apps.notifications.services import notify_booking_reminder as send

    send(booking)
    return True


@shared_task(name="bookings.notify_review_request")
def notify_review_request(booking_id: int) -> bool:
    booking = _load(booking_id)
    if booking is None:
        return False
    from apps.notifications.services import notify_review_request as send

    send(booking)
    return True


@shared_task(name="bookings.notify_change_requested")
def notify_change_requested(booking_id: int) -> bool:
    booking = _load(booking_id)
    if booking is None:
        return False
    from apps.notifications.services import notify_change_requested as send

    send(booking)
    return True


@shared_task(name="bookings.notify_change_decided")
def notify_change_decided(booking_id: int) -> bool:
    booking = _load(booking_id)
    if booking is None:
        return False
    from apps.notifications.services import notify_change_decided as send

    send(booking)
    return True


@shared_task(name="bookings.notify_group_invitations")
def notify_group_invitations(group_booking_id: int) -> int:
    """E-mail every participant of a new group booking their share."""
    from apps.notifications.services import notify_group_invitation

    from .models import GroupContribution

    contributions = GroupContribution.objects.filter(group_booking_id=group_booking_id).select_related(
        "group_booking", "group_booking__venue", "group_booking__organizer", "user"
    )
    return sum(1 for contribution in contributions if notify_group_invitation(contribution))
