"""Notification services: e-mail delivery and in-app notifications."""

from __future__ import annotations

import logging
from datetime import timedelta
from typing import TYPE_CHECKING, Iterable

from django.conf import settings  # type: ignore
from django.contrib.auth import get_user_model  # type: ignore
from django.core.mail import send_mail  # type: ignore
from django.template.loader import render_to_string  # type: ignore
from django.utils import timezone  # type: ignore
from django.utils.html import strip_tags  # type: ignore

from shared.domain.currency import convert_currency, format_currency
from shared.domain.value_objects import to_cents

from .models import Notification

if TYPE_CHECKING:  # pragma: no cover
    from apps.bookings.models import Booking, GroupContribution
    from apps.finances.models import Payout, RefundRequest
    from apps.users.models import CustomUser
    from apps.venues.models import Venue

logger = logging.getLogger(__name__)


# ============================================================================
# EMAIL
# ============================================================================

def send_email_notification(
    recipient_email: str,
    subject: str,
    template_name: str | None,
    context: dict,
    *,
    html_message: str | None = None,
) -> bool:
    """
    Send one e-mail.

    Args:
        recipient_email: Recipient address
        subject: Subject line
        template_name: Optional Django template rendered with ``context``
        context: Template context; ``message`` is used as the plain body otherwise
        html_message: Ready HTML body (optional)

    Returns:
        bool: True if the message was handed to the mail backend
    """
    try:
        if html_message:
            text_message = strip_tags(html_message)
        elif template_name:
            html_message = render_to_string(template_name, context)
            text_message = strip_tags(html_message)
        else:
            text_message = context.get("message", "")
            html_message = None

        send_mail(
            subject=subject,
            message=text_message,
            from_email=settings.DEFAULT_FROM_EMAIL,
            recipient_list=[recipient_email],
            html_message=html_message,
            fail_silently=False,
        )

        logger.info("Email sent to %s: %s", recipient_email, subject)
        return True

    except Exception as e:
        logger.error("Failed to send email to %s: %s", recipient_email, e, exc_info=True)
        return False


# ============================================================================
# IN-APP
# ============================================================================

def create_in_app_notification(
    user: "CustomUser",
    title: str,
    message: str,
    *,
    type: str = Notification.Type.ANNOUNCEMENT,
    link: str = "",
) -> Notification:
    notification = Notification.objects.create(
        user=user,
        type=type,
        title=title,
        message=message,
        link=link,
    )
    logger.info("In-app notification %s created for user %s: %s", notification.type, user.pk, title)
    return notification


def notify_user(
    user: "CustomUser",
    title: str,
    message: str,
    *,
    type: str,
    link: str = "",
    email_html: str | None = None,
) -> dict[str, bool]:
    """Deliver a notification in-app and by e-mail; e-mail failures are only logged."""
    create_in_app_notification(user, title, message, type=type, link=link)
    emailed = False
    if user.email:
        emailed = send_email_notification(
            recipient_email=user.email,
            subject=title,
            template_name=None,
            context={"message": message},
            html_message=email_html,
        )
    return {"in_app": True, "email": emailed}


def _price_for(user: "CustomUser", amount, currency: str) -> str:
    """Amount in the recipient's preferred currency, formatted for their language."""
    target = getattr(user, "preferred_currency", "") or currency
    language = getattr(user, "preferred_language", "") or "en"
    return format_currency(to_cents(convert_currency(amount, currency, target)), target, language)


def _booking_link(booking: "Booking") -> str:
    return f"{settings.SITE_URL}/bookings/{booking.pk}"


def _booking_html(greeting: str, intro: str, booking: "Booking", total: str) -> str:
    return f"""
    <html>
    <body>
        <h2>{greeting}</h2>
        <p>{intro}</p>
        <ul>
            <li><strong>Booking code:</strong> {booking.booking_code}</li>
            <li><strong>Venue:</strong> {booking.venue.title}</li>
            <li><strong>Date:</strong> {booking.event_date:%Y-%m-%d}</li>
            <li><strong>Time:</strong> {booking.start_time:%H:%M} - {booking.end_time:%H:%M}</li>
            <li><strong>Guests:</strong> {booking.guest_count}</li>
            <li><strong>Total:</strong> {total}</li>
        </ul>
        <p>The Party2Go team</p>
    </body>
    </html>
    """


# ============================================================================
# BOOKING EVENTS
# ============================================================================

def notify_booking_requested(booking: "Booking") -> dict[str, bool]:
    """Tell the venue owner a guest has reserved a slot."""
    owner = booking.venue.owner
    title = f"New booking request #{booking.booking_code}"
    message = (
        f"{booking.guest.display_name} requested {booking.venue.title} on "
        f"{booking.event_date:%Y-%m-%d} from {booking.start_time:%H:%M} to {booking.end_time:%H:%M}."
    )
    html = _booking_html(
        "You have a new booking request",
        message,
        booking,
        _price_for(owner, booking.total_amount, booking.currency),
    )
    return notify_user(
        owner, title, message, type=Notification.Type.BOOKING_REQUEST, link=_booking_link(booking), email_html=html
    )


def notify_booking_confirmed(booking: "Booking") -> dict[str, bool]:
    guest = booking.guest
    title = f"Booking #{booking.booking_code} confirmed"
    message = f"Your booking of {booking.venue.title} on {booking.event_date:%Y-%m-%d} is confirmed."
    html = _booking_html(
        f"Hello {guest.display_name}!",
        message,
        booking,
        _price_for(guest, booking.total_amount, booking.currency),
    )
    return notify_user(
        guest, title, message, type=Notification.Type.BOOKING_CONFIRMED, link=_booking_link(booking), email_html=html
    )


def notify_booking_rejected(booking: "Booking") -> dict[str, bool]:
    title = f"Booking #{booking.booking_code} was declined"
    message = f"The owner of {booking.venue.title} could not accept your booking."
    if booking.cancellation_reason:
        message += f" Reason: {booking.cancellation_reason}"
    return notify_user(booking.guest, title, message, type=Notification.Type.BOOKING_REJECTED, link=_booking_link(booking))


def notify_booking_cancelled(booking: "Booking") -> dict[str, bool]:
    """Both sides of the booking learn about a cancellation."""
    title = f"Booking #{booking.booking_code} cancelled"
    message = f"The booking of {booking.venue.title} on {booking.event_date:%Y-%m-%d} has been cancelled."
    results = {}
    for user in (booking.guest, booking.venue.owner):
        results[user.email] = notify_user(
            user, title, message, type=Notification.Type.BOOKING_CANCELLED, link=_booking_link(booking)
        )["email"]
    return results


def notify_booking_expired(booking: "Booking") -> dict[str, bool]:
    title = f"Booking #{booking.booking_code} expired"
    message = (
        f"Payment for {booking.venue.title} was not received within "
        f"{settings.SLOT_HOLD_MINUTES} minutes, so the slot has been released."
    )
    return notify_user(booking.guest, title, message, type=Notification.Type.BOOKING_EXPIRED, link=_booking_link(booking))


def notify_booking_reminder(booking: "Booking") -> dict[str, bool]:
    title = f"Reminder: {booking.venue.title} tomorrow"
    message = (
        f"Your event at {booking.venue.title} starts on {booking.event_date:%Y-%m-%d} "
        f"at {booking.start_time:%H:%M}. Address: {booking.venue.address or booking.venue.city}."
    )
    return notify_user(booking.guest, title, message, type=Notification.Type.BOOKING_REMINDER, link=_booking_link(booking))


def notify_review_request(booking: "Booking") -> dict[str, bool]:
    title = f"How was {booking.venue.title}?"
    message = "Your event is over. Share your experience with a review to help other guests."
    return notify_user(
        booking.guest,
        title,
        message,
        type=Notification.Type.REVIEW_REQUEST,
        link=f"{settings.SITE_URL}/bookings/{booking.pk}/review",
    )


def notify_change_requested(booking: "Booking") -> dict[str, bool]:
    owner = booking.venue.owner
    title = f"Change requested for booking #{booking.booking_code}"
    message = (
        f"{booking.guest.display_name} asked to move the event to {booking.requested_event_date:%Y-%m-%d} "
        f"{booking.requested_start_time:%H:%M} - {booking.requested_end_time:%H:%M}. "
        f"Extra cost: {_price_for(owner, booking.change_extra_cost, booking.currency)}."
    )
    return notify_user(owner, title, message, type=Notification.Type.BOOKING_CHANGE, link=_booking_link(booking))


def notify_change_decided(booking: "Booking") -> dict[str, bool]:
    title = f"Change request for booking #{booking.booking_code} {booking.change_status}"
    message = f"The owner of {booking.venue.title} {booking.change_status} your change request."
    if booking.change_response:
        message += f" {booking.change_response}"
    return notify_user(booking.guest, title, message, type=Notification.Type.BOOKING_CHANGE, link=_booking_link(booking))


# ============================================================================
# VENUE MODERATION
# ============================================================================

def notify_venue_approved(venue: "Venue") -> dict[str, bool]:
    title = f"{venue.title} is live"
    message = f"Your venue {venue.title} was approved and is now visible to guests."
    return notify_user(
        venue.owner,
        title,
        message,
        type=Notification.Type.VENUE_APPROVED,
        link=f"{settings.SITE_URL}/venues/{venue.slug}",
    )


def notify_venue_rejected(venue: "Venue") -> dict[str, bool]:
    title = f"{venue.title} needs changes"
    message = f"Your venue {venue.title} was not approved. Reason: {venue.rejection_reason}"
    return notify_user(venue.owner, title, message, type=Notification.Type.VENUE_REJECTED)


# ============================================================================
# GROUP BOOKINGS AND REFUNDS
# ============================================================================

def notify_group_invitation(contribution: "GroupContribution") -> bool:
    """Invite a participant to pay their share; they may not have an account yet."""
    group = contribution.group_booking
    organizer = group.organizer
    title = f"{organizer.display_name} invited you to {group.title}"
    share = format_currency(contribution.amount, group.currency)
    message = (
        f"You are part of a group booking at {group.venue.title} on {group.event_date:%Y-%m-%d}. "
        f"Your share is {share}."
    )
    link = f"{settings.SITE_URL}/group-bookings/{group.pk}"
    if contribution.user_id:
        create_in_app_notification(
            contribution.user, title, message, type=Notification.Type.GROUP_INVITATION, link=link
        )
    return send_email_notification(
        recipient_email=contribution.email,
        subject=title,
        template_name=None,
        context={"message": f"{message}\n\nPay your share: {link}"},
    )


def notify_refund_decision(refund: "RefundRequest") -> dict[str, bool]:
    booking = refund.booking
    guest = refund.requested_by
    title = f"Refund request for booking #{booking.booking_code} {refund.status}"
    if refund.status == refund.Status.REJECTED:
        message = "Your refund request was rejected and the booking stays confirmed."
        if refund.admin_notes:
            message += f" {refund.admin_notes}"
    else:
        message = (
            f"Your refund of {refund.refund_percentage}% "
            f"({_price_for(guest, refund.refund_amount, booking.currency)}) was approved."
        )
    return notify_user(guest, title, message, type=Notification.Type.REFUND_DECISION, link=_booking_link(booking))


def notify_payout(payout: "Payout") -> dict[str, bool]:
    owner = payout.owner
    amount = _price_for(owner, payout.amount, payout.currency)
    if payout.status == payout.Status.PROCESSED:
        title = f"Payout of {amount} sent"
        message = f"We sent {amount} for booking #{payout.booking.booking_code} to {payout.masked_destination}."
    else:
        title = "Payout could not be sent"
        message = f"The payout of {amount} for booking #{payout.booking.booking_code} failed: {payout.failure_reason}"
    return notify_user(owner, title, message, type=Notification.Type.PAYOUT)


# ============================================================================
# BULK
# ============================================================================

def send_announcement_to_all_users(
    title: str,
    message: str,
    *,
    roles: Iterable[str] | None = None,
    batch_size: int | None = None,
) -> int:
    """Create the same in-app announcement for every active user, in batches."""
    User = get_user_model()
    batch_size = batch_size or settings.ANNOUNCEMENT_BATCH_SIZE
    users = User.objects.filter(is_active=True)
    if roles:
        users = users.filter(role__in=list(roles))

    created = 0
    batch: list[Notification] = []
    for user_id in users.values_list("id", flat=True).iterator():
        batch.append(
            Notification(user_id=user_id, type=Notification.Type.ANNOUNCEMENT, title=title, message=message)
        )
        if len(batch) >= batch_size:
            Notification.objects.bulk_create(batch)
            created += len(batch)
            batch = []
    if batch:
        Notification.objects.bulk_create(batch)
        created += len(batch)

    logger.info("Announcement '%s' sent to %s users", title, created)
    return created


def cleanup_old_notifications(days: int | None = None) -> int:
    """Delete read notifications older than the retention window."""
    days = settings.NOTIFICATION_RETENTION_DAYS if days is None else days
    cutoff = timezone.now() - timedelta(days=days)
    deleted, _ = Notification.objects.filter(is_read=True, created_at__lt=cutoff).delete()
    logger.info("Deleted %s read notifications older than %s days", deleted, days)
    return deleted
