"""Domain services for booking workflows.

Slot reservation happens inside ``transaction.atomic()`` with the venue row
locked, so two guests racing for the same window serialise on the venue and
the second one sees the first booking in its conflict check.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta
from decimal import Decimal
from typing import Any, Iterable, Optional, Union

from django.conf import settings  # type: ignore
from django.contrib.auth import get_user_model  # type: ignore
from django.db import transaction  # type: ignore
from django.db.models import F, Q  # type: ignore
from django.db.utils import NotSupportedError  # type: ignore
from django.utils import timezone  # type: ignore

from apps.venues.models import DiscountCode, Venue, VenueAvailability
from shared.domain.value_objects import TimeWindow, to_cents

from .domain.pricing import Discount, PriceQuote, applicable_rule, calculate_price, change_cost, owner_payout, resolve_window
from .domain.splits import installment_schedule, split_equally, validate_contributions
from .exceptions import (
    BookingConflictError,
    BookingError,
    BookingStateError,
    DiscountCodeError,
    GroupBookingError,
    PricingError,
)
from .models import Booking, GroupBooking, GroupContribution, GroupInstallment

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class BookingQuote:
    venue: Venue
    starts_at: datetime
    ends_at: datetime
    price: PriceQuote
    discount_code: Optional[DiscountCode]
    currency: str

    def as_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "venue": self.venue.pk,
            "starts_at": self.starts_at,
            "ends_at": self.ends_at,
            "currency": self.currency,
            "discount_code": self.discount_code.code if self.discount_code else None,
        }
        data.update(self.price.as_dict())
        return data


def _lock_queryset_if_possible(queryset):
    """Apply select_for_update when inside transaction.atomic()."""
    if not transaction.get_connection().in_atomic_block:
        return queryset
    try:
        return queryset.select_for_update()
    except NotSupportedError:
        return queryset


def _blocking_bookings(venue: Venue, now: datetime):
    """Bookings that hold their slot: live payment holds and confirmed events."""
    live_hold = Q(status=Booking.Status.PENDING_PAYMENT) & (
        Q(expires_at__isnull=True) | Q(expires_at__gt=now)
    )
    settled = Q(status__in=[Booking.Status.CONFIRMED, Booking.Status.CANCELLATION_REQUESTED])
    return Booking.objects.filter(venue=venue).filter(live_hold | settled)


def _overlapping_blocks(venue: Venue, start: datetime, end: datetime) -> list[VenueAvailability]:
    tz = timezone.get_current_timezone()
    # A partial block from the previous day can run past midnight
    first_day = timezone.localtime(start, tz).date() - timedelta(days=1)
    last_day = timezone.localtime(end, tz).date()
    requested = TimeWindow(start, end)
    candidates = VenueAvailability.objects.filter(
        venue=venue,
        blocked_date__gte=first_day,
        blocked_date__lte=last_day,
    )
    return [block for block in candidates if TimeWindow(*block.window(tz)).overlaps_with(requested)]


def find_conflict(
    venue: Venue,
    start: datetime,
    end: datetime,
    *,
    exclude_booking_id: Optional[int] = None,
) -> Optional[Union[Booking, VenueAvailability]]:
    """First booking or owner block that overlaps ``[start, end)``, if any."""
    bookings = _blocking_bookings(venue, timezone.now()).filter(starts_at__lt=end, ends_at__gt=start)
    if exclude_booking_id is not None:
        bookings = bookings.exclude(pk=exclude_booking_id)
    booking = bookings.order_by("starts_at").first()
    if booking is not None:
        return booking
    blocks = _overlapping_blocks(venue, start, end)
    return blocks[0] if blocks else None


def ensure_slot_available(
    venue: Venue,
    start: datetime,
    end: datetime,
    *,
    exclude_booking_id: Optional[int] = None,
) -> None:
    conflict = find_conflict(venue, start, end, exclude_booking_id=exclude_booking_id)
    if isinstance(conflict, VenueAvailability):
        raise BookingConflictError("The venue is blocked by its owner for the selected time.")
    if conflict is not None:
        raise BookingConflictError("The venue is already booked for the selected time.")


def busy_windows(venue: Venue, start: datetime, end: datetime) -> list[dict[str, Any]]:
    """Anonymous busy periods for the public venue calendar."""
    bookings = _blocking_bookings(venue, timezone.now()).filter(starts_at__lt=end, ends_at__gt=start)
    windows = [
        {"start": booking.starts_at, "end": booking.ends_at, "kind": "booking"}
        for booking in bookings.order_by("starts_at")
    ]
    windows.extend(
        {"start": block_start, "end": block_end, "kind": "blocked"}
        for block_start, block_end in (block.window() for block in _overlapping_blocks(venue, start, end))
    )
    return sorted(windows, key=lambda item: item["start"])


def resolve_discount_code(code: str, venue: Venue, *, at: Optional[datetime] = None, lock: bool = False) -> DiscountCode:
    """Look up a discount code and check it can be used for ``venue`` now."""
    qs = DiscountCode.objects.filter(code=code.strip().upper())
    if lock:
        qs = _lock_queryset_if_possible(qs)
    discount = qs.first()
    if discount is None:
        raise DiscountCodeError("Unknown discount code.")
    if not discount.is_active:
        raise DiscountCodeError("This discount code is no longer active.")
    if not discount.applies_to(venue):
        raise DiscountCodeError("This discount code is not valid for this venue.")
    if discount.is_expired(at):
        raise DiscountCodeError("This discount code has expired.")
    if discount.is_exhausted:
        raise DiscountCodeError("This discount code has reached its usage limit.")
    return discount


def quote_booking(
    venue: Venue,
    event_date: date,
    start_time: time,
    end_time: time,
    *,
    end_date: Optional[date] = None,
    discount_code: Optional[str] = None,
    lock_discount: bool = False,
) -> BookingQuote:
    """Price a prospective booking with the venue's dynamic rules and a discount code."""
    if not venue.is_bookable:
        raise PricingError("This venue is not accepting bookings.")
    starts_at, ends_at = resolve_window(
        event_date, start_time, end_time, end_date, tz=timezone.get_current_timezone()
    )
    rule = applicable_rule(venue.pricing_rules.all(), event_date)

    code = None
    discount = None
    if discount_code:
        code = resolve_discount_code(discount_code, venue, lock=lock_discount)
        discount = Discount(kind=code.discount_type, value=code.value)

    price = calculate_price(
        venue.price_per_hour,
        starts_at,
        ends_at,
        discount=discount,
        fee_percent=settings.PLATFORM_FEE_PERCENT,
        rule=rule,
    )
    return BookingQuote(
        venue=venue,
        starts_at=starts_at,
        ends_at=ends_at,
        price=price,
        discount_code=code,
        currency=venue.currency,
    )


def create_booking(
    *,
    guest,
    venue: Venue,
    event_date: date,
    start_time: time,
    end_time: time,
    end_date: Optional[date] = None,
    guest_count: int = 1,
    discount_code: Optional[str] = None,
    status: str = Booking.Status.PENDING_PAYMENT,
    price: Optional[PriceQuote] = None,
    **details: Any,
) -> Booking:
    """
    Reserve the slot and store the price snapshot.

    The venue row is locked for the duration of the transaction and the
    conflict check runs again under the lock. A ``price`` agreed earlier
    (by a group booking) replaces the fresh quote.
    """
    with transaction.atomic():
        venue = _lock_queryset_if_possible(Venue.objects.filter(pk=venue.pk)).get()
        if guest_count > venue.capacity:
            raise PricingError(f"This venue holds at most {venue.capacity} guests.")

        quote = quote_booking(
            venue,
            event_date,
            start_time,
            end_time,
            end_date=end_date,
            discount_code=discount_code,
            lock_discount=True,
        )
        now = timezone.now()
        if quote.starts_at <= now:
            raise PricingError("The event must start in the future.")
        ensure_slot_available(venue, quote.starts_at, quote.ends_at)
        price = price or quote.price

        is_hold = status == Booking.Status.PENDING_PAYMENT
        booking = Booking.objects.create(
            venue=venue,
            guest=guest,
            event_date=event_date,
            start_time=start_time,
            end_time=end_time,
            event_end_date=end_date,
            starts_at=quote.starts_at,
            ends_at=quote.ends_at,
            guest_count=guest_count,
            hourly_rate=price.rate,
            hours=price.hours,
            base_amount=price.base_amount,
            discount_code=quote.discount_code,
            discount_amount=price.discount_amount,
            platform_fee=price.platform_fee,
            total_amount=price.total_amount,
            currency=quote.currency,
            venue_owner_payout=owner_payout(
                price.total_amount, settings.PLATFORM_COMMISSION_PERCENT
            ),
            status=status,
            expires_at=now + timedelta(minutes=settings.SLOT_HOLD_MINUTES) if is_hold else None,
            confirmed_at=None if is_hold else now,
            **details,
        )
        if quote.discount_code is not None:
            DiscountCode.objects.filter(pk=quote.discount_code.pk).update(times_used=F("times_used") + 1)

    logger.info(
        "Booking %s created for venue %s (%s - %s), total %s %s, status %s",
        booking.booking_code,
        venue.pk,
        booking.starts_at,
        booking.ends_at,
        booking.total_amount,
        booking.currency,
        booking.status,
    )
    return booking


def _transition(booking: Booking, allowed: Iterable[str], target: str, **fields: Any) -> Booking:
    if booking.status not in set(allowed):
        raise BookingStateError(
            f"Cannot move booking {booking.booking_code} from {booking.status} to {target}."
        )
    previous = booking.status
    booking.status = target
    for name, value in fields.items():
        setattr(booking, name, value)
    booking.save(update_fields=["status", "updated_at", *fields.keys()])
    logger.info("Booking %s: %s -> %s", booking.booking_code, previous, target)
    return booking


def confirm_booking(booking: Booking, *, paid: bool = False) -> Booking:
    """Confirm a booking awaiting payment, optionally recording that it was paid."""
    fields: dict[str, Any] = {"confirmed_at": timezone.now(), "expires_at": None}
    if paid:
        fields["payment_status"] = Booking.PaymentStatus.PAID
        if booking.change_payment_status == Booking.ChangePaymentStatus.PENDING:
            # An approved extra was added to the total being paid now
            fields["change_payment_status"] = Booking.ChangePaymentStatus.PAID
    with transaction.atomic():
        if booking.is_hold_expired:
            # The hold lapsed; the slot may have been taken meanwhile
            _lock_queryset_if_possible(Venue.objects.filter(pk=booking.venue_id)).get()
            ensure_slot_available(
                booking.venue, booking.starts_at, booking.ends_at, exclude_booking_id=booking.pk
            )
        return _transition(booking, [Booking.Status.PENDING_PAYMENT], Booking.Status.CONFIRMED, **fields)


def reject_booking(booking: Booking, reason: str = "") -> Booking:
    return _transition(
        booking,
        [Booking.Status.PENDING_PAYMENT, Booking.Status.CONFIRMED],
        Booking.Status.REJECTED,
        cancellation_source=Booking.CancellationSource.OWNER,
        cancellation_reason=reason,
        cancelled_at=timezone.now(),
    )


def cancel_booking(booking: Booking, *, source: str, reason: str = "") -> Booking:
    return _transition(
        booking,
        [Booking.Status.PENDING_PAYMENT, Booking.Status.CONFIRMED, Booking.Status.CANCELLATION_REQUESTED],
        Booking.Status.CANCELLED,
        cancellation_source=source,
        cancellation_reason=reason,
        cancelled_at=timezone.now(),
    )


def request_cancellation(booking: Booking, reason: str = "") -> Booking:
    """A paid booking waits for its refund decision before it is cancelled."""
    return _transition(
        booking,
        [Booking.Status.CONFIRMED],
        Booking.Status.CANCELLATION_REQUESTED,
        cancellation_source=Booking.CancellationSource.GUEST,
        cancellation_reason=reason,
    )


def withdraw_cancellation(booking: Booking) -> Booking:
    return _transition(
        booking,
        [Booking.Status.CANCELLATION_REQUESTED],
        Booking.Status.CONFIRMED,
        cancellation_source="",
        cancellation_reason="",
    )


def complete_booking(booking: Booking, *, now: Optional[datetime] = None) -> Booking:
    now = now or timezone.now()
    if booking.ends_at > now:
        raise BookingStateError(f"Booking {booking.booking_code} has not ended yet.")
    return _transition(booking, [Booking.Status.CONFIRMED], Booking.Status.COMPLETED, completed_at=now)


def expire_booking(booking: Booking, *, now: Optional[datetime] = None) -> Booking:
    now = now or timezone.now()
    if not booking.expires_at or booking.expires_at > now:
        raise BookingStateError(f"The payment hold of booking {booking.booking_code} is still running.")
    return _transition(
        booking,
        [Booking.Status.PENDING_PAYMENT],
        Booking.Status.EXPIRED,
        cancellation_source=Booking.CancellationSource.SYSTEM,
        cancellation_reason="Payment hold expired",
        cancelled_at=now,
    )


# --- Change requests --------------------------------------------------------

CHANGEABLE_STATUSES = (Booking.Status.PENDING_PAYMENT, Booking.Status.CONFIRMED)


def _requested_window(booking: Booking) -> tuple[datetime, datetime]:
    return resolve_window(
        booking.requested_event_date,
        booking.requested_start_time,
        booking.requested_end_time,
        booking.requested_event_end_date,
        tz=timezone.get_current_timezone(),
    )


def request_change(
    booking: Booking,
    *,
    event_date: date,
    start_time: time,
    end_time: time,
    end_date: Optional[date] = None,
    reason: str = "",
) -> Booking:
    """Ask the owner to move or resize the event; the extra cost is quoted upfront."""
    if booking.status not in CHANGEABLE_STATUSES:
        raise BookingStateError("Only upcoming bookings can be changed.")
    if booking.change_status == Booking.ChangeStatus.PENDING:
        raise BookingStateError("A change request is already waiting for the owner.")

    starts_at, ends_at = resolve_window(
        event_date, start_time, end_time, end_date, tz=timezone.get_current_timezone()
    )
    ensure_slot_available(booking.venue, starts_at, ends_at, exclude_booking_id=booking.pk)
    new_hours = TimeWindow(starts_at, ends_at).hours

    booking.change_status = Booking.ChangeStatus.PENDING
    booking.requested_event_date = event_date
    booking.requested_start_time = start_time
    booking.requested_end_time = end_time
    booking.requested_event_end_date = end_date
    booking.change_reason = reason
    booking.change_response = ""
    booking.change_extra_cost = change_cost(
        booking.hours, new_hours, booking.hourly_rate, settings.PLATFORM_FEE_PERCENT
    )
    booking.save()
    logger.info(
        "Booking %s change requested to %s - %s (extra %s)",
        booking.booking_code,
        starts_at,
        ends_at,
        booking.change_extra_cost,
    )
    return booking


def approve_change(booking: Booking, response: str = "") -> Booking:
    """
    Apply the requested window after re-checking it under the venue lock.

    On a paid booking the extra cost is charged to the guest as a separate
    payment; otherwise it is added to the amount still due.
    """
    from apps.finances.services import charge_change

    if booking.change_status != Booking.ChangeStatus.PENDING:
        raise BookingStateError("There is no pending change request.")
    with transaction.atomic():
        _lock_queryset_if_possible(Venue.objects.filter(pk=booking.venue_id)).get()
        starts_at, ends_at = _requested_window(booking)
        ensure_slot_available(booking.venue, starts_at, ends_at, exclude_booking_id=booking.pk)

        extra = booking.change_extra_cost
        new_hours = to_cents(TimeWindow(starts_at, ends_at).hours)
        if extra > 0:
            extra_hours = TimeWindow(starts_at, ends_at).hours - booking.hours
            extra_base = to_cents(extra_hours * booking.hourly_rate)
            booking.base_amount += extra_base
            booking.platform_fee += extra - extra_base
            booking.total_amount += extra
            booking.venue_owner_payout = owner_payout(
                booking.total_amount, settings.PLATFORM_COMMISSION_PERCENT
            )
        booking.event_date = booking.requested_event_date
        booking.start_time = booking.requested_start_time
        booking.end_time = booking.requested_end_time
        booking.event_end_date = booking.requested_event_end_date
        booking.starts_at = starts_at
        booking.ends_at = ends_at
        booking.hours = new_hours
        booking.change_status = Booking.ChangeStatus.APPROVED
        booking.change_response = response

        if extra <= 0:
            booking.change_payment_status = Booking.ChangePaymentStatus.NOT_REQUIRED
        elif booking.payment_status == Booking.PaymentStatus.PAID:
            charge_change(booking, booking.guest)
            booking.change_payment_status = Booking.ChangePaymentStatus.PAID
        else:
            booking.change_payment_status = Booking.ChangePaymentStatus.PENDING
        booking.save()
    logger.info("Booking %s change approved, new total %s", booking.booking_code, booking.total_amount)
    return booking


def decline_change(booking: Booking, response: str = "") -> Booking:
    if booking.change_status != Booking.ChangeStatus.PENDING:
        raise BookingStateError("There is no pending change request.")
    booking.change_status = Booking.ChangeStatus.DECLINED
    booking.change_response = response
    booking.change_extra_cost = Decimal("0.00")
    booking.save(update_fields=["change_status", "change_response", "change_extra_cost", "updated_at"])
    logger.info("Booking %s change declined", booking.booking_code)
    return booking


# --- Group bookings ---------------------------------------------------------


def create_group_booking(
    *,
    organizer,
    venue: Venue,
    title: str,
    event_date: date,
    start_time: time,
    end_time: time,
    participants: list[dict[str, Any]],
    payment_plan: str = GroupBooking.PaymentPlan.SPLIT_EQUALLY,
    end_date: Optional[date] = None,
    guest_count: int = 1,
    installment_count: Optional[int] = None,
) -> GroupBooking:
    """
    Quote the event and divide the total between participants.

    ``participants`` holds dicts with ``email`` and optional ``name`` and
    ``amount`` (required for custom amounts). The slot itself is only
    reserved when the group is finalised.
    """
    if not participants:
        raise GroupBookingError("A group booking needs at least one participant.")
    emails = [p["email"].strip().lower() for p in participants]
    if len(set(emails)) != len(emails):
        raise GroupBookingError("Each participant can only appear once.")
    if guest_count > venue.capacity:
        raise GroupBookingError(f"This venue holds at most {venue.capacity} guests.")

    quote = quote_booking(venue, event_date, start_time, end_time, end_date=end_date)
    ensure_slot_available(venue, quote.starts_at, quote.ends_at)
    total = quote.price.total_amount

    if payment_plan == GroupBooking.PaymentPlan.CUSTOM_AMOUNTS:
        try:
            amounts = [Decimal(str(p["amount"])) for p in participants]
        except KeyError:
            raise GroupBookingError("Custom amounts require an amount for every participant.")
        validate_contributions(amounts, total)
    else:
        amounts = split_equally(total, len(participants))

    if payment_plan == GroupBooking.PaymentPlan.INSTALLMENTS:
        installment_count = installment_count or settings.GROUP_BOOKING_INSTALLMENTS
    else:
        installment_count = 1

    User = get_user_model()
    with transaction.atomic():
        group = GroupBooking.objects.create(
            organizer=organizer,
            venue=venue,
            title=title,
            event_date=event_date,
            start_time=start_time,
            end_time=end_time,
            event_end_date=end_date,
            guest_count=guest_count,
            payment_plan=payment_plan,
            installment_count=installment_count,
            hourly_rate=quote.price.rate,
            hours=quote.price.hours,
            base_amount=quote.price.base_amount,
            platform_fee=quote.price.platform_fee,
            total_amount=total,
            currency=quote.currency,
        )
        first_due = timezone.localdate()
        for participant, email, amount in zip(participants, emails, amounts):
            contribution = GroupContribution.objects.create(
                group_booking=group,
                user=User.objects.filter(email__iexact=email).first(),
                name=participant.get("name", ""),
                email=email,
                amount=amount,
            )
            if payment_plan == GroupBooking.PaymentPlan.INSTALLMENTS:
                GroupInstallment.objects.bulk_create(
                    GroupInstallment(
                        contribution=contribution,
                        sequence=index,
                        due_date=due_date,
                        amount=part,
                    )
                    for index, (due_date, part) in enumerate(
                        installment_schedule(amount, installment_count, first_due), start=1
                    )
                )

    logger.info(
        "Group booking %s created by %s for venue %s: %s contributors, total %s",
        group.pk,
        organizer.pk,
        venue.pk,
        len(participants),
        total,
    )
    return group


def record_contribution_payment(contribution: GroupContribution) -> GroupContribution:
    """
    Register a payment by a participant.

    Under the installments plan one installment (the earliest unpaid) is
    paid per call; otherwise the whole share is settled. The group row is
    locked first so concurrent payers see each other's payments.
    """
    now = timezone.now()
    with transaction.atomic():
        group = _lock_queryset_if_possible(
            GroupBooking.objects.filter(pk=contribution.group_booking_id)
        ).get()
        contribution = _lock_queryset_if_possible(
            GroupContribution.objects.filter(pk=contribution.pk)
        ).get()
        if group.status != GroupBooking.Status.ORGANIZING:
            raise GroupBookingError("This group booking is no longer collecting contributions.")
        if contribution.status == GroupContribution.Status.PAID:
            raise GroupBookingError("This contribution is already paid.")

        installments = list(contribution.installments.filter(status=GroupInstallment.Status.PENDING))
        if installments:
            installment = installments[0]
            installment.status = GroupInstallment.Status.PAID
            installment.paid_at = now
            installment.save(update_fields=["status", "paid_at"])
            fully_paid = len(installments) == 1
        else:
            fully_paid = True

        if fully_paid:
            contribution.status = GroupContribution.Status.PAID
            contribution.paid_at = now
            contribution.save(update_fields=["status", "paid_at"])

        funded = not group.contributions.exclude(status=GroupContribution.Status.PAID).exists()
        if funded:
            group.status = GroupBooking.Status.FUNDED
            group.save(update_fields=["status", "updated_at"])
            logger.info("Group booking %s fully funded", group.pk)

    if funded:
        try:
            finalize_group_booking(group)
        except BookingError as exc:
            # The group stays funded; the organiser can retry once the slot is free
            logger.warning("Group booking %s could not be finalised: %s", group.pk, exc)

    return contribution


def _group_price(group: GroupBooking) -> PriceQuote:
    subtotal = group.total_amount - group.platform_fee
    return PriceQuote(
        hours=group.hours,
        rate=group.hourly_rate,
        base_amount=group.base_amount,
        discount_amount=group.base_amount - subtotal,
        subtotal=subtotal,
        platform_fee=group.platform_fee,
        total_amount=group.total_amount,
    )


def finalize_group_booking(group: GroupBooking) -> Booking:
    """
    Turn a funded group booking into a confirmed, paid booking.

    The booking keeps the price the contributors paid even if the venue
    rate changed since, and each contribution is recorded as a payment.
    """
    from apps.finances.services import record_group_payments

    with transaction.atomic():
        locked = _lock_queryset_if_possible(GroupBooking.objects.filter(pk=group.pk)).get()
        if locked.status != GroupBooking.Status.FUNDED:
            raise GroupBookingError("Only fully funded group bookings can be finalised.")
        booking = create_booking(
            guest=locked.organizer,
            venue=locked.venue,
            event_date=locked.event_date,
            start_time=locked.start_time,
            end_time=locked.end_time,
            end_date=locked.event_end_date,
            guest_count=locked.guest_count,
            status=Booking.Status.CONFIRMED,
            price=_group_price(locked),
            payment_status=Booking.PaymentStatus.PAID,
            contact_name=locked.organizer.display_name,
            contact_email=locked.organizer.email,
            event_type="group",
        )
        record_group_payments(booking, locked)
        group.booking = booking
        group.status = GroupBooking.Status.FINALIZED
        group.save(update_fields=["booking", "status", "updated_at"])
    logger.info("Group booking %s finalised as booking %s", group.pk, booking.booking_code)
    return booking


def cancel_group_booking(group: GroupBooking) -> GroupBooking:
    if group.status in {GroupBooking.Status.FINALIZED, GroupBooking.Status.CANCELLED}:
        raise GroupBookingError("This group booking can no longer be cancelled.")
    group.status = GroupBooking.Status.CANCELLED
    group.save(update_fields=["status", "updated_at"])
    logger.info("Group booking %s cancelled", group.pk)
    return group
