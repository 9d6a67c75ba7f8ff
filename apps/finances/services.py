"""Payment, refund and payout services.

Real card processors are out of scope; ``SimulatedPaymentProvider`` accepts
every charge and refund immediately and returns a transaction id, so the
rest of the flow (booking confirmation, refunds, payouts) behaves as it
would with a live gateway.
"""

from __future__ import annotations

import logging
import uuid
from decimal import Decimal
from typing import Any, Optional

from django.conf import settings  # type: ignore
from django.db import transaction  # type: ignore
from django.db.models import Sum  # type: ignore
from django.utils import timezone  # type: ignore

from apps.bookings.domain.refunds import days_until, refund_amount
from apps.bookings.exceptions import BookingError
from apps.bookings.models import Booking, GroupBooking, GroupContribution
from apps.bookings.services import cancel_booking, confirm_booking, request_cancellation, withdraw_cancellation
from shared.domain.currency import convert_currency
from shared.domain.value_objects import Money, to_cents

from .exceptions import FinanceError, PaymentError, PayoutError, RefundError
from .models import Payment, PaymentTransaction, Payout, PayoutAccount, RefundRequest

__all__ = [
    "FinanceError",
    "PaymentError",
    "PayoutError",
    "RefundError",
    "SimulatedPaymentProvider",
    "approve_refund",
    "charge_change",
    "create_payout",
    "owner_summary",
    "pay_booking",
    "process_payout",
    "record_group_payments",
    "refund_in_full",
    "reject_refund",
    "request_refund",
    "schedule_owner_payouts",
]

logger = logging.getLogger(__name__)

ZERO = Decimal("0.00")


class SimulatedPaymentProvider:
    """Stand-in gateway: charges and refunds always succeed."""

    name = "simulated"

    def charge(self, payment: Payment) -> str:
        transaction_id = f"SIM-{uuid.uuid4().hex[:16].upper()}"
        self._log(payment, "charge", {"amount": str(payment.amount), "transaction_id": transaction_id})
        return transaction_id

    def refund(self, payment: Payment, amount: Decimal) -> str:
        reference = f"SIMR-{uuid.uuid4().hex[:16].upper()}"
        self._log(payment, "refund", {"amount": str(amount), "reference": reference})
        return reference

    def payout(self, payout: Payout) -> str:
        return f"SIMP-{uuid.uuid4().hex[:16].upper()}"

    @staticmethod
    def _log(payment: Payment, event: str, payload: dict[str, Any]) -> None:
        PaymentTransaction.objects.create(payment=payment, event=event, payload=payload, status="succeeded")


provider = SimulatedPaymentProvider()


# ============================================================================
# PAYMENTS
# ============================================================================

def pay_booking(booking: Booking, payer, method: str = Payment.Method.SIMULATED) -> Payment:
    """
    Charge the booking total and confirm the booking.

    If the hold lapsed and the slot was taken in the meantime the payment
    is marked failed and ``PaymentError`` is raised.
    """
    if booking.status != Booking.Status.PENDING_PAYMENT:
        raise PaymentError("Only bookings awaiting payment can be paid.")
    if booking.payment_status == Booking.PaymentStatus.PAID:
        raise PaymentError("This booking is already paid.")

    payment = Payment.objects.create(
        booking=booking,
        payer=payer,
        method=method,
        amount=booking.total_amount,
        currency=booking.currency,
        provider=provider.name,
    )
    transaction_id = provider.charge(payment)
    try:
        confirm_booking(booking, paid=True)
    except BookingError as exc:
        payment.mark_failed(str(exc))
        logger.warning("Payment %s for booking %s failed: %s", payment.pk, booking.booking_code, exc)
        raise PaymentError(str(exc)) from exc

    payment.mark_success(transaction_id=transaction_id)
    logger.info(
        "Payment %s succeeded for booking %s: %s %s",
        payment.pk,
        booking.booking_code,
        payment.amount,
        payment.currency,
    )
    return payment


def charge_change(booking: Booking, payer) -> Payment:
    """Collect the extra cost of an approved change on a paid booking."""
    amount = booking.change_extra_cost
    if amount <= ZERO:
        raise PaymentError("This change has no extra cost to charge.")
    payment = Payment.objects.create(
        booking=booking,
        payer=payer,
        amount=amount,
        currency=booking.currency,
        provider=provider.name,
        metadata={"kind": "change"},
    )
    payment.mark_success(transaction_id=provider.charge(payment))
    logger.info("Change payment %s for booking %s: %s %s", payment.pk, booking.booking_code, amount, booking.currency)
    return payment


def record_group_payments(booking: Booking, group: GroupBooking) -> list[Payment]:
    """Book each paid contribution of a group as a payment of its booking."""
    payments = []
    contributions = (
        group.contributions.filter(status=GroupContribution.Status.PAID).select_related("user").order_by("pk")
    )
    for contribution in contributions:
        payment = Payment.objects.create(
            booking=booking,
            payer=contribution.user,
            amount=contribution.amount,
            currency=group.currency,
            provider=provider.name,
            metadata={"kind": "group", "group_booking": group.pk, "contribution": contribution.pk},
        )
        payment.mark_success(transaction_id=provider.charge(payment))
        payments.append(payment)
    logger.info("Booking %s funded by %s group payments", booking.booking_code, len(payments))
    return payments


def _refund_payments(booking: Booking, amount: Decimal) -> Decimal:
    """Refund ``amount`` across the booking's successful payments; returns what was refunded."""
    remaining = amount
    payments = booking.payments.filter(
        status__in=[Payment.Status.SUCCEEDED, Payment.Status.PARTIALLY_REFUNDED]
    ).order_by("created_at")
    for payment in payments:
        if remaining <= ZERO:
            break
        part = min(remaining, payment.refundable_amount)
        if part <= ZERO:
            continue
        provider.refund(payment, part)
        payment.mark_refunded(part)
        remaining -= part
    refunded = amount - remaining

    if refunded >= booking.total_amount:
        booking.payment_status = Booking.PaymentStatus.REFUNDED
    elif refunded > ZERO:
        booking.payment_status = Booking.PaymentStatus.PARTIALLY_REFUNDED
    booking.save(update_fields=["payment_status", "updated_at"])
    return refunded


# ============================================================================
# REFUNDS
# ============================================================================

def request_refund(booking: Booking, user, reason: str = "", *, now=None) -> RefundRequest:
    """Guest asks to cancel a paid booking; the refund is priced now and reviewed by an admin."""
    now = now or timezone.now()
    if booking.guest_id != user.id:
        raise RefundError("Only the guest who made the booking can request a refund.")
    if booking.payment_status != Booking.PaymentStatus.PAID:
        raise RefundError("Only paid bookings can be refunded.")
    if booking.refund_requests.filter(status=RefundRequest.Status.PENDING).exists():
        raise RefundError("A refund request for this booking is already pending.")

    percentage, amount = refund_amount(booking.total_amount, booking.starts_at, now)
    with transaction.atomic():
        request_cancellation(booking, reason)
        refund = RefundRequest.objects.create(
            booking=booking,
            requested_by=user,
            reason=reason,
            days_before_event=to_cents(days_until(booking.starts_at, now)),
            refund_percentage=percentage,
            refund_amount=amount,
        )
    logger.info(
        "Refund request %s for booking %s: %s%% (%s %s)",
        refund.pk,
        booking.booking_code,
        percentage,
        amount,
        booking.currency,
    )
    return refund


def _review(refund: RefundRequest, admin, notes: str, status: str) -> None:
    refund.status = status
    refund.reviewed_by = admin
    refund.admin_notes = notes
    refund.reviewed_at = timezone.now()


def approve_refund(refund: RefundRequest, admin, notes: str = "") -> RefundRequest:
    """Cancel the booking and pay back the quoted refund."""
    if refund.status != RefundRequest.Status.PENDING:
        raise RefundError("This refund request has already been decided.")
    booking = refund.booking
    with transaction.atomic():
        cancel_booking(booking, source=Booking.CancellationSource.GUEST, reason=refund.reason)
        _review(refund, admin, notes, RefundRequest.Status.APPROVED)
        refund.save()
        _refund_payments(booking, refund.refund_amount)
        refund.status = RefundRequest.Status.PROCESSED
        refund.processed_at = timezone.now()
        refund.save(update_fields=["status", "processed_at"])
    logger.info("Refund request %s approved and processed by %s", refund.pk, getattr(admin, "pk", None))
    return refund


def reject_refund(refund: RefundRequest, admin, notes: str = "") -> RefundRequest:
    """Keep the booking confirmed."""
    if refund.status != RefundRequest.Status.PENDING:
        raise RefundError("This refund request has already been decided.")
    with transaction.atomic():
        withdraw_cancellation(refund.booking)
        _review(refund, admin, notes, RefundRequest.Status.REJECTED)
        refund.save()
    logger.info("Refund request %s rejected by %s", refund.pk, getattr(admin, "pk", None))
    return refund


def refund_in_full(booking: Booking, *, reason: str = "") -> RefundRequest:
    """Full refund when the owner or an admin cancels a paid booking."""
    with transaction.atomic():
        refund = RefundRequest.objects.create(
            booking=booking,
            requested_by=booking.guest,
            reason=reason,
            days_before_event=to_cents(days_until(booking.starts_at, timezone.now())),
            refund_percentage=100,
            refund_amount=booking.total_amount,
            status=RefundRequest.Status.PROCESSED,
            reviewed_at=timezone.now(),
            processed_at=timezone.now(),
        )
        _refund_payments(booking, booking.total_amount)
    logger.info("Booking %s refunded in full (%s %s)", booking.booking_code, booking.total_amount, booking.currency)
    return refund


# ============================================================================
# PAYOUTS
# ============================================================================

def create_payout(booking: Booking) -> Payout:
    if booking.status != Booking.Status.COMPLETED:
        raise PayoutError("Payouts are only made for completed bookings.")
    if Payout.objects.filter(booking=booking).exists():
        raise PayoutError("This booking has already been paid out.")
    owner = booking.venue.owner
    account = PayoutAccount.objects.filter(owner=owner).first()
    payout = Payout.objects.create(
        owner=owner,
        booking=booking,
        amount=booking.venue_owner_payout,
        currency=booking.currency,
        destination_account=account.account_number if account else "",
    )
    logger.info("Payout %s created for booking %s: %s %s", payout.pk, booking.booking_code, payout.amount, payout.currency)
    return payout


def process_payout(payout: Payout) -> Payout:
    """Send a pending payout; without a bank account on file it fails."""
    if payout.status == Payout.Status.PROCESSED:
        raise PayoutError("This payout has already been processed.")
    if not payout.destination_account:
        account = PayoutAccount.objects.filter(owner_id=payout.owner_id).first()
        payout.destination_account = account.account_number if account else ""

    if not payout.destination_account:
        payout.status = Payout.Status.FAILED
        payout.failure_reason = "No payout account on file."
        payout.save(update_fields=["status", "failure_reason", "destination_account"])
        logger.warning("Payout %s failed: owner %s has no payout account", payout.pk, payout.owner_id)
        return payout

    payout.reference = provider.payout(payout)
    payout.status = Payout.Status.PROCESSED
    payout.failure_reason = ""
    payout.processed_at = timezone.now()
    payout.save(update_fields=["status", "reference", "failure_reason", "processed_at", "destination_account"])
    logger.info("Payout %s processed to %s", payout.pk, payout.masked_destination)
    return payout


def schedule_owner_payouts() -> dict[str, Any]:
    """Create and send payouts for completed, paid bookings that have none yet."""
    created = processed = failed = 0
    payout_ids: list[int] = []
    bookings = Booking.objects.filter(
        status=Booking.Status.COMPLETED,
        payment_status=Booking.PaymentStatus.PAID,
        payout__isnull=True,
    ).select_related("venue__owner")
    for booking in bookings:
        payout = create_payout(booking)
        created += 1
        process_payout(payout)
        payout_ids.append(payout.pk)
        if payout.status == Payout.Status.PROCESSED:
            processed += 1
        else:
            failed += 1

    # Retry payouts that failed earlier, e.g. before the owner added an account
    for payout in Payout.objects.filter(status=Payout.Status.FAILED, owner__payout_account__isnull=False):
        process_payout(payout)
        if payout.status == Payout.Status.PROCESSED:
            processed += 1
            payout_ids.append(payout.pk)

    return {"created": created, "processed": processed, "failed": failed, "payout_ids": payout_ids}


# ============================================================================
# SUMMARY
# ============================================================================

def _total(pairs, currency: str) -> Money:
    total = Money(ZERO, currency)
    for amount, source_currency in pairs:
        if amount:
            total = total + Money(convert_currency(amount, source_currency, currency), currency)
    return total.quantize()


def owner_summary(owner, currency: Optional[str] = None) -> dict[str, Any]:
    """Earnings of a venue owner converted to one currency."""
    currency = currency or getattr(owner, "preferred_currency", "") or settings.DEFAULT_CURRENCY
    bookings = Booking.objects.filter(venue__owner=owner)

    def grouped(qs, field: str):
        return [(row["total"], row["currency"]) for row in qs.values("currency").annotate(total=Sum(field))]

    earned = bookings.filter(
        status=Booking.Status.COMPLETED,
        payment_status=Booking.PaymentStatus.PAID,
    )
    upcoming = bookings.filter(
        status__in=[Booking.Status.CONFIRMED, Booking.Status.CANCELLATION_REQUESTED],
        payment_status=Booking.PaymentStatus.PAID,
    )
    payouts = Payout.objects.filter(owner=owner)

    return {
        "currency": currency,
        "earnings": _total(grouped(earned, "venue_owner_payout"), currency).amount,
        "upcoming": _total(grouped(upcoming, "venue_owner_payout"), currency).amount,
        "paid_out": _total(grouped(payouts.filter(status=Payout.Status.PROCESSED), "amount"), currency).amount,
        "pending_payout": _total(
            grouped(payouts.exclude(status=Payout.Status.PROCESSED), "amount"), currency
        ).amount,
        "completed_bookings": earned.count(),
    }
