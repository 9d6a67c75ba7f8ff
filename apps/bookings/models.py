"""Booking domain models for Party2Go.

A booking reserves a venue for a time window. The price is computed by
``apps.bookings.domain.pricing`` when the booking is created and stored as
a snapshot, so later changes to the venue rate never alter it.
"""

from __future__ import annotations

import secrets
from decimal import Decimal

from django.conf import settings  # type: ignore
from django.core.validators import MaxValueValidator, MinValueValidator  # type: ignore
from django.db import models  # type: ignore
from django.utils import timezone  # type: ignore
from django.utils.translation import gettext_lazy as _  # type: ignore

from shared.domain.value_objects import TimeWindow

ZERO = Decimal("0.00")


def money_field(**kwargs):
    kwargs.setdefault("default", ZERO)
    return models.DecimalField(max_digits=12, decimal_places=2, **kwargs)


class Booking(models.Model):
    """Reservation of a venue by a guest."""

    class Status(models.TextChoices):
        PENDING_PAYMENT = "pending_payment", _("Awaiting payment")
        CONFIRMED = "confirmed", _("Confirmed")
        CANCELLATION_REQUESTED = "cancellation_requested", _("Cancellation requested")
        CANCELLED = "cancelled", _("Cancelled")
        REJECTED = "rejected", _("Rejected by owner")
        COMPLETED = "completed", _("Completed")
        EXPIRED = "expired", _("Expired (not paid)")

    class PaymentStatus(models.TextChoices):
        UNPAID = "unpaid", _("Unpaid")
        PAID = "paid", _("Paid")
        PARTIALLY_REFUNDED = "partially_refunded", _("Partially refunded")
        REFUNDED = "refunded", _("Refunded")

    class ChangeStatus(models.TextChoices):
        NONE = "none", _("No change requested")
        PENDING = "pending", _("Change pending")
        APPROVED = "approved", _("Change approved")
        DECLINED = "declined", _("Change declined")

    class ChangePaymentStatus(models.TextChoices):
        NOT_REQUIRED = "not_required", _("No extra payment")
        PENDING = "pending", _("Extra due with the booking")
        PAID = "paid", _("Extra paid")

    class CancellationSource(models.TextChoices):
        GUEST = "guest", _("Guest")
        OWNER = "owner", _("Venue owner")
        ADMIN = "admin", _("Admin")
        SYSTEM = "system", _("System")

    # Statuses whose time window is unavailable to other guests
    BLOCKING_STATUSES = (
        Status.PENDING_PAYMENT,
        Status.CONFIRMED,
        Status.CANCELLATION_REQUESTED,
    )

    booking_code = models.CharField(max_length=12, unique=True, editable=False)
    venue = models.ForeignKey("venues.Venue", on_delete=models.PROTECT, related_name="bookings")
    guest = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="bookings",
    )
    event_date = models.DateField()
    start_time = models.TimeField()
    end_time = models.TimeField()
    event_end_date = models.DateField(null=True, blank=True)
    starts_at = models.DateTimeField(db_index=True)
    ends_at = models.DateTimeField(db_index=True)
    guest_count = models.PositiveIntegerField(default=1, validators=[MinValueValidator(1)])
    event_type = models.CharField(max_length=80, blank=True)
    contact_name = models.CharField(max_length=150, blank=True)
    contact_email = models.EmailField(blank=True)
    contact_phone = models.CharField(max_length=20, blank=True)
    special_requests = models.TextField(blank=True)

    # Pricing snapshot
    hourly_rate = money_field()
    hours = models.DecimalField(max_digits=7, decimal_places=2, default=ZERO)
    base_amount = money_field()
    discount_code = models.ForeignKey(
        "venues.DiscountCode",
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="bookings",
    )
    discount_amount = money_field()
    platform_fee = money_field()
    total_amount = money_field()
    currency = models.CharField(max_length=3, default="USD")
    venue_owner_payout = money_field()

    status = models.CharField(max_length=32, choices=Status.choices, default=Status.PENDING_PAYMENT)
    payment_status = models.CharField(
        max_length=20,
        choices=PaymentStatus.choices,
        default=PaymentStatus.UNPAID,
    )
    expires_at = models.DateTimeField(
        null=True,
        blank=True,
        help_text=_("End of the payment hold; unpaid bookings expire afterwards."),
    )
    confirmed_at = models.DateTimeField(null=True, blank=True)
    completed_at = models.DateTimeField(null=True, blank=True)
    cancelled_at = models.DateTimeField(null=True, blank=True)
    cancellation_source = models.CharField(max_length=20, choices=CancellationSource.choices, blank=True)
    cancellation_reason = models.TextField(blank=True)
    reminder_sent_at = models.DateTimeField(null=True, blank=True)

    # Change request
    change_status = models.CharField(max_length=20, choices=ChangeStatus.choices, default=ChangeStatus.NONE)
    requested_event_date = models.DateField(null=True, blank=True)
    requested_start_time = models.TimeField(null=True, blank=True)
    requested_end_time = models.TimeField(null=True, blank=True)
    requested_event_end_date = models.DateField(null=True, blank=True)
    change_reason = models.TextField(blank=True)
    change_extra_cost = money_field()
    change_payment_status = models.CharField(
        max_length=20,
        choices=ChangePaymentStatus.choices,
        default=ChangePaymentStatus.NOT_REQUIRED,
    )
    change_response = models.TextField(blank=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        verbose_name = _("Booking")
        verbose_name_plural = _("Bookings")
        ordering = ["-created_at"]
        constraints = [
            models.CheckConstraint(
                condition=models.Q(ends_at__gt=models.F("starts_at")),
                name="booking_window_positive",
            ),
        ]
        indexes = [
            models.Index(fields=["venue", "starts_at", "ends_at"]),
            models.Index(fields=["status", "expires_at"]),
        ]

    def __str__(self) -> str:
        return f"Booking #{self.booking_code} for venue {self.venue_id}"

    def save(self, *args, **kwargs):  # type: ignore
        if self._state.adding and not self.booking_code:
            self.booking_code = self.generate_booking_code()
        super().save(*args, **kwargs)

    @staticmethod
    def generate_booking_code() -> str:
        return secrets.token_hex(4).upper()

    @property
    def window(self) -> TimeWindow:
        return TimeWindow(self.starts_at, self.ends_at)

    @property
    def is_hold_expired(self) -> bool:
        return bool(
            self.status == self.Status.PENDING_PAYMENT
            and self.expires_at
            and self.expires_at <= timezone.now()
        )

    @property
    def owner_id(self) -> int:
        return self.venue.owner_id

    def is_participant(self, user) -> bool:
        return bool(user and user.is_authenticated and user.id in {self.guest_id, self.venue.owner_id})


class GroupBooking(models.Model):
    """A booking whose total is shared between several contributors."""

    class PaymentPlan(models.TextChoices):
        SPLIT_EQUALLY = "split_equally", _("Split equally")
        CUSTOM_AMOUNTS = "custom_amounts", _("Custom amounts")
        INSTALLMENTS = "installments", _("Monthly installments")

    class Status(models.TextChoices):
        ORGANIZING = "organizing", _("Collecting contributions")
        FUNDED = "funded", _("Fully funded")
        FINALIZED = "finalized", _("Booking created")
        CANCELLED = "cancelled", _("Cancelled")

    organizer = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="organized_group_bookings",
    )
    venue = models.ForeignKey("venues.Venue", on_delete=models.PROTECT, related_name="group_bookings")
    title = models.CharField(max_length=200)
    event_date = models.DateField()
    start_time = models.TimeField()
    end_time = models.TimeField()
    event_end_date = models.DateField(null=True, blank=True)
    guest_count = models.PositiveIntegerField(default=1, validators=[MinValueValidator(1)])
    payment_plan = models.CharField(
        max_length=20,
        choices=PaymentPlan.choices,
        default=PaymentPlan.SPLIT_EQUALLY,
    )
    installment_count = models.PositiveSmallIntegerField(
        default=1,
        validators=[MinValueValidator(1), MaxValueValidator(12)],
    )
    # Price snapshot taken when the group is created
    hourly_rate = money_field()
    hours = models.DecimalField(max_digits=7, decimal_places=2, default=ZERO)
    base_amount = money_field()
    platform_fee = money_field()
    total_amount = money_field()
    currency = models.CharField(max_length=3, default="USD")
    status = models.CharField(max_length=20, choices=Status.choices, default=Status.ORGANIZING)
    booking = models.OneToOneField(
        Booking,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="group_booking",
    )
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        verbose_name = _("Group booking")
        verbose_name_plural = _("Group bookings")
        ordering = ["-created_at"]

    def __str__(self) -> str:
        return f"{self.title} ({self.get_status_display()})"

    @property
    def amount_paid(self) -> Decimal:
        return sum(
            (c.amount for c in self.contributions.all() if c.status == GroupContribution.Status.PAID),
            ZERO,
        )


class GroupContribution(models.Model):
    """Share of a group booking owed by one participant."""

    class Status(models.TextChoices):
        PENDING = "pending", _("Pending")
        PAID = "paid", _("Paid")

    group_booking = models.ForeignKey(GroupBooking, on_delete=models.CASCADE, related_name="contributions")
    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="group_contributions",
    )
    name = models.CharField(max_length=150, blank=True)
    email = models.EmailField()
    amount = money_field()
    status = models.CharField(max_length=20, choices=Status.choices, default=Status.PENDING)
    paid_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        verbose_name = _("Group contribution")
        verbose_name_plural = _("Group contributions")
        ordering = ["id"]
        constraints = [
            models.UniqueConstraint(fields=["group_booking", "email"], name="unique_contributor_per_group"),
        ]

    def __str__(self) -> str:
        return f"{self.email}: {self.amount}"


class GroupInstallment(models.Model):
    """Scheduled part payment of a contribution under the installments plan."""

    class Status(models.TextChoices):
        PENDING = "pending", _("Pending")
        PAID = "paid", _("Paid")

    contribution = models.ForeignKey(GroupContribution, on_delete=models.CASCADE, related_name="installments")
    sequence = models.PositiveSmallIntegerField()
    due_date = models.DateField()
    amount = money_field()
    status = models.CharField(max_length=20, choices=Status.choices, default=Status.PENDING)
    paid_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        verbose_name = _("Installment")
        verbose_name_plural = _("Installments")
        ordering = ["contribution", "sequence"]
        constraints = [
            models.UniqueConstraint(fields=["contribution", "sequence"], name="unique_installment_sequence"),
        ]

    def __str__(self) -> str:
        return f"{self.contribution.email} #{self.sequence} due {self.due_date}"
