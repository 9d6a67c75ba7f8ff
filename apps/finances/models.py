"""Financial domain models for Party2Go."""

from __future__ import annotations

from decimal import Decimal

from django.conf import settings  # type: ignore
from django.db import models  # type: ignore
from django.utils import timezone  # type: ignore
from django.utils.translation import gettext_lazy as _  # type: ignore

from shared.infrastructure.encryption import mask_account
from shared.infrastructure.fields import EncryptedCharField


class Payment(models.Model):
    """Payment taken for a booking."""

    class Status(models.TextChoices):
        PENDING = "pending", _("Pending")
        SUCCEEDED = "succeeded", _("Succeeded")
        FAILED = "failed", _("Failed")
        REFUNDED = "refunded", _("Refunded")
        PARTIALLY_REFUNDED = "partially_refunded", _("Partially refunded")

    class Method(models.TextChoices):
        CARD = "card", _("Card")
        BANK_TRANSFER = "bank_transfer", _("Bank transfer")
        SIMULATED = "simulated", _("Simulated")

    booking = models.ForeignKey(
        "bookings.Booking",
        on_delete=models.CASCADE,
        related_name="payments",
    )
    payer = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        related_name="payments",
    )
    status = models.CharField(max_length=20, choices=Status.choices, default=Status.PENDING)
    method = models.CharField(max_length=20, choices=Method.choices, default=Method.SIMULATED)
    amount = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal("0.00"))
    refunded_amount = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal("0.00"))
    currency = models.CharField(max_length=3, default="USD")
    transaction_id = models.CharField(max_length=100, blank=True)
    provider = models.CharField(max_length=50, blank=True, help_text=_("Payment provider name"))
    metadata = models.JSONField(default=dict, blank=True)
    paid_at = models.DateTimeField(null=True, blank=True)
    refunded_at = models.DateTimeField(null=True, blank=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        verbose_name = _("Payment")
        verbose_name_plural = _("Payments")
        ordering = ["-created_at"]

    def __str__(self) -> str:
        return f"Payment {self.pk} for booking {self.booking_id} ({self.status})"

    @property
    def refundable_amount(self) -> Decimal:
        return self.amount - self.refunded_amount

    def mark_success(self, transaction_id: str | None = None) -> None:
        self.status = self.Status.SUCCEEDED
        if transaction_id:
            self.transaction_id = transaction_id
        self.paid_at = timezone.now()
        self.save(update_fields=["status", "transaction_id", "paid_at", "updated_at"])

    def mark_failed(self, reason: str | None = None) -> None:
        self.status = self.Status.FAILED
        if reason:
            self.metadata["failure_reason"] = reason
        self.save(update_fields=["status", "metadata", "updated_at"])

    def mark_refunded(self, amount: Decimal) -> None:
        self.refunded_amount += amount
        self.status = (
            self.Status.REFUNDED if self.refunded_amount >= self.amount else self.Status.PARTIALLY_REFUNDED
        )
        self.refunded_at = timezone.now()
        self.save(update_fields=["status", "refunded_amount", "refunded_at", "updated_at"])


class PaymentTransaction(models.Model):
    """Log of calls to the payment provider (charges and refunds)."""

    payment = models.ForeignKey(
        Payment,
        on_delete=models.CASCADE,
        related_name="transactions",
    )
    event = models.CharField(max_length=50)
    payload = models.JSONField()
    status = models.CharField(max_length=20, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        verbose_name = _("Payment transaction")
        verbose_name_plural = _("Payment transactions")
        ordering = ["-created_at"]

    def __str__(self) -> str:
        return f"{self.event} for payment {self.payment_id}"


class RefundRequest(models.Model):
    """Guest request to cancel a paid booking, priced by the cancellation policy."""

    class Status(models.TextChoices):
        PENDING = "pending", _("Pending review")
        APPROVED = "approved", _("Approved")
        REJECTED = "rejected", _("Rejected")
        PROCESSED = "processed", _("Refund processed")

    booking = models.ForeignKey(
        "bookings.Booking",
        on_delete=models.CASCADE,
        related_name="refund_requests",
    )
    requested_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="refund_requests",
    )
    reason = models.TextField(blank=True)
    days_before_event = models.DecimalField(max_digits=8, decimal_places=2, default=Decimal("0.00"))
    refund_percentage = models.PositiveSmallIntegerField(default=0)
    refund_amount = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal("0.00"))
    status = models.CharField(max_length=20, choices=Status.choices, default=Status.PENDING)
    reviewed_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="reviewed_refunds",
    )
    admin_notes = models.TextField(blank=True)
    reviewed_at = models.DateTimeField(null=True, blank=True)
    processed_at = models.DateTimeField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        verbose_name = _("Refund request")
        verbose_name_plural = _("Refund requests")
        ordering = ["-created_at"]

    def __str__(self) -> str:
        return f"Refund {self.refund_percentage}% for booking {self.booking_id} ({self.status})"


class PayoutAccount(models.Model):
    """Bank account an owner is paid to. The account number is stored encrypted."""

    owner = models.OneToOneField(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="payout_account",
    )
    account_holder = models.CharField(max_length=150)
    bank_name = models.CharField(max_length=150, blank=True)
    account_number = EncryptedCharField(max_length=34)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        verbose_name = _("Payout account")
        verbose_name_plural = _("Payout accounts")

    def __str__(self) -> str:
        return f"{self.account_holder} {self.masked_number}"

    @property
    def masked_number(self) -> str:
        return mask_account(self.account_number)


class Payout(models.Model):
    """Transfer of the owner share of a completed booking."""

    class Status(models.TextChoices):
        PENDING = "pending", _("Pending")
        PROCESSED = "processed", _("Processed")
        FAILED = "failed", _("Failed")

    owner = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="payouts",
    )
    booking = models.OneToOneField(
        "bookings.Booking",
        on_delete=models.PROTECT,
        related_name="payout",
    )
    amount = models.DecimalField(max_digits=12, decimal_places=2)
    currency = models.CharField(max_length=3, default="USD")
    destination_account = EncryptedCharField(max_length=34, blank=True)
    status = models.CharField(max_length=20, choices=Status.choices, default=Status.PENDING)
    reference = models.CharField(max_length=64, blank=True)
    failure_reason = models.TextField(blank=True)
    processed_at = models.DateTimeField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        verbose_name = _("Payout")
        verbose_name_plural = _("Payouts")
        ordering = ["-created_at"]

    def __str__(self) -> str:
        return f"Payout {self.amount} {self.currency} to {self.owner_id} ({self.status})"

    @property
    def masked_destination(self) -> str:
        return mask_account(self.destination_account) if self.destination_account else ""
