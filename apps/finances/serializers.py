"""Serializers for the finance domain."""

from __future__ import annotations

from rest_framework import serializers  # type: ignore

from apps.bookings.models import Booking

from .models import Payment, PaymentTransaction, Payout, PayoutAccount, RefundRequest


class PaymentTransactionSerializer(serializers.ModelSerializer):
    class Meta:
        model = PaymentTransaction
        fields = ["id", "event", "payload", "status", "created_at"]
        read_only_fields = fields


class PaymentSerializer(serializers.ModelSerializer):
    """Payment records; amount and currency always come from the booking."""

    transactions = PaymentTransactionSerializer(many=True, read_only=True)
    booking_code = serializers.ReadOnlyField(source="booking.booking_code")

    class Meta:
        model = Payment
        fields = [
            "id",
            "booking",
            "booking_code",
            "method",
            "status",
            "amount",
            "refunded_amount",
            "currency",
            "transaction_id",
            "provider",
            "paid_at",
            "refunded_at",
            "created_at",
            "transactions",
        ]
        read_only_fields = [
            "status",
            "amount",
            "refunded_amount",
            "currency",
            "transaction_id",
            "provider",
            "paid_at",
            "refunded_at",
            "created_at",
            "transactions",
        ]

    def validate_booking(self, booking: Booking) -> Booking:
        request = self.context["request"]
        if booking.guest_id != request.user.id:
            raise serializers.ValidationError("You can only pay for your own bookings.")
        return booking


class RefundRequestSerializer(serializers.ModelSerializer):
    booking_code = serializers.ReadOnlyField(source="booking.booking_code")
    currency = serializers.ReadOnlyField(source="booking.currency")

    class Meta:
        model = RefundRequest
        fields = [
            "id",
            "booking",
            "booking_code",
            "requested_by",
            "reason",
            "days_before_event",
            "refund_percentage",
            "refund_amount",
            "currency",
            "status",
            "reviewed_by",
            "admin_notes",
            "reviewed_at",
            "processed_at",
            "created_at",
        ]
        read_only_fields = [
            "requested_by",
            "days_before_event",
            "refund_percentage",
            "refund_amount",
            "status",
            "reviewed_by",
            "admin_notes",
            "reviewed_at",
            "processed_at",
            "created_at",
        ]


class RefundDecisionSerializer(serializers.Serializer):
    notes = serializers.CharField(required=False, allow_blank=True, max_length=2000)


class PayoutSerializer(serializers.ModelSerializer):
    booking_code = serializers.ReadOnlyField(source="booking.booking_code")
    destination = serializers.CharField(source="masked_destination", read_only=True)

    class Meta:
        model = Payout
        fields = [
            "id",
            "owner",
            "booking",
            "booking_code",
            "amount",
            "currency",
            "destination",
            "status",
            "reference",
            "failure_reason",
            "processed_at",
            "created_at",
        ]
        read_only_fields = fields


class PayoutAccountSerializer(serializers.ModelSerializer):
    """The account number is write-only; responses show it masked."""

    account_number = serializers.CharField(write_only=True, min_length=6, max_length=34)
    masked_number = serializers.CharField(read_only=True)

    class Meta:
        model = PayoutAccount
        fields = ["account_holder", "bank_name", "account_number", "masked_number", "updated_at"]
        read_only_fields = ["updated_at"]

    def validate_account_number(self, value: str) -> str:
        cleaned = value.replace(" ", "").upper()
        if not cleaned.isalnum():
            raise serializers.ValidationError("Use letters and digits only.")
        return cleaned
