"""Serializers for the booking domain."""

from __future__ import annotations

from decimal import Decimal

from rest_framework import serializers  # type: ignore

from apps.venues.models import Venue

from .exceptions import BookingError
from .models import Booking, GroupBooking, GroupContribution, GroupInstallment
from .services import create_booking, create_group_booking, quote_booking


class BookingWindowSerializer(serializers.Serializer):
    """Venue plus an event window, shared by quotes, availability checks and bookings."""

    venue = serializers.PrimaryKeyRelatedField(queryset=Venue.objects.all())
    event_date = serializers.DateField()
    start_time = serializers.TimeField()
    end_time = serializers.TimeField()
    end_date = serializers.DateField(required=False, allow_null=True)

    def validate(self, attrs):  # type: ignore
        end_date = attrs.get("end_date")
        if end_date is not None and end_date < attrs["event_date"]:
            raise serializers.ValidationError({"end_date": "The event cannot end before it starts."})
        return attrs


class BookingQuoteSerializer(BookingWindowSerializer):
    discount_code = serializers.CharField(required=False, allow_blank=True)

    def save(self, **kwargs):  # type: ignore
        data = self.validated_data
        try:
            return quote_booking(
                data["venue"],
                data["event_date"],
                data["start_time"],
                data["end_time"],
                end_date=data.get("end_date"),
                discount_code=data.get("discount_code") or None,
            )
        except BookingError as exc:
            raise serializers.ValidationError({"non_field_errors": [str(exc)]})


class BookingCreateSerializer(BookingWindowSerializer):
    """Reservation by a guest; the price is always computed server-side."""

    guest_count = serializers.IntegerField(min_value=1, default=1)
    discount_code = serializers.CharField(required=False, allow_blank=True)
    event_type = serializers.CharField(required=False, allow_blank=True, max_length=80)
    contact_name = serializers.CharField(required=False, allow_blank=True, max_length=150)
    contact_email = serializers.EmailField(required=False, allow_blank=True)
    contact_phone = serializers.CharField(required=False, allow_blank=True, max_length=20)
    special_requests = serializers.CharField(required=False, allow_blank=True)

    def validate(self, attrs):  # type: ignore
        attrs = super().validate(attrs)
        venue = attrs["venue"]
        if venue.status != Venue.Status.ACTIVE:
            raise serializers.ValidationError("This venue is not available for booking.")
        if attrs["guest_count"] > venue.capacity:
            raise serializers.ValidationError({"guest_count": f"This venue holds at most {venue.capacity} guests."})
        return attrs

    def create(self, validated_data):  # type: ignore
        guest = self.context["request"].user
        validated = dict(validated_data)
        details = {
            name: validated.pop(name)
            for name in ("event_type", "contact_name", "contact_email", "contact_phone", "special_requests")
            if name in validated
        }
        details.setdefault("contact_name", guest.display_name)
        details.setdefault("contact_email", guest.email)
        try:
            return create_booking(
                guest=guest,
                venue=validated["venue"],
                event_date=validated["event_date"],
                start_time=validated["start_time"],
                end_time=validated["end_time"],
                end_date=validated.get("end_date"),
                guest_count=validated["guest_count"],
                discount_code=validated.get("discount_code") or None,
                **details,
            )
        except BookingError as exc:
            raise serializers.ValidationError({"non_field_errors": [str(exc)]})


class BookingSerializer(serializers.ModelSerializer):
    """Detailed booking representation."""

    guest_id = serializers.ReadOnlyField(source="guest.id")
    venue_id = serializers.ReadOnlyField(source="venue.id")
    venue_title = serializers.ReadOnlyField(source="venue.title")
    discount_code = serializers.SlugRelatedField(slug_field="code", read_only=True)

    class Meta:
        model = Booking
        fields = [
            "id",
            "booking_code",
            "guest_id",
            "venue_id",
            "venue_title",
            "event_date",
            "start_time",
            "end_time",
            "event_end_date",
            "starts_at",
            "ends_at",
            "guest_count",
            "event_type",
            "contact_name",
            "contact_email",
            "contact_phone",
            "special_requests",
            "hourly_rate",
            "hours",
            "base_amount",
            "discount_code",
            "discount_amount",
            "platform_fee",
            "total_amount",
            "currency",
            "venue_owner_payout",
            "status",
            "payment_status",
            "expires_at",
            "confirmed_at",
            "completed_at",
            "cancelled_at",
            "cancellation_source",
            "cancellation_reason",
            "change_status",
            "requested_event_date",
            "requested_start_time",
            "requested_end_time",
            "requested_event_end_date",
            "change_reason",
            "change_extra_cost",
            "change_payment_status",
            "change_response",
            "created_at",
            "updated_at",
        ]
        read_only_fields = fields


class BookingUpdateSerializer(serializers.ModelSerializer):
    """Guests may only edit contact details; the window goes through change requests."""

    class Meta:
        model = Booking
        fields = ["contact_name", "contact_email", "contact_phone", "special_requests", "event_type"]


class ReasonSerializer(serializers.Serializer):
    reason = serializers.CharField(required=False, allow_blank=True, max_length=2000)


class ChangeRequestSerializer(serializers.Serializer):
    event_date = serializers.DateField()
    start_time = serializers.TimeField()
    end_time = serializers.TimeField()
    end_date = serializers.DateField(required=False, allow_null=True)
    reason = serializers.CharField(required=False, allow_blank=True, max_length=2000)


class ChangeDecisionSerializer(serializers.Serializer):
    response = serializers.CharField(required=False, allow_blank=True, max_length=2000)


# ---------------------------------------------------------------------------
# Group bookings
# ---------------------------------------------------------------------------


class ParticipantSerializer(serializers.Serializer):
    email = serializers.EmailField()
    name = serializers.CharField(required=False, allow_blank=True, max_length=150)
    amount = serializers.DecimalField(max_digits=12, decimal_places=2, required=False, min_value=Decimal("0.01"))


class GroupInstallmentSerializer(serializers.ModelSerializer):
    class Meta:
        model = GroupInstallment
        fields = ["id", "sequence", "due_date", "amount", "status", "paid_at"]
        read_only_fields = fields


class GroupContributionSerializer(serializers.ModelSerializer):
    installments = GroupInstallmentSerializer(many=True, read_only=True)

    class Meta:
        model = GroupContribution
        fields = ["id", "user", "name", "email", "amount", "status", "paid_at", "installments"]
        read_only_fields = fields


class GroupBookingSerializer(serializers.ModelSerializer):
    organizer_id = serializers.ReadOnlyField(source="organizer.id")
    venue_title = serializers.ReadOnlyField(source="venue.title")
    contributions = GroupContributionSerializer(many=True, read_only=True)
    amount_paid = serializers.DecimalField(max_digits=12, decimal_places=2, read_only=True)
    booking_code = serializers.ReadOnlyField(source="booking.booking_code", default=None)

    class Meta:
        model = GroupBooking
        fields = [
            "id",
            "organizer_id",
            "venue",
            "venue_title",
            "title",
            "event_date",
            "start_time",
            "end_time",
            "event_end_date",
            "guest_count",
            "payment_plan",
            "installment_count",
            "total_amount",
            "amount_paid",
            "currency",
            "status",
            "booking",
            "booking_code",
            "contributions",
            "created_at",
        ]
        read_only_fields = fields


class GroupBookingCreateSerializer(BookingWindowSerializer):
    title = serializers.CharField(max_length=200)
    guest_count = serializers.IntegerField(min_value=1, default=1)
    payment_plan = serializers.ChoiceField(
        choices=GroupBooking.PaymentPlan.choices, default=GroupBooking.PaymentPlan.SPLIT_EQUALLY
    )
    installment_count = serializers.IntegerField(min_value=2, max_value=12, required=False)
    participants = ParticipantSerializer(many=True)

    def validate(self, attrs):  # type: ignore
        attrs = super().validate(attrs)
        if attrs["payment_plan"] == GroupBooking.PaymentPlan.CUSTOM_AMOUNTS and any(
            "amount" not in participant for participant in attrs["participants"]
        ):
            raise serializers.ValidationError({"participants": "Every participant needs an amount."})
        return attrs

    def create(self, validated_data):  # type: ignore
        try:
            return create_group_booking(
                organizer=self.context["request"].user,
                venue=validated_data["venue"],
                title=validated_data["title"],
                event_date=validated_data["event_date"],
                start_time=validated_data["start_time"],
                end_time=validated_data["end_time"],
                end_date=validated_data.get("end_date"),
                guest_count=validated_data["guest_count"],
                participants=[dict(p) for p in validated_data["participants"]],
                payment_plan=validated_data["payment_plan"],
                installment_count=validated_data.get("installment_count"),
            )
        except BookingError as exc:
            raise serializers.ValidationError({"non_field_errors": [str(exc)]})


class ContributeSerializer(serializers.Serializer):
    contribution = serializers.IntegerField(required=False)
