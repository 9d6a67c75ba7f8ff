"""Serializers for reviews.

The reviewing guest and the venue are inferred from the booking; only
completed bookings of the requesting guest can be reviewed, once.
"""

from __future__ import annotations

from rest_framework import serializers  # type: ignore

from apps.bookings.models import Booking

from .models import MIN_COMMENT_LENGTH, Review


class ReviewCreateSerializer(serializers.ModelSerializer):
    """Serializer for creating a new review."""

    class Meta:
        model = Review
        fields = ["booking", "rating", "comment"]

    def validate_rating(self, value: int) -> int:  # type: ignore
        if value < 1 or value > 5:
            raise serializers.ValidationError("Rating must be between 1 and 5.")
        return value

    def validate_comment(self, value: str) -> str:  # type: ignore
        value = value.strip()
        if len(value) < MIN_COMMENT_LENGTH:
            raise serializers.ValidationError(
                f"Please write at least {MIN_COMMENT_LENGTH} characters."
            )
        return value

    def validate_booking(self, booking: Booking) -> Booking:  # type: ignore
        user = self.context["request"].user
        if booking.guest_id != user.id:
            raise serializers.ValidationError("You can only review your own bookings.")
        if booking.status != Booking.Status.COMPLETED:
            raise serializers.ValidationError("Reviews can only be left after the event.")
        if Review.objects.filter(booking=booking).exists():
            raise serializers.ValidationError("This booking has already been reviewed.")
        return booking

    def create(self, validated_data):  # type: ignore
        booking = validated_data["booking"]
        return Review.objects.create(guest=booking.guest, venue=booking.venue, **validated_data)


class ReviewSerializer(serializers.ModelSerializer):
    """Read serializer for reviews including related ids."""

    guest_id = serializers.ReadOnlyField(source="guest.id")
    guest_name = serializers.ReadOnlyField(source="guest.display_name")
    venue_id = serializers.ReadOnlyField(source="venue.id")
    venue_title = serializers.ReadOnlyField(source="venue.title")
    booking_code = serializers.ReadOnlyField(source="booking.booking_code")

    class Meta:
        model = Review
        fields = [
            "id",
            "guest_id",
            "guest_name",
            "venue_id",
            "venue_title",
            "booking_code",
            "rating",
            "comment",
            "owner_response",
            "owner_response_at",
            "created_at",
            "updated_at",
        ]
        read_only_fields = fields


class OwnerResponseSerializer(serializers.Serializer):
    owner_response = serializers.CharField(max_length=2000)
