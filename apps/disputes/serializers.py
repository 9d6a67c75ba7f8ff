"""Serializers for disputes and venue reports."""

from __future__ import annotations

from rest_framework import serializers  # type: ignore

from apps.bookings.models import Booking
from apps.users.serializers import UserShortSerializer
from apps.venues.models import Venue

from .models import Dispute, VenueReport


class DisputeSerializer(serializers.ModelSerializer):
    booking = serializers.PrimaryKeyRelatedField(queryset=Booking.objects.select_related("venue__owner"))
    booking_code = serializers.ReadOnlyField(source="booking.booking_code")
    venue_title = serializers.ReadOnlyField(source="venue.title")
    reporter = UserShortSerializer(read_only=True)
    defendant = UserShortSerializer(read_only=True)

    class Meta:
        model = Dispute
        fields = [
            "id",
            "booking",
            "booking_code",
            "venue",
            "venue_title",
            "reporter",
            "defendant",
            "reason",
            "description",
            "desired_outcome",
            "status",
            "resolution_notes",
            "resolved_at",
            "created_at",
            "updated_at",
        ]
        read_only_fields = [
            "venue",
            "status",
            "resolution_notes",
            "resolved_at",
            "created_at",
            "updated_at",
        ]

    def validate_description(self, value: str) -> str:  # type: ignore
        value = value.strip()
        if not value:
            raise serializers.ValidationError("Describe what happened.")
        return value

    def validate_desired_outcome(self, value: str) -> str:  # type: ignore
        value = value.strip()
        if not value:
            raise serializers.ValidationError("Tell us how you would like this resolved.")
        return value


class DisputeStatusSerializer(serializers.Serializer):
    status = serializers.ChoiceField(choices=Dispute.Status.choices)
    resolution_notes = serializers.CharField(required=False, allow_blank=True)


class VenueReportSerializer(serializers.ModelSerializer):
    venue = serializers.PrimaryKeyRelatedField(queryset=Venue.objects.all())
    venue_title = serializers.ReadOnlyField(source="venue.title")
    reporter_email = serializers.ReadOnlyField(source="reporter.email")

    class Meta:
        model = VenueReport
        fields = [
            "id",
            "venue",
            "venue_title",
            "reporter_email",
            "report_type",
            "description",
            "status",
            "admin_notes",
            "reviewed_at",
            "created_at",
        ]
        read_only_fields = ["status", "admin_notes", "reviewed_at", "created_at"]

    def validate_description(self, value: str) -> str:  # type: ignore
        value = value.strip()
        if not value:
            raise serializers.ValidationError("Please describe the problem.")
        return value


class VenueReportStatusSerializer(serializers.Serializer):
    status = serializers.ChoiceField(choices=VenueReport.Status.choices)
    admin_notes = serializers.CharField(required=False, allow_blank=True)
