"""Serializers for the venues domain."""

from __future__ import annotations

from datetime import timedelta
from decimal import Decimal

from rest_framework import serializers  # type: ignore

from apps.users.serializers import UserShortSerializer
from shared.domain.currency import convert_currency, format_currency
from shared.domain.value_objects import to_cents

from .models import DiscountCode, Market, Venue, VenueAvailability, VenuePhoto, VenuePricing

MAX_CALENDAR_DAYS = 92


class MarketSerializer(serializers.ModelSerializer):
    level = serializers.IntegerField(read_only=True)

    class Meta:
        model = Market
        fields = ["id", "name", "slug", "parent", "country_code", "currency", "is_active", "level"]


class VenuePhotoSerializer(serializers.ModelSerializer):
    class Meta:
        model = VenuePhoto
        fields = ["id", "image", "caption", "order", "is_primary", "uploaded_at"]
        read_only_fields = ["uploaded_at"]


class VenueSerializer(serializers.ModelSerializer):
    owner = UserShortSerializer(read_only=True)
    market_name = serializers.CharField(source="market.name", read_only=True, default=None)
    photos = VenuePhotoSerializer(many=True, read_only=True)
    display_price = serializers.SerializerMethodField()

    class Meta:
        model = Venue
        fields = [
            "id",
            "owner",
            "title",
            "slug",
            "description",
            "category",
            "market",
            "market_name",
            "city",
            "address",
            "latitude",
            "longitude",
            "capacity",
            "price_per_hour",
            "currency",
            "display_price",
            "amenities",
            "status",
            "rejection_reason",
            "rating",
            "review_count",
            "is_featured",
            "photos",
            "published_at",
            "created_at",
            "updated_at",
        ]
        read_only_fields = fields

    def get_display_price(self, obj: Venue) -> str:
        """Hourly price in the viewer's preferred currency and language."""
        request = self.context.get("request")
        user = getattr(request, "user", None)
        currency = obj.currency
        language = "en"
        if user is not None and user.is_authenticated:
            currency = user.preferred_currency or obj.currency
            language = user.preferred_language or "en"
        amount = convert_currency(obj.price_per_hour, obj.currency, currency)
        return format_currency(to_cents(amount), currency, language)


class VenueWriteSerializer(serializers.ModelSerializer):
    class Meta:
        model = Venue
        fields = [
            "title",
            "description",
            "category",
            "market",
            "city",
            "address",
            "latitude",
            "longitude",
            "capacity",
            "price_per_hour",
            "currency",
            "amenities",
        ]
        extra_kwargs = {"city": {"required": False, "allow_blank": True}}

    def validate_amenities(self, value):  # type: ignore
        if not isinstance(value, list) or not all(isinstance(item, str) for item in value):
            raise serializers.ValidationError("Amenities must be a list of strings.")
        return value

    def validate(self, attrs):  # type: ignore
        market = attrs.get("market")
        if not attrs.get("city") and not getattr(self.instance, "city", ""):
            if market is None:
                raise serializers.ValidationError({"city": "City or market is required."})
            attrs["city"] = market.name
        return attrs


class VenueRejectSerializer(serializers.Serializer):
    reason = serializers.CharField(min_length=5, max_length=2000)


class VenueAvailabilitySerializer(serializers.ModelSerializer):
    is_full_day = serializers.BooleanField(read_only=True)
    created_by = serializers.ReadOnlyField(source="created_by_id")

    class Meta:
        model = VenueAvailability
        fields = [
            "id",
            "blocked_date",
            "start_time",
            "end_time",
            "is_full_day",
            "reason",
            "created_by",
            "created_at",
        ]
        read_only_fields = ["created_by", "created_at"]

    def validate(self, attrs):  # type: ignore
        start = attrs.get("start_time", getattr(self.instance, "start_time", None))
        end = attrs.get("end_time", getattr(self.instance, "end_time", None))
        if (start is None) != (end is None):
            raise serializers.ValidationError(
                "Provide both start_time and end_time, or neither for a full-day block."
            )
        if start is not None and start == end:
            raise serializers.ValidationError("start_time and end_time must differ.")
        return attrs


class VenuePricingSerializer(serializers.ModelSerializer):
    class Meta:
        model = VenuePricing
        fields = [
            "id",
            "name",
            "days_of_week",
            "start_date",
            "end_date",
            "modifier_type",
            "modifier_value",
            "priority",
            "is_active",
            "created_at",
        ]
        read_only_fields = ["created_at"]

    def validate_days_of_week(self, value):  # type: ignore
        if not isinstance(value, list):
            raise serializers.ValidationError("Expected a list of weekday numbers.")
        if any(not isinstance(day, int) or day < 0 or day > 6 for day in value):
            raise serializers.ValidationError("Weekdays are numbered 0 (Monday) to 6 (Sunday).")
        return sorted(set(value))

    def validate(self, attrs):  # type: ignore
        start = attrs.get("start_date", getattr(self.instance, "start_date", None))
        end = attrs.get("end_date", getattr(self.instance, "end_date", None))
        if start and end and start > end:
            raise serializers.ValidationError("end_date cannot be before start_date.")
        modifier_type = attrs.get("modifier_type", getattr(self.instance, "modifier_type", None))
        value = attrs.get("modifier_value", getattr(self.instance, "modifier_value", None))
        if modifier_type == VenuePricing.ModifierType.PERCENTAGE and value is not None and value < Decimal("-100"):
            raise serializers.ValidationError({"modifier_value": "A rate cannot drop by more than 100%."})
        return attrs


class DiscountCodeSerializer(serializers.ModelSerializer):
    venue_title = serializers.CharField(source="venue.title", read_only=True, default=None)

    class Meta:
        model = DiscountCode
        fields = [
            "id",
            "code",
            "venue",
            "venue_title",
            "discount_type",
            "value",
            "expires_at",
            "max_uses",
            "times_used",
            "is_active",
            "created_at",
        ]
        read_only_fields = ["times_used", "created_at"]

    def validate_code(self, value: str) -> str:
        code = value.strip().upper()
        qs = DiscountCode.objects.filter(code=code)
        if self.instance is not None:
            qs = qs.exclude(pk=self.instance.pk)
        if qs.exists():
            raise serializers.ValidationError("This code already exists.")
        return code

    def validate(self, attrs):  # type: ignore
        user = self.context["request"].user
        venue = attrs.get("venue", getattr(self.instance, "venue", None))
        if venue is None and not user.is_platform_admin():
            raise serializers.ValidationError({"venue": "Choose one of your venues."})
        if venue is not None and venue.owner_id != user.id and not user.is_platform_admin():
            raise serializers.ValidationError({"venue": "You can only create codes for your own venues."})
        kind = attrs.get("discount_type", getattr(self.instance, "discount_type", None))
        value = attrs.get("value", getattr(self.instance, "value", None))
        if kind == DiscountCode.DiscountType.PERCENTAGE and value is not None and value > 100:
            raise serializers.ValidationError({"value": "A percentage discount cannot exceed 100."})
        return attrs


class CalendarQuerySerializer(serializers.Serializer):
    start = serializers.DateField()
    end = serializers.DateField()

    def validate(self, attrs):  # type: ignore
        if attrs["end"] < attrs["start"]:
            raise serializers.ValidationError("end cannot be before start.")
        if attrs["end"] - attrs["start"] > timedelta(days=MAX_CALENDAR_DAYS):
            raise serializers.ValidationError(f"The range is limited to {MAX_CALENDAR_DAYS} days.")
        return attrs


class BusyWindowSerializer(serializers.Serializer):
    start = serializers.DateTimeField()
    end = serializers.DateTimeField()
    kind = serializers.CharField()
