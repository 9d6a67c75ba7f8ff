"""Serializers for the favorites domain."""

from __future__ import annotations

from rest_framework import serializers  # type: ignore

from apps.venues.models import Venue

from .models import Favorite


class VenueShortSerializer(serializers.ModelSerializer):
    """Short venue card for the favorites list."""

    main_photo_url = serializers.SerializerMethodField()

    class Meta:
        model = Venue
        fields = [
            "id",
            "title",
            "slug",
            "city",
            "category",
            "capacity",
            "price_per_hour",
            "currency",
            "rating",
            "review_count",
            "status",
            "main_photo_url",
        ]

    def get_main_photo_url(self, obj: Venue):  # type: ignore
        photos = list(obj.photos.all())
        photo = next((p for p in photos if p.is_primary), None) or (photos[0] if photos else None)
        image_field = getattr(photo, "image", None) if photo else None
        if not image_field:
            return None
        try:
            return image_field.url
        except ValueError:
            # File exists in DB but missing on storage
            return None


class FavoriteSerializer(serializers.ModelSerializer):
    """Favorites as listed; ``venue_id`` is the writable field."""

    venue_id = serializers.PrimaryKeyRelatedField(
        source="venue",
        queryset=Venue.objects.filter(status=Venue.Status.ACTIVE),
        write_only=True,
    )
    venue = VenueShortSerializer(read_only=True)

    class Meta:
        model = Favorite
        fields = ["id", "venue_id", "venue", "created_at"]
        read_only_fields = ["created_at"]

    def validate_venue_id(self, venue: Venue) -> Venue:  # type: ignore
        user = self.context["request"].user
        if Favorite.objects.filter(user=user, venue=venue).exists():
            raise serializers.ValidationError("This venue is already in your favorites.")
        return venue


class FavoriteToggleSerializer(serializers.Serializer):
    venue_id = serializers.IntegerField()

    def validate_venue_id(self, value: int) -> int:  # type: ignore
        if not Venue.objects.filter(id=value, status=Venue.Status.ACTIVE).exists():
            raise serializers.ValidationError("Venue not found or not active.")
        return value
