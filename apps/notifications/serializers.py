"""Serializers for notifications."""

from __future__ import annotations

from rest_framework import serializers  # type: ignore

from .models import Notification


class NotificationSerializer(serializers.ModelSerializer):
    """Serializer for notifications."""

    class Meta:
        model = Notification
        fields = ['id', 'type', 'title', 'message', 'link', 'is_read', 'read_at', 'created_at']
        read_only_fields = ['type', 'title', 'message', 'link', 'read_at', 'created_at']


class AnnouncementSerializer(serializers.Serializer):
    """Payload of a platform-wide announcement."""

    title = serializers.CharField(max_length=255)
    message = serializers.CharField()
    roles = serializers.ListField(child=serializers.CharField(), required=False, allow_empty=True)

    def validate_roles(self, value):  # type: ignore
        from apps.users.models import CustomUser

        allowed = set(CustomUser.RoleChoices.values)
        unknown = [role for role in value if role not in allowed]
        if unknown:
            raise serializers.ValidationError(f"Unknown roles: {', '.join(unknown)}")
        return value
