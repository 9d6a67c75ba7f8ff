"""API views for notifications."""

from __future__ import annotations

from django.utils import timezone  # type: ignore
from rest_framework import mixins, permissions, status, viewsets  # type: ignore
from rest_framework.decorators import action  # type: ignore
from rest_framework.response import Response  # type: ignore

from apps.users.permissions import IsPlatformAdmin

from .models import Notification
from .serializers import AnnouncementSerializer, NotificationSerializer
from .tasks import send_announcement


class NotificationViewSet(
    mixins.ListModelMixin,
    mixins.RetrieveModelMixin,
    mixins.DestroyModelMixin,
    viewsets.GenericViewSet,
):
    """Notification centre of the authenticated user."""

    serializer_class = NotificationSerializer
    permission_classes = [permissions.IsAuthenticated]
    filterset_fields = ['is_read', 'type']

    def get_queryset(self):  # type: ignore
        return Notification.objects.filter(user=self.request.user)

    @action(detail=True, methods=['post'])
    def mark_read(self, request, pk=None):  # type: ignore
        notification = self.get_object()
        if not notification.is_read:
            notification.is_read = True
            notification.read_at = timezone.now()
            notification.save(update_fields=['is_read', 'read_at'])
        return Response(self.get_serializer(notification).data, status=status.HTTP_200_OK)

    @action(detail=False, methods=['post'])
    def mark_all_read(self, request):  # type: ignore
        updated = self.get_queryset().filter(is_read=False).update(is_read=True, read_at=timezone.now())
        return Response({'updated': updated}, status=status.HTTP_200_OK)

    @action(detail=False, methods=['get'])
    def unread_count(self, request):  # type: ignore
        return Response({'unread': self.get_queryset().filter(is_read=False).count()})

    @action(detail=False, methods=['post'], permission_classes=[IsPlatformAdmin])
    def announce(self, request):  # type: ignore
        serializer = AnnouncementSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        send_announcement.delay(
            serializer.validated_data["title"],
            serializer.validated_data["message"],
            serializer.validated_data.get("roles") or None,
        )
        return Response({"status": "queued"}, status=status.HTTP_202_ACCEPTED)
