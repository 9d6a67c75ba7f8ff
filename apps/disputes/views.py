"""API views for disputes and venue reports.

Participants see the disputes they opened or that were opened against
them; admins see everything and are the only ones who move statuses.
"""

from __future__ import annotations

import logging

from django.db.models import Q  # type: ignore
from rest_framework import mixins, permissions, status, viewsets  # type: ignore
from rest_framework.decorators import action  # type: ignore
from rest_framework.response import Response  # type: ignore

from apps.users.permissions import IsPlatformAdmin, is_platform_admin

from . import services
from .exceptions import DisputeError
from .models import Dispute, VenueReport
from .serializers import (
    DisputeSerializer,
    DisputeStatusSerializer,
    VenueReportSerializer,
    VenueReportStatusSerializer,
)

logger = logging.getLogger(__name__)


def _error(exc: Exception) -> Response:
    return Response({"non_field_errors": [str(exc)]}, status=status.HTTP_400_BAD_REQUEST)


class DisputeViewSet(
    mixins.CreateModelMixin,
    mixins.ListModelMixin,
    mixins.RetrieveModelMixin,
    viewsets.GenericViewSet,
):
    queryset = Dispute.objects.select_related("booking", "venue", "reporter", "defendant")
    serializer_class = DisputeSerializer
    permission_classes = [permissions.IsAuthenticated]
    filterset_fields = ["status", "reason", "booking"]

    def get_queryset(self):  # type: ignore
        user = self.request.user
        qs = super().get_queryset()
        if is_platform_admin(user):
            return qs
        return qs.filter(Q(reporter=user) | Q(defendant=user))

    def create(self, request, *args, **kwargs):  # type: ignore
        serializer = self.get_serializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data
        try:
            dispute = services.open_dispute(
                data["booking"],
                request.user,
                reason=data["reason"],
                description=data["description"],
                desired_outcome=data["desired_outcome"],
            )
        except DisputeError as exc:
            return _error(exc)
        return Response(self.get_serializer(dispute).data, status=status.HTTP_201_CREATED)

    @action(detail=True, methods=["post"], url_path="status", permission_classes=[IsPlatformAdmin])
    def set_status(self, request, pk=None):  # type: ignore
        dispute = self.get_object()
        serializer = DisputeStatusSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        try:
            services.update_dispute_status(
                dispute,
                request.user,
                serializer.validated_data["status"],
                serializer.validated_data.get("resolution_notes", ""),
            )
        except DisputeError as exc:
            return _error(exc)
        return Response(self.get_serializer(dispute).data)


class VenueReportViewSet(
    mixins.CreateModelMixin,
    mixins.ListModelMixin,
    mixins.RetrieveModelMixin,
    viewsets.GenericViewSet,
):
    """Any signed-in user may report a venue; admins work through the queue."""

    queryset = VenueReport.objects.select_related("venue", "reporter")
    serializer_class = VenueReportSerializer
    permission_classes = [permissions.IsAuthenticated]
    filterset_fields = ["status", "report_type", "venue"]

    def get_queryset(self):  # type: ignore
        user = self.request.user
        qs = super().get_queryset()
        if is_platform_admin(user):
            return qs
        return qs.filter(reporter=user)

    def create(self, request, *args, **kwargs):  # type: ignore
        serializer = self.get_serializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data
        try:
            report = services.report_venue(
                data["venue"],
                request.user,
                report_type=data["report_type"],
                description=data["description"],
            )
        except DisputeError as exc:
            return _error(exc)
        return Response(self.get_serializer(report).data, status=status.HTTP_201_CREATED)

    @action(detail=True, methods=["post"], url_path="status", permission_classes=[IsPlatformAdmin])
    def set_status(self, request, pk=None):  # type: ignore
        report = self.get_object()
        serializer = VenueReportStatusSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        services.update_report_status(
            report,
            request.user,
            serializer.validated_data["status"],
            serializer.validated_data.get("admin_notes", ""),
        )
        return Response(self.get_serializer(report).data)
