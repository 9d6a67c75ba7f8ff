"""Venue API views."""

from __future__ import annotations

import logging
from datetime import datetime, time, timedelta

from django.db.models import Q  # type: ignore
from django.shortcuts import get_object_or_404  # type: ignore
from django.utils import timezone  # type: ignore
from django_filters.rest_framework import DjangoFilterBackend  # type: ignore
from rest_framework import permissions, status, viewsets  # type: ignore
from rest_framework.decorators import action  # type: ignore
from rest_framework.exceptions import PermissionDenied  # type: ignore
from rest_framework.filters import OrderingFilter  # type: ignore
from rest_framework.parsers import FormParser, JSONParser, MultiPartParser  # type: ignore
from rest_framework.response import Response  # type: ignore

from apps.bookings.services import busy_windows
from apps.notifications import services as notifications
from apps.users.permissions import IsOwnerOrAdmin, IsPlatformAdmin, IsVenueOwnerOrReadOnly, is_platform_admin

from .filters import VenueFilterSet
from .models import DiscountCode, Market, Venue, VenueAvailability, VenuePricing
from .serializers import (
    BusyWindowSerializer,
    CalendarQuerySerializer,
    DiscountCodeSerializer,
    MarketSerializer,
    VenueAvailabilitySerializer,
    VenuePhotoSerializer,
    VenuePricingSerializer,
    VenueRejectSerializer,
    VenueSerializer,
    VenueWriteSerializer,
)

logger = logging.getLogger(__name__)


class MarketViewSet(viewsets.ModelViewSet):
    """Region tree; public to read, managed by platform admins."""

    queryset = Market.objects.filter(is_active=True)
    serializer_class = MarketSerializer
    filterset_fields = ["parent", "country_code"]
    pagination_class = None

    def get_permissions(self):  # type: ignore
        if self.action in {"list", "retrieve"}:
            return [permissions.AllowAny()]
        return [IsPlatformAdmin()]


class VenueViewSet(viewsets.ModelViewSet):
    """Venue listings: public browse, owner management, admin moderation."""

    queryset = Venue.objects.select_related("owner", "market").prefetch_related("photos")
    permission_classes = [IsVenueOwnerOrReadOnly, IsOwnerOrAdmin]
    filter_backends = [DjangoFilterBackend, OrderingFilter]
    filterset_class = VenueFilterSet
    ordering_fields = ["price_per_hour", "rating", "capacity", "created_at", "is_featured"]
    parser_classes = [JSONParser, MultiPartParser, FormParser]

    def get_permissions(self):  # type: ignore
        if self.action in {"list", "retrieve", "calendar"}:
            return [permissions.AllowAny()]
        if self.action in {"approve", "reject"}:
            return [IsPlatformAdmin()]
        return super().get_permissions()

    def get_queryset(self):  # type: ignore
        qs = super().get_queryset()
        user = self.request.user
        if self.request.query_params.get("mine") in {"1", "true"} and user.is_authenticated:
            return qs.filter(owner=user)
        if is_platform_admin(user):
            return qs
        if user.is_authenticated and user.is_venue_owner():
            return qs.filter(Q(status=Venue.Status.ACTIVE) | Q(owner=user))
        return qs.filter(status=Venue.Status.ACTIVE)

    def get_serializer_class(self):  # type: ignore
        if self.action in {"create", "update", "partial_update"}:
            return VenueWriteSerializer
        return VenueSerializer

    def create(self, request, *args, **kwargs):  # type: ignore
        serializer = self.get_serializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        venue = serializer.save(owner=request.user)
        logger.info("Venue %s created by owner %s", venue.pk, request.user.pk)
        data = VenueSerializer(venue, context=self.get_serializer_context()).data
        return Response(data, status=status.HTTP_201_CREATED)

    def update(self, request, *args, **kwargs):  # type: ignore
        partial = kwargs.pop("partial", False)
        instance = self.get_object()
        serializer = self.get_serializer(instance, data=request.data, partial=partial)
        serializer.is_valid(raise_exception=True)
        venue = serializer.save()
        return Response(VenueSerializer(venue, context=self.get_serializer_context()).data)

    @action(detail=True, methods=["post"])
    def submit(self, request, pk=None):  # type: ignore
        """Send a draft (or rejected) venue to moderation."""
        venue = self.get_object()
        if venue.status not in {Venue.Status.DRAFT, Venue.Status.REJECTED, Venue.Status.INACTIVE}:
            return Response(
                {"detail": "Only draft, rejected or inactive venues can be submitted."},
                status=status.HTTP_400_BAD_REQUEST,
            )
        venue.submit_for_review()
        logger.info("Venue %s submitted for review", venue.pk)
        return Response(VenueSerializer(venue, context=self.get_serializer_context()).data)

    @action(detail=True, methods=["post"])
    def approve(self, request, pk=None):  # type: ignore
        venue = get_object_or_404(Venue, pk=pk)
        if venue.status != Venue.Status.PENDING:
            return Response(
                {"detail": "Only venues pending review can be approved."},
                status=status.HTTP_400_BAD_REQUEST,
            )
        venue.approve()
        logger.info("Venue %s approved by admin %s", venue.pk, request.user.pk)
        notifications.notify_venue_approved(venue)
        return Response(VenueSerializer(venue, context=self.get_serializer_context()).data)

    @action(detail=True, methods=["post"])
    def reject(self, request, pk=None):  # type: ignore
        venue = get_object_or_404(Venue, pk=pk)
        serializer = VenueRejectSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        if venue.status != Venue.Status.PENDING:
            return Response(
                {"detail": "Only venues pending review can be rejected."},
                status=status.HTTP_400_BAD_REQUEST,
            )
        venue.reject(serializer.validated_data["reason"])
        logger.info("Venue %s rejected by admin %s", venue.pk, request.user.pk)
        notifications.notify_venue_rejected(venue)
        return Response(VenueSerializer(venue, context=self.get_serializer_context()).data)

    @action(detail=True, methods=["post"])
    def photos(self, request, pk=None):  # type: ignore
        """Attach a photo; the image is validated by Pillow through ImageField."""
        venue = self.get_object()
        serializer = VenuePhotoSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        serializer.save(venue=venue)
        return Response(serializer.data, status=status.HTTP_201_CREATED)

    @action(detail=True, methods=["get"])
    def calendar(self, request, pk=None):  # type: ignore
        """Busy windows (bookings and owner blocks) between ``start`` and ``end`` dates."""
        venue = self.get_object()
        query = CalendarQuerySerializer(data=request.query_params)
        query.is_valid(raise_exception=True)
        tz = timezone.get_current_timezone()
        window_start = datetime.combine(query.validated_data["start"], time.min, tzinfo=tz)
        window_end = datetime.combine(query.validated_data["end"], time.min, tzinfo=tz) + timedelta(days=1)
        windows = busy_windows(venue, window_start, window_end)
        return Response(
            {
                "venue_id": venue.id,
                "start": query.validated_data["start"],
                "end": query.validated_data["end"],
                "busy": BusyWindowSerializer(windows, many=True).data,
            }
        )


class VenueScopedMixin:
    """Nested resources of one venue, managed by its owner or an admin."""

    venue_lookup_url_kwarg = "venue_id"
    permission_classes = [permissions.IsAuthenticated]
    pagination_class = None

    def initial(self, request, *args, **kwargs):  # type: ignore
        super().initial(request, *args, **kwargs)
        self.venue_object = get_object_or_404(Venue, pk=kwargs.get(self.venue_lookup_url_kwarg))
        if self.venue_object.owner_id != request.user.id and not is_platform_admin(request.user):
            raise PermissionDenied("You do not manage this venue.")

    def get_venue(self) -> Venue:
        return self.venue_object


class VenueAvailabilityViewSet(VenueScopedMixin, viewsets.ModelViewSet):
    """Owner blocks on the venue calendar."""

    serializer_class = VenueAvailabilitySerializer
    queryset = VenueAvailability.objects.all()

    def get_queryset(self):  # type: ignore
        qs = super().get_queryset().filter(venue=self.get_venue())
        start = self.request.query_params.get("start")
        end = self.request.query_params.get("end")
        if start:
            qs = qs.filter(blocked_date__gte=start)
        if end:
            qs = qs.filter(blocked_date__lte=end)
        return qs

    def perform_create(self, serializer):  # type: ignore
        block = serializer.save(venue=self.get_venue(), created_by=self.request.user)
        logger.info("Venue %s blocked on %s", block.venue_id, block.blocked_date)


class VenuePricingViewSet(VenueScopedMixin, viewsets.ModelViewSet):
    """Dynamic pricing rules of a venue."""

    serializer_class = VenuePricingSerializer
    queryset = VenuePricing.objects.all()

    def get_queryset(self):  # type: ignore
        return super().get_queryset().filter(venue=self.get_venue())

    def perform_create(self, serializer):  # type: ignore
        serializer.save(venue=self.get_venue())


class DiscountCodeViewSet(viewsets.ModelViewSet):
    """Discount codes of the current owner (all codes for admins)."""

    serializer_class = DiscountCodeSerializer
    queryset = DiscountCode.objects.select_related("venue")
    permission_classes = [permissions.IsAuthenticated]
    filterset_fields = ["venue", "is_active", "discount_type"]

    def get_queryset(self):  # type: ignore
        qs = super().get_queryset()
        if is_platform_admin(self.request.user):
            return qs
        return qs.filter(owner=self.request.user)

    def perform_create(self, serializer):  # type: ignore
        user = self.request.user
        if not (user.is_venue_owner() or user.is_platform_admin()):
            raise PermissionDenied("Only venue owners can create discount codes.")
        code = serializer.save(owner=user)
        logger.info("Discount code %s created by %s", code.code, user.pk)
