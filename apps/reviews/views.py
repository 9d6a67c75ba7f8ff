"""API views for managing reviews."""

from __future__ import annotations

import logging

from django.utils import timezone  # type: ignore
from rest_framework import mixins, permissions, status, viewsets  # type: ignore
from rest_framework.decorators import action  # type: ignore
from rest_framework.response import Response  # type: ignore

from apps.users.permissions import is_platform_admin

from .models import Review
from .serializers import OwnerResponseSerializer, ReviewCreateSerializer, ReviewSerializer

logger = logging.getLogger(__name__)


class IsReviewerOrAdmin(permissions.BasePermission):
    """Reviews are public to read; only their author or an admin may delete them."""

    def has_object_permission(self, request, view, obj: Review) -> bool:  # type: ignore
        if request.method in permissions.SAFE_METHODS:
            return True
        user = request.user
        if not user.is_authenticated:
            return False
        return is_platform_admin(user) or obj.guest_id == user.id


class ReviewViewSet(
    mixins.CreateModelMixin,
    mixins.ListModelMixin,
    mixins.RetrieveModelMixin,
    mixins.DestroyModelMixin,
    viewsets.GenericViewSet,
):
    """Viewset for creating, retrieving and deleting reviews."""

    queryset = Review.objects.select_related("venue", "guest", "booking").all()
    permission_classes = [permissions.IsAuthenticatedOrReadOnly, IsReviewerOrAdmin]
    filterset_fields = ["venue", "rating"]

    def get_serializer_class(self):  # type: ignore
        if self.action == "create":
            return ReviewCreateSerializer
        if self.action == "respond":
            return OwnerResponseSerializer
        return ReviewSerializer

    def get_queryset(self):  # type: ignore
        qs = super().get_queryset()
        if self.request.query_params.get("mine") in {"1", "true"} and self.request.user.is_authenticated:
            return qs.filter(guest=self.request.user)
        return qs

    def create(self, request, *args, **kwargs):  # type: ignore
        serializer = self.get_serializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        review = serializer.save()
        logger.info("Review %s created for venue %s by guest %s", review.pk, review.venue_id, request.user.pk)
        return Response(ReviewSerializer(review).data, status=status.HTTP_201_CREATED)

    def perform_destroy(self, instance: Review) -> None:  # type: ignore
        logger.info("Review %s deleted by user %s", instance.pk, self.request.user.pk)
        instance.delete()

    @action(detail=True, methods=["post"], permission_classes=[permissions.IsAuthenticated])
    def respond(self, request, pk=None):  # type: ignore
        """Reply of the venue owner to a review."""
        review = self.get_object()
        if review.venue.owner_id != request.user.id:
            return Response(
                {"detail": "Only the venue owner can respond to reviews."},
                status=status.HTTP_403_FORBIDDEN,
            )

        serializer = OwnerResponseSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        review.owner_response = serializer.validated_data["owner_response"]
        review.owner_response_at = timezone.now()
        review.save(update_fields=["owner_response", "owner_response_at", "updated_at"])
        return Response(ReviewSerializer(review).data, status=status.HTTP_200_OK)
