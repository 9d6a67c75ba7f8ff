"""API views for favorites management."""

from __future__ import annotations

from rest_framework import mixins, permissions, status, viewsets  # type: ignore
from rest_framework.decorators import action  # type: ignore
from rest_framework.response import Response  # type: ignore

from .models import Favorite
from .serializers import FavoriteSerializer, FavoriteToggleSerializer


class FavoriteViewSet(
    mixins.CreateModelMixin,
    mixins.ListModelMixin,
    mixins.DestroyModelMixin,
    viewsets.GenericViewSet,
):
    """
    Add, list and remove favorite venues.

    Endpoints:
    - GET /api/v1/favorites/ - list favorites
    - POST /api/v1/favorites/ - add a venue
    - DELETE /api/v1/favorites/{id}/ - remove a favorite
    - POST /api/v1/favorites/toggle/ - add or remove
    - GET /api/v1/favorites/check/{venue_id}/ - is the venue a favorite
    """

    queryset = Favorite.objects.select_related("venue").prefetch_related("venue__photos")
    serializer_class = FavoriteSerializer
    permission_classes = [permissions.IsAuthenticated]

    def get_queryset(self):  # type: ignore
        """Users only see their own favorites."""
        qs = super().get_queryset().filter(user=self.request.user)
        city = self.request.query_params.get("city")
        if city:
            qs = qs.filter(venue__city__icontains=city)
        return qs

    def perform_create(self, serializer):  # type: ignore
        serializer.save(user=self.request.user)

    @action(detail=False, methods=["post"], url_path="toggle")
    def toggle(self, request):  # type: ignore
        """
        Toggle a venue in the favorites.

        Returns:
            {"action": "added" | "removed", "venue_id": ...}
        """
        serializer = FavoriteToggleSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        venue_id = serializer.validated_data["venue_id"]

        deleted, _ = Favorite.objects.filter(user=request.user, venue_id=venue_id).delete()
        if deleted:
            return Response({"action": "removed", "venue_id": venue_id}, status=status.HTTP_200_OK)

        favorite = Favorite.objects.create(user=request.user, venue_id=venue_id)
        return Response(
            {"action": "added", "venue_id": venue_id, "favorite_id": favorite.id},
            status=status.HTTP_201_CREATED,
        )

    @action(detail=False, methods=["get"], url_path=r"check/(?P<venue_id>[0-9]+)")
    def check(self, request, venue_id=None):  # type: ignore
        favorite = Favorite.objects.filter(user=request.user, venue_id=venue_id).first()
        return Response(
            {"is_favorite": favorite is not None, "favorite_id": favorite.id if favorite else None}
        )
