"""URL routing for the venues domain."""

from __future__ import annotations

from django.urls import include, path  # type: ignore
from rest_framework.routers import DefaultRouter  # type: ignore

from .views import (
    DiscountCodeViewSet,
    MarketViewSet,
    VenueAvailabilityViewSet,
    VenuePricingViewSet,
    VenueViewSet,
)

router = DefaultRouter()
# Prefixed routes first so they are not captured by the venue detail route
router.register(r"markets", MarketViewSet, basename="market")
router.register(r"discount-codes", DiscountCodeViewSet, basename="discount-code")
router.register(r"", VenueViewSet, basename="venue")

availability_list = VenueAvailabilityViewSet.as_view({"get": "list", "post": "create"})
availability_detail = VenueAvailabilityViewSet.as_view(
    {"get": "retrieve", "patch": "partial_update", "put": "update", "delete": "destroy"}
)

pricing_list = VenuePricingViewSet.as_view({"get": "list", "post": "create"})
pricing_detail = VenuePricingViewSet.as_view(
    {"get": "retrieve", "patch": "partial_update", "put": "update", "delete": "destroy"}
)

urlpatterns = [
    path("<int:venue_id>/availability/", availability_list, name="venue-availability-list"),
    path("<int:venue_id>/availability/<int:pk>/", availability_detail, name="venue-availability-detail"),
    path("<int:venue_id>/pricing/", pricing_list, name="venue-pricing-list"),
    path("<int:venue_id>/pricing/<int:pk>/", pricing_detail, name="venue-pricing-detail"),
    path("", include(router.urls)),
]
