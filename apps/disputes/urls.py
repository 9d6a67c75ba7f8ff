"""URL routing for disputes and venue reports."""

from __future__ import annotations

from django.urls import include, path  # type: ignore
from rest_framework.routers import DefaultRouter  # type: ignore

from .views import DisputeViewSet, VenueReportViewSet

router = DefaultRouter()
router.register(r"reports", VenueReportViewSet, basename="venue-report")
router.register(r"", DisputeViewSet, basename="dispute")

urlpatterns = [path("", include(router.urls))]
