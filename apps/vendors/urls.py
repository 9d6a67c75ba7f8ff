"""URL routing for the vendors domain."""

from __future__ import annotations

from django.urls import include, path  # type: ignore
from rest_framework.routers import DefaultRouter  # type: ignore

from .views import ServicePackageViewSet, VendorViewSet

router = DefaultRouter()
router.register(r"packages", ServicePackageViewSet, basename="service-package")
router.register(r"", VendorViewSet, basename="vendor")

urlpatterns = [path("", include(router.urls))]
