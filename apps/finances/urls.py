"""URL routing for the finance domain."""

from __future__ import annotations

from django.urls import include, path  # type: ignore
from rest_framework.routers import DefaultRouter  # type: ignore

from .views import OwnerSummaryView, PaymentViewSet, PayoutAccountView, PayoutViewSet, RefundRequestViewSet

router = DefaultRouter()
router.register(r"payments", PaymentViewSet, basename="payment")
router.register(r"refunds", RefundRequestViewSet, basename="refund")
router.register(r"payouts", PayoutViewSet, basename="payout")

urlpatterns = [
    path("payout-account/", PayoutAccountView.as_view(), name="payout-account"),
    path("summary/", OwnerSummaryView.as_view(), name="owner-summary"),
    path("", include(router.urls)),
]
