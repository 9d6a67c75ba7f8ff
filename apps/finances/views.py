"""API views for payments, refunds and payouts.

Payments are created by guests for their own bookings and processed
immediately by the simulated provider. Refund requests are decided by
platform admins. Owners see their payouts, manage the bank account they
are paid to and get an earnings summary.
"""

from __future__ import annotations

import logging

from rest_framework import mixins, permissions, status, viewsets  # type: ignore
from rest_framework.decorators import action  # type: ignore
from rest_framework.response import Response  # type: ignore
from rest_framework.views import APIView  # type: ignore

from apps.bookings.exceptions import BookingError
from apps.bookings.models import Booking
from apps.users.permissions import IsPlatformAdmin, is_platform_admin

from . import services, tasks
from .exceptions import FinanceError
from .models import Payment, Payout, PayoutAccount, RefundRequest
from .serializers import (
    PaymentSerializer,
    PayoutAccountSerializer,
    PayoutSerializer,
    RefundDecisionSerializer,
    RefundRequestSerializer,
)

logger = logging.getLogger(__name__)


def _error(exc: Exception) -> Response:
    return Response({"non_field_errors": [str(exc)]}, status=status.HTTP_400_BAD_REQUEST)


class PaymentViewSet(
    mixins.CreateModelMixin,
    mixins.ListModelMixin,
    mixins.RetrieveModelMixin,
    viewsets.GenericViewSet,
):
    """Guests pay their bookings; owners see payments for their venues."""

    queryset = Payment.objects.select_related("booking", "booking__guest").prefetch_related("transactions")
    serializer_class = PaymentSerializer
    permission_classes = [permissions.IsAuthenticated]
    filterset_fields = ["status", "booking"]

    def get_queryset(self):  # type: ignore
        user = self.request.user
        qs = super().get_queryset()
        if is_platform_admin(user):
            return qs
        if user.is_venue_owner():
            return qs.filter(booking__venue__owner=user)
        return qs.filter(booking__guest=user)

    def create(self, request, *args, **kwargs):  # type: ignore
        serializer = self.get_serializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        booking = serializer.validated_data["booking"]
        method = serializer.validated_data.get("method", Payment.Method.SIMULATED)
        try:
            payment = services.pay_booking(booking, request.user, method)
        except FinanceError as exc:
            return _error(exc)

        from apps.bookings.tasks import notify_booking_confirmed

        notify_booking_confirmed.delay(booking.id)
        data = PaymentSerializer(payment, context=self.get_serializer_context()).data
        return Response(data, status=status.HTTP_201_CREATED)


class RefundRequestViewSet(
    mixins.CreateModelMixin,
    mixins.ListModelMixin,
    mixins.RetrieveModelMixin,
    viewsets.GenericViewSet,
):
    """Refund requests: guests open them, admins approve or reject."""

    queryset = RefundRequest.objects.select_related("booking", "requested_by")
    serializer_class = RefundRequestSerializer
    permission_classes = [permissions.IsAuthenticated]
    filterset_fields = ["status"]

    def get_queryset(self):  # type: ignore
        user = self.request.user
        qs = super().get_queryset()
        if is_platform_admin(user):
            return qs
        if user.is_venue_owner():
            return qs.filter(booking__venue__owner=user)
        return qs.filter(requested_by=user)

    def create(self, request, *args, **kwargs):  # type: ignore
        serializer = self.get_serializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        booking: Booking = serializer.validated_data["booking"]
        try:
            refund = services.request_refund(booking, request.user, serializer.validated_data.get("reason", ""))
        except (FinanceError, BookingError) as exc:
            return _error(exc)
        data = RefundRequestSerializer(refund, context=self.get_serializer_context()).data
        return Response(data, status=status.HTTP_201_CREATED)

    @action(detail=True, methods=["post"], permission_classes=[IsPlatformAdmin])
    def approve(self, request, pk=None):  # type: ignore
        refund = self.get_object()
        serializer = RefundDecisionSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        try:
            services.approve_refund(refund, request.user, serializer.validated_data.get("notes", ""))
        except FinanceError as exc:
            return _error(exc)
        tasks.notify_refund_decision.delay(refund.id)
        return Response(RefundRequestSerializer(refund, context=self.get_serializer_context()).data)

    @action(detail=True, methods=["post"], permission_classes=[IsPlatformAdmin])
    def reject(self, request, pk=None):  # type: ignore
        refund = self.get_object()
        serializer = RefundDecisionSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        try:
            services.reject_refund(refund, request.user, serializer.validated_data.get("notes", ""))
        except FinanceError as exc:
            return _error(exc)
        tasks.notify_refund_decision.delay(refund.id)
        return Response(RefundRequestSerializer(refund, context=self.get_serializer_context()).data)


class PayoutViewSet(viewsets.ReadOnlyModelViewSet):
    """Owners see their payouts; admins see all and can retry one."""

    queryset = Payout.objects.select_related("booking", "owner")
    serializer_class = PayoutSerializer
    permission_classes = [permissions.IsAuthenticated]
    filterset_fields = ["status"]

    def get_queryset(self):  # type: ignore
        qs = super().get_queryset()
        if is_platform_admin(self.request.user):
            return qs
        return qs.filter(owner=self.request.user)

    @action(detail=True, methods=["post"], permission_classes=[IsPlatformAdmin])
    def process(self, request, pk=None):  # type: ignore
        payout = self.get_object()
        try:
            services.process_payout(payout)
        except FinanceError as exc:
            return _error(exc)
        tasks.notify_payout.delay(payout.id)
        return Response(PayoutSerializer(payout).data)


class PayoutAccountView(APIView):
    """GET/PUT the bank account of the current owner."""

    permission_classes = [permissions.IsAuthenticated]

    def get(self, request):  # type: ignore
        account = PayoutAccount.objects.filter(owner=request.user).first()
        if account is None:
            return Response({"detail": "No payout account on file."}, status=status.HTTP_404_NOT_FOUND)
        return Response(PayoutAccountSerializer(account).data)

    def put(self, request):  # type: ignore
        if not (request.user.is_venue_owner() or request.user.is_vendor()):
            return Response(
                {"detail": "Only venue owners and vendors receive payouts."},
                status=status.HTTP_403_FORBIDDEN,
            )
        account = PayoutAccount.objects.filter(owner=request.user).first()
        serializer = PayoutAccountSerializer(account, data=request.data)
        serializer.is_valid(raise_exception=True)
        account = serializer.save(owner=request.user)
        logger.info("Payout account updated for user %s (%s)", request.user.pk, account.masked_number)
        return Response(PayoutAccountSerializer(account).data)


class OwnerSummaryView(APIView):
    """Earnings, upcoming income and payouts of the current owner."""

    permission_classes = [permissions.IsAuthenticated]

    def get(self, request):  # type: ignore
        if not (request.user.is_venue_owner() or is_platform_admin(request.user)):
            return Response({"detail": "Only venue owners have an earnings summary."}, status=status.HTTP_403_FORBIDDEN)
        return Response(services.owner_summary(request.user, request.query_params.get("currency")))
