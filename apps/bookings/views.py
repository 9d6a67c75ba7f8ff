"""API views for the booking domain."""

from __future__ import annotations

import logging

from django.conf import settings  # type: ignore
from django.db.models import Q  # type: ignore
from django.utils import timezone  # type: ignore
from rest_framework import mixins, permissions, status, viewsets  # type: ignore
from rest_framework.decorators import action  # type: ignore
from rest_framework.exceptions import PermissionDenied  # type: ignore
from rest_framework.response import Response  # type: ignore

from apps.users.permissions import is_platform_admin

from .domain.pricing import resolve_window
from .exceptions import BookingError
from .models import Booking, GroupBooking
from .serializers import (
    BookingCreateSerializer,
    BookingQuoteSerializer,
    BookingSerializer,
    BookingUpdateSerializer,
    BookingWindowSerializer,
    ChangeDecisionSerializer,
    ChangeRequestSerializer,
    ContributeSerializer,
    GroupBookingCreateSerializer,
    GroupBookingSerializer,
    ReasonSerializer,
)
from . import services, tasks

logger = logging.getLogger(__name__)


def _error(exc: Exception) -> Response:
    return Response({"non_field_errors": [str(exc)]}, status=status.HTTP_400_BAD_REQUEST)


class IsBookingStakeholder(permissions.BasePermission):
    """The guest, the venue owner and platform admins can access a booking."""

    def has_object_permission(self, request, view, obj: Booking):  # type: ignore
        user = request.user
        if not user.is_authenticated:
            return False
        if is_platform_admin(user):
            return True
        return obj.guest_id == user.id or obj.venue.owner_id == user.id


class BookingViewSet(
    mixins.CreateModelMixin,
    mixins.ListModelMixin,
    mixins.RetrieveModelMixin,
    mixins.UpdateModelMixin,
    viewsets.GenericViewSet,
):
    """Create and manage bookings."""

    queryset = Booking.objects.select_related("venue", "guest", "venue__owner", "discount_code").all()
    permission_classes = [permissions.IsAuthenticated, IsBookingStakeholder]
    filterset_fields = ["status", "payment_status", "venue", "event_date"]

    def get_permissions(self):  # type: ignore
        if self.action in {"quote", "availability"}:
            return [permissions.AllowAny()]
        return super().get_permissions()

    def get_serializer_class(self):  # type: ignore
        if self.action == "create":
            return BookingCreateSerializer
        if self.action in {"update", "partial_update"}:
            return BookingUpdateSerializer
        return BookingSerializer

    def get_queryset(self):  # type: ignore
        user = self.request.user
        qs = super().get_queryset()
        if not user.is_authenticated:
            return qs.none()
        if is_platform_admin(user):
            return qs
        if user.is_venue_owner():
            return qs.filter(Q(venue__owner=user) | Q(guest=user))
        return qs.filter(guest=user)

    def create(self, request, *args, **kwargs):  # type: ignore
        serializer = self.get_serializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        booking = serializer.save()
        hold_timeout = settings.SLOT_HOLD_MINUTES * 60
        tasks.schedule_hold_expiration.apply_async(args=[booking.id], countdown=hold_timeout)
        tasks.notify_booking_requested.delay(booking.id)
        read_serializer = BookingSerializer(booking, context=self.get_serializer_context())
        headers = self.get_success_headers(read_serializer.data)
        return Response(read_serializer.data, status=status.HTTP_201_CREATED, headers=headers)

    def update(self, request, *args, **kwargs):  # type: ignore
        booking: Booking = self.get_object()
        if booking.guest_id != request.user.id:
            raise PermissionDenied("Only the guest can edit booking details.")
        partial = kwargs.pop("partial", False)
        serializer = self.get_serializer(booking, data=request.data, partial=partial)
        serializer.is_valid(raise_exception=True)
        serializer.save()
        return Response(BookingSerializer(booking, context=self.get_serializer_context()).data)

    def _require_owner(self, booking: Booking) -> None:
        user = self.request.user
        if booking.venue.owner_id != user.id and not is_platform_admin(user):
            raise PermissionDenied("Only the venue owner can do this.")

    def _require_guest(self, booking: Booking) -> None:
        if booking.guest_id != self.request.user.id:
            raise PermissionDenied("Only the guest who made the booking can do this.")

    @action(detail=False, methods=["post"])
    def quote(self, request):  # type: ignore
        """Price a prospective booking without reserving anything."""
        serializer = BookingQuoteSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        quote = serializer.save()
        return Response(quote.as_dict())

    @action(detail=False, methods=["post"])
    def availability(self, request):  # type: ignore
        """Slot conflict check for a venue and window."""
        serializer = BookingWindowSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data
        try:
            starts_at, ends_at = resolve_window(
                data["event_date"],
                data["start_time"],
                data["end_time"],
                data.get("end_date"),
                tz=timezone.get_current_timezone(),
            )
        except BookingError as exc:
            return _error(exc)
        conflict = services.find_conflict(data["venue"], starts_at, ends_at)
        kind = None
        if conflict is not None:
            kind = "booking" if isinstance(conflict, Booking) else "blocked"
        return Response(
            {
                "venue": data["venue"].pk,
                "starts_at": starts_at,
                "ends_at": ends_at,
                "available": conflict is None,
                "conflict": kind,
            }
        )

    @action(detail=True, methods=["post"])
    def cancel(self, request, pk=None):  # type: ignore
        """
        Cancel a booking.

        Unpaid bookings are cancelled at once. A guest cancelling a paid
        booking opens a refund request instead; owners and admins cancel
        paid bookings with a full refund.
        """
        from apps.finances import services as finances

        booking: Booking = self.get_object()
        serializer = ReasonSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        reason = serializer.validated_data.get("reason", "")
        user = request.user
        paid = booking.payment_status == Booking.PaymentStatus.PAID

        try:
            if booking.guest_id == user.id and not is_platform_admin(user):
                if paid:
                    refund = finances.request_refund(booking, user, reason)
                    return Response(
                        {
                            "status": booking.status,
                            "refund_request": refund.id,
                            "refund_percentage": refund.refund_percentage,
                            "refund_amount": refund.refund_amount,
                        },
                        status=status.HTTP_202_ACCEPTED,
                    )
                services.cancel_booking(booking, source=Booking.CancellationSource.GUEST, reason=reason)
            else:
                source = (
                    Booking.CancellationSource.ADMIN
                    if is_platform_admin(user)
                    else Booking.CancellationSource.OWNER
                )
                services.cancel_booking(booking, source=source, reason=reason)
                if paid:
                    finances.refund_in_full(booking, reason=reason)
        except (BookingError, finances.FinanceError) as exc:
            return _error(exc)

        tasks.notify_booking_cancelled.delay(booking.id)
        return Response({"status": booking.status, "payment_status": booking.payment_status})

    @action(detail=True, methods=["post"])
    def confirm(self, request, pk=None):  # type: ignore
        booking: Booking = self.get_object()
        self._require_owner(booking)
        try:
            services.confirm_booking(booking)
        except BookingError as exc:
            return _error(exc)
        tasks.notify_booking_confirmed.delay(booking.id)
        return Response(BookingSerializer(booking, context=self.get_serializer_context()).data)

    @action(detail=True, methods=["post"])
    def reject(self, request, pk=None):  # type: ignore
        from apps.finances import services as finances

        booking: Booking = self.get_object()
        self._require_owner(booking)
        serializer = ReasonSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        reason = serializer.validated_data.get("reason", "")
        try:
            services.reject_booking(booking, reason)
            if booking.payment_status == Booking.PaymentStatus.PAID:
                finances.refund_in_full(booking, reason=reason)
        except (BookingError, finances.FinanceError) as exc:
            return _error(exc)
        tasks.notify_booking_rejected.delay(booking.id)
        return Response(BookingSerializer(booking, context=self.get_serializer_context()).data)

    @action(detail=True, methods=["post"])
    def request_change(self, request, pk=None):  # type: ignore
        booking: Booking = self.get_object()
        self._require_guest(booking)
        serializer = ChangeRequestSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        try:
            services.request_change(booking, **serializer.validated_data)
        except BookingError as exc:
            return _error(exc)
        tasks.notify_change_requested.delay(booking.id)
        return Response(BookingSerializer(booking, context=self.get_serializer_context()).data)

    @action(detail=True, methods=["post"])
    def approve_change(self, request, pk=None):  # type: ignore
        booking: Booking = self.get_object()
        self._require_owner(booking)
        serializer = ChangeDecisionSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        try:
            services.approve_change(booking, serializer.validated_data.get("response", ""))
        except BookingError as exc:
            return _error(exc)
        tasks.notify_change_decided.delay(booking.id)
        return Response(BookingSerializer(booking, context=self.get_serializer_context()).data)

    @action(detail=True, methods=["post"])
    def decline_change(self, request, pk=None):  # type: ignore
        booking: Booking = self.get_object()
        self._require_owner(booking)
        serializer = ChangeDecisionSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        try:
            services.decline_change(booking, serializer.validated_data.get("response", ""))
        except BookingError as exc:
            return _error(exc)
        tasks.notify_change_decided.delay(booking.id)
        return Response(BookingSerializer(booking, context=self.get_serializer_context()).data)


class GroupBookingViewSet(
    mixins.CreateModelMixin,
    mixins.ListModelMixin,
    mixins.RetrieveModelMixin,
    viewsets.GenericViewSet,
):
    """Group bookings visible to their organiser, contributors and admins."""

    queryset = GroupBooking.objects.select_related("venue", "organizer", "booking").prefetch_related(
        "contributions__installments"
    )
    permission_classes = [permissions.IsAuthenticated]

    def get_serializer_class(self):  # type: ignore
        if self.action == "create":
            return GroupBookingCreateSerializer
        return GroupBookingSerializer

    def get_queryset(self):  # type: ignore
        user = self.request.user
        qs = super().get_queryset()
        if is_platform_admin(user):
            return qs
        return qs.filter(
            Q(organizer=user) | Q(contributions__user=user) | Q(contributions__email__iexact=user.email)
        ).distinct()

    def create(self, request, *args, **kwargs):  # type: ignore
        serializer = self.get_serializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        group = serializer.save()
        tasks.notify_group_invitations.delay(group.id)
        data = GroupBookingSerializer(group, context=self.get_serializer_context()).data
        return Response(data, status=status.HTTP_201_CREATED)

    def _require_organizer(self, group: GroupBooking) -> None:
        user = self.request.user
        if group.organizer_id != user.id and not is_platform_admin(user):
            raise PermissionDenied("Only the organiser can do this.")

    @action(detail=True, methods=["post"])
    def contribute(self, request, pk=None):  # type: ignore
        """
        Pay the caller's share (or the next installment of it).

        The organiser may settle any contribution by passing its id.
        """
        group: GroupBooking = self.get_object()
        serializer = ContributeSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        contributions = group.contributions.all()
        contribution_id = serializer.validated_data.get("contribution")
        if contribution_id is not None:
            self._require_organizer(group)
            contribution = contributions.filter(pk=contribution_id).first()
        else:
            contribution = contributions.filter(
                Q(user=request.user) | Q(email__iexact=request.user.email)
            ).first()
        if contribution is None:
            return Response({"detail": "No contribution found."}, status=status.HTTP_404_NOT_FOUND)
        if contribution.user_id is None and contribution.email.lower() == request.user.email.lower():
            contribution.user = request.user
            contribution.save(update_fields=["user"])
        try:
            services.record_contribution_payment(contribution)
        except BookingError as exc:
            return _error(exc)
        group.refresh_from_db()
        if group.booking_id:
            tasks.notify_booking_confirmed.delay(group.booking_id)
        return Response(GroupBookingSerializer(group, context=self.get_serializer_context()).data)

    @action(detail=True, methods=["post"])
    def finalize(self, request, pk=None):  # type: ignore
        """Retry turning a funded group into a booking."""
        group: GroupBooking = self.get_object()
        self._require_organizer(group)
        try:
            booking = services.finalize_group_booking(group)
        except BookingError as exc:
            return _error(exc)
        tasks.notify_booking_confirmed.delay(booking.id)
        return Response(GroupBookingSerializer(group, context=self.get_serializer_context()).data)

    @action(detail=True, methods=["post"])
    def cancel(self, request, pk=None):  # type: ignore
        group: GroupBooking = self.get_object()
        self._require_organizer(group)
        try:
            services.cancel_group_booking(group)
        except BookingError as exc:
            return _error(exc)
        return Response(GroupBookingSerializer(group, context=self.get_serializer_context()).data)
