"""Tests for booking disputes and venue reports."""

from __future__ import annotations

from datetime import timedelta
from decimal import Decimal

from django.urls import reverse
from django.utils import timezone
from rest_framework import status
from rest_framework.test import APITestCase

from apps.bookings.models import Booking
from apps.disputes.models import Dispute, VenueReport
from apps.notifications.models import Notification
from apps.users.models import User
from apps.venues.models import Venue


class DisputeAPITestCase(APITestCase):
    def setUp(self) -> None:
        self.owner = User.objects.create_user(
            email="owner@example.com",
            password="OwnerPass123",
            role=User.RoleChoices.VENUE_OWNER,
        )
        self.guest = User.objects.create_user(email="guest@example.com", password="GuestPass123")
        self.stranger = User.objects.create_user(email="stranger@example.com", password="GuestPass123")
        self.admin = User.objects.create_user(
            email="admin@example.com",
            password="AdminPass123",
            role=User.RoleChoices.ADMIN,
        )
        self.venue = Venue.objects.create(
            owner=self.owner,
            title="Rooftop Garden",
            description="Garden on the roof.",
            city="Berlin",
            capacity=50,
            price_per_hour=Decimal("100.00"),
            status=Venue.Status.ACTIVE,
        )
        starts_at = timezone.now() - timedelta(days=2)
        self.booking = Booking.objects.create(
            venue=self.venue,
            guest=self.guest,
            event_date=starts_at.date(),
            start_time=starts_at.time(),
            end_time=(starts_at + timedelta(hours=3)).time(),
            starts_at=starts_at,
            ends_at=starts_at + timedelta(hours=3),
            hourly_rate=Decimal("100.00"),
            hours=Decimal("3.00"),
            base_amount=Decimal("300.00"),
            platform_fee=Decimal("7.50"),
            total_amount=Decimal("307.50"),
            venue_owner_payout=Decimal("261.38"),
            status=Booking.Status.COMPLETED,
        )

    def _open(self, user: User, **overrides):
        self.client.force_authenticate(user)
        payload = {
            "booking": self.booking.id,
            "reason": Dispute.Reason.NOT_AS_DESCRIBED,
            "description": "The sound system was missing.",
            "desired_outcome": "Partial refund",
        }
        payload.update(overrides)
        return self.client.post(reverse("dispute-list"), payload, format="json")


class DisputeTests(DisputeAPITestCase):
    def test_guest_opens_dispute_against_owner(self) -> None:
        response = self._open(self.guest)

        self.assertEqual(response.status_code, status.HTTP_201_CREATED, response.data)
        self.assertEqual(response.data["status"], Dispute.Status.OPEN)
        self.assertEqual(response.data["defendant"]["id"], self.owner.id)
        self.assertEqual(response.data["venue"], self.venue.id)
        self.assertTrue(Notification.objects.filter(user=self.owner, type=Notification.Type.DISPUTE).exists())

    def test_owner_opens_dispute_against_guest(self) -> None:
        response = self._open(self.owner, reason=Dispute.Reason.DAMAGE, description="Broken chairs.")

        self.assertEqual(response.status_code, status.HTTP_201_CREATED, response.data)
        self.assertEqual(response.data["defendant"]["id"], self.guest.id)

    def test_stranger_cannot_open_dispute(self) -> None:
        response = self._open(self.stranger)

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertFalse(Dispute.objects.exists())

    def test_second_active_dispute_is_rejected(self) -> None:
        self._open(self.guest)

        response = self._open(self.guest)
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_blank_desired_outcome_is_rejected(self) -> None:
        response = self._open(self.guest, desired_outcome="   ")

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn("desired_outcome", response.data)

    def test_parties_see_dispute_and_others_do_not(self) -> None:
        self._open(self.guest)

        self.client.force_authenticate(self.owner)
        owner_view = self.client.get(reverse("dispute-list"))
        self.client.force_authenticate(self.stranger)
        stranger_view = self.client.get(reverse("dispute-list"))

        self.assertEqual(owner_view.data["count"], 1)
        self.assertEqual(stranger_view.data["count"], 0)

    def test_admin_resolves_dispute(self) -> None:
        dispute_id = self._open(self.guest).data["id"]
        url = reverse("dispute-set-status", args=[dispute_id])

        forbidden = self.client.post(url, {"status": Dispute.Status.RESOLVED})
        self.client.force_authenticate(self.admin)
        investigating = self.client.post(url, {"status": Dispute.Status.INVESTIGATING})
        resolved = self.client.post(
            url, {"status": Dispute.Status.RESOLVED, "resolution_notes": "50% refunded."}
        )

        self.assertEqual(forbidden.status_code, status.HTTP_403_FORBIDDEN)
        self.assertEqual(investigating.status_code, status.HTTP_200_OK)
        self.assertEqual(resolved.data["status"], Dispute.Status.RESOLVED)
        self.assertIsNotNone(resolved.data["resolved_at"])
        self.assertEqual(
            Notification.objects.filter(user=self.guest, type=Notification.Type.DISPUTE).count(), 2
        )

    def test_resolved_dispute_cannot_be_reopened(self) -> None:
        dispute_id = self._open(self.guest).data["id"]
        url = reverse("dispute-set-status", args=[dispute_id])
        self.client.force_authenticate(self.admin)
        self.client.post(url, {"status": Dispute.Status.CLOSED})

        response = self.client.post(url, {"status": Dispute.Status.OPEN})
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)


class VenueReportTests(DisputeAPITestCase):
    def _report(self, user: User):
        self.client.force_authenticate(user)
        return self.client.post(
            reverse("venue-report-list"),
            {
                "venue": self.venue.id,
                "report_type": VenueReport.ReportType.MISLEADING_INFO,
                "description": "Photos show a pool that does not exist.",
            },
            format="json",
        )

    def test_user_reports_venue(self) -> None:
        response = self._report(self.stranger)

        self.assertEqual(response.status_code, status.HTTP_201_CREATED, response.data)
        self.assertEqual(response.data["status"], VenueReport.Status.PENDING)

    def test_duplicate_pending_report_is_rejected(self) -> None:
        self._report(self.stranger)

        response = self._report(self.stranger)
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_owner_cannot_report_own_venue(self) -> None:
        response = self._report(self.owner)
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_admin_dismisses_report(self) -> None:
        report_id = self._report(self.stranger).data["id"]
        self.client.force_authenticate(self.admin)

        response = self.client.post(
            reverse("venue-report-set-status", args=[report_id]),
            {"status": VenueReport.Status.DISMISSED, "admin_notes": "Pool is seasonal."},
        )

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data["status"], VenueReport.Status.DISMISSED)
        self.assertEqual(self.client.get(reverse("venue-report-list")).data["count"], 1)

    def test_anonymous_cannot_report(self) -> None:
        self.client.force_authenticate(None)

        response = self.client.get(reverse("venue-report-list"))
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)
