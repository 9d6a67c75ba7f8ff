"""Tests for venue listings, moderation and calendar management."""

from __future__ import annotations

from datetime import timedelta
from decimal import Decimal

from django.urls import reverse
from django.utils import timezone
from rest_framework import status
from rest_framework.test import APITestCase

from apps.bookings.models import Booking
from apps.notifications.models import Notification
from apps.users.models import User
from apps.venues.models import DiscountCode, Market, Venue, VenueAvailability, VenuePricing


class VenueAPITestCase(APITestCase):
    def setUp(self) -> None:
        self.owner = User.objects.create_user(
            email="owner@example.com",
            password="OwnerPass123",
            role=User.RoleChoices.VENUE_OWNER,
        )
        self.other_owner = User.objects.create_user(
            email="rival@example.com",
            password="OwnerPass123",
            role=User.RoleChoices.VENUE_OWNER,
        )
        self.guest = User.objects.create_user(
            email="guest@example.com",
            password="GuestPass123",
            role=User.RoleChoices.GUEST,
        )
        self.admin = User.objects.create_user(
            email="admin@example.com",
            password="AdminPass123",
            role=User.RoleChoices.ADMIN,
        )
        self.uae = Market.objects.create(name="United Arab Emirates", slug="uae", country_code="AE", currency="AED")
        self.dubai = Market.objects.create(name="Dubai", slug="dubai", parent=self.uae, currency="AED")
        self.venue = Venue.objects.create(
            owner=self.owner,
            title="Marina Ballroom",
            description="Ballroom overlooking the marina.",
            category=Venue.Category.BANQUET_HALL,
            market=self.dubai,
            city="Dubai",
            capacity=300,
            price_per_hour=Decimal("250.00"),
            currency="USD",
            status=Venue.Status.ACTIVE,
        )
        self.draft = Venue.objects.create(
            owner=self.owner,
            title="Desert Camp",
            description="Tents under the stars.",
            city="Dubai",
            capacity=40,
            price_per_hour=Decimal("90.00"),
        )


class VenueBrowseTests(VenueAPITestCase):
    def test_public_list_shows_active_venues_only(self) -> None:
        response = self.client.get(reverse("venue-list"))

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data["count"], 1)
        self.assertEqual(response.data["results"][0]["title"], "Marina Ballroom")

    def test_owner_sees_own_drafts(self) -> None:
        self.client.force_authenticate(self.owner)

        response = self.client.get(reverse("venue-list"), {"mine": "1"})
        self.assertEqual(response.data["count"], 2)

    def test_filter_by_capacity_and_price(self) -> None:
        Venue.objects.create(
            owner=self.other_owner,
            title="Small Studio",
            description="Studio",
            category=Venue.Category.STUDIO,
            city="Dubai",
            capacity=20,
            price_per_hour=Decimal("40.00"),
            status=Venue.Status.ACTIVE,
        )

        big = self.client.get(reverse("venue-list"), {"guests": 100})
        cheap = self.client.get(reverse("venue-list"), {"price_max": "50"})

        self.assertEqual([v["title"] for v in big.data["results"]], ["Marina Ballroom"])
        self.assertEqual([v["title"] for v in cheap.data["results"]], ["Small Studio"])

    def test_filter_by_parent_market(self) -> None:
        response = self.client.get(reverse("venue-list"), {"market": self.uae.id})

        self.assertEqual(response.data["count"], 1)

    def test_text_search(self) -> None:
        response = self.client.get(reverse("venue-list"), {"q": "marina"})
        self.assertEqual(response.data["count"], 1)

        response = self.client.get(reverse("venue-list"), {"q": "castle"})
        self.assertEqual(response.data["count"], 0)

    def test_draft_is_hidden_from_public(self) -> None:
        response = self.client.get(reverse("venue-detail", args=[self.draft.pk]))
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)


class VenueManagementTests(VenueAPITestCase):
    def test_owner_creates_draft_venue(self) -> None:
        self.client.force_authenticate(self.owner)

        response = self.client.post(
            reverse("venue-list"),
            {
                "title": "Garden Terrace",
                "description": "Terrace with a garden.",
                "category": Venue.Category.GARDEN,
                "market": self.dubai.id,
                "capacity": 120,
                "price_per_hour": "180.00",
                "amenities": ["parking", "catering"],
            },
            format="json",
        )

        self.assertEqual(response.status_code, status.HTTP_201_CREATED, response.data)
        self.assertEqual(response.data["status"], Venue.Status.DRAFT)
        self.assertEqual(response.data["city"], "Dubai")
        self.assertEqual(response.data["slug"], "garden-terrace")

    def test_guest_cannot_create_venue(self) -> None:
        self.client.force_authenticate(self.guest)

        response = self.client.post(
            reverse("venue-list"),
            {"title": "Nope", "description": "x", "city": "Dubai", "capacity": 5, "price_per_hour": "1.00"},
            format="json",
        )
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_other_owner_cannot_edit(self) -> None:
        self.client.force_authenticate(self.other_owner)

        response = self.client.patch(
            reverse("venue-detail", args=[self.venue.pk]), {"capacity": 10}, format="json"
        )
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_moderation_flow(self) -> None:
        self.client.force_authenticate(self.owner)
        response = self.client.post(reverse("venue-submit", args=[self.draft.pk]))
        self.assertEqual(response.data["status"], Venue.Status.PENDING)

        response = self.client.post(reverse("venue-approve", args=[self.draft.pk]))
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

        self.client.force_authenticate(self.admin)
        response = self.client.post(reverse("venue-approve", args=[self.draft.pk]))

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.draft.refresh_from_db()
        self.assertEqual(self.draft.status, Venue.Status.ACTIVE)
        self.assertIsNotNone(self.draft.published_at)
        self.assertTrue(
            Notification.objects.filter(user=self.owner, type=Notification.Type.VENUE_APPROVED).exists()
        )

    def test_admin_rejects_with_reason(self) -> None:
        self.draft.submit_for_review()
        self.client.force_authenticate(self.admin)

        response = self.client.post(reverse("venue-reject", args=[self.draft.pk]), {"reason": "Photos missing"})

        self.assertEqual(response.status_code, status.HTTP_200_OK, response.data)
        self.draft.refresh_from_db()
        self.assertEqual(self.draft.status, Venue.Status.REJECTED)
        self.assertEqual(self.draft.rejection_reason, "Photos missing")

    def test_only_pending_venues_can_be_approved(self) -> None:
        self.client.force_authenticate(self.admin)

        response = self.client.post(reverse("venue-approve", args=[self.draft.pk]))
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)


class VenueCalendarTests(VenueAPITestCase):
    def setUp(self) -> None:
        super().setUp()
        self.day = timezone.localdate() + timedelta(days=5)

    def test_owner_blocks_dates(self) -> None:
        self.client.force_authenticate(self.owner)
        url = reverse("venue-availability-list", args=[self.venue.pk])

        full_day = self.client.post(url, {"blocked_date": str(self.day), "reason": "Private"}, format="json")
        partial = self.client.post(
            url,
            {"blocked_date": str(self.day + timedelta(days=1)), "start_time": "10:00", "end_time": "14:00"},
            format="json",
        )

        self.assertEqual(full_day.status_code, status.HTTP_201_CREATED, full_day.data)
        self.assertTrue(full_day.data["is_full_day"])
        self.assertEqual(partial.status_code, status.HTTP_201_CREATED, partial.data)
        self.assertFalse(partial.data["is_full_day"])

    def test_block_needs_both_times(self) -> None:
        self.client.force_authenticate(self.owner)

        response = self.client.post(
            reverse("venue-availability-list", args=[self.venue.pk]),
            {"blocked_date": str(self.day), "start_time": "10:00"},
            format="json",
        )
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_other_owner_cannot_block(self) -> None:
        self.client.force_authenticate(self.other_owner)

        response = self.client.post(
            reverse("venue-availability-list", args=[self.venue.pk]),
            {"blocked_date": str(self.day)},
            format="json",
        )
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_public_calendar_lists_busy_windows(self) -> None:
        VenueAvailability.objects.create(venue=self.venue, blocked_date=self.day)
        self.client.force_authenticate(self.guest)
        self.client.post(
            reverse("booking-list"),
            {
                "venue": self.venue.id,
                "event_date": str(self.day + timedelta(days=1)),
                "start_time": "18:00",
                "end_time": "22:00",
                "guest_count": 50,
            },
            format="json",
        )
        self.client.force_authenticate(None)

        response = self.client.get(
            reverse("venue-calendar", args=[self.venue.pk]),
            {"start": str(self.day), "end": str(self.day + timedelta(days=2))},
        )

        self.assertEqual(response.status_code, status.HTTP_200_OK, response.data)
        kinds = [window["kind"] for window in response.data["busy"]]
        self.assertEqual(kinds, ["blocked", "booking"])

    def test_calendar_hides_expired_holds(self) -> None:
        self.client.force_authenticate(self.guest)
        self.client.post(
            reverse("booking-list"),
            {
                "venue": self.venue.id,
                "event_date": str(self.day),
                "start_time": "18:00",
                "end_time": "22:00",
            },
            format="json",
        )
        Booking.objects.update(expires_at=timezone.now() - timedelta(minutes=1))

        response = self.client.get(
            reverse("venue-calendar", args=[self.venue.pk]),
            {"start": str(self.day), "end": str(self.day)},
        )
        self.assertEqual(response.data["busy"], [])

    def test_calendar_range_is_limited(self) -> None:
        response = self.client.get(
            reverse("venue-calendar", args=[self.venue.pk]),
            {"start": str(self.day), "end": str(self.day + timedelta(days=200))},
        )
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)


class PricingAndDiscountTests(VenueAPITestCase):
    def test_owner_adds_weekend_pricing_rule(self) -> None:
        self.client.force_authenticate(self.owner)

        response = self.client.post(
            reverse("venue-pricing-list", args=[self.venue.pk]),
            {
                "name": "Weekend",
                "days_of_week": [6, 5, 5],
                "modifier_type": VenuePricing.ModifierType.PERCENTAGE,
                "modifier_value": "25.00",
                "priority": 2,
            },
            format="json",
        )

        self.assertEqual(response.status_code, status.HTTP_201_CREATED, response.data)
        self.assertEqual(response.data["days_of_week"], [5, 6])

    def test_invalid_weekday_is_rejected(self) -> None:
        self.client.force_authenticate(self.owner)

        response = self.client.post(
            reverse("venue-pricing-list", args=[self.venue.pk]),
            {"name": "Bad", "days_of_week": [7], "modifier_value": "10.00"},
            format="json",
        )
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_owner_creates_discount_code(self) -> None:
        self.client.force_authenticate(self.owner)

        response = self.client.post(
            reverse("discount-code-list"),
            {"code": " party20 ", "venue": self.venue.id, "discount_type": "percentage", "value": "20"},
            format="json",
        )

        self.assertEqual(response.status_code, status.HTTP_201_CREATED, response.data)
        self.assertEqual(DiscountCode.objects.get().code, "PARTY20")

    def test_percentage_over_100_is_rejected(self) -> None:
        self.client.force_authenticate(self.owner)

        response = self.client.post(
            reverse("discount-code-list"),
            {"code": "HUGE", "venue": self.venue.id, "discount_type": "percentage", "value": "150"},
            format="json",
        )
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_owner_cannot_create_code_for_foreign_venue(self) -> None:
        self.client.force_authenticate(self.other_owner)

        response = self.client.post(
            reverse("discount-code-list"),
            {"code": "STEAL", "venue": self.venue.id, "discount_type": "fixed_amount", "value": "10"},
            format="json",
        )
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn("venue", response.data)


class MarketTests(VenueAPITestCase):
    def test_markets_are_public(self) -> None:
        response = self.client.get(reverse("market-list"))

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual({m["slug"] for m in response.data}, {"uae", "dubai"})

    def test_only_admin_manages_markets(self) -> None:
        self.client.force_authenticate(self.owner)

        response = self.client.post(reverse("market-list"), {"name": "Qatar", "slug": "qatar"})
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)
