"""Tests for reviews and venue rating aggregation."""

from __future__ import annotations

from datetime import timedelta
from decimal import Decimal

import pytest
from django.urls import reverse
from django.utils import timezone
from rest_framework import status
from rest_framework.test import APITestCase

from apps.bookings.models import Booking
from apps.reviews.models import Review
from apps.reviews.services import average_rating
from apps.users.models import User
from apps.venues.models import Venue


def _booking(venue: Venue, guest: User, *, status_: str = Booking.Status.COMPLETED, days_ago: int = 3) -> Booking:
    starts_at = timezone.now() - timedelta(days=days_ago)
    return Booking.objects.create(
        venue=venue,
        guest=guest,
        event_date=starts_at.date(),
        start_time=starts_at.time(),
        end_time=(starts_at + timedelta(hours=2)).time(),
        starts_at=starts_at,
        ends_at=starts_at + timedelta(hours=2),
        hourly_rate=venue.price_per_hour,
        hours=Decimal("2.00"),
        base_amount=Decimal("200.00"),
        platform_fee=Decimal("5.00"),
        total_amount=Decimal("205.00"),
        venue_owner_payout=Decimal("174.25"),
        status=status_,
    )


class ReviewAPITests(APITestCase):
    def setUp(self) -> None:
        self.owner = User.objects.create_user(
            email="owner@example.com",
            password="OwnerPass123",
            role=User.RoleChoices.VENUE_OWNER,
        )
        self.guest = User.objects.create_user(
            email="guest@example.com",
            password="GuestPass123",
            role=User.RoleChoices.GUEST,
        )
        self.other_guest = User.objects.create_user(
            email="other@example.com",
            password="GuestPass123",
            role=User.RoleChoices.GUEST,
        )
        self.venue = Venue.objects.create(
            owner=self.owner,
            title="Lake Pavilion",
            description="Pavilion by the lake.",
            city="Toronto",
            capacity=100,
            price_per_hour=Decimal("100.00"),
            status=Venue.Status.ACTIVE,
        )
        self.booking = _booking(self.venue, self.guest)
        self.url = reverse("review-list")

    def _review(self, user: User, booking: Booking, rating: int):
        self.client.force_authenticate(user)
        return self.client.post(
            self.url,
            {"booking": booking.id, "rating": rating, "comment": "Lovely place, great staff."},
            format="json",
        )

    def test_guest_reviews_completed_booking(self) -> None:
        response = self._review(self.guest, self.booking, 4)

        self.assertEqual(response.status_code, status.HTTP_201_CREATED, response.data)
        review = Review.objects.get()
        self.assertEqual(review.venue, self.venue)
        self.assertEqual(review.guest, self.guest)
        self.venue.refresh_from_db()
        self.assertEqual(self.venue.rating, Decimal("4.0"))
        self.assertEqual(self.venue.review_count, 1)

    def test_rating_is_mean_rounded_to_one_decimal(self) -> None:
        self._review(self.guest, self.booking, 5)
        self._review(self.other_guest, _booking(self.venue, self.other_guest), 4)
        self._review(self.guest, _booking(self.venue, self.guest, days_ago=10), 4)

        self.venue.refresh_from_db()
        self.assertEqual(self.venue.rating, Decimal("4.3"))
        self.assertEqual(self.venue.review_count, 3)

    def test_deleting_review_updates_rating(self) -> None:
        self._review(self.guest, self.booking, 5)
        self._review(self.other_guest, _booking(self.venue, self.other_guest), 2)
        review = Review.objects.get(rating=2)

        self.client.force_authenticate(self.other_guest)
        response = self.client.delete(reverse("review-detail", args=[review.pk]))

        self.assertEqual(response.status_code, status.HTTP_204_NO_CONTENT)
        self.venue.refresh_from_db()
        self.assertEqual(self.venue.rating, Decimal("5.0"))
        self.assertEqual(self.venue.review_count, 1)

    def test_one_review_per_booking(self) -> None:
        self._review(self.guest, self.booking, 5)

        response = self._review(self.guest, self.booking, 3)
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn("booking", response.data)

    def test_unfinished_booking_cannot_be_reviewed(self) -> None:
        upcoming = _booking(self.venue, self.guest, status_=Booking.Status.CONFIRMED, days_ago=-5)

        response = self._review(self.guest, upcoming, 5)
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_cannot_review_someone_elses_booking(self) -> None:
        response = self._review(self.other_guest, self.booking, 1)
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_short_comment_is_rejected(self) -> None:
        self.client.force_authenticate(self.guest)

        response = self.client.post(
            self.url, {"booking": self.booking.id, "rating": 5, "comment": "  great  "}, format="json"
        )
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn("comment", response.data)

    def test_rating_out_of_range_is_rejected(self) -> None:
        response = self._review(self.guest, self.booking, 6)
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_owner_responds(self) -> None:
        self._review(self.guest, self.booking, 3)
        review = Review.objects.get()

        self.client.force_authenticate(self.guest)
        forbidden = self.client.post(reverse("review-respond", args=[review.pk]), {"owner_response": "Hi"})
        self.client.force_authenticate(self.owner)
        response = self.client.post(
            reverse("review-respond", args=[review.pk]), {"owner_response": "Thanks for coming!"}
        )

        self.assertEqual(forbidden.status_code, status.HTTP_403_FORBIDDEN)
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data["owner_response"], "Thanks for coming!")
        self.assertIsNotNone(response.data["owner_response_at"])

    def test_reviews_are_public_and_filterable(self) -> None:
        self._review(self.guest, self.booking, 5)
        self.client.force_authenticate(None)

        response = self.client.get(self.url, {"venue": self.venue.id})

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data["count"], 1)


@pytest.mark.parametrize(
    ("ratings", "expected"),
    [
        ([], Decimal("0.0")),
        ([5], Decimal("5.0")),
        ([4, 5], Decimal("4.5")),
        ([1, 2, 2], Decimal("1.7")),
        ([4, 4, 5, 5, 5, 5], Decimal("4.7")),
    ],
)
def test_average_rating(ratings, expected) -> None:
    assert average_rating(ratings) == expected
