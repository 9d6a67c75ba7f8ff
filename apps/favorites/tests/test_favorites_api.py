"""Tests for the favorites API."""

from __future__ import annotations

from decimal import Decimal

from django.urls import reverse
from rest_framework import status
from rest_framework.test import APITestCase

from apps.favorites.models import Favorite
from apps.users.models import User
from apps.venues.models import Venue


class FavoriteAPITests(APITestCase):
    def setUp(self) -> None:
        self.guest = User.objects.create_user(email="guest@example.com", password="GuestPass123")
        self.other = User.objects.create_user(email="other@example.com", password="GuestPass123")
        owner = User.objects.create_user(
            email="owner@example.com",
            password="OwnerPass123",
            role=User.RoleChoices.VENUE_OWNER,
        )
        self.venue = Venue.objects.create(
            owner=owner,
            title="Sky Lounge",
            description="Lounge on the 40th floor.",
            city="Riyadh",
            capacity=70,
            price_per_hour=Decimal("300.00"),
            currency="SAR",
            status=Venue.Status.ACTIVE,
        )
        self.draft = Venue.objects.create(
            owner=owner,
            title="Unlisted",
            description="Not yet live.",
            city="Riyadh",
            capacity=10,
            price_per_hour=Decimal("10.00"),
        )
        self.client.force_authenticate(self.guest)

    def test_add_and_list(self) -> None:
        response = self.client.post(reverse("favorite-list"), {"venue_id": self.venue.id}, format="json")
        self.assertEqual(response.status_code, status.HTTP_201_CREATED, response.data)

        response = self.client.get(reverse("favorite-list"))
        self.assertEqual(response.data["count"], 1)
        self.assertEqual(response.data["results"][0]["venue"]["title"], "Sky Lounge")

    def test_duplicate_is_rejected(self) -> None:
        Favorite.objects.create(user=self.guest, venue=self.venue)

        response = self.client.post(reverse("favorite-list"), {"venue_id": self.venue.id}, format="json")
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_inactive_venue_cannot_be_added(self) -> None:
        response = self.client.post(reverse("favorite-list"), {"venue_id": self.draft.id}, format="json")
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_remove(self) -> None:
        favorite = Favorite.objects.create(user=self.guest, venue=self.venue)

        response = self.client.delete(reverse("favorite-detail", args=[favorite.pk]))

        self.assertEqual(response.status_code, status.HTTP_204_NO_CONTENT)
        self.assertFalse(Favorite.objects.exists())

    def test_cannot_remove_someone_elses_favorite(self) -> None:
        favorite = Favorite.objects.create(user=self.other, venue=self.venue)

        response = self.client.delete(reverse("favorite-detail", args=[favorite.pk]))
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)

    def test_toggle_and_check(self) -> None:
        added = self.client.post(reverse("favorite-toggle"), {"venue_id": self.venue.id}, format="json")
        check = self.client.get(reverse("favorite-check", kwargs={"venue_id": self.venue.id}))
        removed = self.client.post(reverse("favorite-toggle"), {"venue_id": self.venue.id}, format="json")

        self.assertEqual(added.data["action"], "added")
        self.assertTrue(check.data["is_favorite"])
        self.assertEqual(removed.data["action"], "removed")
        self.assertFalse(Favorite.objects.exists())
