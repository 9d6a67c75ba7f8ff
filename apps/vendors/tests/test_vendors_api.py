"""Tests for the vendor directory and service packages."""

from __future__ import annotations

from decimal import Decimal

from django.urls import reverse
from rest_framework import status
from rest_framework.test import APITestCase

from apps.users.models import User
from apps.vendors.models import ServicePackage, Vendor


class VendorAPITestCase(APITestCase):
    def setUp(self) -> None:
        self.vendor_user = User.objects.create_user(
            email="dj@example.com",
            password="VendorPass123",
            role=User.RoleChoices.VENDOR,
        )
        self.other_vendor_user = User.objects.create_user(
            email="chef@example.com",
            password="VendorPass123",
            role=User.RoleChoices.VENDOR,
        )
        self.guest = User.objects.create_user(email="guest@example.com", password="GuestPass123")
        self.admin = User.objects.create_user(
            email="admin@example.com",
            password="AdminPass123",
            role=User.RoleChoices.ADMIN,
        )
        self.chef = Vendor.objects.create(
            user=self.other_vendor_user,
            business_name="Golden Spoon Catering",
            service_category=Vendor.ServiceCategory.CATERING,
            description="Buffets and plated dinners.",
            service_areas=["Dubai", "Sharjah"],
            status=Vendor.Status.ACTIVE,
        )
        ServicePackage.objects.create(vendor=self.chef, name="Buffet", price=Decimal("45.00"), pricing_model="per_person")

    def _create_profile(self):
        self.client.force_authenticate(self.vendor_user)
        return self.client.post(
            reverse("vendor-list"),
            {
                "business_name": "Night Beats",
                "service_category": Vendor.ServiceCategory.DJ,
                "description": "DJ sets for weddings and parties.",
                "service_areas": ["Dubai", " "],
                "contact_email": "dj@example.com",
            },
            format="json",
        )


class VendorAPITests(VendorAPITestCase):
    def test_vendor_creates_profile_pending_approval(self) -> None:
        response = self._create_profile()

        self.assertEqual(response.status_code, status.HTTP_201_CREATED, response.data)
        self.assertEqual(response.data["status"], Vendor.Status.PENDING_APPROVAL)
        self.assertEqual(response.data["service_areas"], ["Dubai"])
        self.assertEqual(response.data["slug"], "night-beats")

    def test_second_profile_is_rejected(self) -> None:
        self._create_profile()

        response = self._create_profile()
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_guest_cannot_create_profile(self) -> None:
        self.client.force_authenticate(self.guest)

        response = self.client.post(
            reverse("vendor-list"),
            {"business_name": "X", "description": "Y"},
            format="json",
        )
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_public_sees_only_active_vendors(self) -> None:
        self._create_profile()
        self.client.force_authenticate(None)

        response = self.client.get(reverse("vendor-list"))

        self.assertEqual(response.data["count"], 1)
        self.assertEqual(response.data["results"][0]["business_name"], "Golden Spoon Catering")
        self.assertEqual(len(response.data["results"][0]["packages"]), 1)

    def test_filters(self) -> None:
        by_category = self.client.get(reverse("vendor-list"), {"service_category": "dj"})
        by_area = self.client.get(reverse("vendor-list"), {"area": "sharjah"})
        by_price = self.client.get(reverse("vendor-list"), {"price_max": "40"})

        self.assertEqual(by_category.data["count"], 0)
        self.assertEqual(by_area.data["count"], 1)
        self.assertEqual(by_price.data["count"], 0)

    def test_admin_approves_vendor(self) -> None:
        vendor_id = self._create_profile().data["id"]

        forbidden = self.client.post(reverse("vendor-approve", args=[vendor_id]))
        self.client.force_authenticate(self.admin)
        response = self.client.post(reverse("vendor-approve", args=[vendor_id]))

        self.assertEqual(forbidden.status_code, status.HTTP_403_FORBIDDEN)
        self.assertEqual(response.data["status"], Vendor.Status.ACTIVE)
        self.assertIsNotNone(response.data["approved_at"])

    def test_vendor_cannot_edit_other_profile(self) -> None:
        self.client.force_authenticate(self.vendor_user)

        response = self.client.patch(
            reverse("vendor-detail", args=[self.chef.pk]), {"business_name": "Mine"}, format="json"
        )
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_me_returns_own_profile(self) -> None:
        self._create_profile()

        response = self.client.get(reverse("vendor-me"))
        self.assertEqual(response.data["business_name"], "Night Beats")


class ServicePackageAPITests(VendorAPITestCase):
    def test_vendor_adds_package(self) -> None:
        self._create_profile()

        response = self.client.post(
            reverse("service-package-list"),
            {"name": "Evening set", "price": "600.00", "duration_hours": "4.00", "pricing_model": "per_event"},
            format="json",
        )

        self.assertEqual(response.status_code, status.HTTP_201_CREATED, response.data)
        self.assertEqual(response.data["vendor_name"], "Night Beats")

    def test_package_needs_profile(self) -> None:
        self.client.force_authenticate(self.vendor_user)

        response = self.client.post(reverse("service-package-list"), {"name": "Set", "price": "1.00"}, format="json")
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_vendor_cannot_edit_foreign_package(self) -> None:
        package = self.chef.packages.get()
        self.client.force_authenticate(self.vendor_user)

        response = self.client.patch(
            reverse("service-package-detail", args=[package.pk]), {"price": "1.00"}, format="json"
        )
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)
