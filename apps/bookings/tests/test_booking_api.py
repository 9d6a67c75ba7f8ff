"""Integration tests for booking API endpoints."""

from __future__ import annotations

from datetime import timedelta
from decimal import Decimal

from django.core import mail
from django.urls import reverse
from django.utils import timezone
from rest_framework import status
from rest_framework.test import APITestCase

from apps.bookings import services, tasks
from apps.bookings.exceptions import GroupBookingError
from apps.bookings.models import Booking, GroupBooking, GroupContribution
from apps.notifications.models import Notification
from apps.users.models import User
from apps.venues.models import DiscountCode, Venue, VenueAvailability, VenuePricing


class BookingAPITestCase(APITestCase):
    def setUp(self) -> None:
        self.guest = User.objects.create_user(
            email="guest@example.com",
            password="GuestPass123",
            role=User.RoleChoices.GUEST,
        )
        self.other_guest = User.objects.create_user(
            email="second@example.com",
            password="GuestPass123",
            role=User.RoleChoices.GUEST,
        )
        self.owner = User.objects.create_user(
            email="owner@example.com",
            password="OwnerPass123",
            role=User.RoleChoices.VENUE_OWNER,
        )
        self.venue = Venue.objects.create(
            owner=self.owner,
            title="Rooftop Garden",
            description="Open-air rooftop with skyline views.",
            category=Venue.Category.ROOFTOP,
            city="Dubai",
            capacity=80,
            price_per_hour=Decimal("100.00"),
            currency="USD",
            status=Venue.Status.ACTIVE,
        )
        self.event_date = timezone.localdate() + timedelta(days=10)
        self.client.force_authenticate(self.guest)
        self.list_url = reverse("booking-list")

    def _payload(self, start: str = "18:00", end: str = "22:00", **extra) -> dict:
        payload = {
            "venue": self.venue.id,
            "event_date": str(self.event_date),
            "start_time": start,
            "end_time": end,
            "guest_count": 40,
        }
        payload.update(extra)
        return payload

    def _book(self, **kwargs) -> Booking:
        response = self.client.post(self.list_url, self._payload(**kwargs), format="json")
        self.assertEqual(response.status_code, status.HTTP_201_CREATED, response.data)
        return Booking.objects.get(pk=response.data["id"])


class BookingCreateTests(BookingAPITestCase):
    def test_guest_can_create_booking_with_price_snapshot(self) -> None:
        booking = self._book()

        self.assertEqual(booking.guest, self.guest)
        self.assertEqual(booking.status, Booking.Status.PENDING_PAYMENT)
        self.assertEqual(booking.hours, Decimal("4.00"))
        self.assertEqual(booking.base_amount, Decimal("400.00"))
        self.assertEqual(booking.platform_fee, Decimal("10.00"))
        self.assertEqual(booking.total_amount, Decimal("410.00"))
        self.assertEqual(booking.venue_owner_payout, Decimal("348.50"))
        self.assertIsNotNone(booking.expires_at)
        self.assertEqual(booking.contact_email, self.guest.email)

    def test_owner_is_notified_of_new_booking(self) -> None:
        self._book()

        self.assertTrue(
            Notification.objects.filter(user=self.owner, type=Notification.Type.BOOKING_REQUEST).exists()
        )
        self.assertEqual(len(mail.outbox), 1)

    def test_client_supplied_total_is_ignored(self) -> None:
        booking = self._book(total_amount="1.00")

        self.assertEqual(booking.total_amount, Decimal("410.00"))

    def test_overnight_booking(self) -> None:
        booking = self._book(start="22:00", end="02:00")

        self.assertEqual(booking.hours, Decimal("4.00"))
        self.assertEqual(booking.ends_at - booking.starts_at, timedelta(hours=4))

    def test_prevent_double_booking_on_overlap(self) -> None:
        self._book(start="18:00", end="22:00")

        self.client.force_authenticate(self.other_guest)
        response = self.client.post(self.list_url, self._payload(start="21:00", end="23:00"), format="json")
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST, response.data)
        self.assertIn("non_field_errors", response.data)
        self.assertEqual(Booking.objects.count(), 1)

    def test_adjacent_bookings_do_not_conflict(self) -> None:
        self._book(start="18:00", end="22:00")

        self.client.force_authenticate(self.other_guest)
        response = self.client.post(self.list_url, self._payload(start="22:00", end="23:30"), format="json")
        self.assertEqual(response.status_code, status.HTTP_201_CREATED, response.data)

    def test_expired_hold_releases_the_slot(self) -> None:
        first = self._book()
        Booking.objects.filter(pk=first.pk).update(expires_at=timezone.now() - timedelta(minutes=1))

        self.client.force_authenticate(self.other_guest)
        response = self.client.post(self.list_url, self._payload(), format="json")
        self.assertEqual(response.status_code, status.HTTP_201_CREATED, response.data)

    def test_owner_block_prevents_booking(self) -> None:
        VenueAvailability.objects.create(venue=self.venue, blocked_date=self.event_date, reason="Maintenance")

        response = self.client.post(self.list_url, self._payload(), format="json")
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn("blocked", response.data["non_field_errors"][0])

    def test_previous_day_overnight_block_prevents_early_booking(self) -> None:
        VenueAvailability.objects.create(
            venue=self.venue,
            blocked_date=self.event_date - timedelta(days=1),
            start_time="20:00",
            end_time="04:00",
        )

        response = self.client.post(self.list_url, self._payload(start="02:00", end="05:00"), format="json")
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_capacity_is_enforced(self) -> None:
        response = self.client.post(self.list_url, self._payload(guest_count=200), format="json")
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn("guest_count", response.data)

    def test_inactive_venue_cannot_be_booked(self) -> None:
        self.venue.deactivate()

        response = self.client.post(self.list_url, self._payload(), format="json")
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_past_event_is_rejected(self) -> None:
        payload = self._payload()
        payload["event_date"] = str(timezone.localdate() - timedelta(days=1))

        response = self.client.post(self.list_url, payload, format="json")
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_anonymous_cannot_book(self) -> None:
        self.client.force_authenticate(None)

        response = self.client.post(self.list_url, self._payload(), format="json")
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)


class DiscountAndPricingTests(BookingAPITestCase):
    def test_discount_code_is_applied_and_counted(self) -> None:
        DiscountCode.objects.create(
            code="summer10",
            owner=self.owner,
            venue=self.venue,
            discount_type=DiscountCode.DiscountType.PERCENTAGE,
            value=Decimal("10"),
        )

        booking = self._book(discount_code="SUMMER10")

        self.assertEqual(booking.discount_amount, Decimal("40.00"))
        self.assertEqual(booking.total_amount, Decimal("369.00"))
        self.assertEqual(DiscountCode.objects.get(code="SUMMER10").times_used, 1)

    def test_exhausted_discount_code_is_rejected(self) -> None:
        DiscountCode.objects.create(
            code="ONCE",
            owner=self.owner,
            discount_type=DiscountCode.DiscountType.FIXED_AMOUNT,
            value=Decimal("25"),
            max_uses=1,
            times_used=1,
        )

        response = self.client.post(self.list_url, self._payload(discount_code="ONCE"), format="json")
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn("usage limit", response.data["non_field_errors"][0])

    def test_code_scoped_to_other_venue_is_rejected(self) -> None:
        other = Venue.objects.create(
            owner=self.owner,
            title="Garden Hall",
            description="Garden",
            city="Dubai",
            capacity=50,
            price_per_hour=Decimal("80.00"),
            status=Venue.Status.ACTIVE,
        )
        DiscountCode.objects.create(
            code="GARDEN",
            owner=self.owner,
            venue=other,
            discount_type=DiscountCode.DiscountType.PERCENTAGE,
            value=Decimal("5"),
        )

        response = self.client.post(
            reverse("booking-quote"), self._payload(discount_code="garden"), format="json"
        )
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_quote_applies_pricing_rule(self) -> None:
        VenuePricing.objects.create(
            venue=self.venue,
            name="Peak",
            days_of_week=[self.event_date.weekday()],
            modifier_type=VenuePricing.ModifierType.PERCENTAGE,
            modifier_value=Decimal("20"),
            priority=1,
        )
        self.client.force_authenticate(None)

        response = self.client.post(reverse("booking-quote"), self._payload(), format="json")

        self.assertEqual(response.status_code, status.HTTP_200_OK, response.data)
        self.assertEqual(Decimal(str(response.data["rate"])), Decimal("120.00"))
        self.assertEqual(Decimal(str(response.data["total_amount"])), Decimal("492.00"))
        self.assertFalse(Booking.objects.exists())

    def test_availability_reports_conflicts(self) -> None:
        self._book()
        url = reverse("booking-availability")

        busy = self.client.post(url, self._payload(start="20:00", end="23:00"), format="json")
        free = self.client.post(url, self._payload(start="10:00", end="12:00"), format="json")

        self.assertFalse(busy.data["available"])
        self.assertEqual(busy.data["conflict"], "booking")
        self.assertTrue(free.data["available"])


class BookingLifecycleTests(BookingAPITestCase):
    def test_owner_confirms_booking(self) -> None:
        booking = self._book()
        self.client.force_authenticate(self.owner)

        response = self.client.post(reverse("booking-confirm", args=[booking.pk]))

        self.assertEqual(response.status_code, status.HTTP_200_OK, response.data)
        booking.refresh_from_db()
        self.assertEqual(booking.status, Booking.Status.CONFIRMED)
        self.assertIsNone(booking.expires_at)

    def test_guest_cannot_confirm(self) -> None:
        booking = self._book()

        response = self.client.post(reverse("booking-confirm", args=[booking.pk]))
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_owner_rejects_booking(self) -> None:
        booking = self._book()
        self.client.force_authenticate(self.owner)

        response = self.client.post(reverse("booking-reject", args=[booking.pk]), {"reason": "Private event"})

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        booking.refresh_from_db()
        self.assertEqual(booking.status, Booking.Status.REJECTED)
        self.assertEqual(booking.cancellation_reason, "Private event")

    def test_guest_cancels_unpaid_booking(self) -> None:
        booking = self._book()

        response = self.client.post(reverse("booking-cancel", args=[booking.pk]), {"reason": "Plans changed"})

        self.assertEqual(response.status_code, status.HTTP_200_OK, response.data)
        booking.refresh_from_db()
        self.assertEqual(booking.status, Booking.Status.CANCELLED)
        self.assertEqual(booking.cancellation_source, Booking.CancellationSource.GUEST)

    def test_cancelled_booking_cannot_be_cancelled_again(self) -> None:
        booking = self._book()
        self.client.post(reverse("booking-cancel", args=[booking.pk]))

        response = self.client.post(reverse("booking-cancel", args=[booking.pk]))
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_strangers_cannot_see_booking(self) -> None:
        booking = self._book()
        self.client.force_authenticate(self.other_guest)

        response = self.client.get(reverse("booking-detail", args=[booking.pk]))
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)

    def test_owner_lists_bookings_of_own_venues(self) -> None:
        self._book()
        self.client.force_authenticate(self.owner)

        response = self.client.get(self.list_url)
        self.assertEqual(response.data["count"], 1)

    def test_guest_edits_contact_details_only(self) -> None:
        booking = self._book()

        response = self.client.patch(
            reverse("booking-detail", args=[booking.pk]),
            {"contact_phone": "+971500000000", "total_amount": "1.00"},
            format="json",
        )

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        booking.refresh_from_db()
        self.assertEqual(booking.contact_phone, "+971500000000")
        self.assertEqual(booking.total_amount, Decimal("410.00"))


class BookingChangeRequestTests(BookingAPITestCase):
    def test_change_request_is_quoted_and_approved(self) -> None:
        booking = self._book(start="18:00", end="22:00")

        response = self.client.post(
            reverse("booking-request-change", args=[booking.pk]),
            {"event_date": str(self.event_date), "start_time": "18:00", "end_time": "23:00"},
            format="json",
        )
        self.assertEqual(response.status_code, status.HTTP_200_OK, response.data)
        booking.refresh_from_db()
        self.assertEqual(booking.change_status, Booking.ChangeStatus.PENDING)
        self.assertEqual(booking.change_extra_cost, Decimal("102.50"))

        self.client.force_authenticate(self.owner)
        response = self.client.post(reverse("booking-approve-change", args=[booking.pk]), {"response": "Sure"})
        self.assertEqual(response.status_code, status.HTTP_200_OK, response.data)
        booking.refresh_from_db()
        self.assertEqual(booking.change_status, Booking.ChangeStatus.APPROVED)
        self.assertEqual(booking.hours, Decimal("5.00"))
        self.assertEqual(booking.total_amount, Decimal("512.50"))
        self.assertEqual(booking.base_amount, Decimal("500.00"))
        self.assertEqual(booking.platform_fee, Decimal("12.50"))
        self.assertEqual(booking.venue_owner_payout, Decimal("435.63"))
        # Not paid yet, so the extra is part of the amount still due
        self.assertEqual(booking.change_payment_status, Booking.ChangePaymentStatus.PENDING)
        self.assertFalse(booking.payments.exists())

    def test_change_into_taken_slot_is_rejected(self) -> None:
        booking = self._book(start="12:00", end="14:00")
        self.client.force_authenticate(self.other_guest)
        self._book(start="18:00", end="22:00")
        self.client.force_authenticate(self.guest)

        response = self.client.post(
            reverse("booking-request-change", args=[booking.pk]),
            {"event_date": str(self.event_date), "start_time": "17:00", "end_time": "19:00"},
            format="json",
        )
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_moving_within_own_window_is_allowed(self) -> None:
        booking = self._book(start="18:00", end="22:00")

        response = self.client.post(
            reverse("booking-request-change", args=[booking.pk]),
            {"event_date": str(self.event_date), "start_time": "19:00", "end_time": "21:00"},
            format="json",
        )
        self.assertEqual(response.status_code, status.HTTP_200_OK, response.data)
        booking.refresh_from_db()
        self.assertEqual(booking.change_extra_cost, Decimal("0.00"))

    def test_owner_declines_change(self) -> None:
        booking = self._book()
        self.client.post(
            reverse("booking-request-change", args=[booking.pk]),
            {"event_date": str(self.event_date + timedelta(days=1)), "start_time": "18:00", "end_time": "22:00"},
            format="json",
        )
        self.client.force_authenticate(self.owner)

        response = self.client.post(reverse("booking-decline-change", args=[booking.pk]))

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        booking.refresh_from_db()
        self.assertEqual(booking.change_status, Booking.ChangeStatus.DECLINED)
        self.assertEqual(booking.event_date, self.event_date)


class BookingTaskTests(BookingAPITestCase):
    def test_expire_pending_bookings(self) -> None:
        booking = self._book()
        Booking.objects.filter(pk=booking.pk).update(expires_at=timezone.now() - timedelta(seconds=1))

        result = tasks.expire_pending_bookings()

        self.assertEqual(result, {"expired": 1})
        booking.refresh_from_db()
        self.assertEqual(booking.status, Booking.Status.EXPIRED)
        self.assertTrue(Notification.objects.filter(user=self.guest, type=Notification.Type.BOOKING_EXPIRED).exists())

    def test_hold_expiration_skips_live_holds(self) -> None:
        booking = self._book()

        self.assertFalse(tasks.schedule_hold_expiration(booking.pk))
        booking.refresh_from_db()
        self.assertEqual(booking.status, Booking.Status.PENDING_PAYMENT)

    def test_complete_finished_bookings_requests_review(self) -> None:
        booking = self._book()
        Booking.objects.filter(pk=booking.pk).update(
            status=Booking.Status.CONFIRMED,
            starts_at=timezone.now() - timedelta(hours=5),
            ends_at=timezone.now() - timedelta(hours=1),
        )

        result = tasks.complete_finished_bookings()

        self.assertEqual(result, {"completed": 1})
        booking.refresh_from_db()
        self.assertEqual(booking.status, Booking.Status.COMPLETED)
        self.assertTrue(Notification.objects.filter(user=self.guest, type=Notification.Type.REVIEW_REQUEST).exists())

    def test_reminders_are_sent_once(self) -> None:
        booking = self._book()
        Booking.objects.filter(pk=booking.pk).update(
            status=Booking.Status.CONFIRMED,
            starts_at=timezone.now() + timedelta(hours=12),
            ends_at=timezone.now() + timedelta(hours=16),
        )

        self.assertEqual(tasks.send_upcoming_booking_reminders(), {"sent": 1})
        self.assertEqual(tasks.send_upcoming_booking_reminders(), {"sent": 0})


class GroupBookingTests(BookingAPITestCase):
    def _create_group(self, **extra) -> GroupBooking:
        payload = {
            "venue": self.venue.id,
            "title": "Graduation party",
            "event_date": str(self.event_date),
            "start_time": "18:00",
            "end_time": "21:00",
            "guest_count": 30,
            "participants": [
                {"email": self.guest.email, "name": "Guest"},
                {"email": self.other_guest.email, "name": "Second"},
                {"email": "friend@example.com", "name": "Friend"},
            ],
        }
        payload.update(extra)
        response = self.client.post(reverse("group-booking-list"), payload, format="json")
        self.assertEqual(response.status_code, status.HTTP_201_CREATED, response.data)
        return GroupBooking.objects.get(pk=response.data["id"])

    def test_split_equally_adds_up_to_total(self) -> None:
        group = self._create_group()

        amounts = [c.amount for c in group.contributions.all()]
        self.assertEqual(group.total_amount, Decimal("307.50"))
        self.assertEqual(amounts, [Decimal("102.50"), Decimal("102.50"), Decimal("102.50")])
        self.assertEqual(len(mail.outbox), 3)

    def test_custom_amounts_must_match_total(self) -> None:
        response = self.client.post(
            reverse("group-booking-list"),
            {
                "venue": self.venue.id,
                "title": "Uneven",
                "event_date": str(self.event_date),
                "start_time": "18:00",
                "end_time": "21:00",
                "payment_plan": GroupBooking.PaymentPlan.CUSTOM_AMOUNTS,
                "participants": [
                    {"email": "a@example.com", "amount": "100.00"},
                    {"email": "b@example.com", "amount": "100.00"},
                ],
            },
            format="json",
        )
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_installments_are_scheduled(self) -> None:
        group = self._create_group(payment_plan=GroupBooking.PaymentPlan.INSTALLMENTS, installment_count=3)

        contribution = group.contributions.get(email=self.guest.email)
        self.assertEqual(contribution.installments.count(), 3)
        self.assertEqual(sum(i.amount for i in contribution.installments.all()), contribution.amount)

    def test_group_is_finalised_when_everyone_paid(self) -> None:
        group = self._create_group()
        url = reverse("group-booking-contribute", args=[group.pk])

        self.client.post(url)
        self.client.force_authenticate(self.other_guest)
        self.client.post(url)
        friend = group.contributions.get(email="friend@example.com")
        self.client.force_authenticate(self.guest)
        response = self.client.post(url, {"contribution": friend.pk})

        self.assertEqual(response.status_code, status.HTTP_200_OK, response.data)
        group.refresh_from_db()
        self.assertEqual(group.status, GroupBooking.Status.FINALIZED)
        self.assertIsNotNone(group.booking)
        self.assertEqual(group.booking.status, Booking.Status.CONFIRMED)
        self.assertEqual(group.booking.payment_status, Booking.PaymentStatus.PAID)

    def test_contributor_cannot_pay_twice(self) -> None:
        group = self._create_group()
        url = reverse("group-booking-contribute", args=[group.pk])

        self.client.post(url)
        response = self.client.post(url)

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(
            group.contributions.filter(status=GroupContribution.Status.PAID).count(), 1
        )

    def test_only_organizer_cancels(self) -> None:
        group = self._create_group()
        self.client.force_authenticate(self.other_guest)

        response = self.client.post(reverse("group-booking-cancel", args=[group.pk]))
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_finalised_booking_keeps_the_price_the_group_paid(self) -> None:
        group = self._create_group()
        self.venue.price_per_hour = Decimal("200.00")
        self.venue.save(update_fields=["price_per_hour"])
        url = reverse("group-booking-contribute", args=[group.pk])

        self.client.post(url)
        self.client.force_authenticate(self.other_guest)
        self.client.post(url)
        friend = group.contributions.get(email="friend@example.com")
        self.client.force_authenticate(self.guest)
        self.client.post(url, {"contribution": friend.pk})

        group.refresh_from_db()
        booking = group.booking
        self.assertIsNotNone(booking)
        self.assertEqual(booking.hourly_rate, Decimal("100.00"))
        self.assertEqual(booking.base_amount, Decimal("300.00"))
        self.assertEqual(booking.platform_fee, Decimal("7.50"))
        self.assertEqual(booking.total_amount, group.total_amount)
        self.assertEqual(booking.venue_owner_payout, Decimal("261.38"))

    def test_each_contribution_becomes_a_payment_of_the_booking(self) -> None:
        group = self._create_group()
        url = reverse("group-booking-contribute", args=[group.pk])

        self.client.post(url)
        self.client.force_authenticate(self.other_guest)
        self.client.post(url)
        friend = group.contributions.get(email="friend@example.com")
        self.client.force_authenticate(self.guest)
        self.client.post(url, {"contribution": friend.pk})

        group.refresh_from_db()
        payments = group.booking.payments.order_by("pk")
        self.assertEqual(payments.count(), 3)
        self.assertEqual(sum(p.amount for p in payments), Decimal("307.50"))
        self.assertEqual({p.status for p in payments}, {"succeeded"})
        self.assertEqual(payments[1].payer, self.other_guest)

    def test_stale_contribution_cannot_be_paid_again(self) -> None:
        group = self._create_group()
        contribution = group.contributions.get(email=self.guest.email)
        stale = GroupContribution.objects.get(pk=contribution.pk)

        services.record_contribution_payment(contribution)

        with self.assertRaises(GroupBookingError):
            services.record_contribution_payment(stale)
        contribution.refresh_from_db()
        self.assertEqual(contribution.status, GroupContribution.Status.PAID)

    def test_payment_on_stale_group_sees_the_cancellation(self) -> None:
        group = self._create_group()
        contribution = group.contributions.select_related("group_booking").get(email=self.guest.email)
        GroupBooking.objects.filter(pk=group.pk).update(status=GroupBooking.Status.CANCELLED)

        with self.assertRaises(GroupBookingError):
            services.record_contribution_payment(contribution)
        contribution.refresh_from_db()
        self.assertEqual(contribution.status, GroupContribution.Status.PENDING)
