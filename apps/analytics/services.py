"""Aggregations behind the analytics endpoints.

Amounts are stored in each venue's own currency. Sums are therefore taken
per currency in the database and converted to the reporting currency
afterwards.
"""

from __future__ import annotations

import logging
from collections import defaultdict
from datetime import timedelta
from decimal import Decimal
from typing import Any, Iterable

from django.conf import settings  # type: ignore
from django.core.cache import cache  # type: ignore
from django.db.models import Count, F, Sum  # type: ignore
from django.db.models.functions import TruncMonth  # type: ignore
from django.utils import timezone  # type: ignore

from apps.bookings.models import Booking
from apps.finances.models import Payment
from apps.reviews.models import Review
from apps.reviews.services import average_rating
from apps.users.permissions import is_platform_admin
from apps.venues.models import Venue
from shared.domain.currency import convert_currency
from shared.domain.value_objects import to_cents

logger = logging.getLogger(__name__)

ZERO = Decimal("0.00")
TOP_VENUES_LIMIT = 5
MONTHS_IN_SERIES = 12

COLLECTED_PAYMENT_STATUSES = (
    Payment.Status.SUCCEEDED,
    Payment.Status.PARTIALLY_REFUNDED,
    Payment.Status.REFUNDED,
)
EARNING_PAYMENT_STATUSES = (Booking.PaymentStatus.PAID, Booking.PaymentStatus.PARTIALLY_REFUNDED)


def _converted_total(rows: Iterable[dict], currency: str, key: str = "total") -> Decimal:
    total = ZERO
    for row in rows:
        total += convert_currency(row[key] or ZERO, row["currency"], currency)
    return to_cents(total)


def _net_collected(payments) -> Any:
    return (
        payments.filter(status__in=COLLECTED_PAYMENT_STATUSES)
        .values("currency")
        .annotate(total=Sum(F("amount") - F("refunded_amount")))
        .order_by()
    )


def overview_for(user, currency: str) -> dict[str, Any]:
    """Dashboard numbers: whole platform for admins, own venues for owners, own bookings otherwise."""
    if is_platform_admin(user):
        venues = Venue.objects.all()
        bookings = Booking.objects.all()
        payments = Payment.objects.all()
        reviews = Review.objects.all()
    elif user.is_venue_owner():
        venues = Venue.objects.filter(owner=user)
        bookings = Booking.objects.filter(venue__owner=user)
        payments = Payment.objects.filter(booking__venue__owner=user)
        reviews = Review.objects.filter(venue__owner=user)
    else:
        venues = Venue.objects.none()
        bookings = Booking.objects.filter(guest=user)
        payments = Payment.objects.filter(booking__guest=user)
        reviews = Review.objects.filter(guest=user)

    upcoming = bookings.filter(
        status__in=[Booking.Status.PENDING_PAYMENT, Booking.Status.CONFIRMED],
        starts_at__gte=timezone.now(),
    )
    ratings = list(reviews.values_list("rating", flat=True))
    return {
        "currency": currency,
        "venues": venues.count(),
        "bookings": bookings.count(),
        "upcoming_bookings": upcoming.count(),
        "revenue": _converted_total(_net_collected(payments), currency),
        "reviews": len(ratings),
        "avg_rating": average_rating(ratings) if ratings else None,
    }


def _monthly_revenue(currency: str) -> list[dict[str, Any]]:
    since = timezone.now() - timedelta(days=31 * MONTHS_IN_SERIES)
    rows = (
        Payment.objects.filter(paid_at__gte=since, status__in=COLLECTED_PAYMENT_STATUSES)
        .annotate(month=TruncMonth("paid_at"))
        .values("month", "currency")
        .annotate(total=Sum(F("amount") - F("refunded_amount")))
        .order_by("month")
    )
    by_month: dict[str, Decimal] = defaultdict(lambda: ZERO)
    for row in rows:
        by_month[row["month"].strftime("%Y-%m")] += convert_currency(row["total"] or ZERO, row["currency"], currency)
    return [{"month": month, "revenue": to_cents(amount)} for month, amount in sorted(by_month.items())]


def _top_venues(currency: str) -> list[dict[str, Any]]:
    venues = (
        Venue.objects.filter(
            bookings__status__in=[Booking.Status.CONFIRMED, Booking.Status.COMPLETED],
        )
        .annotate(booking_count=Count("bookings"), booked_total=Sum("bookings__total_amount"))
        .order_by("-booking_count", "-booked_total")[:TOP_VENUES_LIMIT]
    )
    return [
        {
            "id": venue.id,
            "title": venue.title,
            "city": venue.city,
            "bookings": venue.booking_count,
            "revenue": to_cents(convert_currency(venue.booked_total or ZERO, venue.currency, currency)),
            "rating": venue.rating,
        }
        for venue in venues
    ]


def build_admin_report(currency: str) -> dict[str, Any]:
    by_status = dict(
        Booking.objects.values_list("status").annotate(total=Count("id")).order_by()
    )
    earning = (
        Booking.objects.filter(payment_status__in=EARNING_PAYMENT_STATUSES).values("currency").order_by()
    )
    fees = earning.annotate(total=Sum("platform_fee"))
    earnings = earning.annotate(total=Sum(F("total_amount") - F("venue_owner_payout")))

    return {
        "currency": currency,
        "generated_at": timezone.now(),
        "bookings_by_status": {choice: by_status.get(choice, 0) for choice in Booking.Status.values},
        "total_bookings": sum(by_status.values()),
        "revenue": _converted_total(_net_collected(Payment.objects.all()), currency),
        "platform_fees": _converted_total(fees, currency),
        "platform_earnings": _converted_total(earnings, currency),
        "active_venues": Venue.objects.filter(status=Venue.Status.ACTIVE).count(),
        "monthly_revenue": _monthly_revenue(currency),
        "top_venues": _top_venues(currency),
    }


def _report_cache_key(currency: str) -> str:
    return f"analytics:admin-report:{currency}"


def get_admin_report(currency: str, *, refresh: bool = False) -> dict[str, Any]:
    """Platform report, cached for ``ANALYTICS_CACHE_TIMEOUT`` seconds."""
    key = _report_cache_key(currency)
    if not refresh:
        cached = cache.get(key)
        if cached is not None:
            return cached

    report = build_admin_report(currency)
    cache.set(key, report, getattr(settings, "ANALYTICS_CACHE_TIMEOUT", 300))
    logger.info("Admin analytics report rebuilt for %s", currency)
    return report


__all__ = [
    "build_admin_report",
    "get_admin_report",
    "overview_for",
]
