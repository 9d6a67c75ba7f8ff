"""Venue domain models for Party2Go.

A venue is an event space rented by the hour. Owners publish it through
moderation (draft -> pending -> active), block dates on its calendar,
attach dynamic pricing rules and hand out discount codes.
"""

from __future__ import annotations

from datetime import datetime, timedelta
from decimal import Decimal

from django.conf import settings  # type: ignore
from django.core.validators import MinValueValidator  # type: ignore
from django.db import models  # type: ignore
from django.utils import timezone  # type: ignore
from django.utils.text import slugify  # type: ignore
from django.utils.translation import gettext_lazy as _  # type: ignore
from mptt.models import MPTTModel, TreeForeignKey  # type: ignore

from apps.bookings.domain.pricing import resolve_window
from shared.domain.currency import SUPPORTED_CURRENCIES

CURRENCY_CHOICES = [(code, code) for code in SUPPORTED_CURRENCIES]


class Market(MPTTModel):
    """Region tree used for search: country -> city -> district."""

    name = models.CharField(max_length=255)
    parent = TreeForeignKey(
        "self",
        on_delete=models.CASCADE,
        null=True,
        blank=True,
        related_name="children",
        help_text=_("Empty for a country, the country for a city."),
    )
    slug = models.SlugField(max_length=255, unique=True)
    country_code = models.CharField(max_length=2, blank=True)
    currency = models.CharField(max_length=3, choices=CURRENCY_CHOICES, default="USD")
    is_active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class MPTTMeta:
        order_insertion_by = ["name"]

    class Meta:
        verbose_name = _("Market")
        verbose_name_plural = _("Markets")
        ordering = ["tree_id", "lft"]

    def __str__(self) -> str:
        if self.parent_id:
            return f"{self.parent.name} - {self.name}"
        return self.name


class Venue(models.Model):
    """Event space listed on the marketplace."""

    class Status(models.TextChoices):
        DRAFT = "draft", _("Draft")
        PENDING = "pending", _("Pending review")
        ACTIVE = "active", _("Active")
        INACTIVE = "inactive", _("Inactive")
        REJECTED = "rejected", _("Rejected")

    class Category(models.TextChoices):
        BANQUET_HALL = "banquet_hall", _("Banquet hall")
        GARDEN = "garden", _("Garden")
        ROOFTOP = "rooftop", _("Rooftop")
        RESTAURANT = "restaurant", _("Restaurant")
        BEACH = "beach", _("Beach")
        STUDIO = "studio", _("Studio")
        CONFERENCE = "conference", _("Conference room")
        VILLA = "villa", _("Villa")
        OTHER = "other", _("Other")

    owner = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="venues",
    )
    title = models.CharField(max_length=255)
    slug = models.SlugField(max_length=255, unique=True, blank=True)
    description = models.TextField()
    category = models.CharField(max_length=30, choices=Category.choices, default=Category.OTHER)
    market = models.ForeignKey(
        Market,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="venues",
    )
    city = models.CharField(max_length=120)
    address = models.CharField(max_length=255, blank=True)
    latitude = models.DecimalField(max_digits=9, decimal_places=6, null=True, blank=True)
    longitude = models.DecimalField(max_digits=9, decimal_places=6, null=True, blank=True)
    capacity = models.PositiveIntegerField(validators=[MinValueValidator(1)])
    price_per_hour = models.DecimalField(
        max_digits=10,
        decimal_places=2,
        validators=[MinValueValidator(Decimal("0.00"))],
    )
    currency = models.CharField(max_length=3, choices=CURRENCY_CHOICES, default="USD")
    amenities = models.JSONField(default=list, blank=True)
    status = models.CharField(max_length=20, choices=Status.choices, default=Status.DRAFT)
    rejection_reason = models.TextField(blank=True)
    rating = models.DecimalField(max_digits=2, decimal_places=1, default=Decimal("0.0"))
    review_count = models.PositiveIntegerField(default=0)
    is_featured = models.BooleanField(default=False)
    published_at = models.DateTimeField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        verbose_name = _("Venue")
        verbose_name_plural = _("Venues")
        ordering = ["-created_at"]
        indexes = [
            models.Index(fields=["status"]),
            models.Index(fields=["owner", "status"]),
            models.Index(fields=["city", "status"]),
        ]

    def __str__(self) -> str:
        return self.title

    @property
    def is_bookable(self) -> bool:
        return self.status == self.Status.ACTIVE

    def submit_for_review(self) -> None:
        self.status = self.Status.PENDING
        self.rejection_reason = ""
        self.save(update_fields=["status", "rejection_reason", "updated_at"])

    def approve(self) -> None:
        self.status = self.Status.ACTIVE
        self.rejection_reason = ""
        self.published_at = self.published_at or timezone.now()
        self.save(update_fields=["status", "rejection_reason", "published_at", "updated_at"])

    def reject(self, reason: str) -> None:
        self.status = self.Status.REJECTED
        self.rejection_reason = reason
        self.save(update_fields=["status", "rejection_reason", "updated_at"])

    def deactivate(self) -> None:
        if self.status == self.Status.ACTIVE:
            self.status = self.Status.INACTIVE
            self.save(update_fields=["status", "updated_at"])

    def save(self, *args, **kwargs):  # type: ignore
        if not self.slug:
            base_slug = slugify(self.title)[:200] or "venue"
            candidate = base_slug
            counter = 1
            while self.__class__.objects.filter(slug=candidate).exclude(pk=self.pk).exists():
                counter += 1
                candidate = f"{base_slug}-{counter}"
            self.slug = candidate
        super().save(*args, **kwargs)


class VenuePhoto(models.Model):
    venue = models.ForeignKey(Venue, on_delete=models.CASCADE, related_name="photos")
    image = models.ImageField(upload_to="venues/photos/")
    caption = models.CharField(max_length=255, blank=True)
    order = models.PositiveIntegerField(default=0)
    is_primary = models.BooleanField(default=False)
    uploaded_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        verbose_name = _("Venue photo")
        verbose_name_plural = _("Venue photos")
        ordering = ["order", "id"]

    def __str__(self) -> str:
        return f"{self.venue.title} [{self.order}]"


class VenueAvailability(models.Model):
    """Owner block on the venue calendar, for a whole day or a time range."""

    venue = models.ForeignKey(Venue, on_delete=models.CASCADE, related_name="blocks")
    blocked_date = models.DateField()
    start_time = models.TimeField(null=True, blank=True)
    end_time = models.TimeField(null=True, blank=True)
    reason = models.CharField(max_length=255, blank=True)
    created_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="created_venue_blocks",
    )
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        verbose_name = _("Venue block")
        verbose_name_plural = _("Venue blocks")
        ordering = ["blocked_date", "start_time"]
        indexes = [
            models.Index(fields=["venue", "blocked_date"]),
        ]

    def __str__(self) -> str:
        if self.is_full_day:
            return f"{self.venue.title}: {self.blocked_date}"
        return f"{self.venue.title}: {self.blocked_date} {self.start_time}-{self.end_time}"

    @property
    def is_full_day(self) -> bool:
        return self.start_time is None or self.end_time is None

    def window(self, tz=None) -> tuple[datetime, datetime]:
        """Blocked period as aware datetimes; partial blocks may run past midnight."""
        tz = tz or timezone.get_current_timezone()
        if self.is_full_day:
            start = datetime.combine(self.blocked_date, datetime.min.time(), tzinfo=tz)
            return start, start + timedelta(days=1)
        return resolve_window(self.blocked_date, self.start_time, self.end_time, tz=tz)


class VenuePricing(models.Model):
    """Dynamic pricing rule that adjusts the hourly rate on matching dates."""

    class ModifierType(models.TextChoices):
        PERCENTAGE = "percentage", _("Percentage")
        FIXED_AMOUNT = "fixed_amount", _("Fixed amount")

    venue = models.ForeignKey(Venue, on_delete=models.CASCADE, related_name="pricing_rules")
    name = models.CharField(max_length=120)
    days_of_week = models.JSONField(
        default=list,
        blank=True,
        help_text=_("Weekdays the rule applies to, 0 = Monday. Empty means every day."),
    )
    start_date = models.DateField(null=True, blank=True)
    end_date = models.DateField(null=True, blank=True)
    modifier_type = models.CharField(
        max_length=20,
        choices=ModifierType.choices,
        default=ModifierType.PERCENTAGE,
    )
    modifier_value = models.DecimalField(
        max_digits=10,
        decimal_places=2,
        help_text=_("Percent or amount added to the hourly rate; negative values lower it."),
    )
    priority = models.PositiveSmallIntegerField(
        default=0,
        help_text=_("When several rules match, the highest priority wins."),
    )
    is_active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        verbose_name = _("Pricing rule")
        verbose_name_plural = _("Pricing rules")
        ordering = ["-priority", "id"]
        constraints = [
            models.CheckConstraint(
                condition=(
                    models.Q(start_date__isnull=True)
                    | models.Q(end_date__isnull=True)
                    | models.Q(end_date__gte=models.F("start_date"))
                ),
                name="venue_pricing_valid_date_range",
            ),
        ]

    def __str__(self) -> str:
        return f"{self.venue.title}: {self.name}"


class DiscountCode(models.Model):
    """Promo code for one venue of an owner or, created by admins, platform wide."""

    class DiscountType(models.TextChoices):
        PERCENTAGE = "percentage", _("Percentage")
        FIXED_AMOUNT = "fixed_amount", _("Fixed amount")

    code = models.CharField(max_length=40, unique=True)
    owner = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="discount_codes",
    )
    venue = models.ForeignKey(
        Venue,
        on_delete=models.CASCADE,
        null=True,
        blank=True,
        related_name="discount_codes",
        help_text=_("Empty means the code applies to every venue."),
    )
    discount_type = models.CharField(
        max_length=20,
        choices=DiscountType.choices,
        default=DiscountType.PERCENTAGE,
    )
    value = models.DecimalField(
        max_digits=10,
        decimal_places=2,
        validators=[MinValueValidator(Decimal("0.01"))],
    )
    expires_at = models.DateTimeField(null=True, blank=True)
    max_uses = models.PositiveIntegerField(null=True, blank=True)
    times_used = models.PositiveIntegerField(default=0)
    is_active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        verbose_name = _("Discount code")
        verbose_name_plural = _("Discount codes")
        ordering = ["-created_at"]
        constraints = [
            models.CheckConstraint(
                condition=~models.Q(discount_type="percentage") | models.Q(value__lte=100),
                name="discount_percentage_at_most_100",
            ),
        ]

    def __str__(self) -> str:
        return self.code

    def save(self, *args, **kwargs):  # type: ignore
        self.code = self.code.strip().upper()
        super().save(*args, **kwargs)

    @property
    def is_exhausted(self) -> bool:
        return self.max_uses is not None and self.times_used >= self.max_uses

    def is_expired(self, at: datetime | None = None) -> bool:
        return bool(self.expires_at and self.expires_at <= (at or timezone.now()))

    def applies_to(self, venue: Venue) -> bool:
        return self.venue_id is None or self.venue_id == venue.pk
