"""Vendor domain models for Party2Go."""

from __future__ import annotations

from decimal import Decimal

from django.conf import settings  # type: ignore
from django.core.validators import MinValueValidator  # type: ignore
from django.db import models  # type: ignore
from django.utils import timezone  # type: ignore
from django.utils.text import slugify  # type: ignore
from django.utils.translation import gettext_lazy as _  # type: ignore

from apps.venues.models import CURRENCY_CHOICES


class Vendor(models.Model):
    """Service provider profile owned by a vendor user."""

    class Status(models.TextChoices):
        PENDING_APPROVAL = "pending_approval", _("Pending approval")
        ACTIVE = "active", _("Active")
        INACTIVE = "inactive", _("Inactive")

    class ServiceCategory(models.TextChoices):
        CATERING = "catering", _("Catering & food service")
        PHOTOGRAPHY = "photography", _("Photography & videography")
        DJ = "dj", _("DJ & music")
        DECORATIONS = "decorations", _("Decorations & flowers")
        ENTERTAINMENT = "entertainment", _("Entertainment & performers")
        PLANNING = "planning", _("Event planning & coordination")
        TRANSPORTATION = "transportation", _("Transportation")
        SECURITY = "security", _("Security services")
        CLEANING = "cleaning", _("Cleaning services")
        OTHER = "other", _("Other services")

    user = models.OneToOneField(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="vendor_profile",
    )
    business_name = models.CharField(max_length=200)
    slug = models.SlugField(max_length=220, unique=True, blank=True)
    service_category = models.CharField(
        max_length=30,
        choices=ServiceCategory.choices,
        default=ServiceCategory.OTHER,
    )
    market = models.ForeignKey(
        "venues.Market",
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="vendors",
    )
    service_areas = models.JSONField(default=list, blank=True, help_text=_("Cities or areas served"))
    description = models.TextField()
    contact_email = models.EmailField(blank=True)
    contact_phone = models.CharField(max_length=20, blank=True)
    website = models.URLField(blank=True)
    years_in_business = models.PositiveSmallIntegerField(null=True, blank=True)
    status = models.CharField(max_length=20, choices=Status.choices, default=Status.PENDING_APPROVAL)
    approved_at = models.DateTimeField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        verbose_name = _("Vendor")
        verbose_name_plural = _("Vendors")
        ordering = ["business_name"]
        indexes = [
            models.Index(fields=["service_category", "status"]),
        ]

    def __str__(self) -> str:
        return self.business_name

    def approve(self) -> None:
        self.status = self.Status.ACTIVE
        self.approved_at = self.approved_at or timezone.now()
        self.save(update_fields=["status", "approved_at", "updated_at"])

    def deactivate(self) -> None:
        self.status = self.Status.INACTIVE
        self.save(update_fields=["status", "updated_at"])

    def save(self, *args, **kwargs):  # type: ignore
        if not self.slug:
            base_slug = slugify(self.business_name)[:200] or "vendor"
            candidate = base_slug
            counter = 1
            while self.__class__.objects.filter(slug=candidate).exclude(pk=self.pk).exists():
                counter += 1
                candidate = f"{base_slug}-{counter}"
            self.slug = candidate
        super().save(*args, **kwargs)


class ServicePackage(models.Model):
    """Priced offer of a vendor, e.g. "Wedding photography, 6 hours"."""

    class PricingModel(models.TextChoices):
        PER_HOUR = "per_hour", _("Per hour")
        PER_EVENT = "per_event", _("Per event")
        PER_PERSON = "per_person", _("Per person")
        CUSTOM = "custom", _("Custom pricing")

    vendor = models.ForeignKey(Vendor, on_delete=models.CASCADE, related_name="packages")
    name = models.CharField(max_length=150)
    description = models.TextField(blank=True)
    pricing_model = models.CharField(
        max_length=20,
        choices=PricingModel.choices,
        default=PricingModel.PER_EVENT,
    )
    price = models.DecimalField(
        max_digits=10,
        decimal_places=2,
        validators=[MinValueValidator(Decimal("0.00"))],
    )
    currency = models.CharField(max_length=3, choices=CURRENCY_CHOICES, default="USD")
    duration_hours = models.DecimalField(
        max_digits=5,
        decimal_places=2,
        null=True,
        blank=True,
        validators=[MinValueValidator(Decimal("0.25"))],
    )
    is_active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        verbose_name = _("Service package")
        verbose_name_plural = _("Service packages")
        ordering = ["price", "id"]

    def __str__(self) -> str:
        return f"{self.vendor.business_name}: {self.name}"
