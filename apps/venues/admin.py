"""Admin registrations for the venues domain."""

from __future__ import annotations

from django.contrib import admin, messages
from mptt.admin import MPTTModelAdmin

from apps.notifications import services as notifications

from .models import DiscountCode, Market, Venue, VenueAvailability, VenuePhoto, VenuePricing


class VenuePhotoInline(admin.TabularInline):
    model = VenuePhoto
    extra = 0
    fields = ("image", "caption", "order", "is_primary")


class VenuePricingInline(admin.TabularInline):
    model = VenuePricing
    extra = 0
    fields = ("name", "days_of_week", "start_date", "end_date", "modifier_type", "modifier_value", "priority", "is_active")


@admin.register(Venue)
class VenueAdmin(admin.ModelAdmin):
    list_display = ("title", "city", "category", "status", "price_per_hour", "currency", "capacity", "rating", "owner")
    list_filter = ("status", "category", "is_featured", "currency")
    search_fields = ("title", "city", "owner__email")
    inlines = (VenuePhotoInline, VenuePricingInline)
    readonly_fields = ("rating", "review_count", "created_at", "updated_at", "published_at")
    actions = ("approve_venues",)

    @admin.action(description="Approve selected venues")
    def approve_venues(self, request, queryset):  # type: ignore
        approved = 0
        for venue in queryset.filter(status=Venue.Status.PENDING):
            venue.approve()
            notifications.notify_venue_approved(venue)
            approved += 1
        self.message_user(request, f"{approved} venue(s) approved.", messages.SUCCESS)


@admin.register(VenueAvailability)
class VenueAvailabilityAdmin(admin.ModelAdmin):
    list_display = ("venue", "blocked_date", "start_time", "end_time", "reason")
    list_filter = ("blocked_date",)
    search_fields = ("venue__title", "reason")


@admin.register(DiscountCode)
class DiscountCodeAdmin(admin.ModelAdmin):
    list_display = ("code", "venue", "discount_type", "value", "times_used", "max_uses", "expires_at", "is_active")
    list_filter = ("discount_type", "is_active")
    search_fields = ("code", "venue__title")


@admin.register(Market)
class MarketAdmin(MPTTModelAdmin):
    list_display = ("name", "parent", "country_code", "currency", "is_active")
    list_filter = ("is_active", "currency")
    search_fields = ("name", "slug")
    prepopulated_fields = {"slug": ("name",)}
    mptt_level_indent = 20
