"""Admin registration for bookings."""

from __future__ import annotations

from django.contrib import admin

from .models import Booking, GroupBooking, GroupContribution, GroupInstallment


@admin.register(Booking)
class BookingAdmin(admin.ModelAdmin):
    list_display = (
        "booking_code",
        "venue",
        "guest",
        "status",
        "payment_status",
        "event_date",
        "start_time",
        "end_time",
        "total_amount",
        "currency",
        "created_at",
    )
    list_filter = ("status", "payment_status", "change_status", "event_date")
    search_fields = ("booking_code", "venue__title", "guest__email", "contact_email")
    raw_id_fields = ("venue", "guest", "discount_code")
    readonly_fields = (
        "booking_code",
        "starts_at",
        "ends_at",
        "hourly_rate",
        "hours",
        "base_amount",
        "discount_amount",
        "platform_fee",
        "total_amount",
        "venue_owner_payout",
        "created_at",
        "updated_at",
    )


class GroupContributionInline(admin.TabularInline):
    model = GroupContribution
    extra = 0
    fields = ("email", "name", "user", "amount", "status", "paid_at")
    raw_id_fields = ("user",)


@admin.register(GroupBooking)
class GroupBookingAdmin(admin.ModelAdmin):
    list_display = ("title", "venue", "organizer", "payment_plan", "total_amount", "status", "event_date")
    list_filter = ("status", "payment_plan")
    search_fields = ("title", "venue__title", "organizer__email")
    raw_id_fields = ("venue", "organizer", "booking")
    inlines = [GroupContributionInline]


@admin.register(GroupInstallment)
class GroupInstallmentAdmin(admin.ModelAdmin):
    list_display = ("contribution", "sequence", "due_date", "amount", "status")
    list_filter = ("status",)
