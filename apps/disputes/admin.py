"""Admin registrations for disputes and venue reports."""

from __future__ import annotations

from django.contrib import admin  # type: ignore

from .models import Dispute, VenueReport


@admin.register(Dispute)
class DisputeAdmin(admin.ModelAdmin):
    list_display = ("id", "booking", "reporter", "defendant", "reason", "status", "created_at")
    list_filter = ("status", "reason")
    search_fields = ("booking__booking_code", "reporter__email", "defendant__email", "description")
    raw_id_fields = ("booking", "venue", "reporter", "defendant", "resolved_by")
    readonly_fields = ("created_at", "updated_at", "resolved_at")


@admin.register(VenueReport)
class VenueReportAdmin(admin.ModelAdmin):
    list_display = ("id", "venue", "reporter", "report_type", "status", "created_at")
    list_filter = ("status", "report_type")
    search_fields = ("venue__title", "reporter__email", "description")
    raw_id_fields = ("venue", "reporter", "reviewed_by")
