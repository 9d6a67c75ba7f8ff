"""Admin registrations for reviews."""

from __future__ import annotations

from django.contrib import admin  # type: ignore

from .models import Review


@admin.register(Review)
class ReviewAdmin(admin.ModelAdmin):
    list_display = ("id", "venue", "guest", "rating", "created_at")
    list_filter = ("rating",)
    search_fields = ("venue__title", "guest__email", "comment")
    raw_id_fields = ("venue", "guest", "booking")
