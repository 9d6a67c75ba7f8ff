"""Admin registrations for the vendors domain."""

from __future__ import annotations

from django.contrib import admin  # type: ignore

from .models import ServicePackage, Vendor


class ServicePackageInline(admin.TabularInline):
    model = ServicePackage
    extra = 0
    fields = ("name", "pricing_model", "price", "currency", "duration_hours", "is_active")


@admin.register(Vendor)
class VendorAdmin(admin.ModelAdmin):
    list_display = ("business_name", "service_category", "status", "user", "created_at")
    list_filter = ("status", "service_category")
    search_fields = ("business_name", "user__email")
    inlines = [ServicePackageInline]
    actions = ["approve_vendors"]

    @admin.action(description="Approve selected vendors")
    def approve_vendors(self, request, queryset):  # type: ignore
        for vendor in queryset.exclude(status=Vendor.Status.ACTIVE):
            vendor.approve()
