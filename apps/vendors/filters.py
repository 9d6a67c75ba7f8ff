"""FilterSet definitions for the vendor directory."""

from __future__ import annotations

import django_filters  # type: ignore
from django.db.models import Q  # type: ignore

from apps.venues.models import Market

from .models import Vendor


class VendorFilterSet(django_filters.FilterSet):
    market = django_filters.NumberFilter(method="filter_market")
    area = django_filters.CharFilter(method="filter_area")
    price_max = django_filters.NumberFilter(method="filter_price_max")
    q = django_filters.CharFilter(method="filter_text")

    class Meta:
        model = Vendor
        fields = ["service_category", "status"]

    def filter_market(self, queryset, name, value):  # type: ignore
        try:
            market = Market.objects.get(pk=value)
        except Market.DoesNotExist:
            return queryset.none()
        return queryset.filter(market__in=market.get_descendants(include_self=True))

    def filter_area(self, queryset, name, value):  # type: ignore
        # JSON containment lookups are not portable; match on the serialised list
        return queryset.filter(service_areas__icontains=value)

    def filter_price_max(self, queryset, name, value):  # type: ignore
        """Vendors with at least one active package at or below ``value``."""
        return queryset.filter(packages__is_active=True, packages__price__lte=value).distinct()

    def filter_text(self, queryset, name, value):  # type: ignore
        if not value:
            return queryset
        return queryset.filter(Q(business_name__icontains=value) | Q(description__icontains=value))
