"""FilterSet definitions for venue search and listing."""

from __future__ import annotations

import django_filters  # type: ignore
from django.db.models import Q  # type: ignore

from .models import Market, Venue


class VenueFilterSet(django_filters.FilterSet):
    """Search filters used by the venue list."""

    city = django_filters.CharFilter(field_name="city", lookup_expr="icontains")
    market = django_filters.NumberFilter(method="filter_market")
    category = django_filters.CharFilter(field_name="category", lookup_expr="exact")
    capacity_min = django_filters.NumberFilter(field_name="capacity", lookup_expr="gte")
    guests = django_filters.NumberFilter(field_name="capacity", lookup_expr="gte")
    price_min = django_filters.NumberFilter(field_name="price_per_hour", lookup_expr="gte")
    price_max = django_filters.NumberFilter(field_name="price_per_hour", lookup_expr="lte")
    rating_min = django_filters.NumberFilter(field_name="rating", lookup_expr="gte")
    q = django_filters.CharFilter(method="filter_text")

    class Meta:
        model = Venue
        fields = ["city", "category", "status", "is_featured"]

    def filter_market(self, queryset, name, value):  # type: ignore
        """A market matches its own venues and those of every sub-region."""
        try:
            market = Market.objects.get(pk=value)
        except Market.DoesNotExist:
            return queryset.none()
        return queryset.filter(market__in=market.get_descendants(include_self=True))

    def filter_text(self, queryset, name, value):  # type: ignore
        if not value:
            return queryset
        return queryset.filter(
            Q(title__icontains=value) | Q(description__icontains=value) | Q(city__icontains=value)
        )
