"""Serializers for the vendors domain."""

from __future__ import annotations

from rest_framework import serializers  # type: ignore

from apps.users.serializers import UserShortSerializer

from .models import ServicePackage, Vendor


class ServicePackageSerializer(serializers.ModelSerializer):
    vendor_name = serializers.ReadOnlyField(source="vendor.business_name")

    class Meta:
        model = ServicePackage
        fields = [
            "id",
            "vendor",
            "vendor_name",
            "name",
            "description",
            "pricing_model",
            "price",
            "currency",
            "duration_hours",
            "is_active",
            "created_at",
        ]
        read_only_fields = ["vendor", "created_at"]


class VendorSerializer(serializers.ModelSerializer):
    user = UserShortSerializer(read_only=True)
    market_name = serializers.CharField(source="market.name", read_only=True, default=None)
    packages = serializers.SerializerMethodField()

    class Meta:
        model = Vendor
        fields = [
            "id",
            "user",
            "business_name",
            "slug",
            "service_category",
            "market",
            "market_name",
            "service_areas",
            "description",
            "contact_email",
            "contact_phone",
            "website",
            "years_in_business",
            "status",
            "approved_at",
            "packages",
            "created_at",
            "updated_at",
        ]
        read_only_fields = fields

    def get_packages(self, obj: Vendor):  # type: ignore
        packages = [package for package in obj.packages.all() if package.is_active]
        return ServicePackageSerializer(packages, many=True).data


class VendorWriteSerializer(serializers.ModelSerializer):
    class Meta:
        model = Vendor
        fields = [
            "business_name",
            "service_category",
            "market",
            "service_areas",
            "description",
            "contact_email",
            "contact_phone",
            "website",
            "years_in_business",
        ]

    def validate_service_areas(self, value):  # type: ignore
        if not isinstance(value, list) or not all(isinstance(item, str) for item in value):
            raise serializers.ValidationError("Service areas must be a list of strings.")
        return [item.strip() for item in value if item.strip()]

    def validate(self, attrs):  # type: ignore
        user = self.context["request"].user
        if self.instance is None and Vendor.objects.filter(user=user).exists():
            raise serializers.ValidationError("You already have a vendor profile.")
        return attrs
