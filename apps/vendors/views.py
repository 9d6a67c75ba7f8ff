"""Vendor API views."""

from __future__ import annotations

import logging

from django.db.models import Q  # type: ignore
from django.shortcuts import get_object_or_404  # type: ignore
from rest_framework import permissions, status, viewsets  # type: ignore
from rest_framework.decorators import action  # type: ignore
from rest_framework.exceptions import PermissionDenied  # type: ignore
from rest_framework.response import Response  # type: ignore

from apps.users.permissions import IsOwnerOrAdmin, IsPlatformAdmin, IsVendorOrReadOnly, is_platform_admin

from .filters import VendorFilterSet
from .models import ServicePackage, Vendor
from .serializers import ServicePackageSerializer, VendorSerializer, VendorWriteSerializer

logger = logging.getLogger(__name__)


class VendorViewSet(viewsets.ModelViewSet):
    """Vendor directory: public browse, self-service profile, admin approval."""

    queryset = Vendor.objects.select_related("user", "market").prefetch_related("packages")
    permission_classes = [IsVendorOrReadOnly, IsOwnerOrAdmin]
    filterset_class = VendorFilterSet

    def get_permissions(self):  # type: ignore
        if self.action in {"approve", "deactivate"}:
            return [IsPlatformAdmin()]
        return super().get_permissions()

    def get_serializer_class(self):  # type: ignore
        if self.action in {"create", "update", "partial_update"}:
            return VendorWriteSerializer
        return VendorSerializer

    def get_queryset(self):  # type: ignore
        qs = super().get_queryset()
        user = self.request.user
        if is_platform_admin(user):
            return qs
        if user.is_authenticated:
            return qs.filter(Q(status=Vendor.Status.ACTIVE) | Q(user=user))
        return qs.filter(status=Vendor.Status.ACTIVE)

    def create(self, request, *args, **kwargs):  # type: ignore
        serializer = self.get_serializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        vendor = serializer.save(user=request.user)
        logger.info("Vendor profile %s created by user %s", vendor.pk, request.user.pk)
        return Response(VendorSerializer(vendor).data, status=status.HTTP_201_CREATED)

    def update(self, request, *args, **kwargs):  # type: ignore
        partial = kwargs.pop("partial", False)
        serializer = self.get_serializer(self.get_object(), data=request.data, partial=partial)
        serializer.is_valid(raise_exception=True)
        vendor = serializer.save()
        return Response(VendorSerializer(vendor).data)

    @action(detail=False, methods=["get"], permission_classes=[permissions.IsAuthenticated])
    def me(self, request):  # type: ignore
        vendor = get_object_or_404(self.get_queryset(), user=request.user)
        return Response(VendorSerializer(vendor).data)

    @action(detail=True, methods=["post"])
    def approve(self, request, pk=None):  # type: ignore
        vendor = get_object_or_404(Vendor, pk=pk)
        vendor.approve()
        logger.info("Vendor %s approved by admin %s", vendor.pk, request.user.pk)
        return Response(VendorSerializer(vendor).data)

    @action(detail=True, methods=["post"])
    def deactivate(self, request, pk=None):  # type: ignore
        vendor = get_object_or_404(Vendor, pk=pk)
        vendor.deactivate()
        logger.info("Vendor %s deactivated by admin %s", vendor.pk, request.user.pk)
        return Response(VendorSerializer(vendor).data)


class ServicePackageViewSet(viewsets.ModelViewSet):
    """Packages of active vendors are public; vendors manage their own."""

    serializer_class = ServicePackageSerializer
    queryset = ServicePackage.objects.select_related("vendor")
    permission_classes = [IsVendorOrReadOnly, IsOwnerOrAdmin]
    filterset_fields = ["vendor", "pricing_model", "is_active"]

    def get_queryset(self):  # type: ignore
        qs = super().get_queryset()
        user = self.request.user
        if is_platform_admin(user):
            return qs
        visible = Q(vendor__status=Vendor.Status.ACTIVE, is_active=True)
        if user.is_authenticated:
            visible |= Q(vendor__user=user)
        return qs.filter(visible)

    def perform_create(self, serializer):  # type: ignore
        vendor = Vendor.objects.filter(user=self.request.user).first()
        if vendor is None:
            raise PermissionDenied("Create a vendor profile first.")
        package = serializer.save(vendor=vendor)
        logger.info("Service package %s created for vendor %s", package.pk, vendor.pk)
