"""API views for analytics.

``overview`` is available to every signed-in user and is scoped by role.
``report`` is the platform wide report for admins; it is cached and can
be rebuilt on demand with ``?refresh=1``.
"""

from __future__ import annotations

from rest_framework.permissions import IsAuthenticated  # type: ignore
from rest_framework.response import Response  # type: ignore
from rest_framework.views import APIView  # type: ignore

from apps.users.permissions import IsPlatformAdmin
from shared.domain.currency import SUPPORTED_CURRENCIES

from . import services


def _requested_currency(request) -> str:
    requested = (request.query_params.get("currency") or "").upper()
    if requested in SUPPORTED_CURRENCIES:
        return requested
    return getattr(request.user, "preferred_currency", "") or "USD"


class OverviewAnalyticsView(APIView):
    """Return general statistics for the platform or a specific user."""

    permission_classes = [IsAuthenticated]

    def get(self, request, format=None):  # type: ignore
        return Response(services.overview_for(request.user, _requested_currency(request)))


class AdminReportView(APIView):
    permission_classes = [IsPlatformAdmin]

    def get(self, request, format=None):  # type: ignore
        refresh = request.query_params.get("refresh") in {"1", "true"}
        return Response(services.get_admin_report(_requested_currency(request), refresh=refresh))
