"""Health check and file upload endpoints."""

from __future__ import annotations

import os

import structlog
from django.core.files.storage import default_storage  # type: ignore
from django.db import connection  # type: ignore
from django.http import JsonResponse  # type: ignore
from django.utils.text import get_valid_filename  # type: ignore
from django.views.decorators.csrf import csrf_exempt  # type: ignore
from django.views.decorators.http import require_http_methods  # type: ignore
from rest_framework import permissions, status  # type: ignore
from rest_framework.parsers import FormParser, MultiPartParser  # type: ignore
from rest_framework.response import Response  # type: ignore
from rest_framework.views import APIView  # type: ignore

from .serializers import FileUploadSerializer

logger = structlog.get_logger(__name__)


@csrf_exempt
@require_http_methods(["GET"])
def healthz(request):
    try:
        with connection.cursor() as cursor:
            cursor.execute("SELECT 1")
        logger.info("healthz.ok", database="connected")
        return JsonResponse({"status": "healthy", "database": "connected"}, status=200)
    except Exception as exc:
        logger.error("healthz.fail", error=str(exc))
        return JsonResponse({"status": "unhealthy", "error": str(exc)}, status=503)


class FileUploadView(APIView):
    """Store an uploaded file and return its public URL."""

    permission_classes = [permissions.IsAuthenticated]
    parser_classes = [MultiPartParser, FormParser]

    def post(self, request, format=None):  # type: ignore
        serializer = FileUploadSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        upload = serializer.validated_data["file"]
        folder = serializer.validated_data["folder"]

        name = get_valid_filename(os.path.basename(upload.name))
        stored_name = default_storage.save(f"uploads/{folder}/{request.user.pk}/{name}", upload)
        url = default_storage.url(stored_name)
        if url.startswith("/"):
            url = request.build_absolute_uri(url)

        logger.info("upload.stored", user_id=request.user.pk, name=stored_name, size=upload.size)
        width, height = upload.image_size or (None, None)
        return Response(
            {
                "file_url": url,
                "name": stored_name,
                "size": upload.size,
                "content_type": getattr(upload, "content_type", ""),
                "width": width,
                "height": height,
            },
            status=status.HTTP_201_CREATED,
        )
