"""Validation of uploaded files.

Images are opened with Pillow so that renamed or truncated files are
rejected before they reach storage. PDF documents are accepted as-is.
"""

from __future__ import annotations

import os

from django.conf import settings  # type: ignore
from PIL import Image, UnidentifiedImageError
from rest_framework import serializers  # type: ignore

IMAGE_EXTENSIONS = {".jpg", ".jpeg", ".png", ".webp", ".gif"}
DOCUMENT_EXTENSIONS = {".pdf"}
UPLOAD_FOLDERS = ("venues", "vendors", "avatars", "reviews", "documents")


class FileUploadSerializer(serializers.Serializer):
    file = serializers.FileField()
    folder = serializers.ChoiceField(choices=UPLOAD_FOLDERS, default="documents")

    def validate_file(self, upload):  # type: ignore
        max_size = getattr(settings, "UPLOAD_MAX_SIZE", 10 * 1024 * 1024)
        if upload.size > max_size:
            raise serializers.ValidationError(f"File is larger than {max_size // (1024 * 1024)} MB.")

        extension = os.path.splitext(upload.name)[1].lower()
        if extension in DOCUMENT_EXTENSIONS:
            upload.image_size = None
            return upload
        if extension not in IMAGE_EXTENSIONS:
            raise serializers.ValidationError("Unsupported file type.")

        try:
            with Image.open(upload) as image:
                image.verify()
                upload.image_size = image.size
        except (UnidentifiedImageError, OSError, SyntaxError):
            raise serializers.ValidationError("Upload a valid image.")
        finally:
            upload.seek(0)
        return upload
