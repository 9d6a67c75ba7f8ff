"""S3 compatible storage backend for uploaded media (venue photos, documents)."""

import logging
import mimetypes
import uuid

import boto3
from botocore.client import Config as BotoConfig
from botocore.exceptions import ClientError, EndpointConnectionError
from django.conf import settings
from django.core.files.storage import Storage
from django.utils.deconstruct import deconstructible

logger = logging.getLogger(__name__)


@deconstructible
class S3MediaStorage(Storage):
    """Stores uploads in an S3 bucket (AWS or MinIO) under unique keys."""

    def __init__(self):
        self.s3_client = boto3.client(
            "s3",
            endpoint_url=getattr(settings, "S3_ENDPOINT_URL", None),
            aws_access_key_id=getattr(settings, "S3_ACCESS_KEY", ""),
            aws_secret_access_key=getattr(settings, "S3_SECRET_KEY", ""),
            region_name=getattr(settings, "S3_REGION", "us-east-1"),
            config=BotoConfig(signature_version="s3v4", s3={"addressing_style": "path"}),
        )
        self.bucket_name = getattr(settings, "S3_BUCKET_NAME", "party2go-media")
        self.public_base = getattr(settings, "S3_PUBLIC_BASE", "").rstrip("/")

    def get_available_name(self, name, max_length=None):
        """Keys are made unique by prefixing a random token to the file name."""
        directory, _, filename = name.rpartition("/")
        unique = f"{uuid.uuid4().hex[:12]}_{filename}"
        return f"{directory}/{unique}" if directory else unique

    def _save(self, name, content):
        content.seek(0)
        content_type = getattr(content, "content_type", None) or mimetypes.guess_type(name)[0]
        try:
            self.s3_client.put_object(
                Bucket=self.bucket_name,
                Key=name,
                Body=content.read(),
                ContentType=content_type or "application/octet-stream",
                CacheControl="max-age=31536000",
            )
        except (EndpointConnectionError, ClientError) as e:
            logger.error("S3 upload failed for %s: %s", name, e)
            raise
        logger.info("Uploaded media object %s", name)
        return name

    def _open(self, name, mode="rb"):
        from django.core.files.base import ContentFile

        response = self.s3_client.get_object(Bucket=self.bucket_name, Key=name)
        return ContentFile(response["Body"].read(), name=name)

    def delete(self, name):
        self.s3_client.delete_object(Bucket=self.bucket_name, Key=name)
        logger.info("Deleted media object %s", name)

    def exists(self, name):
        try:
            self.s3_client.head_object(Bucket=self.bucket_name, Key=name)
            return True
        except ClientError:
            return False

    def size(self, name):
        response = self.s3_client.head_object(Bucket=self.bucket_name, Key=name)
        return response["ContentLength"]

    def url(self, name):
        if self.public_base:
            return f"{self.public_base}/{name.lstrip('/')}"
        return self.s3_client.generate_presigned_url(
            "get_object",
            Params={"Bucket": self.bucket_name, "Key": name},
            ExpiresIn=3600,
        )
