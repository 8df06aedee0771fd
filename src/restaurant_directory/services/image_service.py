"""Image attachment service backed by S3."""

import asyncio
import logging
import re
import time
import uuid
from urllib.parse import quote

from botocore.exceptions import BotoCoreError, ClientError
from mypy_boto3_s3.client import S3Client

from restaurant_directory.errors import UploadFailedError, ValidationError
from restaurant_directory.models.menu_models import ImageUpload
from restaurant_directory.observability.metrics import (
    record_image_upload_duration,
    record_image_upload_failure,
)

logger = logging.getLogger(__name__)

ALLOWED_CONTENT_TYPES = frozenset({"image/jpeg", "image/jpg", "image/png"})
DEFAULT_MAX_IMAGE_BYTES = 5 * 1024 * 1024

_UNSAFE_FILENAME_CHARS = re.compile(r"[^A-Za-z0-9._-]+")


class ImageAttachmentService:
    """Stores menu item images and returns their public URL.

    Uploads are validated locally before any network call. A storage failure
    raises UploadFailedError and is never retried.
    """

    def __init__(
        self,
        s3_client: S3Client,
        bucket_name: str,
        region: str = "us-east-1",
        public_base_url: str | None = None,
        max_bytes: int = DEFAULT_MAX_IMAGE_BYTES,
    ) -> None:
        """Initialize the service.

        Args:
            s3_client: Boto3 S3 client
            bucket_name: Bucket receiving the images
            region: Bucket region, used to build virtual-hosted URLs
            public_base_url: Optional base URL (CDN or local endpoint) used instead
            max_bytes: Largest accepted image
        """
        self.s3_client = s3_client
        self.bucket_name = bucket_name
        self.region = region
        self.public_base_url = public_base_url.rstrip("/") if public_base_url else None
        self.max_bytes = max_bytes

    def validate(self, upload: ImageUpload) -> None:
        """Reject uploads that must not reach storage.

        Raises:
            ValidationError: On a disallowed type, empty file or oversize file
        """
        if upload.content_type.lower() not in ALLOWED_CONTENT_TYPES:
            raise ValidationError("Invalid file type. Only JPEG, JPG, and PNG are allowed.")

        if upload.size == 0:
            raise ValidationError("Image file is empty")

        if upload.size > self.max_bytes:
            raise ValidationError(f"Image exceeds the maximum size of {self.max_bytes} bytes")

    def build_key(self, filename: str) -> str:
        """Build a unique object key that keeps the original file name readable."""
        basename = filename.replace("\\", "/").rsplit("/", 1)[-1]
        safe_name = _UNSAFE_FILENAME_CHARS.sub("-", basename).strip("-.") or "image"
        return f"uploads/{uuid.uuid4()}-{safe_name}"

    def public_url(self, key: str) -> str:
        """Return the URL at which a stored object can be fetched."""
        if self.public_base_url:
            return f"{self.public_base_url}/{quote(key)}"
        return f"https://{self.bucket_name}.s3.{self.region}.amazonaws.com/{quote(key)}"

    async def attach(self, upload: ImageUpload) -> str:
        """Validate and store an image.

        Args:
            upload: Image bytes and metadata

        Returns:
            str: Public URL of the stored image

        Raises:
            ValidationError: If the upload is rejected before storage
            UploadFailedError: If S3 fails to store the object
        """
        self.validate(upload)
        key = self.build_key(upload.filename)
        started = time.perf_counter()

        try:
            await asyncio.to_thread(
                self.s3_client.put_object,
                Bucket=self.bucket_name,
                Key=key,
                Body=upload.content,
                ContentType=upload.content_type,
            )

        except (BotoCoreError, ClientError) as e:
            logger.error(f"Error uploading image {key} to S3: {e}")
            record_image_upload_failure(type(e).__name__)
            raise UploadFailedError("Image upload failed") from e

        record_image_upload_duration(time.perf_counter() - started)
        logger.info(f"Uploaded image {key} ({upload.size} bytes)")
        return self.public_url(key)
