"""
Image storage utilities for service, partner and booking images.
Handles validation, object key generation and upload to S3-compatible storage.
"""

import asyncio
import logging
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Optional, Sequence, Tuple

import boto3
from botocore.client import Config
from botocore.exceptions import BotoCoreError, ClientError

from ..config import (
    MAX_UPLOAD_BYTES,
    STORAGE_ACCESS_KEY_ID,
    STORAGE_BUCKET_NAME,
    STORAGE_ENDPOINT_URL,
    STORAGE_PUBLIC_BASE_URL,
    STORAGE_SECRET_ACCESS_KEY,
)
from ..errors import InvalidRequestError, StorageError, log_error
from .sanitization import sanitize_filename

logger = logging.getLogger(__name__)

# Presigned URL expiration time (7 days, the S3 maximum)
PRESIGNED_URL_EXPIRATION = 7 * 24 * 3600

DEFAULT_FOLDER = "services"


@dataclass
class ImageFile:
    filename: str
    content_type: str
    data: bytes

    @property
    def size(self) -> int:
        return len(self.data)


def get_storage_client():
    """Get configured boto3 client for the S3-compatible bucket"""
    return boto3.client(
        "s3",
        endpoint_url=STORAGE_ENDPOINT_URL,
        aws_access_key_id=STORAGE_ACCESS_KEY_ID,
        aws_secret_access_key=STORAGE_SECRET_ACCESS_KEY,
        config=Config(signature_version="s3v4"),
        region_name="auto",
    )


def validate_image_file(
    filename: str, size_bytes: int, mime_type: Optional[str]
) -> Tuple[bool, Optional[str]]:
    """
    Validate an image before upload.

    Returns:
        Tuple of (is_valid, error_message)
    """
    if not mime_type or not mime_type.startswith("image/"):
        return False, f"Invalid file type: {filename}. Please upload images only."

    if size_bytes > MAX_UPLOAD_BYTES:
        return False, f"File {filename} is too large. Max {MAX_UPLOAD_BYTES // (1024 * 1024)}MB allowed."

    return True, None


def ensure_valid_images(files: Sequence[ImageFile]) -> None:
    """Reject the whole batch if any file is invalid"""
    for file in files:
        is_valid, error = validate_image_file(file.filename, file.size, file.content_type)
        if not is_valid:
            logger.warning(f"❌ Upload rejected: {error}")
            raise InvalidRequestError(error, field="file")


def _timestamp_ms() -> int:
    return int(time.time() * 1000)


def image_key(folder: str, filename: str, timestamp: Optional[int] = None) -> str:
    """services/1700000000000-My_Photo.png"""
    return f"{folder.strip('/')}/{timestamp or _timestamp_ms()}-{sanitize_filename(filename)}"


def booking_image_key(
    booking_id: str, index: int, filename: str, timestamp: Optional[int] = None
) -> str:
    """bookings/{bookingId}/images/1700000000000-0-My_Photo.png"""
    return f"bookings/{booking_id}/images/{timestamp or _timestamp_ms()}-{index}-{sanitize_filename(filename)}"


class ObjectStorage(ABC):
    @abstractmethod
    async def save(self, key: str, data: bytes, content_type: str) -> str:
        """Store the object and return a URL it can be fetched from."""


class S3ObjectStorage(ObjectStorage):
    """ObjectStorage on any S3-compatible bucket (R2, S3, MinIO)"""

    def __init__(
        self,
        client=None,
        bucket: str = STORAGE_BUCKET_NAME,
        public_base_url: Optional[str] = STORAGE_PUBLIC_BASE_URL,
    ):
        self.client = client or get_storage_client()
        self.bucket = bucket
        self.public_base_url = public_base_url.rstrip("/") if public_base_url else None

    def url_for(self, key: str) -> str:
        if self.public_base_url:
            return f"{self.public_base_url}/{key}"
        return self.client.generate_presigned_url(
            "get_object",
            Params={"Bucket": self.bucket, "Key": key, "ResponseContentDisposition": "inline"},
            ExpiresIn=PRESIGNED_URL_EXPIRATION,
        )

    async def save(self, key: str, data: bytes, content_type: str) -> str:
        try:
            # boto3 is blocking
            await asyncio.to_thread(
                self.client.put_object,
                Bucket=self.bucket,
                Key=key,
                Body=data,
                ContentType=content_type,
            )
            return await asyncio.to_thread(self.url_for, key)
        except (ClientError, BotoCoreError) as e:
            classified = log_error("S3ObjectStorage.save", e)
            raise StorageError(classified.user_message, code=classified.code) from e


async def upload_image(
    storage: ObjectStorage, file: ImageFile, folder: str = DEFAULT_FOLDER
) -> str:
    """Validate and upload one image; returns its URL"""
    ensure_valid_images([file])

    key = image_key(folder, file.filename)
    logger.info(f"📤 Uploading {file.filename} ({file.content_type}, {file.size} bytes) to {key}")
    url = await storage.save(key, file.data, file.content_type)
    logger.info(f"✅ Uploaded {key}")
    return url


async def upload_booking_images(
    storage: ObjectStorage, files: Sequence[ImageFile], booking_id: str
) -> list[str]:
    """Validate every file first, then upload all of them; URLs keep the input order"""
    ensure_valid_images(files)

    timestamp = _timestamp_ms()
    logger.info(f"📤 Uploading {len(files)} images for booking {booking_id}")
    urls = await asyncio.gather(
        *(
            storage.save(booking_image_key(booking_id, i, f.filename, timestamp), f.data, f.content_type)
            for i, f in enumerate(files)
        )
    )
    logger.info(f"✅ Uploaded {len(urls)} images for booking {booking_id}")
    return list(urls)
