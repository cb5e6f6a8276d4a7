"""
Cloudflare R2 Storage Service

Provides S3-compatible storage for sighting photos. The service only stores
the bytes it is given; resizing and format conversion are left to the media
host.

Configuration comes from Settings (see config.py):
- R2_ACCOUNT_ID
- R2_ACCESS_KEY_ID
- R2_SECRET_ACCESS_KEY
- R2_BUCKET_NAME (default: wildlife-sightings)
- R2_PUBLIC_BASE_URL (optional; presigned URLs are used otherwise)
"""

import logging
from pathlib import Path
from typing import BinaryIO, Optional
from uuid import uuid4

import boto3
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError

from wildlife_tracker.config import Settings
from wildlife_tracker.exceptions import MediaUploadError, SightingValidationError

logger = logging.getLogger(__name__)

IMAGE_PREFIX = "wildlife-sightings"

# Accepted image extensions
IMAGE_EXTENSIONS = {".jpg", ".jpeg", ".png"}

# Content type mapping
CONTENT_TYPE_MAP = {
    ".jpg": "image/jpeg",
    ".jpeg": "image/jpeg",
    ".png": "image/png",
}

# Longest lifetime S3 signature v4 allows
PRESIGNED_URL_MAX_AGE = 7 * 24 * 60 * 60


def get_r2_client(settings: Settings):
    """Create and return an R2 client using boto3."""
    if not settings.r2_configured:
        raise MediaUploadError(
            "R2 credentials not configured. "
            "Set R2_ACCOUNT_ID, R2_ACCESS_KEY_ID, R2_SECRET_ACCESS_KEY"
        )

    return boto3.client(
        "s3",
        endpoint_url=f"https://{settings.r2_account_id}.r2.cloudflarestorage.com",
        aws_access_key_id=settings.r2_access_key_id,
        aws_secret_access_key=settings.r2_secret_access_key,
        config=Config(signature_version="s3v4"),
    )


def validate_image(filename: Optional[str], size: int, settings: Settings) -> str:
    """
    Check an uploaded photo's type and size.

    Args:
        filename: Original filename from the upload
        size: Size in bytes
        settings: Application settings (for the size limit)

    Returns:
        Normalised lowercase extension

    Raises:
        SightingValidationError: If the type is not accepted or the file is empty/too large
    """
    ext = Path(filename or "").suffix.lower()
    if ext not in IMAGE_EXTENSIONS:
        raise SightingValidationError(
            f"Invalid file type: {filename}. Accepted: {', '.join(sorted(IMAGE_EXTENSIONS))}"
        )
    if size == 0:
        raise SightingValidationError("Image file is empty")
    if size > settings.max_image_bytes:
        raise SightingValidationError(
            f"Image too large: {size} bytes (limit {settings.max_image_bytes})"
        )
    return ext


def upload_image_file(
    file_data: BinaryIO,
    r2_key: str,
    settings: Settings,
    content_type: str = "image/jpeg",
) -> str:
    """
    Upload an image file to R2.

    Args:
        file_data: File-like object with image data
        r2_key: Destination object key
        settings: Application settings
        content_type: MIME type (default: image/jpeg)

    Returns:
        R2 key for the uploaded file
    """
    client = get_r2_client(settings)
    try:
        client.upload_fileobj(
            file_data,
            settings.r2_bucket_name,
            r2_key,
            ExtraArgs={"ContentType": content_type},
        )
    except (ClientError, BotoCoreError) as e:
        raise MediaUploadError(f"Upload of {r2_key} failed: {e}") from e

    return r2_key


def get_image_url(r2_key: str, settings: Settings) -> str:
    """
    Public URL for an uploaded image.

    Uses R2_PUBLIC_BASE_URL when the bucket is public, otherwise a presigned
    GET URL valid for the longest period R2 allows.
    """
    if settings.r2_public_base_url:
        return f"{settings.r2_public_base_url.rstrip('/')}/{r2_key}"

    client = get_r2_client(settings)
    try:
        return client.generate_presigned_url(
            "get_object",
            Params={"Bucket": settings.r2_bucket_name, "Key": r2_key},
            ExpiresIn=PRESIGNED_URL_MAX_AGE,
        )
    except (ClientError, BotoCoreError) as e:
        raise MediaUploadError(f"Could not sign URL for {r2_key}: {e}") from e


def delete_image_file(r2_key: str, settings: Settings) -> bool:
    """
    Delete an image file from R2.

    Args:
        r2_key: R2 object key

    Returns:
        True if deleted successfully
    """
    client = get_r2_client(settings)
    try:
        client.delete_object(Bucket=settings.r2_bucket_name, Key=r2_key)
        return True
    except ClientError:
        return False


def upload_sighting_image(
    file_data: BinaryIO,
    filename: Optional[str],
    size: int,
    settings: Settings,
) -> str:
    """
    Validate and upload a sighting photo.

    Args:
        file_data: File-like object positioned at the start of the image
        filename: Original filename (used only for its extension)
        size: Size in bytes
        settings: Application settings

    Returns:
        R2 key of the stored image
    """
    ext = validate_image(filename, size, settings)
    r2_key = f"{IMAGE_PREFIX}/{uuid4().hex}{ext}"
    upload_image_file(file_data, r2_key, settings, content_type=CONTENT_TYPE_MAP[ext])
    logger.info(f"Uploaded sighting image {r2_key} ({size} bytes)")
    return r2_key
