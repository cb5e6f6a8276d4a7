"""Tests for sighting photo storage on Cloudflare R2."""

import io
from dataclasses import replace

import pytest
from botocore.exceptions import ClientError

from wildlife_tracker.exceptions import MediaUploadError, SightingValidationError
from wildlife_tracker.services import r2_storage


def test_client_requires_credentials(settings):
    unconfigured = replace(settings, r2_account_id=None)

    with pytest.raises(MediaUploadError, match="not configured"):
        r2_storage.get_r2_client(unconfigured)


@pytest.mark.parametrize("filename", ["deer.gif", "deer", None, "deer.jpg.exe"])
def test_validate_image_rejects_other_types(settings, filename):
    with pytest.raises(SightingValidationError):
        r2_storage.validate_image(filename, 100, settings)


def test_validate_image_rejects_empty_and_oversized(settings):
    with pytest.raises(SightingValidationError, match="empty"):
        r2_storage.validate_image("deer.png", 0, settings)
    with pytest.raises(SightingValidationError, match="too large"):
        r2_storage.validate_image("deer.png", settings.max_image_bytes + 1, settings)


def test_validate_image_normalises_extension(settings):
    assert r2_storage.validate_image("Fawn.JPEG", 10, settings) == ".jpeg"


def test_upload_sighting_image(settings, r2_client):
    key = r2_storage.upload_sighting_image(io.BytesIO(b"png-bytes"), "fawn.png", 9, settings)

    assert key.startswith("wildlife-sightings/")
    assert key.endswith(".png")
    r2_client.upload_fileobj.assert_called_once()
    _, bucket, uploaded_key = r2_client.upload_fileobj.call_args.args
    assert bucket == "test-bucket"
    assert uploaded_key == key
    assert r2_client.upload_fileobj.call_args.kwargs["ExtraArgs"] == {"ContentType": "image/png"}


def test_upload_failure_raises_media_error(settings, r2_client):
    r2_client.upload_fileobj.side_effect = ClientError(
        {"Error": {"Code": "AccessDenied", "Message": "denied"}}, "PutObject"
    )

    with pytest.raises(MediaUploadError):
        r2_storage.upload_image_file(io.BytesIO(b"x"), "wildlife-sightings/x.jpg", settings)


def test_public_url(settings):
    url = r2_storage.get_image_url("wildlife-sightings/abc.jpg", replace(settings, r2_public_base_url="https://cdn.example.org/"))

    assert url == "https://cdn.example.org/wildlife-sightings/abc.jpg"


def test_presigned_url_without_public_base(settings, r2_client):
    r2_client.generate_presigned_url.return_value = "https://signed.example/abc"

    url = r2_storage.get_image_url("wildlife-sightings/abc.jpg", replace(settings, r2_public_base_url=None))

    assert url == "https://signed.example/abc"
    r2_client.generate_presigned_url.assert_called_once_with(
        "get_object",
        Params={"Bucket": "test-bucket", "Key": "wildlife-sightings/abc.jpg"},
        ExpiresIn=r2_storage.PRESIGNED_URL_MAX_AGE,
    )


def test_delete_image_file(settings, r2_client):
    assert r2_storage.delete_image_file("wildlife-sightings/abc.jpg", settings) is True

    r2_client.delete_object.side_effect = ClientError(
        {"Error": {"Code": "NoSuchKey", "Message": "missing"}}, "DeleteObject"
    )
    assert r2_storage.delete_image_file("wildlife-sightings/abc.jpg", settings) is False
