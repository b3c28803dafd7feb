from unittest.mock import MagicMock

import pytest
from botocore.exceptions import ClientError

from app.errors import InvalidRequestError, StorageError
from app.utils.image_storage import (
    ImageFile,
    S3ObjectStorage,
    booking_image_key,
    image_key,
    upload_booking_images,
    upload_image,
    validate_image_file,
)
from app.utils.sanitization import clean_text, sanitize_filename


def png(name="photo.png", size=10):
    return ImageFile(filename=name, content_type="image/png", data=b"x" * size)


def test_validate_image_file():
    assert validate_image_file("a.png", 100, "image/png") == (True, None)

    valid, error = validate_image_file("a.pdf", 100, "application/pdf")
    assert not valid
    assert "a.pdf" in error

    valid, error = validate_image_file("big.jpg", 50 * 1024 * 1024, "image/jpeg")
    assert not valid
    assert "too large" in error

    assert not validate_image_file("a", 1, None)[0]


@pytest.mark.parametrize(
    "filename,expected",
    [
        ("My Photo 1.png", "My_Photo_1.png"),
        ("../../etc/passwd", "passwd"),
        ("C:\\Users\\me\\pic.jpg", "pic.jpg"),
        (".hidden.png", "hidden.png"),
        ("", "image"),
        (None, "image"),
    ],
)
def test_sanitize_filename(filename, expected):
    assert sanitize_filename(filename) == expected


def test_clean_text():
    assert clean_text("  hello\x07 world \n") == "hello world"
    assert clean_text(None) == ""


def test_object_keys():
    assert image_key("services", "AC unit.png", timestamp=1700000000000) == "services/1700000000000-AC_unit.png"
    assert (
        booking_image_key("b1", 2, "leak.jpg", timestamp=1700000000000)
        == "bookings/b1/images/1700000000000-2-leak.jpg"
    )


@pytest.mark.asyncio
async def test_upload_image(object_storage):
    url = await upload_image(object_storage, png("AC unit.png"), folder="partners")

    key, data, content_type = object_storage.saved[0]
    assert key.startswith("partners/") and key.endswith("-AC_unit.png")
    assert content_type == "image/png"
    assert url == f"https://cdn.test/{key}"


@pytest.mark.asyncio
async def test_booking_images_keep_order(object_storage):
    urls = await upload_booking_images(object_storage, [png("a.png"), png("b.png")], "b1")

    keys = [key for key, _, _ in object_storage.saved]
    assert sorted(keys) == sorted(url.removeprefix("https://cdn.test/") for url in urls)
    assert urls[0].endswith("-0-a.png")
    assert urls[1].endswith("-1-b.png")
    assert all(k.startswith("bookings/b1/images/") for k in keys)


@pytest.mark.asyncio
async def test_one_invalid_file_rejects_the_batch(object_storage):
    files = [png("a.png"), ImageFile("notes.txt", "text/plain", b"hi")]

    with pytest.raises(InvalidRequestError) as excinfo:
        await upload_booking_images(object_storage, files, "b1")

    assert excinfo.value.field == "file"
    assert object_storage.saved == []


@pytest.mark.asyncio
async def test_s3_storage_uses_public_base_url():
    client = MagicMock()
    storage = S3ObjectStorage(client=client, bucket="media", public_base_url="https://media.example.com/")

    url = await storage.save("services/1-a.png", b"data", "image/png")

    assert url == "https://media.example.com/services/1-a.png"
    client.put_object.assert_called_once_with(
        Bucket="media", Key="services/1-a.png", Body=b"data", ContentType="image/png"
    )
    client.generate_presigned_url.assert_not_called()


@pytest.mark.asyncio
async def test_s3_storage_presigns_without_public_url():
    client = MagicMock()
    client.generate_presigned_url.return_value = "https://signed.example.com/x"
    storage = S3ObjectStorage(client=client, bucket="media", public_base_url=None)

    assert await storage.save("k.png", b"data", "image/png") == "https://signed.example.com/x"
    assert client.generate_presigned_url.call_args.kwargs["ExpiresIn"] == 7 * 24 * 3600


@pytest.mark.asyncio
async def test_s3_failures_become_storage_errors():
    client = MagicMock()
    client.put_object.side_effect = ClientError(
        {"Error": {"Code": "AccessDenied", "Message": "denied"}}, "PutObject"
    )
    storage = S3ObjectStorage(client=client, bucket="media", public_base_url=None)

    with pytest.raises(StorageError) as excinfo:
        await storage.save("k.png", b"data", "image/png")

    assert excinfo.value.code == "storage/unauthorized"
    assert excinfo.value.status_code == 502
