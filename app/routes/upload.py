import logging
from functools import lru_cache
from typing import Literal

from fastapi import APIRouter, Depends, File, Query, UploadFile

from ..auth import get_current_user
from ..domain.bookings.lifecycle import ensure_open
from ..domain.bookings.router import get_booking_service
from ..domain.bookings.service import BookingService
from ..domain.users.schemas import UserProfile
from ..errors import PermissionDeniedError
from ..utils.image_storage import (
    ImageFile,
    ObjectStorage,
    S3ObjectStorage,
    upload_booking_images,
    upload_image,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/upload", tags=["Upload"])

ImageFolder = Literal["services", "partners", "profiles"]

# Folders holding catalog imagery only admins manage
ADMIN_FOLDERS = ("services", "partners")


@lru_cache(maxsize=1)
def get_object_storage() -> ObjectStorage:
    return S3ObjectStorage()


async def _read(file: UploadFile) -> ImageFile:
    return ImageFile(
        filename=file.filename or "image",
        content_type=file.content_type or "",
        data=await file.read(),
    )


@router.post("/image")
async def upload_single_image(
    file: UploadFile = File(...),
    folder: ImageFolder = Query("services"),
    current_user: UserProfile = Depends(get_current_user),
    storage: ObjectStorage = Depends(get_object_storage),
):
    """Upload one image and return its URL."""
    if folder in ADMIN_FOLDERS and current_user.role != "admin":
        raise PermissionDeniedError()

    url = await upload_image(storage, await _read(file), folder)
    return {"url": url}


@router.post("/bookings/{booking_id}/images")
async def upload_booking_image_files(
    booking_id: str,
    files: list[UploadFile] = File(...),
    current_user: UserProfile = Depends(get_current_user),
    storage: ObjectStorage = Depends(get_object_storage),
    bookings: BookingService = Depends(get_booking_service),
):
    """Upload photos of the issue and attach them to the booking."""
    booking = await bookings.get_booking_for(booking_id, current_user)
    ensure_open(booking.status)

    images = [await _read(f) for f in files]
    urls = await upload_booking_images(storage, images, booking_id)
    await bookings.attach_images(booking_id, urls)
    return {"urls": urls}
