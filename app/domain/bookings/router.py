"""Booking router - customer bookings, partner workflow and admin views"""

from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, Query
from fastapi.responses import StreamingResponse

from ...auth import get_current_user, require_admin, require_partner_or_admin
from ...firebase import PushSender, get_push_sender, get_store
from ...shared.streaming import event_stream
from ...store import DocumentStore
from ..notifications.service import NotificationService
from ..users.schemas import UserProfile
from .schemas import (
    Booking,
    BookingCancel,
    BookingCreate,
    BookingPage,
    BookingStats,
    BookingStatusUpdate,
    TimeSlotAvailability,
)
from .service import BookingService


router = APIRouter(prefix="/bookings", tags=["Bookings"])


def get_booking_service(
    store: DocumentStore = Depends(get_store),
    push: PushSender = Depends(get_push_sender),
) -> BookingService:
    """Dependency injection for BookingService"""
    return BookingService(store, NotificationService(store, push))


@router.post("", response_model=Booking, status_code=201)
async def create_booking(
    data: BookingCreate,
    current_user: UserProfile = Depends(get_current_user),
    service: BookingService = Depends(get_booking_service),
):
    return await service.create_booking(current_user, data)


@router.get("/me", response_model=BookingPage)
async def list_my_bookings(
    page_size: int = Query(10, ge=1, le=50),
    cursor: Optional[str] = None,
    current_user: UserProfile = Depends(get_current_user),
    service: BookingService = Depends(get_booking_service),
):
    """The signed-in customer's bookings, newest first"""
    return await service.get_customer_bookings_page(current_user.uid, page_size, cursor)


@router.get("/me/stream")
async def stream_my_bookings(
    current_user: UserProfile = Depends(get_current_user),
    service: BookingService = Depends(get_booking_service),
):
    subscription = service.subscribe_customer_bookings(current_user.uid)
    return StreamingResponse(event_stream(subscription), media_type="text/event-stream")


@router.get("/partner", response_model=list[Booking])
async def list_partner_bookings(
    partner_id: Optional[str] = None,
    current_user: UserProfile = Depends(require_partner_or_admin),
    service: BookingService = Depends(get_booking_service),
):
    """Bookings assigned to the signed-in partner (admins may pass partner_id)"""
    target = partner_id if current_user.role == "admin" and partner_id else current_user.uid
    return await service.get_partner_bookings(target)


@router.get("/partner/stream")
async def stream_partner_bookings(
    current_user: UserProfile = Depends(require_partner_or_admin),
    service: BookingService = Depends(get_booking_service),
):
    subscription = service.subscribe_partner_bookings(current_user.uid)
    return StreamingResponse(event_stream(subscription), media_type="text/event-stream")


@router.get("/availability", response_model=list[TimeSlotAvailability])
async def get_availability(
    partner_id: str,
    day: date = Query(..., alias="date"),
    service: BookingService = Depends(get_booking_service),
):
    return await service.get_partner_availability(partner_id, day)


@router.get("", response_model=list[Booking])
async def list_all_bookings(
    _: UserProfile = Depends(require_admin),
    service: BookingService = Depends(get_booking_service),
):
    return await service.get_all_bookings()


@router.get("/stats", response_model=BookingStats)
async def get_booking_stats(
    _: UserProfile = Depends(require_admin),
    service: BookingService = Depends(get_booking_service),
):
    return await service.get_booking_stats()


@router.get("/stats/stream")
async def stream_booking_stats(
    _: UserProfile = Depends(require_admin),
    service: BookingService = Depends(get_booking_service),
):
    subscription = service.subscribe_booking_stats()
    return StreamingResponse(event_stream(subscription), media_type="text/event-stream")


@router.get("/{booking_id}", response_model=Booking)
async def get_booking(
    booking_id: str,
    current_user: UserProfile = Depends(get_current_user),
    service: BookingService = Depends(get_booking_service),
):
    return await service.get_booking_for(booking_id, current_user)


@router.get("/{booking_id}/stream")
async def stream_booking(
    booking_id: str,
    current_user: UserProfile = Depends(get_current_user),
    service: BookingService = Depends(get_booking_service),
):
    # Access is checked once against the current state
    await service.get_booking_for(booking_id, current_user)
    subscription = service.subscribe_booking(booking_id)
    return StreamingResponse(event_stream(subscription), media_type="text/event-stream")


@router.patch("/{booking_id}/status", response_model=Booking)
async def update_booking_status(
    booking_id: str,
    data: BookingStatusUpdate,
    current_user: UserProfile = Depends(require_partner_or_admin),
    service: BookingService = Depends(get_booking_service),
):
    return await service.update_booking_status(booking_id, data.status, current_user)


@router.post("/{booking_id}/cancel", response_model=Booking)
async def cancel_booking(
    booking_id: str,
    data: Optional[BookingCancel] = None,
    current_user: UserProfile = Depends(get_current_user),
    service: BookingService = Depends(get_booking_service),
):
    reason = data.reason if data else None
    return await service.cancel_booking(booking_id, reason, current_user)
