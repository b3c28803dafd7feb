"""Review router"""

from typing import Optional

from fastapi import APIRouter, Depends
from fastapi.responses import StreamingResponse

from ...auth import get_current_user
from ...firebase import PushSender, get_push_sender, get_store
from ...shared.streaming import event_stream
from ...store import DocumentStore
from ..notifications.service import NotificationService
from ..users.schemas import UserProfile
from .schemas import Review, ReviewCreate
from .service import ReviewService

router = APIRouter(prefix="/reviews", tags=["Reviews"])


def get_review_service(
    store: DocumentStore = Depends(get_store),
    push: PushSender = Depends(get_push_sender),
) -> ReviewService:
    return ReviewService(store, NotificationService(store, push))


@router.post("", response_model=Review, status_code=201)
async def create_review(
    data: ReviewCreate,
    current_user: UserProfile = Depends(get_current_user),
    service: ReviewService = Depends(get_review_service),
):
    return await service.create_review(current_user, data)


@router.get("/me", response_model=list[Review])
async def list_my_reviews(
    current_user: UserProfile = Depends(get_current_user),
    service: ReviewService = Depends(get_review_service),
):
    return await service.get_reviews_by_customer(current_user.uid)


@router.get("/partner/{partner_id}", response_model=list[Review])
async def list_partner_reviews(
    partner_id: str,
    service: ReviewService = Depends(get_review_service),
):
    """Public: reviews shown on a partner's profile"""
    return await service.get_reviews_by_partner(partner_id)


@router.get("/partner/{partner_id}/stream")
async def stream_partner_reviews(
    partner_id: str,
    service: ReviewService = Depends(get_review_service),
):
    subscription = service.subscribe_partner_reviews(partner_id)
    return StreamingResponse(event_stream(subscription), media_type="text/event-stream")


@router.get("/booking/{booking_id}", response_model=Optional[Review])
async def get_booking_review(
    booking_id: str,
    current_user: UserProfile = Depends(get_current_user),
    service: ReviewService = Depends(get_review_service),
):
    return await service.get_review_by_booking(booking_id)
