"""Notification router - in-app inbox and push token registration"""

from fastapi import APIRouter, Depends
from fastapi.responses import StreamingResponse

from ...auth import get_current_user
from ...firebase import PushSender, get_push_sender, get_store
from ...shared.streaming import event_stream
from ...store import DocumentStore
from ..users.schemas import FcmTokenRegistration, UserProfile
from .schemas import Notification
from .service import NotificationService

router = APIRouter(prefix="/notifications", tags=["Notifications"])


def get_notification_service(
    store: DocumentStore = Depends(get_store),
    push: PushSender = Depends(get_push_sender),
) -> NotificationService:
    """Dependency injection for NotificationService"""
    return NotificationService(store, push)


@router.get("", response_model=list[Notification])
async def list_notifications(
    current_user: UserProfile = Depends(get_current_user),
    service: NotificationService = Depends(get_notification_service),
):
    return await service.get_notifications(current_user.uid)


@router.get("/stream")
async def stream_notifications(
    current_user: UserProfile = Depends(get_current_user),
    service: NotificationService = Depends(get_notification_service),
):
    """Server-sent events: the full notification list on every change"""
    subscription = service.subscribe_notifications(current_user.uid)
    return StreamingResponse(event_stream(subscription), media_type="text/event-stream")


@router.post("/{notification_id}/read", status_code=204)
async def mark_notification_read(
    notification_id: str,
    current_user: UserProfile = Depends(get_current_user),
    service: NotificationService = Depends(get_notification_service),
):
    await service.mark_as_read(notification_id, current_user.uid)


@router.post("/tokens", status_code=204)
async def register_push_token(
    data: FcmTokenRegistration,
    current_user: UserProfile = Depends(get_current_user),
    service: NotificationService = Depends(get_notification_service),
):
    await service.save_token(current_user.uid, data.token)
