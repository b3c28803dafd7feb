from datetime import datetime
from typing import Literal, Optional

from pydantic import BaseModel, Field

from ...store import Document

NotificationType = Literal["booking_created", "booking_status", "review", "system"]


class Notification(BaseModel):
    id: str
    userId: str
    title: str
    message: str
    type: NotificationType = "system"
    link: Optional[str] = None
    read: bool = False
    createdAt: Optional[datetime] = None

    @classmethod
    def from_document(cls, doc: Document) -> "Notification":
        return cls.model_validate(doc.to_dict())


class NotificationCreate(BaseModel):
    userId: str = Field(min_length=1)
    title: str = Field(min_length=1, max_length=200)
    message: str = Field(min_length=1, max_length=1000)
    type: NotificationType = "system"
    link: Optional[str] = None

    class Config:
        extra = "forbid"
