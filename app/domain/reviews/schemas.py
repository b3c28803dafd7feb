"""Review domain schemas - Pydantic models for validation"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field

from ...store import Document


class Review(BaseModel):
    id: str
    bookingId: str
    customerId: str
    customerName: str = ""
    partnerId: str
    partnerName: str = ""
    rating: int
    feedback: str = ""
    createdAt: Optional[datetime] = None

    @classmethod
    def from_document(cls, doc: Document) -> "Review":
        return cls.model_validate(doc.to_dict())


class ReviewCreate(BaseModel):
    """Schema for reviewing a completed booking"""

    bookingId: str = Field(min_length=1)
    rating: int = Field(ge=1, le=5, strict=True)
    feedback: str = Field(default="", max_length=2000)

    class Config:
        extra = "forbid"
