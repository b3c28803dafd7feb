"""Partner domain schemas - Pydantic models for validation"""

from datetime import datetime
from typing import Literal, Optional

from pydantic import BaseModel, Field

from ...store import Document
from ..geo import Location

Availability = Literal["online", "offline"]
SortBy = Literal["rating", "price", "jobs"]


class Partner(BaseModel):
    id: str
    name: str
    services: list[str] = []
    bio: str = ""
    rating: float = 0
    reviewCount: int = 0
    availability: Availability = "offline"
    location: Optional[Location] = None
    contactInfo: Optional[str] = None
    completedJobs: int = 0
    priceMultiplier: float = 1.0
    photoURL: Optional[str] = None
    createdAt: Optional[datetime] = None

    @classmethod
    def from_document(cls, doc: Document) -> "Partner":
        return cls.model_validate(doc.to_dict())


class PartnerCreate(BaseModel):
    """Schema for creating a partner (admin)"""

    name: str = Field(min_length=1, max_length=120)
    services: list[str] = Field(default_factory=list)
    bio: str = Field(default="", max_length=2000)
    availability: Availability = "offline"
    location: Location
    contactInfo: Optional[str] = Field(default=None, max_length=200)
    priceMultiplier: float = Field(default=1.0, gt=0)
    photoURL: Optional[str] = None

    class Config:
        extra = "forbid"


class PartnerUpdate(BaseModel):
    """Schema for updating a partner. Rating and review count are owned by reviews."""

    name: Optional[str] = Field(default=None, min_length=1, max_length=120)
    services: Optional[list[str]] = None
    bio: Optional[str] = Field(default=None, max_length=2000)
    availability: Optional[Availability] = None
    location: Optional[Location] = None
    contactInfo: Optional[str] = Field(default=None, max_length=200)
    completedJobs: Optional[int] = Field(default=None, ge=0)
    priceMultiplier: Optional[float] = Field(default=None, gt=0)
    photoURL: Optional[str] = None

    class Config:
        extra = "forbid"


class PartnerFilters(BaseModel):
    onlyOnline: bool = False
    minRating: Optional[float] = Field(default=None, ge=0, le=5)


class PartnerQuote(BaseModel):
    """A ranked partner with the price the customer would pay."""

    partner: Partner
    distanceKm: Optional[float] = None
    formattedDistance: Optional[str] = None
    surcharge: int = 0
    finalPrice: int
    priceVariancePercent: int
    totalAmount: int
