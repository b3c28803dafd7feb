"""Booking domain schemas - Pydantic models for validation"""

from datetime import date, datetime
from typing import Literal, Optional

from pydantic import BaseModel, Field, model_validator

from ...config import BOOKING_DURATION_HOURS
from ...store import Document
from ..geo import Location
from ..scheduling import calculate_booking_end_time

BookingStatus = Literal["pending", "accepted", "in_progress", "completed", "cancelled"]
BookingType = Literal["instant", "scheduled"]
PaymentStatus = Literal["pending", "paid"]


class BookingLocation(BaseModel):
    """Service address copied onto the booking"""

    addressId: Optional[str] = None
    label: Optional[str] = None
    street: str = Field(min_length=1, max_length=200)
    city: str = Field(min_length=1, max_length=100)
    zipCode: str = Field(default="", max_length=20)
    geoPoint: Optional[Location] = None


class Booking(BaseModel):
    id: str
    customerId: str
    customerName: str = ""
    partnerId: str
    partnerName: str = ""
    serviceId: str
    serviceName: str = ""
    servicePrice: float = 0
    type: BookingType = "instant"
    status: BookingStatus = "pending"
    scheduledTime: datetime
    location: BookingLocation
    description: str = ""
    notes: Optional[str] = None
    images: list[str] = []
    distanceKm: Optional[float] = None
    surcharge: int = 0
    totalAmount: float = 0
    paymentMethod: Literal["COD"] = "COD"
    paymentStatus: PaymentStatus = "pending"
    warrantyValidUntil: Optional[datetime] = None
    cancellationReason: Optional[str] = None
    reviewed: bool = False
    createdAt: Optional[datetime] = None
    updatedAt: Optional[datetime] = None

    @property
    def end_time(self) -> datetime:
        return calculate_booking_end_time(self.scheduledTime, BOOKING_DURATION_HOURS)

    @classmethod
    def from_document(cls, doc: Document) -> "Booking":
        return cls.model_validate(doc.to_dict())


class BookingCreate(BaseModel):
    """
    Schema for a customer booking request.

    Instant bookings start now. Scheduled bookings give either ``scheduledTime``
    or a ``scheduledDate`` plus one of the "HH:mm" slots.
    """

    serviceId: str = Field(min_length=1)
    partnerId: str = Field(min_length=1)
    type: BookingType = "instant"
    scheduledTime: Optional[datetime] = None
    scheduledDate: Optional[date] = None
    timeSlot: Optional[str] = None
    location: BookingLocation
    description: str = Field(min_length=1, max_length=2000)
    notes: Optional[str] = Field(default=None, max_length=1000)
    images: list[str] = Field(default_factory=list, max_length=10)

    class Config:
        extra = "forbid"

    @model_validator(mode="after")
    def check_schedule(self):
        if self.type == "scheduled" and self.scheduledTime is None:
            if self.scheduledDate is None or not self.timeSlot:
                raise ValueError("Scheduled bookings need scheduledTime or scheduledDate and timeSlot")
        if not self.description.strip():
            raise ValueError("Description is required")
        return self


class BookingStatusUpdate(BaseModel):
    status: BookingStatus

    class Config:
        extra = "forbid"


class BookingCancel(BaseModel):
    reason: Optional[str] = Field(default=None, max_length=500)

    class Config:
        extra = "forbid"


class BookingStats(BaseModel):
    total: int = 0
    pending: int = 0
    accepted: int = 0
    inProgress: int = 0
    completed: int = 0
    cancelled: int = 0
    totalRevenue: float = 0
    pendingRevenue: float = 0


class BookingPage(BaseModel):
    bookings: list[Booking]
    nextCursor: Optional[str] = None


class TimeSlotAvailability(BaseModel):
    time: str
    label: str
    start: datetime
    end: datetime
    available: bool
