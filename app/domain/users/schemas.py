"""User domain schemas - Pydantic models for validation"""

from datetime import datetime
from typing import Literal, Optional

from pydantic import BaseModel, Field, field_validator

from ...shared.validators import validate_phone_number
from ...store import Document
from ..geo import Location

# customer|admin in some stored profiles predates the partner role; all three are canonical
UserRole = Literal["customer", "partner", "admin"]
USER_ROLES: tuple[str, ...] = ("customer", "partner", "admin")

PartnerStatus = Literal["active", "suspended"]


class Address(BaseModel):
    id: str
    label: str
    street: str
    city: str
    zipCode: str
    geoPoint: Optional[Location] = None


class AddressCreate(BaseModel):
    """Schema for adding an address"""

    label: str = Field(min_length=1, max_length=50)
    street: str = Field(min_length=1, max_length=200)
    city: str = Field(min_length=1, max_length=100)
    zipCode: str = Field(min_length=1, max_length=20)
    geoPoint: Optional[Location] = None

    class Config:
        extra = "forbid"


class AddressUpdate(BaseModel):
    label: Optional[str] = Field(default=None, min_length=1, max_length=50)
    street: Optional[str] = Field(default=None, min_length=1, max_length=200)
    city: Optional[str] = Field(default=None, min_length=1, max_length=100)
    zipCode: Optional[str] = Field(default=None, min_length=1, max_length=20)
    geoPoint: Optional[Location] = None

    class Config:
        extra = "forbid"


class UserProfile(BaseModel):
    uid: str
    email: str = ""
    displayName: str = ""
    phoneNumber: Optional[str] = None
    role: UserRole = "customer"
    status: Optional[PartnerStatus] = None
    photoURL: Optional[str] = None
    addresses: list[Address] = []
    createdAt: Optional[datetime] = None
    updatedAt: Optional[datetime] = None

    @classmethod
    def from_document(cls, doc: Document) -> "UserProfile":
        data = dict(doc.data)
        data.setdefault("uid", doc.id)
        # Older profiles stored the number under "phone"
        if not data.get("phoneNumber") and data.get("phone"):
            data["phoneNumber"] = data["phone"]
        return cls.model_validate(data)


class UserProfileUpdate(BaseModel):
    """Schema for the profile fields a user may edit"""

    displayName: Optional[str] = Field(default=None, max_length=100)
    phoneNumber: Optional[str] = None
    photoURL: Optional[str] = None

    class Config:
        extra = "forbid"

    @field_validator("phoneNumber")
    @classmethod
    def validate_phone(cls, v):
        return validate_phone_number(v)


class RoleUpdate(BaseModel):
    role: UserRole

    class Config:
        extra = "forbid"


class RoleUpdateResult(BaseModel):
    success: bool = True
    userId: str
    role: UserRole
    claims: dict[str, bool]
    message: str


class FcmTokenRegistration(BaseModel):
    token: str = Field(min_length=1, max_length=4096)
