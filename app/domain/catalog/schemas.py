"""Catalog domain schemas - Pydantic models for validation"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field, field_validator

from ...store import Document
from .categories import LEGACY_CATEGORY_MIGRATION, ServiceCategory, is_valid_category, normalize_category


def validate_category_input(value: str) -> str:
    """Accept canonical or known legacy spellings on write; store the canonical form."""
    if is_valid_category(value) or value in LEGACY_CATEGORY_MIGRATION:
        return normalize_category(value)
    raise ValueError(f"Unknown category: {value}")


class Service(BaseModel):
    id: str
    name: str
    category: ServiceCategory
    description: str = ""
    price: float
    durationMinutes: int = 120
    iconUrl: Optional[str] = None
    active: bool = True
    createdAt: Optional[datetime] = None

    @classmethod
    def from_document(cls, doc: Document) -> "Service":
        data = doc.to_dict()
        # Migrate legacy category values on read
        data["category"] = normalize_category(data.get("category"))
        return cls.model_validate(data)


class ServiceCreate(BaseModel):
    """Schema for creating a service"""

    name: str = Field(min_length=1, max_length=120)
    category: str
    description: str = Field(default="", max_length=2000)
    price: float = Field(gt=0)
    durationMinutes: int = Field(default=120, gt=0, le=24 * 60)
    iconUrl: Optional[str] = None

    class Config:
        extra = "forbid"

    @field_validator("category")
    @classmethod
    def validate_category(cls, v):
        return validate_category_input(v)


class ServiceUpdate(BaseModel):
    """Schema for updating a service"""

    name: Optional[str] = Field(default=None, min_length=1, max_length=120)
    category: Optional[str] = None
    description: Optional[str] = Field(default=None, max_length=2000)
    price: Optional[float] = Field(default=None, gt=0)
    durationMinutes: Optional[int] = Field(default=None, gt=0, le=24 * 60)
    iconUrl: Optional[str] = None
    active: Optional[bool] = None

    class Config:
        extra = "forbid"

    @field_validator("category")
    @classmethod
    def validate_category(cls, v):
        if v is None:
            return v
        return validate_category_input(v)


class ServiceStats(BaseModel):
    total: int
    active: int
    inactive: int
    byCategory: dict[str, int]


class CategoryInfo(BaseModel):
    value: ServiceCategory
    displayName: str
