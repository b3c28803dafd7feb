"""
Service category definitions.

Centralized list of the canonical categories and the mapping from legacy
spellings still present in stored documents. Reads normalize; nothing here
writes the normalized value back.
"""

import logging
from typing import Literal

logger = logging.getLogger(__name__)

ServiceCategory = Literal["car", "bike", "electrician", "other"]

SERVICE_CATEGORIES: tuple[str, ...] = ("car", "bike", "electrician", "other")

FALLBACK_CATEGORY = "other"

CATEGORY_DISPLAY_NAMES = {
    "car": "Car",
    "bike": "Bike",
    "electrician": "Electrician",
    "other": "Other",
}

# Old values -> current values. Keys are exact; both spellings seen in data are listed.
LEGACY_CATEGORY_MIGRATION = {
    "vehicle": "car",
    "Vehicle": "car",
    "appliance": "bike",
    "Appliance": "bike",
    "electronics": "electrician",
    "Electronics": "electrician",
    "plumbing": "other",
    "Plumbing": "other",
    "cleaning": "other",
    "Cleaning": "other",
}


def normalize_category(category) -> str:
    """Return the canonical category for any stored value. Never raises."""
    if category in SERVICE_CATEGORIES:
        return category

    migrated = LEGACY_CATEGORY_MIGRATION.get(category) if isinstance(category, str) else None
    if migrated:
        return migrated

    logger.warning(f'⚠️ Unknown category "{category}", defaulting to "{FALLBACK_CATEGORY}"')
    return FALLBACK_CATEGORY


def is_valid_category(category) -> bool:
    """True only for canonical values; legacy spellings are not valid."""
    return category in SERVICE_CATEGORIES


def display_name(category) -> str:
    return CATEGORY_DISPLAY_NAMES[normalize_category(category)]
