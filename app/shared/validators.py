"""Shared validation utilities"""

import re
from typing import Optional


def validate_phone_number(phone: Optional[str]) -> Optional[str]:
    """
    Validate and normalize a phone number to E.164 format.

    Args:
        phone: Phone number string in various formats ("+91 98765-43210", "(555) 123 4567")

    Returns:
        Normalized phone number (+XXXXXXXXXX), or the input when it is empty

    Raises:
        ValueError: If phone number is invalid
    """
    if not phone:
        return phone

    has_plus = phone.strip().startswith("+")
    digits = re.sub(r"\D", "", phone)

    # E.164 allows at most 15 digits; shorter than 7 is never a full number
    if not 7 <= len(digits) <= 15:
        raise ValueError("Phone number must have between 7 and 15 digits")

    return f"+{digits}" if has_plus or len(digits) > 10 else digits
