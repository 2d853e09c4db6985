"""Shared validation utilities"""

import re
import uuid
from datetime import date
from typing import Optional


def validate_uuid(value: str) -> bool:
    """Validate UUID format"""
    try:
        uuid.UUID(value)
        return True
    except (ValueError, AttributeError):
        return False


def normalize_phone(phone: Optional[str]) -> Optional[str]:
    """
    Strip formatting characters from a phone number, keeping a leading +.

    Returns None for empty input.

    Raises:
        ValueError: If the number has fewer than 8 or more than 15 digits
    """
    if not phone or not phone.strip():
        return None

    digits = re.sub(r"\D", "", phone)
    if len(digits) < 8 or len(digits) > 15:
        raise ValueError("Phone number must have between 8 and 15 digits")

    return f"+{digits}" if phone.strip().startswith("+") else digits


def validate_date_range(start: date, end: date) -> None:
    """Raise ValueError when a date range is inverted"""
    if start > end:
        raise ValueError("Start date must be on or before end date")
