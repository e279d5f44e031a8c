"""Shared validation utilities"""

import re
import uuid
from typing import Optional

_HH_MM = re.compile(r"^([01]\d|2[0-3]):([0-5]\d)$")
_EMAIL = re.compile(r"^[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}$")


def validate_uuid(value: Optional[str]) -> Optional[str]:
    """Validate UUID format; empty strings are treated as absent"""
    if not value:
        return None
    try:
        uuid.UUID(value)
    except (ValueError, AttributeError) as e:
        raise ValueError("Invalid id format") from e
    return value


def validate_email(email: Optional[str]) -> Optional[str]:
    """
    Validate email format.

    Returns the stripped address; raises ValueError when malformed.
    """
    if not email:
        return email
    email = email.strip()
    if not _EMAIL.match(email):
        raise ValueError("Invalid email format")
    return email


def validate_hh_mm(value: Optional[str]) -> Optional[str]:
    """24h clock time as HH:mm"""
    if value is None:
        return value
    if not _HH_MM.match(value):
        raise ValueError("Time must be in HH:mm format")
    return value


def validate_weekdays(days: list[int]) -> list[int]:
    """Day-of-week numbers, 0 (Sunday) through 6, without duplicates"""
    for day in days:
        if day < 0 or day > 6:
            raise ValueError("Day of week must be between 0 and 6")
    return sorted(set(days))


def validate_percentage_split(parent1: int, parent2: int) -> None:
    """Expense split between the two parents must cover exactly 100%"""
    if parent1 + parent2 != 100:
        raise ValueError("Parent percentages must add up to 100")
