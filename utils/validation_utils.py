"""
utils/validation_utils.py

Purpose: Input validation

- Email format check (case is preserved, never normalized)
- ObjectId parsing for user/session references
- Input sanitization
"""

import re
from typing import Optional

from bson import ObjectId
from bson.errors import InvalidId

EMAIL_PATTERN = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")


def validate_email(email: str) -> bool:
    """
    Validates email format.

    Args:
        email: Email address as entered by the user

    Returns:
        True if valid, False otherwise
    """
    if not email:
        return False
    return bool(EMAIL_PATTERN.match(email))


def parse_object_id(value: Optional[str]) -> Optional[ObjectId]:
    """
    Parses a 24-hex-character identifier.

    Returns:
        ObjectId, or None if the value is missing or malformed
    """
    if not value or not isinstance(value, str):
        return None
    try:
        return ObjectId(value)
    except (InvalidId, TypeError):
        return None


def sanitize_input(text: str, max_length: int = 100) -> str:
    """
    Strips surrounding whitespace and control characters, then truncates.
    """
    if not text:
        return ""
    text = re.sub(r"[\x00-\x1f\x7f]", "", text).strip()
    return text[:max_length]
