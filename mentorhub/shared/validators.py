"""Shared validation utilities"""

import re
from typing import Optional

EMAIL_PATTERN = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")


def normalize_email(email: Optional[str]) -> Optional[str]:
    """
    Validate an email address and normalize it to lowercase.

    Raises:
        ValueError: If the address is not shaped like name@domain.tld
    """
    if email is None:
        return email
    email = email.strip().lower()
    if not EMAIL_PATTERN.match(email):
        raise ValueError("Invalid email address")
    return email


def clean_string_list(values: Optional[list[str]]) -> list[str]:
    """Strip entries, drop empties and case-insensitive duplicates, keep order"""
    seen = set()
    cleaned = []
    for value in values or []:
        value = (value or "").strip()
        if value and value.lower() not in seen:
            seen.add(value.lower())
            cleaned.append(value)
    return cleaned


def round_money(amount: float) -> float:
    return round(float(amount), 2)
