"""
Format checks for postal codes and phone numbers.
"""

import re
from typing import Tuple

CANADIAN_POSTAL_CODE = re.compile(r"^[ABCEGHJ-NPRSTVXY]\d[ABCEGHJ-NPRSTV-Z]\s?\d[ABCEGHJ-NPRSTV-Z]\d$", re.IGNORECASE)
USA_ZIP_CODE = re.compile(r"^\d{5}(-\d{4})?$")
PHONE_NUMBER = re.compile(r"^\+?[\d\s().-]{10,20}$")


def is_valid_canadian_postal_code(postal_code: str) -> bool:
    return bool(CANADIAN_POSTAL_CODE.match(postal_code.strip()))


def is_valid_usa_zip_code(zip_code: str) -> bool:
    return bool(USA_ZIP_CODE.match(zip_code.strip()))


def format_postal_code(country_id: str, postal_code: str, canada_country_id: str = "CAN") -> str:
    """Canadian codes become 'A1A 1A1'; anything else is only trimmed."""
    value = postal_code.strip()
    if country_id == canada_country_id:
        compact = re.sub(r"\s", "", value).upper()
        return f"{compact[:3]} {compact[3:]}"
    return value


def validate_phone_number(phone_number: str) -> Tuple[bool, str | None]:
    """
    Loose phone check: 10 to 15 digits with common punctuation.

    Returns:
        Tuple of (is_valid, error_message_key)
    """
    if not PHONE_NUMBER.match(phone_number.strip()):
        return False, "phone-number-valid"
    digit_count = len(re.sub(r"\D", "", phone_number))
    if digit_count < 10 or digit_count > 15:
        return False, "phone-number-valid"
    return True, None
