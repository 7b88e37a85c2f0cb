"""
Social Insurance Number helpers.

A SIN is nine digits with a Luhn check digit. Users type it with spaces or
dashes, so every comparison goes through normalize_sin first.
"""

import re
from typing import Iterable, Optional, Tuple

_NON_DIGITS = re.compile(r"\D")
_SIN_INPUT = re.compile(r"^[\d\s-]+$")


def normalize_sin(sin: str) -> str:
    """Strip everything but digits."""
    return _NON_DIGITS.sub("", sin or "")


def is_valid_sin(sin: str) -> bool:
    """Nine digits (spaces and dashes allowed between them) passing the Luhn check."""
    if not sin or not _SIN_INPUT.match(sin.strip()):
        return False
    digits = normalize_sin(sin)
    if len(digits) != 9 or digits == "000000000":
        return False

    total = 0
    for index, char in enumerate(digits):
        value = int(char)
        if index % 2 == 1:
            value *= 2
            if value > 9:
                value -= 9
        total += value
    return total % 10 == 0


def validate_sin(sin: Optional[str]) -> Tuple[bool, str | None]:
    """
    Validate a SIN as entered.

    Returns:
        Tuple of (is_valid, error_message_key)
    """
    if not sin:
        return False, "sin-required"
    if not is_valid_sin(sin):
        return False, "sin-valid"
    return True, None


def is_sin_taken(sin: str, others: Iterable[Optional[str]]) -> bool:
    """True when the normalized SIN matches any of the other (normalized) SINs."""
    target = normalize_sin(sin)
    return any(other and normalize_sin(other) == target for other in others)
