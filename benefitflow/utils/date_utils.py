"""
Date of birth parsing and age arithmetic.

Dates travel through flow state as ISO strings (YYYY-MM-DD); these helpers
are the only place that turns them into date objects.
"""

from datetime import date, datetime, timezone
from typing import Optional

from benefitflow.core.exceptions import InvariantViolationError
from benefitflow.domain.schemas import AgeCategory

MAX_AGE_YEARS = 150


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def to_iso_timestamp(moment: datetime) -> str:
    return moment.astimezone(timezone.utc).isoformat()


def parse_iso_timestamp(value: str) -> datetime:
    parsed = datetime.fromisoformat(value)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def build_date(year: int, month: int, day: int) -> Optional[date]:
    """Calendar-valid date from parts, or None (e.g. February 30th)."""
    try:
        return date(year, month, day)
    except ValueError:
        return None


def parse_date(value: Optional[str]) -> Optional[date]:
    if not value:
        return None
    try:
        return date.fromisoformat(value)
    except ValueError:
        return None


def is_past_date(value: date, today: date) -> bool:
    return value < today


def get_age_from_date_string(value: str, today: date) -> int:
    """Whole years between the date of birth and today."""
    born = parse_date(value)
    if born is None:
        raise ValueError(f"Not an ISO date: {value!r}")
    return get_age(born, today)


def get_age(born: date, today: date) -> int:
    age = today.year - born.year
    if (today.month, today.day) < (born.month, born.day):
        age -= 1
    return age


def get_age_category_from_age(age: int) -> AgeCategory:
    """
    Bucket an age into the eligibility categories.

    Raises InvariantViolationError for negative ages and ages beyond MAX_AGE_YEARS:
    validated dates of birth never produce them.
    """
    if 65 <= age <= MAX_AGE_YEARS:
        return AgeCategory.SENIORS
    if 18 <= age < 65:
        return AgeCategory.ADULTS
    if 16 <= age < 18:
        return AgeCategory.YOUTH
    if 0 <= age < 16:
        return AgeCategory.CHILDREN
    raise InvariantViolationError(f"Age must be between 0 and {MAX_AGE_YEARS}, got {age}", details={"age": age})


def get_age_category_from_date_string(value: str, today: date) -> AgeCategory:
    return get_age_category_from_age(get_age_from_date_string(value, today))
