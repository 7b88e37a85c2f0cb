"""
Pure derivations over flow state: age categories and partner coupling.
"""

from datetime import date
from typing import Optional

from benefitflow.domain.schemas import AgeCategory, ChildState, FlowState
from benefitflow.utils.date_utils import get_age_category_from_date_string

MARITAL_STATUSES_WITH_PARTNER = frozenset({"married", "commonlaw"})


def marital_status_has_partner(marital_status: Optional[str]) -> bool:
    return marital_status in MARITAL_STATUSES_WITH_PARTNER


def applicant_has_partner(state: FlowState) -> bool:
    return marital_status_has_partner(state.marital_status)


def get_applicant_age_category(state: FlowState, today: date) -> Optional[AgeCategory]:
    """None until a date of birth has been given."""
    if not state.date_of_birth:
        return None
    return get_age_category_from_date_string(state.date_of_birth, today)


def get_child_age_category(child: ChildState, today: date) -> Optional[AgeCategory]:
    if child.information is None:
        return None
    return get_age_category_from_date_string(child.information.date_of_birth, today)


def applicant_is_youth(state: FlowState, today: date) -> bool:
    return get_applicant_age_category(state, today) == AgeCategory.YOUTH


def applicant_may_apply(state: FlowState, today: date) -> bool:
    """Applicants under 16 are sent to the parent-or-guardian page instead."""
    return get_applicant_age_category(state, today) != AgeCategory.CHILDREN


def child_may_apply(child: ChildState, today: date) -> bool:
    """Children aged 18 or over apply for themselves."""
    return get_child_age_category(child, today) not in (AgeCategory.ADULTS, AgeCategory.SENIORS)
