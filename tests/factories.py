"""Fixed dates, ids and ready-made flow state pieces shared by the tests."""

from datetime import date, datetime, timedelta, timezone
from typing import Any, Dict, List

from benefitflow.domain.schemas import (
    Address,
    ApplicantInformation,
    ChildInformation,
    ChildState,
    CommunicationPreferences,
    ContactInformation,
    DentalBenefits,
    TermsAndConditions,
)
from benefitflow.infrastructure.address_validation_client import AddressCorrectionResult

TODAY = date(2025, 3, 15)
NOW = datetime(2025, 3, 15, 12, 0, tzinfo=timezone.utc)

APPLICANT_SIN = "046454286"
PARTNER_SIN = "123456782"
CHILD_ONE_SIN = "130692544"
CHILD_TWO_SIN = "193456787"
SPARE_SIN = "800000002"

FLOW_ID = "11111111-1111-4111-8111-111111111111"
CHILD_ONE_ID = "22222222-2222-4222-8222-222222222222"
CHILD_TWO_ID = "33333333-3333-4333-8333-333333333333"


class FakeClock:
    def __init__(self, now: datetime = NOW):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now += timedelta(**kwargs)


class StubAddressService:
    def __init__(self, result: AddressCorrectionResult = AddressCorrectionResult(status="correct")):
        self.result = result
        self.requests: List[Any] = []

    async def correct_address(self, request):
        self.requests.append(request)
        return self.result


def canadian_address() -> Address:
    return Address(address="123 Main St", city="Ottawa", country="CAN", province="ON", postal_code="K1A 0B1")


def complete_adult_patch(type_of_application: str = "adult") -> Dict[str, Any]:
    """Every applicant answer an apply-adult review needs."""
    address = canadian_address()
    return {
        "terms_and_conditions": TermsAndConditions(acknowledge_terms=True, acknowledge_privacy=True, share_data=True),
        "type_of_application": type_of_application,
        "has_filed_taxes": True,
        "date_of_birth": "1980-05-20",
        "applicant_information": ApplicantInformation(
            first_name="Jane", last_name="Doe", social_insurance_number=APPLICANT_SIN
        ),
        "marital_status": "single",
        "contact_information": ContactInformation(email="jane@example.com"),
        "mailing_address": address,
        "home_address": address,
        "is_home_address_same_as_mailing_address": True,
        "communication_preferences": CommunicationPreferences(preferred_language="en", preferred_method="email"),
        "dental_insurance": False,
        "dental_benefits": DentalBenefits(has_federal_benefits=False, has_provincial_territorial_benefits=False),
    }


def complete_child(child_id: str = CHILD_ONE_ID, sin: str = CHILD_ONE_SIN, **information: Any) -> ChildState:
    details = {
        "first_name": "Sam",
        "last_name": "Doe",
        "date_of_birth": "2015-01-01",
        "is_parent": True,
        "has_social_insurance_number": True,
        "social_insurance_number": sin,
        **information,
    }
    return ChildState(
        id=child_id,
        information=ChildInformation(**details),
        dental_insurance=False,
        dental_benefits=DentalBenefits(has_federal_benefits=False, has_provincial_territorial_benefits=False),
    )
