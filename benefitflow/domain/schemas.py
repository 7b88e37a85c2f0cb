from enum import Enum
from typing import Optional, Tuple

from pydantic import BaseModel, ConfigDict, EmailStr, Field


def to_camel(string: str) -> str:
    """Convert snake_case to camelCase"""
    components = string.split("_")
    return components[0] + "".join(x.title() for x in components[1:])


class CamelCaseModel(BaseModel):
    """Base model with camelCase alias configuration"""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,  # Allow both snake_case and camelCase
        use_enum_values=True,
    )


class FrozenCamelCaseModel(CamelCaseModel):
    """Read-mostly records: changes go through a merge that builds a new instance"""

    model_config = ConfigDict(frozen=True)


class FlowPurpose(str, Enum):
    APPLY = "apply-flow"
    RENEW = "renew-flow"
    PROTECTED_APPLY = "protected-apply-flow"
    PROTECTED_RENEW = "protected-renew-flow"


class TypeOfApplication(str, Enum):
    ADULT = "adult"
    ADULT_CHILD = "adult-child"
    CHILD = "child"
    DELEGATE = "delegate"


class AgeCategory(str, Enum):
    CHILDREN = "children"
    YOUTH = "youth"
    ADULTS = "adults"
    SENIORS = "seniors"


class ApplicationYear(FrozenCamelCaseModel):
    application_year_id: str
    tax_year: str
    dependent_eligibility_end_date: Optional[str] = None


class TermsAndConditions(FrozenCamelCaseModel):
    acknowledge_terms: bool
    acknowledge_privacy: bool
    share_data: bool


class ApplicantInformation(FrozenCamelCaseModel):
    first_name: str
    last_name: str
    social_insurance_number: Optional[str] = None
    client_number: Optional[str] = None


class PartnerInformation(FrozenCamelCaseModel):
    confirm: bool
    year_of_birth: str
    social_insurance_number: str


class ContactInformation(FrozenCamelCaseModel):
    phone_number: Optional[str] = None
    phone_number_alt: Optional[str] = None
    email: Optional[EmailStr] = None


class Address(FrozenCamelCaseModel):
    address: str
    city: str
    country: str
    province: Optional[str] = None
    postal_code: Optional[str] = None


class CommunicationPreferences(FrozenCamelCaseModel):
    preferred_language: str
    preferred_method: str


class DentalBenefits(FrozenCamelCaseModel):
    has_federal_benefits: bool
    federal_social_program: Optional[str] = None
    has_provincial_territorial_benefits: bool
    province: Optional[str] = None
    provincial_territorial_social_program: Optional[str] = None


class ChildInformation(FrozenCamelCaseModel):
    first_name: str
    last_name: str
    date_of_birth: str
    is_parent: bool
    has_social_insurance_number: bool
    social_insurance_number: Optional[str] = None
    client_number: Optional[str] = None


class ChildState(FrozenCamelCaseModel):
    id: str
    information: Optional[ChildInformation] = None
    dental_insurance: Optional[bool] = None
    dental_benefits: Optional[DentalBenefits] = None


class SubmissionInfo(FrozenCamelCaseModel):
    confirmation_code: str
    submitted_on: str


class FlowState(FrozenCamelCaseModel):
    """
    Everything a user has entered so far in one multi-step flow.

    Stored as a single JSON blob in the session under "<purpose>-<id>".
    Absent optional fields mean "not yet answered".
    """

    id: str
    edit_mode: bool = False
    last_updated_on: str
    application_year: Optional[ApplicationYear] = None
    terms_and_conditions: Optional[TermsAndConditions] = None
    type_of_application: Optional[TypeOfApplication] = None
    type_of_renewal: Optional[TypeOfApplication] = None
    has_filed_taxes: Optional[bool] = None
    date_of_birth: Optional[str] = None
    living_independently: Optional[bool] = None
    applicant_information: Optional[ApplicantInformation] = None
    marital_status: Optional[str] = None
    has_marital_status_changed: Optional[bool] = None
    partner_information: Optional[PartnerInformation] = None
    contact_information: Optional[ContactInformation] = None
    has_address_changed: Optional[bool] = None
    mailing_address: Optional[Address] = None
    home_address: Optional[Address] = None
    is_home_address_same_as_mailing_address: Optional[bool] = None
    communication_preferences: Optional[CommunicationPreferences] = None
    dental_insurance: Optional[bool] = None
    has_federal_provincial_territorial_benefits_changed: Optional[bool] = None
    dental_benefits: Optional[DentalBenefits] = None
    children: Tuple[ChildState, ...] = Field(default_factory=tuple)
    submission_info: Optional[SubmissionInfo] = None
