"""
Validators for every flow step.

Each validator pairs a StepForm with refinement against the current flow
state (SIN uniqueness, lookups, dates) and a transform into the patch that
gets saved.
"""

from datetime import date
from typing import Annotated, Any, ClassVar, Dict, List, Literal, Optional, Tuple

from benefitflow.core.config import settings
from benefitflow.domain.eligibility import marital_status_has_partner
from benefitflow.domain.schemas import (
    Address,
    ApplicantInformation,
    ChildInformation,
    CommunicationPreferences,
    ContactInformation,
    DentalBenefits,
    FlowState,
    PartnerInformation,
    TermsAndConditions,
    TypeOfApplication,
)
from benefitflow.infrastructure.address_validation_client import (
    AddressCorrectionRequest,
    AddressValidationService,
)
from benefitflow.utils.contact_validation import (
    format_postal_code,
    is_valid_canadian_postal_code,
    is_valid_usa_zip_code,
    validate_phone_number,
)
from benefitflow.utils.date_utils import MAX_AGE_YEARS, build_date, get_age, is_past_date
from benefitflow.utils.sin_validation import is_sin_taken, normalize_sin, validate_sin
from pydantic import EmailStr, Field, PositiveInt

from .base import ErrorCollector, StepForm, StepPatch, StepValidator, to_kebab

Name = Annotated[str, Field(max_length=100)]

# Address step actions that skip the correction service
ADDRESS_OVERRIDE_ACTIONS = ("use-invalid-address", "use-selected-address")


# ---------------------------------------------------------------------------
# Shared checks
# ---------------------------------------------------------------------------


def check_name(value: str, path: str, errors: ErrorCollector) -> None:
    if any(char.isdigit() for char in value):
        errors.add(path, f"{to_kebab(path)}-no-digits")


def check_date_of_birth(
    year: int, month: int, day: int, today: date, errors: ErrorCollector, path: str = "dateOfBirth"
) -> Optional[date]:
    """Calendar-valid, in the past, and at most MAX_AGE_YEARS ago. First failure wins."""
    born = build_date(year, month, day)
    if born is None:
        errors.add(path, "date-of-birth-valid")
        return None
    if not is_past_date(born, today):
        errors.add(path, "date-of-birth-is-past")
        return None
    if get_age(born, today) > MAX_AGE_YEARS:
        errors.add(path, "date-of-birth-is-past-valid")
        return None
    return born


def applicant_sin(state: FlowState) -> Optional[str]:
    return state.applicant_information.social_insurance_number if state.applicant_information else None


def partner_sin(state: FlowState) -> Optional[str]:
    return state.partner_information.social_insurance_number if state.partner_information else None


def children_sins(state: FlowState, exclude_child_id: Optional[str] = None) -> List[Optional[str]]:
    return [
        child.information.social_insurance_number
        for child in state.children
        if child.information is not None and child.id != exclude_child_id
    ]


def check_sin(sin: Optional[str], others: List[Optional[str]], errors: ErrorCollector) -> None:
    is_valid, message = validate_sin(sin)
    if not is_valid:
        errors.add("socialInsuranceNumber", message)
    elif is_sin_taken(sin, others):
        errors.add("socialInsuranceNumber", "sin-unique")


def _removals(*fields: Optional[str]) -> Tuple[str, ...]:
    return tuple(field for field in fields if field)


# ---------------------------------------------------------------------------
# Shared steps
# ---------------------------------------------------------------------------


class TermsAndConditionsForm(StepForm):
    acknowledge_terms: bool = False
    acknowledge_privacy: bool = False
    share_data: bool


class TermsAndConditionsValidator(StepValidator[TermsAndConditionsForm]):
    form = TermsAndConditionsForm

    def refine(self, form, context, errors):
        if not form.acknowledge_terms:
            errors.add("acknowledgeTerms", "acknowledge-terms-required")
        if not form.acknowledge_privacy:
            errors.add("acknowledgePrivacy", "acknowledge-privacy-required")

    def transform(self, form, context):
        return StepPatch(
            {
                "terms_and_conditions": TermsAndConditions(
                    acknowledge_terms=form.acknowledge_terms,
                    acknowledge_privacy=form.acknowledge_privacy,
                    share_data=form.share_data,
                )
            }
        )


class TypeOfApplicationForm(StepForm):
    type_of_application: TypeOfApplication


class TypeOfRenewalForm(StepForm):
    type_of_renewal: TypeOfApplication


class TypeSelectionValidator(StepValidator):
    """Picking a flow type always leaves edit mode: the remaining steps depend on it."""

    def __init__(self, field: str = "type_of_application"):
        self.field = field
        self.form = TypeOfApplicationForm if field == "type_of_application" else TypeOfRenewalForm

    def transform(self, form, context):
        return StepPatch({self.field: getattr(form, self.field), "edit_mode": False})


# ---------------------------------------------------------------------------
# Applicant steps
# ---------------------------------------------------------------------------


class TaxFilingForm(StepForm):
    has_filed_taxes: bool


class TaxFilingValidator(StepValidator[TaxFilingForm]):
    form = TaxFilingForm

    def transform(self, form, context):
        return StepPatch({"has_filed_taxes": form.has_filed_taxes})


class DateOfBirthForm(StepForm):
    date_of_birth_year: PositiveInt
    date_of_birth_month: PositiveInt
    date_of_birth_day: PositiveInt


class DateOfBirthValidator(StepValidator[DateOfBirthForm]):
    """
    Answers of an earlier age-dependent step stop applying when the date of
    birth moves the applicant out of youth, so living_independently is dropped.
    """

    form = DateOfBirthForm

    def refine(self, form, context, errors):
        check_date_of_birth(
            form.date_of_birth_year, form.date_of_birth_month, form.date_of_birth_day, context.today, errors
        )

    def transform(self, form, context):
        born = date(form.date_of_birth_year, form.date_of_birth_month, form.date_of_birth_day)
        age = get_age(born, context.today)
        remove = () if 16 <= age < 18 else ("living_independently",)
        return StepPatch({"date_of_birth": born.isoformat()}, remove=remove)


class LivingIndependentlyForm(StepForm):
    living_independently: bool


class LivingIndependentlyValidator(StepValidator[LivingIndependentlyForm]):
    form = LivingIndependentlyForm

    def transform(self, form, context):
        return StepPatch({"living_independently": form.living_independently})


class ApplicantInformationForm(StepForm):
    first_name: Name
    last_name: Name
    social_insurance_number: Optional[str] = None
    client_number: Optional[str] = None


class ApplicantInformationValidator(StepValidator[ApplicantInformationForm]):
    """Renewals also identify the applicant by the client number from their first application."""

    form = ApplicantInformationForm

    def __init__(self, require_client_number: bool = False):
        self.require_client_number = require_client_number

    def refine(self, form, context, errors):
        check_name(form.first_name, "firstName", errors)
        check_name(form.last_name, "lastName", errors)
        if self.require_client_number:
            if not form.client_number:
                errors.add("clientNumber", "client-number-required")
            elif not (form.client_number.isdigit() and len(form.client_number) == 11):
                errors.add("clientNumber", "client-number-valid")
        check_sin(
            form.social_insurance_number,
            [partner_sin(context.state), *children_sins(context.state)],
            errors,
        )

    def transform(self, form, context):
        return StepPatch(
            {
                "applicant_information": ApplicantInformation(
                    first_name=form.first_name,
                    last_name=form.last_name,
                    social_insurance_number=normalize_sin(form.social_insurance_number),
                    client_number=form.client_number if self.require_client_number else None,
                )
            }
        )


class MaritalStatusForm(StepForm):
    marital_status: str


class MaritalStatusValidator(StepValidator[MaritalStatusForm]):
    form = MaritalStatusForm

    def refine(self, form, context, errors):
        if not context.lookup.has_entry("marital_status", form.marital_status):
            errors.add("maritalStatus", "marital-status-invalid")

    def transform(self, form, context):
        has_partner = marital_status_has_partner(form.marital_status)
        return StepPatch(
            {"marital_status": form.marital_status},
            remove=_removals(None if has_partner else "partner_information"),
        )


class ConfirmMaritalStatusForm(StepForm):
    has_marital_status_changed: bool
    marital_status: Optional[str] = None


class ConfirmMaritalStatusValidator(StepValidator[ConfirmMaritalStatusForm]):
    """A 'no change' answer discards any marital status sent along with it."""

    form = ConfirmMaritalStatusForm

    def refine(self, form, context, errors):
        if not form.has_marital_status_changed:
            return
        if not form.marital_status:
            errors.add("maritalStatus", "marital-status-required")
        elif not context.lookup.has_entry("marital_status", form.marital_status):
            errors.add("maritalStatus", "marital-status-invalid")

    def transform(self, form, context):
        if not form.has_marital_status_changed:
            return StepPatch(
                {"has_marital_status_changed": False},
                remove=("marital_status", "partner_information"),
            )
        has_partner = marital_status_has_partner(form.marital_status)
        return StepPatch(
            {"has_marital_status_changed": True, "marital_status": form.marital_status},
            remove=_removals(None if has_partner else "partner_information"),
        )


class PartnerInformationForm(StepForm):
    confirm: bool = False
    year_of_birth: PositiveInt
    social_insurance_number: str


class PartnerInformationValidator(StepValidator[PartnerInformationForm]):
    form = PartnerInformationForm

    def refine(self, form, context, errors):
        if not form.confirm:
            errors.add("confirm", "confirm-required")
        if form.year_of_birth > context.today.year:
            errors.add("yearOfBirth", "year-of-birth-is-past")
        elif context.today.year - form.year_of_birth > MAX_AGE_YEARS:
            errors.add("yearOfBirth", "year-of-birth-is-past-valid")
        check_sin(
            form.social_insurance_number,
            [applicant_sin(context.state), *children_sins(context.state)],
            errors,
        )

    def transform(self, form, context):
        return StepPatch(
            {
                "partner_information": PartnerInformation(
                    confirm=form.confirm,
                    year_of_birth=str(form.year_of_birth),
                    social_insurance_number=normalize_sin(form.social_insurance_number),
                )
            }
        )


class ContactInformationForm(StepForm):
    phone_number: Optional[str] = None
    phone_number_alt: Optional[str] = None
    email: Optional[EmailStr] = None
    confirm_email: Optional[str] = None

    messages: ClassVar[Dict[str, str]] = {"email": "email-valid"}


class ContactInformationValidator(StepValidator[ContactInformationForm]):
    form = ContactInformationForm

    def refine(self, form, context, errors):
        for path, value in (("phoneNumber", form.phone_number), ("phoneNumberAlt", form.phone_number_alt)):
            if value:
                is_valid, message = validate_phone_number(value)
                if not is_valid:
                    errors.add(path, message)
        if form.email:
            if not form.confirm_email:
                errors.add("confirmEmail", "confirm-email-required")
            elif form.email.lower() != form.confirm_email.lower():
                errors.add("confirmEmail", "email-match")

    def transform(self, form, context):
        return StepPatch(
            {
                "contact_information": ContactInformation(
                    phone_number=form.phone_number,
                    phone_number_alt=form.phone_number_alt,
                    email=form.email,
                )
            }
        )


class ConfirmAddressForm(StepForm):
    has_address_changed: bool


class ConfirmAddressValidator(StepValidator[ConfirmAddressForm]):
    form = ConfirmAddressForm

    def transform(self, form, context):
        if form.has_address_changed:
            return StepPatch({"has_address_changed": True})
        return StepPatch(
            {"has_address_changed": False},
            remove=("mailing_address", "home_address", "is_home_address_same_as_mailing_address"),
        )


class AddressForm(StepForm):
    address: Name
    city: Name
    country: str
    province: Optional[str] = None
    postal_code: Optional[str] = None
    copy_mailing_address: bool = False


class AddressValidator(StepValidator[AddressForm]):
    """
    Mailing or home address. Province and postal code are required for
    Canada and the USA and ignored elsewhere. Canadian addresses are checked
    against the address correction service before saving.
    """

    form = AddressForm

    def __init__(self, target: str = "mailing_address"):
        self.target = target

    def refine(self, form, context, errors):
        if not context.lookup.has_entry("country", form.country):
            errors.add("country", "country-invalid")
            return
        if form.country not in (settings.canada_country_id, settings.usa_country_id):
            return

        if not form.province:
            errors.add("province", "province-required")
        elif form.province not in {p.id for p in context.lookup.list_provinces(form.country)}:
            errors.add("province", "province-invalid")

        if not form.postal_code:
            errors.add("postalCode", "postal-code-required")
        elif form.country == settings.canada_country_id and not is_valid_canadian_postal_code(form.postal_code):
            errors.add("postalCode", "postal-code-valid")
        elif form.country == settings.usa_country_id and not is_valid_usa_zip_code(form.postal_code):
            errors.add("postalCode", "zip-code-valid")

    def transform(self, form, context):
        north_american = form.country in (settings.canada_country_id, settings.usa_country_id)
        address = Address(
            address=form.address,
            city=form.city,
            country=form.country,
            province=form.province if north_american else None,
            postal_code=(
                format_postal_code(form.country, form.postal_code, settings.canada_country_id)
                if form.postal_code
                else None
            ),
        )
        values: Dict[str, Any] = {self.target: address}
        if self.target == "mailing_address":
            values["is_home_address_same_as_mailing_address"] = form.copy_mailing_address
            if form.copy_mailing_address:
                values["home_address"] = address
        return StepPatch(values)

    async def check_deliverability(
        self, patch: StepPatch, action: str, service: AddressValidationService
    ) -> Optional[Dict[str, Any]]:
        """
        None when the patch may be saved; otherwise the dialog payload to show.
        """
        address: Address = patch.values[self.target]
        if address.country != settings.canada_country_id or action in ADDRESS_OVERRIDE_ACTIONS:
            return None

        result = await service.correct_address(
            AddressCorrectionRequest(
                address=address.address,
                city=address.city,
                postal_code=address.postal_code or "",
                province_code=address.province or "",
            )
        )
        entered = address.model_dump(mode="json", by_alias=True, exclude_none=True)
        if result.status == "not-correct":
            return {"status": "address-invalid", "invalidAddress": entered}
        if result.status == "corrected":
            return {
                "status": "address-suggestion",
                "enteredAddress": entered,
                "suggestedAddress": {
                    "address": result.address,
                    "city": result.city,
                    "country": address.country,
                    "province": result.province_code,
                    "postalCode": result.postal_code,
                },
            }
        return None


class CommunicationPreferencesForm(StepForm):
    preferred_language: Literal["en", "fr"]
    preferred_method: Literal["email", "mail"]


class CommunicationPreferencesValidator(StepValidator[CommunicationPreferencesForm]):
    form = CommunicationPreferencesForm

    def refine(self, form, context, errors):
        contact = context.state.contact_information
        if form.preferred_method == "email" and not (contact and contact.email):
            errors.add("preferredMethod", "email-required")

    def transform(self, form, context):
        return StepPatch(
            {
                "communication_preferences": CommunicationPreferences(
                    preferred_language=form.preferred_language,
                    preferred_method=form.preferred_method,
                )
            }
        )


class DentalInsuranceForm(StepForm):
    dental_insurance: bool


class DentalInsuranceValidator(StepValidator[DentalInsuranceForm]):
    """Shared by applicant and child steps: both store the answer under dental_insurance."""

    form = DentalInsuranceForm

    def transform(self, form, context):
        return StepPatch({"dental_insurance": form.dental_insurance})


class ConfirmBenefitsForm(StepForm):
    has_federal_provincial_territorial_benefits_changed: bool


class ConfirmBenefitsValidator(StepValidator[ConfirmBenefitsForm]):
    form = ConfirmBenefitsForm

    def transform(self, form, context):
        changed = form.has_federal_provincial_territorial_benefits_changed
        return StepPatch(
            {"has_federal_provincial_territorial_benefits_changed": changed},
            remove=() if changed else ("dental_benefits",),
        )


class DentalBenefitsForm(StepForm):
    has_federal_benefits: bool
    federal_social_program: Optional[str] = None
    has_provincial_territorial_benefits: bool
    province: Optional[str] = None
    provincial_territorial_social_program: Optional[str] = None


class DentalBenefitsValidator(StepValidator[DentalBenefitsForm]):
    """Shared by applicant and child steps. Programs answered "no" are cleared."""

    form = DentalBenefitsForm

    def refine(self, form, context, errors):
        lookup = context.lookup
        if form.has_federal_benefits:
            if not form.federal_social_program:
                errors.add("federalSocialProgram", "federal-social-program-required")
            elif not lookup.has_entry("federal_social_program", form.federal_social_program):
                errors.add("federalSocialProgram", "federal-social-program-invalid")

        if form.has_provincial_territorial_benefits:
            provinces = {p.id for p in lookup.list_provinces(settings.canada_country_id)}
            if not form.province:
                errors.add("province", "province-required")
            elif form.province not in provinces:
                errors.add("province", "province-invalid")
            elif not form.provincial_territorial_social_program:
                errors.add(
                    "provincialTerritorialSocialProgram", "provincial-territorial-social-program-required"
                )
            elif form.provincial_territorial_social_program not in {
                p.id for p in lookup.list_provincial_social_programs(form.province)
            }:
                errors.add(
                    "provincialTerritorialSocialProgram", "provincial-territorial-social-program-invalid"
                )

    def transform(self, form, context):
        return StepPatch(
            {
                "dental_benefits": DentalBenefits(
                    has_federal_benefits=form.has_federal_benefits,
                    federal_social_program=form.federal_social_program if form.has_federal_benefits else None,
                    has_provincial_territorial_benefits=form.has_provincial_territorial_benefits,
                    province=form.province if form.has_provincial_territorial_benefits else None,
                    provincial_territorial_social_program=(
                        form.provincial_territorial_social_program
                        if form.has_provincial_territorial_benefits
                        else None
                    ),
                )
            }
        )


# ---------------------------------------------------------------------------
# Child steps
# ---------------------------------------------------------------------------


class ChildInformationForm(StepForm):
    first_name: Name
    last_name: Name
    date_of_birth_year: PositiveInt
    date_of_birth_month: PositiveInt
    date_of_birth_day: PositiveInt
    is_parent: bool
    has_social_insurance_number: bool
    social_insurance_number: Optional[str] = None

    messages: ClassVar[Dict[str, str]] = {
        "isParent": "is-parent",
        "hasSocialInsuranceNumber": "has-social-insurance-number",
    }


class ChildInformationValidator(StepValidator[ChildInformationForm]):
    """A child's SIN may not repeat the applicant's, the partner's or another child's."""

    form = ChildInformationForm

    def refine(self, form, context, errors):
        check_name(form.first_name, "firstName", errors)
        check_name(form.last_name, "lastName", errors)
        check_date_of_birth(
            form.date_of_birth_year, form.date_of_birth_month, form.date_of_birth_day, context.today, errors
        )
        if form.has_social_insurance_number:
            state = context.state
            check_sin(
                form.social_insurance_number,
                [applicant_sin(state), partner_sin(state), *children_sins(state, exclude_child_id=context.child_id)],
                errors,
            )

    def transform(self, form, context):
        born = date(form.date_of_birth_year, form.date_of_birth_month, form.date_of_birth_day)
        return StepPatch(
            {
                "information": ChildInformation(
                    first_name=form.first_name,
                    last_name=form.last_name,
                    date_of_birth=born.isoformat(),
                    is_parent=form.is_parent,
                    has_social_insurance_number=form.has_social_insurance_number,
                    social_insurance_number=(
                        normalize_sin(form.social_insurance_number) if form.has_social_insurance_number else None
                    ),
                )
            }
        )
