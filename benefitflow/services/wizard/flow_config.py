"""
Declarative description of every flow.

A FlowConfig lists a flow's steps in order. Each StepDef names the flow
state field it owns, when it applies, and which answers divert the user to an
informational page. The Flow Guard walks the same list to find the first
missing prerequisite, and the Step Service walks it to find the next step.

Entry flows ("apply", "renew", ...) hold the steps shared by every variant
(terms and conditions, type selection) and hand over to a variant once the
type is known. Variants ("apply-adult", "renew-child", ...) own the rest.
"""

from dataclasses import dataclass, field
from datetime import date
from typing import Callable, Dict, FrozenSet, Mapping, Optional, Tuple

from benefitflow.core.exceptions import UnknownFlowError
from benefitflow.domain.eligibility import applicant_has_partner, applicant_is_youth, applicant_may_apply
from benefitflow.domain.schemas import FlowPurpose, FlowState, TypeOfApplication
from benefitflow.services.validation import (
    AddressValidator,
    ApplicantInformationValidator,
    ChildInformationValidator,
    CommunicationPreferencesValidator,
    ConfirmAddressValidator,
    ConfirmBenefitsValidator,
    ConfirmMaritalStatusValidator,
    ContactInformationValidator,
    DateOfBirthValidator,
    DentalBenefitsValidator,
    DentalInsuranceValidator,
    LivingIndependentlyValidator,
    MaritalStatusValidator,
    PartnerInformationValidator,
    StepValidator,
    TaxFilingValidator,
    TermsAndConditionsValidator,
    TypeSelectionValidator,
)

Predicate = Callable[[FlowState, date], bool]

REVIEW = "review"
CONFIRMATION = "confirmation"
CHILDREN = "children"


@dataclass(frozen=True)
class FlowParams:
    """Route parameters identifying one flow instance."""

    id: str
    lang: str = "en"


@dataclass(frozen=True)
class StepDef:
    slug: str
    field: str
    validator: StepValidator
    when: Optional[Predicate] = None
    accept: Optional[Predicate] = None
    reject_step: Optional[str] = None
    # Owning flow kind when the step lives in the entry flow
    kind: Optional[str] = None

    def applies(self, state: FlowState, today: date) -> bool:
        return self.when is None or self.when(state, today)

    def is_missing(self, state: FlowState) -> bool:
        return getattr(state, self.field) is None

    def is_accepted(self, state: FlowState, today: date) -> bool:
        return self.accept is None or self.accept(state, today)


@dataclass(frozen=True)
class ChildStepDef:
    slug: str
    field: str
    validator: StepValidator
    # ChildFlowMachine state the step corresponds to, and the event answering it fires
    machine_state: str
    event: str


@dataclass(frozen=True)
class FlowConfig:
    kind: str
    purpose: str
    protected: bool
    steps: Tuple[StepDef, ...]
    information_steps: FrozenSet[str] = frozenset()
    # Field holding the flow type; variant flows accept only discriminator_values
    discriminator_field: Optional[str] = None
    discriminator_values: FrozenSet[str] = frozenset()
    # Entry flow owning the shared steps; None for entry flows themselves
    entry_kind: Optional[str] = None
    first_step: str = "terms-and-conditions"
    type_selection_step: str = "type-application"
    # Entry flows: discriminator value -> variant kind
    variants: Mapping[str, str] = field(default_factory=dict)
    supports_children: bool = False
    seeds_application_year: bool = False

    @property
    def own_steps(self) -> Tuple[StepDef, ...]:
        return tuple(step for step in self.steps if step.kind is None)

    @property
    def is_entry(self) -> bool:
        return self.entry_kind is None

    def get_step(self, slug: str) -> StepDef:
        for step in self.own_steps:
            if step.slug == slug:
                return step
        raise UnknownFlowError(f"Unknown step {slug!r} in flow {self.kind!r}", details={"step": slug})

    def has_page(self, slug: str) -> bool:
        return slug in self.information_steps or any(step.slug == slug for step in self.own_steps)

    def step_kind(self, step: StepDef) -> str:
        return step.kind or self.kind

    def last_step_slug(self) -> str:
        """Where 'back' from review lands."""
        if self.supports_children:
            return CHILDREN
        return self.own_steps[-1].slug

    # -- paths ---------------------------------------------------------------

    def path(self, params: FlowParams, slug: str, kind: Optional[str] = None) -> str:
        return f"/{params.lang}/{kind or self.kind}/{params.id}/{slug}"

    def entry_path(self, params: FlowParams, slug: str) -> str:
        return self.path(params, slug, kind=self.entry_kind or self.kind)

    def child_path(self, params: FlowParams, child_id: str, slug: str) -> str:
        return f"/{params.lang}/{self.kind}/{params.id}/{CHILDREN}/{child_id}/{slug}"

    def review_path(self, params: FlowParams) -> str:
        return self.path(params, REVIEW)

    def confirmation_path(self, params: FlowParams) -> str:
        return self.path(params, CONFIRMATION)

    def children_path(self, params: FlowParams) -> str:
        return self.path(params, CHILDREN)


# ---------------------------------------------------------------------------
# Step predicates
# ---------------------------------------------------------------------------


def _has_filed_taxes(state: FlowState, today: date) -> bool:
    return bool(state.has_filed_taxes)


def _is_not_delegate(field_name: str) -> Predicate:
    def predicate(state: FlowState, today: date) -> bool:
        return getattr(state, field_name) != TypeOfApplication.DELEGATE

    return predicate


def _is_youth(state: FlowState, today: date) -> bool:
    return applicant_is_youth(state, today)


def _may_apply(state: FlowState, today: date) -> bool:
    return applicant_may_apply(state, today)


def _has_partner(state: FlowState, today: date) -> bool:
    return applicant_has_partner(state)


def _marital_status_answered(state: FlowState, today: date) -> bool:
    return not state.has_marital_status_changed or state.marital_status is not None


def _renewal_partner_needed(state: FlowState, today: date) -> bool:
    return bool(state.has_marital_status_changed) and applicant_has_partner(state)


def _home_address_differs(state: FlowState, today: date) -> bool:
    return state.is_home_address_same_as_mailing_address is False


def _address_changed(state: FlowState, today: date) -> bool:
    return bool(state.has_address_changed)


def _renewal_home_address_differs(state: FlowState, today: date) -> bool:
    return bool(state.has_address_changed) and state.is_home_address_same_as_mailing_address is False


def _benefits_changed(state: FlowState, today: date) -> bool:
    return bool(state.has_federal_provincial_territorial_benefits_changed)


# ---------------------------------------------------------------------------
# Child steps (shared by every flow that supports children)
# ---------------------------------------------------------------------------

CHILD_STEPS: Tuple[ChildStepDef, ...] = (
    ChildStepDef("information", "information", ChildInformationValidator(), "information", "provide_information"),
    ChildStepDef(
        "dental-insurance", "dental_insurance", DentalInsuranceValidator(), "dental_insurance", "answer_dental_insurance"
    ),
    ChildStepDef(
        "federal-provincial-territorial-benefits",
        "dental_benefits",
        DentalBenefitsValidator(),
        "dental_benefits",
        "answer_dental_benefits",
    ),
)
CHILD_INFORMATION_STEPS = frozenset({"parent-or-guardian", "cannot-apply-child"})


def get_child_step(slug: str) -> ChildStepDef:
    for step in CHILD_STEPS:
        if step.slug == slug:
            return step
    raise UnknownFlowError(f"Unknown child step {slug!r}", details={"step": slug})


# ---------------------------------------------------------------------------
# Flow definitions
# ---------------------------------------------------------------------------

VARIANT_SUFFIXES = {
    TypeOfApplication.ADULT.value: "adult",
    TypeOfApplication.ADULT_CHILD.value: "adult-child",
    TypeOfApplication.CHILD.value: "child",
}


def _entry_steps(entry_kind: str, type_field: str, type_slug: str, shared: bool) -> Tuple[StepDef, ...]:
    kind = entry_kind if shared else None
    return (
        StepDef("terms-and-conditions", "terms_and_conditions", TermsAndConditionsValidator(), kind=kind),
        StepDef(
            type_slug,
            type_field,
            TypeSelectionValidator(type_field),
            accept=_is_not_delegate(type_field),
            reject_step="application-delegate",
            kind=kind,
        ),
    )


def _apply_steps(entry_kind: str, type_of_application: str) -> Tuple[StepDef, ...]:
    applicant_covered = type_of_application != TypeOfApplication.CHILD.value
    steps = _entry_steps(entry_kind, "type_of_application", "type-application", shared=True) + (
        StepDef("tax-filing", "has_filed_taxes", TaxFilingValidator(), accept=_has_filed_taxes, reject_step="file-taxes"),
        StepDef(
            "date-of-birth", "date_of_birth", DateOfBirthValidator(), accept=_may_apply, reject_step="parent-or-guardian"
        ),
        StepDef("living-independently", "living_independently", LivingIndependentlyValidator(), when=_is_youth),
        StepDef("applicant-information", "applicant_information", ApplicantInformationValidator()),
        StepDef("marital-status", "marital_status", MaritalStatusValidator()),
        StepDef("partner-information", "partner_information", PartnerInformationValidator(), when=_has_partner),
        StepDef("contact-information", "contact_information", ContactInformationValidator()),
        StepDef("mailing-address", "mailing_address", AddressValidator("mailing_address")),
        StepDef("home-address", "home_address", AddressValidator("home_address"), when=_home_address_differs),
        StepDef("communication-preference", "communication_preferences", CommunicationPreferencesValidator()),
    )
    if applicant_covered:
        steps += (
            StepDef("dental-insurance", "dental_insurance", DentalInsuranceValidator()),
            StepDef("federal-provincial-territorial-benefits", "dental_benefits", DentalBenefitsValidator()),
        )
    return steps


def _renew_steps(entry_kind: str, type_of_renewal: str) -> Tuple[StepDef, ...]:
    applicant_covered = type_of_renewal != TypeOfApplication.CHILD.value
    steps = _entry_steps(entry_kind, "type_of_renewal", "type-renewal", shared=True) + (
        StepDef("applicant-information", "applicant_information", ApplicantInformationValidator(require_client_number=True)),
        StepDef(
            "confirm-marital-status",
            "has_marital_status_changed",
            ConfirmMaritalStatusValidator(),
            accept=_marital_status_answered,
            reject_step="confirm-marital-status",
        ),
        StepDef(
            "partner-information", "partner_information", PartnerInformationValidator(), when=_renewal_partner_needed
        ),
        StepDef("confirm-address", "has_address_changed", ConfirmAddressValidator()),
        StepDef("mailing-address", "mailing_address", AddressValidator("mailing_address"), when=_address_changed),
        StepDef("home-address", "home_address", AddressValidator("home_address"), when=_renewal_home_address_differs),
        StepDef("contact-information", "contact_information", ContactInformationValidator()),
        StepDef("communication-preference", "communication_preferences", CommunicationPreferencesValidator()),
    )
    if applicant_covered:
        steps += (
            StepDef("dental-insurance", "dental_insurance", DentalInsuranceValidator()),
            StepDef(
                "confirm-federal-provincial-territorial-benefits",
                "has_federal_provincial_territorial_benefits_changed",
                ConfirmBenefitsValidator(),
            ),
            StepDef(
                "federal-provincial-territorial-benefits",
                "dental_benefits",
                DentalBenefitsValidator(),
                when=_benefits_changed,
            ),
        )
    return steps


def _build_flows(prefix: str, protected: bool) -> Dict[str, FlowConfig]:
    flows: Dict[str, FlowConfig] = {}

    apply_purpose = FlowPurpose.PROTECTED_APPLY if protected else FlowPurpose.APPLY
    renew_purpose = FlowPurpose.PROTECTED_RENEW if protected else FlowPurpose.RENEW

    for purpose_name, purpose, type_field, type_slug, steps_for in (
        ("apply", apply_purpose, "type_of_application", "type-application", _apply_steps),
        ("renew", renew_purpose, "type_of_renewal", "type-renewal", _renew_steps),
    ):
        entry_kind = f"{prefix}{purpose_name}"
        seeds_year = purpose_name == "apply"
        variants = {value: f"{entry_kind}-{suffix}" for value, suffix in VARIANT_SUFFIXES.items()}

        flows[entry_kind] = FlowConfig(
            kind=entry_kind,
            purpose=purpose.value,
            protected=protected,
            steps=_entry_steps(entry_kind, type_field, type_slug, shared=False),
            information_steps=frozenset({"application-delegate"}),
            discriminator_field=type_field,
            type_selection_step=type_slug,
            variants=variants,
            seeds_application_year=seeds_year,
        )

        for value, variant_kind in variants.items():
            with_children = value != TypeOfApplication.ADULT.value
            information_steps = {"file-taxes", "parent-or-guardian"} if purpose_name == "apply" else set()
            flows[variant_kind] = FlowConfig(
                kind=variant_kind,
                purpose=purpose.value,
                protected=protected,
                steps=steps_for(entry_kind, value),
                information_steps=frozenset(information_steps),
                discriminator_field=type_field,
                discriminator_values=frozenset({value}),
                entry_kind=entry_kind,
                type_selection_step=type_slug,
                supports_children=with_children,
                seeds_application_year=seeds_year,
            )

    return flows


FLOW_CONFIGS: Dict[str, FlowConfig] = {**_build_flows("", protected=False), **_build_flows("protected-", protected=True)}


def get_flow_config(kind: str) -> FlowConfig:
    try:
        return FLOW_CONFIGS[kind]
    except KeyError:
        raise UnknownFlowError(f"Unknown flow: {kind!r}", details={"flow_kind": kind}) from None
