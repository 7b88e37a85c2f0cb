from benefitflow.services.validation.base import (
    ErrorCollector,
    StepForm,
    StepPatch,
    StepValidator,
    ValidationContext,
    flatten_errors,
)
from benefitflow.services.validation.steps import (
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
    TaxFilingValidator,
    TermsAndConditionsValidator,
    TypeSelectionValidator,
)

__all__ = [
    "ErrorCollector",
    "StepForm",
    "StepPatch",
    "StepValidator",
    "ValidationContext",
    "flatten_errors",
    "AddressValidator",
    "ApplicantInformationValidator",
    "ChildInformationValidator",
    "CommunicationPreferencesValidator",
    "ConfirmAddressValidator",
    "ConfirmBenefitsValidator",
    "ConfirmMaritalStatusValidator",
    "ContactInformationValidator",
    "DateOfBirthValidator",
    "DentalBenefitsValidator",
    "DentalInsuranceValidator",
    "LivingIndependentlyValidator",
    "MaritalStatusValidator",
    "PartnerInformationValidator",
    "TaxFilingValidator",
    "TermsAndConditionsValidator",
    "TypeSelectionValidator",
]
