"""
Step validation: structural parse, cross-field refinement, then transform.

Each step has a StepForm (pydantic) describing the raw form fields and a
StepValidator that refines the parsed form against the current flow state
and turns it into a StepPatch for the Flow State Manager.

Error messages are message keys (e.g. "first-name-required"); translating
them is the rendering layer's job.
"""

from dataclasses import dataclass, field
from datetime import date
import re
from typing import Any, ClassVar, Dict, Generic, List, Mapping, Optional, Tuple, Type, TypeVar

from benefitflow.domain.results import ValidationResult
from benefitflow.domain.schemas import CamelCaseModel, FlowState
from benefitflow.services.reference import LookupService, lookup_service
from pydantic import ConfigDict, ValidationError, model_validator

F = TypeVar("F", bound="StepForm")

# Form fields that carry request metadata rather than answers
RESERVED_FORM_FIELDS = ("_csrf", "_action")


def to_kebab(name: str) -> str:
    """'dateOfBirthYear' or 'date_of_birth_year' -> 'date-of-birth-year'"""
    name = re.sub(r"(?<!^)(?=[A-Z])", "-", name).replace("_", "-")
    return name.lower()


@dataclass
class ValidationContext:
    """What a validator may look at besides the submitted form."""

    state: FlowState
    today: date
    lookup: LookupService = lookup_service
    child_id: Optional[str] = None
    lang: str = "en"


@dataclass(frozen=True)
class StepPatch:
    values: Dict[str, Any]
    remove: Tuple[str, ...] = ()


class ErrorCollector:
    def __init__(self):
        self.errors: Dict[str, List[str]] = {}

    def add(self, path: str, message: str) -> None:
        self.errors.setdefault(path, []).append(message)

    def __bool__(self) -> bool:
        return bool(self.errors)


class StepForm(CamelCaseModel):
    """Raw form fields; blank strings count as missing."""

    model_config = ConfigDict(str_strip_whitespace=True, extra="ignore")

    # Overrides for the generated "<field>-required" / "<field>-invalid" keys
    messages: ClassVar[Dict[str, str]] = {}

    @model_validator(mode="before")
    @classmethod
    def drop_blank_values(cls, data: Any) -> Any:
        if isinstance(data, Mapping):
            return {
                key: value
                for key, value in data.items()
                if key not in RESERVED_FORM_FIELDS and not (isinstance(value, str) and value.strip() == "")
            }
        return data


def flatten_errors(form: Type[StepForm], exc: ValidationError) -> Dict[str, List[str]]:
    """Map pydantic errors to {field path: [message key]}."""
    collector = ErrorCollector()
    for error in exc.errors():
        path = ".".join(str(part) for part in error["loc"]) or "__root__"
        error_type = error["type"]
        override = form.messages.get(f"{path}.{error_type}") or form.messages.get(path)
        if override:
            message = override
        elif error_type == "missing":
            message = f"{to_kebab(path)}-required"
        elif error_type.endswith("too_long"):
            message = f"{to_kebab(path)}-too-long"
        else:
            message = f"{to_kebab(path)}-invalid"
        if message not in collector.errors.get(path, []):
            collector.add(path, message)
    return collector.errors


class StepValidator(Generic[F]):
    form: ClassVar[Type[StepForm]]

    def validate(self, raw: Mapping[str, Any], context: ValidationContext) -> ValidationResult[StepPatch]:
        try:
            parsed = self.form.model_validate(dict(raw))
        except ValidationError as e:
            return ValidationResult.failed(flatten_errors(self.form, e))

        collector = ErrorCollector()
        self.refine(parsed, context, collector)
        if collector:
            return ValidationResult.failed(collector.errors)

        return ValidationResult.ok(self.transform(parsed, context))

    def refine(self, form: F, context: ValidationContext, errors: ErrorCollector) -> None:
        """Cross-field and cross-entity checks. Record problems on `errors`."""

    def transform(self, form: F, context: ValidationContext) -> StepPatch:
        raise NotImplementedError
