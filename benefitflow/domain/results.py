"""
Outcomes returned by flow operations.

Operations never raise to move the user somewhere else: they return a Redirect
and the HTTP layer turns it into a 303. Ok carries the loaded value.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, Generic, List, Optional, TypeVar, Union

T = TypeVar("T")


@dataclass(frozen=True)
class Ok(Generic[T]):
    value: T


@dataclass(frozen=True)
class Redirect:
    to: str
    reason: str = ""


@dataclass(frozen=True)
class Invalid:
    """A step submission that failed validation; errors map field path to message keys."""

    errors: Dict[str, List[str]]


FlowResult = Union[Ok[T], Redirect]
StepOutcome = Union[Ok[Any], Redirect, Invalid]


@dataclass(frozen=True)
class ValidationResult(Generic[T]):
    success: bool
    data: Optional[T] = None
    errors: Dict[str, List[str]] = field(default_factory=dict)

    @classmethod
    def ok(cls, data: T) -> "ValidationResult[T]":
        return cls(success=True, data=data)

    @classmethod
    def failed(cls, errors: Dict[str, List[str]]) -> "ValidationResult[T]":
        return cls(success=False, errors=errors)
