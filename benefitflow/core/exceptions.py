"""Custom exceptions for domain-specific errors"""

from typing import Any, Dict, Optional


class DomainException(Exception):
    """Base exception for all domain errors"""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        self.message = message
        self.details = details or {}
        super().__init__(message)


# Flow State Errors
class FlowStateError(DomainException):
    """Raised when a flow state entry cannot be derived or decoded"""

    pass


class InvalidFlowIdError(FlowStateError):
    """Raised when a flow id is not a well-formed UUID"""

    def __init__(self, flow_id: Any, details: Optional[Dict[str, Any]] = None):
        super().__init__(
            message=f"Invalid flow id: {flow_id!r}",
            details=details or {"flow_id": str(flow_id)},
        )


class InvariantViolationError(DomainException):
    """Raised when a caller breaks a flow state invariant (programmer error)"""

    pass


# Request Integrity Errors
class CsrfTokenError(DomainException):
    """Raised when a submitted CSRF token does not match the session token"""

    pass


class UnknownFlowError(DomainException):
    """Raised when a URL names a flow kind or step that is not configured"""

    pass


# External Service Errors
class ExternalServiceError(DomainException):
    """Raised when external service call fails"""

    pass


class AddressValidationError(ExternalServiceError):
    """Raised when the address correction service fails"""

    pass


class BenefitApplicationError(ExternalServiceError):
    """Raised when submitting a benefit application fails"""

    pass


class LookupNotFoundError(ExternalServiceError):
    """Raised when a reference data entry does not exist"""

    pass


class RedisError(ExternalServiceError):
    """Raised when Redis operation fails"""

    pass
