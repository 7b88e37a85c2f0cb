"""
Client for the address correction service.

The service answers with one of three statuses for a Canadian address:
  - correct:      the address is deliverable as entered
  - corrected:    a deliverable variant exists; the user picks it or keeps theirs
  - not-correct:  nothing deliverable matches; the user may keep it anyway

When no base url is configured a mock client answers "correct" for everything.
"""

from dataclasses import dataclass
from typing import Any, Dict, Optional, Protocol

import httpx
import structlog
from benefitflow.core.config import settings
from benefitflow.core.exceptions import AddressValidationError
from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_exponential

logger = structlog.get_logger()

ADDRESS_STATUSES = ("correct", "corrected", "not-correct")


@dataclass(frozen=True)
class AddressCorrectionRequest:
    address: str
    city: str
    postal_code: str
    province_code: str


@dataclass(frozen=True)
class AddressCorrectionResult:
    status: str
    address: Optional[str] = None
    city: Optional[str] = None
    postal_code: Optional[str] = None
    province_code: Optional[str] = None


class AddressValidationService(Protocol):
    async def correct_address(self, request: AddressCorrectionRequest) -> AddressCorrectionResult: ...


class AddressValidationClient:
    """httpx client for the correction endpoint."""

    def __init__(
        self,
        base_url: str,
        timeout: float = 5.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self._base_url = base_url.rstrip("/")
        self._timeout = timeout
        self._transport = transport

    @retry(
        retry=retry_if_exception_type(httpx.TransportError),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        stop=stop_after_attempt(3),
        reraise=True,
    )
    async def _post(self, payload: Dict[str, Any]) -> httpx.Response:
        async with httpx.AsyncClient(timeout=self._timeout, transport=self._transport) as client:
            return await client.post(f"{self._base_url}/address-correction", json=payload)

    async def correct_address(self, request: AddressCorrectionRequest) -> AddressCorrectionResult:
        payload = {
            "address": request.address,
            "city": request.city,
            "postalCode": request.postal_code,
            "provinceCode": request.province_code,
        }
        try:
            response = await self._post(payload)
            response.raise_for_status()
            body = response.json()
        except (httpx.HTTPError, ValueError) as e:
            logger.error("address_validation_failed", error=str(e), error_type=type(e).__name__)
            raise AddressValidationError(
                "Address validation service unavailable", details={"error": str(e)}
            ) from e

        status = body.get("status")
        if status not in ADDRESS_STATUSES:
            logger.error("address_validation_unknown_status", status=status)
            raise AddressValidationError(
                f"Unexpected address validation status: {status!r}", details={"status": status}
            )

        logger.info("address_validation_completed", status=status)
        return AddressCorrectionResult(
            status=status,
            address=body.get("address"),
            city=body.get("city"),
            postal_code=body.get("postalCode"),
            province_code=body.get("provinceCode"),
        )


class MockAddressValidationClient:
    """Treats every address as deliverable."""

    async def correct_address(self, request: AddressCorrectionRequest) -> AddressCorrectionResult:
        logger.debug("address_validation_mocked", city=request.city)
        return AddressCorrectionResult(status="correct")


def get_address_validation_service() -> AddressValidationService:
    if settings.address_validation_api_base_url:
        return AddressValidationClient(
            settings.address_validation_api_base_url,
            timeout=settings.address_validation_timeout_seconds,
        )
    return MockAddressValidationClient()
