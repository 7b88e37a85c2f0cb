"""
Submission of a completed flow to the benefit application service.
"""

import hashlib
from typing import Any, Dict, Optional, Protocol

import httpx
import structlog
from benefitflow.core.config import settings
from benefitflow.core.exceptions import BenefitApplicationError
from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_exponential

logger = structlog.get_logger()


class BenefitApplicationService(Protocol):
    async def submit_application(self, application: Dict[str, Any]) -> str: ...


class BenefitApplicationClient:
    """Posts the application payload and returns the confirmation code."""

    def __init__(
        self,
        url: str,
        timeout: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self._url = url
        self._timeout = timeout
        self._transport = transport

    @retry(
        retry=retry_if_exception_type(httpx.TransportError),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        stop=stop_after_attempt(3),
        reraise=True,
    )
    async def _post(self, application: Dict[str, Any]) -> httpx.Response:
        async with httpx.AsyncClient(timeout=self._timeout, transport=self._transport) as client:
            return await client.post(self._url, json=application)

    async def submit_application(self, application: Dict[str, Any]) -> str:
        try:
            response = await self._post(application)
            response.raise_for_status()
            confirmation_code = response.json()["confirmationCode"]
        except (httpx.HTTPError, ValueError, KeyError) as e:
            logger.error(
                "benefit_application_submit_failed",
                flow_id=application.get("id"),
                error=str(e),
                error_type=type(e).__name__,
            )
            raise BenefitApplicationError(
                "Benefit application submission failed", details={"error": str(e)}
            ) from e

        logger.info("benefit_application_submitted", flow_id=application.get("id"))
        return str(confirmation_code)


class MockBenefitApplicationClient:
    """Deterministic confirmation codes derived from the flow id."""

    async def submit_application(self, application: Dict[str, Any]) -> str:
        digest = hashlib.sha256(str(application.get("id", "")).encode("utf-8")).hexdigest()
        confirmation_code = f"{int(digest, 16) % 10**13:013d}"
        logger.info("benefit_application_submitted_mock", flow_id=application.get("id"))
        return confirmation_code


def get_benefit_application_service() -> BenefitApplicationService:
    if settings.benefit_application_api_url:
        return BenefitApplicationClient(
            settings.benefit_application_api_url,
            timeout=settings.benefit_application_timeout_seconds,
        )
    return MockBenefitApplicationClient()
