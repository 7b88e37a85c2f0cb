from datetime import date
from typing import Optional

import structlog
from benefitflow.core.exceptions import UnknownFlowError
from benefitflow.infrastructure.address_validation_client import get_address_validation_service
from benefitflow.infrastructure.benefit_application_client import get_benefit_application_service
from benefitflow.infrastructure.session_store import InMemorySession
from benefitflow.services.wizard import FlowConfig, StepService, get_flow_config
from fastapi import Depends, HTTPException, Request, status

logger = structlog.get_logger()

SUPPORTED_LANGUAGES = ("en", "fr")


def get_session(request: Request) -> InMemorySession:
    """Session loaded by SessionMiddleware"""
    session = getattr(request.state, "session", None)
    if session is None:
        logger.error("session_middleware_missing", path=request.url.path)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Internal error: session not loaded",
        )
    return session


def get_today() -> Optional[date]:
    """Override in tests to pin the date used for age rules"""
    return None


def get_config(lang: str, flow_kind: str) -> FlowConfig:
    if lang not in SUPPORTED_LANGUAGES:
        raise UnknownFlowError(f"Unsupported language: {lang!r}", details={"lang": lang})
    return get_flow_config(flow_kind)


def get_step_service(
    config: FlowConfig = Depends(get_config),
    session: InMemorySession = Depends(get_session),
    today: Optional[date] = Depends(get_today),
) -> StepService:
    return StepService(
        config,
        session,
        today=today,
        address_validation=get_address_validation_service(),
        benefit_application=get_benefit_application_service(),
    )
