"""
Flow page endpoints.

Every flow kind (apply, apply-adult, renew-child, protected-renew, ...) shares
the same routes. GET renders a page payload; POST submits a step and answers
with a 303 to the next page, a 422 with field errors, or a page payload when
the user has to confirm something (address suggestions).
"""

from typing import Any, Dict, Union

import structlog
from benefitflow.api.dependencies import get_step_service
from benefitflow.core.decorators import require_csrf_token
from benefitflow.domain.results import Invalid, Ok, Redirect
from benefitflow.services.wizard import FlowParams, StepService
from fastapi import APIRouter, Depends, Request, status
from fastapi.responses import JSONResponse, RedirectResponse, Response

router = APIRouter(tags=["flows"])
logger = structlog.get_logger(__name__)

Outcome = Union[Ok[Dict[str, Any]], Redirect, Invalid]


def to_response(outcome: Outcome) -> Response:
    if isinstance(outcome, Redirect):
        return RedirectResponse(outcome.to, status_code=status.HTTP_303_SEE_OTHER)
    if isinstance(outcome, Invalid):
        return JSONResponse(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            content={"error": "VALIDATION_ERROR", "errors": outcome.errors},
        )
    return JSONResponse(outcome.value)


@router.get("/{lang}/{flow_kind}/start")
async def start_flow(lang: str, service: StepService = Depends(get_step_service)) -> Response:
    """Start a new flow and send the user to its first step."""
    return to_response(service.start(lang))


@router.get("/{lang}/{flow_kind}/resume")
async def resume_flow(request: Request, lang: str, service: StepService = Depends(get_step_service)) -> Response:
    return to_response(service.resume(str(request.url), lang))


@router.get("/{lang}/{flow_kind}/{flow_id}/review")
async def view_review(lang: str, flow_id: str, service: StepService = Depends(get_step_service)) -> Response:
    return to_response(service.view_review(FlowParams(id=flow_id, lang=lang)))


@router.post("/{lang}/{flow_kind}/{flow_id}/review")
@require_csrf_token
async def submit_review(
    request: Request, lang: str, flow_id: str, service: StepService = Depends(get_step_service)
) -> Response:
    form = await request.form()
    return to_response(await service.submit_review(FlowParams(id=flow_id, lang=lang), form))


@router.get("/{lang}/{flow_kind}/{flow_id}/confirmation")
async def view_confirmation(lang: str, flow_id: str, service: StepService = Depends(get_step_service)) -> Response:
    return to_response(service.view_confirmation(FlowParams(id=flow_id, lang=lang)))


@router.post("/{lang}/{flow_kind}/{flow_id}/confirmation")
@require_csrf_token
async def exit_confirmation(
    request: Request, lang: str, flow_id: str, service: StepService = Depends(get_step_service)
) -> Response:
    """Leaving the confirmation page discards the flow."""
    return to_response(service.exit_confirmation(FlowParams(id=flow_id, lang=lang)))


@router.get("/{lang}/{flow_kind}/{flow_id}/children")
async def view_children(lang: str, flow_id: str, service: StepService = Depends(get_step_service)) -> Response:
    return to_response(service.view_children(FlowParams(id=flow_id, lang=lang)))


@router.post("/{lang}/{flow_kind}/{flow_id}/children")
@require_csrf_token
async def submit_children(
    request: Request, lang: str, flow_id: str, service: StepService = Depends(get_step_service)
) -> Response:
    form = await request.form()
    return to_response(service.submit_children(FlowParams(id=flow_id, lang=lang), form))


@router.post("/{lang}/{flow_kind}/{flow_id}/children/{child_id}/remove")
@require_csrf_token
async def remove_child(
    request: Request, lang: str, flow_id: str, child_id: str, service: StepService = Depends(get_step_service)
) -> Response:
    return to_response(service.remove_child(FlowParams(id=flow_id, lang=lang), child_id))


@router.get("/{lang}/{flow_kind}/{flow_id}/children/{child_id}/{child_step}")
async def view_child_step(
    lang: str, flow_id: str, child_id: str, child_step: str, service: StepService = Depends(get_step_service)
) -> Response:
    return to_response(service.view_child_step(FlowParams(id=flow_id, lang=lang), child_id, child_step))


@router.post("/{lang}/{flow_kind}/{flow_id}/children/{child_id}/{child_step}")
@require_csrf_token
async def submit_child_step(
    request: Request,
    lang: str,
    flow_id: str,
    child_id: str,
    child_step: str,
    service: StepService = Depends(get_step_service),
) -> Response:
    form = await request.form()
    return to_response(
        service.submit_child_step(FlowParams(id=flow_id, lang=lang), child_id, child_step, form)
    )


@router.get("/{lang}/{flow_kind}/{flow_id}/{step}")
async def view_step(lang: str, flow_id: str, step: str, service: StepService = Depends(get_step_service)) -> Response:
    return to_response(service.view_step(FlowParams(id=flow_id, lang=lang), step))


@router.post("/{lang}/{flow_kind}/{flow_id}/{step}")
@require_csrf_token
async def submit_step(
    request: Request, lang: str, flow_id: str, step: str, service: StepService = Depends(get_step_service)
) -> Response:
    form = await request.form()
    return to_response(await service.submit_step(FlowParams(id=flow_id, lang=lang), step, form))
