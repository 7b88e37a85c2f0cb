"""
Step Service: the read and write paths of every flow page.

Read path:  guard -> page payload
Write path: guard -> validate -> (address check) -> save -> redirect to next page

Pages are returned as plain dict payloads; the HTTP layer renders them.
"""

from datetime import date, datetime
from typing import Any, Callable, Dict, Mapping, Optional

import structlog
from benefitflow.core.config import Settings, settings as default_settings
from benefitflow.core.exceptions import UnknownFlowError
from benefitflow.core.security import get_or_create_csrf_token
from benefitflow.domain.results import FlowResult, Invalid, Ok, Redirect, StepOutcome
from benefitflow.domain.schemas import ChildState, FlowState, SubmissionInfo
from benefitflow.infrastructure.address_validation_client import (
    AddressValidationService,
    get_address_validation_service,
)
from benefitflow.infrastructure.benefit_application_client import (
    BenefitApplicationService,
    get_benefit_application_service,
)
from benefitflow.infrastructure.session_store import Session
from benefitflow.services.reference import LookupService, lookup_service
from benefitflow.services.validation import AddressValidator, ValidationContext
from benefitflow.state_machines import ChildFlowMachine, get_flow_machine
from benefitflow.utils.date_utils import to_iso_timestamp, utc_now

from .children import ChildrenManager, SingleChildView, child_views, get_children
from .flow_config import (
    CHILD_INFORMATION_STEPS,
    CHILD_STEPS,
    CHILDREN,
    CONFIRMATION,
    REVIEW,
    FlowConfig,
    FlowParams,
    StepDef,
    get_child_step,
    get_flow_config,
)
from .flow_guard import FlowGuard
from .flow_state_manager import FlowStateManager, merge_state
from .state_codec import encode_state, get_state_id_from_url

logger = structlog.get_logger(__name__)

CHILD_STEP_SLUGS = frozenset(step.slug for step in CHILD_STEPS)

ACTION_FIELD = "_action"
CONTINUE = "continue"
CANCEL = "cancel"


def build_application_payload(state: FlowState, config: FlowConfig) -> Dict[str, Any]:
    """What gets sent to the benefit application service on submit."""
    payload = encode_state(state)
    payload.pop("editMode", None)
    payload.pop("lastUpdatedOn", None)
    payload["children"] = [
        child.model_dump(mode="json", by_alias=True, exclude_none=True) for child in get_children(state)
    ]
    payload["flowKind"] = config.kind
    payload["purpose"] = config.purpose
    return payload


class StepService:
    def __init__(
        self,
        config: FlowConfig,
        session: Session,
        *,
        app_settings: Optional[Settings] = None,
        today: Optional[date] = None,
        clock: Callable[[], datetime] = utc_now,
        lookup: LookupService = lookup_service,
        address_validation: Optional[AddressValidationService] = None,
        benefit_application: Optional[BenefitApplicationService] = None,
    ):
        self.config = config
        self.session = session
        self.clock = clock
        self.lookup = lookup
        self.address_validation = address_validation or get_address_validation_service()
        self.benefit_application = benefit_application or get_benefit_application_service()
        self.manager = FlowStateManager(config, session, app_settings=app_settings or default_settings, clock=clock)
        self.guard = FlowGuard(config, self.manager, today=today)
        self.children = ChildrenManager(config, self.manager, self.guard)

    @property
    def today(self) -> date:
        return self.guard.today

    # -- helpers -------------------------------------------------------------

    def _page(self, state: FlowState, page: str, **extra: Any) -> Dict[str, Any]:
        return {
            "flowId": state.id,
            "flowKind": self.config.kind,
            "page": page,
            "editMode": state.edit_mode,
            "csrfToken": get_or_create_csrf_token(self.session),
            "state": encode_state(state),
            **extra,
        }

    def _context(self, state: FlowState, params: FlowParams, child_id: Optional[str] = None) -> ValidationContext:
        return ValidationContext(state=state, today=self.today, lookup=self.lookup, child_id=child_id, lang=params.lang)

    def _next_location(self, state: FlowState, step: StepDef, params: FlowParams) -> str:
        """Where the user goes after answering `step`, given the state as saved."""
        config = self.config
        if not step.is_accepted(state, self.today):
            return config.path(params, step.reject_step, kind=config.step_kind(step))

        if state.edit_mode:
            variant = self.guard.variant_config(state)
            if variant is not None:
                return variant.review_path(params)

        own_steps = config.own_steps
        for candidate in own_steps[own_steps.index(step) + 1:]:
            if candidate.applies(state, self.today):
                return config.path(params, candidate.slug)

        if config.is_entry:
            variant = self.guard.variant_config(state)
            return variant.path(params, variant.own_steps[0].slug)
        if config.supports_children:
            return config.children_path(params)
        return config.review_path(params)

    def _cancel(self, params: FlowParams, state: FlowState, to: str) -> Redirect:
        """Cancelling always leaves edit mode; review turns it back on when it renders."""
        if state.edit_mode:
            saved = self.manager.save(params, {"edit_mode": False})
            if isinstance(saved, Redirect):
                return saved
        return Redirect(to, reason="cancel")

    def _child_payload(self, view: SingleChildView) -> Dict[str, Any]:
        return {
            "id": view.child.id,
            "childNumber": view.child_number,
            "isNew": view.is_new,
            **view.child.model_dump(mode="json", by_alias=True, exclude_none=True),
        }

    def _skipped_child_steps(self, params: FlowParams, view: SingleChildView, slug: str) -> Optional[Redirect]:
        """Redirect to the child's first unmet step when `slug` lies beyond it."""
        position = ChildFlowMachine.from_child(view.child, self.today, flow_id=params.id)
        if position.has_reached(get_child_step(slug).machine_state):
            return None
        to = self.config.child_path(params, view.child.id, position.step_slug)
        logger.warning(
            "child_step_ahead_of_progress",
            flow_id=params.id,
            child_id=view.child.id,
            page=slug,
            redirect_to=to,
        )
        return Redirect(to, reason="child-step-ahead")

    def _log_invalid(self, params: FlowParams, page: str, errors: Dict[str, Any]) -> Invalid:
        logger.info("step_validation_failed", flow_id=params.id, flow_kind=self.config.kind, page=page, fields=sorted(errors))
        return Invalid(errors)

    # -- entry ---------------------------------------------------------------

    def start(self, lang: str) -> Redirect:
        if not self.config.is_entry:
            raise UnknownFlowError(f"Flows start from an entry flow, not {self.config.kind!r}")
        state = self.manager.start()
        get_or_create_csrf_token(self.session)
        params = FlowParams(id=state.id, lang=lang)
        return Redirect(self.config.path(params, self.config.first_step), reason="started")

    def resume(self, url: str, lang: str) -> Redirect:
        """Legacy links carry the flow id in the query string: /en/renew/resume?id=<uuid>."""
        params = FlowParams(id=get_state_id_from_url(url, self.config.kind) or "", lang=lang)
        result = self.guard.load(params, self.config.first_step)
        if isinstance(result, Redirect):
            return result
        return Redirect(self.config.entry_path(params, self.config.first_step), reason="resumed")

    # -- applicant steps -----------------------------------------------------

    def view_step(self, params: FlowParams, slug: str) -> FlowResult[Dict[str, Any]]:
        if not self.config.has_page(slug):
            raise UnknownFlowError(f"Unknown page {slug!r} in flow {self.config.kind!r}", details={"page": slug})
        result = self.guard.load(params, slug)
        if isinstance(result, Redirect):
            return result
        return Ok(self._page(result.value, slug))

    async def submit_step(self, params: FlowParams, slug: str, form: Mapping[str, Any]) -> StepOutcome:
        step = self.config.get_step(slug)
        result = self.guard.load(params, slug)
        if isinstance(result, Redirect):
            return result
        state = result.value

        action = form.get(ACTION_FIELD) or CONTINUE
        if action == CANCEL:
            variant = self.guard.variant_config(state)
            if state.edit_mode and variant is not None:
                return self._cancel(params, state, variant.review_path(params))
            return self._cancel(params, state, self.config.path(params, slug))

        validation = step.validator.validate(form, self._context(state, params))
        if not validation.success:
            return self._log_invalid(params, slug, validation.errors)
        patch = validation.data

        if isinstance(step.validator, AddressValidator):
            dialog = await step.validator.check_deliverability(patch, action, self.address_validation)
            if dialog is not None:
                logger.info("address_confirmation_required", flow_id=params.id, status=dialog["status"])
                return Ok(self._page(state, slug, **dialog))

        values = dict(patch.values)
        preview = merge_state(state, values, patch.remove, now=self.clock())
        next_location = self._next_location(preview, step, params)
        if not self.config.is_entry and next_location == self.config.review_path(params):
            values["edit_mode"] = True

        saved = self.manager.save(params, values, patch.remove)
        if isinstance(saved, Redirect):
            return saved
        return Redirect(next_location, reason="next-step")

    # -- children ------------------------------------------------------------

    def view_children(self, params: FlowParams) -> FlowResult[Dict[str, Any]]:
        result = self.guard.load(params, CHILDREN)
        if isinstance(result, Redirect):
            return result
        state = result.value
        children = [self._child_payload(view) for view in child_views(state)]
        return Ok(self._page(state, CHILDREN, children=children))

    def submit_children(self, params: FlowParams, form: Mapping[str, Any]) -> StepOutcome:
        action = form.get(ACTION_FIELD) or CONTINUE
        if action == "add":
            added = self.children.add(params, CHILDREN)
            if isinstance(added, Redirect):
                return added
            return Redirect(self.config.child_path(params, added.value.id, "information"), reason="child-added")

        result = self.guard.load(params, CHILDREN)
        if isinstance(result, Redirect):
            return result
        state = result.value

        if action == CANCEL:
            to = self.config.review_path(params) if state.edit_mode else self.config.children_path(params)
            return self._cancel(params, state, to)
        if not get_children(state):
            return self._log_invalid(params, CHILDREN, {"children": ["children-required"]})

        saved = self.manager.save(params, {"edit_mode": True})
        if isinstance(saved, Redirect):
            return saved
        return Redirect(self.config.review_path(params), reason="next-step")

    def remove_child(self, params: FlowParams, child_id: str) -> Redirect:
        result = self.children.remove(params, child_id, CHILDREN)
        if isinstance(result, Redirect):
            return result
        return Redirect(self.config.children_path(params), reason="child-removed")

    def view_child_step(self, params: FlowParams, child_id: str, slug: str) -> FlowResult[Dict[str, Any]]:
        if slug not in CHILD_INFORMATION_STEPS and slug not in CHILD_STEP_SLUGS:
            raise UnknownFlowError(f"Unknown child page {slug!r}", details={"page": slug})
        result = self.children.get_single_child_state(params, child_id, CHILDREN)
        if isinstance(result, Redirect):
            return result
        view = result.value
        if slug in CHILD_STEP_SLUGS:
            redirect = self._skipped_child_steps(params, view, slug)
            if redirect is not None:
                return redirect
        return Ok(self._page(view.state, slug, child=self._child_payload(view)))

    def submit_child_step(
        self, params: FlowParams, child_id: str, slug: str, form: Mapping[str, Any]
    ) -> StepOutcome:
        step = get_child_step(slug)
        result = self.children.get_single_child_state(params, child_id, CHILDREN)
        if isinstance(result, Redirect):
            return result
        view = result.value

        action = form.get(ACTION_FIELD) or CONTINUE
        if action == CANCEL:
            to = self.config.review_path(params) if view.edit_mode else self.config.children_path(params)
            return self._cancel(params, view.state, to)

        redirect = self._skipped_child_steps(params, view, slug)
        if redirect is not None:
            return redirect

        validation = step.validator.validate(form, self._context(view.state, params, child_id=child_id))
        if not validation.success:
            return self._log_invalid(params, f"{CHILDREN}/{slug}", validation.errors)

        updated = ChildState.model_validate({**view.child.model_dump(), **validation.data.values})
        machine = ChildFlowMachine.at_step(updated, step.machine_state, self.today, flow_id=params.id)
        machine.send(step.event)

        saved = self.children.update(params, updated, view.state)
        if isinstance(saved, Redirect):
            return saved

        if machine.current_state.id in ("parent_or_guardian", "cannot_apply"):
            return Redirect(self.config.child_path(params, child_id, machine.step_slug), reason="child-ineligible")
        if view.edit_mode:
            return Redirect(self.config.review_path(params), reason="next-step")
        if machine.step_slug is None:
            return Redirect(self.config.children_path(params), reason="next-step")
        return Redirect(self.config.child_path(params, child_id, machine.step_slug), reason="next-step")

    # -- review and confirmation ----------------------------------------------

    def view_review(self, params: FlowParams) -> FlowResult[Dict[str, Any]]:
        result = self.guard.load_for_review(params)
        if isinstance(result, Redirect):
            return result
        state = result.value

        get_flow_machine("lifecycle", record=state).start_review()
        if not state.edit_mode:
            saved = self.manager.save(params, {"edit_mode": True})
            if isinstance(saved, Redirect):
                return saved
            state = saved.value
        return Ok(self._page(state, REVIEW))

    async def submit_review(self, params: FlowParams, form: Mapping[str, Any]) -> StepOutcome:
        action = form.get(ACTION_FIELD) or "submit"
        if action == "back":
            result = self.guard.load(params, REVIEW)
            if isinstance(result, Redirect):
                return result
            lifecycle = get_flow_machine("lifecycle", record=result.value)
            if lifecycle.is_reviewing:
                lifecycle.leave_review()
                saved = self.manager.save(params, {"edit_mode": False})
                if isinstance(saved, Redirect):
                    return saved
            return Redirect(self.config.path(params, self.config.last_step_slug()), reason="back")

        result = self.guard.load_for_review(params)
        if isinstance(result, Redirect):
            return result
        state = result.value

        lifecycle = get_flow_machine("lifecycle", record=state)
        lifecycle.submit()
        confirmation_code = await self.benefit_application.submit_application(
            build_application_payload(state, self.config)
        )
        submission_info = SubmissionInfo(
            confirmation_code=confirmation_code,
            submitted_on=to_iso_timestamp(self.clock()),
        )
        saved = self.manager.save(params, {"submission_info": submission_info})
        if isinstance(saved, Redirect):
            return saved
        logger.info("flow_submitted", flow_id=params.id, flow_kind=self.config.kind)
        return Redirect(self.config.confirmation_path(params), reason="submitted")

    def view_confirmation(self, params: FlowParams) -> FlowResult[Dict[str, Any]]:
        result = self.guard.load(params, CONFIRMATION)
        if isinstance(result, Redirect):
            return result
        state = result.value
        return Ok(
            self._page(
                state,
                CONFIRMATION,
                submissionInfo=state.submission_info.model_dump(mode="json", by_alias=True),
            )
        )

    def exit_confirmation(self, params: FlowParams) -> Redirect:
        result = self.guard.load(params, CONFIRMATION)
        if isinstance(result, Redirect):
            return result

        get_flow_machine("lifecycle", record=result.value).discard()
        cleared = self.manager.clear(params)
        if isinstance(cleared, Redirect):
            return cleared
        return Redirect(self.manager.fallback_url(params.lang), reason="exit")


def get_step_service(kind: str, session: Session, **kwargs: Any) -> StepService:
    return StepService(get_flow_config(kind), session, **kwargs)
