"""
Flow Guard: per-request checks that keep users on a legal path.

Applied in order on every load:
  1. the state loads (invalid id, missing or expired entries redirect away)
  2. the flow type matches the route's variant
  3. a submitted flow only shows its confirmation page, and the
     confirmation page only shows for a submitted flow
Review pages additionally walk every required field in order and redirect to
the first unmet one, dropping out of edit mode when they do.
"""

from datetime import date
from typing import Optional

import structlog
from benefitflow.domain.results import FlowResult, Ok, Redirect
from benefitflow.domain.schemas import FlowState
from benefitflow.state_machines import ChildFlowMachine, FlowLifecycleMachine

from .flow_config import CONFIRMATION, REVIEW, FlowConfig, FlowParams, get_flow_config
from .flow_state_manager import FlowStateManager

logger = structlog.get_logger(__name__)


class FlowGuard:
    def __init__(self, config: FlowConfig, manager: FlowStateManager, today: Optional[date] = None):
        self.config = config
        self.manager = manager
        self._today = today

    @property
    def today(self) -> date:
        return self._today or date.today()

    def redirect(self, params: FlowParams, page: str, to: str, reason: str) -> Redirect:
        logger.warning(
            "flow_redirect",
            flow_id=params.id,
            flow_kind=self.config.kind,
            source=self.config.path(params, page),
            destination=to,
            reason=reason,
        )
        return Redirect(to, reason=reason)

    def variant_config(self, state: FlowState) -> Optional[FlowConfig]:
        """The variant flow selected by the state's type answer (self for variants)."""
        if not self.config.is_entry:
            return self.config
        kind = self.config.variants.get(getattr(state, self.config.discriminator_field))
        return get_flow_config(kind) if kind else None

    def load(self, params: FlowParams, page: str) -> FlowResult[FlowState]:
        result = self.manager.load(params)
        if isinstance(result, Redirect):
            return result
        state = result.value
        config = self.config

        if config.discriminator_values and getattr(state, config.discriminator_field) not in config.discriminator_values:
            return self.redirect(
                params, page, config.entry_path(params, config.type_selection_step), "type-mismatch"
            )

        lifecycle = FlowLifecycleMachine(record=state)
        if lifecycle.is_submitted and page != CONFIRMATION:
            variant = self.variant_config(state)
            to = variant.confirmation_path(params) if variant else self.manager.fallback_url(params.lang)
            return self.redirect(params, page, to, "already-submitted")
        if not lifecycle.is_submitted and page == CONFIRMATION:
            return self.redirect(params, page, config.entry_path(params, config.first_step), "not-submitted")

        return Ok(state)

    def check_prerequisites(self, state: FlowState, params: FlowParams) -> Optional[Redirect]:
        """First unmet requirement in flow order, as a redirect; None when review may show."""
        config = self.config
        today = self.today

        for step in config.steps:
            if not step.applies(state, today):
                continue
            kind = config.step_kind(step)
            if step.is_missing(state):
                return Redirect(config.path(params, step.slug, kind=kind), reason=f"missing-{step.slug}")
            if not step.is_accepted(state, today):
                return Redirect(config.path(params, step.reject_step, kind=kind), reason=f"rejected-{step.slug}")

        if config.supports_children:
            children = [child for child in state.children if child.information is not None]
            if not children:
                return Redirect(config.children_path(params), reason="no-children")
            for child in children:
                machine = ChildFlowMachine.from_child(child, today, flow_id=state.id)
                if machine.step_slug:
                    return Redirect(
                        config.child_path(params, child.id, machine.step_slug),
                        reason=f"child-{machine.step_slug}",
                    )

        return None

    def load_for_review(self, params: FlowParams) -> FlowResult[FlowState]:
        result = self.load(params, REVIEW)
        if isinstance(result, Redirect):
            return result
        state = result.value

        redirect = self.check_prerequisites(state, params)
        if redirect is None:
            return Ok(state)

        if state.edit_mode:
            self.manager.save(params, {"edit_mode": False})
        return self.redirect(params, REVIEW, redirect.to, redirect.reason)

