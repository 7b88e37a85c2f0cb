"""
Per-child sub-flow.

information ──provide_information──> parent_or_guardian   (applicant is not the parent)
                                 ├──> cannot_apply         (child is 18 or older)
                                 └──> dental_insurance
dental_insurance ──> dental_benefits ──> complete

Conditions are evaluated against the child record the machine was built with,
so build it from the record as it will be after the save.
"""

from datetime import date
from typing import Optional

from benefitflow.domain.eligibility import child_may_apply
from benefitflow.domain.schemas import ChildState
from statemachine import State

from .base import FlowMachine

# Machine state -> URL slug of the child step
CHILD_STEP_SLUGS = {
    "information": "information",
    "parent_or_guardian": "parent-or-guardian",
    "cannot_apply": "cannot-apply-child",
    "dental_insurance": "dental-insurance",
    "dental_benefits": "federal-provincial-territorial-benefits",
}

# How far along the sub-flow each state is; diversions rank with information
CHILD_STATE_PROGRESS = {
    "information": 0,
    "parent_or_guardian": 0,
    "cannot_apply": 0,
    "dental_insurance": 1,
    "dental_benefits": 2,
    "complete": 3,
}


def derive_child_state(child: ChildState, today: date) -> str:
    """First unmet requirement of a child record, or 'complete'."""
    if child.information is None:
        return "information"
    if not child.information.is_parent:
        return "parent_or_guardian"
    if not child_may_apply(child, today):
        return "cannot_apply"
    if child.dental_insurance is None:
        return "dental_insurance"
    if child.dental_benefits is None:
        return "dental_benefits"
    return "complete"


class ChildFlowMachine(FlowMachine):
    transition_event_name = "child_flow_transition"

    information = State(initial=True, value="information")
    parent_or_guardian = State(value="parent_or_guardian")
    cannot_apply = State(value="cannot_apply")
    dental_insurance = State(value="dental_insurance")
    dental_benefits = State(value="dental_benefits")
    complete = State(value="complete", final=True)

    provide_information = (
        information.to(parent_or_guardian, cond="is_not_parent")
        | information.to(cannot_apply, cond="is_too_old")
        | information.to(dental_insurance)
    )
    revise_information = parent_or_guardian.to(information) | cannot_apply.to(information)
    answer_dental_insurance = dental_insurance.to(dental_benefits)
    answer_dental_benefits = dental_benefits.to(complete)

    def __init__(self, record: Optional[ChildState] = None, today: Optional[date] = None, **kwargs):
        self.today = today or date.today()
        super().__init__(record=record, **kwargs)

    @classmethod
    def from_child(cls, child: ChildState, today: date, flow_id: Optional[str] = None) -> "ChildFlowMachine":
        """Machine positioned at the child's first unmet requirement."""
        return cls(record=child, today=today, flow_id=flow_id, start_value=derive_child_state(child, today))

    @classmethod
    def at_step(
        cls, child: ChildState, step: str, today: date, flow_id: Optional[str] = None
    ) -> "ChildFlowMachine":
        """Machine positioned at a given state, e.g. the step just answered."""
        return cls(record=child, today=today, flow_id=flow_id, start_value=step)

    def is_not_parent(self) -> bool:
        return self.record is not None and self.record.information is not None and not self.record.information.is_parent

    def is_too_old(self) -> bool:
        return self.record is not None and not child_may_apply(self.record, self.today)

    def has_reached(self, state_id: str) -> bool:
        """True when a step at `state_id` is not ahead of the machine's current state."""
        return CHILD_STATE_PROGRESS[state_id] <= CHILD_STATE_PROGRESS[self.current_state.id]

    @property
    def step_slug(self) -> Optional[str]:
        """URL slug for the current state; None once complete."""
        return CHILD_STEP_SLUGS.get(self.current_state.id)
