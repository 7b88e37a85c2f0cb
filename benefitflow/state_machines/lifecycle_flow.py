"""
Flow lifecycle: in progress -> reviewing -> submitted -> discarded.

The state is derived from the flow state record:
  - submission_info present -> submitted
  - edit_mode true          -> reviewing
  - otherwise               -> in_progress
"""

from typing import Optional

from benefitflow.domain.schemas import FlowState
from statemachine import State

from .base import FlowMachine


def derive_lifecycle_state(state: FlowState) -> str:
    if state.submission_info is not None:
        return "submitted"
    if state.edit_mode:
        return "reviewing"
    return "in_progress"


class FlowLifecycleMachine(FlowMachine):
    transition_event_name = "flow_lifecycle_transition"

    in_progress = State(initial=True, value="in_progress")
    reviewing = State(value="reviewing")
    submitted = State(value="submitted")
    discarded = State(value="discarded", final=True)

    start_review = in_progress.to(reviewing) | reviewing.to(reviewing)
    leave_review = reviewing.to(in_progress)
    submit = in_progress.to(submitted) | reviewing.to(submitted)
    discard = in_progress.to(discarded) | reviewing.to(discarded) | submitted.to(discarded)

    def __init__(self, record: Optional[FlowState] = None, **kwargs):
        if record is not None:
            kwargs.setdefault("start_value", derive_lifecycle_state(record))
            kwargs.setdefault("flow_id", record.id)
        super().__init__(record=record, **kwargs)

    @property
    def is_submitted(self) -> bool:
        return self.current_state.id == "submitted"

    @property
    def is_reviewing(self) -> bool:
        return self.current_state.id == "reviewing"
