"""
Base state machine class for flow state machines.

Machines here never own persistence: their current state is derived from a
flow state record and passed in as start_value, and callers save the record
through the Flow State Manager after a transition.
"""

from typing import Any, Optional

import structlog
from statemachine import State, StateMachine


class FlowMachine(StateMachine):
    """
    Base class for all flow state machines.

    Logs every transition with the flow id and record id.
    """

    # Log event name; subclasses override
    transition_event_name = "flow_transition"

    def __init__(self, record: Optional[Any] = None, flow_id: Optional[str] = None, **kwargs):
        """
        Args:
            record: The flow state (or child state) the machine reasons about.
                Kept apart from StateMachine.model, which holds the machine's own state value.
            flow_id: Flow id for logging
            **kwargs: Passed to StateMachine (start_value, ...)
        """
        self.record = record
        self.flow_id = flow_id
        self.logger = structlog.get_logger(__name__)
        super().__init__(**kwargs)

    def is_in(self, state: State) -> bool:
        return self.current_state.id == state.id

    def on_transition(self, event: str, source: State, target: State):
        self.logger.info(
            self.transition_event_name,
            transition_event=str(event),
            from_state=source.id,
            to_state=target.id,
            flow_id=self.flow_id,
            record_id=getattr(self.record, "id", None),
        )
