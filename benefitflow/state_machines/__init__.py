"""
State machines for the lifecycle of a flow and the per-child sub-flow.
"""

from .base import FlowMachine
from .child_flow import CHILD_STEP_SLUGS, ChildFlowMachine, derive_child_state
from .lifecycle_flow import FlowLifecycleMachine, derive_lifecycle_state
from .registry import FLOW_REGISTRY, get_flow_machine

__all__ = [
    "FlowMachine",
    "ChildFlowMachine",
    "CHILD_STEP_SLUGS",
    "derive_child_state",
    "FlowLifecycleMachine",
    "derive_lifecycle_state",
    "get_flow_machine",
    "FLOW_REGISTRY",
]
