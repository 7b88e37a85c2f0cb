"""
State machine registry for dynamic instantiation.
"""

from typing import Any, Dict, Optional

from .base import FlowMachine

FLOW_REGISTRY: Dict[str, str] = {
    "lifecycle": "FlowLifecycleMachine",
    "child": "ChildFlowMachine",
}


def get_flow_machine(flow_type: str, record: Optional[Any] = None, **kwargs) -> FlowMachine:
    """
    Factory to instantiate a state machine by flow type.

    Raises:
        ValueError: If flow_type is not registered
    """
    if flow_type not in FLOW_REGISTRY:
        raise ValueError(
            f"Unknown flow type: {flow_type}. "
            f"Available: {list(FLOW_REGISTRY.keys())}"
        )

    if flow_type == "lifecycle":
        from .lifecycle_flow import FlowLifecycleMachine
        return FlowLifecycleMachine(record=record, **kwargs)

    from .child_flow import ChildFlowMachine
    return ChildFlowMachine(record=record, **kwargs)
