from benefitflow.services.wizard.children import (
    ChildrenManager,
    SingleChildView,
    add_child,
    get_children,
    is_new_child,
    remove_child,
    replace_child,
)
from benefitflow.services.wizard.flow_config import (
    FLOW_CONFIGS,
    FlowConfig,
    FlowParams,
    StepDef,
    get_flow_config,
)
from benefitflow.services.wizard.flow_guard import FlowGuard
from benefitflow.services.wizard.flow_state_manager import FlowStateManager, merge_state
from benefitflow.services.wizard.state_codec import (
    decode_state,
    encode_state,
    get_session_key,
    get_state_id_from_url,
)
from benefitflow.services.wizard.step_service import StepService, build_application_payload

__all__ = [
    "ChildrenManager",
    "SingleChildView",
    "add_child",
    "get_children",
    "is_new_child",
    "remove_child",
    "replace_child",
    "FLOW_CONFIGS",
    "FlowConfig",
    "FlowParams",
    "StepDef",
    "get_flow_config",
    "FlowGuard",
    "FlowStateManager",
    "merge_state",
    "decode_state",
    "encode_state",
    "get_session_key",
    "get_state_id_from_url",
    "StepService",
    "build_application_payload",
]
