"""
Children sub-collection of a flow state.

The collection is only ever replaced as a whole: every helper returns a new
tuple and callers save it through the Flow State Manager. A child without
information is "new" (added but not yet filled in) and is left out of the
default views.
"""

from dataclasses import dataclass
from typing import Optional, Tuple
import uuid

import structlog
from benefitflow.domain.results import FlowResult, Ok, Redirect
from benefitflow.domain.schemas import ChildState, FlowState

from .flow_config import FlowConfig, FlowParams
from .flow_guard import FlowGuard
from .flow_state_manager import FlowStateManager
from .state_codec import is_valid_flow_id

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class SingleChildView:
    state: FlowState
    child: ChildState
    child_number: int
    is_new: bool

    @property
    def edit_mode(self) -> bool:
        # a new child is never mid-edit
        return self.state.edit_mode and not self.is_new


def is_new_child(child: ChildState) -> bool:
    return child.information is None


def get_children(state: FlowState, include_new: bool = False) -> Tuple[ChildState, ...]:
    if include_new:
        return tuple(state.children)
    return tuple(child for child in state.children if not is_new_child(child))


def add_child(children: Tuple[ChildState, ...], child_id: Optional[str] = None) -> Tuple[ChildState, ...]:
    return (*children, ChildState(id=child_id or str(uuid.uuid4())))


def remove_child(children: Tuple[ChildState, ...], child_id: str) -> Tuple[ChildState, ...]:
    return tuple(child for child in children if child.id != child_id)


def replace_child(children: Tuple[ChildState, ...], updated: ChildState) -> Tuple[ChildState, ...]:
    return tuple(updated if child.id == updated.id else child for child in children)


def child_views(state: FlowState, include_new: bool = False) -> Tuple[SingleChildView, ...]:
    """Children numbered by their 1-based position in the whole collection."""
    views = (
        SingleChildView(state=state, child=child, child_number=index + 1, is_new=is_new_child(child))
        for index, child in enumerate(state.children)
    )
    return tuple(view for view in views if include_new or not view.is_new)


def find_child(state: FlowState, child_id: str) -> Optional[SingleChildView]:
    for view in child_views(state, include_new=True):
        if view.child.id == child_id:
            return view
    return None


class ChildrenManager:
    """Loads, adds, updates and removes children of one flow."""

    def __init__(self, config: FlowConfig, manager: FlowStateManager, guard: FlowGuard):
        self.config = config
        self.manager = manager
        self.guard = guard

    def get_single_child_state(self, params: FlowParams, child_id: str, page: str) -> FlowResult[SingleChildView]:
        """Redirects to the children index for a malformed or unknown child id."""
        result = self.guard.load(params, page)
        if isinstance(result, Redirect):
            return result

        view = find_child(result.value, child_id) if is_valid_flow_id(child_id) else None
        if view is None:
            to = self.config.children_path(params)
            logger.warning(
                "child_state_not_found",
                flow_id=params.id,
                child_id=str(child_id),
                session_id=self.manager.session.id,
                redirect_to=to,
            )
            return Redirect(to, reason="child-not-found")
        return Ok(view)

    def add(self, params: FlowParams, page: str) -> FlowResult[ChildState]:
        result = self.guard.load(params, page)
        if isinstance(result, Redirect):
            return result

        children = add_child(result.value.children)
        saved = self.manager.save(params, {"children": children})
        if isinstance(saved, Redirect):
            return saved
        logger.info("child_added", flow_id=params.id, child_id=children[-1].id)
        return Ok(children[-1])

    def update(self, params: FlowParams, child: ChildState, state: FlowState) -> FlowResult[FlowState]:
        return self.manager.save(params, {"children": replace_child(state.children, child)})

    def remove(self, params: FlowParams, child_id: str, page: str) -> FlowResult[FlowState]:
        result = self.get_single_child_state(params, child_id, page)
        if isinstance(result, Redirect):
            return result

        saved = self.manager.save(params, {"children": remove_child(result.value.state.children, child_id)})
        if isinstance(saved, Ok):
            logger.info("child_removed", flow_id=params.id, child_id=child_id)
        return saved
