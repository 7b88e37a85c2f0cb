import pytest
from benefitflow.domain.results import Ok, Redirect
from benefitflow.domain.schemas import ChildState, FlowState
from benefitflow.services.wizard import (
    ChildrenManager,
    FlowGuard,
    FlowStateManager,
    add_child,
    get_children,
    get_flow_config,
    remove_child,
    replace_child,
)
from benefitflow.services.wizard.children import find_child

from tests.factories import CHILD_ONE_ID, CHILD_TWO_ID, CHILD_TWO_SIN, FLOW_ID, TODAY, complete_child


@pytest.fixture
def children_manager(session, clock):
    config = get_flow_config("apply-adult-child")
    manager = FlowStateManager(config, session, clock=clock)
    return ChildrenManager(config, manager, FlowGuard(config, manager, today=TODAY))


@pytest.fixture
def started(children_manager, params):
    children_manager.manager.start(FLOW_ID)
    children_manager.manager.save(
        params,
        {"type_of_application": "adult-child", "children": (complete_child(),)},
    )
    return children_manager


def make_state(*children: ChildState) -> FlowState:
    return FlowState(id=FLOW_ID, last_updated_on="2025-03-15T12:00:00+00:00", children=children)


def test_add_then_remove_restores_children():
    children = (complete_child(),)

    added = add_child(children, CHILD_TWO_ID)

    assert len(added) == 2
    assert added[-1].information is None
    assert remove_child(added, CHILD_TWO_ID) == children


def test_add_child_generates_id():
    added = add_child(())

    assert len(added[0].id) == 36


def test_get_children_skips_new_children():
    state = make_state(complete_child(), ChildState(id=CHILD_TWO_ID))

    assert [child.id for child in get_children(state)] == [CHILD_ONE_ID]
    assert len(get_children(state, include_new=True)) == 2


def test_replace_child_keeps_order():
    second = complete_child(CHILD_TWO_ID, CHILD_TWO_SIN)
    children = (complete_child(), second)
    updated = second.model_copy(update={"dental_insurance": True})

    replaced = replace_child(children, updated)

    assert [child.id for child in replaced] == [CHILD_ONE_ID, CHILD_TWO_ID]
    assert replaced[1].dental_insurance is True


def test_find_child_numbers_from_one():
    state = make_state(ChildState(id=CHILD_ONE_ID), complete_child(CHILD_TWO_ID, CHILD_TWO_SIN))

    view = find_child(state, CHILD_TWO_ID)

    assert view.child_number == 2
    assert view.is_new is False
    assert find_child(state, CHILD_ONE_ID).is_new is True
    assert find_child(state, "55555555-5555-4555-8555-555555555555") is None


def test_single_child_state(started, params):
    result = started.get_single_child_state(params, CHILD_ONE_ID, "children")

    assert isinstance(result, Ok)
    assert result.value.child.id == CHILD_ONE_ID
    assert result.value.edit_mode is False


def test_new_child_is_never_in_edit_mode(started, params):
    started.manager.save(params, {"edit_mode": True, "children": add_child((complete_child(),), CHILD_TWO_ID)})

    existing = started.get_single_child_state(params, CHILD_ONE_ID, "children").value
    new = started.get_single_child_state(params, CHILD_TWO_ID, "children").value

    assert existing.edit_mode is True
    assert new.is_new is True
    assert new.edit_mode is False
    assert new.child_number == 2


@pytest.mark.parametrize("child_id", ["not-a-uuid", CHILD_TWO_ID])
def test_single_child_state_redirects_to_children_index(started, params, child_id):
    result = started.get_single_child_state(params, child_id, "children")

    assert isinstance(result, Redirect)
    assert result.to == f"/en/apply-adult-child/{FLOW_ID}/children"


def test_manager_add_and_remove(started, params):
    added = started.add(params, "children")
    assert isinstance(added, Ok)

    state = started.manager.load(params).value
    assert [child.id for child in state.children] == [CHILD_ONE_ID, added.value.id]

    removed = started.remove(params, added.value.id, "children")
    assert [child.id for child in removed.value.children] == [CHILD_ONE_ID]


def test_manager_remove_unknown_child_redirects(started, params):
    result = started.remove(params, CHILD_TWO_ID, "children")

    assert isinstance(result, Redirect)
    assert len(started.manager.load(params).value.children) == 1
