from unittest.mock import patch

import pytest
from benefitflow.domain.schemas import ChildState, FlowState, SubmissionInfo
from benefitflow.state_machines import (
    ChildFlowMachine,
    FlowLifecycleMachine,
    derive_child_state,
    derive_lifecycle_state,
    get_flow_machine,
)
from statemachine.exceptions import TransitionNotAllowed

from tests.factories import CHILD_ONE_ID, FLOW_ID, TODAY, complete_child

SUBMITTED = SubmissionInfo(confirmation_code="1234567890123", submitted_on="2025-03-15T12:00:00+00:00")


def flow_state(**fields) -> FlowState:
    return FlowState(id=FLOW_ID, last_updated_on="2025-03-15T12:00:00+00:00", **fields)


# -- lifecycle ------------------------------------------------------------------


@pytest.mark.parametrize(
    "fields, expected",
    [
        ({}, "in_progress"),
        ({"edit_mode": True}, "reviewing"),
        ({"edit_mode": True, "submission_info": SUBMITTED}, "submitted"),
    ],
)
def test_lifecycle_state_is_derived_from_record(fields, expected):
    state = flow_state(**fields)

    assert derive_lifecycle_state(state) == expected
    assert FlowLifecycleMachine(record=state).current_state.id == expected


def test_lifecycle_review_and_submit():
    machine = FlowLifecycleMachine(record=flow_state())

    machine.start_review()
    assert machine.current_state.id == "reviewing"
    machine.start_review()
    machine.submit()

    assert machine.is_submitted
    assert not machine.current_state.final


def test_lifecycle_leave_review_returns_to_progress():
    machine = FlowLifecycleMachine(record=flow_state(edit_mode=True))
    assert machine.is_reviewing

    machine.leave_review()

    assert machine.current_state.id == "in_progress"
    with pytest.raises(TransitionNotAllowed):
        machine.leave_review()


def test_lifecycle_submit_only_once():
    machine = FlowLifecycleMachine(record=flow_state(submission_info=SUBMITTED))

    with pytest.raises(TransitionNotAllowed):
        machine.submit()


def test_lifecycle_discard_is_final():
    machine = FlowLifecycleMachine(record=flow_state(submission_info=SUBMITTED))

    machine.discard()

    assert machine.is_in(FlowLifecycleMachine.discarded)
    assert machine.current_state.final
    with pytest.raises(TransitionNotAllowed):
        machine.start_review()


def test_lifecycle_transitions_are_logged():
    machine = FlowLifecycleMachine(record=flow_state())

    with patch.object(machine, "logger") as mock_logger:
        machine.start_review()

    mock_logger.info.assert_called_once()
    args, kwargs = mock_logger.info.call_args
    assert args == ("flow_lifecycle_transition",)
    assert kwargs["from_state"] == "in_progress"
    assert kwargs["to_state"] == "reviewing"
    assert kwargs["flow_id"] == FLOW_ID


# -- child sub-flow -------------------------------------------------------------


@pytest.mark.parametrize(
    "child, expected",
    [
        (ChildState(id=CHILD_ONE_ID), "information"),
        (complete_child(is_parent=False), "parent_or_guardian"),
        (complete_child(date_of_birth="2006-01-01"), "cannot_apply"),
        (complete_child().model_copy(update={"dental_insurance": None}), "dental_insurance"),
        (complete_child().model_copy(update={"dental_benefits": None}), "dental_benefits"),
        (complete_child(), "complete"),
    ],
)
def test_child_state_is_derived_from_record(child, expected):
    assert derive_child_state(child, TODAY) == expected
    assert ChildFlowMachine.from_child(child, TODAY).current_state.id == expected


def test_seventeen_year_old_child_may_apply():
    assert derive_child_state(complete_child(date_of_birth="2007-03-16"), TODAY) == "complete"
    assert derive_child_state(complete_child(date_of_birth="2007-03-15"), TODAY) == "cannot_apply"


@pytest.mark.parametrize(
    "child, expected, slug",
    [
        (complete_child(), "dental_insurance", "dental-insurance"),
        (complete_child(is_parent=False), "parent_or_guardian", "parent-or-guardian"),
        (complete_child(date_of_birth="2000-01-01"), "cannot_apply", "cannot-apply-child"),
        (complete_child(is_parent=False, date_of_birth="2000-01-01"), "parent_or_guardian", "parent-or-guardian"),
    ],
)
def test_providing_information_branches(child, expected, slug):
    machine = ChildFlowMachine.at_step(child, "information", TODAY, flow_id=FLOW_ID)

    machine.send("provide_information")

    assert machine.current_state.id == expected
    assert machine.step_slug == slug


def test_child_steps_run_to_completion():
    machine = ChildFlowMachine.at_step(complete_child(), "dental_insurance", TODAY)

    machine.answer_dental_insurance()
    assert machine.step_slug == "federal-provincial-territorial-benefits"
    machine.answer_dental_benefits()

    assert machine.current_state.id == "complete"
    assert machine.step_slug is None


def test_ineligible_child_can_revise_information():
    machine = ChildFlowMachine.from_child(complete_child(is_parent=False), TODAY)

    machine.revise_information()

    assert machine.step_slug == "information"
    with pytest.raises(TransitionNotAllowed):
        machine.answer_dental_benefits()



@pytest.mark.parametrize(
    "child, state_id, reached",
    [
        (ChildState(id=CHILD_ONE_ID), "information", True),
        (ChildState(id=CHILD_ONE_ID), "dental_insurance", False),
        (complete_child(is_parent=False), "dental_insurance", False),
        (complete_child().model_copy(update={"dental_insurance": None}), "dental_benefits", False),
        (complete_child().model_copy(update={"dental_benefits": None}), "dental_insurance", True),
        (complete_child(), "dental_benefits", True),
    ],
)
def test_steps_ahead_of_the_child_are_not_reached(child, state_id, reached):
    assert ChildFlowMachine.from_child(child, TODAY).has_reached(state_id) is reached

# -- registry -------------------------------------------------------------------


def test_registry_builds_machines():
    assert isinstance(get_flow_machine("lifecycle", record=flow_state()), FlowLifecycleMachine)
    assert isinstance(get_flow_machine("child", record=complete_child(), today=TODAY), ChildFlowMachine)


def test_registry_rejects_unknown_types():
    with pytest.raises(ValueError):
        get_flow_machine("survey")
