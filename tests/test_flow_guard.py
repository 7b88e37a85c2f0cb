import pytest
from benefitflow.domain.results import Ok, Redirect
from benefitflow.domain.schemas import PartnerInformation, SubmissionInfo
from benefitflow.services.wizard import FlowGuard, FlowParams, FlowStateManager, get_flow_config

from tests.factories import CHILD_ONE_ID, FLOW_ID, PARTNER_SIN, TODAY, complete_adult_patch, complete_child


@pytest.fixture
def make_guard(session, clock):
    def _make(kind: str):
        config = get_flow_config(kind)
        manager = FlowStateManager(config, session, clock=clock)
        return FlowGuard(config, manager, today=TODAY), manager

    return _make


def test_variant_redirects_when_type_does_not_match(make_guard, params):
    guard, manager = make_guard("apply-child")
    manager.start(FLOW_ID)
    manager.save(params, {"type_of_application": "adult"})

    result = guard.load(params, "tax-filing")

    assert isinstance(result, Redirect)
    assert result.to == f"/en/apply/{FLOW_ID}/type-application"
    assert result.reason == "type-mismatch"


def test_variant_redirects_when_type_not_chosen(make_guard, params):
    guard, manager = make_guard("renew-adult")
    manager.start(FLOW_ID)

    result = guard.load(params, "applicant-information")

    assert result.to == f"/en/renew/{FLOW_ID}/type-renewal"


def test_entry_flow_accepts_any_type(make_guard, params):
    guard, manager = make_guard("apply")
    manager.start(FLOW_ID)

    assert isinstance(guard.load(params, "terms-and-conditions"), Ok)


def test_submitted_flow_only_shows_confirmation(make_guard, params):
    guard, manager = make_guard("apply-adult")
    manager.start(FLOW_ID)
    manager.save(
        params,
        {
            "type_of_application": "adult",
            "submission_info": SubmissionInfo(confirmation_code="1234567890123", submitted_on="2025-03-15T12:00:00+00:00"),
        },
    )

    result = guard.load(params, "tax-filing")
    assert result.to == f"/en/apply-adult/{FLOW_ID}/confirmation"
    assert result.reason == "already-submitted"

    assert isinstance(guard.load(params, "confirmation"), Ok)


def test_submitted_entry_flow_redirects_to_variant_confirmation(make_guard, params):
    guard, manager = make_guard("apply")
    manager.start(FLOW_ID)
    manager.save(
        params,
        {
            "type_of_application": "adult-child",
            "submission_info": SubmissionInfo(confirmation_code="1234567890123", submitted_on="2025-03-15T12:00:00+00:00"),
        },
    )

    result = guard.load(params, "terms-and-conditions")

    assert result.to == f"/en/apply-adult-child/{FLOW_ID}/confirmation"


def test_confirmation_requires_submission(make_guard, params):
    guard, manager = make_guard("apply-adult")
    manager.start(FLOW_ID)
    manager.save(params, {"type_of_application": "adult"})

    result = guard.load(params, "confirmation")

    assert result.to == f"/en/apply/{FLOW_ID}/terms-and-conditions"


def test_review_shows_for_complete_adult_flow(make_guard, params):
    guard, manager = make_guard("apply-adult")
    manager.start(FLOW_ID)
    manager.save(params, complete_adult_patch())

    assert isinstance(guard.load_for_review(params), Ok)


def test_review_redirects_to_first_missing_step(make_guard, params):
    guard, manager = make_guard("apply-adult")
    manager.start(FLOW_ID)
    manager.save(params, {**complete_adult_patch(), "edit_mode": True})
    manager.save(params, {}, remove=["applicant_information", "contact_information"])

    result = guard.load_for_review(params)

    assert result.to == f"/en/apply-adult/{FLOW_ID}/applicant-information"
    assert manager.load(params).value.edit_mode is False


def test_review_redirects_to_marital_status_when_only_it_is_missing(make_guard, params):
    guard, manager = make_guard("apply-adult")
    manager.start(FLOW_ID)
    manager.save(params, complete_adult_patch(), remove="marital_status")

    result = guard.load_for_review(params)

    assert result.to == f"/en/apply-adult/{FLOW_ID}/marital-status"
    assert result.reason == "missing-marital-status"


def test_partly_answered_flow_never_renders_review(make_guard, params):
    flow_id = "11111111-1111-1111-1111-111111111111"
    scenario = FlowParams(id=flow_id, lang="en")
    guard, manager = make_guard("apply-adult")
    manager.start(flow_id, seed={"type_of_application": "adult"})
    manager.save(scenario, {"marital_status": "single"})
    manager.save(scenario, {"dental_insurance": True})

    result = guard.load_for_review(scenario)

    assert isinstance(result, Redirect)
    assert result.to == f"/en/apply/{flow_id}/terms-and-conditions"
    state = manager.load(scenario).value
    assert state.marital_status == "single"
    assert state.dental_insurance is True


def test_review_redirects_to_entry_step_when_terms_missing(make_guard, params):
    guard, manager = make_guard("apply-adult")
    manager.start(FLOW_ID)
    manager.save(params, complete_adult_patch())
    manager.save(params, {}, remove="terms_and_conditions")

    result = guard.load_for_review(params)

    assert result.to == f"/en/apply/{FLOW_ID}/terms-and-conditions"


def test_review_redirects_to_file_taxes_when_not_filed(make_guard, params):
    guard, manager = make_guard("apply-adult")
    manager.start(FLOW_ID)
    manager.save(params, {**complete_adult_patch(), "has_filed_taxes": False})

    result = guard.load_for_review(params)

    assert result.to == f"/en/apply-adult/{FLOW_ID}/file-taxes"


def test_review_requires_living_independently_for_youth(make_guard, params):
    guard, manager = make_guard("apply-adult")
    manager.start(FLOW_ID)
    manager.save(params, {**complete_adult_patch(), "date_of_birth": "2008-06-01"})

    result = guard.load_for_review(params)

    assert result.to == f"/en/apply-adult/{FLOW_ID}/living-independently"


def test_review_sends_young_applicants_to_parent_or_guardian(make_guard, params):
    guard, manager = make_guard("apply-adult")
    manager.start(FLOW_ID)
    manager.save(params, {**complete_adult_patch(), "date_of_birth": "2015-01-01"})

    result = guard.load_for_review(params)

    assert result.to == f"/en/apply-adult/{FLOW_ID}/parent-or-guardian"


def test_review_requires_partner_when_married(make_guard, params):
    guard, manager = make_guard("apply-adult")
    manager.start(FLOW_ID)
    manager.save(params, {**complete_adult_patch(), "marital_status": "married"})

    assert guard.load_for_review(params).to == f"/en/apply-adult/{FLOW_ID}/partner-information"

    partner = PartnerInformation(confirm=True, year_of_birth="1981", social_insurance_number=PARTNER_SIN)
    manager.save(params, {"partner_information": partner})
    assert isinstance(guard.load_for_review(params), Ok)


def test_review_requires_home_address_when_different(make_guard, params):
    guard, manager = make_guard("apply-adult")
    manager.start(FLOW_ID)
    manager.save(params, {**complete_adult_patch(), "is_home_address_same_as_mailing_address": False})
    manager.save(params, {}, remove="home_address")

    assert guard.load_for_review(params).to == f"/en/apply-adult/{FLOW_ID}/home-address"


def test_child_application_skips_applicant_coverage_steps(make_guard, params):
    guard, manager = make_guard("apply-child")
    patch = complete_adult_patch("child")
    manager.start(FLOW_ID)
    manager.save(params, {**patch, "children": (complete_child(),)})
    manager.save(params, {}, remove=["dental_insurance", "dental_benefits"])

    assert isinstance(guard.load_for_review(params), Ok)


def test_review_requires_a_child(make_guard, params):
    guard, manager = make_guard("apply-adult-child")
    manager.start(FLOW_ID)
    manager.save(params, complete_adult_patch("adult-child"))

    result = guard.load_for_review(params)

    assert result.to == f"/en/apply-adult-child/{FLOW_ID}/children"


@pytest.mark.parametrize(
    "child, step",
    [
        (complete_child(is_parent=False), "parent-or-guardian"),
        (complete_child(date_of_birth="2000-01-01"), "cannot-apply-child"),
        (complete_child().model_copy(update={"dental_insurance": None}), "dental-insurance"),
        (complete_child().model_copy(update={"dental_benefits": None}), "federal-provincial-territorial-benefits"),
    ],
)
def test_review_redirects_to_first_incomplete_child_step(make_guard, params, child, step):
    guard, manager = make_guard("apply-adult-child")
    manager.start(FLOW_ID)
    manager.save(params, {**complete_adult_patch("adult-child"), "children": (child,)})

    result = guard.load_for_review(params)

    assert result.to == f"/en/apply-adult-child/{FLOW_ID}/children/{CHILD_ONE_ID}/{step}"


def test_review_ignores_children_without_information(make_guard, params):
    guard, manager = make_guard("apply-adult-child")
    manager.start(FLOW_ID)
    unfinished = complete_child("44444444-4444-4444-8444-444444444444").model_copy(update={"information": None})
    manager.save(params, {**complete_adult_patch("adult-child"), "children": (complete_child(), unfinished)})

    assert isinstance(guard.load_for_review(params), Ok)
