import pytest
from benefitflow.core.exceptions import FlowStateError, InvalidFlowIdError
from benefitflow.domain.schemas import FlowState
from benefitflow.services.wizard.state_codec import (
    decode_state,
    encode_state,
    get_session_key,
    get_state_id_from_url,
    is_valid_flow_id,
)

from tests.factories import FLOW_ID


def test_session_key_combines_purpose_and_id():
    assert get_session_key("apply-flow", FLOW_ID) == f"apply-flow-{FLOW_ID}"


@pytest.mark.parametrize("flow_id", ["", "not-a-uuid", None, 42, f"{FLOW_ID}x"])
def test_session_key_rejects_malformed_ids(flow_id):
    with pytest.raises(InvalidFlowIdError):
        get_session_key("apply-flow", flow_id)


def test_is_valid_flow_id_accepts_uppercase_hex():
    assert is_valid_flow_id(FLOW_ID.upper())


def test_state_id_from_url():
    assert get_state_id_from_url(f"/en/apply-adult/{FLOW_ID}/tax-filing", "apply-adult") == FLOW_ID
    assert get_state_id_from_url(f"/fr/apply/{FLOW_ID}/review?x=1", "apply") == FLOW_ID


def test_state_id_from_url_ignores_other_flows_and_bad_ids():
    assert get_state_id_from_url(f"/en/renew/{FLOW_ID}/review", "apply") is None
    assert get_state_id_from_url("/en/apply/start", "apply") is None
    assert get_state_id_from_url("/en/apply/nope/review", "apply") is None


def test_encode_state_omits_unanswered_fields():
    state = FlowState(id=FLOW_ID, last_updated_on="2025-03-15T12:00:00+00:00", has_filed_taxes=True)

    payload = encode_state(state)

    assert payload["id"] == FLOW_ID
    assert payload["hasFiledTaxes"] is True
    assert payload["editMode"] is False
    assert "dateOfBirth" not in payload


def test_decode_state_reads_encoded_payload():
    state = FlowState(id=FLOW_ID, last_updated_on="2025-03-15T12:00:00+00:00", marital_status="single")

    assert decode_state(encode_state(state)) == state


def test_decode_state_raises_for_corrupt_payload():
    with pytest.raises(FlowStateError):
        decode_state({"editMode": "sometimes"})


def test_state_id_from_legacy_query_string():
    assert get_state_id_from_url(f"https://example.test/en/renew?id={FLOW_ID}") == FLOW_ID
    assert get_state_id_from_url(f"/en/renew/resume?lang=en&id={FLOW_ID}", "renew") == FLOW_ID
    assert get_state_id_from_url("/en/renew/resume?lang=en") is None
