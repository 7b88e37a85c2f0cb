"""
Session key derivation and (de)serialization of FlowState.
"""

import re
from typing import Any, Dict, Optional
from urllib.parse import parse_qs, urlsplit

from benefitflow.core.exceptions import FlowStateError, InvalidFlowIdError
from benefitflow.domain.schemas import FlowState
from pydantic import ValidationError

_UUID_PATTERN = re.compile(
    r"^[0-9a-fA-F]{8}-[0-9a-fA-F]{4}-[0-9a-fA-F]{4}-[0-9a-fA-F]{4}-[0-9a-fA-F]{12}$"
)

# Path segments that never follow a flow id directly
_NON_ID_SEGMENTS = {"start"}


def is_valid_flow_id(value: Any) -> bool:
    return isinstance(value, str) and bool(_UUID_PATTERN.match(value))


def get_session_key(purpose: str, flow_id: Any) -> str:
    """Session key for a flow: '<purpose>-<uuid>'. Raises InvalidFlowIdError for a malformed id."""
    if not is_valid_flow_id(flow_id):
        raise InvalidFlowIdError(flow_id)
    return f"{purpose}-{flow_id}"


def get_state_id_from_url(url: str, flow_kind: Optional[str] = None) -> Optional[str]:
    """
    Flow id carried by a URL.

    Legacy redirects pass it as an `id` query parameter, which wins when
    present. Otherwise, given a flow kind, the id is the path segment after it
    (e.g. '/en/apply-adult/<id>/tax-filing'); None when that segment is not a UUID.
    """
    parts = urlsplit(url)
    legacy_id = parse_qs(parts.query).get("id")
    if legacy_id:
        return legacy_id[0]
    if flow_kind is None:
        return None

    segments = [segment for segment in parts.path.split("/") if segment]
    for index, segment in enumerate(segments[:-1]):
        if segment == flow_kind:
            candidate = segments[index + 1]
            if candidate not in _NON_ID_SEGMENTS and is_valid_flow_id(candidate):
                return candidate
            return None
    return None


def encode_state(state: FlowState) -> Dict[str, Any]:
    """JSON-safe camelCase dict; unanswered fields are omitted."""
    return state.model_dump(mode="json", by_alias=True, exclude_none=True)


def decode_state(payload: Any) -> FlowState:
    try:
        return FlowState.model_validate(payload)
    except ValidationError as e:
        raise FlowStateError(
            "Stored flow state is corrupt", details={"errors": e.errors(include_url=False)}
        ) from e
