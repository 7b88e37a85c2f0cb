"""
Flow State Manager: lifecycle of one flow's state inside the user's session.

start -> load/save (any number of times) -> clear

Every read goes through load, which turns an invalid id, a missing entry or
an entry idle for longer than the inactivity window into a Redirect to the
flow's fallback URL. Concurrent saves from two tabs of the same session are
last-write-wins: there is no locking or versioning.
"""

from datetime import datetime, timedelta
from typing import Any, Callable, Iterable, Mapping, Optional, Union
import uuid

import structlog
from benefitflow.core.config import Settings, settings as default_settings
from benefitflow.core.exceptions import FlowStateError, InvariantViolationError
from benefitflow.domain.results import FlowResult, Ok, Redirect
from benefitflow.domain.schemas import ApplicationYear, FlowState
from benefitflow.infrastructure.session_store import Session
from benefitflow.utils.date_utils import parse_iso_timestamp, to_iso_timestamp, utc_now

from .flow_config import FlowConfig, FlowParams
from .state_codec import decode_state, encode_state, get_session_key, is_valid_flow_id

logger = structlog.get_logger(__name__)

# Fields a save can never touch: identity and bookkeeping
IMMUTABLE_FIELDS = frozenset({"id", "last_updated_on"})
# Fields a save can never remove
NON_REMOVABLE_FIELDS = frozenset({"id", "children", "edit_mode", "last_updated_on", "application_year"})


def merge_state(
    state: FlowState,
    patch: Mapping[str, Any],
    remove: Union[str, Iterable[str], None] = None,
    *,
    now: datetime,
) -> FlowState:
    """
    Shallow-merge a patch into the state: patch wins on key collision, id is
    never changed, lastUpdatedOn is refreshed and `remove` keys are dropped.

    Raises InvariantViolationError for keys that are not FlowState fields and
    for attempts to remove protected fields.
    """
    unknown = set(patch) - set(FlowState.model_fields)
    if unknown:
        raise InvariantViolationError(
            f"Unknown flow state fields: {sorted(unknown)}", details={"fields": sorted(unknown)}
        )

    removals = {remove} if isinstance(remove, str) else set(remove or ())
    unknown_removals = removals - set(FlowState.model_fields)
    if unknown_removals:
        raise InvariantViolationError(
            f"Unknown flow state fields: {sorted(unknown_removals)}",
            details={"fields": sorted(unknown_removals)},
        )
    protected = removals & NON_REMOVABLE_FIELDS
    if protected:
        raise InvariantViolationError(
            f"Cannot remove {sorted(protected)} from flow state", details={"fields": sorted(protected)}
        )

    data = state.model_dump()
    data.update({key: value for key, value in patch.items() if key not in IMMUTABLE_FIELDS})
    for key in removals:
        data[key] = None
    data["last_updated_on"] = to_iso_timestamp(now)
    return FlowState.model_validate(data)


def is_expired(state: FlowState, now: datetime, timeout: timedelta) -> bool:
    return now - parse_iso_timestamp(state.last_updated_on) >= timeout


class FlowStateManager:
    """Reads and writes one flow kind's state in a session."""

    def __init__(
        self,
        config: FlowConfig,
        session: Session,
        *,
        app_settings: Optional[Settings] = None,
        clock: Callable[[], datetime] = utc_now,
    ):
        self.config = config
        self.session = session
        self.settings = app_settings or default_settings
        self.clock = clock

    @property
    def timeout(self) -> timedelta:
        return timedelta(minutes=self.settings.flow_state_timeout_minutes)

    def fallback_url(self, lang: str) -> str:
        return self.settings.get_fallback_url(lang, protected=self.config.protected)

    def session_key(self, flow_id: str) -> str:
        return get_session_key(self.config.purpose, flow_id)

    def start(self, flow_id: Optional[str] = None, seed: Optional[Mapping[str, Any]] = None) -> FlowState:
        """
        Create and persist a fresh flow state. Overwrites any entry under the same key.
        """
        flow_id = flow_id or str(uuid.uuid4())
        data = {
            "id": flow_id,
            "edit_mode": False,
            "last_updated_on": to_iso_timestamp(self.clock()),
            "children": (),
        }
        if self.config.seeds_application_year:
            data["application_year"] = ApplicationYear(
                application_year_id=self.settings.application_year_id,
                tax_year=self.settings.application_tax_year,
                dependent_eligibility_end_date=self.settings.dependent_eligibility_end_date,
            )
        data.update(seed or {})
        state = FlowState.model_validate(data)

        self.session.set(self.session_key(flow_id), encode_state(state))
        logger.info(
            "flow_state_started",
            flow_id=flow_id,
            purpose=self.config.purpose,
            session_id=self.session.id,
        )
        return state

    def load(self, params: FlowParams) -> FlowResult[FlowState]:
        flow_id = params.id
        fallback = self.fallback_url(params.lang)

        if not is_valid_flow_id(flow_id):
            logger.warning(
                "flow_state_invalid_id",
                flow_id=str(flow_id),
                purpose=self.config.purpose,
                session_id=self.session.id,
                redirect_to=fallback,
            )
            return Redirect(fallback, reason="invalid-id")

        key = self.session_key(flow_id)
        payload = self.session.get(key)
        if payload is None:
            logger.warning(
                "flow_state_not_found",
                flow_id=flow_id,
                purpose=self.config.purpose,
                session_id=self.session.id,
                redirect_to=fallback,
            )
            return Redirect(fallback, reason="not-found")

        try:
            state = decode_state(payload)
        except FlowStateError as e:
            logger.error(
                "flow_state_corrupt",
                flow_id=flow_id,
                purpose=self.config.purpose,
                session_id=self.session.id,
                error=e.message,
            )
            self.session.unset(key)
            return Redirect(fallback, reason="corrupt")

        if is_expired(state, self.clock(), self.timeout):
            self.session.unset(key)
            logger.warning(
                "flow_state_expired",
                flow_id=flow_id,
                purpose=self.config.purpose,
                session_id=self.session.id,
                last_updated_on=state.last_updated_on,
                redirect_to=fallback,
            )
            return Redirect(fallback, reason="expired")

        return Ok(state)

    def save(
        self,
        params: FlowParams,
        patch: Mapping[str, Any],
        remove: Union[str, Iterable[str], None] = None,
    ) -> FlowResult[FlowState]:
        """Load, merge the patch and persist. Redirects exactly like load."""
        result = self.load(params)
        if isinstance(result, Redirect):
            return result

        state = merge_state(result.value, patch, remove, now=self.clock())
        self.session.set(self.session_key(state.id), encode_state(state))
        logger.info(
            "flow_state_saved",
            flow_id=state.id,
            purpose=self.config.purpose,
            session_id=self.session.id,
            fields=sorted(patch),
            removed=sorted({remove} if isinstance(remove, str) else set(remove or ())),
        )
        return Ok(state)

    def clear(self, params: FlowParams) -> FlowResult[None]:
        result = self.load(params)
        if isinstance(result, Redirect):
            return result

        self.session.unset(self.session_key(params.id))
        logger.info(
            "flow_state_cleared",
            flow_id=params.id,
            purpose=self.config.purpose,
            session_id=self.session.id,
        )
        return Ok(None)
