"""
Per-user session storage.

The flow code only sees the Session protocol: a key/value map bound to one
browser session. Backends persist the whole map between requests.
"""

import copy
import uuid
from typing import Any, Dict, Optional, Protocol

import structlog

logger = structlog.get_logger(__name__)

SESSION_KEY_PREFIX = "session:"


class Session(Protocol):
    id: str

    def get(self, key: str, default: Any = None) -> Any: ...

    def set(self, key: str, value: Any) -> None: ...

    def has(self, key: str) -> bool: ...

    def unset(self, key: str) -> bool: ...


class InMemorySession:
    """Dict-backed session. Tracks whether it changed so backends only write when needed."""

    def __init__(self, session_id: Optional[str] = None, data: Optional[Dict[str, Any]] = None):
        self.id = session_id or str(uuid.uuid4())
        self._data: Dict[str, Any] = dict(data or {})
        self.modified = False

    def get(self, key: str, default: Any = None) -> Any:
        return self._data.get(key, default)

    def set(self, key: str, value: Any) -> None:
        self._data[key] = value
        self.modified = True

    def has(self, key: str) -> bool:
        return key in self._data

    def unset(self, key: str) -> bool:
        if key not in self._data:
            return False
        del self._data[key]
        self.modified = True
        return True

    def to_dict(self) -> Dict[str, Any]:
        return dict(self._data)


class SessionBackend(Protocol):
    async def get(self, key: str) -> Optional[Any]: ...

    async def set(self, key: str, value: Any, expire: int = 3600) -> bool: ...

    async def delete(self, key: str) -> bool: ...


class InMemorySessionBackend:
    """Process-local backend with the same async surface as RedisClient."""

    def __init__(self):
        self._store: Dict[str, Any] = {}

    async def get(self, key: str) -> Optional[Any]:
        value = self._store.get(key)
        return copy.deepcopy(value) if value is not None else None

    async def set(self, key: str, value: Any, expire: int = 3600) -> bool:
        self._store[key] = copy.deepcopy(value)
        return True

    async def delete(self, key: str) -> bool:
        return self._store.pop(key, None) is not None


async def load_session(backend: SessionBackend, session_id: Optional[str]) -> InMemorySession:
    if not session_id:
        return InMemorySession()
    data = await backend.get(f"{SESSION_KEY_PREFIX}{session_id}")
    return InMemorySession(session_id, data if isinstance(data, dict) else None)


async def save_session(backend: SessionBackend, session: InMemorySession, expire: int) -> bool:
    saved = await backend.set(f"{SESSION_KEY_PREFIX}{session.id}", session.to_dict(), expire=expire)
    if not saved:
        logger.warning("session_save_failed", session_id=session.id)
    return saved
