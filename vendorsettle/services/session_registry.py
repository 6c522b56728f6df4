import threading
from dataclasses import dataclass, field
from datetime import datetime, timedelta

from vendorsettle.core.security import generate_session_id
from vendorsettle.services.settlement import SettlementSession


@dataclass
class RegisteredSession:
    session_id: str
    business_id: int
    owner_user_id: int
    session: SettlementSession
    created_at: datetime
    touched_at: datetime
    # held by every request that reads or changes the session
    lock: threading.Lock = field(default_factory=threading.Lock, repr=False, compare=False)


class SettlementSessionRegistry:
    """Live settlement sessions of this process, keyed by an opaque id."""

    def __init__(self) -> None:
        self._sessions: dict[str, RegisteredSession] = {}
        self._lock = threading.Lock()

    def open(self, business_id: int, owner_user_id: int, session: SettlementSession) -> RegisteredSession:
        now = datetime.utcnow()
        entry = RegisteredSession(
            session_id=generate_session_id(),
            business_id=business_id,
            owner_user_id=owner_user_id,
            session=session,
            created_at=now,
            touched_at=now,
        )
        with self._lock:
            self._sessions[entry.session_id] = entry
        return entry

    def get(self, session_id: str) -> RegisteredSession | None:
        with self._lock:
            entry = self._sessions.get(session_id)
            if entry is not None:
                entry.touched_at = datetime.utcnow()
            return entry

    def discard(self, session_id: str) -> bool:
        with self._lock:
            return self._sessions.pop(session_id, None) is not None

    def purge_expired(self, max_idle: timedelta, now: datetime | None = None) -> int:
        cutoff = (now or datetime.utcnow()) - max_idle
        with self._lock:
            stale = [key for key, entry in self._sessions.items() if entry.touched_at < cutoff]
            for key in stale:
                del self._sessions[key]
        return len(stale)

    def clear(self) -> None:
        with self._lock:
            self._sessions.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._sessions)


settlement_sessions = SettlementSessionRegistry()
