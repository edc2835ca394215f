"""
In-memory store for pending authorization attempts (state -> redirect_uri, result).
Used between /oauth/start and the callback. Eviction is lazy: sweep_expired() runs at
the start of every broker operation, and reads treat anything older than the TTL as absent.
"""
import logging
import threading
from dataclasses import dataclass, field

from oauth_broker.clock import Clock, SystemClock
from oauth_broker.config import SESSION_TTL_SECONDS
from oauth_broker.errors import SessionBusy, SessionNotFound

logger = logging.getLogger(__name__)


@dataclass
class CompletionResult:
    success: bool
    message: str
    state: str | None = None

    def to_dict(self) -> dict:
        data = {"success": self.success, "message": self.message}
        if self.state is not None:
            data["state"] = self.state
        return data


@dataclass
class OAuthSession:
    state: str
    created_at: float
    redirect_uri: str
    result: CompletionResult | None = None
    # Set while a completion attempt awaits the token exchange (PENDING -> IN_PROGRESS)
    in_progress: bool = field(default=False)

    def age(self, now: float) -> float:
        return now - self.created_at


class SessionStore:
    """
    Keyed table of in-flight authorization attempts. Age is always measured from creation;
    nothing extends a session's lifetime.
    """

    def __init__(self, clock: Clock | None = None, ttl_seconds: float = SESSION_TTL_SECONDS):
        self._clock = clock or SystemClock()
        self._ttl = ttl_seconds
        self._sessions: dict[str, OAuthSession] = {}
        self._lock = threading.Lock()

    @property
    def ttl_seconds(self) -> float:
        return self._ttl

    def _expired(self, session: OAuthSession, now: float) -> bool:
        return session.age(now) > self._ttl

    def create(self, state: str, redirect_uri: str) -> OAuthSession:
        session = OAuthSession(state=state, created_at=self._clock.now(), redirect_uri=redirect_uri)
        with self._lock:
            self._sessions[state] = session
        return session

    def get(self, state: str) -> OAuthSession | None:
        """Live session for state, or None if absent or older than the TTL (even if not yet swept)."""
        with self._lock:
            session = self._sessions.get(state)
        if session is None or self._expired(session, self._clock.now()):
            return None
        return session

    def sweep_expired(self, now: float | None = None) -> int:
        """Remove every session older than the TTL. Returns the number removed."""
        if now is None:
            now = self._clock.now()
        with self._lock:
            expired = [s for s, sess in self._sessions.items() if self._expired(sess, now)]
            for s in expired:
                del self._sessions[s]
        if expired:
            logger.debug("Swept %d expired OAuth session(s)", len(expired))
        return len(expired)

    def begin_completion(self, state: str) -> OAuthSession:
        """
        Compare-and-set PENDING -> IN_PROGRESS. Raises SessionNotFound for an absent or expired
        state and SessionBusy if another attempt already holds it.
        """
        now = self._clock.now()
        with self._lock:
            session = self._sessions.get(state)
            if session is None or self._expired(session, now):
                raise SessionNotFound(state)
            if session.in_progress:
                raise SessionBusy(state)
            session.in_progress = True
            return session

    def finish_completion(self, state: str, result: CompletionResult) -> None:
        """IN_PROGRESS -> COMPLETED. A session swept meanwhile stays gone."""
        with self._lock:
            session = self._sessions.get(state)
            if session is None:
                return
            session.result = result
            session.in_progress = False

    def release(self, state: str) -> None:
        """IN_PROGRESS -> PENDING without a result, for an attempt that was abandoned."""
        with self._lock:
            session = self._sessions.get(state)
            if session is not None:
                session.in_progress = False

    def __len__(self) -> int:
        with self._lock:
            return len(self._sessions)
