"""
Authorization round-trip lifecycle: start a session, report its status, and reduce a callback
(or pasted callback / code) into a terminal success/failure result.

Per session: PENDING (no result) -> IN_PROGRESS (exchange in flight) -> COMPLETED (result set).
EXPIRED is not stored; a session older than the TTL is simply absent.
"""
import inspect
import logging
import math
import re
from collections.abc import Awaitable, Callable, Mapping
from typing import Any, Protocol

from oauth_broker.authorize_url import build_authorize_url
from oauth_broker.callback_parser import CALLBACK_PATH, parse_callback_input
from oauth_broker.clock import generate_state
from oauth_broker.config import DEFAULT_PORT, LOCALE
from oauth_broker.errors import (
    ExchangeFailure,
    MissingCode,
    MissingInput,
    MissingState,
    OAuthFlowError,
    ProviderError,
    SessionBusy,
)
from oauth_broker.messages import get_message
from oauth_broker.rate_limit import SlidingWindowLimiter
from oauth_broker.session_store import CompletionResult, OAuthSession, SessionStore
from oauth_broker.token_client import Credentials, OAuthClient, exchange_code_for_token, get_oauth_client

logger = logging.getLogger(__name__)

_LEADING_INT_RE = re.compile(r"^[+-]?\d+")

ExchangeFn = Callable[[str, str, SlidingWindowLimiter | None], Awaitable[Credentials]]


class AccountSink(Protocol):
    def add_account(self, credentials: Credentials) -> Any: ...


def resolve_server_port(server_config: Mapping[str, Any] | None) -> int:
    """Port from config: an int, or a string starting with an integer; anything else -> DEFAULT_PORT."""
    raw = (server_config or {}).get("port")
    if isinstance(raw, bool):
        return DEFAULT_PORT
    if isinstance(raw, int):
        return raw
    if isinstance(raw, float) and math.isfinite(raw):
        return int(raw)
    if isinstance(raw, str) and raw.strip():
        m = _LEADING_INT_RE.match(raw.strip())
        if m:
            return int(m.group())
    return DEFAULT_PORT


def build_redirect_uri(port: int) -> str:
    return f"http://localhost:{port}{CALLBACK_PATH}"


class OAuthBroker:
    def __init__(
        self,
        *,
        store: SessionStore,
        registry: AccountSink,
        exchange: ExchangeFn = exchange_code_for_token,
        limiter: SlidingWindowLimiter | None = None,
        client_provider: Callable[[], OAuthClient] = get_oauth_client,
        state_factory: Callable[[], str] = generate_state,
        locale: str = LOCALE,
    ):
        self._store = store
        self._registry = registry
        self._exchange = exchange
        self._limiter = limiter
        self._client_provider = client_provider
        self._state_factory = state_factory
        self.locale = locale

    def _text(self, key: str, **params: Any) -> str:
        return get_message(key, self.locale, **params)

    def _failure(self, error: OAuthFlowError, state: str | None = None) -> CompletionResult:
        return CompletionResult(
            success=False,
            message=self._text(error.message_key, detail=error.detail),
            state=state,
        )

    def sweep_expired(self) -> int:
        """Drop sessions past the TTL. Every public operation calls this; a scheduler may too."""
        return self._store.sweep_expired()

    def start_session(self, server_config: Mapping[str, Any] | None = None) -> dict:
        """Create a PENDING session and return the URL the user should open."""
        self.sweep_expired()
        redirect_uri = build_redirect_uri(resolve_server_port(server_config))

        state = self._state_factory()
        while self._store.get(state) is not None:
            state = self._state_factory()

        auth_url = build_authorize_url(
            state=state,
            redirect_uri=redirect_uri,
            client_id=self._client_provider().client_id,
        )
        self._store.create(state, redirect_uri)
        logger.info("Started OAuth session (redirect_uri=%s)", redirect_uri)
        return {
            "state": state,
            "auth_url": auth_url,
            "redirect_uri": redirect_uri,
            "expires_in_ms": int(self._store.ttl_seconds * 1000),
        }

    def get_status(self, state: str) -> dict:
        self.sweep_expired()
        session = self._store.get(state) if state else None
        if session is None:
            return {"status": "expired", "message": self._text("session_not_found")}
        if session.result is not None:
            return {"status": "completed", **session.result.to_dict()}
        return {"status": "pending"}

    async def complete_callback(
        self,
        state: str | None,
        code: str | None = None,
        error: str | None = None,
        error_description: str | None = None,
    ) -> CompletionResult:
        """
        Reduce a provider callback into a terminal result and store it on the session.
        Every failure comes back as success=False with a user-facing message; only cancellation
        propagates, and it leaves the session pending.
        A session that already has a result returns it unchanged (the code is single-use).
        """
        self.sweep_expired()
        try:
            if not state:
                raise MissingState()
            existing = self._store.get(state)
            if existing is not None and existing.result is not None:
                logger.info("OAuth session already completed; returning stored result")
                return existing.result
            session = self._store.begin_completion(state)
        except SessionBusy as e:
            logger.warning("Rejected concurrent completion for an in-progress OAuth session")
            return self._failure(e)
        except OAuthFlowError as e:
            return self._failure(e)

        try:
            result = await self._resolve(session, code, error, error_description)
        except BaseException:
            # Cancelled mid-exchange: back to PENDING so a later attempt isn't stuck on SessionBusy
            self._store.release(state)
            raise
        self._store.finish_completion(state, result)
        logger.info("OAuth session completed (success=%s)", result.success)
        return result

    async def _resolve(
        self,
        session: OAuthSession,
        code: str | None,
        error: str | None,
        error_description: str | None,
    ) -> CompletionResult:
        try:
            if error:
                detail = f"{error}: {error_description}" if error_description else error
                raise ProviderError(detail)
            if not code:
                raise MissingCode()
            try:
                credentials = await self._exchange(code, session.redirect_uri, self._limiter)
                added = self._registry.add_account(credentials)
                if inspect.isawaitable(added):
                    await added
            except Exception as e:
                logger.warning("Token exchange or account registration failed: %s", e)
                raise ExchangeFailure(str(e) or type(e).__name__) from e
        except OAuthFlowError as e:
            return self._failure(e)
        return CompletionResult(success=True, message=self._text("success"))

    async def complete_from_user_input(
        self,
        state: str | None = None,
        code: str | None = None,
        callback_url: str | None = None,
    ) -> CompletionResult:
        """
        Manual path: the user pastes the callback URL (or part of it) and/or the code.
        Explicit state/code win over values parsed from callback_url. The state is echoed back.
        """
        raw_state = state.strip() if isinstance(state, str) else ""
        raw_code = code.strip() if isinstance(code, str) else ""
        raw_callback = callback_url.strip() if isinstance(callback_url, str) else ""

        parsed = parse_callback_input(raw_callback)
        state = raw_state or parsed.state or ""
        code = raw_code or parsed.code or ""

        if not raw_callback and not raw_code:
            return self._failure(MissingInput(), state=state)
        if not state:
            return CompletionResult(success=False, message=self._text("missing_state_input"), state="")

        result = await self.complete_callback(
            state,
            code=code,
            error=parsed.error,
            error_description=parsed.error_description,
        )
        return CompletionResult(success=result.success, message=result.message, state=state)
