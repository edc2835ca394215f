"""
Failure kinds of an authorization round-trip.
The broker raises these internally and turns each into a {success: false, message} result.
"""


class OAuthFlowError(Exception):
    """Base class. message_key selects the user-facing text in messages.py."""

    message_key = "unknown_error"

    def __init__(self, detail: str = ""):
        super().__init__(detail or self.message_key)
        self.detail = detail


class MissingState(OAuthFlowError):
    message_key = "missing_state"


class MissingCode(OAuthFlowError):
    message_key = "missing_code"


class MissingInput(OAuthFlowError):
    """Neither a callback string nor a code was supplied to the manual-entry path."""

    message_key = "missing_input"


class SessionNotFound(OAuthFlowError):
    """No live session for the state (never created, swept, or older than the TTL)."""

    message_key = "session_not_found"


class SessionBusy(OAuthFlowError):
    """Another completion attempt for the same state is awaiting the token exchange."""

    message_key = "session_busy"


class ProviderError(OAuthFlowError):
    """The provider redirected back with error / error_description."""

    message_key = "provider_error"


class ExchangeFailure(OAuthFlowError):
    """Token exchange or account registration raised."""

    message_key = "exchange_failed"


class TokenExchangeError(Exception):
    """Raised by the token client when the provider rejects or cannot be reached."""
