"""
Turns whatever the user pasted (full callback URL, /oauth-callback?..., ?code=..., localhost:3000/...,
or just the authorization code) into code / state / error / error_description.

Candidate URLs are tried in a fixed order; the first that parses as an absolute URL supplies the
query. Otherwise a string that looks like a query is parsed directly, and anything else is taken to
be the code itself. Never raises.
"""
import logging
import re
from dataclasses import dataclass
from urllib.parse import parse_qsl, urlsplit

logger = logging.getLogger(__name__)

CALLBACK_PATH = "/oauth-callback"

_SCHEME_RE = re.compile(r"^[a-zA-Z][a-zA-Z\d+.-]*://")
_URL_SCHEME_RE = re.compile(r"^[a-zA-Z][a-zA-Z\d+.-]*$")
_BARE_LOCALHOST_RE = re.compile(r"^localhost(:\d+)?/", re.IGNORECASE)
_QUERY_MARKERS = ("code=", "state=", "error=")


@dataclass
class CallbackParams:
    code: str | None = None
    state: str | None = None
    error: str | None = None
    error_description: str | None = None


def has_url_scheme(value: str) -> bool:
    return bool(_SCHEME_RE.match(value))


# --- Candidate rules: each returns an absolute URL to try, or None ---


def candidate_from_path(raw: str) -> str | None:
    """/oauth-callback?code=... -> http://localhost/oauth-callback?code=..."""
    if raw.startswith("/"):
        return f"http://localhost{raw}"
    return None


def candidate_from_query(raw: str) -> str | None:
    """?code=... -> http://localhost/oauth-callback?code=..."""
    if raw.startswith("?"):
        return f"http://localhost{CALLBACK_PATH}{raw}"
    return None


def candidate_from_bare_localhost(raw: str) -> str | None:
    """localhost:3000/oauth-callback?... -> http://localhost:3000/oauth-callback?..."""
    if _BARE_LOCALHOST_RE.match(raw):
        return f"http://{raw}"
    return None


def candidate_from_callback_path(raw: str) -> str | None:
    """Anything mentioning /oauth-callback, with leading slashes stripped, under http://."""
    if CALLBACK_PATH in raw:
        return "http://" + raw.lstrip("/")
    return None


CANDIDATE_RULES = (
    candidate_from_path,
    candidate_from_query,
    candidate_from_bare_localhost,
    candidate_from_callback_path,
)


def build_candidates(raw: str) -> list[str]:
    """The raw string first, then one URL per matching rule (only when raw has no scheme)."""
    candidates = [raw]
    if not has_url_scheme(raw):
        for rule in CANDIDATE_RULES:
            candidate = rule(raw)
            if candidate is not None:
                candidates.append(candidate)
    return candidates


def parse_absolute_url(candidate: str) -> list[tuple[str, str]] | None:
    """
    Query pairs of candidate if it is an absolute URL, else None.
    Absolute means a scheme is present; http(s) additionally needs a host.
    """
    try:
        parts = urlsplit(candidate)
    except ValueError:
        return None
    if not parts.scheme or not _URL_SCHEME_RE.match(parts.scheme):
        return None
    if parts.scheme.lower() in ("http", "https") and not parts.hostname:
        return None
    return parse_qsl(parts.query, keep_blank_values=True)


def _first(pairs: list[tuple[str, str]], name: str) -> str | None:
    for key, value in pairs:
        if key == name:
            return value or None
    return None


def parse_callback_input(value: str | None) -> CallbackParams:
    """Best-effort parse of a pasted callback; falls back to treating the whole input as the code."""
    raw = (value or "").strip()
    if not raw:
        return CallbackParams()

    pairs = None
    for candidate in build_candidates(raw):
        pairs = parse_absolute_url(candidate)
        if pairs is not None:
            break

    if pairs is None and any(marker in raw for marker in _QUERY_MARKERS):
        pairs = parse_qsl(raw[1:] if raw.startswith("?") else raw, keep_blank_values=True)

    if pairs is None:
        logger.debug("Callback input is not a URL or query; using it as the code")
        return CallbackParams(code=raw)

    params = CallbackParams(
        code=_first(pairs, "code"),
        state=_first(pairs, "state"),
        error=_first(pairs, "error"),
        error_description=_first(pairs, "error_description"),
    )
    if not params.code and not params.state and not params.error:
        return CallbackParams(code=raw)
    return params
