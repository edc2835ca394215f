"""
Authorization code -> credentials exchange against the provider's token endpoint.
"""
import logging
import time
from dataclasses import dataclass, field

import httpx

from oauth_broker.config import CLIENT_ID, CLIENT_SECRET, HTTP_TIMEOUT_SECONDS, TOKEN_ENDPOINT
from oauth_broker.errors import TokenExchangeError
from oauth_broker.rate_limit import SlidingWindowLimiter

logger = logging.getLogger(__name__)

RATE_LIMIT_KEY = "token_exchange"


@dataclass
class OAuthClient:
    client_id: str
    client_secret: str


@dataclass
class Credentials:
    access_token: str
    refresh_token: str | None
    expires_in: int
    scope: str
    token_type: str = "Bearer"
    id_token: str | None = None
    issued_at: float = field(default_factory=time.time)

    @property
    def expires_at(self) -> float:
        return self.issued_at + self.expires_in


def get_oauth_client() -> OAuthClient:
    """Our client registration at the provider."""
    return OAuthClient(client_id=CLIENT_ID, client_secret=CLIENT_SECRET)


def _error_text(r: httpx.Response) -> str:
    """error_description, else error, else the raw body or status line."""
    try:
        err = r.json()
    except ValueError:
        err = None
    if isinstance(err, dict):
        text = err.get("error_description") or err.get("error")
        if text:
            return str(text)
    return r.text.strip()[:200] or f"HTTP {r.status_code}"


async def exchange_code_for_token(
    code: str,
    redirect_uri: str,
    limiter: SlidingWindowLimiter | None,
    *,
    client: httpx.AsyncClient | None = None,
    oauth_client: OAuthClient | None = None,
    token_endpoint: str = TOKEN_ENDPOINT,
) -> Credentials:
    """
    POST grant_type=authorization_code to the token endpoint.
    Raises TokenExchangeError when rate limited, on transport errors, or on a non-200 response.
    """
    if limiter is not None:
        allowed, retry_after = limiter.check_and_consume(RATE_LIMIT_KEY)
        if not allowed:
            raise TokenExchangeError(f"rate limited, retry after {retry_after}s")

    oauth_client = oauth_client or get_oauth_client()
    data = {
        "grant_type": "authorization_code",
        "code": code,
        "redirect_uri": redirect_uri,
        "client_id": oauth_client.client_id,
        "client_secret": oauth_client.client_secret,
    }
    headers = {"Accept": "application/json"}
    try:
        if client is None:
            async with httpx.AsyncClient(timeout=HTTP_TIMEOUT_SECONDS) as c:
                r = await c.post(token_endpoint, data=data, headers=headers)
        else:
            r = await client.post(token_endpoint, data=data, headers=headers)
    except httpx.HTTPError as e:
        logger.warning("Token endpoint unreachable: %s", e)
        raise TokenExchangeError(str(e) or type(e).__name__) from e

    if r.status_code != 200:
        raise TokenExchangeError(_error_text(r))

    try:
        body = r.json()
    except ValueError as e:
        raise TokenExchangeError("token response is not JSON") from e
    access_token = body.get("access_token") if isinstance(body, dict) else None
    if not access_token:
        raise TokenExchangeError("token response has no access_token")

    return Credentials(
        access_token=access_token,
        refresh_token=body.get("refresh_token"),
        expires_in=int(body.get("expires_in") or 0),
        scope=body.get("scope", ""),
        token_type=body.get("token_type", "Bearer"),
        id_token=body.get("id_token"),
    )
