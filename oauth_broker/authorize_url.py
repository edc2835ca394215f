"""
Provider consent-screen URL for an authorization attempt.
Scopes are fixed; offline access with a forced consent prompt so a refresh token is issued.
"""
from urllib.parse import urlencode

from oauth_broker.config import AUTHORIZE_ENDPOINT

SCOPES = (
    "https://www.googleapis.com/auth/cloud-platform",
    "https://www.googleapis.com/auth/userinfo.email",
    "https://www.googleapis.com/auth/userinfo.profile",
    "https://www.googleapis.com/auth/cclog",
    "https://www.googleapis.com/auth/experimentsandconfigs",
)


def build_authorize_url(
    *,
    state: str,
    redirect_uri: str,
    client_id: str,
    endpoint: str = AUTHORIZE_ENDPOINT,
) -> str:
    """Build the provider authorization URL. Pure: same inputs, same URL."""
    params = {
        "access_type": "offline",
        "scope": " ".join(SCOPES),
        "state": state,
        "prompt": "consent",
        "response_type": "code",
        "client_id": client_id,
        "redirect_uri": redirect_uri,
    }
    return f"{endpoint}?{urlencode(params)}"
