"""
OAuth broker configuration. Values come from the environment; no secrets in this file.
"""
import os

# Port the broker listens on; also used to build the redirect URI registered with the provider.
# Kept as the raw env string: the broker resolves it (numeric or numeric string, else DEFAULT_PORT).
SERVER_PORT = os.environ.get("OAUTH_BROKER_PORT", "3000")
DEFAULT_PORT = 3000

# Pending authorization attempts older than this are treated as gone (30 minutes)
SESSION_TTL_SECONDS = 30 * 60

# Provider endpoints (Google OAuth 2.0)
AUTHORIZE_ENDPOINT = os.environ.get(
    "OAUTH_AUTHORIZE_ENDPOINT", "https://accounts.google.com/o/oauth2/v2/auth"
)
TOKEN_ENDPOINT = os.environ.get("OAUTH_TOKEN_ENDPOINT", "https://oauth2.googleapis.com/token")

# Our OAuth client registration at the provider
CLIENT_ID = os.environ.get("OAUTH_CLIENT_ID", "")
CLIENT_SECRET = os.environ.get("OAUTH_CLIENT_SECRET", "")

# Language for user-facing messages: "en" or "zh"
LOCALE = os.environ.get("OAUTH_BROKER_LOCALE", "en")

# SQLite DB for registered accounts and the audit log (sessions stay in memory)
DATABASE_URL = os.environ.get("OAUTH_BROKER_DATABASE_URL", "sqlite:///./oauth_broker.db")

# Token exchange calls per minute against the provider; 0 disables the limit
RATE_LIMIT_EXCHANGE_PER_MINUTE = int(os.environ.get("OAUTH_RATE_LIMIT_EXCHANGE_PER_MINUTE", "30"))

# Timeout for the token exchange HTTP call (seconds)
HTTP_TIMEOUT_SECONDS = float(os.environ.get("OAUTH_HTTP_TIMEOUT_SECONDS", "10"))
