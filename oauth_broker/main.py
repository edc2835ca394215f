"""
OAuth broker HTTP app. Start an authorization attempt, poll its status, receive the provider
callback, or complete manually from a pasted callback URL / code.
Port from OAUTH_BROKER_PORT (default 3000); the redirect URI is http://localhost:{port}/oauth-callback.
"""
from contextlib import asynccontextmanager

from fastapi import Depends, FastAPI
from fastapi.responses import HTMLResponse
from pydantic import BaseModel
from sqlalchemy.orm import Session

from oauth_broker.accounts import AccountRegistry
from oauth_broker.audit import (
    EVENT_OAUTH_COMPLETED,
    EVENT_OAUTH_STARTED,
    OUTCOME_FAIL,
    OUTCOME_SUCCESS,
    log_audit,
)
from oauth_broker.audit import router as audit_router
from oauth_broker.broker import OAuthBroker, resolve_server_port
from oauth_broker.config import RATE_LIMIT_EXCHANGE_PER_MINUTE, SERVER_PORT
from oauth_broker.database import SessionLocal, get_db, init_db
from oauth_broker.rate_limit import SlidingWindowLimiter
from oauth_broker.result_page import render_result_page
from oauth_broker.session_store import CompletionResult, SessionStore

registry = AccountRegistry(SessionLocal)
broker = OAuthBroker(
    store=SessionStore(),
    registry=registry,
    limiter=SlidingWindowLimiter(RATE_LIMIT_EXCHANGE_PER_MINUTE),
)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Create tables on startup."""
    init_db()
    yield


app = FastAPI(title="OAuth Broker", version="0.1.0", lifespan=lifespan)
app.include_router(audit_router)


class ManualCompletion(BaseModel):
    state: str | None = None
    code: str | None = None
    callback_url: str | None = None


def _log_completion(db: Session, result: CompletionResult) -> None:
    log_audit(
        db,
        EVENT_OAUTH_COMPLETED,
        outcome=OUTCOME_SUCCESS if result.success else OUTCOME_FAIL,
        detail=None if result.success else result.message,
    )


@app.get("/health")
def health():
    """Health check endpoint."""
    return {"status": "ok", "service": "oauth_broker"}


@app.post("/oauth/start")
def oauth_start(db: Session = Depends(get_db)):
    """Create a pending authorization attempt; the client opens auth_url in a popup."""
    session = broker.start_session({"port": SERVER_PORT})
    log_audit(db, EVENT_OAUTH_STARTED)
    return session


@app.get("/oauth/status")
def oauth_status(state: str = ""):
    return broker.get_status(state)


@app.get("/oauth-callback", response_class=HTMLResponse)
async def oauth_callback(
    state: str | None = None,
    code: str | None = None,
    error: str | None = None,
    error_description: str | None = None,
    db: Session = Depends(get_db),
):
    """Provider redirect target. Completes the session and renders the popup result page."""
    result = await broker.complete_callback(
        state, code=code, error=error, error_description=error_description
    )
    _log_completion(db, result)
    page = render_result_page(result.success, result.message, state, locale=broker.locale)
    return HTMLResponse(page, status_code=200 if result.success else 400)


@app.get("/accounts")
def list_accounts():
    """Registered accounts, newest first. Tokens are never returned."""
    return [
        {
            "id": a.id,
            "email": a.email,
            "scope": a.scope,
            "expires_at": a.expires_at.isoformat() if a.expires_at else None,
            "has_refresh_token": bool(a.refresh_token),
        }
        for a in registry.list_accounts()
    ]


@app.post("/oauth/complete")
async def oauth_complete(body: ManualCompletion, db: Session = Depends(get_db)):
    """Manual completion when the popup can't reach us: paste the callback URL and/or the code."""
    result = await broker.complete_from_user_input(
        state=body.state, code=body.code, callback_url=body.callback_url
    )
    _log_completion(db, result)
    return result.to_dict()


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "oauth_broker.main:app",
        host="127.0.0.1",
        port=resolve_server_port({"port": SERVER_PORT}),
        reload=True,
    )
