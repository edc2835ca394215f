"""
Account registry: where credentials land after a successful exchange.
One row per Google account, keyed by the e-mail in the id_token.
"""
import logging
from datetime import datetime, timezone

import jwt
from sqlalchemy.orm import Session, sessionmaker

from oauth_broker.audit import EVENT_ACCOUNT_ADDED, log_audit
from oauth_broker.models import Account
from oauth_broker.token_client import Credentials

logger = logging.getLogger(__name__)


def email_from_id_token(id_token: str | None) -> str | None:
    """
    E-mail claim of the id_token, or None. The token came straight from the provider's token
    endpoint over TLS, so its signature isn't checked here.
    """
    if not id_token:
        return None
    try:
        claims = jwt.decode(id_token, options={"verify_signature": False})
    except jwt.PyJWTError as e:
        logger.debug("Could not decode id_token: %s", e)
        return None
    email = claims.get("email")
    return email if isinstance(email, str) and email else None


class AccountRegistry:
    def __init__(self, session_factory: sessionmaker):
        self._session_factory = session_factory

    def add_account(self, credentials: Credentials) -> Account:
        """Insert, or update the row with the same e-mail. Raises on DB errors."""
        email = email_from_id_token(credentials.id_token)
        expires_at = datetime.fromtimestamp(credentials.expires_at, tz=timezone.utc)
        db: Session = self._session_factory()
        try:
            account = None
            if email:
                account = db.query(Account).filter(Account.email == email).first()
            if account is None:
                account = Account(email=email, access_token=credentials.access_token, expires_at=expires_at)
                db.add(account)
            account.access_token = credentials.access_token
            # Google omits refresh_token on re-consent sometimes; keep the one we have
            if credentials.refresh_token:
                account.refresh_token = credentials.refresh_token
            account.scope = credentials.scope
            account.expires_at = expires_at
            db.commit()
            log_audit(db, EVENT_ACCOUNT_ADDED, detail=email)
            db.refresh(account)
            logger.info("Registered account: %s", email or "(no email)")
            db.expunge(account)
            return account
        except Exception:
            db.rollback()
            raise
        finally:
            db.close()

    def list_accounts(self) -> list[Account]:
        db: Session = self._session_factory()
        try:
            rows = db.query(Account).order_by(Account.id.desc()).all()
            for row in rows:
                db.expunge(row)
            return rows
        finally:
            db.close()
