"""
Audit logging for the broker. Lifecycle events only; no codes, tokens, or secrets.
"""
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from oauth_broker.database import get_db
from oauth_broker.models import AuditLog

EVENT_OAUTH_STARTED = "oauth_started"
EVENT_OAUTH_COMPLETED = "oauth_completed"
EVENT_ACCOUNT_ADDED = "account_added"

OUTCOME_SUCCESS = "success"
OUTCOME_FAIL = "fail"


def log_audit(
    db: Session,
    event_type: str,
    *,
    outcome: str = OUTCOME_SUCCESS,
    detail: str | None = None,
) -> None:
    """Append one audit record. detail is truncated to the column size."""
    db.add(
        AuditLog(
            event_type=event_type,
            outcome=outcome,
            detail=detail[:255] if detail else None,
        )
    )
    db.commit()


router = APIRouter(tags=["audit"])


@router.get("/audit")
def list_audit_logs(
    limit: int = 100,
    event_type: str | None = None,
    outcome: str | None = None,
    db: Session = Depends(get_db),
):
    """List recent broker events (lab use). Most recent first."""
    q = db.query(AuditLog).order_by(AuditLog.id.desc())
    if event_type:
        q = q.filter(AuditLog.event_type == event_type)
    if outcome:
        q = q.filter(AuditLog.outcome == outcome)
    rows = q.limit(min(max(1, limit), 500)).all()
    return [
        {
            "created_at": r.created_at.isoformat() if r.created_at else None,
            "event_type": r.event_type,
            "outcome": r.outcome,
            "detail": r.detail,
        }
        for r in rows
    ]
