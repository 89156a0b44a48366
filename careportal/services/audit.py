"""Audit and security log writers. A failed log write never fails the request."""
import logging

from sqlmodel import Session

from careportal.models import AuditLog, SecurityLog

log = logging.getLogger(__name__)


def audit(db: Session, event: str, user_id: int | None, ip: str | None) -> None:
    try:
        db.add(AuditLog(event=event, user_id=user_id, ip=ip or None))
        db.commit()
    except Exception as e:
        db.rollback()
        log.warning("AuditLog %s write failed: %s", event, e)


def security_event(
    db: Session,
    event: str,
    ip: str | None,
    endpoint: str | None,
    detail: str | None = None,
    user_id: int | None = None,
) -> None:
    try:
        db.add(SecurityLog(event=event, user_id=user_id, ip=ip or None, endpoint=endpoint, detail=detail))
        db.commit()
    except Exception as e:
        db.rollback()
        log.warning("SecurityLog %s write failed: %s", event, e)
