import logging
from typing import Any, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.core.errors import AuditLogError
from app.database import SessionLocal
from app.models.propgen_audit_log import PropGENAuditLog

logger = logging.getLogger(__name__)


def _write_entry(db: Session, **values: Any) -> None:
    try:
        db.add(PropGENAuditLog(**values))
        db.commit()
    except (SQLAlchemyError, TypeError, ValueError) as exc:
        db.rollback()
        raise AuditLogError(f"Failed to append audit entry: {exc}") from exc


def log_trigger(
    company_id: str,
    trigger_type: str,
    payload: Any,
    action_type: str,
    action_result: Any,
    performed_by: Optional[str],
    *,
    db: Optional[Session] = None,
) -> None:
    """Append one audit row for a processed trigger.

    Never raises: a failed append is reported on the operational log only.
    """
    owns_db = db is None
    if owns_db:
        db = SessionLocal()

    try:
        _write_entry(
            db,
            company_id=str(company_id),
            trigger_type=trigger_type,
            trigger_payload=payload,
            action_type=action_type,
            action_result=action_result,
            performed_by=performed_by,
        )
    except AuditLogError:
        logger.exception(
            "Audit log append failed",
            extra={
                "company_id": company_id,
                "trigger_type": trigger_type,
                "action_type": action_type,
            },
        )
    finally:
        if owns_db:
            db.close()
