from datetime import datetime, timezone

from sqlalchemy import Column, DateTime, Integer, String
from sqlalchemy.schema import Index

from app.database import Base, JSONType


class PropGENAuditLog(Base):
    __tablename__ = "propgen_audit_log"

    id = Column(Integer, primary_key=True, autoincrement=True)

    company_id = Column(String, nullable=False, index=True)
    trigger_type = Column(String, nullable=False)
    trigger_payload = Column(JSONType, nullable=True)

    action_type = Column(String, nullable=False)
    action_result = Column(JSONType, nullable=True)

    performed_by = Column(String, nullable=True)
    created_at = Column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )

    __table_args__ = (
        Index("ix_propgen_audit_log_company_trigger", "company_id", "trigger_type"),
    )
