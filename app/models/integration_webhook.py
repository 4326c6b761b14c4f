import uuid
from datetime import datetime, timezone

from sqlalchemy import JSON, Boolean, Column, DateTime, Integer, String
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.ext.mutable import MutableList

from app.database import Base


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class IntegrationWebhook(Base):
    __tablename__ = "integration_webhooks"

    id = Column(String, primary_key=True, default=lambda: str(uuid.uuid4()))

    # NULL company_id marks a platform-level registration.
    company_id = Column(String, nullable=True, index=True)

    name = Column(String, nullable=False)
    webhook_url = Column(String, nullable=False)
    integration_type = Column(String, nullable=False, default="webhook")
    # as_mutable() binds to this type object; it must not be the shared JSONType.
    trigger_events = Column(
        MutableList.as_mutable(JSON().with_variant(JSONB(), "postgresql")),
        nullable=False,
        default=list,
    )

    is_active = Column(Boolean, nullable=False, default=True, index=True)

    success_count = Column(Integer, nullable=False, default=0)
    failure_count = Column(Integer, nullable=False, default=0)
    last_triggered_at = Column(DateTime(timezone=True), nullable=True)

    created_by = Column(String, nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow)
