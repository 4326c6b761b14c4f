from datetime import datetime, timezone

from sqlalchemy import Column, DateTime, Float, Integer, String

from app.database import Base, JSONType


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class PropGENWorkflow(Base):
    __tablename__ = "propgen_workflows"

    id = Column(Integer, primary_key=True, autoincrement=True)
    company_id = Column(String, nullable=False, unique=True, index=True)

    status = Column(String, nullable=False, default="not_started")

    spin_content_status = Column(String, nullable=True)
    investment_analysis_status = Column(String, nullable=True)
    proposal_status = Column(String, nullable=True)

    spin_content = Column(JSONType, nullable=True)
    investment_analysis_data = Column(JSONType, nullable=True)

    risk_score = Column(Float, nullable=True)
    assessment_date = Column(String, nullable=True)

    version = Column(Integer, nullable=False, default=0)

    created_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow)
