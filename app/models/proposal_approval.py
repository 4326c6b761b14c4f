import uuid
from datetime import datetime, timezone

from sqlalchemy import CheckConstraint, Column, DateTime, Float, String

from app.database import Base, JSONType


class ProposalApproval(Base):
    __tablename__ = "proposal_approvals"

    id = Column(String, primary_key=True, default=lambda: str(uuid.uuid4()))
    company_id = Column(String, nullable=False, index=True)
    submitted_by = Column(String, nullable=True)

    status = Column(String, nullable=False, default="pending")

    proposal_data = Column(JSONType, nullable=True)
    risk_score = Column(Float, nullable=True)
    investment_analysis = Column(JSONType, nullable=True)

    created_at = Column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )

    __table_args__ = (
        CheckConstraint(
            "status IN ('pending', 'approved', 'rejected')",
            name="ck_proposal_approvals_status",
        ),
    )
