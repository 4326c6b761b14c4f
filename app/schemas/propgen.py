from datetime import datetime
from typing import Any, List, Optional

from pydantic import BaseModel, ConfigDict, Field


class TriggerRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    # Plain str so unknown triggers reach the handler and fail as UnknownTrigger.
    trigger_type: str = Field(alias="triggerType")
    company_id: str = Field(alias="companyId", min_length=1)
    trigger_data: Optional[dict] = Field(default=None, alias="triggerData")
    user_id: Optional[str] = Field(default=None, alias="userId")
    expected_version: Optional[int] = Field(default=None, alias="expectedVersion", ge=0)


class WorkflowStepResponse(BaseModel):
    id: str
    title: str
    status: str
    description: str


class WorkflowResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    company_id: str
    status: str
    spin_content_status: Optional[str] = None
    investment_analysis_status: Optional[str] = None
    proposal_status: Optional[str] = None
    spin_content: Optional[Any] = None
    investment_analysis_data: Optional[Any] = None
    risk_score: Optional[float] = None
    assessment_date: Optional[str] = None
    version: int = 0
    updated_at: Optional[datetime] = None


class WorkflowStatusResponse(BaseModel):
    workflow: Optional[WorkflowResponse]
    status: str
    current_step: int
    steps: List[WorkflowStepResponse]


class AuditLogRow(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    company_id: str
    trigger_type: str
    trigger_payload: Optional[Any] = None
    action_type: str
    action_result: Optional[Any] = None
    performed_by: Optional[str] = None
    created_at: datetime


class AuditLogListResponse(BaseModel):
    limit: int
    offset: int
    rows: List[AuditLogRow]


class ApprovalResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    company_id: str
    submitted_by: Optional[str] = None
    status: str
    proposal_data: Optional[Any] = None
    risk_score: Optional[float] = None
    investment_analysis: Optional[Any] = None
    created_at: datetime
