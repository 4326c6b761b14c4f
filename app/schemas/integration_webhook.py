from datetime import datetime
from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, HttpUrl

IntegrationType = Literal["slack", "teams", "zapier", "webhook", "email"]


class IntegrationWebhookCreate(BaseModel):
    name: str = Field(min_length=1)
    webhook_url: HttpUrl
    integration_type: IntegrationType = "webhook"
    trigger_events: List[str] = Field(default_factory=list)
    is_active: bool = True
    platform: bool = False


class IntegrationWebhookUpdate(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1)
    is_active: Optional[bool] = None
    trigger_events: Optional[List[str]] = None


class IntegrationWebhookResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    company_id: Optional[str] = None
    name: str
    webhook_url: str
    integration_type: str
    trigger_events: List[str]
    is_active: bool
    success_count: int
    failure_count: int
    last_triggered_at: Optional[datetime] = None
    created_at: datetime


class WebhookLogResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    webhook_id: str
    company_id: Optional[str] = None
    event_type: str
    status: str
    response_status: Optional[int] = None
    error_message: Optional[str] = None
    created_at: datetime
