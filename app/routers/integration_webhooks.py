from fastapi import APIRouter, Depends, HTTPException, Request
from sqlalchemy import or_
from sqlalchemy.orm import Session

from app.core.authorization import Role, require_role
from app.database import SessionLocal
from app.models.integration_webhook import IntegrationWebhook
from app.models.webhook_log import WebhookLog
from app.schemas.integration_webhook import (
    IntegrationWebhookCreate,
    IntegrationWebhookResponse,
    IntegrationWebhookUpdate,
    WebhookLogResponse,
)
from app.services import webhook_notifier

router = APIRouter(prefix="/integration-webhooks", tags=["Integrations"])


def _load_owned_webhook_or_404(db: Session, webhook_id: str, request: Request) -> IntegrationWebhook:
    webhook = db.query(IntegrationWebhook).filter(IntegrationWebhook.id == webhook_id).first()
    if webhook is None:
        raise HTTPException(status_code=404, detail="Webhook not found")

    if webhook.company_id is None:
        if request.state.role != Role.SUPER_ADMIN.value:
            raise HTTPException(status_code=403, detail="Platform webhooks require SUPER_ADMIN")
    elif webhook.company_id != str(request.state.company_id):
        raise HTTPException(status_code=404, detail="Webhook not found")

    return webhook


@router.post("", response_model=IntegrationWebhookResponse)
def create_webhook(
    payload: IntegrationWebhookCreate,
    request: Request,
    role: Role = Depends(require_role(Role.ADMIN)),
):
    if payload.platform and role != Role.SUPER_ADMIN:
        raise HTTPException(status_code=403, detail="Platform webhooks require SUPER_ADMIN")

    db: Session = SessionLocal()
    try:
        webhook = IntegrationWebhook(
            company_id=None if payload.platform else str(request.state.company_id),
            name=payload.name,
            webhook_url=str(payload.webhook_url),
            integration_type=payload.integration_type,
            trigger_events=list(dict.fromkeys(payload.trigger_events)),
            is_active=payload.is_active,
            success_count=0,
            failure_count=0,
            created_by=str(request.state.user_id),
        )
        db.add(webhook)
        db.commit()
        db.refresh(webhook)
        return webhook
    finally:
        db.close()


@router.get("", response_model=list[IntegrationWebhookResponse])
def list_webhooks(
    request: Request,
    _role: Role = Depends(require_role(Role.ADMIN)),
):
    db: Session = SessionLocal()
    try:
        return (
            db.query(IntegrationWebhook)
            .filter(
                or_(
                    IntegrationWebhook.company_id.is_(None),
                    IntegrationWebhook.company_id == str(request.state.company_id),
                )
            )
            .order_by(IntegrationWebhook.created_at.desc())
            .all()
        )
    finally:
        db.close()


@router.get("/logs", response_model=list[WebhookLogResponse])
def list_webhook_logs(
    request: Request,
    _role: Role = Depends(require_role(Role.ADMIN)),
):
    db: Session = SessionLocal()
    try:
        return (
            db.query(WebhookLog)
            .filter(WebhookLog.company_id == str(request.state.company_id))
            .order_by(WebhookLog.id.desc())
            .limit(50)
            .all()
        )
    finally:
        db.close()


@router.patch("/{webhook_id}", response_model=IntegrationWebhookResponse)
def update_webhook(
    webhook_id: str,
    payload: IntegrationWebhookUpdate,
    request: Request,
    _role: Role = Depends(require_role(Role.ADMIN)),
):
    db: Session = SessionLocal()
    try:
        webhook = _load_owned_webhook_or_404(db, webhook_id, request)

        if payload.name is not None:
            webhook.name = payload.name
        if payload.is_active is not None:
            webhook.is_active = payload.is_active
        if payload.trigger_events is not None:
            webhook.trigger_events = list(dict.fromkeys(payload.trigger_events))

        db.commit()
        db.refresh(webhook)
        return webhook
    finally:
        db.close()


@router.post("/{webhook_id}/test")
def test_webhook(
    webhook_id: str,
    request: Request,
    _role: Role = Depends(require_role(Role.ADMIN)),
):
    db: Session = SessionLocal()
    try:
        webhook = _load_owned_webhook_or_404(db, webhook_id, request)
        delivery = webhook_notifier.send_test_event(db, webhook)
        return delivery.to_dict()
    finally:
        db.close()
