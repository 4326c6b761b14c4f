import logging
import os
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import List, Optional

import httpx
from sqlalchemy import or_
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.core.errors import WebhookDeliveryError
from app.models.integration_webhook import IntegrationWebhook
from app.models.webhook_log import WebhookLog

logger = logging.getLogger(__name__)

TEST_EVENT_MESSAGE = "This is a test from the PropGEN integration system"


@dataclass(frozen=True)
class WebhookDeliveryResult:
    webhook_id: str
    success: bool
    status_code: Optional[int] = None
    error: Optional[str] = None

    def to_dict(self) -> dict:
        out = {"webhookId": self.webhook_id, "success": self.success}
        if self.status_code is not None:
            out["status"] = self.status_code
        if self.error is not None:
            out["error"] = self.error
        return out


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _env_float(name: str, default: float) -> float:
    v = os.getenv(name)
    if v is None or v == "":
        return default
    try:
        return float(v)
    except ValueError:
        return default


def build_http_client() -> httpx.Client:
    return httpx.Client(timeout=_env_float("WEBHOOK_TIMEOUT_SECONDS", 10.0))


def build_envelope(trigger_type: str, company_id: str, trigger_data: dict, result: dict, now: datetime) -> dict:
    return {
        "event_type": trigger_type,
        "company_id": company_id,
        "trigger_data": trigger_data,
        "result": result,
        "timestamp": now.isoformat(),
    }


def find_matching_webhooks(db: Session, trigger_type: str, company_id: Optional[str]) -> List[IntegrationWebhook]:
    q = db.query(IntegrationWebhook).filter(IntegrationWebhook.is_active.is_(True))

    if company_id is None:
        q = q.filter(IntegrationWebhook.company_id.is_(None))
    else:
        q = q.filter(
            or_(
                IntegrationWebhook.company_id.is_(None),
                IntegrationWebhook.company_id == str(company_id),
            )
        )

    rows = q.order_by(IntegrationWebhook.created_at.asc(), IntegrationWebhook.id.asc()).all()

    # trigger_events is a JSON array; containment is checked here so the
    # filter behaves the same on JSONB and plain JSON columns.
    return [row for row in rows if trigger_type in (row.trigger_events or [])]


def _post(client: httpx.Client, webhook: IntegrationWebhook, body: dict) -> int:
    try:
        response = client.post(
            webhook.webhook_url,
            json=body,
            headers={"Content-Type": "application/json"},
        )
    except (httpx.HTTPError, httpx.InvalidURL, ValueError) as exc:
        raise WebhookDeliveryError(webhook.id, f"{type(exc).__name__}: {exc}") from exc

    if not response.is_success:
        raise WebhookDeliveryError(
            webhook.id,
            f"HTTP {response.status_code}",
            status_code=response.status_code,
        )

    return response.status_code


def deliver(
    client: httpx.Client,
    webhook: IntegrationWebhook,
    body: dict,
) -> WebhookDeliveryResult:
    try:
        status_code = _post(client, webhook, body)
    except WebhookDeliveryError as exc:
        logger.warning(
            "Webhook delivery failed",
            extra={
                "webhook_id": webhook.id,
                "event_type": body.get("event_type"),
                "error": str(exc),
            },
        )
        return WebhookDeliveryResult(
            webhook_id=webhook.id,
            success=False,
            status_code=exc.status_code,
            error=str(exc),
        )

    return WebhookDeliveryResult(webhook_id=webhook.id, success=True, status_code=status_code)


def _record_delivery(
    db: Session,
    webhook: IntegrationWebhook,
    company_id: Optional[str],
    event_type: str,
    result: WebhookDeliveryResult,
    now: datetime,
) -> None:
    if result.success:
        webhook.success_count = int(webhook.success_count or 0) + 1
    else:
        webhook.failure_count = int(webhook.failure_count or 0) + 1
    webhook.last_triggered_at = now

    db.add(
        WebhookLog(
            webhook_id=webhook.id,
            company_id=company_id,
            event_type=event_type,
            status="sent" if result.success else "failed",
            response_status=result.status_code,
            error_message=result.error,
            created_at=now,
        )
    )


def _commit_delivery_stats(db: Session, event_type: str) -> None:
    try:
        db.commit()
    except SQLAlchemyError:
        db.rollback()
        logger.exception(
            "Failed to persist webhook delivery stats",
            extra={"event_type": event_type},
        )


def notify_webhooks(
    db: Session,
    trigger_type: str,
    company_id: str,
    trigger_data: dict,
    result: dict,
    *,
    client: Optional[httpx.Client] = None,
    now: Optional[datetime] = None,
) -> List[WebhookDeliveryResult]:
    """POST the trigger envelope to every active registration subscribed to it.

    Deliveries run one after another. A failing endpoint is recorded in its
    own result and never stops the remaining deliveries.
    """
    if now is None:
        now = _utcnow()

    try:
        webhooks = find_matching_webhooks(db, trigger_type, company_id)
    except SQLAlchemyError:
        db.rollback()
        logger.exception(
            "Failed to load webhook registrations",
            extra={"trigger_type": trigger_type, "company_id": company_id},
        )
        return []

    if not webhooks:
        return []

    body = build_envelope(trigger_type, company_id, trigger_data, result, now)

    owns_client = client is None
    if owns_client:
        client = build_http_client()

    results: List[WebhookDeliveryResult] = []
    try:
        for webhook in webhooks:
            delivery = deliver(client, webhook, body)
            results.append(delivery)
            _record_delivery(db, webhook, company_id, trigger_type, delivery, now)
    finally:
        if owns_client:
            client.close()

    _commit_delivery_stats(db, trigger_type)

    logger.info(
        "Webhooks notified",
        extra={
            "trigger_type": trigger_type,
            "company_id": company_id,
            "attempted": len(results),
            "succeeded": sum(1 for r in results if r.success),
        },
    )

    return results


def send_test_event(
    db: Session,
    webhook: IntegrationWebhook,
    *,
    client: Optional[httpx.Client] = None,
    now: Optional[datetime] = None,
) -> WebhookDeliveryResult:
    if now is None:
        now = _utcnow()

    body = {
        "event_type": "test",
        "timestamp": now.isoformat(),
        "message": TEST_EVENT_MESSAGE,
    }

    owns_client = client is None
    if owns_client:
        client = build_http_client()

    try:
        delivery = deliver(client, webhook, body)
    finally:
        if owns_client:
            client.close()

    _record_delivery(db, webhook, webhook.company_id, "test", delivery, now)
    _commit_delivery_stats(db, "test")

    return delivery
