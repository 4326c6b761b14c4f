import logging
import math
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Callable, Dict, List, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.core.errors import (
    CollaboratorError,
    PersistenceError,
    StaleWorkflowError,
    UnknownTriggerError,
)
from app.database import SessionLocal
from app.models.proposal_approval import ProposalApproval
from app.models.propgen_workflow import PropGENWorkflow
from app.services import audit_logger, collaborators, webhook_notifier
from app.services.webhook_notifier import WebhookDeliveryResult
from app.services.workflow_status import STATUS_RANK, WorkflowStatus

logger = logging.getLogger(__name__)


class TriggerType(str, Enum):
    RISK_ASSESSMENT_COMPLETED = "risk_assessment_completed"
    SPIN_CONTENT_GENERATED = "spin_content_generated"
    INVESTMENT_ANALYSIS_SAVED = "investment_analysis_saved"
    PROPOSAL_GENERATED = "proposal_generated"
    PROPOSAL_SENT = "proposal_sent"


ACTION_TYPES = {
    TriggerType.RISK_ASSESSMENT_COMPLETED: "risk_assessment_recorded",
    TriggerType.SPIN_CONTENT_GENERATED: "spin_content_saved",
    TriggerType.INVESTMENT_ANALYSIS_SAVED: "investment_analysis_saved",
    TriggerType.PROPOSAL_GENERATED: "approval_requested",
    TriggerType.PROPOSAL_SENT: "proposal_marked_sent",
}


@dataclass(frozen=True)
class TransitionPlan:
    target_status: Optional[str]
    fields: Dict[str, Any] = field(default_factory=dict)


@dataclass
class TriggerOutcome:
    result: dict
    webhook_results: List[WebhookDeliveryResult]

    @property
    def webhooks_notified(self) -> int:
        return len(self.webhook_results)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def parse_trigger_type(trigger_type: str) -> TriggerType:
    try:
        return TriggerType(trigger_type)
    except ValueError as exc:
        raise UnknownTriggerError(str(trigger_type)) from exc


def _pick(payload: dict, *keys: str) -> Any:
    for key in keys:
        if key in payload:
            return payload[key]
    return None


def _as_float(value: Any) -> Optional[float]:
    """Numeric payload values as float; anything non-numeric reads as missing."""
    if value is None or isinstance(value, bool):
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    return number if math.isfinite(number) else None


def advance_status(current: Optional[str], target: Optional[str]) -> Optional[str]:
    """Return the status to store; never moves backwards along the workflow."""
    if target is None:
        return current
    if STATUS_RANK.get(target, -1) >= STATUS_RANK.get(current or "", -1):
        return target
    return current


def plan_transition(trigger: TriggerType, payload: dict) -> Optional[TransitionPlan]:
    """Workflow fields a trigger sets. None means the workflow row is untouched."""
    if trigger == TriggerType.RISK_ASSESSMENT_COMPLETED:
        fields = {}
        risk_score = _as_float(_pick(payload, "riskScore", "risk_score"))
        if risk_score is not None:
            fields["risk_score"] = risk_score
        assessment_date = _pick(payload, "assessmentDate", "assessment_date")
        if assessment_date is not None:
            fields["assessment_date"] = str(assessment_date)
        return TransitionPlan(WorkflowStatus.RISK_ASSESSMENT_COMPLETED.value, fields)

    if trigger == TriggerType.SPIN_CONTENT_GENERATED:
        spin_content = payload["spinContent"] if "spinContent" in payload else payload
        return TransitionPlan(
            WorkflowStatus.SPIN_CONTENT_GENERATED.value,
            {
                "spin_content_status": "draft_generated",
                "spin_content": spin_content,
            },
        )

    if trigger == TriggerType.INVESTMENT_ANALYSIS_SAVED:
        return TransitionPlan(
            WorkflowStatus.INVESTMENT_ANALYSIS_COMPLETED.value,
            {
                "investment_analysis_status": "completed",
                "investment_analysis_data": payload,
            },
        )

    if trigger == TriggerType.PROPOSAL_SENT:
        return TransitionPlan(
            WorkflowStatus.PROPOSAL_SENT.value,
            {"proposal_status": "sent"},
        )

    return None


def apply_transition(
    db: Session,
    company_id: str,
    plan: TransitionPlan,
    expected_version: Optional[int] = None,
) -> PropGENWorkflow:
    try:
        workflow = (
            db.query(PropGENWorkflow)
            .filter(PropGENWorkflow.company_id == str(company_id))
            .with_for_update()
            .first()
        )

        current_version = int(workflow.version or 0) if workflow is not None else 0
        if expected_version is not None and int(expected_version) != current_version:
            db.rollback()
            raise StaleWorkflowError(str(company_id), int(expected_version), current_version)

        if workflow is None:
            workflow = PropGENWorkflow(
                company_id=str(company_id),
                status=WorkflowStatus.NOT_STARTED.value,
                version=0,
            )
            db.add(workflow)

        workflow.status = advance_status(workflow.status, plan.target_status)
        for name, value in plan.fields.items():
            setattr(workflow, name, value)

        workflow.version = current_version + 1
        workflow.updated_at = _utcnow()

        db.commit()
    except SQLAlchemyError as exc:
        db.rollback()
        raise PersistenceError(f"Failed to update workflow for company {company_id}") from exc

    return workflow


def _handle_risk_assessment_completed(db, company_id, payload, performed_by, expected_version) -> dict:
    plan = plan_transition(TriggerType.RISK_ASSESSMENT_COMPLETED, payload)
    apply_transition(db, company_id, plan, expected_version)

    spin_triggered = True
    try:
        collaborators.generate_spin_content(company_id, payload)
    except CollaboratorError:
        spin_triggered = False
        logger.warning(
            "SPIN content generation failed",
            exc_info=True,
            extra={"company_id": company_id},
        )

    return {"workflowUpdated": True, "spinContentTriggered": spin_triggered}


def _handle_spin_content_generated(db, company_id, payload, performed_by, expected_version) -> dict:
    plan = plan_transition(TriggerType.SPIN_CONTENT_GENERATED, payload)
    apply_transition(db, company_id, plan, expected_version)
    return {"spinContentSaved": True}


def _handle_investment_analysis_saved(db, company_id, payload, performed_by, expected_version) -> dict:
    plan = plan_transition(TriggerType.INVESTMENT_ANALYSIS_SAVED, payload)
    apply_transition(db, company_id, plan, expected_version)
    return {"investmentAnalysisSaved": True}


def _handle_proposal_generated(db, company_id, payload, performed_by, expected_version) -> dict:
    risk_score = _as_float(_pick(payload, "riskScore", "risk_score"))

    try:
        approval = ProposalApproval(
            company_id=str(company_id),
            submitted_by=performed_by,
            status="pending",
            proposal_data=payload,
            risk_score=risk_score,
            investment_analysis=_pick(payload, "investmentAnalysis", "investment_analysis"),
        )
        db.add(approval)
        db.commit()
    except SQLAlchemyError as exc:
        db.rollback()
        raise PersistenceError(f"Failed to create approval request for company {company_id}") from exc

    notification_sent = True
    try:
        collaborators.send_proposal_approval_notification(company_id, approval.id, payload)
    except CollaboratorError:
        notification_sent = False
        logger.warning(
            "Proposal approval notification failed",
            exc_info=True,
            extra={"company_id": company_id, "approval_id": approval.id},
        )

    return {
        "proposalGenerated": True,
        "approvalRequested": True,
        "approvalId": approval.id,
        "status": "pending_approval",
        "approvalNotificationSent": notification_sent,
    }


def _handle_proposal_sent(db, company_id, payload, performed_by, expected_version) -> dict:
    plan = plan_transition(TriggerType.PROPOSAL_SENT, payload)
    apply_transition(db, company_id, plan, expected_version)
    return {"proposalSent": True}


TriggerHandler = Callable[[Session, str, dict, Optional[str], Optional[int]], dict]

HANDLERS: Dict[TriggerType, TriggerHandler] = {
    TriggerType.RISK_ASSESSMENT_COMPLETED: _handle_risk_assessment_completed,
    TriggerType.SPIN_CONTENT_GENERATED: _handle_spin_content_generated,
    TriggerType.INVESTMENT_ANALYSIS_SAVED: _handle_investment_analysis_saved,
    TriggerType.PROPOSAL_GENERATED: _handle_proposal_generated,
    TriggerType.PROPOSAL_SENT: _handle_proposal_sent,
}


def handle_trigger(
    trigger_type: str,
    company_id: str,
    payload: Optional[dict],
    performed_by: Optional[str] = None,
    *,
    expected_version: Optional[int] = None,
    db: Optional[Session] = None,
) -> TriggerOutcome:
    """Process one workflow trigger for a tenant.

    The primary write is committed first and its failure propagates as
    PersistenceError. Webhook fan-out and the audit append run afterwards and
    never fail the call.
    """
    trigger = parse_trigger_type(trigger_type)
    payload = dict(payload or {})
    company_id = str(company_id)

    owns_db = db is None
    if owns_db:
        db = SessionLocal()

    try:
        result = HANDLERS[trigger](db, company_id, payload, performed_by, expected_version)

        logger.info(
            "PropGEN trigger processed",
            extra={
                "trigger_type": trigger.value,
                "company_id": company_id,
                "performed_by": performed_by,
            },
        )

        webhook_results = webhook_notifier.notify_webhooks(
            db,
            trigger.value,
            company_id,
            payload,
            result,
        )

        succeeded = sum(1 for r in webhook_results if r.success)
        audit_logger.log_trigger(
            company_id,
            trigger.value,
            payload,
            ACTION_TYPES[trigger],
            {
                **result,
                "webhooks_notified": len(webhook_results),
                "webhooks_succeeded": succeeded,
                "webhooks_failed": len(webhook_results) - succeeded,
            },
            performed_by,
            db=db,
        )

        return TriggerOutcome(result=result, webhook_results=webhook_results)
    finally:
        if owns_db:
            db.close()
