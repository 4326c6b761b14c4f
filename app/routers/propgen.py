import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from app.core.errors import PersistenceError, StaleWorkflowError, UnknownTriggerError
from app.database import SessionLocal
from app.deps.auth import require_auth
from app.models.proposal_approval import ProposalApproval
from app.models.propgen_audit_log import PropGENAuditLog
from app.models.propgen_workflow import PropGENWorkflow
from app.schemas.propgen import (
    ApprovalResponse,
    AuditLogListResponse,
    AuditLogRow,
    TriggerRequest,
    WorkflowResponse,
    WorkflowStatusResponse,
)
from app.services import propgen_trigger_service
from app.services.workflow_status import current_step_index, project_status

logger = logging.getLogger(__name__)

router = APIRouter(tags=["PropGEN"])

TRIGGER_PATH = "/propgen-integration-handler"


@router.post(TRIGGER_PATH)
def propgen_integration_handler(payload: TriggerRequest):
    try:
        outcome = propgen_trigger_service.handle_trigger(
            payload.trigger_type,
            payload.company_id,
            payload.trigger_data,
            payload.user_id,
            expected_version=payload.expected_version,
        )
    except UnknownTriggerError as exc:
        return JSONResponse(status_code=400, content={"error": str(exc)})
    except StaleWorkflowError as exc:
        return JSONResponse(status_code=409, content={"error": str(exc)})
    except PersistenceError as exc:
        logger.exception(
            "PropGEN trigger failed",
            extra={"trigger_type": payload.trigger_type, "company_id": payload.company_id},
        )
        return JSONResponse(status_code=500, content={"error": str(exc)})

    return {
        "success": True,
        "result": outcome.result,
        "webhooksNotified": outcome.webhooks_notified,
        "webhookResults": [r.to_dict() for r in outcome.webhook_results],
    }


@router.get("/propgen/workflows/{company_id}", response_model=WorkflowStatusResponse)
def get_workflow_status(
    company_id: str,
    request: Request,
    _auth: tuple[str, str] = Depends(require_auth),
):
    if str(request.state.company_id) != str(company_id):
        raise HTTPException(status_code=403, detail="Forbidden for this company")

    db: Session = SessionLocal()
    try:
        workflow = db.query(PropGENWorkflow).filter(PropGENWorkflow.company_id == str(company_id)).first()
        status = workflow.status if workflow is not None else "not_started"

        return {
            "workflow": None if workflow is None else WorkflowResponse.model_validate(workflow),
            "status": status,
            "current_step": current_step_index(status),
            "steps": [step.to_dict() for step in project_status(status)],
        }
    finally:
        db.close()


@router.get("/propgen/audit-log", response_model=AuditLogListResponse)
def list_audit_log(
    request: Request,
    trigger_type: Optional[str] = None,
    limit: int = Query(50, ge=1, le=200),
    offset: int = Query(0, ge=0, le=1_000_000),
    _auth: tuple[str, str] = Depends(require_auth),
):
    db: Session = SessionLocal()
    try:
        q = db.query(PropGENAuditLog).filter(
            PropGENAuditLog.company_id == str(request.state.company_id)
        )

        if trigger_type is not None:
            q = q.filter(PropGENAuditLog.trigger_type == trigger_type)

        rows = (
            q.order_by(PropGENAuditLog.id.asc())
            .limit(int(limit))
            .offset(int(offset))
            .all()
        )

        return {
            "limit": int(limit),
            "offset": int(offset),
            "rows": [AuditLogRow.model_validate(r) for r in rows],
        }
    finally:
        db.close()


@router.get("/propgen/approvals", response_model=list[ApprovalResponse])
def list_approvals(
    request: Request,
    status: Optional[str] = Query(None, pattern="^(pending|approved|rejected)$"),
    _auth: tuple[str, str] = Depends(require_auth),
):
    db: Session = SessionLocal()
    try:
        q = db.query(ProposalApproval).filter(
            ProposalApproval.company_id == str(request.state.company_id)
        )
        if status is not None:
            q = q.filter(ProposalApproval.status == status)

        return q.order_by(ProposalApproval.created_at.desc()).limit(200).all()
    finally:
        db.close()
