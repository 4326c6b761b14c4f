from app.models.integration_webhook import IntegrationWebhook
from app.models.proposal_approval import ProposalApproval
from app.models.propgen_audit_log import PropGENAuditLog
from app.models.propgen_workflow import PropGENWorkflow
from app.models.webhook_log import WebhookLog

__all__ = [
    "IntegrationWebhook",
    "PropGENAuditLog",
    "PropGENWorkflow",
    "ProposalApproval",
    "WebhookLog",
]
