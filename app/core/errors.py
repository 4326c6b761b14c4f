"""Error taxonomy for the PropGEN workflow.

Only ``UnknownTriggerError``, ``StaleWorkflowError`` and ``PersistenceError``
ever reach a caller. The remaining errors are raised inside side-effect code
and converted into ``false`` flags or per-webhook results by their callers.
"""


class PropGENError(Exception):
    """Base class for workflow errors."""


class UnknownTriggerError(PropGENError):
    def __init__(self, trigger_type: str):
        super().__init__(f"Unknown trigger type: {trigger_type}")
        self.trigger_type = trigger_type


class PersistenceError(PropGENError):
    pass


class StaleWorkflowError(PropGENError):
    def __init__(self, company_id: str, expected_version: int, actual_version: int):
        super().__init__(
            f"Workflow for company {company_id} is at version {actual_version}, "
            f"expected {expected_version}"
        )
        self.company_id = company_id
        self.expected_version = expected_version
        self.actual_version = actual_version


class CollaboratorError(PropGENError):
    def __init__(self, function_name: str, message: str):
        super().__init__(f"{function_name}: {message}")
        self.function_name = function_name


class WebhookDeliveryError(PropGENError):
    def __init__(self, webhook_id: str, message: str, status_code: int | None = None):
        super().__init__(message)
        self.webhook_id = webhook_id
        self.status_code = status_code


class AuditLogError(PropGENError):
    pass
