"""Calls into the remote serverless functions the workflow depends on."""

import logging
import os
from typing import Any, Optional

import httpx

from app.core.errors import CollaboratorError

logger = logging.getLogger(__name__)

GENERATE_SPIN_CONTENT = "generate-spin-content"
SEND_APPROVAL_NOTIFICATION = "send-proposal-approval-notification"


def _env_float(name: str, default: float) -> float:
    v = os.getenv(name)
    if v is None or v == "":
        return default
    try:
        return float(v)
    except ValueError:
        return default


def build_http_client() -> httpx.Client:
    return httpx.Client(timeout=_env_float("PROPGEN_FUNCTION_TIMEOUT_SECONDS", 15.0))


def _functions_base_url() -> str:
    base_url = os.getenv("PROPGEN_FUNCTIONS_URL")
    if not base_url:
        raise CollaboratorError("functions", "PROPGEN_FUNCTIONS_URL is not configured")
    return base_url.rstrip("/")


def invoke_function(function_name: str, body: dict, *, client: Optional[httpx.Client] = None) -> Any:
    url = f"{_functions_base_url()}/{function_name}"

    headers = {"Content-Type": "application/json"}
    service_key = os.getenv("PROPGEN_SERVICE_KEY")
    if service_key:
        headers["Authorization"] = f"Bearer {service_key}"

    owns_client = client is None
    if owns_client:
        client = build_http_client()

    logger.info("Invoking collaborator", extra={"function": function_name})

    try:
        response = client.post(url, json=body, headers=headers)
        response.raise_for_status()
    except httpx.HTTPStatusError as exc:
        raise CollaboratorError(
            function_name, f"returned HTTP {exc.response.status_code}"
        ) from exc
    except (httpx.HTTPError, httpx.InvalidURL) as exc:
        raise CollaboratorError(function_name, f"request failed: {exc}") from exc
    finally:
        if owns_client:
            client.close()

    if not response.content:
        return None

    try:
        return response.json()
    except ValueError as exc:
        raise CollaboratorError(function_name, "returned a non-JSON body") from exc


def generate_spin_content(company_id: str, risk_data: dict) -> Any:
    return invoke_function(
        GENERATE_SPIN_CONTENT,
        {"companyId": company_id, "riskData": risk_data},
    )


def send_proposal_approval_notification(company_id: str, approval_id: str, proposal_data: dict) -> Any:
    return invoke_function(
        SEND_APPROVAL_NOTIFICATION,
        {
            "companyId": company_id,
            "approvalId": approval_id,
            "proposalData": proposal_data,
        },
    )
