from datetime import datetime, timedelta, timezone

from fastapi.testclient import TestClient

from app.core.errors import PersistenceError
from app.database import SessionLocal
from app.main import app
from app.models.integration_webhook import IntegrationWebhook
from app.models.propgen_audit_log import PropGENAuditLog
from app.services import propgen_trigger_service

client = TestClient(app)

HANDLER = "/propgen-integration-handler"


def _auth_headers(company_id: str, role: str = "ADMIN") -> dict:
    resp = client.post("/auth/token", json={"user_id": "test", "company_id": company_id, "role": role})
    assert resp.status_code == 200, f"token request failed: {resp.status_code} {resp.text}"
    data = resp.json()
    assert "access_token" in data, f"token response missing access_token: {data}"
    return {"X-Company-Id": company_id, "Authorization": f"Bearer {data['access_token']}"}


def _register_webhooks(company_id: str, urls, event: str) -> list[str]:
    base = datetime(2026, 10, 1, tzinfo=timezone.utc)
    db = SessionLocal()
    try:
        ids = []
        for i, url in enumerate(urls):
            row = IntegrationWebhook(
                company_id=company_id,
                name=f"hook-{i}",
                webhook_url=url,
                trigger_events=[event],
                is_active=True,
                success_count=0,
                failure_count=0,
                created_at=base + timedelta(seconds=i),
            )
            db.add(row)
            db.flush()
            ids.append(row.id)
        db.commit()
        return ids
    finally:
        db.close()


def test_trigger_returns_result_and_webhook_outcomes(outbound):
    urls = ["https://one.test/hook", "https://two.test/hook", "https://three.test/hook"]
    outbound.respond(urls[0])
    outbound.respond(urls[1], status_code=500)
    outbound.respond(urls[2])
    ids = _register_webhooks("company-1", urls, "proposal_sent")

    r = client.post(
        HANDLER,
        json={"triggerType": "proposal_sent", "companyId": "company-1", "triggerData": {}, "userId": "user-1"},
    )

    assert r.status_code == 200, r.text
    body = r.json()
    assert body["success"] is True
    assert body["result"] == {"proposalSent": True}
    assert body["webhooksNotified"] == 3
    assert [w["webhookId"] for w in body["webhookResults"]] == ids
    assert [w["success"] for w in body["webhookResults"]] == [True, False, True]

    db = SessionLocal()
    try:
        entry = db.query(PropGENAuditLog).one()
    finally:
        db.close()
    assert entry.action_result["webhooks_notified"] == 3
    assert entry.action_result["webhooks_failed"] == 1


def test_proposal_generated_scenario(outbound):
    outbound.respond("https://functions.test/send-proposal-approval-notification")

    r = client.post(
        HANDLER,
        json={
            "triggerType": "proposal_generated",
            "companyId": "company-1",
            "triggerData": {"riskScore": 72, "investmentAnalysis": {"annualSavings": 5000}},
            "userId": "user-9",
        },
    )

    assert r.status_code == 200, r.text
    result = r.json()["result"]
    assert result["proposalGenerated"] is True
    assert result["approvalRequested"] is True
    assert result["status"] == "pending_approval"
    assert result["approvalId"]

    approvals = client.get("/propgen/approvals", headers=_auth_headers("company-1")).json()
    assert len(approvals) == 1
    assert approvals[0]["id"] == result["approvalId"]
    assert approvals[0]["status"] == "pending"
    assert approvals[0]["risk_score"] == 72


def test_unknown_trigger_is_rejected_without_side_effects(outbound):
    r = client.post(HANDLER, json={"triggerType": "nope", "companyId": "company-1"})

    assert r.status_code == 400
    assert "Unknown trigger type" in r.json()["error"]

    db = SessionLocal()
    try:
        assert db.query(PropGENAuditLog).count() == 0
    finally:
        db.close()


def test_persistence_failure_returns_500(outbound, monkeypatch):
    def boom(*_args, **_kwargs):
        raise PersistenceError("Failed to update workflow for company company-1")

    monkeypatch.setattr(propgen_trigger_service, "apply_transition", boom)

    r = client.post(HANDLER, json={"triggerType": "proposal_sent", "companyId": "company-1"})

    assert r.status_code == 500
    assert r.json() == {"error": "Failed to update workflow for company company-1"}


def test_stale_expected_version_returns_409(outbound):
    r = client.post(HANDLER, json={"triggerType": "investment_analysis_saved", "companyId": "company-1"})
    assert r.status_code == 200

    r = client.post(
        HANDLER,
        json={"triggerType": "proposal_sent", "companyId": "company-1", "expectedVersion": 0},
    )
    assert r.status_code == 409
    assert "expected 0" in r.json()["error"]


def test_cors_preflight_allows_any_origin():
    r = client.options(
        HANDLER,
        headers={
            "Origin": "https://app.example.com",
            "Access-Control-Request-Method": "POST",
            "Access-Control-Request-Headers": "authorization, content-type, apikey",
        },
    )

    assert r.status_code == 200
    assert r.headers["access-control-allow-origin"] == "*"
    assert "POST" in r.headers["access-control-allow-methods"]


def test_handler_only_accepts_post():
    r = client.get(HANDLER)
    assert r.status_code == 405


def test_workflow_status_endpoint_projects_steps(outbound):
    client.post(HANDLER, json={"triggerType": "investment_analysis_saved", "companyId": "company-1"})

    r = client.get("/propgen/workflows/company-1", headers=_auth_headers("company-1"))

    assert r.status_code == 200, r.text
    body = r.json()
    assert body["status"] == "investment_analysis_completed"
    assert body["current_step"] == 2
    assert [s["status"] for s in body["steps"]] == [
        "completed",
        "completed",
        "current",
        "pending",
        "pending",
        "pending",
    ]
    assert body["workflow"]["investment_analysis_status"] == "completed"
    assert body["workflow"]["version"] == 1


def test_workflow_status_without_record_is_not_started():
    r = client.get("/propgen/workflows/company-new", headers=_auth_headers("company-new"))

    assert r.status_code == 200
    body = r.json()
    assert body["workflow"] is None
    assert body["status"] == "not_started"
    assert body["steps"][0]["status"] == "current"


def test_workflow_status_is_tenant_scoped():
    r = client.get("/propgen/workflows/company-2", headers=_auth_headers("company-1"))
    assert r.status_code == 403


def test_audit_log_is_tenant_scoped_and_filterable(outbound):
    client.post(HANDLER, json={"triggerType": "proposal_sent", "companyId": "company-1"})
    client.post(HANDLER, json={"triggerType": "investment_analysis_saved", "companyId": "company-1"})
    client.post(HANDLER, json={"triggerType": "proposal_sent", "companyId": "company-2"})

    r = client.get("/propgen/audit-log", headers=_auth_headers("company-1"))
    assert r.status_code == 200
    rows = r.json()["rows"]
    assert [row["trigger_type"] for row in rows] == ["proposal_sent", "investment_analysis_saved"]
    assert all(row["company_id"] == "company-1" for row in rows)

    r = client.get(
        "/propgen/audit-log",
        params={"trigger_type": "proposal_sent"},
        headers=_auth_headers("company-1"),
    )
    assert len(r.json()["rows"]) == 1


def test_all_triggers_walk_the_workflow_through_the_endpoint(outbound):
    outbound.respond("https://functions.test/generate-spin-content")
    outbound.respond("https://functions.test/send-proposal-approval-notification")
    calls = [
        ("risk_assessment_completed", {"riskScore": 64, "assessmentDate": "2026-10-01"}),
        ("spin_content_generated", {"spinContent": {"situation": "s", "problem": "p"}}),
        ("investment_analysis_saved", {"annualSavings": 12000}),
        ("proposal_generated", {"riskScore": 64, "investmentAnalysis": {"annualSavings": 12000}}),
        ("proposal_sent", {"channel": "email"}),
    ]

    for trigger_type, data in calls:
        r = client.post(
            HANDLER,
            json={"triggerType": trigger_type, "companyId": "company-1", "triggerData": data, "userId": "user-1"},
        )
        assert r.status_code == 200, f"{trigger_type}: {r.text}"
        assert r.json()["success"] is True

    body = client.get("/propgen/workflows/company-1", headers=_auth_headers("company-1")).json()
    assert body["status"] == "proposal_sent"
    assert body["current_step"] == 6
    workflow = body["workflow"]
    assert workflow["spin_content"] == {"situation": "s", "problem": "p"}
    assert workflow["investment_analysis_data"] == {"annualSavings": 12000}
    assert workflow["risk_score"] == 64
    assert workflow["version"] == 4

    rows = client.get("/propgen/audit-log", headers=_auth_headers("company-1")).json()["rows"]
    assert [row["trigger_type"] for row in rows] == [trigger_type for trigger_type, _ in calls]
    assert rows[1]["trigger_payload"] == {"spinContent": {"situation": "s", "problem": "p"}}

    approvals = client.get("/propgen/approvals", headers=_auth_headers("company-1")).json()
    assert len(approvals) == 1


def test_non_numeric_risk_score_is_ignored(outbound):
    outbound.respond("https://functions.test/generate-spin-content")

    r = client.post(
        HANDLER,
        json={"triggerType": "risk_assessment_completed", "companyId": "company-1", "triggerData": {"riskScore": "high"}},
    )

    assert r.status_code == 200, r.text
    body = client.get("/propgen/workflows/company-1", headers=_auth_headers("company-1")).json()
    assert body["status"] == "risk_assessment_completed"
    assert body["workflow"]["risk_score"] is None


def test_invalid_trigger_body_uses_error_shape():
    r = client.post(HANDLER, json={"triggerType": "proposal_sent"})
    assert r.status_code == 400
    assert "companyId" in r.json()["error"]

    r = client.post(HANDLER, json={"triggerType": "proposal_sent", "companyId": "company-1", "triggerData": [1, 2]})
    assert r.status_code == 400
    assert "triggerData" in r.json()["error"]
    assert "detail" not in r.json()
