"""create propgen workflow tables

Revision ID: 3c1f0e7a9b52
Revises:
Create Date: 2026-10-19 09:12:04.318220
"""

from __future__ import annotations

from typing import Sequence, Union

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects import postgresql

revision: str = "3c1f0e7a9b52"
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _json() -> sa.types.TypeEngine:
    return sa.JSON().with_variant(postgresql.JSONB(astext_type=sa.Text()), "postgresql")


def upgrade() -> None:
    op.create_table(
        "propgen_workflows",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True, nullable=False),
        sa.Column("company_id", sa.String(), nullable=False),
        sa.Column("status", sa.String(), nullable=False),
        sa.Column("spin_content_status", sa.String(), nullable=True),
        sa.Column("investment_analysis_status", sa.String(), nullable=True),
        sa.Column("proposal_status", sa.String(), nullable=True),
        sa.Column("spin_content", _json(), nullable=True),
        sa.Column("investment_analysis_data", _json(), nullable=True),
        sa.Column("risk_score", sa.Float(), nullable=True),
        sa.Column("assessment_date", sa.String(), nullable=True),
        sa.Column("version", sa.Integer(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index(op.f("ix_propgen_workflows_company_id"), "propgen_workflows", ["company_id"], unique=True)

    op.create_table(
        "integration_webhooks",
        sa.Column("id", sa.String(), primary_key=True, nullable=False),
        sa.Column("company_id", sa.String(), nullable=True),
        sa.Column("name", sa.String(), nullable=False),
        sa.Column("webhook_url", sa.String(), nullable=False),
        sa.Column("integration_type", sa.String(), nullable=False),
        sa.Column("trigger_events", _json(), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False),
        sa.Column("success_count", sa.Integer(), nullable=False),
        sa.Column("failure_count", sa.Integer(), nullable=False),
        sa.Column("last_triggered_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_by", sa.String(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index(op.f("ix_integration_webhooks_company_id"), "integration_webhooks", ["company_id"], unique=False)
    op.create_index(op.f("ix_integration_webhooks_is_active"), "integration_webhooks", ["is_active"], unique=False)

    op.create_table(
        "webhook_logs",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True, nullable=False),
        sa.Column(
            "webhook_id",
            sa.String(),
            sa.ForeignKey("integration_webhooks.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("company_id", sa.String(), nullable=True),
        sa.Column("event_type", sa.String(), nullable=False),
        sa.Column("status", sa.String(), nullable=False),
        sa.Column("response_status", sa.Integer(), nullable=True),
        sa.Column("error_message", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index(op.f("ix_webhook_logs_webhook_id"), "webhook_logs", ["webhook_id"], unique=False)
    op.create_index(op.f("ix_webhook_logs_company_id"), "webhook_logs", ["company_id"], unique=False)

    op.create_table(
        "propgen_audit_log",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True, nullable=False),
        sa.Column("company_id", sa.String(), nullable=False),
        sa.Column("trigger_type", sa.String(), nullable=False),
        sa.Column("trigger_payload", _json(), nullable=True),
        sa.Column("action_type", sa.String(), nullable=False),
        sa.Column("action_result", _json(), nullable=True),
        sa.Column("performed_by", sa.String(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index(op.f("ix_propgen_audit_log_company_id"), "propgen_audit_log", ["company_id"], unique=False)
    op.create_index(
        "ix_propgen_audit_log_company_trigger",
        "propgen_audit_log",
        ["company_id", "trigger_type"],
        unique=False,
    )

    op.create_table(
        "proposal_approvals",
        sa.Column("id", sa.String(), primary_key=True, nullable=False),
        sa.Column("company_id", sa.String(), nullable=False),
        sa.Column("submitted_by", sa.String(), nullable=True),
        sa.Column("status", sa.String(), nullable=False),
        sa.Column("proposal_data", _json(), nullable=True),
        sa.Column("risk_score", sa.Float(), nullable=True),
        sa.Column("investment_analysis", _json(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.CheckConstraint(
            "status IN ('pending', 'approved', 'rejected')",
            name="ck_proposal_approvals_status",
        ),
    )
    op.create_index(op.f("ix_proposal_approvals_company_id"), "proposal_approvals", ["company_id"], unique=False)


def downgrade() -> None:
    op.drop_index(op.f("ix_proposal_approvals_company_id"), table_name="proposal_approvals")
    op.drop_table("proposal_approvals")

    op.drop_index("ix_propgen_audit_log_company_trigger", table_name="propgen_audit_log")
    op.drop_index(op.f("ix_propgen_audit_log_company_id"), table_name="propgen_audit_log")
    op.drop_table("propgen_audit_log")

    op.drop_index(op.f("ix_webhook_logs_company_id"), table_name="webhook_logs")
    op.drop_index(op.f("ix_webhook_logs_webhook_id"), table_name="webhook_logs")
    op.drop_table("webhook_logs")

    op.drop_index(op.f("ix_integration_webhooks_is_active"), table_name="integration_webhooks")
    op.drop_index(op.f("ix_integration_webhooks_company_id"), table_name="integration_webhooks")
    op.drop_table("integration_webhooks")

    op.drop_index(op.f("ix_propgen_workflows_company_id"), table_name="propgen_workflows")
    op.drop_table("propgen_workflows")
