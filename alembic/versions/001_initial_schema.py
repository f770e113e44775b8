"""Initial schema — lead sources, identities, leads, events and the credits ledger.

Revision ID: 001
Revises:
Create Date: 2026-10-19
"""
from typing import Sequence, Union
from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    # Lead sources (one per workspace + provider)
    op.create_table(
        "lead_sources",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column("workspace_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("provider", sa.String(50), nullable=False),
        sa.Column("provider_account_id", sa.String(255)),
        sa.Column("is_active", sa.Boolean, nullable=False, server_default=sa.true()),
        sa.Column("contact_level_enabled", sa.Boolean, nullable=False, server_default=sa.false()),
        sa.Column("include_contact_in_ai", sa.Boolean, nullable=False, server_default=sa.false()),
        sa.Column("privacy_notice_acknowledged_at", sa.DateTime(timezone=True)),
        sa.Column("retention_days", sa.Integer, server_default="90"),
        sa.Column("webhook_secret_encrypted", sa.Text),
        sa.Column("webhook_health", postgresql.JSONB, nullable=False, server_default="{}"),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.UniqueConstraint("workspace_id", "provider", name="uq_lead_sources_workspace_provider"),
    )
    op.create_index(
        "ix_lead_sources_provider_account", "lead_sources", ["provider", "provider_account_id"]
    )

    # Lead identities
    op.create_table(
        "lead_identities",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column("workspace_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("provider", sa.String(50), nullable=False),
        sa.Column("identity_type", sa.String(30), nullable=False, server_default="person"),
        sa.Column("external_id", sa.String(255), nullable=False),
        sa.Column("display_name", sa.String(255)),
        sa.Column("contact_fields", postgresql.JSONB, nullable=False, server_default="{}"),
        sa.Column("last_seen_at", sa.DateTime(timezone=True)),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.UniqueConstraint(
            "workspace_id", "provider", "external_id",
            name="uq_lead_identities_workspace_provider_external",
        ),
    )
    op.create_index("ix_lead_identities_last_seen_at", "lead_identities", ["last_seen_at"])

    # Leads (one per identity)
    op.create_table(
        "leads",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column("workspace_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column(
            "identity_id", postgresql.UUID(as_uuid=True),
            sa.ForeignKey("lead_identities.id"), nullable=False, unique=True,
        ),
        sa.Column("intent_score", sa.Integer, nullable=False, server_default="10"),
        sa.Column("status", sa.String(30), nullable=False, server_default="new"),
        sa.Column("first_seen_at", sa.DateTime(timezone=True)),
        sa.Column("last_activity_at", sa.DateTime(timezone=True)),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.CheckConstraint(
            "intent_score >= 0 AND intent_score <= 100", name="ck_leads_intent_score_range"
        ),
    )
    op.create_index("ix_leads_workspace_id", "leads", ["workspace_id"])
    op.create_index("ix_leads_status", "leads", ["status"])
    op.create_index("ix_leads_last_activity_at", "leads", ["last_activity_at"])

    # Lead events (append-only, dedupe_key globally unique)
    op.create_table(
        "lead_events",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column("workspace_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("identity_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("lead_identities.id")),
        sa.Column("lead_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("leads.id")),
        sa.Column("provider", sa.String(50), nullable=False),
        sa.Column("event_type", sa.String(100), nullable=False),
        sa.Column("occurred_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("page_url", sa.Text),
        sa.Column("dedupe_key", sa.String(64), nullable=False, unique=True),
        sa.Column("payload", postgresql.JSONB, nullable=False, server_default="{}"),
        sa.Column("received_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )
    op.create_index("ix_lead_events_workspace_id", "lead_events", ["workspace_id"])
    op.create_index("ix_lead_events_lead_id", "lead_events", ["lead_id"])
    op.create_index("ix_lead_events_occurred_at", "lead_events", ["occurred_at"])

    # Credits ledger (append-only, ledger_key globally unique)
    op.create_table(
        "credits_ledger",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column("workspace_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("event_type", sa.String(100), nullable=False),
        sa.Column("units", sa.Integer, nullable=False),
        sa.Column("provider", sa.String(50), nullable=False),
        sa.Column("lead_id", postgresql.UUID(as_uuid=True)),
        sa.Column("identity_id", postgresql.UUID(as_uuid=True)),
        sa.Column("occurred_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("ledger_key", sa.String(64), nullable=False, unique=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )
    op.create_index(
        "ix_credits_ledger_workspace_type", "credits_ledger", ["workspace_id", "event_type"]
    )
    op.create_index("ix_credits_ledger_identity_id", "credits_ledger", ["identity_id"])


def downgrade() -> None:
    op.drop_table("credits_ledger")
    op.drop_table("lead_events")
    op.drop_table("leads")
    op.drop_table("lead_identities")
    op.drop_table("lead_sources")
