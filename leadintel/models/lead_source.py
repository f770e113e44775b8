"""
Lead source model - one configured (workspace, provider) webhook integration.
Holds the privacy policy switch and webhook health telemetry.
Created by workspace configuration; the ingest pipeline only writes webhook_health.
"""
import uuid
from datetime import datetime, timezone
from typing import Optional
from sqlalchemy import String, Text, Integer, Boolean, DateTime, Index, UniqueConstraint
from sqlalchemy.dialects.postgresql import UUID, JSONB
from sqlalchemy.orm import Mapped, mapped_column
from leadintel.database import Base


class LeadSource(Base):
    __tablename__ = "lead_sources"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    workspace_id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), nullable=False)

    provider: Mapped[str] = mapped_column(String(50), nullable=False)  # opensend, warmly
    provider_account_id: Mapped[Optional[str]] = mapped_column(String(255))
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    # Privacy policy
    contact_level_enabled: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    include_contact_in_ai: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    privacy_notice_acknowledged_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))
    retention_days: Mapped[int] = mapped_column(Integer, default=90)  # read by cleanup jobs

    # Fernet-encrypted shared secret for HMAC signature checks
    webhook_secret_encrypted: Mapped[Optional[str]] = mapped_column(Text)

    # {"last_received_at": iso, "last_event_type": str, "last_error": str|None}
    webhook_health: Mapped[dict] = mapped_column(JSONB, default=dict, nullable=False)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=lambda: datetime.now(timezone.utc)
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=lambda: datetime.now(timezone.utc), onupdate=lambda: datetime.now(timezone.utc)
    )

    __table_args__ = (
        UniqueConstraint("workspace_id", "provider", name="uq_lead_sources_workspace_provider"),
        Index("ix_lead_sources_provider_account", "provider", "provider_account_id"),
    )

    def __repr__(self) -> str:
        return f"<LeadSource {self.provider} workspace={str(self.workspace_id)[:8]}>"
