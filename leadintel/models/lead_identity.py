"""
Lead identity model - a durable, possibly anonymous handle for a visitor.
Unique per (workspace, provider, external_id). contact_fields holds literal
contact data only when the source's contact-level policy is enabled, otherwise
only hashed identifiers.
"""
import uuid
from datetime import datetime, timezone
from typing import Optional
from sqlalchemy import String, DateTime, Index, UniqueConstraint
from sqlalchemy.dialects.postgresql import UUID, JSONB
from sqlalchemy.orm import Mapped, mapped_column
from leadintel.database import Base


class LeadIdentity(Base):
    __tablename__ = "lead_identities"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    workspace_id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), nullable=False)
    provider: Mapped[str] = mapped_column(String(50), nullable=False)
    identity_type: Mapped[str] = mapped_column(String(30), default="person", nullable=False)

    # Visitor id, or "hashed_<sha256 prefix>" of the email when no visitor id was sent
    external_id: Mapped[str] = mapped_column(String(255), nullable=False)

    display_name: Mapped[Optional[str]] = mapped_column(String(255))
    contact_fields: Mapped[dict] = mapped_column(JSONB, default=dict, nullable=False)

    last_seen_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=lambda: datetime.now(timezone.utc)
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=lambda: datetime.now(timezone.utc), onupdate=lambda: datetime.now(timezone.utc)
    )

    __table_args__ = (
        UniqueConstraint(
            "workspace_id", "provider", "external_id", name="uq_lead_identities_workspace_provider_external"
        ),
        Index("ix_lead_identities_last_seen_at", "last_seen_at"),
    )

    def __repr__(self) -> str:
        return f"<LeadIdentity {self.provider}:{self.external_id[:8]}>"
