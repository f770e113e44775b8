"""
Lead model - one business-intent record per identity.
intent_score starts at 10 and accumulates +5 per event, capped at 100.
"""
import uuid
from datetime import datetime, timezone
from typing import Optional
from sqlalchemy import String, Integer, DateTime, ForeignKey, Index, CheckConstraint
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column
from leadintel.database import Base


class Lead(Base):
    __tablename__ = "leads"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    workspace_id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), nullable=False)
    identity_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("lead_identities.id"), nullable=False, unique=True
    )

    intent_score: Mapped[int] = mapped_column(Integer, default=10, nullable=False)
    status: Mapped[str] = mapped_column(
        String(30), default="new", nullable=False
    )  # new, engaged, qualified, converted, archived

    first_seen_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))
    last_activity_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=lambda: datetime.now(timezone.utc)
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=lambda: datetime.now(timezone.utc), onupdate=lambda: datetime.now(timezone.utc)
    )

    __table_args__ = (
        CheckConstraint("intent_score >= 0 AND intent_score <= 100", name="ck_leads_intent_score_range"),
        Index("ix_leads_workspace_id", "workspace_id"),
        Index("ix_leads_status", "status"),
        Index("ix_leads_last_activity_at", "last_activity_at"),
    )

    def __repr__(self) -> str:
        return f"<Lead {str(self.id)[:8]} score={self.intent_score} status={self.status}>"
