"""
Credit ledger model - append-only metered usage facts.
ledger_key is globally unique so a billable fact is charged at most once.
"""
import uuid
from datetime import datetime, timezone
from typing import Optional
from sqlalchemy import String, Integer, DateTime, Index
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column
from leadintel.database import Base


class CreditLedgerEntry(Base):
    __tablename__ = "credits_ledger"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    workspace_id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), nullable=False)

    # Billing category, e.g. opensend_webhook_event_ingested, opensend_contact_match
    event_type: Mapped[str] = mapped_column(String(100), nullable=False)
    units: Mapped[int] = mapped_column(Integer, nullable=False)
    provider: Mapped[str] = mapped_column(String(50), nullable=False)

    lead_id: Mapped[Optional[uuid.UUID]] = mapped_column(UUID(as_uuid=True))
    identity_id: Mapped[Optional[uuid.UUID]] = mapped_column(UUID(as_uuid=True))

    occurred_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    ledger_key: Mapped[str] = mapped_column(String(64), nullable=False, unique=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=lambda: datetime.now(timezone.utc)
    )

    __table_args__ = (
        Index("ix_credits_ledger_workspace_type", "workspace_id", "event_type"),
        Index("ix_credits_ledger_identity_id", "identity_id"),
    )

    def __repr__(self) -> str:
        return f"<CreditLedgerEntry {self.event_type} units={self.units}>"
