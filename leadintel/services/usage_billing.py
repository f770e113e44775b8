"""
Usage billing - metered credit charges in the append-only credits ledger.

Every entry is insert-or-ignore on ledger_key, so a retried or concurrent
delivery can never charge the same fact twice.

Billable facts:
- <provider>_webhook_event_ingested (1 unit): one per recorded event
- <provider>_contact_match (12 units): first contact-level match per identity
"""
import logging
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import select, and_
from sqlalchemy.ext.asyncio import AsyncSession

from leadintel.database import dialect_insert
from leadintel.models.credit_ledger import CreditLedgerEntry
from leadintel.models.lead import Lead
from leadintel.models.lead_identity import LeadIdentity
from leadintel.models.lead_source import LeadSource
from leadintel.schemas.webhook_envelope import WebhookEnvelope
from leadintel.utils.fingerprint import make_ledger_key
from leadintel.utils.logging import short_id

logger = logging.getLogger(__name__)

EVENT_INGESTED_UNITS = 1
CONTACT_MATCH_UNITS = 12


def event_ingested_type(provider: str) -> str:
    return f"{provider}_webhook_event_ingested"


def contact_match_type(provider: str) -> str:
    return f"{provider}_contact_match"


def _str_or_none(value) -> Optional[str]:
    return str(value) if value is not None else None


async def _insert_ledger_entry(db: AsyncSession, **values) -> bool:
    """Insert-or-ignore on ledger_key. True when a new row was written."""
    values.setdefault("created_at", datetime.now(timezone.utc))
    stmt = (
        dialect_insert(db, CreditLedgerEntry)
        .values(**values)
        .on_conflict_do_nothing(index_elements=["ledger_key"])
        .returning(CreditLedgerEntry.id)
    )
    result = await db.execute(stmt)
    return result.scalar_one_or_none() is not None


async def charge_event_ingested(
    db: AsyncSession,
    source: LeadSource,
    envelope: WebhookEnvelope,
    dedupe_key: str,
    identity: Optional[LeadIdentity] = None,
    lead: Optional[Lead] = None,
) -> bool:
    """One unit per recorded event, keyed on the event's dedupe key."""
    billing_type = event_ingested_type(envelope.provider)
    ledger_key = make_ledger_key(
        str(source.workspace_id),
        billing_type,
        envelope.provider,
        {
            "lead_id": _str_or_none(lead.id if lead else None),
            "identity_id": _str_or_none(identity.id if identity else None),
            "dedupe_key": dedupe_key,
        },
        envelope.occurred_at_raw,
    )
    charged = await _insert_ledger_entry(
        db,
        workspace_id=source.workspace_id,
        event_type=billing_type,
        units=EVENT_INGESTED_UNITS,
        provider=envelope.provider,
        lead_id=lead.id if lead else None,
        identity_id=identity.id if identity else None,
        occurred_at=envelope.occurred_at,
        ledger_key=ledger_key,
    )
    if not charged:
        logger.info(
            "Ingest charge already recorded: key=%s", ledger_key[:12],
            extra={"dedupe_key": dedupe_key},
        )
    return charged


async def _has_contact_match(
    db: AsyncSession, source: LeadSource, identity: LeadIdentity, billing_type: str,
) -> bool:
    result = await db.execute(
        select(CreditLedgerEntry.id).where(
            and_(
                CreditLedgerEntry.workspace_id == source.workspace_id,
                CreditLedgerEntry.identity_id == identity.id,
                CreditLedgerEntry.event_type == billing_type,
            )
        ).limit(1)
    )
    return result.scalar_one_or_none() is not None


async def charge_contact_match(
    db: AsyncSession,
    source: LeadSource,
    envelope: WebhookEnvelope,
    identity: Optional[LeadIdentity] = None,
    lead: Optional[Lead] = None,
) -> bool:
    """
    Twelve units the first time an identity is matched at contact level.
    Requires the enabled policy, an email or phone in the delivery and an
    identity. The key omits the occurrence time so racing first matches
    collapse onto one row.
    """
    if not source.contact_level_enabled:
        return False
    if identity is None or not envelope.contact.has_contact:
        return False

    billing_type = contact_match_type(envelope.provider)
    if await _has_contact_match(db, source, identity, billing_type):
        return False

    ledger_key = make_ledger_key(
        str(source.workspace_id),
        billing_type,
        envelope.provider,
        {"identity_id": str(identity.id)},
    )
    charged = await _insert_ledger_entry(
        db,
        workspace_id=source.workspace_id,
        event_type=billing_type,
        units=CONTACT_MATCH_UNITS,
        provider=envelope.provider,
        lead_id=lead.id if lead else None,
        identity_id=identity.id,
        occurred_at=envelope.occurred_at,
        ledger_key=ledger_key,
    )
    if charged:
        logger.info(
            "Contact match charged: identity=%s units=%d",
            short_id(identity.id), CONTACT_MATCH_UNITS,
            extra={"identity_id": str(identity.id), "provider": envelope.provider},
        )
    return charged
