"""
Lead-intel ingest pipeline - one webhook delivery, start to finish.

Stages run strictly in order:
1. Provider-scope signature check (raw body, before decoding)
2. Parse + sanitize
3. Resolve source, then source-scope signature check
4. Dedup gate
5. Identity upsert
6. Lead create/score
7. Event record (failures swallowed)
8. Health snapshot
9. Usage billing

All writes share the caller's transaction and are committed here. Any stage
can be retried safely: every write is keyed on a unique index.
"""
import logging
from datetime import datetime, timezone
from typing import Mapping, Optional, Union

from sqlalchemy.ext.asyncio import AsyncSession

from leadintel.config import get_settings
from leadintel.models.lead_source import LeadSource
from leadintel.schemas.api_responses import IngestAcceptedResponse, IngestDeduplicatedResponse
from leadintel.services.dedup_gate import compute_dedupe_key, is_duplicate_event
from leadintel.services.event_recorder import record_event
from leadintel.services.health_reporter import record_webhook_health
from leadintel.services.identity import upsert_identity
from leadintel.services.ingest_errors import InvalidSignature
from leadintel.services.lead_scoring import resolve_lead
from leadintel.services.lead_sources import get_source_secret
from leadintel.services.payload_parser import parse_webhook_payload
from leadintel.services.source_resolver import resolve_lead_source
from leadintel.services.usage_billing import charge_contact_match, charge_event_ingested
from leadintel.utils.logging import short_id
from leadintel.utils.metrics import Timer
from leadintel.utils.webhook_signatures import (
    extract_signature,
    get_provider_secret,
    verify_webhook_signature,
)

logger = logging.getLogger(__name__)

IngestResult = Union[IngestAcceptedResponse, IngestDeduplicatedResponse]


def _reject_signature(provider: str, scope: str) -> InvalidSignature:
    logger.warning(
        "Invalid webhook signature: provider=%s scope=%s", provider, scope,
        extra={"provider": provider, "error_code": "invalid_signature"},
    )
    return InvalidSignature()


async def _finish_duplicate(
    db: AsyncSession,
    source: LeadSource,
    event_type: str,
    dedupe_key: str,
) -> IngestDeduplicatedResponse:
    record_webhook_health(source, event_type)
    await db.commit()
    logger.info(
        "Webhook deduplicated: provider=%s workspace=%s",
        source.provider, short_id(source.workspace_id),
        extra={"provider": source.provider, "dedupe_key": dedupe_key},
    )
    return IngestDeduplicatedResponse()


async def ingest_webhook(
    db: AsyncSession,
    provider: str,
    raw_body: bytes,
    headers: Mapping[str, str],
    workspace_hint: Optional[str] = None,
) -> IngestResult:
    """
    Run one delivery through the pipeline.
    Raises WebhookIngestError subclasses for rejected deliveries; the caller
    rolls back and maps them to HTTP responses.
    """
    timer = Timer().start()
    settings = get_settings()
    received_at = datetime.now(timezone.utc)

    # 1. Provider-scope signature, before the body is touched
    signature = extract_signature(provider, headers)
    if settings.require_signed_webhooks and not signature:
        raise _reject_signature(provider, "missing")

    provider_secret = get_provider_secret(provider)
    if not verify_webhook_signature(raw_body, signature, provider_secret):
        raise _reject_signature(provider, "provider")
    provider_verified = bool(provider_secret and signature)

    # 2. Parse + sanitize
    envelope = parse_webhook_payload(raw_body, provider, received_at)

    # 3. Source, then source-scope signature
    source = await resolve_lead_source(db, provider, envelope.account_id, workspace_hint)
    source_id = source.id
    if not verify_webhook_signature(
        raw_body,
        signature,
        get_source_secret(source),
        require_signature=settings.require_signed_webhooks and not provider_verified,
    ):
        raise _reject_signature(provider, "source")

    # 4. Dedup gate
    dedupe_key = compute_dedupe_key(envelope, source.workspace_id)
    if await is_duplicate_event(db, dedupe_key):
        return await _finish_duplicate(db, source, envelope.event_type, dedupe_key)

    # 5-6. Identity + lead
    identity = await upsert_identity(db, source, envelope)
    lead = await resolve_lead(db, identity, envelope.occurred_at)

    # 7. Event
    recorded = await record_event(db, source, envelope, dedupe_key, identity, lead)
    if recorded["duplicate"]:
        # Lost the race to a concurrent delivery: discard this request's writes
        await db.rollback()
        source = await db.get(LeadSource, source_id, populate_existing=True)
        return await _finish_duplicate(db, source, envelope.event_type, dedupe_key)

    # 8. Health
    record_webhook_health(source, envelope.event_type, error=recorded["error"], received_at=received_at)

    # 9. Billing
    if recorded["event_id"] is not None:
        await charge_event_ingested(db, source, envelope, dedupe_key, identity, lead)
    await charge_contact_match(db, source, envelope, identity, lead)

    await db.commit()

    lead_id = lead.id if lead else None
    logger.info(
        "Webhook ingested: provider=%s event=%s workspace=%s lead=%s (%dms)",
        provider, envelope.event_type, short_id(source.workspace_id),
        short_id(lead_id), timer.stop(),
        extra={
            "provider": provider,
            "event_type": envelope.event_type,
            "workspace_id": str(source.workspace_id),
            "lead_id": str(lead_id) if lead_id else None,
            "duration_ms": timer.elapsed_ms,
        },
    )
    return IngestAcceptedResponse(
        event_id=dedupe_key,
        lead_id=str(lead_id) if lead_id else None,
    )
