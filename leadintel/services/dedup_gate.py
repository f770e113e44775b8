"""
Event deduplication - durable, keyed on the lead_events.dedupe_key unique index.
Prevents duplicate processing of provider retries. There is no time window:
a redelivery is recognized however late it arrives.
"""
import logging
import uuid

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from leadintel.models.lead_event import LeadEvent
from leadintel.schemas.webhook_envelope import WebhookEnvelope
from leadintel.utils.fingerprint import make_dedupe_key

logger = logging.getLogger(__name__)


def compute_dedupe_key(envelope: WebhookEnvelope, workspace_id: uuid.UUID) -> str:
    """
    Fingerprint of (provider, event type, occurrence time as sent,
    {visitor_id, workspace_id}, page url).
    """
    external_ids = {
        "visitor_id": envelope.visitor_id,
        "workspace_id": str(workspace_id),
    }
    return make_dedupe_key(
        envelope.provider,
        envelope.event_type,
        envelope.occurred_at_raw,
        external_ids,
        envelope.page_url,
    )


async def is_duplicate_event(db: AsyncSession, dedupe_key: str) -> bool:
    """
    True when an event with this key is already recorded.
    Only a fast path: two concurrent first deliveries can both pass here, and
    the event insert's conflict handling catches the loser.
    """
    result = await db.execute(
        select(LeadEvent.id).where(LeadEvent.dedupe_key == dedupe_key).limit(1)
    )
    if result.scalar_one_or_none() is None:
        return False

    logger.info(
        "Duplicate webhook event: key=%s", dedupe_key[:12],
        extra={"dedupe_key": dedupe_key},
    )
    return True
