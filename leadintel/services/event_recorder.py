"""
Event recording - append the immutable LeadEvent for a delivery.

The insert runs in a savepoint so a storage failure leaves the identity and
lead writes of the same request intact. Failures are logged and reported
back to the caller (for the source health field) instead of failing the
request.
"""
import logging
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from leadintel.database import dialect_insert
from leadintel.models.lead import Lead
from leadintel.models.lead_event import LeadEvent
from leadintel.models.lead_identity import LeadIdentity
from leadintel.models.lead_source import LeadSource
from leadintel.schemas.webhook_envelope import WebhookEnvelope
from leadintel.utils.logging import short_id

logger = logging.getLogger(__name__)


async def record_event(
    db: AsyncSession,
    source: LeadSource,
    envelope: WebhookEnvelope,
    dedupe_key: str,
    identity: Optional[LeadIdentity] = None,
    lead: Optional[Lead] = None,
) -> dict:
    """
    Insert-or-ignore the event on dedupe_key.

    Returns {"event_id": UUID|None, "duplicate": bool, "error": str|None}:
    - recorded: event_id set
    - duplicate: a concurrent delivery already recorded this key
    - error: the insert failed and was rolled back to the savepoint
    """
    stmt = dialect_insert(db, LeadEvent).values(
        workspace_id=source.workspace_id,
        identity_id=identity.id if identity else None,
        lead_id=lead.id if lead else None,
        provider=envelope.provider,
        event_type=envelope.event_type,
        occurred_at=envelope.occurred_at,
        page_url=envelope.page_url,
        dedupe_key=dedupe_key,
        payload=envelope.sanitized_payload,
        received_at=datetime.now(timezone.utc),
    ).on_conflict_do_nothing(index_elements=["dedupe_key"]).returning(LeadEvent.id)

    try:
        async with db.begin_nested():
            result = await db.execute(stmt)
            event_id = result.scalar_one_or_none()
    except SQLAlchemyError as e:
        logger.error(
            "Lead event insert failed: workspace=%s key=%s error=%s",
            short_id(source.workspace_id), dedupe_key[:12], str(e)[:200],
            extra={"dedupe_key": dedupe_key, "error_code": "event_insert_failed"},
        )
        return {
            "event_id": None,
            "duplicate": False,
            "error": f"Event insert failed: {type(e).__name__}",
        }

    if event_id is None:
        logger.info(
            "Lead event already recorded by a concurrent delivery: key=%s", dedupe_key[:12],
            extra={"dedupe_key": dedupe_key},
        )
        return {"event_id": None, "duplicate": True, "error": None}

    return {"event_id": event_id, "duplicate": False, "error": None}
