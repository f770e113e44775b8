"""
Lead resolution and intent scoring.

One lead per identity. A new lead starts at score 10 with status "new"; each
further event adds 5, clamped at 100. Both paths are single statements so
concurrent deliveries for the same identity neither lose increments nor create
a second lead.
"""
import logging
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import case, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from leadintel.database import dialect_insert
from leadintel.models.lead import Lead
from leadintel.models.lead_identity import LeadIdentity
from leadintel.utils.logging import short_id

logger = logging.getLogger(__name__)

INITIAL_INTENT_SCORE = 10
INTENT_SCORE_INCREMENT = 5
MAX_INTENT_SCORE = 100


def next_intent_score(current: int) -> int:
    return min(MAX_INTENT_SCORE, current + INTENT_SCORE_INCREMENT)


async def _create_lead(
    db: AsyncSession, identity: LeadIdentity, occurred_at: datetime,
) -> Optional[Lead]:
    """Insert-or-ignore on identity_id. None when the lead already exists."""
    now = datetime.now(timezone.utc)
    stmt = dialect_insert(db, Lead).values(
        workspace_id=identity.workspace_id,
        identity_id=identity.id,
        intent_score=INITIAL_INTENT_SCORE,
        status="new",
        first_seen_at=occurred_at,
        last_activity_at=occurred_at,
        created_at=now,
        updated_at=now,
    ).on_conflict_do_nothing(index_elements=["identity_id"]).returning(Lead)

    result = await db.execute(
        select(Lead).from_statement(stmt).execution_options(populate_existing=True)
    )
    return result.scalar_one_or_none()


async def _bump_lead(
    db: AsyncSession, identity: LeadIdentity, occurred_at: datetime,
) -> Lead:
    """Atomic clamp increment of an existing lead's score."""
    incremented = Lead.intent_score + INTENT_SCORE_INCREMENT
    stmt = (
        update(Lead)
        .where(Lead.identity_id == identity.id)
        .values(
            intent_score=case(
                (incremented > MAX_INTENT_SCORE, MAX_INTENT_SCORE),
                else_=incremented,
            ),
            last_activity_at=occurred_at,
            updated_at=datetime.now(timezone.utc),
        )
        .returning(Lead)
        .execution_options(synchronize_session=False, populate_existing=True)
    )
    result = await db.execute(stmt)
    return result.scalar_one()


async def resolve_lead(
    db: AsyncSession,
    identity: Optional[LeadIdentity],
    occurred_at: datetime,
) -> Optional[Lead]:
    """Create or score the lead for identity. No identity -> no lead."""
    if identity is None:
        return None

    lead = await _create_lead(db, identity, occurred_at)
    if lead is not None:
        logger.info(
            "New lead %s for identity %s (score=%d)",
            short_id(lead.id), short_id(identity.id), lead.intent_score,
            extra={"lead_id": str(lead.id), "identity_id": str(identity.id)},
        )
        return lead

    lead = await _bump_lead(db, identity, occurred_at)
    logger.debug(
        "Lead %s scored: %d",
        short_id(lead.id), lead.intent_score,
        extra={"lead_id": str(lead.id), "identity_id": str(identity.id)},
    )
    return lead
