"""
Workspace/source resolution - map an incoming delivery to its tenant.

Lookup order:
1. Active source for (provider, provider_account_id) matching the envelope's account id
2. Active source for (provider, workspace_id) from the ?workspace_id= query parameter
Neither matches -> UnknownWorkspace.
"""
import logging
import uuid
from typing import Optional

from sqlalchemy import select, and_
from sqlalchemy.ext.asyncio import AsyncSession

from leadintel.models.lead_source import LeadSource
from leadintel.services.ingest_errors import UnknownWorkspace

logger = logging.getLogger(__name__)


def _parse_uuid(value: Optional[str]) -> Optional[uuid.UUID]:
    if not value:
        return None
    try:
        return uuid.UUID(str(value))
    except ValueError:
        return None


async def _find_by_account(
    db: AsyncSession, provider: str, account_id: str,
) -> Optional[LeadSource]:
    result = await db.execute(
        select(LeadSource).where(
            and_(
                LeadSource.provider == provider,
                LeadSource.provider_account_id == account_id,
                LeadSource.is_active.is_(True),
            )
        ).limit(1)
    )
    return result.scalar_one_or_none()


async def _find_by_workspace(
    db: AsyncSession, provider: str, workspace_id: uuid.UUID,
) -> Optional[LeadSource]:
    result = await db.execute(
        select(LeadSource).where(
            and_(
                LeadSource.provider == provider,
                LeadSource.workspace_id == workspace_id,
                LeadSource.is_active.is_(True),
            )
        )
    )
    return result.scalar_one_or_none()


async def resolve_lead_source(
    db: AsyncSession,
    provider: str,
    account_id: Optional[str] = None,
    workspace_hint: Optional[str] = None,
) -> LeadSource:
    """Resolve the active LeadSource for this delivery or raise UnknownWorkspace."""
    if account_id:
        source = await _find_by_account(db, provider, account_id)
        if source:
            return source

    workspace_id = _parse_uuid(workspace_hint)
    if workspace_id:
        source = await _find_by_workspace(db, provider, workspace_id)
        if source:
            return source

    logger.warning(
        "No active lead source: provider=%s account_present=%s workspace_hint_present=%s",
        provider, bool(account_id), bool(workspace_hint),
        extra={"provider": provider, "error_code": "unknown_workspace"},
    )
    raise UnknownWorkspace()
