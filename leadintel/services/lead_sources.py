"""
Lead source administration - workspace-side configuration of webhook integrations.
The ingest pipeline never calls these; it only reads sources and writes their
health field.
"""
import logging
import uuid
from datetime import datetime, timedelta, timezone
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession

from leadintel.models.lead_source import LeadSource
from leadintel.utils.encryption import encrypt_value, decrypt_value
from leadintel.utils.logging import short_id

logger = logging.getLogger(__name__)

SUPPORTED_PROVIDERS = ("opensend", "warmly")

# No delivery for this long downgrades a healthy source to "warning"
HEALTH_STALE_AFTER = timedelta(hours=24)

# Event retention read by downstream cleanup jobs
DEFAULT_RETENTION_DAYS = 90


async def create_lead_source(
    db: AsyncSession,
    workspace_id: uuid.UUID,
    provider: str,
    provider_account_id: Optional[str] = None,
    webhook_secret: Optional[str] = None,
    contact_level_enabled: bool = False,
    retention_days: int = DEFAULT_RETENTION_DAYS,
) -> LeadSource:
    """Register a (workspace, provider) integration. The secret is stored encrypted."""
    if provider not in SUPPORTED_PROVIDERS:
        raise ValueError(f"Unsupported lead-intel provider: {provider}")
    if retention_days < 1:
        raise ValueError(f"retention_days must be positive, got {retention_days}")

    source = LeadSource(
        workspace_id=workspace_id,
        provider=provider,
        provider_account_id=provider_account_id,
        is_active=True,
        webhook_secret_encrypted=encrypt_value(webhook_secret),
        webhook_health={},
        retention_days=retention_days,
    )
    set_contact_level_enabled(source, contact_level_enabled)
    db.add(source)
    await db.flush()

    logger.info(
        "Lead source created: %s provider=%s workspace=%s",
        short_id(source.id), provider, short_id(workspace_id),
        extra={"provider": provider, "workspace_id": str(workspace_id)},
    )
    return source


def set_contact_level_enabled(source: LeadSource, enabled: bool) -> None:
    """
    Toggle the contact-level policy.
    Enabling stamps the privacy notice acknowledgement; disabling also stops
    contact data from being shared with AI features.
    """
    source.contact_level_enabled = enabled
    if enabled:
        source.privacy_notice_acknowledged_at = datetime.now(timezone.utc)
    else:
        source.include_contact_in_ai = False


def get_source_secret(source: LeadSource) -> Optional[str]:
    """Plaintext per-source webhook secret, or None when not configured."""
    return decrypt_value(source.webhook_secret_encrypted) or None


def _parse_timestamp(value) -> Optional[datetime]:
    if not value:
        return None
    try:
        parsed = datetime.fromisoformat(str(value).replace("Z", "+00:00"))
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def webhook_health_status(health: Optional[dict], now: Optional[datetime] = None) -> str:
    """
    Summarize a source's webhook_health snapshot:
    pending (never received), error (last delivery failed to record),
    warning (silent for more than 24 hours), healthy.
    """
    health = health or {}
    last_received = _parse_timestamp(health.get("last_received_at"))
    if last_received is None:
        return "pending"
    if health.get("last_error"):
        return "error"
    now = now or datetime.now(timezone.utc)
    if now - last_received > HEALTH_STALE_AFTER:
        return "warning"
    return "healthy"
