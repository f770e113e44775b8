"""
Webhook health reporting on the lead source.
Written for every delivery that resolves a source, duplicates included.
"""
from datetime import datetime, timezone
from typing import Optional

from leadintel.models.lead_source import LeadSource


def record_webhook_health(
    source: LeadSource,
    event_type: str,
    error: Optional[str] = None,
    received_at: Optional[datetime] = None,
) -> dict:
    """
    Replace the source's health snapshot. last_error is cleared unless this
    request swallowed a failure. Flushed with the request transaction.
    """
    received_at = received_at or datetime.now(timezone.utc)
    health = {
        "last_received_at": received_at.isoformat(),
        "last_event_type": event_type,
        "last_error": error,
    }
    source.webhook_health = health
    return health
