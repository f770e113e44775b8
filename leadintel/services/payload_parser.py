"""
Payload parsing and sanitization.

Decodes the raw webhook body, extracts the generic envelope with field fallbacks,
and strips contact-shaped keys from the copy that gets persisted on LeadEvent.
Sanitization is independent of the source's privacy policy: the stored event
payload never carries raw contact data.
"""
import copy
import json
import logging
from datetime import datetime, timezone
from typing import Any, Optional

from leadintel.schemas.webhook_envelope import ContactData, WebhookEnvelope
from leadintel.services.ingest_errors import InvalidPayload

logger = logging.getLogger(__name__)

CONTACT_FIELDS = (
    "email",
    "phone",
    "phone_number",
    "address",
    "first_name",
    "last_name",
    "full_name",
    "postal_address",
)

# Containers whose direct children are sanitized as well
NESTED_CONTACT_CONTAINERS = ("contact", "visitor")

_MAX_EVENT_TYPE_LENGTH = 100


def _first(payload: dict, *keys: str) -> Any:
    """First truthy value among keys."""
    for key in keys:
        value = payload.get(key)
        if value:
            return value
    return None


def _as_str(value: Any) -> Optional[str]:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def parse_occurred_at(raw: Any, received_at: datetime) -> datetime:
    """
    Parse the sender's occurrence timestamp.
    Accepts ISO-8601 strings ("Z" suffix allowed) and epoch seconds or milliseconds.
    Anything unparseable falls back to the receipt time.
    """
    if raw is None or raw == "":
        return received_at

    if isinstance(raw, (int, float)) and not isinstance(raw, bool):
        seconds = raw / 1000 if raw > 1e12 else raw
        try:
            return datetime.fromtimestamp(seconds, tz=timezone.utc)
        except (OverflowError, OSError, ValueError):
            return received_at

    text = str(raw).strip()
    if text.isdigit():
        return parse_occurred_at(int(text), received_at)
    try:
        parsed = datetime.fromisoformat(text.replace("Z", "+00:00"))
    except ValueError:
        logger.warning("Unparseable occurred_at %r - using receipt time", text[:40])
        return received_at
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def _strip_contact_fields(container: dict) -> dict:
    """Remove contact keys from one dict level, leaving <field>_present markers."""
    cleaned = dict(container)
    for field in CONTACT_FIELDS:
        if field not in cleaned:
            continue
        value = cleaned.pop(field)
        if value:
            cleaned[f"{field}_present"] = True
    return cleaned


def sanitize_payload(payload: dict) -> dict:
    """
    Copy of payload safe to persist: contact keys at top level and one level
    under contact/visitor are replaced with boolean <field>_present markers.
    A contact/visitor value that is not an object is dropped whole.
    """
    sanitized = _strip_contact_fields(copy.deepcopy(payload))
    for container in NESTED_CONTACT_CONTAINERS:
        if container not in sanitized:
            continue
        nested = sanitized[container]
        if isinstance(nested, dict):
            sanitized[container] = _strip_contact_fields(nested)
            continue
        del sanitized[container]
        if nested:
            sanitized[f"{container}_present"] = True
    return sanitized


def extract_contact(payload: dict) -> ContactData:
    """Contact block from top level, then contact, then visitor."""
    sources = [payload]
    for container in NESTED_CONTACT_CONTAINERS:
        nested = payload.get(container)
        if isinstance(nested, dict):
            sources.append(nested)

    def pick(*keys: str) -> Optional[str]:
        for src in sources:
            value = _as_str(_first(src, *keys))
            if value:
                return value
        return None

    return ContactData(
        email=pick("email"),
        phone=pick("phone", "phone_number"),
        first_name=pick("first_name"),
        last_name=pick("last_name"),
        address=pick("address", "postal_address"),
    )


def decode_body(raw_body: bytes) -> dict:
    """Decode the raw body as a JSON object or raise InvalidPayload."""
    try:
        payload = json.loads(raw_body)
    except (ValueError, UnicodeDecodeError):
        raise InvalidPayload()
    if not isinstance(payload, dict):
        raise InvalidPayload()
    return payload


def parse_webhook_payload(
    raw_body: bytes,
    provider: str,
    received_at: Optional[datetime] = None,
) -> WebhookEnvelope:
    """Decode, extract the generic envelope and sanitize in one step."""
    received_at = received_at or datetime.now(timezone.utc)
    payload = decode_body(raw_body)

    event_type = _as_str(_first(payload, "event", "type")) or "unknown"
    raw_occurred = _first(payload, "occurred_at", "timestamp")
    occurred_at = parse_occurred_at(raw_occurred, received_at)
    occurred_at_raw = _as_str(raw_occurred)

    return WebhookEnvelope(
        provider=provider,
        event_type=event_type[:_MAX_EVENT_TYPE_LENGTH],
        occurred_at=occurred_at,
        occurred_at_raw=occurred_at_raw,
        visitor_id=_as_str(_first(payload, "visitor_id", "anonymous_id")),
        page_url=_as_str(_first(payload, "page_url", "url")),
        account_id=_as_str(_first(payload, "account_id", "workspace_id")),
        contact=extract_contact(payload),
        sanitized_payload=sanitize_payload(payload),
    )
