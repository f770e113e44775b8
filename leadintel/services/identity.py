"""
Identity resolution - find or create the LeadIdentity behind a delivery.

The external id is the provider's visitor id, else a one-way hash of the email.
A delivery with neither produces no identity (and therefore no lead).

What gets stored depends on the source's contact-level policy:
- enabled: literal contact fields and a display name
- disabled: only email_hash / phone_hash
"""
import logging
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from leadintel.database import dialect_insert
from leadintel.models.lead_identity import LeadIdentity
from leadintel.models.lead_source import LeadSource
from leadintel.schemas.webhook_envelope import ContactData, WebhookEnvelope
from leadintel.utils.fingerprint import hash_email, hash_phone
from leadintel.utils.logging import short_id

logger = logging.getLogger(__name__)

_LITERAL_CONTACT_FIELDS = ("email", "phone", "first_name", "last_name", "address")


def derive_external_id(envelope: WebhookEnvelope) -> Optional[str]:
    if envelope.visitor_id:
        return envelope.visitor_id
    if envelope.contact.email:
        return hash_email(envelope.contact.email)
    return None


def build_contact_fields(contact: ContactData, contact_level_enabled: bool) -> dict:
    """Contact fields to persist on the identity under the given policy."""
    if contact_level_enabled:
        return {
            field: getattr(contact, field)
            for field in _LITERAL_CONTACT_FIELDS
            if getattr(contact, field)
        }

    fields = {}
    if contact.email:
        fields["email_hash"] = hash_email(contact.email)
    if contact.phone:
        fields["phone_hash"] = hash_phone(contact.phone)
    return fields


async def upsert_identity(
    db: AsyncSession,
    source: LeadSource,
    envelope: WebhookEnvelope,
) -> Optional[LeadIdentity]:
    """
    Single conflict-resolving write on (workspace_id, provider, external_id).
    Concurrent first sightings converge on one row. An update refreshes
    last_seen_at and never blanks stored contact fields or display name.
    """
    external_id = derive_external_id(envelope)
    if not external_id:
        return None

    contact_fields = build_contact_fields(envelope.contact, source.contact_level_enabled)
    display_name = envelope.contact.display_name if source.contact_level_enabled else None
    now = datetime.now(timezone.utc)

    stmt = dialect_insert(db, LeadIdentity).values(
        workspace_id=source.workspace_id,
        provider=envelope.provider,
        identity_type="person",
        external_id=external_id,
        display_name=display_name,
        contact_fields=contact_fields,
        last_seen_at=envelope.occurred_at,
        created_at=now,
        updated_at=now,
    )

    update_values = {
        "last_seen_at": stmt.excluded.last_seen_at,
        "updated_at": stmt.excluded.updated_at,
    }
    if contact_fields:
        update_values["contact_fields"] = stmt.excluded.contact_fields
    if display_name:
        update_values["display_name"] = stmt.excluded.display_name

    stmt = stmt.on_conflict_do_update(
        index_elements=["workspace_id", "provider", "external_id"],
        set_=update_values,
    ).returning(LeadIdentity)

    result = await db.execute(
        select(LeadIdentity)
        .from_statement(stmt)
        .execution_options(populate_existing=True)
    )
    identity = result.scalar_one()

    logger.debug(
        "Identity upserted: %s workspace=%s contact_fields=%s",
        short_id(identity.id), short_id(source.workspace_id), sorted(contact_fields),
        extra={"identity_id": str(identity.id), "provider": envelope.provider},
    )
    return identity
