"""
Usage billing tests - exact-once charges in the credits ledger.
"""
import json
from unittest.mock import AsyncMock, patch

from sqlalchemy import select, func

from leadintel.models.credit_ledger import CreditLedgerEntry
from leadintel.models.lead_identity import LeadIdentity
from leadintel.services.payload_parser import parse_webhook_payload
from leadintel.services.usage_billing import (
    CONTACT_MATCH_UNITS,
    charge_contact_match,
    charge_event_ingested,
    contact_match_type,
    event_ingested_type,
)


def _envelope(payload: dict):
    return parse_webhook_payload(json.dumps(payload).encode(), "opensend")


async def _identity(db, source, external_id="v-1001") -> LeadIdentity:
    identity = LeadIdentity(
        workspace_id=source.workspace_id,
        provider="opensend",
        external_id=external_id,
        contact_fields={},
    )
    db.add(identity)
    await db.flush()
    return identity


async def _entries(db, billing_type: str):
    result = await db.execute(
        select(CreditLedgerEntry).where(CreditLedgerEntry.event_type == billing_type)
    )
    return result.scalars().all()


class TestBillingTypes:
    def test_type_names(self):
        assert event_ingested_type("opensend") == "opensend_webhook_event_ingested"
        assert contact_match_type("warmly") == "warmly_contact_match"


class TestChargeEventIngested:
    async def test_charges_one_unit(self, db, lead_source, sample_payload):
        env = _envelope(sample_payload)
        assert await charge_event_ingested(db, lead_source, env, "k" * 64) is True

        entries = await _entries(db, "opensend_webhook_event_ingested")
        assert len(entries) == 1
        assert entries[0].units == 1
        assert entries[0].workspace_id == lead_source.workspace_id

    async def test_same_event_charged_once(self, db, lead_source, sample_payload):
        env = _envelope(sample_payload)
        await charge_event_ingested(db, lead_source, env, "k" * 64)
        assert await charge_event_ingested(db, lead_source, env, "k" * 64) is False
        assert len(await _entries(db, "opensend_webhook_event_ingested")) == 1

    async def test_distinct_events_charged_separately(self, db, lead_source, sample_payload):
        env = _envelope(sample_payload)
        await charge_event_ingested(db, lead_source, env, "a" * 64)
        await charge_event_ingested(db, lead_source, env, "b" * 64)
        assert len(await _entries(db, "opensend_webhook_event_ingested")) == 2


class TestChargeContactMatch:
    async def test_charges_twelve_units(self, db, contact_source, sample_payload):
        identity = await _identity(db, contact_source)
        env = _envelope(sample_payload)
        assert await charge_contact_match(db, contact_source, env, identity) is True

        entries = await _entries(db, "opensend_contact_match")
        assert len(entries) == 1
        assert entries[0].units == CONTACT_MATCH_UNITS == 12
        assert entries[0].identity_id == identity.id

    async def test_once_per_identity(self, db, contact_source, sample_payload):
        identity = await _identity(db, contact_source)
        await charge_contact_match(db, contact_source, _envelope(sample_payload), identity)
        sample_payload["occurred_at"] = "2026-04-01T00:00:00Z"
        assert await charge_contact_match(db, contact_source, _envelope(sample_payload), identity) is False
        assert len(await _entries(db, "opensend_contact_match")) == 1

    async def test_ledger_key_collapses_without_prior_check(self, db, contact_source, sample_payload):
        """Two first matches racing past the existence check land on one row."""
        identity = await _identity(db, contact_source)
        with patch(
            "leadintel.services.usage_billing._has_contact_match",
            new=AsyncMock(return_value=False),
        ):
            await charge_contact_match(db, contact_source, _envelope(sample_payload), identity)
            sample_payload["occurred_at"] = "2026-04-01T00:00:00Z"
            second = await charge_contact_match(db, contact_source, _envelope(sample_payload), identity)

        assert second is False
        assert len(await _entries(db, "opensend_contact_match")) == 1

    async def test_disabled_policy_not_charged(self, db, lead_source, sample_payload):
        identity = await _identity(db, lead_source)
        assert await charge_contact_match(db, lead_source, _envelope(sample_payload), identity) is False

    async def test_no_contact_not_charged(self, db, contact_source):
        identity = await _identity(db, contact_source)
        env = _envelope({"visitor_id": "v-1001", "contact": {"first_name": "Jane"}})
        assert await charge_contact_match(db, contact_source, env, identity) is False

    async def test_no_identity_not_charged(self, db, contact_source, sample_payload):
        assert await charge_contact_match(db, contact_source, _envelope(sample_payload), None) is False

    async def test_distinct_identities_charged_separately(self, db, contact_source, sample_payload):
        a = await _identity(db, contact_source, "v-a")
        b = await _identity(db, contact_source, "v-b")
        await charge_contact_match(db, contact_source, _envelope(sample_payload), a)
        await charge_contact_match(db, contact_source, _envelope(sample_payload), b)
        total = await db.scalar(
            select(func.sum(CreditLedgerEntry.units)).where(
                CreditLedgerEntry.event_type == "opensend_contact_match"
            )
        )
        assert total == 24
