"""
Payload parsing and sanitization tests.
The stored event payload must never carry raw contact data.
"""
import json
from datetime import datetime, timezone

import pytest

from leadintel.services.ingest_errors import InvalidPayload
from leadintel.services.payload_parser import (
    decode_body,
    parse_occurred_at,
    parse_webhook_payload,
    sanitize_payload,
)

RECEIVED_AT = datetime(2026, 3, 2, 9, 30, tzinfo=timezone.utc)


def _parse(payload: dict, provider: str = "opensend"):
    return parse_webhook_payload(json.dumps(payload).encode(), provider, RECEIVED_AT)


class TestDecodeBody:
    def test_invalid_json_raises(self):
        with pytest.raises(InvalidPayload):
            decode_body(b"{not json")

    def test_non_object_raises(self):
        with pytest.raises(InvalidPayload):
            decode_body(b'["a", "b"]')

    def test_invalid_utf8_raises(self):
        with pytest.raises(InvalidPayload):
            decode_body(b"\xff\xfe{")

    def test_error_message(self):
        with pytest.raises(InvalidPayload) as exc:
            decode_body(b"")
        assert exc.value.message == "Invalid JSON payload"
        assert exc.value.status_code == 400


class TestEnvelopeExtraction:
    def test_primary_field_names(self, sample_payload):
        env = _parse(sample_payload)
        assert env.event_type == "page_view"
        assert env.occurred_at == datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)
        assert env.occurred_at_raw == "2026-03-01T12:00:00Z"
        assert env.visitor_id == "v-1001"
        assert env.page_url == "https://shop.example.com/pricing"
        assert env.account_id == "acct_opensend_123"

    def test_fallback_field_names(self):
        env = _parse({
            "type": "form_submit",
            "timestamp": "2026-03-01T08:00:00+00:00",
            "anonymous_id": "anon-9",
            "url": "https://example.com/contact",
            "workspace_id": "ws-hint",
        })
        assert env.event_type == "form_submit"
        assert env.visitor_id == "anon-9"
        assert env.page_url == "https://example.com/contact"
        assert env.account_id == "ws-hint"

    def test_defaults(self):
        env = _parse({})
        assert env.event_type == "unknown"
        assert env.occurred_at == RECEIVED_AT
        assert env.visitor_id is None
        assert env.contact.has_contact is False

    def test_numeric_visitor_id_coerced_to_string(self):
        assert _parse({"visitor_id": 42}).visitor_id == "42"

    def test_contact_nested_under_contact(self, sample_payload):
        contact = _parse(sample_payload).contact
        assert contact.email == "Jane.Doe@Example.com"
        assert contact.phone == "(512) 555-9876"
        assert contact.display_name == "Jane Doe"

    def test_contact_at_top_level(self):
        contact = _parse({"email": "a@b.com", "first_name": "Al"}).contact
        assert contact.email == "a@b.com"
        assert contact.display_name == "Al"

    def test_contact_nested_under_visitor(self):
        contact = _parse({"visitor": {"phone_number": "+15125550100"}}).contact
        assert contact.phone == "+15125550100"
        assert contact.has_contact is True


class TestParseOccurredAt:
    def test_iso_with_z(self):
        assert parse_occurred_at("2026-03-01T12:00:00Z", RECEIVED_AT) == datetime(
            2026, 3, 1, 12, 0, tzinfo=timezone.utc
        )

    def test_naive_iso_assumed_utc(self):
        parsed = parse_occurred_at("2026-03-01T12:00:00", RECEIVED_AT)
        assert parsed.tzinfo is not None

    def test_epoch_seconds(self):
        assert parse_occurred_at(1772366400, RECEIVED_AT) == datetime(
            2026, 3, 1, 12, 0, tzinfo=timezone.utc
        )

    def test_epoch_milliseconds(self):
        assert parse_occurred_at(1772366400000, RECEIVED_AT) == datetime(
            2026, 3, 1, 12, 0, tzinfo=timezone.utc
        )

    def test_garbage_falls_back_to_receipt_time(self):
        assert parse_occurred_at("yesterday-ish", RECEIVED_AT) == RECEIVED_AT

    def test_garbage_keeps_raw_value_for_fingerprint(self):
        env = _parse({"occurred_at": "yesterday-ish"})
        assert env.occurred_at == RECEIVED_AT
        assert env.occurred_at_raw == "yesterday-ish"

    def test_missing_timestamp_not_replaced_for_fingerprint(self):
        env = _parse({"event": "page_view", "visitor_id": "v1"})
        assert env.occurred_at == RECEIVED_AT
        assert env.occurred_at_raw is None


class TestSanitizePayload:
    def test_top_level_fields_replaced(self):
        clean = sanitize_payload({"email": "a@b.com", "phone": "555", "event": "x"})
        assert "email" not in clean and "phone" not in clean
        assert clean["email_present"] is True
        assert clean["phone_present"] is True
        assert clean["event"] == "x"

    def test_nested_contact_fields_replaced(self, sample_payload):
        clean = sanitize_payload(sample_payload)
        assert clean["contact"] == {
            "email_present": True,
            "phone_present": True,
            "first_name_present": True,
            "last_name_present": True,
        }

    def test_nested_visitor_fields_replaced(self):
        clean = sanitize_payload({"visitor": {"id": "v-1", "full_name": "Jane Doe"}})
        assert clean["visitor"] == {"id": "v-1", "full_name_present": True}

    def test_scalar_contact_dropped_with_marker(self):
        clean = sanitize_payload({"event": "x", "contact": "jane@example.com"})
        assert clean == {"event": "x", "contact_present": True}

    def test_list_visitor_dropped_with_marker(self):
        clean = sanitize_payload({"visitor": ["Jane Doe", "+15125559876"]})
        assert clean == {"visitor_present": True}

    def test_empty_scalar_contact_dropped_without_marker(self):
        assert sanitize_payload({"contact": ""}) == {}

    def test_no_literal_pii_in_serialized_payload(self, sample_payload):
        serialized = json.dumps(sanitize_payload(sample_payload))
        assert "Jane" not in serialized
        assert "Example.com" not in serialized
        assert "555-9876" not in serialized

    def test_empty_values_dropped_without_marker(self):
        clean = sanitize_payload({"email": "", "phone": None})
        assert clean == {}

    def test_input_not_mutated(self, sample_payload):
        sanitize_payload(sample_payload)
        assert sample_payload["contact"]["email"] == "Jane.Doe@Example.com"

    def test_envelope_carries_sanitized_payload(self, sample_payload):
        env = _parse(sample_payload)
        assert "email" not in env.sanitized_payload["contact"]
        assert env.sanitized_payload["visitor_id"] == "v-1001"
