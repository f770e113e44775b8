"""
Fingerprint tests - dedupe keys, ledger keys and identifier hashing.
"""
from leadintel.utils.fingerprint import (
    hash_email,
    hash_identifier,
    hash_phone,
    make_dedupe_key,
    make_ledger_key,
    normalize_phone,
)


class TestDedupeKey:
    def _key(self, **overrides):
        args = {
            "provider": "opensend",
            "event_type": "page_view",
            "occurred_at": "2026-03-01T12:00:00Z",
            "external_ids": {"visitor_id": "v-1", "workspace_id": "ws-1"},
            "page_url": "https://example.com/a",
        }
        args.update(overrides)
        return make_dedupe_key(**args)

    def test_same_input_same_key(self):
        assert self._key() == self._key()

    def test_key_is_sha256_hex(self):
        key = self._key()
        assert len(key) == 64
        int(key, 16)

    def test_external_id_order_does_not_matter(self):
        a = self._key(external_ids={"visitor_id": "v-1", "workspace_id": "ws-1"})
        b = self._key(external_ids={"workspace_id": "ws-1", "visitor_id": "v-1"})
        assert a == b

    def test_each_field_changes_key(self):
        base = self._key()
        assert self._key(provider="warmly") != base
        assert self._key(event_type="click") != base
        assert self._key(occurred_at="2026-03-01T12:00:01Z") != base
        assert self._key(page_url="https://example.com/b") != base
        assert self._key(external_ids={"visitor_id": "v-2", "workspace_id": "ws-1"}) != base

    def test_workspace_changes_key(self):
        a = self._key(external_ids={"visitor_id": "v-1", "workspace_id": "ws-1"})
        b = self._key(external_ids={"visitor_id": "v-1", "workspace_id": "ws-2"})
        assert a != b


class TestLedgerKey:
    def test_occurred_at_optional_and_significant(self):
        refs = {"identity_id": "i-1"}
        without = make_ledger_key("ws", "opensend_contact_match", "opensend", refs)
        with_time = make_ledger_key("ws", "opensend_contact_match", "opensend", refs, "2026-03-01")
        assert without != with_time
        assert without == make_ledger_key("ws", "opensend_contact_match", "opensend", refs)

    def test_billing_type_changes_key(self):
        refs = {"identity_id": "i-1"}
        a = make_ledger_key("ws", "opensend_contact_match", "opensend", refs)
        b = make_ledger_key("ws", "opensend_webhook_event_ingested", "opensend", refs)
        assert a != b


class TestIdentifierHashing:
    def test_prefix_and_length(self):
        hashed = hash_identifier("jane@example.com")
        assert hashed.startswith("hashed_")
        assert len(hashed) == len("hashed_") + 32

    def test_email_normalized_before_hashing(self):
        assert hash_email("  Jane@Example.COM ") == hash_email("jane@example.com")

    def test_hash_does_not_contain_value(self):
        assert "jane" not in hash_email("jane@example.com")

    def test_phone_formats_hash_identically(self):
        assert hash_phone("(512) 555-9876") == hash_phone("+1 512-555-9876")

    def test_normalize_phone_e164(self):
        assert normalize_phone("(512) 555-9876") == "+15125559876"

    def test_normalize_unparseable_phone_keeps_digits(self):
        assert normalize_phone("12") == "12"
