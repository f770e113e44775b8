"""
Deterministic fingerprints for dedupe keys, ledger keys and pseudonymized identifiers.

All fingerprints are SHA-256 over canonical JSON (sorted keys, no whitespace), so the
same logical input always hashes identically and any field change changes the hash.
"""
import hashlib
import json
from typing import Any, Optional

import phonenumbers

# Identifier hashes are truncated SHA-256, prefixed so they never collide with a
# provider-issued visitor id.
IDENTIFIER_HASH_PREFIX = "hashed_"
IDENTIFIER_HASH_LENGTH = 32


def _canonical_json(value: Any) -> str:
    return json.dumps(value, sort_keys=True, separators=(",", ":"), default=str)


def make_fingerprint(*parts: Any) -> str:
    """SHA-256 hex digest over the ordered tuple of parts."""
    return hashlib.sha256(_canonical_json(list(parts)).encode("utf-8")).hexdigest()


def make_dedupe_key(
    provider: str,
    event_type: str,
    occurred_at: Optional[str],
    external_ids: dict,
    page_url: Optional[str] = None,
) -> str:
    """
    Fingerprint for one logical webhook occurrence.
    external_ids carries at least the visitor id and the owning workspace id.
    """
    return make_fingerprint(provider, event_type, occurred_at, external_ids, page_url)


def make_ledger_key(
    workspace_id: str,
    billing_event_type: str,
    provider: str,
    refs: dict,
    occurred_at: Optional[str] = None,
) -> str:
    """Fingerprint for one billable fact."""
    return make_fingerprint(workspace_id, billing_event_type, provider, refs, occurred_at)


def normalize_email(email: str) -> str:
    return email.strip().lower()


def normalize_phone(phone: str, default_region: str = "US") -> str:
    """
    E.164 form when phonenumbers can parse the value, digits otherwise.
    Only used to make phone hashes stable across formatting differences.
    """
    cleaned = phone.strip()
    try:
        parsed = phonenumbers.parse(cleaned, default_region)
    except phonenumbers.NumberParseException:
        return "".join(ch for ch in cleaned if ch.isdigit() or ch == "+")
    if phonenumbers.is_possible_number(parsed):
        return phonenumbers.format_number(parsed, phonenumbers.PhoneNumberFormat.E164)
    return "".join(ch for ch in cleaned if ch.isdigit() or ch == "+")


def hash_identifier(value: str) -> str:
    """One-way pseudonym for a contact value: "hashed_" + truncated SHA-256."""
    digest = hashlib.sha256(value.encode("utf-8")).hexdigest()
    return f"{IDENTIFIER_HASH_PREFIX}{digest[:IDENTIFIER_HASH_LENGTH]}"


def hash_email(email: str) -> str:
    return hash_identifier(normalize_email(email))


def hash_phone(phone: str) -> str:
    return hash_identifier(normalize_phone(phone))
