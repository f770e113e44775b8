"""
Webhook signature validation - verify incoming lead-intel webhooks are authentic.

Senders sign the raw request body with HMAC-SHA256 using a shared secret and send
the hex digest either bare or as "sha256=<hex>".

Two secret scopes:
- provider secret from settings (checked before the body is decoded)
- per-source secret stored on the LeadSource (checked once the source is known)

With no secret configured, or no signature header sent, verification is skipped
unless REQUIRE_SIGNED_WEBHOOKS is set.
"""
import hashlib
import hmac
import logging
from typing import Optional

logger = logging.getLogger(__name__)

GENERIC_SIGNATURE_HEADER = "X-Webhook-Signature"

# Provider-specific signature headers; every provider also accepts the generic one
SIGNATURE_HEADERS = {
    "opensend": "X-OpenSend-Signature",
    "warmly": "X-Warmly-Signature",
}

_PROVIDER_SECRET_SETTINGS = {
    "opensend": "webhook_secret_opensend",
    "warmly": "webhook_secret_warmly",
}


def validate_hmac_sha256(
    secret: str,
    signature: str,
    body: bytes,
    header_prefix: str = "sha256=",
) -> bool:
    """
    Validate an HMAC-SHA256 webhook signature.
    Handles signatures with optional prefix (e.g., "sha256=...").
    Comparison is constant-time. Returns True if valid, False if invalid.
    """
    if not secret or not signature:
        return False

    sig = signature.strip()
    if sig.startswith(header_prefix):
        sig = sig[len(header_prefix):]

    expected = hmac.new(
        secret.encode("utf-8"),
        body,
        hashlib.sha256,
    ).hexdigest()
    return hmac.compare_digest(expected, sig.lower())


def sign_payload(secret: str, body: bytes) -> str:
    """Compute the "sha256=<hex>" signature a sender would attach to body."""
    digest = hmac.new(secret.encode("utf-8"), body, hashlib.sha256).hexdigest()
    return f"sha256={digest}"


def extract_signature(provider: str, headers) -> Optional[str]:
    """Read the signature header for a provider, falling back to the generic header."""
    header_name = SIGNATURE_HEADERS.get(provider)
    if header_name:
        sig = headers.get(header_name)
        if sig:
            return sig
    return headers.get(GENERIC_SIGNATURE_HEADER) or None


def get_provider_secret(provider: str) -> str:
    """Provider-wide secret from settings, falling back to WEBHOOK_SIGNING_KEY."""
    from leadintel.config import get_settings
    settings = get_settings()

    setting_name = _PROVIDER_SECRET_SETTINGS.get(provider)
    secret = getattr(settings, setting_name, "") if setting_name else ""
    return secret or settings.webhook_signing_key


def verify_webhook_signature(
    body: bytes,
    signature: Optional[str],
    secret: Optional[str],
    require_signature: bool = False,
) -> bool:
    """
    Accept/reject decision for one secret scope.

    - secret and signature present: HMAC check
    - either missing: accepted, unless require_signature is set
    """
    if not secret or not signature:
        if require_signature:
            logger.warning(
                "Rejecting unsigned webhook: secret_configured=%s signature_present=%s",
                bool(secret), bool(signature),
            )
            return False
        return True

    return validate_hmac_sha256(secret, signature, body)
