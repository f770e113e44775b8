"""
Normalized webhook envelope - the generic fields the pipeline reads from any
lead-intel provider payload, plus the contact block used for identity resolution.
"""
from datetime import datetime
from typing import Optional
from pydantic import BaseModel, Field


class ContactData(BaseModel):
    """Contact block found at top level or nested under contact/visitor."""
    email: Optional[str] = None
    phone: Optional[str] = None
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    address: Optional[str] = None

    @property
    def has_contact(self) -> bool:
        """Email or phone present - the signal for contact-level matching."""
        return bool(self.email or self.phone)

    @property
    def display_name(self) -> Optional[str]:
        name = f"{self.first_name or ''} {self.last_name or ''}".strip()
        return name or None


class WebhookEnvelope(BaseModel):
    """
    Generic envelope extracted from a provider payload.
    occurred_at_raw is the timestamp exactly as the sender supplied it (None when
    absent) and is what the dedupe fingerprint covers. occurred_at falls back to
    the receipt time.
    """
    provider: str
    event_type: str = "unknown"
    occurred_at: datetime
    occurred_at_raw: Optional[str] = None
    visitor_id: Optional[str] = None
    page_url: Optional[str] = None
    account_id: Optional[str] = None
    contact: ContactData = Field(default_factory=ContactData)
    sanitized_payload: dict = Field(default_factory=dict)
