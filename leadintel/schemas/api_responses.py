"""
Response schemas for the lead-intel webhook endpoint.
"""
from typing import Optional
from pydantic import BaseModel


class IngestAcceptedResponse(BaseModel):
    """event_id is the delivery's dedupe key, not the stored row id."""
    success: bool = True
    event_id: str
    lead_id: Optional[str] = None


class IngestDeduplicatedResponse(BaseModel):
    success: bool = True
    deduplicated: bool = True


class ErrorResponse(BaseModel):
    error: str
