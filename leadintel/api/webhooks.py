"""
Lead-intel webhook endpoint - receives visitor-intent deliveries from providers.
The handler only adapts HTTP to the ingest pipeline: raw body, headers and the
optional ?workspace_id= hint in; pipeline results and errors out as JSON.
"""
import logging
from typing import Optional

from fastapi import APIRouter, Request, Depends, HTTPException
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession

from leadintel.database import get_db
from leadintel.schemas.api_responses import ErrorResponse
from leadintel.services.ingest_errors import WebhookIngestError
from leadintel.services.lead_sources import SUPPORTED_PROVIDERS
from leadintel.services.pipeline import ingest_webhook

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/v1/webhook", tags=["webhooks"])


def _error_response(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content=ErrorResponse(error=message).model_dump(),
    )


@router.post("/lead-intel/{provider}")
async def lead_intel_webhook(
    provider: str,
    request: Request,
    workspace_id: Optional[str] = None,
    db: AsyncSession = Depends(get_db),
):
    """
    Ingest one lead-intel delivery.

    200 {"success": true, "event_id", "lead_id"} or {"success": true, "deduplicated": true}
    400 invalid JSON / unknown workspace, 401 invalid signature, 500 unexpected failure.
    """
    if provider not in SUPPORTED_PROVIDERS:
        raise HTTPException(status_code=404, detail="Unknown provider")

    body = await request.body()
    try:
        result = await ingest_webhook(
            db,
            provider,
            body,
            request.headers,
            workspace_hint=workspace_id,
        )
    except WebhookIngestError as e:
        await db.rollback()
        return _error_response(e.status_code, e.message)
    except Exception:
        await db.rollback()
        logger.exception(
            "Lead-intel webhook processing failed: provider=%s", provider,
            extra={"provider": provider, "error_code": "internal_error"},
        )
        return _error_response(500, "Internal server error")

    return result.model_dump()
