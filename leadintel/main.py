"""
Lead Intelligence - webhook ingestion and identity resolution for visitor-intent providers.
Main FastAPI application entry point.
"""
import logging
from contextlib import asynccontextmanager
from fastapi import FastAPI, Request, Response
from fastapi.middleware.cors import CORSMiddleware
from starlette.middleware.base import BaseHTTPMiddleware
from leadintel import __version__
from leadintel.config import get_settings
from leadintel.api.router import api_router
from leadintel.utils.logging import (
    configure_structured_logging,
    generate_correlation_id,
    set_correlation_id,
)

logger = logging.getLogger("leadintel")


class CorrelationIdMiddleware(BaseHTTPMiddleware):
    """Injects a correlation ID into every request context and response header."""

    async def dispatch(self, request: Request, call_next) -> Response:
        cid = request.headers.get("X-Correlation-ID") or generate_correlation_id()
        set_correlation_id(cid)
        response = await call_next(request)
        response.headers["X-Correlation-ID"] = cid
        return response


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application startup and shutdown events."""
    settings = get_settings()
    logger.info("Lead Intelligence starting up (env=%s)", settings.app_env)

    if not settings.encryption_key:
        logger.warning(
            "ENCRYPTION_KEY not set - per-source webhook secrets will be stored unencrypted. "
            "Generate a Fernet key for production."
        )
    if not settings.require_signed_webhooks:
        logger.info("REQUIRE_SIGNED_WEBHOOKS=false - unsigned deliveries are accepted")

    # Initialize Sentry if configured
    if settings.sentry_dsn:
        try:
            import sentry_sdk
            sentry_sdk.init(
                dsn=settings.sentry_dsn,
                traces_sample_rate=0.1,
                environment=settings.app_env,
            )
            logger.info("Sentry initialized")
        except Exception as e:
            logger.warning("Sentry initialization failed: %s", str(e))

    yield

    logger.info("Lead Intelligence shutdown complete")


def _cors_origins(settings) -> list[str]:
    origins = ["http://localhost:3000", "http://localhost:5173", settings.app_base_url]
    extra = [o.strip() for o in settings.allowed_origins.split(",") if o.strip()]
    return origins + extra


def create_app() -> FastAPI:
    """Application factory."""
    settings = get_settings()

    # Configure structured JSON logging with correlation IDs
    configure_structured_logging(settings.log_level)

    application = FastAPI(
        title="Lead Intelligence",
        description="Webhook ingestion and identity resolution for lead-intel providers",
        version=__version__,
        lifespan=lifespan,
    )

    application.add_middleware(
        CORSMiddleware,
        allow_origins=_cors_origins(settings),
        allow_credentials=True,
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=[
            "Content-Type", "X-Correlation-ID", "X-Webhook-Signature",
            "X-OpenSend-Signature", "X-Warmly-Signature",
        ],
    )

    # Correlation ID middleware (added after CORS so it runs on every request)
    application.add_middleware(CorrelationIdMiddleware)

    application.include_router(api_router)

    return application


app = create_app()
