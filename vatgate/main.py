"""FastAPI application entry point — wires everything together.

Usage:
    python -m vatgate.main

Builds one Settings value, one shared httpx client, the VAT verifier and the
registration service, and exposes them through the HTTP routes.
"""

from __future__ import annotations

import logging
import sys
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

import httpx
import structlog
import uvicorn
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from vatgate.api.routes import registration_router, vat_router
from vatgate.audit import audit_on_event
from vatgate.config import Settings, get_settings
from vatgate.errors import (
    InvalidIdentifierError,
    ShopifyError,
    ShopifyUnavailableError,
    VerificationUnavailableError,
)
from vatgate.events import EventBus
from vatgate.schemas.events import EventType, SystemEvent
from vatgate.shop.client import ShopifyClient
from vatgate.shop.service import RegistrationService
from vatgate.vat.orchestrator import VatVerifier
from vatgate.vat.providers.vatlayer import VatlayerClient
from vatgate.vat.providers.vies import ViesClient

logger = logging.getLogger(__name__)


# ── Logging setup ────────────────────────────────────────────────────


def configure_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, level),
        format="%(asctime)s %(levelname)-8s %(name)s — %(message)s",
        stream=sys.stdout,
    )
    # basicConfig is a no-op once the root logger has handlers (uvicorn, pytest)
    logging.getLogger("vatgate").setLevel(getattr(logging, level))
    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.dev.ConsoleRenderer(),
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
    )


# ── Exception handlers ───────────────────────────────────────────────


async def _invalid_identifier(request: Request, exc: InvalidIdentifierError) -> JSONResponse:
    return JSONResponse(status_code=400, content={"error": exc.message})


async def _request_validation(request: Request, exc: RequestValidationError) -> JSONResponse:
    errors = exc.errors()
    if errors:
        first = errors[0]
        field = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
        message = f"{field}: {first.get('msg')}" if field else str(first.get("msg"))
    else:
        message = "Invalid request body"
    return JSONResponse(status_code=400, content={"error": message})


async def _verification_unavailable(request: Request, exc: VerificationUnavailableError) -> JSONResponse:
    return JSONResponse(status_code=503, content={"error": str(exc)})


async def _shopify_error(request: Request, exc: ShopifyError) -> JSONResponse:
    return JSONResponse(status_code=exc.status_code, content={"error": exc.errors})


async def _shopify_unavailable(request: Request, exc: ShopifyUnavailableError) -> JSONResponse:
    return JSONResponse(status_code=502, content={"error": "Shop is currently unreachable"})


# ── App factory ──────────────────────────────────────────────────────


def create_app(settings: Settings | None = None, http: httpx.AsyncClient | None = None) -> FastAPI:
    """Build the application.

    Args:
        settings: Configuration; loaded from the environment when omitted.
        http: Shared HTTP client; when given, the caller owns (and closes) it.
    """
    settings = settings or get_settings()
    configure_logging(settings.log_level)
    owns_http = http is None
    http = http or httpx.AsyncClient(timeout=httpx.Timeout(10.0, connect=5.0))

    events = EventBus()
    events.subscribe(audit_on_event)

    verifier = VatVerifier(
        primary=ViesClient(http, settings.vies),
        secondary=VatlayerClient(http, settings.vatlayer),
        settings=settings.verification,
        events=events,
    )

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
        """Application startup and shutdown lifecycle."""
        logger.info("Starting VatGate (env=%s)", settings.environment)

        await events.start()
        if not settings.vatlayer.vatlayer_api_key:
            logger.warning("VATLAYER_API_KEY not set — secondary VAT provider disabled")
        await events.emit(SystemEvent(
            event_type=EventType.SYSTEM_STARTUP,
            data={"environment": settings.environment},
            source_module="main",
        ))

        try:
            yield
        finally:
            logger.info("Shutting down VatGate...")
            await events.emit(SystemEvent(event_type=EventType.SYSTEM_SHUTDOWN, source_module="main"))
            await events.stop()
            if owns_http:
                await http.aclose()
                logger.info("HTTP client closed")

    app = FastAPI(
        title="VatGate API",
        description="EU VAT validation and Shopify customer registration",
        version="0.1.0",
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.events = events
    app.state.verifier = verifier

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.allowed_origins,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.add_exception_handler(InvalidIdentifierError, _invalid_identifier)
    app.add_exception_handler(RequestValidationError, _request_validation)
    app.add_exception_handler(VerificationUnavailableError, _verification_unavailable)
    app.add_exception_handler(ShopifyError, _shopify_error)
    app.add_exception_handler(ShopifyUnavailableError, _shopify_unavailable)

    app.include_router(vat_router)
    if settings.registration_enabled:
        app.state.registration = RegistrationService(ShopifyClient(http, settings.shopify), events)
        app.include_router(registration_router)
    else:
        logger.warning("Registration disabled — /register and /check-email not mounted")

    @app.get("/health")
    async def health_check() -> dict[str, str]:
        """Health check endpoint."""
        return {"status": "ok", "environment": settings.environment}

    return app


# ── Entry point ──────────────────────────────────────────────────────


def run() -> None:
    settings = get_settings()
    uvicorn.run(
        "vatgate.main:create_app",
        factory=True,
        host="0.0.0.0",
        port=settings.port,
        reload=settings.environment == "development",
        log_level=settings.log_level.lower(),
    )


if __name__ == "__main__":
    run()
