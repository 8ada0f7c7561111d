"""RescueGuard FastAPI application entry point.

Creates the FastAPI app, configures logging and CORS, includes routers, and
manages the lifecycle of the emergency core (location, directory,
dispatcher, alerting, media and the orchestrator that composes them).

The process is single-tenant: one orchestrator is built per process and
every HTTP client shares it.  A position reported by any client becomes the
cached fix used by every later action, and only one call session can be
active.  Run one process per user.
"""

from __future__ import annotations

import time
from contextlib import asynccontextmanager
from typing import AsyncIterator

import structlog
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import ORJSONResponse

from config.settings import settings
from src.api.router import api_router
from src.models.enums import Platform, Transport

logger: structlog.stdlib.BoundLogger = structlog.get_logger(__name__)


# ---------------------------------------------------------------------------
# Structured logging configuration
# ---------------------------------------------------------------------------


def _configure_logging() -> None:
    """Set up structlog with JSON or console rendering based on settings."""
    processors: list = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.StackInfoRenderer(),
        structlog.dev.set_exc_info,
        structlog.processors.TimeStamper(fmt="iso"),
    ]

    if settings.log_format == "json":
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.append(structlog.dev.ConsoleRenderer())

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(
            settings.log_level,
        ),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )


# ---------------------------------------------------------------------------
# Application lifespan
# ---------------------------------------------------------------------------


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Manage startup and shutdown of the RescueGuard core.

    On startup:
      1. Event buffer and location provider
      2. Provider directory (seed data plus optional Places lookup)
      3. Channel dispatcher and link launcher
      4. Alert notifier
      5. Media capability
      6. The EmergencyOrchestrator, stored with everything on ``app.state``

    On shutdown:
      - End any active call session.
      - Close the HTTP clients.
    """
    _configure_logging()
    logger.info(
        "app.startup",
        env=settings.env,
        default_platform=settings.default_platform,
        alerts_configured=bool(settings.alert_endpoint_url),
    )

    app.state.start_time = time.time()

    # -- 1. Events and location --------------------------------------------
    from src.services.events import BufferedEventSink, LoggingEventSink
    from src.services.host import FixedGeolocation, UnavailableGeolocation
    from src.services.location import LocationProvider

    events = BufferedEventSink(forward=LoggingEventSink())
    app.state.events = events

    if settings.has_fallback_location:
        geolocation = FixedGeolocation(settings.fallback_latitude, settings.fallback_longitude)
    else:
        geolocation = UnavailableGeolocation()

    location = LocationProvider(
        geolocation,
        default_timeout=settings.location_timeout_seconds,
        busy_policy=settings.location_busy_policy,
    )
    app.state.location = location
    logger.info("app.location_initialised", fixed=settings.has_fallback_location)

    # -- 2. Directory -------------------------------------------------------
    from src.data.seed import build_directory

    lookup = None
    if settings.places_api_key:
        try:
            from src.services.places_client import PlacesNearbyLookup

            lookup = PlacesNearbyLookup(
                settings.places_api_key,
                radius_km=settings.places_radius_km,
            )
            logger.info("app.places_lookup_initialised")
        except Exception:
            logger.warning("app.places_lookup_init_failed", exc_info=True)

    directory = build_directory(lookup=lookup)
    app.state.directory = directory
    logger.info("app.directory_initialised", providers=len(directory))

    # -- 3. Dispatch --------------------------------------------------------
    from src.services.dispatcher import ChannelDispatcher
    from src.services.host import DeferredLinkLauncher

    unsupported = [Transport(t) for t in settings.unsupported_transports]
    dispatcher = ChannelDispatcher(
        country_code=settings.default_country_code,
        unavailable=unsupported,
    )
    launcher = DeferredLinkLauncher(unsupported=unsupported)
    app.state.dispatcher = dispatcher
    app.state.launcher = launcher
    logger.info("app.dispatcher_initialised", unsupported=settings.unsupported_transports)

    # -- 4. Alerts ----------------------------------------------------------
    from src.services.alerts import AlertNotifier

    notifier = AlertNotifier(
        settings.alert_endpoint_url,
        timeout=settings.alert_timeout_seconds,
    )
    app.state.notifier = notifier
    logger.info("app.notifier_initialised", enabled=notifier.enabled)

    # -- 5. Media -----------------------------------------------------------
    from src.services.host import (
        InMemoryClipboard,
        SimulatedMediaCapability,
        UnavailableMediaCapability,
    )

    if settings.media_backend == "simulated":
        media = SimulatedMediaCapability()
    else:
        media = UnavailableMediaCapability()
    logger.info("app.media_initialised", backend=settings.media_backend)

    # -- 6. Orchestrator ----------------------------------------------------
    from src.services.orchestrator import EmergencyOrchestrator

    orchestrator = EmergencyOrchestrator(
        location=location,
        directory=directory,
        dispatcher=dispatcher,
        notifier=notifier,
        launcher=launcher,
        media=media,
        platform=Platform(settings.default_platform),
        responder_contact=settings.responder_contact,
        events=events,
        clipboard=InMemoryClipboard(),
    )
    app.state.orchestrator = orchestrator
    logger.info("app.orchestrator_initialised")

    logger.info("app.startup_complete")

    yield

    # -- Shutdown -----------------------------------------------------------
    logger.info("app.shutdown_start")

    await orchestrator.aclose()
    await notifier.close()
    if lookup is not None:
        await lookup.close()

    logger.info("app.shutdown_complete")


# ---------------------------------------------------------------------------
# FastAPI application
# ---------------------------------------------------------------------------

app = FastAPI(
    title="RescueGuard API",
    description=(
        "RescueGuard -- emergency-response orchestration. Locates the user, "
        "finds nearby care providers, and connects them to a responder over "
        "voice, video or chat while alerting the backend."
    ),
    version="0.1.0",
    lifespan=lifespan,
    default_response_class=ORJSONResponse,
    docs_url="/docs" if not settings.is_production else None,
    redoc_url="/redoc" if not settings.is_production else None,
)

# -- CORS middleware --------------------------------------------------------
if settings.is_production:
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origin_list,
        allow_credentials=False,
        allow_methods=["GET", "POST"],
        allow_headers=["Content-Type"],
    )
else:
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["http://localhost:3000", "http://localhost:8000", "http://127.0.0.1:8000"],
        allow_credentials=False,
        allow_methods=["GET", "POST", "OPTIONS", "HEAD"],
        allow_headers=["Content-Type", "Accept"],
    )

# -- Include routers -------------------------------------------------------
app.include_router(api_router)


@app.get("/api", response_class=ORJSONResponse)
async def api_info() -> dict:
    """API information endpoint."""
    return {
        "name": "RescueGuard API",
        "description": "Emergency-response orchestration",
        "version": app.version,
        "docs": "/docs",
        "health": "/api/v1/health",
        "endpoints": {
            "dispatch": "/api/v1/dispatch/resolve",
            "providers": "/api/v1/providers",
            "emergency": "/api/v1/emergency",
            "session": "/api/v1/session",
            "events": "/api/v1/events",
        },
    }


def run() -> None:
    """Serve the API with uvicorn on the configured host and port."""
    import uvicorn

    uvicorn.run(
        "src.main:app",
        host=settings.api_host,
        port=settings.api_port,
        log_level=settings.log_level.lower(),
    )


if __name__ == "__main__":
    run()
