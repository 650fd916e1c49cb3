"""FastAPI application entrypoint."""

from __future__ import annotations

from datetime import datetime, timezone

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from metal_advisor import __version__
from metal_advisor.api.routes import api_router
from metal_advisor.config import get_settings
from metal_advisor.core.logging import setup_logging
from metal_advisor.core.telemetry import setup_telemetry
from metal_advisor.db.init import init_database
from metal_advisor.db.session import _engine
from metal_advisor.providers.metals_dev import get_metals_client

settings = get_settings()
app = FastAPI(title=settings.app_name, version=__version__)
setup_logging()
setup_telemetry(app, settings, engine=_engine)

# Local development front-ends on any port.
app.add_middleware(
    CORSMiddleware,
    allow_origins=["http://localhost", "http://127.0.0.1"],
    allow_origin_regex=r"^https?://(localhost|127\.0\.0\.1)(:\d+)?$",
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
    expose_headers=["traceparent", "tracestate", "x-request-id"],
)


@app.on_event("startup")
async def startup() -> None:
    """Initialise the database schema when the service boots."""

    await init_database()


@app.on_event("shutdown")
async def shutdown() -> None:
    await get_metals_client().aclose()


@app.get("/health", tags=["health"])
async def health() -> dict[str, str]:
    """Return service readiness metadata."""

    return {
        "status": "ok",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "base_currency": settings.base_currency,
    }


def configure_app() -> FastAPI:
    """Attach routes."""

    app.include_router(api_router)
    return app


configure_app()

__all__ = ["app", "configure_app"]
