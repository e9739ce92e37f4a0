"""FastAPI application entry point for the Guild Apply intake service."""

from __future__ import annotations

import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from app.config import get_settings, setup_logging
from app.routers.apply_router import router as apply_router

# Initialise logging early
setup_logging()
logger = logging.getLogger(__name__)


def create_app() -> FastAPI:
    """Application factory."""
    settings = get_settings()

    application = FastAPI(
        title="Guild Apply",
        description=(
            "Receives guild applications from the website form, checks them "
            "with Cloudflare Turnstile, validates them and forwards them to "
            "the recruitment channel's Discord webhook."
        ),
        version="1.0.0",
        docs_url="/docs",
        redoc_url="/redoc",
    )

    # The form is served from the static site, possibly on another origin
    application.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["POST", "OPTIONS"],
        allow_headers=["Content-Type", "x-apply-secret"],
    )

    application.include_router(apply_router)

    @application.on_event("startup")
    async def _startup() -> None:
        logger.info(
            "Guild Apply starting: require_links=%s require_discord=%s directory=%s debug=%s",
            settings.require_links,
            settings.require_discord,
            settings.directory_enabled,
            settings.apply_debug,
        )
        missing = settings.missing_secrets()
        if missing:
            logger.warning("Missing configuration, submissions will fail: %s", ", ".join(missing))

    return application


app = create_app()

if __name__ == "__main__":
    import uvicorn

    settings = get_settings()
    uvicorn.run(
        "app.main:app",
        host=settings.app_host,
        port=settings.app_port,
        reload=True,
    )
