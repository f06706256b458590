"""
Outlook sign-in service — application entry point.
"""

from __future__ import annotations

import logging
import sys

import uvicorn
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from api.auth import router as auth_router
from api.debug import router as debug_router
from api.dependencies import get_provider_config
from api.middleware import register_middleware
from api.routes import router as api_router
from config.settings import Settings, config
from connectors.encryption import get_cipher
from database.session import init_models

logging.basicConfig(
    level=logging.DEBUG if config.debug else logging.INFO,
    format="%(asctime)s  %(levelname)-8s  %(name)s — %(message)s",
    stream=sys.stdout,
)
for _noisy in ("httpcore", "httpx", "urllib3", "aiosqlite"):
    logging.getLogger(_noisy).setLevel(logging.WARNING)
logger = logging.getLogger(__name__)


def create_app(settings: Settings = config) -> FastAPI:
    settings.validate_required()

    app = FastAPI(
        title="Outlook Sign-in Service",
        version="1.0.0",
        description="OAuth2 sign-in, provider token custody and first-party sessions.",
    )

    # CORS
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    register_middleware(app)

    # Routes
    app.include_router(auth_router, prefix="/auth")
    app.include_router(api_router)
    if settings.debug_routes:
        app.include_router(debug_router, prefix="/debug")
        logger.warning("Debug routes enabled under /debug")

    @app.on_event("startup")
    async def on_startup():
        provider = get_provider_config()
        logger.info("OAuth tenant: %s  redirect: %s", provider.tenant, provider.redirect_uri)
        get_cipher()
        await init_models()
        logger.info("Application ready to accept requests.")

    return app


app = create_app()

if __name__ == "__main__":
    uvicorn.run(
        "main:app",
        host=config.host,
        port=config.port,
        reload=config.debug,
        log_level="debug" if config.debug else "info",
    )
