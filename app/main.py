import logging
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from app.api.routes import assets, auth, health, repos
from app.config import Settings, load_settings
from app.core.crypto import CookieCodec
from app.core.session import SessionStore
from app.exceptions import add_exception_handlers

logger = logging.getLogger(__name__)


def warn_about_missing_config(settings: Settings) -> None:
    """Log configuration gaps at startup; errors in production, warnings otherwise."""
    log = logger.error if settings.is_production else logger.warning

    if not settings.has_crypto_config:
        log(
            "SESSION_SECRET/TOKEN_ENCRYPTION_KEY not set. Using local fallback key; "
            "auth is not safe for production."
        )
    if not settings.has_github_oauth_config:
        log("GITHUB_CLIENT_ID/GITHUB_CLIENT_SECRET missing. OAuth routes will fail.")


def create_application(settings: Optional[Settings] = None) -> FastAPI:
    """Create the FastAPI application instance."""
    settings = settings or load_settings()
    logging.basicConfig(level=settings.LOG_LEVEL)

    application = FastAPI(
        title=settings.PROJECT_NAME, openapi_url=f"{settings.API_PREFIX}/openapi.json"
    )

    # Built once and shared by every request through the dependencies in app.api.deps
    application.state.settings = settings
    application.state.session_store = SessionStore(settings, CookieCodec(settings.crypto_seed))

    # Configure CORS
    if settings.BACKEND_CORS_ORIGINS:
        application.add_middleware(
            CORSMiddleware,
            allow_origins=[str(origin) for origin in settings.BACKEND_CORS_ORIGINS],
            allow_credentials=True,
            allow_methods=["*"],
            allow_headers=["*"],
        )

    # Include routers
    application.include_router(health.router, prefix=settings.API_PREFIX, tags=["Health"])
    application.include_router(
        auth.router, prefix=settings.API_PREFIX, tags=["Authentication"]
    )
    application.include_router(
        repos.router, prefix=settings.API_PREFIX, tags=["Repositories"]
    )
    application.include_router(assets.router, prefix=settings.API_PREFIX, tags=["Assets"])

    add_exception_handlers(application)
    warn_about_missing_config(settings)

    return application


app = create_application()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("app.main:app", host="0.0.0.0", port=8000, reload=True)
