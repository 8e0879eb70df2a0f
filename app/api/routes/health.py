from fastapi import APIRouter, Depends
from typing import Any, Dict

from app.api.deps import get_settings
from app.config import Settings

router = APIRouter()


@router.get("/health")
async def health(settings: Settings = Depends(get_settings)) -> Dict[str, Any]:
    """Liveness plus which pieces of configuration are present (never their values)."""
    return {
        "ok": True,
        "env": settings.ENVIRONMENT,
        "configured": {
            "app_url": bool(settings.APP_URL),
            "github_client_id": settings.has_github_client_id,
            "github_client_secret": settings.has_github_client_secret,
            "session_secret": bool(settings.SESSION_SECRET),
            "token_encryption_key": bool(settings.TOKEN_ENCRYPTION_KEY),
        },
    }
