import httpx
import logging
from typing import Any, Dict

from app.config import Settings
from app.exceptions import AuthException

logger = logging.getLogger(__name__)


async def get_oauth_access_token(settings: Settings, code: str, redirect_uri: str) -> str:
    """Exchange OAuth code for access token."""
    url = f"{settings.GITHUB_OAUTH_URL}/access_token"

    data = {
        "client_id": settings.GITHUB_CLIENT_ID,
        "client_secret": settings.GITHUB_CLIENT_SECRET,
        "code": code,
        "redirect_uri": redirect_uri,
    }

    headers = {
        "Accept": "application/json",
    }

    async with httpx.AsyncClient() as client:
        response = await client.post(url, json=data, headers=headers)
        if response.status_code != 200:
            raise AuthException(
                status_code=response.status_code,
                detail=f"Failed to get OAuth access token: {response.text}",
            )

        token_data = response.json()
        if "error" in token_data:
            raise AuthException(
                status_code=400,
                detail=f"OAuth error: {token_data.get('error_description', token_data['error'])}",
            )

        access_token = token_data.get("access_token")
        if not isinstance(access_token, str) or not access_token:
            raise AuthException(status_code=400, detail="No access token received")

        return access_token


async def get_github_user_oauth(settings: Settings, access_token: str) -> Dict[str, Any]:
    """Get GitHub user info using OAuth access token."""
    headers = {
        "Authorization": f"Bearer {access_token}",
        "Accept": "application/vnd.github+json",
        "X-GitHub-Api-Version": "2022-11-28",
    }

    async with httpx.AsyncClient() as client:
        response = await client.get(f"{settings.GITHUB_API_URL}/user", headers=headers)
        if response.status_code != 200:
            raise AuthException(
                status_code=response.status_code,
                detail=f"Failed to get GitHub user: {response.text}",
            )

        return response.json()
