from fastapi import Depends, Request
import logging
from typing import Optional

from app.config import Settings
from app.core.session import SessionStore
from app.exceptions import ConfigurationException, ValidationException
from app.schemas.auth import RepoSelection, UserSession
from app.services.asset_service import AssetService
from app.services.github_service import GitHubService
from app.utils.repository_validation import get_repo_selection

logger = logging.getLogger(__name__)


def get_settings(request: Request) -> Settings:
    """Settings built once by the application factory."""
    return request.app.state.settings


def get_session_store(request: Request) -> SessionStore:
    return request.app.state.session_store


def require_crypto_config(settings: Settings = Depends(get_settings)) -> Settings:
    """Refuse to touch session cookies without a configured encryption secret."""
    if not settings.has_crypto_config:
        raise ConfigurationException("Server session encryption is not configured.")
    return settings


def require_github_client_id(settings: Settings = Depends(require_crypto_config)) -> Settings:
    if not settings.has_github_client_id:
        raise ConfigurationException("GitHub OAuth is not configured.")
    return settings


def require_github_oauth_config(settings: Settings = Depends(require_crypto_config)) -> Settings:
    if not settings.has_github_oauth_config:
        raise ConfigurationException("GitHub OAuth is not configured.")
    return settings


def get_current_session(
    request: Request,
    settings: Settings = Depends(require_crypto_config),
    store: SessionStore = Depends(get_session_store),
) -> UserSession:
    """Current session, or a 401 that also clears the session cookie."""
    return store.require_session(request)


def get_optional_selection(
    session: UserSession = Depends(get_current_session),
    settings: Settings = Depends(get_settings),
) -> Optional[RepoSelection]:
    return get_repo_selection(session, settings.DEFAULT_BRANCH)


def get_github_service(
    session: UserSession = Depends(get_current_session),
    settings: Settings = Depends(get_settings),
) -> GitHubService:
    """Get GitHub service authenticated as the session's user."""
    return GitHubService(session.github_token, base_url=settings.GITHUB_API_URL)


def get_asset_service(
    github: GitHubService = Depends(get_github_service),
    settings: Settings = Depends(get_settings),
) -> AssetService:
    return AssetService(github, settings)


def require_selection(action: str):
    """Dependency factory: the session must have a repository selected."""

    def dependency(
        selection: Optional[RepoSelection] = Depends(get_optional_selection),
    ) -> RepoSelection:
        if selection is None:
            raise ValidationException(f"Select a repository before {action}.")
        return selection

    return dependency
