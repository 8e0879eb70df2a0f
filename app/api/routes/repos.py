import logging
from fastapi import APIRouter, Depends, Response
from typing import Dict, List, Optional

from app.api.deps import (
    get_current_session,
    get_github_service,
    get_session_store,
    get_settings,
)
from app.config import Settings
from app.core.session import SessionStore
from app.exceptions import APIException, GitHubException, ValidationException
from app.schemas.auth import Repository, SelectRepoRequest, UserSession
from app.services.github_service import GitHubService
from app.utils.repository_validation import parse_branch_name, parse_repo_full_name

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/repos", response_model=List[Repository])
async def list_repositories(
    github: GitHubService = Depends(get_github_service),
) -> List[Repository]:
    """Repositories of the authenticated user, most recently updated first."""
    try:
        repos = await github.list_user_repositories(sort="updated", per_page=100)
    except GitHubException as e:
        logger.error(f"List repositories error: {e.detail}")
        raise APIException(status_code=500, detail="Failed to fetch repos")

    return [Repository(**repo) for repo in repos]


@router.post("/select-repo")
async def select_repository(
    response: Response,
    body: Optional[SelectRepoRequest] = None,
    session: UserSession = Depends(get_current_session),
    store: SessionStore = Depends(get_session_store),
    settings: Settings = Depends(get_settings),
) -> Dict[str, bool]:
    """Store the repository/branch selection in a re-issued session cookie."""
    body = body or SelectRepoRequest()

    parsed_repo = parse_repo_full_name(body.repo)
    if not parsed_repo:
        raise ValidationException("Repository must be in owner/repo format.")

    branch = settings.DEFAULT_BRANCH if body.branch is None else parse_branch_name(body.branch)
    if not branch:
        raise ValidationException("Invalid branch name.")

    owner, repo = parsed_repo
    store.write_session(
        response,
        github_token=session.github_token,
        username=session.username,
        avatar_url=session.avatar_url,
        selected_repo=f"{owner}/{repo}",
        selected_branch=branch,
    )
    return {"success": True}
