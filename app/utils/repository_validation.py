import re
import logging
from typing import Any, Optional, Tuple

from app.schemas.auth import RepoSelection, UserSession

# Create a logger for this module
logger = logging.getLogger(__name__)

REPO_FULL_NAME_PATTERN = re.compile(r"^[A-Za-z0-9_.-]+/[A-Za-z0-9_.-]+$")
BRANCH_NAME_PATTERN = re.compile(r"^(?!\.)(?!.*\.\.)[A-Za-z0-9._/-]+$")


def parse_repo_full_name(value: Any) -> Optional[Tuple[str, str]]:
    """Parse an ``owner/repo`` string.

    Args:
        value: Raw repository identifier from the request or session

    Returns:
        Tuple of (owner, repo), or None if the value is not a strict
        ``owner/repo`` pair of safe characters
    """
    if not isinstance(value, str):
        return None

    trimmed = value.strip()
    if not REPO_FULL_NAME_PATTERN.match(trimmed):
        return None

    owner, repo = trimmed.split("/")
    return owner, repo


def parse_branch_name(value: Any) -> Optional[str]:
    """Validate a branch name.

    Args:
        value: Raw branch name

    Returns:
        The trimmed branch name, or None if it is blank, starts with a dot,
        contains ``..`` or any character outside ``[A-Za-z0-9._/-]``
    """
    if not isinstance(value, str):
        return None

    trimmed = value.strip()
    if not trimmed:
        return None

    if not BRANCH_NAME_PATTERN.match(trimmed):
        return None

    return trimmed


def get_repo_selection(
    session: UserSession, default_branch: str = "main"
) -> Optional[RepoSelection]:
    """Resolve the repository/branch a session currently points at.

    A missing or malformed repository yields None (nothing selected); a
    missing or malformed branch falls back to ``default_branch``.
    """
    if not session.selected_repo:
        return None

    parsed = parse_repo_full_name(session.selected_repo)
    if not parsed:
        logger.warning("Ignoring malformed repository selection in session")
        return None

    owner, repo = parsed
    branch = parse_branch_name(session.selected_branch or "") or default_branch
    return RepoSelection(owner=owner, repo=repo, branch=branch)
