from enum import Enum
from typing import Any, Dict, List, Optional
import aiohttp
import logging

from app.exceptions import GitHubException
from app.utils.asset_paths import quote_repo_path

logger = logging.getLogger(__name__)


class ContentStatus(str, Enum):
    """Outcome of probing a repository path. Other failures raise."""

    EXISTS = "exists"
    NOT_FOUND = "not_found"


class GitHubService:
    """Service for interacting with GitHub API."""

    def __init__(self, access_token: str = None, base_url: str = "https://api.github.com"):
        """Initialize GitHub service with the user's OAuth access token."""
        self.access_token = access_token
        self.base_url = base_url.rstrip("/")
        self.headers = {
            "Accept": "application/vnd.github+json",
            "X-GitHub-Api-Version": "2022-11-28",
        }

        if self.access_token:
            self.headers["Authorization"] = f"Bearer {self.access_token}"

    async def _github_request(
        self, endpoint: str, method: str = "GET", params: dict = None, data: dict = None
    ) -> Any:
        """Make a request to GitHub API."""
        url = f"{self.base_url}{endpoint}"

        async with aiohttp.ClientSession() as session:
            try:
                async with session.request(
                    method, url, headers=self.headers, params=params, json=data
                ) as response:
                    if response.status == 404:
                        raise GitHubException(
                            status_code=404, detail=f"Resource not found: {endpoint}"
                        )
                    elif response.status >= 400:
                        error_body = await response.text()
                        raise GitHubException(
                            status_code=response.status,
                            detail=f"GitHub API error ({response.status}): {error_body}",
                        )

                    if response.status == 204:
                        return {}
                    return await response.json(content_type=None)
            except aiohttp.ClientError as e:
                logger.error(f"GitHub API request failed: {str(e)}")
                raise GitHubException(
                    status_code=502, detail=f"GitHub API request failed: {str(e)}"
                )

    def _contents_endpoint(self, owner: str, repo: str, path: str) -> str:
        return f"/repos/{owner}/{repo}/contents/{quote_repo_path(path)}"

    async def get_authenticated_user(self) -> Dict[str, Any]:
        return await self._github_request("/user")

    async def list_user_repositories(
        self, sort: str = "updated", per_page: int = 100
    ) -> List[Dict[str, Any]]:
        """List repositories the authenticated user can access."""
        repos = await self._github_request(
            "/user/repos", params={"sort": sort, "per_page": str(per_page)}
        )
        return [
            {
                "full_name": repo["full_name"],
                "name": repo["name"],
                "private": repo.get("private", False),
                "default_branch": repo.get("default_branch"),
            }
            for repo in repos
        ]

    async def get_branch(self, owner: str, repo: str, branch: str) -> Dict[str, Any]:
        return await self._github_request(
            f"/repos/{owner}/{repo}/branches/{quote_repo_path(branch)}"
        )

    async def get_branch_tree_sha(self, owner: str, repo: str, branch: str) -> str:
        """Resolve a branch to the tree sha of its tip commit."""
        branch_data = await self.get_branch(owner, repo, branch)
        return branch_data["commit"]["commit"]["tree"]["sha"]

    async def get_tree(
        self, owner: str, repo: str, tree_sha: str, recursive: bool = True
    ) -> Dict[str, Any]:
        params = {"recursive": "1"} if recursive else None
        tree_data = await self._github_request(
            f"/repos/{owner}/{repo}/git/trees/{tree_sha}", params=params
        )
        if tree_data.get("truncated"):
            logger.warning(f"Tree listing for {owner}/{repo} was truncated by GitHub")
        return tree_data

    async def get_content(self, owner: str, repo: str, path: str, ref: str) -> Any:
        return await self._github_request(
            self._contents_endpoint(owner, repo, path), params={"ref": ref}
        )

    async def content_exists(
        self, owner: str, repo: str, path: str, ref: str
    ) -> ContentStatus:
        """Probe whether ``path`` exists on ``ref``.

        Only a 404 maps to NOT_FOUND; every other failure is raised.
        """
        try:
            await self.get_content(owner, repo, path, ref)
        except GitHubException as e:
            if e.is_not_found:
                return ContentStatus.NOT_FOUND
            raise
        return ContentStatus.EXISTS

    async def get_file_sha(
        self, owner: str, repo: str, path: str, ref: str
    ) -> Optional[str]:
        """Current blob sha of ``path``, or None when nothing is stored there."""
        try:
            content = await self.get_content(owner, repo, path, ref)
        except GitHubException as e:
            if e.is_not_found:
                return None
            raise
        return content.get("sha") if isinstance(content, dict) else None

    async def put_file(
        self,
        owner: str,
        repo: str,
        path: str,
        branch: str,
        message: str,
        content: str,
        sha: Optional[str] = None,
    ) -> Dict[str, Any]:
        """Create or update a file from base64 ``content``."""
        data = {
            "message": message,
            "content": content,
            "branch": branch,
        }

        if sha:
            data["sha"] = sha

        return await self._github_request(
            self._contents_endpoint(owner, repo, path), method="PUT", data=data
        )

    async def delete_file(
        self, owner: str, repo: str, path: str, branch: str, message: str, sha: str
    ) -> Dict[str, Any]:
        """Delete a file; GitHub rejects the call if ``sha`` is stale."""
        data = {
            "message": message,
            "branch": branch,
            "sha": sha,
        }

        return await self._github_request(
            self._contents_endpoint(owner, repo, path), method="DELETE", data=data
        )
