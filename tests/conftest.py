import base64
import hashlib
from typing import Dict, List, Optional, Tuple
from urllib.parse import unquote

import pytest
from fastapi import Depends
from fastapi.testclient import TestClient

from app.api.deps import get_current_session, get_github_service
from app.config import Settings
from app.core.crypto import CookieCodec
from app.exceptions import GitHubException
from app.main import create_application
from app.schemas.auth import RepoSelection, UserSession, now_ms
from app.services.github_service import GitHubService

OWNER = "octo"
REPO = "bucket"
BRANCH = "main"

# Domain http.cookiejar records for cookies set by the TestClient host
COOKIE_DOMAIN = "testserver.local"


def blob_sha(content: str) -> str:
    return hashlib.sha1(content.encode()).hexdigest()


def b64(raw: bytes) -> str:
    return base64.b64encode(raw).decode()


class MockGitHubService(GitHubService):
    """In-memory stand-in for one repository branch.

    Only ``_github_request`` is replaced, so every public method of the
    real service runs against it.
    """

    def __init__(self, files: Optional[Dict[str, str]] = None):
        # No need for a real token
        super().__init__("dummy_token")
        self.branch = BRANCH
        self.branch_exists = True
        self.files: Dict[str, Dict[str, str]] = {}
        self.calls: List[Tuple[str, str]] = []
        self.fail_on: Dict[Tuple[str, str], int] = {}
        self.repositories = [
            {
                "full_name": f"{OWNER}/{REPO}",
                "name": REPO,
                "private": False,
                "default_branch": BRANCH,
                "html_url": f"https://github.com/{OWNER}/{REPO}",
            }
        ]
        for path, content in (files or {}).items():
            self.add_file(path, content)

    def add_file(self, path: str, content_b64: str) -> str:
        sha = blob_sha(content_b64)
        self.files[path] = {"content": content_b64, "sha": sha}
        return sha

    def _fail(self, status_code: int, endpoint: str):
        raise GitHubException(status_code=status_code, detail=f"mock failure: {endpoint}")

    async def _github_request(self, endpoint, method="GET", params=None, data=None):
        self.calls.append((method, endpoint))
        repo_prefix = f"/repos/{OWNER}/{REPO}"

        for (fail_method, fail_path), status_code in self.fail_on.items():
            if fail_method == method and unquote(endpoint).endswith(fail_path):
                self._fail(status_code, endpoint)

        if endpoint == "/user":
            return {"login": "octocat", "avatar_url": "https://avatars.example/octocat"}

        if endpoint == "/user/repos":
            return self.repositories

        if endpoint.startswith(f"{repo_prefix}/branches/"):
            branch = unquote(endpoint[len(f"{repo_prefix}/branches/") :])
            if not self.branch_exists or branch != self.branch:
                self._fail(404, endpoint)
            return {"name": branch, "commit": {"commit": {"tree": {"sha": "tree-sha"}}}}

        if endpoint.startswith(f"{repo_prefix}/git/trees/"):
            tree = [
                {"path": path, "type": "blob", "sha": entry["sha"], "size": len(entry["content"])}
                for path, entry in sorted(self.files.items())
            ]
            return {"sha": "tree-sha", "tree": tree, "truncated": False}

        if endpoint.startswith(f"{repo_prefix}/contents/"):
            path = unquote(endpoint[len(f"{repo_prefix}/contents/") :])
            return self._contents(method, path, data or {}, endpoint)

        self._fail(404, endpoint)

    def _contents(self, method: str, path: str, data: dict, endpoint: str):
        if method == "GET":
            if path in self.files:
                entry = self.files[path]
                return {
                    "type": "file",
                    "path": path,
                    "sha": entry["sha"],
                    "encoding": "base64",
                    # GitHub wraps base64 content at 60 columns
                    "content": "\n".join(
                        entry["content"][i : i + 60] for i in range(0, len(entry["content"]), 60)
                    ),
                }
            children = [p for p in self.files if p.startswith(f"{path}/")]
            if children:
                return [{"type": "file", "path": child} for child in children]
            self._fail(404, endpoint)

        if method == "PUT":
            if path in self.files and data.get("sha") != self.files[path]["sha"]:
                self._fail(422, endpoint)
            sha = self.add_file(path, data["content"])
            return {"content": {"path": path, "sha": sha}}

        if method == "DELETE":
            if path not in self.files:
                self._fail(404, endpoint)
            if self.files[path]["sha"] != data.get("sha"):
                self._fail(409, endpoint)
            del self.files[path]
            return {"commit": {"sha": "commit-sha"}}

        self._fail(405, endpoint)

    def mutating_calls(self) -> List[Tuple[str, str]]:
        return [call for call in self.calls if call[0] != "GET"]


@pytest.fixture
def settings() -> Settings:
    return Settings(
        _env_file=None,
        ENVIRONMENT="testing",
        SESSION_SECRET="test-session-secret",
        GITHUB_CLIENT_ID="client-id",
        GITHUB_CLIENT_SECRET="client-secret",
    )


@pytest.fixture
def selection() -> RepoSelection:
    return RepoSelection(owner=OWNER, repo=REPO, branch=BRANCH)


@pytest.fixture
def github() -> MockGitHubService:
    return MockGitHubService()


@pytest.fixture
def application(settings, github):
    application = create_application(settings)

    def github_override(session: UserSession = Depends(get_current_session)):
        return github

    application.dependency_overrides[get_github_service] = github_override
    return application


@pytest.fixture
def client(application):
    with TestClient(application) as test_client:
        yield test_client


def make_session_token(settings: Settings, **overrides) -> str:
    now = now_ms()
    payload = {
        "github_token": "gho_testtoken",
        "username": "octocat",
        "avatar_url": "https://avatars.example/octocat",
        "selected_repo": f"{OWNER}/{REPO}",
        "selected_branch": BRANCH,
        "issued_at": now,
        "expires_at": now + settings.session_ttl_ms,
    }
    payload.update(overrides)
    return CookieCodec(settings.crypto_seed).encrypt(payload)


@pytest.fixture
def login(client, settings):
    """Put a valid session cookie in the client's jar."""

    def _login(**overrides) -> str:
        token = make_session_token(settings, **overrides)
        client.cookies.set(settings.SESSION_COOKIE_NAME, token, domain=COOKIE_DOMAIN)
        return token

    return _login
