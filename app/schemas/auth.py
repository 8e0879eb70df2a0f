import time
from pydantic import BaseModel, ConfigDict, Field
from typing import Any, Optional


def now_ms() -> int:
    """Current time as epoch milliseconds."""
    return int(time.time() * 1000)


class UserSession(BaseModel):
    """Authenticated user state carried in the encrypted session cookie."""

    model_config = ConfigDict(frozen=True)

    github_token: str = Field(min_length=1)
    username: str = ""
    avatar_url: str = ""
    selected_repo: Optional[str] = None
    selected_branch: Optional[str] = None
    issued_at: int
    expires_at: int

    def is_expired(self, now: Optional[int] = None) -> bool:
        """Check if the session is past its absolute expiry."""
        return (now if now is not None else now_ms()) > self.expires_at


class OAuthState(BaseModel):
    """One-shot CSRF token for the OAuth handshake."""

    state: str
    expires_at: int

    def is_expired(self, now: Optional[int] = None) -> bool:
        return (now if now is not None else now_ms()) > self.expires_at


class RepoSelection(BaseModel):
    """Repository and branch the session currently operates on."""

    model_config = ConfigDict(frozen=True)

    owner: str
    repo: str
    branch: str

    @property
    def full_name(self) -> str:
        return f"{self.owner}/{self.repo}"


class UserSummary(BaseModel):
    """Session details exposed by ``/api/me``."""

    username: str
    avatar_url: str
    selected_repo: Optional[str] = None
    selected_branch: Optional[str] = None


class Repository(BaseModel):
    """Repository model."""

    full_name: str
    name: str
    private: bool = False
    default_branch: Optional[str] = None


class SelectRepoRequest(BaseModel):
    repo: Any = None
    branch: Any = None
