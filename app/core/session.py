import logging
from typing import Optional, Type, TypeVar

from fastapi import Request, Response
from pydantic import BaseModel, ValidationError

from app.config import Settings
from app.core.crypto import CookieCodec
from app.core.security import generate_oauth_state
from app.exceptions import AuthException
from app.schemas.auth import OAuthState, UserSession, now_ms

logger = logging.getLogger(__name__)

ModelT = TypeVar("ModelT", bound=BaseModel)


class SessionStore:
    """Cookie-backed session storage.

    There is no server-side table: the whole ``UserSession`` lives in an
    encrypted cookie, and so does the short-lived OAuth state. Absent,
    corrupt and expired sessions are indistinguishable to callers.
    """

    def __init__(self, settings: Settings, codec: CookieCodec):
        self.settings = settings
        self.codec = codec

    def _set_cookie(self, response: Response, name: str, value: str, max_age: int) -> None:
        response.set_cookie(
            key=name,
            value=value,
            max_age=max_age,
            path="/",
            secure=self.settings.is_production,
            httponly=True,
            samesite="lax",
        )

    def clear_cookie(self, response: Response, name: str) -> None:
        response.delete_cookie(
            name,
            path="/",
            secure=self.settings.is_production,
            httponly=True,
            samesite="lax",
        )

    def read_encrypted_cookie(
        self, request: Request, name: str, model: Type[ModelT]
    ) -> Optional[ModelT]:
        payload = self.codec.decrypt(request.cookies.get(name))
        if payload is None:
            return None

        try:
            return model.model_validate(payload)
        except ValidationError:
            logger.info(f"Discarding malformed {name} cookie payload")
            return None

    def write_encrypted_cookie(
        self, response: Response, name: str, payload: BaseModel, max_age: int
    ) -> None:
        self._set_cookie(response, name, self.codec.encrypt(payload.model_dump()), max_age)

    def read_session(self, request: Request) -> Optional[UserSession]:
        """Return the current session, or None if absent, corrupt or expired."""
        session = self.read_encrypted_cookie(
            request, self.settings.SESSION_COOKIE_NAME, UserSession
        )
        if session is None or session.is_expired():
            return None

        if not session.github_token:
            return None

        return session

    def write_session(
        self,
        response: Response,
        github_token: str,
        username: str,
        avatar_url: str,
        selected_repo: Optional[str] = None,
        selected_branch: Optional[str] = None,
    ) -> UserSession:
        """Issue a session cookie with a fresh TTL."""
        now = now_ms()
        session = UserSession(
            github_token=github_token,
            username=username,
            avatar_url=avatar_url,
            selected_repo=selected_repo,
            selected_branch=selected_branch,
            issued_at=now,
            expires_at=now + self.settings.session_ttl_ms,
        )
        self.write_encrypted_cookie(
            response,
            self.settings.SESSION_COOKIE_NAME,
            session,
            self.settings.SESSION_TTL_SECONDS,
        )
        return session

    def require_session(self, request: Request) -> UserSession:
        """Like ``read_session`` but raises an unauthorized error on failure.

        The raised exception asks the error handler to clear the session
        cookie on the outgoing response.
        """
        session = self.read_session(request)
        if session is None:
            raise AuthException(detail="Unauthorized", clear_session=True)
        return session

    def clear_session(self, response: Response) -> None:
        self.clear_cookie(response, self.settings.SESSION_COOKIE_NAME)

    def clear_auth_cookies(self, response: Response) -> None:
        self.clear_cookie(response, self.settings.SESSION_COOKIE_NAME)
        self.clear_cookie(response, self.settings.OAUTH_STATE_COOKIE_NAME)

    def issue_oauth_state(self, response: Response) -> str:
        """Mint a state token and store it in the short-lived state cookie."""
        state = generate_oauth_state()
        oauth_state = OAuthState(
            state=state,
            expires_at=now_ms() + self.settings.oauth_state_ttl_ms,
        )
        self.write_encrypted_cookie(
            response,
            self.settings.OAUTH_STATE_COOKIE_NAME,
            oauth_state,
            self.settings.OAUTH_STATE_TTL_SECONDS,
        )
        return state

    def read_oauth_state(self, request: Request) -> Optional[OAuthState]:
        return self.read_encrypted_cookie(
            request, self.settings.OAUTH_STATE_COOKIE_NAME, OAuthState
        )

    def clear_oauth_state(self, response: Response) -> None:
        """Drop the state cookie; callers do this whatever the state's contents."""
        self.clear_cookie(response, self.settings.OAUTH_STATE_COOKIE_NAME)
