from typing import List, Optional

import pytest
from fastapi import Request, Response

from app.core.crypto import CookieCodec
from app.core.security import verify_oauth_state
from app.core.session import SessionStore
from app.exceptions import AuthException
from app.schemas.auth import OAuthState, now_ms

from conftest import make_session_token


def make_request(cookies: Optional[dict] = None) -> Request:
    headers = []
    if cookies:
        cookie_header = "; ".join(f"{name}={value}" for name, value in cookies.items())
        headers.append((b"cookie", cookie_header.encode()))
    return Request({"type": "http", "method": "GET", "path": "/", "headers": headers})


def set_cookie_headers(response: Response) -> List[str]:
    return response.headers.getlist("set-cookie")


@pytest.fixture
def store(settings):
    return SessionStore(settings, CookieCodec(settings.crypto_seed))


def test_read_session_without_cookie(store):
    assert store.read_session(make_request()) is None


def test_read_valid_session(store, settings):
    token = make_session_token(settings)
    session = store.read_session(make_request({settings.SESSION_COOKIE_NAME: token}))

    assert session is not None
    assert session.username == "octocat"
    assert session.selected_repo == "octo/bucket"


def test_expired_session_is_absent(store, settings):
    token = make_session_token(settings, expires_at=now_ms() - 1)
    assert store.read_session(make_request({settings.SESSION_COOKIE_NAME: token})) is None


def test_session_without_token_is_absent(store, settings):
    token = make_session_token(settings, github_token="")
    assert store.read_session(make_request({settings.SESSION_COOKIE_NAME: token})) is None


def test_session_missing_fields_is_absent(store, settings):
    token = CookieCodec(settings.crypto_seed).encrypt({"github_token": "gho_x"})
    assert store.read_session(make_request({settings.SESSION_COOKIE_NAME: token})) is None


def test_corrupt_session_is_absent(store, settings):
    assert store.read_session(make_request({settings.SESSION_COOKIE_NAME: "garbage"})) is None


def test_write_session_stamps_ttl_and_cookie_attributes(store, settings):
    response = Response()
    before = now_ms()
    session = store.write_session(
        response, github_token="gho_x", username="octocat", avatar_url="", selected_repo="o/r"
    )

    assert session.issued_at >= before
    assert session.expires_at - session.issued_at == 24 * 60 * 60 * 1000

    [header] = set_cookie_headers(response)
    lowered = header.lower()
    assert header.startswith(f"{settings.SESSION_COOKIE_NAME}=")
    assert "httponly" in lowered
    assert "samesite=lax" in lowered
    assert "path=/" in lowered
    assert "max-age=86400" in lowered
    assert "secure" not in lowered


def test_written_session_reads_back(store, settings):
    response = Response()
    store.write_session(response, github_token="gho_x", username="octocat", avatar_url="a")
    token = set_cookie_headers(response)[0].split(";")[0].split("=", 1)[1]

    session = store.read_session(make_request({settings.SESSION_COOKIE_NAME: token}))
    assert session.github_token == "gho_x"
    assert session.avatar_url == "a"


def test_secure_cookie_in_production(settings):
    production = settings.model_copy(update={"ENVIRONMENT": "production"})
    store = SessionStore(production, CookieCodec(production.crypto_seed))
    response = Response()
    store.write_session(response, github_token="gho_x", username="u", avatar_url="")

    assert "secure" in set_cookie_headers(response)[0].lower()


def test_require_session_raises_and_requests_cookie_clear(store):
    with pytest.raises(AuthException) as exc_info:
        store.require_session(make_request())

    assert exc_info.value.status_code == 401
    assert exc_info.value.clear_session is True


def test_clear_auth_cookies_clears_both(store, settings):
    response = Response()
    store.clear_auth_cookies(response)
    headers = " ".join(set_cookie_headers(response))

    assert f"{settings.SESSION_COOKIE_NAME}=" in headers
    assert f"{settings.OAUTH_STATE_COOKIE_NAME}=" in headers
    assert "max-age=0" in headers.lower()


def test_oauth_state_issue_and_verify(store, settings):
    response = Response()
    state = store.issue_oauth_state(response)
    [header] = set_cookie_headers(response)
    token = header.split(";")[0].split("=", 1)[1]

    assert len(state) == 48
    assert "max-age=600" in header.lower()

    stored = store.read_oauth_state(make_request({settings.OAUTH_STATE_COOKIE_NAME: token}))
    assert verify_oauth_state(stored, state)
    assert not verify_oauth_state(stored, state + "x")
    assert not verify_oauth_state(stored, "")
    assert not verify_oauth_state(None, state)


def test_expired_oauth_state_fails():
    stored = OAuthState(state="abc", expires_at=now_ms() - 1)
    assert not verify_oauth_state(stored, "abc")
