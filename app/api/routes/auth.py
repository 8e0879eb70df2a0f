import html
import json
import logging

import httpx
from fastapi import APIRouter, Depends, Query, Request, Response, status
from fastapi.responses import HTMLResponse, JSONResponse
from typing import Any, Dict, Optional

from app.api.deps import (
    get_current_session,
    get_session_store,
    require_github_client_id,
    require_github_oauth_config,
)
from app.config import Settings
from app.core.auth import get_github_user_oauth, get_oauth_access_token
from app.core.security import (
    build_authorize_url,
    origin_of,
    resolve_base_url,
    verify_oauth_state,
)
from app.core.session import SessionStore
from app.exceptions import AuthException
from app.schemas.auth import UserSession, UserSummary

logger = logging.getLogger(__name__)

router = APIRouter()

CALLBACK_PATH = "/auth/callback"


def _callback_url(request: Request, settings: Settings) -> str:
    base_url = resolve_base_url(settings.APP_URL, request.headers)
    return f"{base_url}{settings.API_PREFIX}{CALLBACK_PATH}"


def _script_json(value: Any) -> str:
    """JSON for embedding inside a <script> block."""
    return json.dumps(value).replace("</", "<\\/")


def render_popup_page(
    app_origin: Optional[str], success: bool, message: str, status_code: int = 200
) -> HTMLResponse:
    """Terminal page for the OAuth popup.

    The opener is notified through ``postMessage`` scoped to the app's exact
    origin and the popup closes itself; without an opener the page either
    returns to the app or shows the message. With no known origin nothing
    is posted and only the message is shown.
    """
    event: Dict[str, Any] = {"type": "OAUTH_AUTH_SUCCESS" if success else "OAUTH_AUTH_ERROR"}
    if not success:
        event["error"] = message

    script = ""
    if app_origin:
        fallback = 'window.location.href = "/";' if success else ""
        script = f"""
    <script>
      const appOrigin = {_script_json(app_origin)};
      if (window.opener) {{
        window.opener.postMessage({_script_json(event)}, appOrigin);
        window.close();
      }} else {{
        {fallback}
      }}
    </script>"""

    content = f"""<!doctype html>
<html>
  <body>{script}
    <p>{html.escape(message)}</p>
  </body>
</html>
"""
    return HTMLResponse(content=content, status_code=status_code)


@router.get("/auth/url")
async def auth_url(
    request: Request,
    response: Response,
    settings: Settings = Depends(require_github_client_id),
    store: SessionStore = Depends(get_session_store),
) -> Dict[str, str]:
    """Start the OAuth handshake and return the GitHub authorize URL."""
    state = store.issue_oauth_state(response)
    url = build_authorize_url(
        settings.GITHUB_OAUTH_URL,
        settings.GITHUB_CLIENT_ID,
        _callback_url(request, settings),
        settings.GITHUB_OAUTH_SCOPE,
        state,
    )
    return {"url": url}


@router.get(CALLBACK_PATH, response_class=HTMLResponse)
async def auth_callback(
    request: Request,
    code: Optional[str] = Query(None),
    state: Optional[str] = Query(None),
    settings: Settings = Depends(require_github_oauth_config),
    store: SessionStore = Depends(get_session_store),
) -> HTMLResponse:
    """Finish the OAuth handshake and issue the session cookie.

    The state cookie is cleared on every outcome, so a state value can be
    used at most once.
    """
    try:
        app_origin = origin_of(resolve_base_url(settings.APP_URL, request.headers))
    except ValueError as e:
        logger.error(f"Auth callback error: {str(e)}")
        response = render_popup_page(
            None, False, "Authentication failed", status.HTTP_400_BAD_REQUEST
        )
        store.clear_oauth_state(response)
        return response

    oauth_state = store.read_oauth_state(request)

    if not code or not state:
        response = render_popup_page(
            app_origin, False, "Missing OAuth code or state.", status.HTTP_400_BAD_REQUEST
        )
        store.clear_oauth_state(response)
        return response

    if not verify_oauth_state(oauth_state, state):
        response = render_popup_page(
            app_origin,
            False,
            "Invalid or expired OAuth state. Please try again.",
            status.HTTP_400_BAD_REQUEST,
        )
        store.clear_oauth_state(response)
        return response

    try:
        access_token = await get_oauth_access_token(
            settings, code, _callback_url(request, settings)
        )
        github_user = await get_github_user_oauth(settings, access_token)
    except (AuthException, httpx.HTTPError, KeyError, ValueError) as e:
        logger.error(f"Auth error: {str(e)}")
        response = render_popup_page(
            app_origin, False, "Authentication failed", status.HTTP_500_INTERNAL_SERVER_ERROR
        )
        store.clear_oauth_state(response)
        return response

    # Re-authenticating keeps the repository the user was working on
    existing_session = store.read_session(request)

    response = render_popup_page(
        app_origin, True, "Authentication successful. This window should close automatically."
    )
    store.clear_oauth_state(response)
    store.write_session(
        response,
        github_token=access_token,
        username=github_user.get("login", ""),
        avatar_url=github_user.get("avatar_url") or "",
        selected_repo=existing_session.selected_repo if existing_session else None,
        selected_branch=existing_session.selected_branch if existing_session else None,
    )
    logger.info(f"User {github_user.get('login')} authenticated")
    return response


@router.get("/me", response_model=UserSummary)
async def get_me(
    session: UserSession = Depends(get_current_session),
) -> UserSummary:
    """Gets current user information from the session cookie."""
    return UserSummary(
        username=session.username,
        avatar_url=session.avatar_url,
        selected_repo=session.selected_repo,
        selected_branch=session.selected_branch,
    )


@router.post("/logout")
async def logout(
    store: SessionStore = Depends(get_session_store),
) -> JSONResponse:
    """Clear the session and any pending OAuth state."""
    response = JSONResponse({"success": True})
    store.clear_auth_cookies(response)
    return response
