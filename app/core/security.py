import hmac
import secrets

from typing import Optional
from urllib import parse

from app.schemas.auth import OAuthState


def generate_oauth_state() -> str:
    """
    Generate a secure state parameter for OAuth flow to prevent CSRF attacks.
    """
    return secrets.token_hex(24)


def verify_oauth_state(stored: Optional[OAuthState], received: str) -> bool:
    """Check a callback's state against the one issued to this browser."""
    if stored is None or not received:
        return False

    if stored.is_expired():
        return False

    return hmac.compare_digest(stored.state.encode(), received.encode())


def build_authorize_url(
    oauth_base_url: str, client_id: str, redirect_uri: str, scope: str, state: str
) -> str:
    """Build the GitHub authorize URL the browser is sent to."""
    query = parse.urlencode(
        {
            "client_id": client_id,
            "redirect_uri": redirect_uri,
            "scope": scope,
            "state": state,
        }
    )
    return f"{oauth_base_url}/authorize?{query}"


def first_header_value(value: Optional[str]) -> Optional[str]:
    if not value:
        return None
    return value.split(",")[0].strip() or None


def resolve_base_url(app_url: str, headers) -> str:
    """Public base URL: configured APP_URL, else forwarded or Host headers."""
    if app_url:
        return app_url[:-1] if app_url.endswith("/") else app_url

    proto = first_header_value(headers.get("x-forwarded-proto")) or "http"
    host = first_header_value(headers.get("x-forwarded-host")) or headers.get("host")
    if not host:
        raise ValueError("Could not resolve request host.")

    return f"{proto}://{host}"


def origin_of(url: str) -> str:
    parsed_url = parse.urlparse(url)
    return f"{parsed_url.scheme}://{parsed_url.netloc}"
