import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from typing import Any, Dict, Optional

logger = logging.getLogger(__name__)


class APIException(Exception):
    """Base class for API exceptions."""

    def __init__(
        self,
        status_code: int,
        detail: str,
        headers: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(detail)
        self.status_code = status_code
        self.detail = detail
        self.headers = headers


class GitHubException(APIException):
    """Exception raised for errors in the GitHub API."""

    @property
    def is_not_found(self) -> bool:
        return self.status_code == 404


class ConfigurationException(APIException):
    """Exception raised when the server is missing required configuration."""

    def __init__(self, detail: str):
        super().__init__(status_code=500, detail=detail)


class AuthException(APIException):
    """Exception raised for errors in the authentication."""

    def __init__(
        self,
        status_code: int = 401,
        detail: str = "Unauthorized",
        headers: Optional[Dict[str, Any]] = None,
        clear_session: bool = False,
    ):
        super().__init__(status_code=status_code, detail=detail, headers=headers)
        self.clear_session = clear_session


class ValidationException(APIException):
    """Exception raised for malformed request input."""

    def __init__(self, detail: str):
        super().__init__(status_code=400, detail=detail)


class NotFoundException(APIException):
    """Exception raised when a targeted asset or folder does not exist."""

    def __init__(self, detail: str):
        super().__init__(status_code=404, detail=detail)


class ConflictException(APIException):
    """Exception raised when a write would overwrite an existing asset."""

    def __init__(self, detail: str):
        super().__init__(status_code=409, detail=detail)


def add_exception_handlers(app: FastAPI) -> None:
    """Add exception handlers to the FastAPI application."""

    @app.exception_handler(APIException)
    async def api_exception_handler(
        request: Request, exc: APIException
    ) -> JSONResponse:
        """Handle API exceptions."""
        return JSONResponse(
            status_code=exc.status_code,
            content={"error": exc.detail},
            headers=exc.headers or {},
        )

    @app.exception_handler(GitHubException)
    async def github_exception_handler(
        request: Request, exc: GitHubException
    ) -> JSONResponse:
        """Handle GitHub exceptions that escaped a route's own translation."""
        logger.error(f"Unhandled GitHub API error ({exc.status_code}): {exc.detail}")
        return JSONResponse(
            status_code=500,
            content={"error": "GitHub request failed"},
        )

    @app.exception_handler(AuthException)
    async def auth_exception_handler(
        request: Request, exc: AuthException
    ) -> JSONResponse:
        """Handle authentication exceptions, dropping the stale session cookie."""
        response = JSONResponse(
            status_code=exc.status_code,
            content={"error": exc.detail},
            headers=exc.headers or {},
        )
        if exc.clear_session:
            settings = request.app.state.settings
            response.delete_cookie(
                settings.SESSION_COOKIE_NAME,
                path="/",
                secure=settings.is_production,
                httponly=True,
                samesite="lax",
            )
        return response

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(
        request: Request, exc: RequestValidationError
    ) -> JSONResponse:
        """Render body/query validation failures as a 400 naming the field."""
        errors = exc.errors()
        field = "request"
        if errors:
            location = [str(part) for part in errors[0].get("loc", ()) if part != "body"]
            if location:
                field = ".".join(location)
        return JSONResponse(
            status_code=400,
            content={"error": f"Invalid {field}."},
        )
