from functools import lru_cache
from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import List


class Settings(BaseSettings):
    """Application settings."""

    model_config = SettingsConfigDict(env_file=".env", case_sensitive=True, frozen=True)

    API_PREFIX: str = "/api"
    PROJECT_NAME: str = "GitCDN"
    BACKEND_CORS_ORIGINS: List[str] = []
    ENVIRONMENT: str = "development"  # Options: development, production, testing
    LOG_LEVEL: str = "INFO"

    # Public base URL of the app, derived from request headers when empty
    APP_URL: str = ""

    # GitHub OAuth app settings
    GITHUB_CLIENT_ID: str = ""
    GITHUB_CLIENT_SECRET: str = ""
    GITHUB_OAUTH_SCOPE: str = "repo,user"
    GITHUB_API_URL: str = "https://api.github.com"
    GITHUB_OAUTH_URL: str = "https://github.com/login/oauth"

    # Cookie encryption
    SESSION_SECRET: str = ""
    TOKEN_ENCRYPTION_KEY: str = ""
    FALLBACK_CRYPTO_SEED: str = "local-dev-only-change-me"

    SESSION_COOKIE_NAME: str = "gitcdn_session"
    OAUTH_STATE_COOKIE_NAME: str = "gitcdn_oauth_state"
    SESSION_TTL_SECONDS: int = 24 * 60 * 60  # 24 hours
    OAUTH_STATE_TTL_SECONDS: int = 10 * 60  # 10 minutes

    # Asset bucket
    ASSETS_ROOT_PATH: str = "assets"
    DEFAULT_BRANCH: str = "main"
    CDN_BASE_URL: str = "https://cdn.jsdelivr.net/gh"
    RAW_BASE_URL: str = "https://raw.githubusercontent.com"
    MAX_UPLOAD_BYTES: int = 15 * 1024 * 1024

    @property
    def is_production(self) -> bool:
        return self.ENVIRONMENT == "production"

    @property
    def has_github_client_id(self) -> bool:
        return bool(self.GITHUB_CLIENT_ID)

    @property
    def has_github_client_secret(self) -> bool:
        return bool(self.GITHUB_CLIENT_SECRET)

    @property
    def has_github_oauth_config(self) -> bool:
        return self.has_github_client_id and self.has_github_client_secret

    @property
    def has_crypto_config(self) -> bool:
        return bool(self.SESSION_SECRET or self.TOKEN_ENCRYPTION_KEY)

    @property
    def crypto_seed(self) -> str:
        """Secret the cookie key is derived from, in order of precedence."""
        return self.TOKEN_ENCRYPTION_KEY or self.SESSION_SECRET or self.FALLBACK_CRYPTO_SEED

    @property
    def session_ttl_ms(self) -> int:
        return self.SESSION_TTL_SECONDS * 1000

    @property
    def oauth_state_ttl_ms(self) -> int:
        return self.OAUTH_STATE_TTL_SECONDS * 1000


@lru_cache()
def load_settings() -> Settings:
    """Build the process-wide settings from the environment, once."""
    return Settings()
