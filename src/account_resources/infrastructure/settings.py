"""Application settings using pydantic-settings.

Settings are loaded from environment variables (or a ``.env`` file) with
defaults pointing at the public account management API.
"""

from functools import lru_cache

from pydantic import Field, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict


class AccountSettings(BaseSettings):
    """Account management API and download settings.

    Environment variables:
        ACCOUNT_ACCOUNT_UUID: UUID of the account to download
        ACCOUNT_API_URL: Base URL of the account management API
            (default: https://api.dynatrace.com)
        ACCOUNT_ACCESS_TOKEN: Bearer token sent with every request
        ACCOUNT_REQUEST_TIMEOUT_SECONDS: Per-request timeout (default: 30)
        ACCOUNT_PAGE_SIZE: Items requested per page (default: 100, max: 100)
        ACCOUNT_MAX_CONCURRENT_REQUESTS: In-flight request limit (default: 10)
        ACCOUNT_BOUNDARIES_ENABLED: Download and persist boundaries (default: false)
        ACCOUNT_SERVICE_USERS_ENABLED: Download and persist service users
            (default: true)
    """

    model_config = SettingsConfigDict(
        env_prefix="ACCOUNT_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    account_uuid: str = Field(default="", description="Account UUID")
    api_url: str = Field(
        default="https://api.dynatrace.com",
        description="Account management API base URL",
    )
    access_token: SecretStr = Field(
        default=SecretStr(""),
        description="Bearer token for the account management API",
    )
    request_timeout_seconds: float = Field(
        default=30.0,
        description="Per-request timeout in seconds",
        gt=0,
    )
    page_size: int = Field(
        default=100,
        description="Items requested per page of a paginated collection",
        ge=1,
        le=100,
    )
    max_concurrent_requests: int = Field(
        default=10,
        description="Maximum number of in-flight API requests",
        ge=1,
        le=100,
    )
    boundaries_enabled: bool = Field(
        default=False,
        description="Download and persist policy boundaries",
    )
    service_users_enabled: bool = Field(
        default=True,
        description="Download and persist service users",
    )


@lru_cache
def get_account_settings() -> AccountSettings:
    """Get cached account settings.

    Uses lru_cache to ensure settings are only loaded once.
    """
    return AccountSettings()
