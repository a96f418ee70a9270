from __future__ import annotations

from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application configuration loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_prefix="SITECRAFT_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    api_prefix: str = "/api"
    allowed_origins: list[str] = Field(
        default_factory=lambda: [
            "http://localhost:3000",
            "http://127.0.0.1:3000",
        ]
    )
    database_url: str = "sqlite+aiosqlite:///./sitecraft.db"

    # Hosting provider
    platform_domain: str = "innovated.site"
    hosting_api_url: str = "https://api.vercel.com"
    platform_token: str = Field(default="", description="Platform-owned hosting provider token")
    team_id: str | None = None
    provider_project_prefix: str = "sc-"
    dns_cname_target: str = "cname.vercel-dns.com"
    deploy_framework: str = "nextjs"
    provider_timeout_seconds: float = 30.0

    # Retry and time budgets
    upload_max_attempts: int = Field(default=3, ge=1)
    upload_retry_wait_seconds: float = 1.0
    alias_max_attempts: int = Field(default=3, ge=1)
    alias_retry_wait_seconds: float = 2.0
    publish_timeout_seconds: float = 300.0
    domain_max_verification_attempts: int | None = Field(
        default=None,
        description="Mark a custom domain failed after this many unverified checks (unset: retry forever)",
    )

    admin_secret: str | None = Field(
        default=None,
        description="Shared secret for admin batch operations; unset disables them",
    )

    log_level: str = "INFO"
    json_logs: bool = True

    better_auth_url: str = Field(
        default="http://localhost:3000",
        description="Better-auth base URL",
    )
    better_auth_internal_url: str | None = Field(
        default=None,
        description="Internal URL for contacting better-auth from backend (optional)",
    )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()


settings = get_settings()
