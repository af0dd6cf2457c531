"""Runtime configuration: env-driven.

Centralized config using pydantic-settings for environment variable support.
Reads from a .env file and SHELLREPO_* environment variables.
"""

from __future__ import annotations

from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict


class RepoConfig(BaseSettings):
    """Repository client configuration with environment variable overrides.

    All settings can be overridden via SHELLREPO_* environment variables
    or a .env file in the working directory.

    Examples
    --------
    Override via environment::

        export SHELLREPO_APP_ID=shellos-main
        export SHELLREPO_INITIAL_AUTH_TOKEN=ci-publisher-token
        export SHELLREPO_LOG_LEVEL=DEBUG

    Or via .env file::

        SHELLREPO_ENVIRONMENT=production
        SHELLREPO_ALLOW_DEGRADED_PUBLISH=false
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_prefix="SHELLREPO_",
        env_file_encoding="utf-8",
    )

    # Runtime environment
    environment: str = "development"
    log_level: str = "INFO"
    debug: bool = False

    # Repository namespace; scopes the catalog collection and artifact paths
    app_id: str = "default-app-id"

    # Identity
    initial_auth_token: str | None = None
    accepted_tokens: list[str] = []  # empty means any token is accepted locally
    allow_degraded_publish: bool = True  # publish under a fallback identity

    # Storage paths
    catalog_db_path: Path = Path(".shellrepo/catalog.db")
    storage_path: Path = Path(".shellrepo/storage")
    download_base_url: str = ""

    # Uploads
    upload_chunk_size: int = 256 * 1024

    @property
    def is_production(self) -> bool:
        """Whether running in production mode."""
        return self.environment == "production"

    @property
    def catalog_collection_path(self) -> str:
        """Publicly readable collection holding package records."""
        return f"artifacts/{self.app_id}/public/data/packages"

    def artifact_path(self, file_name: str) -> str:
        """Storage destination for a package artifact."""
        return f"artifacts/{self.app_id}/packages/{file_name}"


# Module-level singleton: import as `from shellrepo.config import config`
config = RepoConfig()
