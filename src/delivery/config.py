"""Delivery service configuration using pydantic-settings.

This module defines the DeliverySettings class that reads configuration
from environment variables with the DELIVERY_ prefix. The GitHub token,
owner and repository must be set for the service to start; they are turned
into an immutable Credentials value once and handed to every client.
"""

import logging

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from src.delivery.github.models import Credentials


class DeliverySettings(BaseSettings):
    """Delivery service configuration from environment variables.

    All environment variables are prefixed with DELIVERY_ (e.g., DELIVERY_GITHUB_TOKEN).

    Required fields (must be set via environment variables):
    - github_token: GitHub API token used for every remote call
    - github_owner: Owner (user or organization) of the target repository
    - github_repo: Name of the target repository
    """

    model_config = SettingsConfigDict(
        env_prefix="DELIVERY_",
        case_sensitive=False,
    )

    # -------------------------------------------------------------------------
    # GitHub Configuration
    # -------------------------------------------------------------------------
    github_token: str

    github_owner: str

    github_repo: str

    # Base URL for GitHub API (supports GitHub Enterprise)
    github_base_url: str = "https://api.github.com"

    # GraphQL endpoint; derived from github_base_url when unset
    github_graphql_url: str = ""

    # Branch used as the base for new branches and pull requests
    default_base_branch: str = "main"

    # Transport timeout for a single request, in seconds
    request_timeout_seconds: float = 30.0

    # -------------------------------------------------------------------------
    # Server Configuration
    # -------------------------------------------------------------------------
    host: str = "0.0.0.0"

    port: int = 3001

    log_level: str = "INFO"

    # -------------------------------------------------------------------------
    # Validators
    # -------------------------------------------------------------------------
    @field_validator("github_token", "github_owner", "github_repo")
    @classmethod
    def validate_not_empty(cls, v: str, info) -> str:
        """Validate that the GitHub identity fields are not empty."""
        if not v or not v.strip():
            raise ValueError(f"{info.field_name} cannot be empty")
        return v.strip()

    @field_validator("github_base_url")
    @classmethod
    def validate_base_url(cls, v: str) -> str:
        """Validate that the API base URL is an http(s) URL."""
        if not v.startswith(("http://", "https://")):
            raise ValueError("github_base_url must start with http:// or https://")
        return v.rstrip("/")

    @field_validator("default_base_branch")
    @classmethod
    def validate_base_branch(cls, v: str) -> str:
        """Validate that the default base branch is not empty."""
        if not v or not v.strip():
            raise ValueError("default_base_branch cannot be empty")
        return v.strip()

    @field_validator("request_timeout_seconds")
    @classmethod
    def validate_timeout(cls, v: float) -> float:
        """Validate that the request timeout is at least one second."""
        if v < 1:
            raise ValueError("request_timeout_seconds must be at least 1")
        return v

    @field_validator("port")
    @classmethod
    def validate_port(cls, v: int) -> int:
        """Validate that port is in valid range."""
        if not 1 <= v <= 65535:
            raise ValueError("port must be between 1 and 65535")
        return v

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate that log level is a known logging level name."""
        level = v.upper()
        if not isinstance(logging.getLevelName(level), int):
            raise ValueError(f"Unknown log level: {v}")
        return level

    @property
    def graphql_url(self) -> str:
        """GraphQL endpoint used for auto-merge requests."""
        return self.github_graphql_url or f"{self.github_base_url}/graphql"

    def credentials(self) -> Credentials:
        """Build the immutable credentials shared by every client."""
        return Credentials(
            token=self.github_token,
            owner=self.github_owner,
            repository=self.github_repo,
        )


def get_settings() -> DeliverySettings:
    """Create and return DeliverySettings instance.

    Returns:
        DeliverySettings: Configured settings instance.

    Raises:
        pydantic.ValidationError: If required fields are missing or invalid.
    """
    return DeliverySettings()
