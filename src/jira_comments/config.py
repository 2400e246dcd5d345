"""Configuration via environment variables.

Uses pydantic-settings to load config from env vars with the JIRA_ prefix.
CLI flags override whatever the environment provides.
"""

from typing import Optional

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings

from jira_comments.client import basic_token


class Settings(BaseSettings):
    """All client configuration. Set via JIRA_* env vars."""

    # Jira instance
    base_url: str = ""

    # Auth — either a ready Basic token, or user + API token to derive one
    token: str = ""
    user: str = ""
    api_token: str = ""

    # HTTP
    timeout: float = 30.0  # seconds per request
    max_concurrent: Optional[int] = Field(None, ge=1)  # None = one in-flight request per comment

    # Logging
    log_level: str = "INFO"
    log_json: bool = False

    model_config = {"env_prefix": "JIRA_"}

    @model_validator(mode="after")
    def derive_token(self):
        """Build the Basic token from user + api_token when none is given."""
        if not self.token and self.user and self.api_token:
            self.token = basic_token(self.user, self.api_token)
        return self

    def require_credentials(self) -> None:
        missing = [
            name
            for name, value in (("JIRA_BASE_URL", self.base_url), ("JIRA_TOKEN", self.token))
            if not value
        ]
        if missing:
            raise ValueError(f"Missing required settings: {', '.join(missing)}")
