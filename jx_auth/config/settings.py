"""
Settings for selecting and locating auth config storage.

Values come from ``JX_AUTH_*`` environment variables, e.g.
``JX_AUTH_BACKEND=vault`` or ``JX_AUTH_BATCH_MODE=true``.
"""

from pathlib import Path

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from jx_auth.enums import BackendKind

GIT_AUTH_CONFIG_FILE = "gitAuth.yaml"
JENKINS_AUTH_CONFIG_FILE = "jenkinsAuth.yaml"
CHARTMUSEUM_AUTH_CONFIG_FILE = "chartmuseumAuth.yaml"
ISSUES_AUTH_CONFIG_FILE = "issuesAuth.yaml"
CHAT_AUTH_CONFIG_FILE = "chatAuth.yaml"
ADDON_AUTH_CONFIG_FILE = "addonAuth.yaml"


class AuthSettings(BaseSettings):
    """jx-auth process settings."""

    model_config = SettingsConfigDict(
        env_prefix="JX_AUTH_",
        case_sensitive=False,
    )

    backend: BackendKind = Field(default=BackendKind.FILE, description="Storage backend for auth configs")
    config_dir: Path | None = Field(
        default=None, description="Directory for auth config files (default: platform config dir)"
    )
    file_name: str = Field(default=GIT_AUTH_CONFIG_FILE, description="Auth config file / secret name")
    namespace: str = Field(default="jx", description="Kubernetes namespace for secrets and config maps")
    server_kind: str = Field(default="git", description="Kind of auth stored in Kubernetes secrets")
    service_kind: str = Field(default="", description="Optional service kind used to select secrets")
    batch_mode: bool = Field(default=False, description="Never prompt; pick defaults instead")
    log_level: str = Field(default="INFO", description="Logging level")
    git_credentials_file: Path = Field(
        default_factory=lambda: Path.home() / ".git-credentials",
        description="git credential-store file to import from",
    )

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        level = v.upper()
        if level not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
            raise ValueError(f"Invalid log level: {v}")
        return level
