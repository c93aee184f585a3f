"""Process settings for jx-auth.

Key Components:
    - AuthSettings: Backend selection, file locations and batch mode, read
      from ``JX_AUTH_*`` environment variables

Example:
    >>> from jx_auth.config import AuthSettings
    >>> settings = AuthSettings()
    >>> settings.backend
    <BackendKind.FILE: 'file'>
"""

from jx_auth.config.settings import (
    ADDON_AUTH_CONFIG_FILE,
    CHARTMUSEUM_AUTH_CONFIG_FILE,
    CHAT_AUTH_CONFIG_FILE,
    GIT_AUTH_CONFIG_FILE,
    ISSUES_AUTH_CONFIG_FILE,
    JENKINS_AUTH_CONFIG_FILE,
    AuthSettings,
)

__all__ = [
    "AuthSettings",
    "GIT_AUTH_CONFIG_FILE",
    "JENKINS_AUTH_CONFIG_FILE",
    "CHARTMUSEUM_AUTH_CONFIG_FILE",
    "ISSUES_AUTH_CONFIG_FILE",
    "CHAT_AUTH_CONFIG_FILE",
    "ADDON_AUTH_CONFIG_FILE",
]
