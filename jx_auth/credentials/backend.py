"""Abstract backend protocol for auth config storage."""

from typing import Protocol

from jx_auth.credentials.models import Config


class ConfigBackend(Protocol):
    """Protocol defining the interface for auth config storage backends.

    Backends are simple load/replace stores: ``load_config`` returns the whole
    stored config and ``save_config`` replaces it. There is no locking or
    versioning; callers serialize access themselves.
    """

    @property
    def name(self) -> str:
        """Backend identifier (e.g., 'file', 'kubernetes')."""
        ...

    def load_config(self) -> Config | None:
        """Load the stored config.

        Returns:
            The stored config, an empty config if nothing was stored yet, or
            None for import-only backends with no source to read

        Raises:
            ConfigurationError: If the stored data can not be decoded
            BackendError: If the storage medium fails
        """
        ...

    def save_config(self, config: Config) -> None:
        """Persist the config, replacing what was stored before.

        Args:
            config: Config to store

        Raises:
            ConfigurationError: If the backend is missing required settings
            MissingCredentialError: If the config lacks data the medium needs
            BackendError: If the storage medium fails
        """
        ...
