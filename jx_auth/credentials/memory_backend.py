"""In-memory backend for tests and ephemeral sessions."""

from jx_auth.credentials.models import Config


class MemoryBackend:
    """Holds the auth config directly on the instance.

    Nothing is persisted and no operation can fail.

    Example:
        >>> backend = MemoryBackend()
        >>> backend.save_config(Config(current_server="https://github.com"))
        >>> backend.load_config().current_server
        'https://github.com'
    """

    def __init__(self, config: Config | None = None) -> None:
        self.config = config or Config()

    @property
    def name(self) -> str:
        return "memory"

    def load_config(self) -> Config:
        return self.config

    def save_config(self, config: Config) -> None:
        self.config = config
