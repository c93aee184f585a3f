"""Config service: one backend plus the in-memory auth config it manages.

Callers obtain a ``ConfigService`` for a backend, call ``load_config`` to
hydrate the config, query or mutate it, and call ``save_config`` to persist.
``save_user_auth`` and ``delete_server`` combine a mutation with a save.

Example:
    >>> service = create_config_service(BackendKind.FILE, file_name="gitAuth.yaml")
    >>> service.load_config()
    >>> service.save_user_auth("https://github.com", User(username="jdoe", api_token="t0k"))
"""

from pathlib import Path

import structlog

from jx_auth.credentials.backend import ConfigBackend
from jx_auth.credentials.configmap_backend import ConfigMapClient, ConfigMapVaultBackend
from jx_auth.credentials.file_backend import FileBackend
from jx_auth.credentials.git_credentials import GitCredentialsImporter
from jx_auth.credentials.kube_backend import KubeSecretBackend, SecretsClient
from jx_auth.credentials.memory_backend import MemoryBackend
from jx_auth.credentials.models import Config, User
from jx_auth.credentials.vault_backend import VaultBackend, VaultClient
from jx_auth.enums import BackendKind
from jx_auth.exceptions import ConfigurationError

log = structlog.get_logger(__name__)


class ConfigService:
    """Owns the in-memory auth config for one backend.

    There is no locking: one service instance is expected to be used by one
    caller at a time.
    """

    def __init__(self, backend: ConfigBackend) -> None:
        self.backend = backend
        self._config: Config | None = None

    @property
    def config(self) -> Config:
        """The current config, initialised to an empty config on first use."""
        if self._config is None:
            self._config = Config()
        return self._config

    def set_config(self, config: Config) -> None:
        """Replace the in-memory config without touching the backend."""
        self._config = config

    def load_config(self) -> Config:
        """Load the config from the backend, replacing the in-memory config.

        A backend with nothing to load (e.g. a missing git credentials file)
        yields an empty config.
        """
        loaded = self.backend.load_config()
        self._config = loaded if loaded is not None else Config()
        log.debug("config_loaded", backend=self.backend.name, servers=len(self._config.servers))
        return self._config

    def save_config(self) -> None:
        self.backend.save_config(self.config)
        log.debug("config_saved", backend=self.backend.name, servers=len(self.config.servers))

    def save_user_auth(self, url: str, user: User) -> None:
        """Store ``user`` for the server at ``url`` and persist.

        The user and server become the default and current ones. The
        pipeline server and username are only set if not set already.
        """
        config = self.config
        config.set_user_auth(url, user)
        if user.username:
            config.default_username = user.username
        if not config.pipeline_username:
            config.pipeline_username = user.username
        if not config.pipeline_server:
            config.pipeline_server = url
        config.current_server = url
        self.save_config()
        log.info("user_auth_saved", url=url, username=user.username, backend=self.backend.name)

    def delete_server(self, url: str) -> None:
        self.config.delete_server(url)
        self.save_config()
        log.info("server_deleted", url=url, backend=self.backend.name)

    def import_config(self, other: Config | None) -> None:
        """Merge another config into the in-memory config (no save)."""
        self.config.merge(other)


def create_config_service(
    kind: BackendKind | str,
    *,
    file_name: str = "",
    config_dir: Path | None = None,
    secrets_client: SecretsClient | None = None,
    config_map_client: ConfigMapClient | None = None,
    vault_client: VaultClient | None = None,
    namespace: str = "jx",
    server_kind: str = "git",
    service_kind: str = "",
    git_credentials_path: Path | None = None,
    config: Config | None = None,
) -> ConfigService:
    """Create a config service for the given backend kind.

    Args:
        kind: Which backend to use
        file_name: Config file name (file backend), or secret / data key name
            (vault and configmap-vault backends)
        config_dir: Directory for bare file names (file backend)
        secrets_client: Kubernetes Secret client (kubernetes backend)
        config_map_client: Kubernetes ConfigMap client (configmap-vault backend)
        vault_client: Vault client (vault and configmap-vault backends)
        namespace: Kubernetes namespace
        server_kind: Kind of auth such as "git" (kubernetes backend)
        service_kind: Optional service kind such as "github" (kubernetes backend)
        git_credentials_path: File to import (git-credentials backend)
        config: Initial config (memory backend)

    Returns:
        ConfigService wrapping the selected backend

    Raises:
        ConfigurationError: If a client required by the backend is missing
    """
    kind = BackendKind(kind)
    backend: ConfigBackend

    if kind == BackendKind.FILE:
        backend = FileBackend(file_name, config_dir=config_dir)
    elif kind == BackendKind.MEMORY:
        backend = MemoryBackend(config)
    elif kind == BackendKind.KUBERNETES:
        if secrets_client is None:
            raise ConfigurationError("the kubernetes backend requires a secrets client")
        backend = KubeSecretBackend(secrets_client, namespace, server_kind, service_kind)
    elif kind == BackendKind.VAULT:
        if vault_client is None:
            raise ConfigurationError("the vault backend requires a vault client")
        backend = VaultBackend(file_name, vault_client)
    elif kind == BackendKind.CONFIGMAP_VAULT:
        if config_map_client is None or vault_client is None:
            raise ConfigurationError("the configmap-vault backend requires a config map client and a vault client")
        backend = ConfigMapVaultBackend(file_name, config_map_client, vault_client, namespace)
    else:
        backend = GitCredentialsImporter(git_credentials_path)

    return ConfigService(backend)
