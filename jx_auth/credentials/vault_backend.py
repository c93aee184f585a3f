"""HashiCorp Vault backend.

The auth config is stored as a YAML blob under the ``yaml`` data key of a
deterministic Vault path derived from the config name, e.g.
``secret/auth/gitAuth.yaml``.

This module also provides ``SecretURIResolver``, which replaces
``vault:<path>:<key>`` references embedded in text with the referenced
Vault values.
"""

import logging
import re
from typing import Any, Protocol

from jx_auth.credentials.models import Config
from jx_auth.exceptions import BackendError, SecretReferenceError

logger = logging.getLogger(__name__)

VAULT_AUTH_PATH_PREFIX = "secret/auth"
YAML_DATA_KEY = "yaml"


def vault_auth_path(secret_name: str) -> str:
    """Vault path the auth config named ``secret_name`` is stored at."""
    return f"{VAULT_AUTH_PATH_PREFIX}/{secret_name.strip('/')}"


class VaultClient(Protocol):
    """The Vault key/value operations the backends need."""

    def read(self, path: str) -> dict[str, Any] | None:
        """Return the secret data at ``path``, or None if nothing is stored."""
        ...

    def write(self, path: str, data: dict[str, Any]) -> None:
        ...


class InMemoryVaultClient:
    """Dictionary backed ``VaultClient`` for tests and dry runs."""

    def __init__(self, secrets: dict[str, dict[str, Any]] | None = None) -> None:
        self.secrets: dict[str, dict[str, Any]] = dict(secrets or {})

    def read(self, path: str) -> dict[str, Any] | None:
        data = self.secrets.get(path)
        return dict(data) if data is not None else None

    def write(self, path: str, data: dict[str, Any]) -> None:
        self.secrets[path] = dict(data)


class SecretURIResolver:
    """Replace ``vault:<path>:<key>`` references with values read from Vault.

    Example:
        >>> resolver = SecretURIResolver(client)
        >>> resolver.replace_uris("apitoken: vault:jx/pipelineUser:token")
        'apitoken: s3cr3t'
    """

    URI_PATTERN = re.compile(r"vault:(?P<path>[A-Za-z0-9_./-]+):(?P<key>[A-Za-z0-9_.-]+)")

    def __init__(self, client: VaultClient) -> None:
        self.client = client

    def replace_uris(self, text: str) -> str:
        """Return ``text`` with every secret reference replaced.

        Raises:
            SecretReferenceError: If a referenced path or key does not exist
                or Vault can not be read
        """
        cache: dict[str, dict[str, Any]] = {}

        def replace(match: re.Match[str]) -> str:
            path = match.group("path")
            key = match.group("key")
            if path not in cache:
                try:
                    data = self.client.read(path)
                except Exception as e:
                    raise SecretReferenceError(f"reading vault path {path!r}: {e}", backend="vault") from e
                if data is None:
                    raise SecretReferenceError(f"no secret found at vault path {path!r}", backend="vault")
                cache[path] = data
            if key not in cache[path]:
                raise SecretReferenceError(f"no key {key!r} in vault path {path!r}", backend="vault")
            return str(cache[path][key])

        return self.URI_PATTERN.sub(replace, text)


class VaultBackend:
    """Auth config storage in a Vault key/value path.

    Example:
        >>> backend = VaultBackend("gitAuth.yaml", client)
        >>> backend.save_config(config)
        >>> backend.load_config() == config
        True
    """

    def __init__(self, secret_name: str, client: VaultClient) -> None:
        """Initialize Vault backend.

        Args:
            secret_name: Name of the auth config, e.g. "gitAuth.yaml"
            client: Vault client used for reads and writes
        """
        self.secret_name = secret_name
        self.client = client
        self.path = vault_auth_path(secret_name)

    @property
    def name(self) -> str:
        return "vault"

    def load_config(self) -> Config:
        """Load the config, returning an empty config if nothing is stored.

        Raises:
            BackendError: If Vault can not be read
            ConfigurationError: If the stored YAML is invalid
        """
        try:
            data = self.client.read(self.path)
        except Exception as e:
            raise BackendError(f"reading auth config from vault path {self.path!r}: {e}", backend=self.name) from e

        text = (data or {}).get(YAML_DATA_KEY)
        if not text:
            return Config()
        return Config.from_yaml(text, source=f"vault:{self.path}")

    def save_config(self, config: Config) -> None:
        """Write the config as YAML to the Vault path.

        Raises:
            BackendError: If Vault can not be written
        """
        try:
            self.client.write(self.path, {YAML_DATA_KEY: config.to_yaml()})
        except Exception as e:
            raise BackendError(f"writing auth config to vault path {self.path!r}: {e}", backend=self.name) from e
        logger.debug(f"Saved auth config to vault path {self.path}")
