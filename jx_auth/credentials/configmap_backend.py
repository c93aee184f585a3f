"""Read-only ConfigMap backend with Vault secret references.

Install time tooling publishes the auth config as a YAML entry of a
ConfigMap labelled ``jenkins.io/config-type=auth``. Tokens are not stored in
the ConfigMap itself but referenced as ``vault:<path>:<key>``, which are
resolved against Vault when loading.

Saving is a no-op so that automated saves never overwrite the install time
configuration.
"""

import logging
from typing import Protocol

from pydantic import BaseModel, Field

from jx_auth.credentials.models import Config
from jx_auth.credentials.vault_backend import SecretURIResolver, VaultClient
from jx_auth.exceptions import BackendError, ConfigurationError

logger = logging.getLogger(__name__)

LABEL_CONFIG_TYPE = "jenkins.io/config-type"
VALUE_CONFIG_TYPE_AUTH = "auth"


class KubeConfigMap(BaseModel):
    """Minimal view of a Kubernetes ConfigMap."""

    name: str
    namespace: str = ""
    labels: dict[str, str] = Field(default_factory=dict)
    data: dict[str, str] = Field(default_factory=dict)


class ConfigMapClient(Protocol):
    def list_config_maps(self, namespace: str, label_selector: str) -> list[KubeConfigMap]:
        ...


class ConfigMapVaultBackend:
    """Auth config loaded from a ConfigMap entry with Vault secret references.

    Example:
        >>> backend = ConfigMapVaultBackend("gitAuth.yaml", configmaps, vault, namespace="jx")
        >>> config = backend.load_config()
    """

    def __init__(
        self,
        secret_name: str,
        config_maps: ConfigMapClient,
        vault: VaultClient,
        namespace: str,
    ) -> None:
        """Initialize ConfigMap backend.

        Args:
            secret_name: ConfigMap data key holding the YAML, e.g. "gitAuth.yaml"
            config_maps: Client used to list ConfigMaps
            vault: Client used to resolve ``vault:`` references
            namespace: Namespace holding the ConfigMap
        """
        self.secret_name = secret_name
        self.config_maps = config_maps
        self.resolver = SecretURIResolver(vault)
        self.namespace = namespace

    @property
    def name(self) -> str:
        return "configmap-vault"

    @property
    def label_selector(self) -> str:
        return f"{LABEL_CONFIG_TYPE}={VALUE_CONFIG_TYPE_AUTH}"

    def load_config(self) -> Config:
        """Load and decode the auth config.

        Raises:
            BackendError: If ConfigMaps can not be listed
            ConfigurationError: If no ConfigMap or data key matches, or the
                YAML is invalid
            SecretReferenceError: If a Vault reference can not be resolved
        """
        try:
            config_maps = self.config_maps.list_config_maps(self.namespace, self.label_selector)
        except Exception as e:
            raise BackendError(
                f"listing config maps with selector {self.label_selector!r}: {e}", backend=self.name
            ) from e

        if not config_maps:
            raise ConfigurationError(
                f"no config map found in namespace {self.namespace!r} with selector {self.label_selector!r}"
            )

        text = None
        source = ""
        for config_map in config_maps:
            if self.secret_name in config_map.data:
                text = config_map.data[self.secret_name]
                source = f"configmap {config_map.name}/{self.secret_name}"
                break
        if text is None:
            raise ConfigurationError(
                f"no key {self.secret_name!r} found in config maps with selector {self.label_selector!r}"
            )

        text = self.resolver.replace_uris(text)
        return Config.from_yaml(text, source=source)

    def save_config(self, config: Config) -> None:
        logger.debug(f"Not saving auth config {self.secret_name}: config map backend is read-only")
