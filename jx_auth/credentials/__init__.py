"""Server and user credential storage with pluggable backends.

Key Components:
    - Config / Server / User: the in-memory auth config model
    - ConfigService: a backend plus the config it loads and saves
    - Backends: file, memory, Kubernetes Secrets, Vault, ConfigMap+Vault,
      and the read-only ~/.git-credentials importer
    - Pickers: resolve a single server or user, prompting when needed

Example:
    >>> from jx_auth.credentials import BackendKind, User, create_config_service
    >>> service = create_config_service(BackendKind.FILE, file_name="gitAuth.yaml")
    >>> config = service.load_config()
    >>> service.save_user_auth("https://github.com", User(username="jdoe", api_token="t0k"))
"""

from jx_auth.credentials.backend import ConfigBackend
from jx_auth.credentials.configmap_backend import ConfigMapClient, ConfigMapVaultBackend, KubeConfigMap
from jx_auth.credentials.file_backend import FileBackend, default_config_dir, resolve_config_path
from jx_auth.credentials.git_credentials import GitCredentialsImporter, parse_git_credentials_line
from jx_auth.credentials.kube_backend import (
    InMemorySecretsClient,
    KubeSecret,
    KubeSecretBackend,
    SecretsClient,
)
from jx_auth.credentials.memory_backend import MemoryBackend
from jx_auth.credentials.models import Config, Server, User, url_host_name, urls_equal
from jx_auth.credentials.picker import (
    edit_user_auth,
    pick_or_create_server,
    pick_pipeline_user_auth,
    pick_server,
    pick_server_user_auth,
)
from jx_auth.credentials.pipeline import ensure_default_git_server, merge_pipeline_secrets
from jx_auth.credentials.service import ConfigService, create_config_service
from jx_auth.credentials.vault_backend import (
    InMemoryVaultClient,
    SecretURIResolver,
    VaultBackend,
    VaultClient,
    vault_auth_path,
)
from jx_auth.enums import BackendKind, ServiceKind

__all__ = [
    # Model
    "Config",
    "Server",
    "User",
    "urls_equal",
    "url_host_name",
    # Service
    "ConfigService",
    "create_config_service",
    "BackendKind",
    "ServiceKind",
    # Backends
    "ConfigBackend",
    "FileBackend",
    "MemoryBackend",
    "KubeSecretBackend",
    "VaultBackend",
    "ConfigMapVaultBackend",
    "GitCredentialsImporter",
    "default_config_dir",
    "resolve_config_path",
    "parse_git_credentials_line",
    "vault_auth_path",
    # Clients
    "SecretsClient",
    "InMemorySecretsClient",
    "KubeSecret",
    "ConfigMapClient",
    "KubeConfigMap",
    "VaultClient",
    "InMemoryVaultClient",
    "SecretURIResolver",
    # Pickers and pipeline helpers
    "pick_server",
    "pick_server_user_auth",
    "pick_or_create_server",
    "pick_pipeline_user_auth",
    "edit_user_auth",
    "merge_pipeline_secrets",
    "ensure_default_git_server",
]
