"""Enumerations for jx-auth backend and service kinds."""

from enum import Enum


class BackendKind(str, Enum):
    """Storage media an auth config can be loaded from or saved to.

    - file: YAML file in the local config directory
    - memory: value held in process, for tests and ephemeral sessions
    - kubernetes: one Kubernetes Secret per server
    - vault: YAML blob at a Vault path
    - configmap-vault: read-only ConfigMap with Vault secret references
    - git-credentials: read-only import of a ~/.git-credentials file
    """

    FILE = "file"
    MEMORY = "memory"
    KUBERNETES = "kubernetes"
    VAULT = "vault"
    CONFIGMAP_VAULT = "configmap-vault"
    GIT_CREDENTIALS = "git-credentials"

    def __str__(self) -> str:
        return self.value


class ServiceKind(str, Enum):
    """Git provider kinds a server can be tagged with."""

    GITHUB = "github"
    GITLAB = "gitlab"
    BITBUCKET_CLOUD = "bitbucketcloud"
    BITBUCKET_SERVER = "bitbucketserver"
    GITEA = "gitea"
    GERRIT = "gerrit"

    def __str__(self) -> str:
        return self.value
