"""Kubernetes Secret backend for in-cluster pipelines.

Each server is stored in its own Secret holding the server's current user as
``username``/``password`` data, with the server URL, name and kinds kept in
labels and annotations:

    metadata:
      name: jx-pipeline-git-github-github
      labels:
        jenkins.io/kind: git
        jenkins.io/service-kind: github
        jenkins.io/created-by: jx
        jenkins.io/credentials-type: usernamePassword
      annotations:
        jenkins.io/url: https://github.com
        jenkins.io/name: GitHub
        jenkins.io/credentials-description: Configuration and credentials for server https://github.com
    data:
      username: <base64>
      password: <base64>

The Kubernetes API is reached through an injected ``SecretsClient`` so the
backend can be used with any client library, or with ``InMemorySecretsClient``
in tests.
"""

import base64
import binascii
import logging
from typing import Protocol

from pydantic import BaseModel, Field

from jx_auth.credentials.models import Config, Server, User, urls_equal
from jx_auth.exceptions import BackendError, MissingCredentialError

logger = logging.getLogger(__name__)

LABEL_KIND = "jenkins.io/kind"
LABEL_SERVICE_KIND = "jenkins.io/service-kind"
LABEL_CREATED_BY = "jenkins.io/created-by"
LABEL_CREDENTIALS_TYPE = "jenkins.io/credentials-type"
LABEL_GITHUB_APP_OWNER = "jenkins.io/githubapp-owner"
VALUE_CREATED_BY_JX = "jx"
VALUE_CREDENTIAL_TYPE_USERNAME_PASSWORD = "usernamePassword"
ANNOTATION_URL = "jenkins.io/url"
ANNOTATION_NAME = "jenkins.io/name"
ANNOTATION_CREDENTIALS_DESCRIPTION = "jenkins.io/credentials-description"
USERNAME_KEY = "username"
PASSWORD_KEY = "password"
SECRET_PREFIX = "jx-pipeline"


class KubeSecret(BaseModel):
    """Minimal view of a Kubernetes Secret.

    ``data`` values are base64 encoded, as in the Kubernetes API.
    """

    name: str
    namespace: str = ""
    labels: dict[str, str] = Field(default_factory=dict)
    annotations: dict[str, str] = Field(default_factory=dict)
    data: dict[str, str] = Field(default_factory=dict)

    def get_data(self, key: str) -> str:
        """Return the decoded value of a data key, or "" if absent.

        Raises:
            BackendError: If the value is not base64 encoded UTF-8 text
        """
        value = self.data.get(key)
        if not value:
            return ""
        try:
            return base64.b64decode(value, validate=True).decode("utf-8")
        except (binascii.Error, UnicodeDecodeError) as e:
            raise BackendError(f"invalid {key!r} data in secret {self.name!r}: {e}", backend="kubernetes") from e

    def set_data(self, key: str, value: str) -> None:
        self.data[key] = base64.b64encode(value.encode("utf-8")).decode("ascii")


class SecretsClient(Protocol):
    """The Kubernetes Secret operations the backend needs."""

    def list_secrets(self, namespace: str, label_selector: str) -> list[KubeSecret]:
        ...

    def get_secret(self, namespace: str, name: str) -> KubeSecret | None:
        """Return the secret, or None if it does not exist."""
        ...

    def create_secret(self, namespace: str, secret: KubeSecret) -> KubeSecret:
        ...

    def update_secret(self, namespace: str, secret: KubeSecret) -> KubeSecret:
        ...


def _matches_selector(labels: dict[str, str], label_selector: str) -> bool:
    for requirement in filter(None, (part.strip() for part in label_selector.split(","))):
        key, _, value = requirement.partition("=")
        if key not in labels or labels[key] != value:
            return False
    return True


class InMemorySecretsClient:
    """Dictionary backed ``SecretsClient`` for tests and dry runs.

    Supports equality label selectors of the form ``k1=v1,k2=v2``.
    """

    def __init__(self, secrets: list[KubeSecret] | None = None) -> None:
        self._secrets: dict[tuple[str, str], KubeSecret] = {}
        for secret in secrets or []:
            self._secrets[(secret.namespace, secret.name)] = secret.model_copy(deep=True)

    def list_secrets(self, namespace: str, label_selector: str) -> list[KubeSecret]:
        return [
            secret.model_copy(deep=True)
            for (ns, _), secret in self._secrets.items()
            if ns == namespace and _matches_selector(secret.labels, label_selector)
        ]

    def get_secret(self, namespace: str, name: str) -> KubeSecret | None:
        secret = self._secrets.get((namespace, name))
        return secret.model_copy(deep=True) if secret else None

    def create_secret(self, namespace: str, secret: KubeSecret) -> KubeSecret:
        if (namespace, secret.name) in self._secrets:
            raise BackendError(f"secret {secret.name!r} already exists", backend="kubernetes")
        stored = secret.model_copy(deep=True, update={"namespace": namespace})
        self._secrets[(namespace, secret.name)] = stored
        return stored.model_copy(deep=True)

    def update_secret(self, namespace: str, secret: KubeSecret) -> KubeSecret:
        if (namespace, secret.name) not in self._secrets:
            raise BackendError(f"secret {secret.name!r} not found", backend="kubernetes")
        stored = secret.model_copy(deep=True, update={"namespace": namespace})
        self._secrets[(namespace, secret.name)] = stored
        return stored.model_copy(deep=True)


class KubeSecretBackend:
    """Auth config storage with one Kubernetes Secret per server.

    Only the current user of each server is stored. Loading reconstructs one
    server per secret, except that GitHub App token secrets (labelled with
    ``jenkins.io/githubapp-owner``) for the same URL share one server with
    one user per owner and no current user.

    Example:
        >>> backend = KubeSecretBackend(client, namespace="jx", kind="git")
        >>> config = backend.load_config()
    """

    def __init__(
        self,
        client: SecretsClient,
        namespace: str,
        kind: str,
        service_kind: str = "",
    ) -> None:
        """Initialize Kubernetes Secret backend.

        Args:
            client: Client used to read and write secrets
            namespace: Namespace holding the secrets
            kind: Kind of auth, e.g. "git"; used to select and name secrets
            service_kind: Optional service kind, e.g. "github"; when set it
                selects secrets instead of ``kind``
        """
        self.client = client
        self.namespace = namespace
        self.kind = kind
        self.service_kind = service_kind

    @property
    def name(self) -> str:
        return "kubernetes"

    @property
    def label_selector(self) -> str:
        if self.service_kind:
            return f"{LABEL_SERVICE_KIND}={self.service_kind}"
        return f"{LABEL_KIND}={self.kind}"

    def load_config(self) -> Config:
        """Build the config from the selected secrets.

        Secrets without a URL annotation, username or password are skipped.

        Raises:
            BackendError: If the secrets can not be listed
        """
        try:
            secrets = self.client.list_secrets(self.namespace, self.label_selector)
        except BackendError:
            raise
        except Exception as e:
            raise BackendError(
                f"retrieving config from secrets in namespace {self.namespace!r}: {e}",
                backend=self.name,
            ) from e

        config = Config()
        for secret in secrets:
            url = secret.annotations.get(ANNOTATION_URL, "")
            if not url:
                continue
            user = self._user_from_secret(secret)
            if user is None:
                continue
            user.github_app_owner = secret.labels.get(LABEL_GITHUB_APP_OWNER, "")

            server = None
            # GitHub App tokens for the same server share one server entry
            if user.github_app_owner:
                server = next((s for s in config.servers if urls_equal(s.url, url)), None)

            if server is not None:
                server.users.append(user)
            else:
                server = Server(
                    url=url,
                    name=secret.annotations.get(ANNOTATION_NAME, ""),
                    kind=secret.labels.get(LABEL_SERVICE_KIND, ""),
                    users=[user],
                )
                if not user.github_app_owner:
                    server.current_user = user.username
                config.servers.append(server)

            config.current_server = server.url
            config.pipeline_server = server.url
            if not user.github_app_owner:
                config.pipeline_username = user.username
                config.default_username = user.username

        return config

    def save_config(self, config: Config) -> None:
        """Create or update one secret per server.

        Existing labels and annotations are merged with ours rather than
        replaced.

        Raises:
            MissingCredentialError: If a server's current user is missing or
                has no username or no token/password
            BackendError: If a secret can not be read or written
        """
        for server in config.servers:
            user = server.current_auth()
            if user is None:
                raise MissingCredentialError(f"current user for {server.url!r} server is empty", reference=server.url)
            if not user.username:
                raise MissingCredentialError("empty username", reference=server.url)
            if not user.api_token and not user.password:
                raise MissingCredentialError("empty credentials", reference=server.url)

            name = self.secret_name(server)
            labels = self._labels(server)
            annotations = self._annotations(server)

            secret = self._get_secret(name)
            create = secret is None
            if secret is None:
                secret = KubeSecret(name=name, namespace=self.namespace, labels=labels, annotations=annotations)
            else:
                secret.labels = {**secret.labels, **labels}
                secret.annotations = {**secret.annotations, **annotations}

            secret.set_data(USERNAME_KEY, user.username)
            secret.set_data(PASSWORD_KEY, user.api_token or user.password)
            if user.github_app_owner:
                secret.labels[LABEL_GITHUB_APP_OWNER] = user.github_app_owner

            operation = "creating" if create else "updating"
            try:
                if create:
                    self.client.create_secret(self.namespace, secret)
                else:
                    self.client.update_secret(self.namespace, secret)
            except Exception as e:
                raise BackendError(f"{operation} secret {name!r}: {e}", backend=self.name) from e

            logger.debug(f"Saved credentials for {server.url} in secret {name}")

    def secret_name(self, server: Server) -> str:
        """Deterministic secret name for a server.

        ``jx-pipeline-<kind>-<serviceKind>-<name>``, lower-cased, with empty
        parts left out. The GitHub App owner stands in for a missing name.
        """
        name = server.name
        if not name:
            current = server.current_auth()
            name = current.github_app_owner if current else ""
        parts = [SECRET_PREFIX, self.kind.lower(), server.kind.lower(), name.lower()]
        return "-".join(part for part in parts if part)

    def _get_secret(self, name: str) -> KubeSecret | None:
        try:
            return self.client.get_secret(self.namespace, name)
        except Exception as e:
            raise BackendError(f"getting secret {name!r}: {e}", backend=self.name) from e

    def _labels(self, server: Server) -> dict[str, str]:
        return {
            LABEL_CREDENTIALS_TYPE: VALUE_CREDENTIAL_TYPE_USERNAME_PASSWORD,
            LABEL_CREATED_BY: VALUE_CREATED_BY_JX,
            LABEL_KIND: self.kind,
            LABEL_SERVICE_KIND: server.kind,
        }

    def _annotations(self, server: Server) -> dict[str, str]:
        return {
            ANNOTATION_CREDENTIALS_DESCRIPTION: f"Configuration and credentials for server {server.url}",
            ANNOTATION_URL: server.url,
            ANNOTATION_NAME: server.name,
        }

    def _user_from_secret(self, secret: KubeSecret) -> User | None:
        try:
            username = secret.get_data(USERNAME_KEY)
            password = secret.get_data(PASSWORD_KEY)
        except BackendError as e:
            logger.warning(f"Skipping secret {secret.name}: {e.message}")
            return None
        if not username:
            logger.warning(f"Skipping secret {secret.name}: no user name found")
            return None
        if not password:
            logger.warning(f"Skipping secret {secret.name}: no password found")
            return None
        return User(username=username, api_token=password)
