"""Unit tests for jx_auth/credentials/kube_backend.py - Kubernetes Secret backend."""

import base64
import logging
from unittest.mock import Mock

import pytest

from jx_auth.credentials.kube_backend import (
    InMemorySecretsClient,
    KubeSecret,
    KubeSecretBackend,
)
from jx_auth.credentials.models import Config, Server, User
from jx_auth.exceptions import BackendError, MissingCredentialError

NAMESPACE = "test"


def make_secret(
    name: str,
    kind: str = "git",
    service_kind: str = "github",
    github_app_owner: str = "",
    server_name: str = "GitHub",
    url: str = "https://github.com",
    username: str = "test",
    password: str = "test",
) -> KubeSecret:
    labels = {"jenkins.io/kind": kind, "jenkins.io/service-kind": service_kind}
    if github_app_owner:
        labels["jenkins.io/githubapp-owner"] = github_app_owner
    annotations = {"jenkins.io/name": server_name}
    if url:
        annotations["jenkins.io/url"] = url
    secret = KubeSecret(name=name, namespace=NAMESPACE, labels=labels, annotations=annotations)
    if username:
        secret.set_data("username", username)
    if password:
        secret.set_data("password", password)
    return secret


def github_server(users: list[User], current_user: str = "test") -> Server:
    return Server(url="https://github.com", name="GitHub", kind="github", users=users, current_user=current_user)


class TestKubeSecret:
    """Tests for the KubeSecret view."""

    def test_data_is_base64(self):
        """set_data should store base64 and get_data decode it."""
        secret = KubeSecret(name="s")

        secret.set_data("username", "jdoe")

        assert secret.data["username"] == base64.b64encode(b"jdoe").decode()
        assert secret.get_data("username") == "jdoe"
        assert secret.get_data("missing") == ""

    def test_invalid_base64(self):
        """Data that is not base64 should raise BackendError naming the secret."""
        secret = KubeSecret(name="broken", data={"username": "!!!notbase64"})

        with pytest.raises(BackendError) as exc_info:
            secret.get_data("username")

        assert "'broken'" in exc_info.value.message
        assert exc_info.value.backend == "kubernetes"

    def test_invalid_utf8(self):
        """Data that does not decode to UTF-8 should raise BackendError."""
        secret = KubeSecret(name="broken", data={"password": base64.b64encode(b"\xff\xfe").decode()})

        with pytest.raises(BackendError):
            secret.get_data("password")


class TestInMemorySecretsClient:
    """Tests for the in-memory secrets client."""

    def test_selector_requires_label(self):
        """A selector should only match secrets carrying the label."""
        client = InMemorySecretsClient([make_secret("a"), KubeSecret(name="b", namespace=NAMESPACE)])

        names = [secret.name for secret in client.list_secrets(NAMESPACE, "jenkins.io/kind=git")]

        assert names == ["a"]
        assert client.list_secrets("other", "jenkins.io/kind=git") == []

    def test_create_existing_fails(self):
        """Creating a secret twice should fail."""
        client = InMemorySecretsClient([make_secret("a")])

        with pytest.raises(BackendError):
            client.create_secret(NAMESPACE, make_secret("a"))


class TestKubeSecretBackendLoad:
    """Tests for KubeSecretBackend.load_config."""

    def test_load_secret(self):
        """A secret should become a server with a current user."""
        backend = KubeSecretBackend(InMemorySecretsClient([make_secret("s")]), NAMESPACE, "git", "github")

        config = backend.load_config()

        assert config == Config(
            servers=[github_server([User(username="test", api_token="test")])],
            current_server="https://github.com",
            pipeline_server="https://github.com",
            pipeline_username="test",
            default_username="test",
        )

    def test_load_github_app_secret(self):
        """A GitHub App secret should not set current or pipeline users."""
        client = InMemorySecretsClient([make_secret("s", github_app_owner="test-app-owner")])

        config = KubeSecretBackend(client, NAMESPACE, "git", "github").load_config()

        assert config == Config(
            servers=[
                github_server(
                    [User(username="test", api_token="test", github_app_owner="test-app-owner")],
                    current_user="",
                )
            ],
            current_server="https://github.com",
            pipeline_server="https://github.com",
        )

    def test_github_app_secrets_share_server(self):
        """GitHub App secrets for one URL should share one server."""
        client = InMemorySecretsClient(
            [
                make_secret("gha-1", github_app_owner="app-owner-1", username="github-app[bot]", password="password-1"),
                make_secret("gha-2", github_app_owner="app-owner-2", username="github-app[bot]", password="password-2"),
            ]
        )

        config = KubeSecretBackend(client, NAMESPACE, "git", "github").load_config()

        assert len(config.servers) == 1
        assert [(u.api_token, u.github_app_owner) for u in config.servers[0].users] == [
            ("password-1", "app-owner-1"),
            ("password-2", "app-owner-2"),
        ]
        assert config.servers[0].current_user == ""
        assert config.pipeline_username == ""

    def test_selects_by_kind_without_service_kind(self):
        """Without a service kind the kind label should select secrets."""
        client = InMemorySecretsClient([make_secret("s", service_kind="")])

        config = KubeSecretBackend(client, NAMESPACE, "git").load_config()

        assert config.servers[0].kind == ""
        assert config.servers[0].current_user == "test"

    def test_selects_by_service_kind_without_kind(self):
        """A service kind should select secrets even without a kind."""
        client = InMemorySecretsClient([make_secret("s", kind="")])

        config = KubeSecretBackend(client, NAMESPACE, "", "github").load_config()

        assert config.servers[0].kind == "github"

    def test_secret_without_kind_labels(self):
        """A secret without any kind labels should not be loaded."""
        secret = KubeSecret(
            name="s",
            namespace=NAMESPACE,
            annotations={"jenkins.io/url": "https://github.com", "jenkins.io/name": "GitHub"},
        )
        secret.set_data("username", "test")
        secret.set_data("password", "test")

        config = KubeSecretBackend(InMemorySecretsClient([secret]), NAMESPACE, "git", "github").load_config()

        assert config == Config()

    def test_load_without_name(self):
        """A secret without a server name should give an unnamed server."""
        client = InMemorySecretsClient([make_secret("s", server_name="")])

        config = KubeSecretBackend(client, NAMESPACE, "git", "github").load_config()

        assert config.servers[0].name == ""

    @pytest.mark.parametrize(
        "overrides",
        [
            {"url": ""},
            {"username": ""},
            {"password": ""},
        ],
    )
    def test_incomplete_secrets_skipped(self, overrides):
        """Secrets without URL, username or password should be skipped."""
        client = InMemorySecretsClient([make_secret("s", **overrides)])

        config = KubeSecretBackend(client, NAMESPACE, "git", "github").load_config()

        assert config.servers == []

    def test_undecodable_secret_skipped(self, caplog):
        """A secret with corrupt data should be skipped with a warning."""
        broken = make_secret("broken", url="https://gitlab.example.com")
        broken.data["username"] = "!!!notbase64"
        client = InMemorySecretsClient([broken, make_secret("good")])

        with caplog.at_level(logging.WARNING):
            config = KubeSecretBackend(client, NAMESPACE, "git", "github").load_config()

        assert config.get_server_urls() == ["https://github.com"]
        assert "Skipping secret broken" in caplog.text

    def test_list_failure(self):
        """A failing list should raise BackendError."""
        client = Mock()
        client.list_secrets.side_effect = RuntimeError("forbidden")

        with pytest.raises(BackendError) as exc_info:
            KubeSecretBackend(client, NAMESPACE, "git").load_config()

        assert exc_info.value.backend == "kubernetes"


class TestKubeSecretBackendSave:
    """Tests for KubeSecretBackend.save_config."""

    def test_save_creates_secret(self):
        """Saving should create a labelled secret per server."""
        client = InMemorySecretsClient()
        backend = KubeSecretBackend(client, NAMESPACE, "git", "github")
        config = Config(servers=[github_server([User(username="test", api_token="test")])])

        backend.save_config(config)

        secret = client.get_secret(NAMESPACE, "jx-pipeline-git-github-github")
        assert secret is not None
        assert secret.labels == {
            "jenkins.io/credentials-type": "usernamePassword",
            "jenkins.io/created-by": "jx",
            "jenkins.io/kind": "git",
            "jenkins.io/service-kind": "github",
        }
        assert secret.annotations == {
            "jenkins.io/credentials-description": "Configuration and credentials for server https://github.com",
            "jenkins.io/url": "https://github.com",
            "jenkins.io/name": "GitHub",
        }
        assert secret.get_data("username") == "test"
        assert secret.get_data("password") == "test"

    def test_save_then_load(self):
        """Saved servers should load back with their current user."""
        client = InMemorySecretsClient()
        backend = KubeSecretBackend(client, NAMESPACE, "git", "github")
        backend.save_config(Config(servers=[github_server([User(username="test", api_token="test")])]))

        config = backend.load_config()

        assert config.servers == [github_server([User(username="test", api_token="test")])]

    def test_save_updates_and_merges_metadata(self):
        """An existing secret should be updated, keeping foreign labels."""
        existing = make_secret("jx-pipeline-git-github-github", password="old")
        existing.labels["team"] = "platform"
        client = InMemorySecretsClient([existing])
        backend = KubeSecretBackend(client, NAMESPACE, "git", "github")

        backend.save_config(Config(servers=[github_server([User(username="test", api_token="new")])]))

        secret = client.get_secret(NAMESPACE, "jx-pipeline-git-github-github")
        assert secret.labels["team"] == "platform"
        assert secret.labels["jenkins.io/created-by"] == "jx"
        assert secret.get_data("password") == "new"

    def test_save_password_fallback(self):
        """The password should be used when there is no API token."""
        client = InMemorySecretsClient()
        backend = KubeSecretBackend(client, NAMESPACE, "git", "github")

        backend.save_config(Config(servers=[github_server([User(username="test", password="pw")])]))

        assert client.get_secret(NAMESPACE, "jx-pipeline-git-github-github").get_data("password") == "pw"

    def test_save_github_app_owner(self):
        """The app owner should name an unnamed server and be labelled."""
        client = InMemorySecretsClient()
        backend = KubeSecretBackend(client, NAMESPACE, "git", "github")
        server = Server(
            url="https://github.com",
            kind="github",
            users=[User(username="bot", api_token="t", github_app_owner="Acme")],
            current_user="bot",
        )

        backend.save_config(Config(servers=[server]))

        secret = client.get_secret(NAMESPACE, "jx-pipeline-git-github-acme")
        assert secret.labels["jenkins.io/githubapp-owner"] == "Acme"

    def test_missing_current_user(self):
        """A server without current user should fail."""
        backend = KubeSecretBackend(InMemorySecretsClient(), NAMESPACE, "git")

        with pytest.raises(MissingCredentialError) as exc_info:
            backend.save_config(Config(servers=[github_server([], current_user="")]))

        assert exc_info.value.message == "current user for 'https://github.com' server is empty"

    def test_empty_username(self):
        """A current user without username should fail."""
        backend = KubeSecretBackend(InMemorySecretsClient(), NAMESPACE, "git")

        with pytest.raises(MissingCredentialError) as exc_info:
            backend.save_config(Config(servers=[github_server([User(api_token="t")], current_user="")]))

        assert exc_info.value.message == "empty username"

    def test_empty_credentials(self):
        """A current user without token or password should fail."""
        backend = KubeSecretBackend(InMemorySecretsClient(), NAMESPACE, "git")

        with pytest.raises(MissingCredentialError) as exc_info:
            backend.save_config(Config(servers=[github_server([User(username="test")])]))

        assert exc_info.value.message == "empty credentials"

    def test_write_failure(self):
        """A failing write should raise BackendError."""
        client = Mock()
        client.get_secret.return_value = None
        client.create_secret.side_effect = RuntimeError("quota exceeded")
        backend = KubeSecretBackend(client, NAMESPACE, "git", "github")

        with pytest.raises(BackendError) as exc_info:
            backend.save_config(Config(servers=[github_server([User(username="test", api_token="t")])]))

        assert "quota exceeded" in exc_info.value.message
