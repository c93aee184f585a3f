"""Pytest configuration and shared fixtures."""

from pathlib import Path

import pytest

from jx_auth.credentials.models import Config, Server, User


@pytest.fixture(autouse=True)
def isolated_environment(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    """Keep tests away from the real config directory and GIT_* variables."""
    monkeypatch.setenv("JX_AUTH_CONFIG_DIR", str(tmp_path / "jx"))
    for name in ("GIT_USERNAME", "GIT_API_TOKEN", "GIT_BEARER_TOKEN"):
        monkeypatch.delenv(name, raising=False)
    for name in (
        "JX_AUTH_BACKEND",
        "JX_AUTH_FILE_NAME",
        "JX_AUTH_BATCH_MODE",
        "JX_AUTH_LOG_LEVEL",
        "JX_AUTH_NAMESPACE",
        "JX_AUTH_GIT_CREDENTIALS_FILE",
    ):
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def github_user() -> User:
    """A valid GitHub user."""
    return User(username="jdoe", api_token="gh-token")


@pytest.fixture
def sample_config() -> Config:
    """Config with a GitHub server (two users) and a GitLab server (one user)."""
    return Config(
        servers=[
            Server(
                url="https://github.com",
                name="GitHub",
                kind="github",
                users=[
                    User(username="jdoe", api_token="gh-token"),
                    User(username="bot", api_token="bot-token"),
                ],
                current_user="jdoe",
            ),
            Server(
                url="https://gitlab.example.com",
                name="GitLab",
                kind="gitlab",
                users=[User(username="jane", api_token="gl-token")],
                current_user="jane",
            ),
        ],
        current_server="https://github.com",
        default_username="jdoe",
    )
