"""Fold pipeline secrets and environment credentials into a loaded config.

Pipelines running in a cluster get their credentials from Kubernetes
secrets labelled ``jenkins.io/kind=<kind>``; outside of any config file the
``GIT_*`` environment variables may provide a user. These helpers apply
both on top of whatever a backend loaded.
"""

import structlog

from jx_auth.credentials.kube_backend import (
    ANNOTATION_NAME,
    ANNOTATION_URL,
    LABEL_KIND,
    LABEL_SERVICE_KIND,
    PASSWORD_KEY,
    USERNAME_KEY,
    KubeSecret,
)
from jx_auth.credentials.models import Config, Server, User
from jx_auth.enums import ServiceKind
from jx_auth.exceptions import BackendError

log = structlog.get_logger(__name__)

DEFAULT_GIT_SERVER_URL = "https://github.com"
GIT_ENV_PREFIX = "GIT"


def merge_pipeline_secrets(
    config: Config,
    secrets: list[KubeSecret] | None,
    kind: str,
    is_cd_pipeline: bool,
) -> None:
    """Merge pipeline secrets of the given kind into ``config``.

    The server kind and name are refreshed from each secret. Inside a CD
    pipeline the secret's username and password also become the pipeline
    user of that server.

    Args:
        config: Config to update in place
        secrets: Secrets to consider; secrets of another kind are ignored
        kind: Auth kind to merge, e.g. "git"
        is_cd_pipeline: Whether we are running inside a CD pipeline
    """
    if secrets is None:
        return
    for secret in secrets:
        if secret.labels.get(LABEL_KIND) != kind:
            continue
        url = secret.annotations.get(ANNOTATION_URL, "")
        if not url:
            continue

        server = config.get_or_create_server(url)
        service_kind = secret.labels.get(LABEL_SERVICE_KIND, "")
        if service_kind:
            server.kind = service_kind
        name = secret.annotations.get(ANNOTATION_NAME, "")
        if name:
            server.name = name

        if not is_cd_pipeline:
            continue
        try:
            username = secret.get_data(USERNAME_KEY)
            password = secret.get_data(PASSWORD_KEY)
        except BackendError as e:
            log.warning("pipeline_secret_skipped", secret=secret.name, reason=e.message)
            continue
        if not username:
            continue

        user = config.find_user_auth(url, username)
        if user is None:
            user = User(username=username, api_token=password)
        elif password:
            user.api_token = password
        config.set_user_auth(url, user)
        config.update_pipeline_server(server, user)
        log.debug("pipeline_secret_merged", secret=secret.name, url=url, username=username)


def ensure_default_git_server(config: Config, git_server_url: str | None = None) -> None:
    """Give a git config without servers a usable default.

    If ``GIT_USERNAME``/``GIT_API_TOKEN`` (or ``GIT_BEARER_TOKEN``) are set,
    a server named "Git" at ``git_server_url`` (default github.com) is added
    with that user. Otherwise an empty GitHub server is added.
    """
    if config.servers:
        return

    user = User.from_environment(GIT_ENV_PREFIX)
    if not user.is_invalid():
        url = git_server_url or DEFAULT_GIT_SERVER_URL
        config.servers = [Server(name="Git", url=url, users=[user])]
        log.debug("default_git_server_from_environment", url=url)
        return

    config.servers = [Server(name="GitHub", url=DEFAULT_GIT_SERVER_URL, kind=ServiceKind.GITHUB.value)]
