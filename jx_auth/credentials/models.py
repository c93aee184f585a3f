"""Auth config data models.

This module defines the in-memory credential model shared by every storage
backend: a ``Config`` holds an ordered list of ``Server`` entries, each holding
an ordered list of ``User`` credentials, plus "current" and pipeline pointers.

Server identity is the URL compared with ``urls_equal``, which ignores a single
trailing slash. Usernames are compared exactly (case-sensitive).

Example:
    >>> config = Config()
    >>> config.set_user_auth("https://github.com/", User(username="jdoe", api_token="t0k"))
    >>> config.find_user_auth("https://github.com", "").username
    'jdoe'
"""

from __future__ import annotations

import os
from typing import Any
from urllib.parse import urlsplit

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from jx_auth.exceptions import (
    ConfigurationError,
    InvalidArgumentError,
    InvalidCredentialError,
    UserNotFoundError,
)


def urls_equal(url1: str, url2: str) -> bool:
    """Return True if both URLs name the same server.

    Args:
        url1: First server URL
        url2: Second server URL

    Returns:
        True if the URLs are equal, or equal once a single trailing "/" is removed
    """
    return url1 == url2 or url1.removesuffix("/") == url2.removesuffix("/")


def url_host_name(raw_url: str) -> str:
    """Default display name for a server URL: its host (and port)."""
    try:
        netloc = urlsplit(raw_url).netloc
    except ValueError:
        idx = raw_url.find("://")
        if idx > 0:
            raw_url = raw_url[idx + 3 :]
        return raw_url.removesuffix("/")
    # drop any user:password@ prefix
    return netloc.rpartition("@")[2]


class User(BaseModel):
    """A single credential for a server.

    A user is valid if it has a bearer token, or both a username and an
    API token. The password is only written out when set.

    Attributes:
        username: Login name (may be empty when a bearer token is used)
        api_token: API / personal access token
        bearer_token: OAuth style bearer token
        password: Plain password (e.g. imported from ~/.git-credentials)
        github_app_owner: Owner a GitHub App token was issued for
    """

    model_config = ConfigDict(populate_by_name=True, coerce_numbers_to_str=True)

    username: str = ""
    api_token: str = Field(default="", alias="apitoken")
    bearer_token: str = Field(default="", alias="bearertoken")
    password: str = ""
    github_app_owner: str = Field(default="", alias="githubappowner")

    @field_validator("*", mode="before")
    @classmethod
    def _none_as_empty(cls, v: Any) -> Any:
        return "" if v is None else v

    @classmethod
    def from_environment(cls, prefix: str) -> User:
        """Build a user from ``<PREFIX>_USERNAME``, ``<PREFIX>_API_TOKEN`` and ``<PREFIX>_BEARER_TOKEN``.

        Args:
            prefix: Environment variable prefix, e.g. "GIT"

        Returns:
            User populated from whichever variables are set
        """
        return cls(
            username=os.getenv(f"{prefix}_USERNAME", ""),
            api_token=os.getenv(f"{prefix}_API_TOKEN", ""),
            bearer_token=os.getenv(f"{prefix}_BEARER_TOKEN", ""),
        )

    def is_invalid(self) -> bool:
        """Return True if the user can not authenticate."""
        if self.bearer_token:
            return False
        return not (self.username and self.api_token)

    def validate_credentials(self) -> None:
        """Raise if the user can not authenticate.

        Raises:
            InvalidCredentialError: If neither a bearer token nor a
                username and API token pair is set
        """
        if self.bearer_token:
            return
        if not self.username:
            raise InvalidCredentialError("empty username", suggestion="Set a username or a bearer token")
        if not self.api_token:
            raise InvalidCredentialError(
                "empty api token",
                reference=self.username,
                suggestion="Set an API token or a bearer token",
            )

    def to_dict(self) -> dict[str, str]:
        data = {
            "username": self.username,
            "apitoken": self.api_token,
            "bearertoken": self.bearer_token,
        }
        if self.password:
            data["password"] = self.password
        if self.github_app_owner:
            data["githubappowner"] = self.github_app_owner
        return data


class Server(BaseModel):
    """A Git (or other) server and the users configured for it.

    Attributes:
        url: Identity of the server
        name: Display label, defaults to the URL host
        kind: Provider kind such as "github"; empty when unknown
        users: Credentials for this server, unique by username
        current_user: Username of the user to use by default
    """

    model_config = ConfigDict(populate_by_name=True, coerce_numbers_to_str=True)

    url: str = ""
    name: str = ""
    kind: str = ""
    users: list[User] = Field(default_factory=list)
    current_user: str = Field(default="", alias="currentuser")

    @field_validator("url", "name", "kind", "current_user", mode="before")
    @classmethod
    def _none_as_empty(cls, v: Any) -> Any:
        return "" if v is None else v

    @field_validator("users", mode="before")
    @classmethod
    def _none_as_no_users(cls, v: Any) -> Any:
        return [] if v is None else v

    @property
    def label(self) -> str:
        """Human readable description used in prompts."""
        return self.name or self.url

    def get_user(self, username: str) -> User | None:
        for user in self.users:
            if user.username == username:
                return user
        return None

    def current_auth(self) -> User | None:
        """Return the user named by ``current_user``, if it exists."""
        return self.get_user(self.current_user)

    def set_current_user(self, username: str) -> None:
        """Make ``username`` the current user of this server.

        Raises:
            UserNotFoundError: If no user with that name exists
        """
        if username == self.current_user:
            return
        if self.get_user(username) is None:
            raise UserNotFoundError(f"user {username!r} not found", reference=self.url)
        self.current_user = username

    def add_user(self, user: User) -> None:
        """Add a user, replacing an existing user with the same name in place."""
        for i, existing in enumerate(self.users):
            if existing.username == user.username:
                self.users[i] = user
                return
        self.users.append(user)

    def delete_user(self, username: str) -> None:
        """Remove the user with the given name.

        Raises:
            UserNotFoundError: If the server has no users at all
            InvalidArgumentError: If users exist but none has that name
        """
        if not self.users:
            raise UserNotFoundError(f"user {username!r} not found", reference=self.url)
        for i, user in enumerate(self.users):
            if user.username == username:
                del self.users[i]
                return
        raise InvalidArgumentError(username, self.get_usernames())

    def get_usernames(self) -> list[str]:
        return sorted(user.username for user in self.users if user.username)

    def to_dict(self) -> dict[str, Any]:
        return {
            "url": self.url,
            "name": self.name,
            "kind": self.kind,
            "currentuser": self.current_user,
            "users": [user.to_dict() for user in self.users],
        }


class Config(BaseModel):
    """The complete auth configuration for one kind of service.

    Attributes:
        servers: Servers in insertion order
        current_server: URL of the server used by default
        default_username: Username used when none is given
        pipeline_server: URL of the server pipelines authenticate against
        pipeline_username: Username pipelines authenticate as
    """

    model_config = ConfigDict(populate_by_name=True, coerce_numbers_to_str=True)

    servers: list[Server] = Field(default_factory=list)
    default_username: str = Field(default="", alias="defaultusername")
    current_server: str = Field(default="", alias="currentserver")
    pipeline_username: str = Field(default="", alias="pipelineusername")
    pipeline_server: str = Field(default="", alias="pipelineserver")

    @field_validator("default_username", "current_server", "pipeline_username", "pipeline_server", mode="before")
    @classmethod
    def _none_as_empty(cls, v: Any) -> Any:
        return "" if v is None else v

    @field_validator("servers", mode="before")
    @classmethod
    def _none_as_no_servers(cls, v: Any) -> Any:
        return [] if v is None else v

    # ------------------------------------------------------------------
    # Serialization
    # ------------------------------------------------------------------

    def to_dict(self) -> dict[str, Any]:
        return {
            "servers": [server.to_dict() for server in self.servers],
            "defaultusername": self.default_username,
            "currentserver": self.current_server,
            "pipelineusername": self.pipeline_username,
            "pipelineserver": self.pipeline_server,
        }

    def to_yaml(self) -> str:
        return yaml.safe_dump(self.to_dict(), sort_keys=False, default_flow_style=False)

    @classmethod
    def from_yaml(cls, text: str, source: str = "<string>") -> Config:
        """Parse an auth config from YAML text.

        Args:
            text: YAML document; an empty document yields an empty config
            source: Where the text came from, used in error messages

        Returns:
            Parsed Config

        Raises:
            ConfigurationError: If the YAML is invalid or has the wrong shape
        """
        try:
            data = yaml.safe_load(text)
        except yaml.YAMLError as e:
            raise ConfigurationError(f"Invalid YAML in auth config {source}: {e}") from e

        if data is None:
            return cls()
        if not isinstance(data, dict):
            raise ConfigurationError(f"Auth config {source} must be a YAML object, not a list or scalar")

        try:
            return cls.model_validate(data)
        except ValidationError as e:
            raise ConfigurationError(f"Invalid auth config {source}: {e}") from e

    # ------------------------------------------------------------------
    # Lookup
    # ------------------------------------------------------------------

    def get_server(self, url: str) -> Server | None:
        for server in self.servers:
            if urls_equal(server.url, url):
                return server
        return None

    def get_server_by_name(self, name: str) -> Server | None:
        for server in self.servers:
            if server.name == name:
                return server
        return None

    def get_server_by_kind(self, kind: str) -> Server | None:
        """Return the current server if it has the given kind."""
        for server in self.servers:
            if server.kind == kind and urls_equal(server.url, self.current_server):
                return server
        return None

    def index_of_server_name(self, name: str) -> int:
        for i, server in enumerate(self.servers):
            if server.name == name:
                return i
        return -1

    def current_auth_server(self) -> Server | None:
        return self.get_server(self.current_server)

    def current_user(self, server: Server | None, in_cluster: bool) -> User | None:
        """Return the user to authenticate to ``server`` with.

        Inside a cluster the pipeline user wins for the pipeline server;
        otherwise the server's current user is used.
        """
        if server is None:
            return None
        if in_cluster and urls_equal(self.pipeline_server, server.url):
            return server.get_user(self.pipeline_username)
        return server.current_auth()

    def find_user_auths(self, server_url: str) -> list[User]:
        server = self.get_server(server_url)
        if server is None:
            return []
        return server.users

    def find_user_auth(self, server_url: str, username: str) -> User | None:
        """Find the auth for a user on a server.

        If no username is given the only user of the server is returned, or
        None when the server has zero or several users.
        """
        auths = self.find_user_auths(server_url)
        if not username:
            return auths[0] if len(auths) == 1 else None
        for auth in auths:
            if auth.username == username:
                return auth
        return None

    def get_server_names(self) -> list[str]:
        return sorted(server.name for server in self.servers if server.name)

    def get_server_urls(self) -> list[str]:
        return sorted(server.url for server in self.servers if server.url)

    # ------------------------------------------------------------------
    # Mutation
    # ------------------------------------------------------------------

    def get_or_create_server(self, url: str) -> Server:
        return self.get_or_create_server_name(url, "", "")

    def get_or_create_server_name(self, url: str, name: str, kind: str) -> Server:
        """Return the server for ``url``, creating it if needed.

        A newly created server is named after the URL host unless ``name``
        is given. An existing server without a kind takes ``kind``; a kind
        that is already set is never overwritten.
        """
        server = self.get_server(url)
        if server is None:
            server = Server(url=url, name=name or url_host_name(url), kind=kind)
            self.servers.append(server)
        if not server.kind:
            server.kind = kind
        return server

    def get_or_create_user_auth(self, url: str, username: str) -> User:
        user = self.find_user_auth(url, username)
        if user is not None:
            return user
        server = self.get_or_create_server(url)
        user = User(username=username)
        server.users.append(user)
        return user

    def set_user_auth(self, url: str, auth: User) -> None:
        """Upsert ``auth`` for the server and make it the current user and server.

        The server is created if it does not exist. An existing user with the
        same username is replaced in its slot.
        """
        server = self.get_server(url)
        if server is None:
            self.servers.append(Server(url=url, users=[auth], current_user=auth.username))
        else:
            server.add_user(auth)
            server.current_user = auth.username
        self.default_username = auth.username
        self.current_server = url

    def add_server(self, server: Server) -> None:
        """Add a server, upserting its users by username into an existing entry."""
        existing = self.get_server(server.url)
        if existing is None:
            self.servers.append(server)
            return
        for user in server.users:
            existing.add_user(user)

    def append_server_users(self, server: Server) -> None:
        """Add a server, appending all of its users to an existing entry.

        Unlike ``add_server`` no username uniqueness is enforced, which allows
        several tokens for one username (e.g. GitHub App installations).
        """
        existing = self.get_server(server.url)
        if existing is None:
            self.servers.append(server)
            return
        existing.users.extend(server.users)

    def delete_server(self, url: str) -> None:
        """Remove the server; if it was current, the first remaining server becomes current."""
        was_current = urls_equal(self.current_server, url)
        self.servers = [server for server in self.servers if not urls_equal(server.url, url)]
        if was_current:
            self.current_server = self.servers[0].url if self.servers else ""

    def update_pipeline_server(self, server: Server, user: User) -> None:
        self.pipeline_server = server.url
        self.pipeline_username = user.username

    def get_pipeline_auth(self) -> tuple[Server | None, User | None]:
        server = self.get_server(self.pipeline_server)
        if server is None:
            return None, None
        return server, server.get_user(self.pipeline_username)

    def merge(self, other: Config | None) -> None:
        """Merge the users of another config into this one.

        Unknown users are appended. For known users only a non-empty password
        or API token from ``other`` overwrites the local value. Server
        metadata (name, kind, current user) is never touched.

        Args:
            other: Config to merge in, e.g. a ~/.git-credentials import
        """
        if other is None:
            return
        for other_server in other.servers:
            server = self.get_or_create_server(other_server.url)
            for other_user in other_server.users:
                user = server.get_user(other_user.username)
                if user is None:
                    server.users.append(other_user.model_copy())
                    continue
                if other_user.password:
                    user.password = other_user.password
                if other_user.api_token:
                    user.api_token = other_user.api_token
