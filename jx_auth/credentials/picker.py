"""Resolve a single server or user from an auth config.

With exactly one candidate the choice is made without prompting. With
several candidates batch mode picks deterministically (the current server,
an org match, or the first entry) and interactive mode prompts with click.
"""

from collections.abc import Callable

import click
import structlog

from jx_auth.credentials.models import Config, Server, User, urls_equal
from jx_auth.exceptions import MissingCredentialError, ServerNotFoundError, UserNotFoundError

log = structlog.get_logger(__name__)

PrintUserFn = Callable[[str], None]


def pick_server(config: Config, message: str, batch_mode: bool) -> Server:
    """Pick one of the configured servers.

    Args:
        config: Config holding the servers
        message: Prompt text
        batch_mode: If True the current server is used instead of prompting

    Returns:
        The chosen server

    Raises:
        ServerNotFoundError: If there are no servers, or the chosen URL
            (e.g. an unset current server in batch mode) matches none
    """
    if not config.servers:
        raise ServerNotFoundError("No servers available!")
    if len(config.servers) == 1:
        return config.servers[0]

    if batch_mode:
        url = config.current_server
    else:
        urls = [server.url for server in config.servers]
        url = click.prompt(message, type=click.Choice(urls))

    for server in config.servers:
        if urls_equal(server.url, url):
            return server
    raise ServerNotFoundError(f"Could not find server for URL {url}")


def pick_server_user_auth(
    config: Config,
    server: Server,
    message: str,
    batch_mode: bool,
    org: str = "",
) -> User:
    """Pick the user to authenticate to ``server`` with.

    With a single user, interactive mode asks for confirmation and otherwise
    reads a new username. With several users, batch mode prefers the user
    named ``org`` and falls back to the first one.

    Returns:
        The chosen user; an empty user if the server has none
    """
    users = config.find_user_auths(server.url)
    if len(users) == 1:
        user = users[0]
        if batch_mode:
            return user
        if click.confirm(f"Do you wish to use {user.username} as the {message}", default=True):
            return user
        username = click.prompt(message)
        return config.get_or_create_user_auth(server.url, username)

    if len(users) > 1:
        if batch_mode:
            for user in users:
                if user.username == org:
                    return user
            return users[0]

        by_name = {user.username: user for user in users}
        username = click.prompt(message, type=click.Choice(list(by_name)))
        if username not in by_name:
            raise UserNotFoundError("no username chosen", reference=server.url)
        return by_name[username]

    return User()


def pick_or_create_server(
    config: Config,
    fallback_server_url: str,
    server_url: str,
    message: str,
    batch_mode: bool,
) -> Server:
    """Pick a server, defaulting to ``server_url`` or the current server.

    ``server_url`` is offered even if it is not configured yet; the chosen
    server is created if needed.

    Raises:
        ServerNotFoundError: If no server URL was chosen
    """
    if not config.servers:
        return config.get_or_create_server(server_url or fallback_server_url)

    urls = [server.url for server in config.servers if server.url]
    if server_url and server_url not in urls:
        urls.append(server_url)
    if len(urls) == 1:
        return config.get_or_create_server(urls[0])

    default = server_url or config.current_server or urls[0]
    if batch_mode:
        return config.get_or_create_server(default)

    url = click.prompt(message, type=click.Choice(urls), default=default)
    if not url:
        raise ServerNotFoundError("no server URL chosen")
    return config.get_or_create_server(url)


def edit_user_auth(
    config: Config,
    server_label: str,
    auth: User,
    default_username: str,
    edit_user: bool,
    batch_mode: bool,
    print_instructions: PrintUserFn | None = None,
) -> None:
    """Fill in or edit the username and API token of ``auth`` in place.

    An empty username defaults to the config's default username, then to
    ``default_username``.

    Args:
        config: Config providing the default username
        server_label: Server description shown in the prompts
        auth: User to edit
        default_username: Fallback username
        edit_user: Prompt for the username even if one is set
        batch_mode: Never prompt; fail if username or token are missing
        print_instructions: Called with the username before the token prompt,
            e.g. to explain where to create a token

    Raises:
        MissingCredentialError: In batch mode, if the username or API token
            is still empty
    """
    if not auth.username:
        auth.username = config.default_username or default_username

    if batch_mode:
        if not auth.username:
            raise MissingCredentialError("running in batch mode and no default Git username found")
        if not auth.api_token:
            raise MissingCredentialError(
                "running in batch mode and no default API token found", reference=auth.username
            )
        return

    if edit_user or not auth.username:
        auth.username = click.prompt(f"{server_label} username", default=auth.username or None)

    if not auth.api_token:
        if print_instructions is not None:
            print_instructions(auth.username)
        auth.api_token = click.prompt("API Token", hide_input=True)

    log.debug("user_auth_edited", server=server_label, username=auth.username)


def pick_pipeline_user_auth(config: Config, server: Server, batch_mode: bool) -> User:
    """Return the user pipelines should use for ``server``.

    The configured pipeline username wins. Otherwise, if the server has
    several users, one is picked and recorded as the pipeline user.

    Returns:
        The pipeline user, or an empty user if none could be determined
    """
    if config.pipeline_username:
        return config.get_or_create_user_auth(server.url, config.pipeline_username)

    user = None
    if len(config.find_user_auths(server.url)) > 1:
        user = pick_server_user_auth(config, server, "user name for the Pipeline", batch_mode)

    if user is None:
        return User()
    config.pipeline_username = user.username
    return user
