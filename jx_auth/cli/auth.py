"""CLI commands for managing stored server credentials.

Commands:
    - servers list: Show configured servers and their users
    - servers delete: Remove a server
    - users add: Add or update a user's API token for a server
    - users delete: Remove a user from a server
    - import-git-credentials: Merge ~/.git-credentials into the config

Example::

    $ jx-auth users add https://github.com --username jdoe
    $ jx-auth servers list
    $ jx-auth import-git-credentials
"""

import sys
from pathlib import Path
from typing import NoReturn

import click
import structlog

from jx_auth.config.settings import AuthSettings
from jx_auth.credentials import (
    ConfigService,
    GitCredentialsImporter,
    User,
    create_config_service,
    edit_user_auth,
    urls_equal,
)
from jx_auth.exceptions import CredentialError, JxAuthError, ServerNotFoundError

log = structlog.get_logger(__name__)


def _settings(ctx: click.Context) -> AuthSettings:
    return ctx.obj["settings"]


def load_service(settings: AuthSettings) -> ConfigService:
    """Create the config service selected by ``settings`` and load it."""
    service = create_config_service(
        settings.backend,
        file_name=settings.file_name,
        config_dir=settings.config_dir,
        namespace=settings.namespace,
        server_kind=settings.server_kind,
        service_kind=settings.service_kind,
        git_credentials_path=settings.git_credentials_file,
    )
    service.load_config()
    return service


def _fail(e: JxAuthError) -> NoReturn:
    click.echo(click.style(f"Error: {e.message}", fg="red"), err=True)
    if isinstance(e, CredentialError) and e.suggestion:
        click.echo(click.style(f"Suggestion: {e.suggestion}", fg="yellow"), err=True)
    log.debug("command_failed", exc_info=True)
    sys.exit(1)


@click.group(name="servers")
def servers_group():
    """Manage configured servers."""
    pass


@servers_group.command(name="list")
@click.pass_context
def list_servers(ctx: click.Context):
    """List servers and their users.

    The current server and each server's current user are marked with "*".
    """
    try:
        config = load_service(_settings(ctx)).config
    except JxAuthError as e:
        _fail(e)

    if not config.servers:
        click.echo("No servers configured")
        return

    for server in config.servers:
        marker = "*" if urls_equal(server.url, config.current_server) else " "
        click.echo(f"{marker} {server.url}  name={server.name or '-'} kind={server.kind or '-'}")
        for user in server.users:
            user_marker = "*" if user.username == server.current_user else " "
            click.echo(f"    {user_marker} {user.username or '<bearer token>'}")


@servers_group.command(name="delete")
@click.argument("url")
@click.pass_context
def delete_server(ctx: click.Context, url: str):
    """Delete the server at URL and all of its users."""
    try:
        service = load_service(_settings(ctx))
        if service.config.get_server(url) is None:
            raise ServerNotFoundError(f"Could not find server for URL {url}")
        service.delete_server(url)
    except JxAuthError as e:
        _fail(e)

    click.echo(click.style(f"Deleted server {url}", fg="green"))


@click.group(name="users")
def users_group():
    """Manage users of a server."""
    pass


@users_group.command(name="add")
@click.argument("url")
@click.option("--username", "-u", default="", help="User name (defaults to the configured default user)")
@click.option("--api-token", "-t", default="", envvar="GIT_API_TOKEN", help="API token (prompted if missing)")
@click.option("--edit", is_flag=True, help="Prompt for the user name even if one is known")
@click.pass_context
def add_user(ctx: click.Context, url: str, username: str, api_token: str, edit: bool):
    """Add or update the API token of a user for the server at URL."""
    settings = _settings(ctx)
    try:
        service = load_service(settings)
        config = service.config
        server = config.get_or_create_server(url)

        user = User(username=username, api_token=api_token)
        edit_user_auth(
            config,
            server.label,
            user,
            default_username="",
            edit_user=edit,
            batch_mode=settings.batch_mode,
            print_instructions=lambda name: click.echo(
                f"Create an API token for {name} on {server.url} and paste it below"
            ),
        )
        user.validate_credentials()
        service.save_user_auth(url, user)
    except JxAuthError as e:
        _fail(e)

    click.echo(click.style(f"Saved credentials for {user.username} on {url}", fg="green"))


@users_group.command(name="delete")
@click.argument("url")
@click.argument("username")
@click.pass_context
def delete_user(ctx: click.Context, url: str, username: str):
    """Delete USERNAME from the server at URL."""
    try:
        service = load_service(_settings(ctx))
        server = service.config.get_server(url)
        if server is None:
            raise ServerNotFoundError(f"Could not find server for URL {url}")
        server.delete_user(username)
        if server.current_user == username:
            server.current_user = server.users[0].username if server.users else ""
        service.save_config()
    except JxAuthError as e:
        _fail(e)

    click.echo(click.style(f"Deleted user {username} from {url}", fg="green"))


@click.command(name="import-git-credentials")
@click.option(
    "--path",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help="git credential-store file (default: ~/.git-credentials)",
)
@click.pass_context
def import_git_credentials(ctx: click.Context, path: Path | None):
    """Merge a git credential-store file into the auth config."""
    settings = _settings(ctx)
    importer = GitCredentialsImporter(path or settings.git_credentials_file)
    try:
        imported = importer.load_config()
        if imported is None:
            click.echo(f"No git credentials file found at {importer.path}")
            return
        service = load_service(settings)
        service.import_config(imported)
        service.save_config()
    except JxAuthError as e:
        _fail(e)

    click.echo(click.style(f"Imported {len(imported.servers)} servers from {importer.path}", fg="green"))
