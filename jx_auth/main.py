"""CLI entry point for jx-auth."""

import click
from pydantic import ValidationError

from jx_auth.cli.auth import import_git_credentials, servers_group, users_group
from jx_auth.config.settings import AuthSettings
from jx_auth.utils.logging_config import configure_logging, get_logger

log = get_logger(__name__)


@click.group()
@click.option("--log-level", default=None, help="Logging level (default: $JX_AUTH_LOG_LEVEL or INFO)")
@click.option("--batch-mode", "-b", is_flag=True, default=False, help="Never prompt for input")
@click.option("--file", "file_name", default=None, help="Auth config file or secret name (default: gitAuth.yaml)")
@click.pass_context
def cli(ctx: click.Context, log_level: str | None, batch_mode: bool, file_name: str | None) -> None:
    """jx-auth: manage Git server credentials for Jenkins X."""
    overrides: dict[str, object] = {}
    if log_level:
        overrides["log_level"] = log_level
    if batch_mode:
        overrides["batch_mode"] = True
    if file_name:
        overrides["file_name"] = file_name

    try:
        settings = AuthSettings(**overrides)
    except ValidationError as e:
        raise click.UsageError(f"Invalid settings: {e}") from e

    configure_logging(settings.log_level)
    log.debug("settings_loaded", backend=str(settings.backend), file_name=settings.file_name)
    ctx.obj = {"settings": settings}


cli.add_command(servers_group)
cli.add_command(users_group)
cli.add_command(import_git_credentials)


if __name__ == "__main__":
    cli()
