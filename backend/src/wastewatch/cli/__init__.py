"""CLI entry points for WasteWatch.

Provides command-line tools for:
- Running the API server
- Logging in and out, and managing the account
- Browsing, dispatching and exporting reports
- Worker roster and statistics
"""

import click

from .. import __version__
from ..config import get_settings
from .account import change_password, login, logout, profile, register, whoami
from .admin import stats, workers_cli
from .reports import cli as reports_cli


@click.group()
@click.version_option(version=__version__, prog_name="wastewatch")
@click.option(
    "--api-url",
    envvar="WASTEWATCH_API_URL",
    help="API base URL (default: settings.api_base_url)",
)
@click.option(
    "--token-file",
    envvar="WASTEWATCH_TOKEN_FILE",
    type=click.Path(dir_okay=False),
    help="Where the login token is kept",
)
@click.pass_context
def main(ctx: click.Context, api_url: str | None, token_file: str | None):
    """WasteWatch - municipal waste reporting.

    Command-line tools for filing, dispatching and closing out
    waste reports.
    """
    ctx.ensure_object(dict)
    ctx.obj.setdefault("api_url", api_url)
    ctx.obj.setdefault("token_file", token_file)


@main.command("serve")
@click.option("--host", default=None, help="Bind address (default: settings.api_host)")
@click.option("--port", default=None, type=int, help="Port (default: settings.api_port)")
@click.option("--reload", is_flag=True, help="Reload on code changes")
def serve(host: str | None, port: int | None, reload: bool):
    """Run the API server."""
    import uvicorn

    settings = get_settings()
    uvicorn.run(
        "wastewatch.main:app",
        host=host or settings.api_host,
        port=port or settings.api_port,
        reload=reload,
        log_config=None,
    )


main.add_command(login)
main.add_command(logout)
main.add_command(register)
main.add_command(whoami)
main.add_command(profile)
main.add_command(change_password)
main.add_command(reports_cli, name="reports")
main.add_command(workers_cli, name="workers")
main.add_command(stats)


if __name__ == "__main__":
    main()
