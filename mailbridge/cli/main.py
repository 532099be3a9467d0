"""CLI entry point for driving the webmail client by hand."""

import logging

import click
from dotenv import load_dotenv

from mailbridge.config import Settings

logger = logging.getLogger(__name__)


@click.group()
@click.option("--verbose", "-v", is_flag=True, help="Log HTTP traffic at DEBUG level.")
@click.pass_context
def cli(ctx: click.Context, verbose: bool) -> None:
    """mailbridge — talk to the webmail the way the POP3/SMTP bridge does."""
    load_dotenv()
    settings = Settings.from_env()
    logging.basicConfig(
        level=logging.DEBUG if verbose else settings.log_level,
        format="%(asctime)s %(levelname)-8s %(name)s — %(message)s",
    )
    ctx.obj = settings


# Import and register commands after cli is defined to avoid circular imports.
from mailbridge.cli.commands import cat, login, ls, seen, send, trash  # noqa: E402

cli.add_command(login)
cli.add_command(ls)
cli.add_command(cat)
cli.add_command(seen)
cli.add_command(trash)
cli.add_command(send)
