"""CLI command implementations — each command logs in, runs one client call."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from typing import IO, Any, TypeVar

import click
import httpx
from rich import box
from rich.console import Console
from rich.table import Table

from mailbridge.config import Settings
from mailbridge.protocols.auth import credentials_from_login
from mailbridge.protocols.errors import ProtocolError
from mailbridge.webmail.client import WebmailClient, webmail_client
from mailbridge.webmail.errors import WebmailError
from mailbridge.webmail.mapper import parse_message
from mailbridge.webmail.types import MessageRef

logger = logging.getLogger(__name__)
console = Console(width=200)

T = TypeVar("T")


def _account_options(func: Callable[..., Any]) -> Callable[..., Any]:
    func = click.option(
        "--password",
        envvar="WEBMAIL_PASSWORD",
        prompt=True,
        hide_input=True,
        help="Webmail password. Read from WEBMAIL_PASSWORD if set.",
    )(func)
    func = click.option(
        "--user",
        envvar="WEBMAIL_USER",
        required=True,
        help="Webmail address as user@domain. Read from WEBMAIL_USER if set.",
    )(func)
    return func


def _run(
    settings: Settings,
    user: str,
    password: str,
    action: Callable[[WebmailClient], Awaitable[T]],
) -> T:
    """Log in and run action; print the failure and exit 1 on error."""
    try:
        return asyncio.run(_logged_in(settings, user, password, action))
    except (WebmailError, ProtocolError) as exc:
        console.print(f"[red]Webmail error: {exc}[/red]")
        raise SystemExit(1) from exc
    except httpx.HTTPError as exc:
        console.print(f"[red]Network error: {exc}[/red]")
        raise SystemExit(1) from exc


async def _logged_in(
    settings: Settings,
    user: str,
    password: str,
    action: Callable[[WebmailClient], Awaitable[T]],
) -> T:
    credentials = credentials_from_login(user, password)
    async with webmail_client(settings) as client:
        await client.login(credentials)
        return await action(client)


@click.command()
@_account_options
@click.pass_obj
def login(settings: Settings, user: str, password: str) -> None:
    """Check that the credentials are accepted."""

    async def _noop(client: WebmailClient) -> None:
        return None

    _run(settings, user, password, _noop)
    console.print(f"[green]Logged in as {user}.[/green]")


@click.command()
@_account_options
@click.option("--mailbox", default="INBOX", show_default=True)
@click.option("--start", default=1, show_default=True, type=int, help="First position.")
@click.option("--end", default=None, type=int, help="Last position. Defaults to WEBMAIL_MAX_MESSAGES.")
@click.pass_obj
def ls(
    settings: Settings,
    user: str,
    password: str,
    mailbox: str,
    start: int,
    end: int | None,
) -> None:
    """List messages in a mailbox, least recent first."""
    last = end if end is not None else settings.max_messages
    messages = _run(
        settings, user, password, lambda c: c.list_messages(mailbox, start, last)
    )

    if not messages:
        console.print(f"[yellow]No messages in {mailbox}.[/yellow]")
        return

    table = Table(box=box.ROUNDED, show_header=True, header_style="bold cyan")
    table.add_column("UID", style="dim", width=8)
    table.add_column("Seen", width=5)
    table.add_column("From", max_width=32)
    table.add_column("Subject", max_width=60)
    table.add_column("Date", width=20)

    for m in messages:
        table.add_row(
            str(m.get("uid", "")),
            "yes" if m.get("seen") else "[bold]no[/bold]",
            str(m.get("from", "")),
            str(m.get("subject", "")),
            str(m.get("date", "")),
        )

    console.print(f"\n{len(messages)} message(s) in [bold]{mailbox}[/bold]\n")
    console.print(table)


@click.command()
@_account_options
@click.argument("mailbox")
@click.argument("uid", type=click.IntRange(min=0))
@click.pass_obj
def cat(settings: Settings, user: str, password: str, mailbox: str, uid: int) -> None:
    """Print the raw source of one message."""
    source = _run(
        settings, user, password, lambda c: c.fetch_message(MessageRef(mailbox, uid))
    )
    click.echo(source, nl=False)


@click.command()
@_account_options
@click.argument("mailbox")
@click.argument("uids", nargs=-1, required=True, type=click.IntRange(min=0))
@click.pass_obj
def seen(
    settings: Settings, user: str, password: str, mailbox: str, uids: tuple[int, ...]
) -> None:
    """Mark messages as seen."""
    refs = [MessageRef(mailbox, uid) for uid in uids]
    count = _run(settings, user, password, lambda c: c.mark_as_seen(refs))
    console.print(f"[green]Marked {count} message(s) as seen.[/green]")


@click.command()
@_account_options
@click.argument("mailbox")
@click.argument("uids", nargs=-1, required=True, type=click.IntRange(min=0))
@click.pass_obj
def trash(
    settings: Settings, user: str, password: str, mailbox: str, uids: tuple[int, ...]
) -> None:
    """Move messages to Trash."""
    refs = [MessageRef(mailbox, uid) for uid in uids]
    count = _run(settings, user, password, lambda c: c.trash_messages(refs))
    console.print(f"[green]Moved {count} message(s) to Trash.[/green]")


@click.command()
@_account_options
@click.argument("message_file", type=click.File("rb"))
@click.pass_obj
def send(settings: Settings, user: str, password: str, message_file: IO[bytes]) -> None:
    """Send an RFC 5322 message file (no attachments) through the webmail."""
    message = parse_message(message_file.read())
    _run(settings, user, password, lambda c: c.send(message))
    console.print(f"[green]Sent {str(message.get('subject', ''))!r}.[/green]")
