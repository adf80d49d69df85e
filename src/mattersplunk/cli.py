"""Mattersplunk CLI — drive the plugin logic from a terminal.

Each command plays the part of one host invocation for a Mattermost user ID
against the configured Redis store.

Commands:
    mattersplunk login   <user-id> <username[/token]>  Authenticate against Splunk
    mattersplunk logout  <user-id>                     Drop the current credential
    mattersplunk whoami  <user-id>                     Show the current Splunk user
    mattersplunk logs    <user-id> <query>             Run a search
    mattersplunk indexes <user-id>                     List searchable indexes
    mattersplunk alerts  <channel-id>                  List alert subscriptions
    mattersplunk notify  <alert-id> <payload.json>     Relay a webhook payload
"""
from __future__ import annotations

import json
from pathlib import Path
from typing import Any, NoReturn

import click
from pydantic import ValidationError
from rich import box
from rich.console import Console
from rich.table import Table

from .config import settings
from .errors import SplunkPluginError
from .splunk.base import AlertActionPayload, Post
from .splunk.client import SplunkClient
from .splunk.splunk import Splunk
from .store.alerts import AlertStore
from .store.kvstore import KVStore, RedisBackend
from .store.users import UserStore

console = Console()
err_console = Console(stderr=True)

# ── Helpers ─────────────────────────────────────────────────────────────────


class ConsolePoster:
    """PluginAPI that prints posts instead of publishing them."""

    def create_post(self, post: Post) -> Post:
        console.print(f"[bold]#{post.channel_id}[/bold] [dim]{post.user_id or 'bot'}[/dim] {post.message}")
        return post


def _build() -> Splunk:
    kv = KVStore(RedisBackend(url=settings.redis_url))
    sp = Splunk(
        ConsolePoster(),
        UserStore(kv, prefix=settings.key_prefix),
        AlertStore(kv, prefix=settings.key_prefix),
        SplunkClient(timeout=settings.http_timeout),
    )
    sp.add_bot_user(settings.bot_username)
    return sp


def _fail(exc: Exception) -> NoReturn:
    err_console.print(f"[red]Error:[/red] {exc}")
    raise SystemExit(1)


def _synced(user_id: str) -> Splunk:
    sp = _build()
    try:
        sp.sync_user(user_id)
    except SplunkPluginError as exc:
        _fail(exc)
    return sp


# ── CLI root ─────────────────────────────────────────────────────────────────


@click.group()
@click.version_option(version="1.0.0", prog_name="mattersplunk")
def main() -> None:
    """mattersplunk — Mattermost to Splunk bridge."""


@main.command()
@click.argument("user_id")
@click.argument("login_spec")
@click.option("--server", "-s", default=lambda: settings.splunk_server, help="Splunk base URL.")
def login(user_id: str, login_spec: str, server: str) -> None:
    """Log USER_ID in with LOGIN_SPEC (username or username/token).

    \b
    Examples:
      mattersplunk login u1 admin/eyJraWQiOi... --server https://splunk:8089
      mattersplunk login u1 admin
    """
    if not server:
        _fail(click.UsageError("no Splunk server given (use --server or MATTERSPLUNK_SPLUNK_SERVER)"))
    sp = _build()
    try:
        sp.login_user(user_id, server, login_spec)
    except SplunkPluginError as exc:
        _fail(exc)
    console.print(f"[green]Logged in as[/green] {sp.user().username} on {server}")


@main.command()
@click.argument("user_id")
def logout(user_id: str) -> None:
    """Log USER_ID out and delete the stored credential."""
    sp = _synced(user_id)
    username = sp.user().username
    try:
        sp.logout_user(user_id)
    except SplunkPluginError as exc:
        _fail(exc)
    console.print(f"[green]Logged out[/green] {username}")


@main.command()
@click.argument("user_id")
def whoami(user_id: str) -> None:
    """Show the Splunk user USER_ID is currently acting as."""
    user = _synced(user_id).user()
    console.print(f"{user.username} on {user.server}")


@main.command()
@click.argument("user_id")
@click.argument("query")
@click.option("--limit", "-n", default=50, type=int, help="Max rows to display (0 = all).")
@click.option("--json", "as_json", is_flag=True, help="Print raw JSON rows.")
def logs(user_id: str, query: str, limit: int, as_json: bool) -> None:
    """Run QUERY as USER_ID's Splunk user and show the results."""
    sp = _synced(user_id)
    try:
        rows = sp.logs(query)
    except SplunkPluginError as exc:
        _fail(exc)
    if limit:
        rows = rows[:limit]

    if as_json:
        for row in rows:
            click.echo(json.dumps(row, default=str))
        return

    if not rows:
        err_console.print("[yellow]No results.[/yellow]")
        return

    cols = [c for c in rows[0] if not c.startswith("_") or c in ("_time", "_raw")]
    tbl = Table(title=query, box=box.ROUNDED, highlight=True)
    for col in cols:
        tbl.add_column(col, overflow="fold", max_width=70)
    for row in rows:
        tbl.add_row(*[str(row.get(c, "")) for c in cols])
    console.print(tbl)
    console.print(f"[dim]{len(rows)} results[/dim]")


@main.command()
@click.argument("user_id")
def indexes(user_id: str) -> None:
    """List the indexes USER_ID's Splunk user can search."""
    sp = _synced(user_id)
    try:
        names = sp.list_logs()
    except SplunkPluginError as exc:
        _fail(exc)
    for name in names:
        console.print(name)


@main.command()
@click.argument("channel_id")
def alerts(channel_id: str) -> None:
    """List the alert IDs subscribed in CHANNEL_ID."""
    try:
        ids = _build().list_alerts(channel_id)
    except SplunkPluginError as exc:
        _fail(exc)
    if not ids:
        err_console.print("[yellow]No alerts subscribed.[/yellow]")
        return
    for alert_id in ids:
        console.print(alert_id)


@main.command()
@click.argument("alert_id")
@click.argument("payload", type=click.Path(exists=True, path_type=Path))
def notify(alert_id: str, payload: Path) -> None:
    """Relay the webhook PAYLOAD file as if Splunk had fired ALERT_ID."""
    try:
        body: dict[str, Any] = json.loads(payload.read_text(encoding="utf-8"))
    except json.JSONDecodeError as exc:
        _fail(exc)
    try:
        _build().notify(alert_id, AlertActionPayload.model_validate(body))
    except (SplunkPluginError, ValidationError) as exc:
        _fail(exc)


if __name__ == "__main__":
    main()
