import logging
from datetime import datetime
from pathlib import Path

import click
import requests
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table
from rich.text import Text

from dormafetch import __version__
from dormafetch.client import fetch_entries
from dormafetch.config import default_config_dir, load_settings, save_settings, CONFIG_DIR_ENV
from dormafetch.errors import DormaError
from dormafetch.log import read_logs, write_log
from dormafetch.render import entries_json, entries_table, format_duration, worked_time
from dormafetch.store import LocalStore

log = logging.getLogger(__name__)


def _setup_logging(verbose):
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=Console(stderr=True), rich_tracebacks=True,
                              tracebacks_suppress=[requests])],
        force=True,
    )
    logging.getLogger("urllib3").setLevel(logging.WARNING)


def _record(config_dir, entry):
    """Append to the fetch log. A failed write never fails the fetch."""
    try:
        write_log(config_dir, entry)
    except DormaError as e:
        log.warning("Fetch not logged: %s", e)


def _fail(console, error):
    console.print(Text(str(error), style="red"))
    raise SystemExit(1)


@click.group()
@click.version_option(version=__version__)
@click.option("--config-dir", type=click.Path(file_okay=False, path_type=Path),
              envvar=CONFIG_DIR_ENV, default=None,
              help="Directory holding hosts, credentials and settings (default ~/.dorma).")
@click.option("-v", "--verbose", is_flag=True, help="Log HTTP steps.")
@click.pass_context
def main(ctx, config_dir, verbose):
    """dorma: read today's come/leave bookings from a Dorma portal."""
    _setup_logging(verbose)
    ctx.obj = {"config_dir": config_dir or default_config_dir()}


@main.command()
@click.argument("app_id", required=False)
@click.option("--json", "as_json", is_flag=True, help="Print entries as JSON.")
@click.pass_obj
def fetch(obj, app_id, as_json):
    """Fetch today's bookings for APP_ID (default: the configured app).

    Missing host and credentials are asked for once and saved.
    """
    console = Console()
    config_dir = obj["config_dir"]
    host = None

    try:
        settings = load_settings(config_dir)
        app_id = app_id or settings["app"]
        store = LocalStore(config_dir)
        host = store.resolve_host(app_id)
        credential = store.resolve_credentials(host)
        entries = fetch_entries(
            host,
            credential.user,
            credential.password,
            scheme=settings["scheme"],
            verify=settings["verify_tls"],
        )
    except DormaError as e:
        _record(config_dir, {"event": "fetch", "app": app_id, "host": host,
                             "result": "failed", "error": str(e)})
        _fail(console, e)

    _record(config_dir, {"event": "fetch", "app": app_id, "host": host,
                         "result": "ok", "entries": len(entries)})

    if as_json:
        click.echo(entries_json(entries))
        return

    if not entries:
        console.print("[dim]No bookings today.[/dim]")
        return

    console.print(entries_table(entries))
    worked = worked_time(entries, datetime.now().astimezone())
    console.print(f"Worked: [bold]{format_duration(worked)}[/bold]")


@main.command()
@click.argument("app_id")
@click.argument("host")
@click.pass_obj
def host(obj, app_id, host):
    """Set the Dorma host used for APP_ID."""
    try:
        LocalStore(obj["config_dir"]).set_host(app_id, host)
    except DormaError as e:
        _fail(Console(), e)
    click.echo(f"Saved host {host} for app {app_id}")


@main.command()
@click.pass_obj
def hosts(obj):
    """List configured apps and hosts. Passwords are never shown."""
    console = Console()
    store = LocalStore(obj["config_dir"])
    try:
        host_map = store.read_hosts()
        credentials = store.read_credentials()
    except DormaError as e:
        _fail(console, e)

    if not host_map:
        console.print("[dim]No hosts configured. Run 'dorma fetch' or 'dorma host'.[/dim]")
        return

    table = Table(title="Dorma hosts")
    table.add_column("App", style="bold cyan")
    table.add_column("Host")
    table.add_column("User", style="dim")

    for app_id, host_name in sorted(host_map.items()):
        credential = credentials.get(host_name)
        table.add_row(app_id, host_name, credential.user if credential else "[yellow]none[/yellow]")

    console.print(table)


@main.command()
@click.argument("host")
@click.pass_obj
def forget(obj, host):
    """Remove stored credentials for HOST."""
    try:
        removed = LocalStore(obj["config_dir"]).forget_credentials(host)
    except DormaError as e:
        _fail(Console(), e)
    if removed:
        click.echo(f"Removed credentials for {host}")
    else:
        click.echo(f"No credentials stored for {host}")


@main.command()
@click.option("-n", "--limit", default=20, help="Number of log entries to show.")
@click.pass_obj
def logs(obj, limit):
    """Show fetch history."""
    console = Console()
    try:
        entries = read_logs(obj["config_dir"])
    except DormaError as e:
        _fail(console, e)

    if not entries:
        console.print("[dim]No logs yet. Run 'dorma fetch' first.[/dim]")
        return

    table = Table(title="Fetch Log")
    table.add_column("Time", style="dim")
    table.add_column("App", style="bold")
    table.add_column("Host")
    table.add_column("Result", style="bold")
    table.add_column("Detail", max_width=60)

    for entry in entries[-limit:]:
        ts = entry.get("timestamp", "")
        if ts:
            try:
                ts = datetime.fromisoformat(ts).strftime("%m-%d %H:%M")
            except ValueError:
                pass
        result = entry.get("result", "")
        result_style = {"ok": "[green]ok[/green]", "failed": "[red]failed[/red]"}.get(result, result)
        detail = entry.get("error") or f"{entry.get('entries', 0)} entries"
        table.add_row(
            ts,
            entry.get("app") or "",
            entry.get("host") or "",
            result_style,
            detail,
        )

    console.print(table)


@main.command("config")
@click.option("--app", "app_id", default=None, help="Default application id.")
@click.option("--verify-tls/--no-verify-tls", default=None, help="Verify the portal's TLS certificate.")
@click.option("--scheme", type=click.Choice(["https", "http"]), default=None, help="URL scheme of the portal.")
@click.pass_obj
def config_cmd(obj, app_id, verify_tls, scheme):
    """Show or update settings."""
    console = Console()
    updates = {}
    if app_id is not None:
        updates["app"] = app_id
    if verify_tls is not None:
        updates["verify_tls"] = verify_tls
    if scheme is not None:
        updates["scheme"] = scheme

    try:
        settings = save_settings(obj["config_dir"], updates) if updates else load_settings(obj["config_dir"])
    except DormaError as e:
        _fail(console, e)

    for key, value in settings.items():
        console.print(f"  [bold]{key}[/bold] = {value}")
