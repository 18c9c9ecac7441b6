"""Entry point for checkhub — `checkhub` console script."""

from __future__ import annotations

import argparse
import logging
import sys

import uvicorn
from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from checkhub.client import CheckhubAPIError, CheckhubClient, CheckhubOfflineError, ExecutionLogOut
from checkhub.config import settings

console = Console()

STATUS_STYLES = {
    "SUCCESS": "green",
    "FAILED": "red",
    "RUNNING": "cyan",
    "NEVER_RUN": "dim",
}


def _status_text(status: str) -> str:
    label = "Never Run" if status == "NEVER_RUN" else status
    return f"[{STATUS_STYLES.get(status, 'white')}]{label}[/]"


def _print_log(log: ExecutionLogOut) -> None:
    console.print(
        f"{_status_text(log.status)}  Ran at: {log.startTime}  "
        f"Duration: {log.durationSeconds:.2f}s  [dim]by {log.triggeredBy or '?'}[/dim]"
    )
    console.print(Panel(Text(log.output or "No output captured."), title="Output", border_style="dim"))


def run_server() -> None:
    """Start the FastAPI server."""
    console.print(Panel("Starting checkhub API Server", style="bold green"))
    uvicorn.run(
        "checkhub.api.server:app",
        host=settings.api_host,
        port=settings.api_port,
        log_level=settings.log_level.lower(),
        reload=False,
    )


def cmd_list(client: CheckhubClient, query: str | None) -> None:
    checks = client.list_checks(query)
    if not checks:
        console.print("[dim]No health checks found.[/dim]")
        return

    table = Table(title="Health Checks")
    table.add_column("ID", style="dim")
    table.add_column("Name", style="bold")
    table.add_column("Owner")
    table.add_column("Command")
    table.add_column("Last Status", justify="center")
    table.add_column("Runs", justify="right")
    for c in checks:
        table.add_row(
            c.id, escape(c.name), escape(c.owner), escape(c.command),
            _status_text(c.lastStatus), str(len(c.executionLogs)),
        )
    console.print(table)


def cmd_add(client: CheckhubClient, name: str, owner: str, command: str) -> None:
    check = client.create_check(name, owner, command)
    console.print(f"[green]Created health check[/green] {check.id} ({escape(check.name)})")


def cmd_run(client: CheckhubClient, check_id: str, wait: bool, timeout: float | None) -> None:
    if not wait:
        client.run_check(check_id, wait=False, timeout=timeout)
        console.print(f"Run of {check_id} accepted.")
        return

    with console.status(f"[bold green]Running {check_id}..."):
        result = client.run_check(check_id, wait=True, timeout=timeout)
    if result.log:
        _print_log(result.log)


def cmd_history(client: CheckhubClient, check_id: str, limit: int | None) -> None:
    logs = client.history(check_id, limit)
    if not logs:
        console.print("[dim]No execution history found.[/dim]")
        return
    for log in logs:
        _print_log(log)


def cmd_delete(client: CheckhubClient, check_id: str) -> None:
    client.delete_check(check_id)
    console.print(f"Deleted health check {check_id}")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="checkhub health check service")
    parser.add_argument("--url", default=settings.api_url, help="checkhub server URL")
    sub = parser.add_subparsers(dest="command")

    sub.add_parser("serve", help="Start the API server")

    list_parser = sub.add_parser("list", help="List health checks")
    list_parser.add_argument("-q", "--query", default=None, help="Filter by name substring")

    add_parser = sub.add_parser("add", help="Create a health check")
    add_parser.add_argument("name")
    add_parser.add_argument("owner")
    add_parser.add_argument("check_command", metavar="command")

    run_parser = sub.add_parser("run", help="Run a health check")
    run_parser.add_argument("id")
    run_parser.add_argument("--no-wait", action="store_true", help="Return once accepted")
    run_parser.add_argument("--timeout", type=float, default=None, help="Seconds before the command is killed")

    history_parser = sub.add_parser("history", help="Show execution history")
    history_parser.add_argument("id")
    history_parser.add_argument("--limit", type=int, default=None)

    delete_parser = sub.add_parser("delete", help="Delete a health check and its history")
    delete_parser.add_argument("id")

    return parser


def main(argv: list[str] | None = None) -> None:
    logging.basicConfig(
        level=getattr(logging, settings.log_level.upper(), logging.INFO),
        format="%(asctime)s [%(name)s] %(levelname)s: %(message)s",
    )

    parser = build_parser()
    args = parser.parse_args(argv)

    if args.command == "serve":
        run_server()
        return
    if not args.command:
        parser.print_help()
        sys.exit(1)

    client = CheckhubClient(args.url, triggered_by="cli")
    try:
        if args.command == "list":
            cmd_list(client, args.query)
        elif args.command == "add":
            cmd_add(client, args.name, args.owner, args.check_command)
        elif args.command == "run":
            cmd_run(client, args.id, not args.no_wait, args.timeout)
        elif args.command == "history":
            cmd_history(client, args.id, args.limit)
        elif args.command == "delete":
            cmd_delete(client, args.id)
    except CheckhubOfflineError as e:
        console.print(f"[red]{e}[/red]")
        sys.exit(2)
    except CheckhubAPIError as e:
        console.print(f"[red]{e.kind or 'Error'}:[/red] {e.detail}")
        sys.exit(1)


if __name__ == "__main__":
    main()
