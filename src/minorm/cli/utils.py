"""
CLI utility helpers: option parsing and output formatting.
"""

from __future__ import annotations

import json
from typing import Any

import typer
from rich.console import Console
from rich.table import Table

console = Console()
err_console = Console(stderr=True)


def parse_options(raw: str | None) -> dict[str, Any]:
    """Parse ``--options`` JSON into a find-options mapping."""
    if not raw:
        return {}
    try:
        options = json.loads(raw)
    except json.JSONDecodeError as e:
        raise typer.BadParameter(f"not valid JSON: {e.msg}", param_hint="--options") from e
    if not isinstance(options, dict):
        raise typer.BadParameter("find options must be a JSON object", param_hint="--options")
    return options


def fail(message: str, code: str = "ERROR") -> None:
    """Print an error and exit with status 1."""
    err_console.print(f"[bold red]Error[/bold red] ({code}): {message}")
    raise typer.Exit(code=1)


def print_rows(rows: list[dict[str, Any]], *, as_json: bool = False, title: str = "") -> None:
    """Render result rows as a Rich table or JSON."""
    if as_json:
        console.print_json(json.dumps(rows, default=str))
        return

    if not rows:
        console.print("[dim]No rows.[/dim]")
        return

    table = Table(title=title or None, show_lines=False, pad_edge=False)
    for col in rows[0]:
        table.add_column(str(col), overflow="fold")
    for row in rows:
        table.add_row(*(str(v) for v in row.values()))
    console.print(table)


def print_dict(data: dict[str, Any], *, title: str = "") -> None:
    """Render a single dict as key-value pairs."""
    if title:
        console.print(f"[bold]{title}[/bold]")
    for k, v in data.items():
        console.print(f"  [cyan]{k}[/cyan]: {v}")
