"""Terminal output helpers for CLI commands."""

from __future__ import annotations

from typing import Any

from rich.console import Console
from rich.markup import escape
from rich.table import Table

_out = Console()
_err = Console(stderr=True)


def header(text: str) -> None:
    _out.print(f"[bold cyan]{escape(text)}[/bold cyan]")


def subheader(text: str) -> None:
    _out.print(f"[bold]{escape(text)}[/bold]")


def key_value(key: str, value: Any, indent: int = 0) -> None:
    pad = " " * indent
    _out.print(
        f"{pad}[dim]{escape(key)}:[/dim] {escape(str(value))}",
        highlight=False,
    )


def success(text: str) -> None:
    _out.print(f"[green]{escape(text)}[/green]")


def warning(text: str) -> None:
    _err.print(f"[yellow]warning:[/yellow] {escape(text)}")


def error(text: str) -> None:
    _err.print(f"[bold red]error:[/bold red] {escape(text)}")


def counts_table(title: str, counts: dict[str, int]) -> None:
    table = Table(title=title, show_header=True, header_style="bold")
    table.add_column("Kind")
    table.add_column("Count", justify="right")
    for kind, count in counts.items():
        table.add_row(kind.replace("_", " "), str(count))
    _out.print(table)
