# -*- coding: utf-8 -*-
"""Location: ./trustheaders/cli.py
Copyright 2025
SPDX-License-Identifier: Apache-2.0
Authors: Mihai Criveti

trustheaders CLI ─ inspect header mappings and LDAP resolution.

This module is exposed as a **console-script** via:

    [project.scripts]
    trustheaders = "trustheaders.cli:main"

Typical usage
─────────────
```console
$ trustheaders mappings --file headers-mapping.properties
$ trustheaders resolve testuser --service analytics
$ trustheaders connections --year 2024 --month 3
```
"""

# Standard
import logging
from pathlib import Path
import sys
from typing import Optional

# Third-Party
from rich.console import Console
from rich.table import Table
import typer
from typing_extensions import Annotated

# First-Party
from trustheaders import __version__
from trustheaders.config import get_settings
from trustheaders.db import SessionLocal
from trustheaders.mappings import load_header_mappings, read_properties
from trustheaders.services.connection_stats_service import retrieve_layer_connections_for_user
from trustheaders.services.header_provider import create_header_provider, load_configured_mappings

app = typer.Typer(help="Inspect LDAP trust header mappings and resolution.")

console = Console()


@app.callback()
def cli(verbose: Annotated[bool, typer.Option("--verbose", "-v", help="Verbose output")] = False):
    """Configure logging for every command.

    Args:
        verbose: Log at debug level instead of the configured level.
    """
    level = logging.DEBUG if verbose else getattr(logging, get_settings().log_level.upper(), logging.INFO)
    logging.basicConfig(level=level, format="%(asctime)s %(levelname)s %(name)s: %(message)s")


@app.command()
def version():
    """Show the version."""
    console.print(__version__)


@app.command()
def mappings(file: Annotated[Optional[Path], typer.Option("--file", "-f", help="Header mappings properties file")] = None):
    """Show default and per-service header mappings.

    Args:
        file: Properties file, defaults to the configured mappings file.
    """
    try:
        loaded = load_header_mappings(read_properties(file)) if file else load_configured_mappings(get_settings())
    except OSError as e:
        console.print(f"[red]✗ Cannot read mappings: {e}[/red]")
        sys.exit(1)

    table = Table(title="Header mappings")
    table.add_column("Service")
    table.add_column("Header")
    table.add_column("Attribute")
    for header, attribute in loaded.default.items():
        table.add_row("(default)", header, attribute)
    for service in loaded.services():
        for header, attribute in loaded.per_service[service].items():
            table.add_row(service, header, attribute)
    console.print(table)


@app.command()
def resolve(
    username: Annotated[str, typer.Argument(help="LDAP user identifier")],
    service: Annotated[Optional[str], typer.Option("--service", "-s", help="Target service name")] = None,
):
    """Resolve the headers of a user against the configured directory.

    Args:
        username: User identifier.
        service: Target service name.
    """
    resolver = create_header_provider(get_settings()).resolver
    headers = resolver.resolve(username, service)
    if not headers:
        console.print(f"[yellow]No headers resolved for {username}[/yellow]")
        sys.exit(1)
    for header in headers:
        value = "[dim](none)[/dim]" if header.value is None else header.value
        console.print(f"[bold]{header.name}[/bold]: {value}")


@app.command()
def connections(
    year: Annotated[int, typer.Option("--year", "-y", help="Year of the statistics")],
    month: Annotated[Optional[int], typer.Option("--month", "-m", min=1, max=12, help="Month of the statistics")] = None,
):
    """Show OGC layer connections per user.

    Args:
        year: Year of the statistics.
        month: Optional month.
    """
    db = SessionLocal()
    try:
        rows = retrieve_layer_connections_for_user(db, year, month)
    except ValueError as e:
        console.print(f"[red]✗ {e}[/red]")
        sys.exit(1)
    finally:
        db.close()

    table = Table(title=f"Layer connections {year}" + (f"-{month:02d}" if month else ""))
    table.add_column("User")
    table.add_column("Layer")
    table.add_column("Connections", justify="right")
    for row in rows:
        table.add_row(row["user_name"], row["layer"] or "", str(row["connections"]))
    console.print(table)


def main() -> None:
    """Entry point for the *trustheaders* console script."""
    app()


if __name__ == "__main__":
    main()
