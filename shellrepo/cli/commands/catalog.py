"""``shellrepo list`` — show the published catalog."""

from __future__ import annotations

import asyncio
import json

import typer
from rich.console import Console

from shellrepo.backends import create_local_coordinator
from shellrepo.cli.rendering import catalog_table
from shellrepo.config import RepoConfig
from shellrepo.core.errors import SubscriptionError
from shellrepo.models.catalog import CatalogSnapshot

console = Console()


async def _first_snapshot(repo_config: RepoConfig, timeout: float) -> CatalogSnapshot:
    async with create_local_coordinator(repo_config) as repo:
        if repo.catalog.sequence > 0:
            return repo.catalog.snapshot
        return await repo.catalog.next_snapshot(timeout=timeout)


def list_cmd(
    as_json: bool = typer.Option(
        False, "--json", help="Print package-index entries as JSON."
    ),
    timeout: float = typer.Option(
        10.0, "--timeout", help="Seconds to wait for the catalog."
    ),
) -> None:
    """List published packages, newest first."""
    try:
        snapshot = asyncio.run(_first_snapshot(RepoConfig(), timeout))
    except (SubscriptionError, TimeoutError) as exc:
        console.print(f"[red]Failed to load packages:[/red] {str(exc) or 'timed out'}")
        raise typer.Exit(code=1)

    if as_json:
        entries = [record.index_entry() for record in snapshot.newest_first()]
        typer.echo(json.dumps({"packages": entries}, indent=2))
        return

    if not snapshot.records:
        console.print("[dim]No packages available yet. Be the first to upload one![/dim]")
        return
    console.print(catalog_table(snapshot))
