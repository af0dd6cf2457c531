"""Rich renderables shared by the CLI commands."""

from __future__ import annotations

from rich.panel import Panel
from rich.table import Table

from shellrepo.models.catalog import CatalogSnapshot
from shellrepo.models.publish import PublishOutcome


def short_id(user_id: str, width: int = 8) -> str:
    if not user_id:
        return "N/A"
    return user_id if len(user_id) <= width else f"{user_id[:width]}..."


def catalog_table(snapshot: CatalogSnapshot) -> Table:
    """Render a catalog snapshot, newest upload first."""
    table = Table(title=f"Available Packages ({len(snapshot.records)})")
    table.add_column("Package", style="cyan")
    table.add_column("Version", style="green")
    table.add_column("Description")
    table.add_column("Uploaded by", style="dim")
    table.add_column("Uploaded", style="dim")
    table.add_column("Download")

    for record in snapshot.newest_first():
        table.add_row(
            record.display_name,
            f"v{record.version}",
            record.description,
            short_id(record.uploader_id),
            record.upload_time.strftime("%Y-%m-%d"),
            record.file_url,
        )
    return table


def outcome_panel(outcome: PublishOutcome) -> Panel:
    """Render the terminal outcome of a publish request."""
    if outcome.ok:
        lines = [
            f"[bold green]{outcome.message}[/bold green]",
            "",
            f"[bold]Record ID:[/bold]  {outcome.record_id}",
            f"[bold]File:[/bold]       {outcome.file_name}",
            f"[bold]URL:[/bold]        {outcome.file_url}",
        ]
        border = "green"
    else:
        lines = [f"[bold red]{outcome.message}[/bold red]"]
        if outcome.orphaned_artifact:
            lines += [
                "",
                f"[yellow]Orphaned artifact:[/yellow] {outcome.artifact_path}",
                "[dim]Re-publish, or publish under a new version.[/dim]",
            ]
        border = "yellow" if outcome.orphaned_artifact else "red"

    lines += ["", f"[dim]Transaction {outcome.transaction_id}: {outcome.state.value}[/dim]"]
    return Panel(
        "\n".join(lines),
        title="[bold]shellrepo publish[/bold]",
        border_style=border,
        padding=(1, 2),
    )
