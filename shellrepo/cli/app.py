"""Main Typer application — imports and registers all CLI commands.

Entry point: ``shellrepo`` (configured via pyproject.toml project.scripts).
"""

from __future__ import annotations

import logging

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from shellrepo.cli.commands.catalog import list_cmd
from shellrepo.cli.commands.publish import publish_cmd
from shellrepo.config import RepoConfig, config

app = typer.Typer(
    name="shellrepo",
    help="ShellOS package repository: publish packages and browse the catalog.",
    no_args_is_help=True,
    rich_markup_mode="rich",
    add_completion=False,
)


@app.callback()
def main_callback(
    log_level: str = typer.Option(
        None, "--log-level", help="Override SHELLREPO_LOG_LEVEL for this run."
    ),
) -> None:
    """Configure logging once for every subcommand."""
    level = (log_level or config.log_level).upper()
    logging.basicConfig(
        level=level,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[
            RichHandler(
                console=Console(stderr=True), rich_tracebacks=True, show_path=False
            )
        ],
        force=True,
    )


# Register subcommands
app.command(name="publish", help="Upload a package file and save its catalog entry.")(publish_cmd)
app.command(name="list", help="List published packages.")(list_cmd)


@app.command(name="info", help="Show the active repository configuration.")
def info_cmd() -> None:
    """Print the resolved configuration (environment, paths, collection)."""
    repo_config = RepoConfig()
    console = Console()

    table = Table(title="shellrepo configuration", show_header=False)
    table.add_column("Setting", style="cyan")
    table.add_column("Value")
    table.add_row("Environment", repo_config.environment)
    table.add_row("App ID", repo_config.app_id)
    table.add_row("Catalog collection", repo_config.catalog_collection_path)
    table.add_row("Artifact path", repo_config.artifact_path("<file>"))
    table.add_row("Catalog database", str(repo_config.catalog_db_path))
    table.add_row("Storage root", str(repo_config.storage_path))
    table.add_row("Download base URL", repo_config.download_base_url or "[dim](file URIs)[/dim]")
    table.add_row("Auth token", "[green]set[/green]" if repo_config.initial_auth_token else "[dim]anonymous[/dim]")
    table.add_row(
        "Degraded publish",
        "[yellow]allowed[/yellow]" if repo_config.allow_degraded_publish else "disabled",
    )
    console.print(table)


def main() -> None:
    """CLI entry point."""
    app()


if __name__ == "__main__":
    main()
