"""``shellrepo publish`` — upload a package file and record its metadata."""

from __future__ import annotations

import asyncio
from pathlib import Path

import typer
from rich.console import Console
from rich.progress import BarColumn, Progress, TaskProgressColumn, TextColumn

from shellrepo.backends import create_local_coordinator
from shellrepo.cli.rendering import outcome_panel
from shellrepo.config import RepoConfig
from shellrepo.core.publisher import Publisher
from shellrepo.models.publish import PublishOutcome, PublishRequest

console = Console()


async def _publish(repo_config: RepoConfig, request: PublishRequest) -> PublishOutcome:
    async with create_local_coordinator(repo_config) as repo:
        if repo.identity.degraded:
            console.print(f"[yellow]{repo.identity.auth_error}[/yellow]")

        with Progress(
            TextColumn("[bold blue]{task.description}"),
            BarColumn(),
            TaskProgressColumn(),
            console=console,
            transient=True,
        ) as progress:
            task_id = progress.add_task("Uploading", total=100)

            def _update(publisher: Publisher) -> None:
                if publisher.busy:
                    progress.update(task_id, completed=publisher.progress)

            remove = repo.publisher.add_listener(_update)
            try:
                return await repo.publish(request)
            finally:
                remove()


def publish_cmd(
    file: Path = typer.Argument(
        ...,
        exists=True,
        dir_okay=False,
        readable=True,
        help="Package file to upload (.zip or .py).",
    ),
    name: str = typer.Option(..., "--name", "-n", help="Package name, e.g. MyCoolApp."),
    description: str = typer.Option(
        ..., "--description", "-d", help="A brief description of the package."
    ),
    version: str = typer.Option(..., "--version", "-v", help="Version, e.g. 1.0.0."),
    token: str = typer.Option(
        None, "--token", "-t", help="Auth token; anonymous sign-in when omitted."
    ),
) -> None:
    """Publish a package: upload the file, then save its catalog entry."""
    repo_config = RepoConfig()
    if token:
        repo_config = repo_config.model_copy(update={"initial_auth_token": token})

    request = PublishRequest(
        name=name,
        description=description,
        version=version,
        file_name=file.name,
        data=file.read_bytes(),
    )
    outcome = asyncio.run(_publish(repo_config, request))

    console.print()
    console.print(outcome_panel(outcome))
    console.print()
    if not outcome.ok:
        raise typer.Exit(code=1)
