"""shellrepo CLI: Typer-based command-line interface.

Provides the ``shellrepo`` command with subcommands for publishing packages,
listing the live catalog and showing the active configuration.

All output uses Rich for formatted terminal display.
"""
