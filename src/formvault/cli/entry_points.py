"""CLI entry points for formvault."""

from formvault.cli import cli


def entrypoint() -> None:
    """Entry point for CLI."""
    cli()
