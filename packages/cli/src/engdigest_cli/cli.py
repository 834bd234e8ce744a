"""CLI entry point for engdigest.

Commands:
  digest  — summarize recent repository activity with risk-scored PRs
"""

from __future__ import annotations

import importlib.metadata
import logging

import click
from rich.console import Console
from rich.logging import RichHandler

from engdigest_cli.commands.digest import digest_cmd

console = Console(stderr=True)


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=console, show_path=False)],
        force=True,
    )


@click.group()
@click.version_option(
    version=importlib.metadata.version("engdigest"),
    prog_name="engdigest",
)
@click.option(
    "--config",
    "config_path",
    default=".engdigest.yml",
    show_default=True,
    help="Path to the configuration file.",
    envvar="ENGDIGEST_CONFIG",
)
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging.")
@click.pass_context
def main(ctx: click.Context, config_path: str, verbose: bool):
    """AI-powered engineering digest for GitHub repositories."""
    _configure_logging(verbose)
    ctx.ensure_object(dict)
    ctx.obj["config_path"] = config_path


main.add_command(digest_cmd)
