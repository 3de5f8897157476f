"""CLI entry point for presubmit.

Commands:
  review   — summarize and review a pull request, posting one review
  reply    — answer a review comment thread the bot takes part in
"""

from __future__ import annotations

import importlib.metadata
import logging

import click
from rich.console import Console
from rich.logging import RichHandler

from presubmit_cli.commands.reply import reply_cmd
from presubmit_cli.commands.review import review_cmd

console = Console()


def _configure_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.WARNING),
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
    )


@click.group()
@click.version_option(
    version=importlib.metadata.version("presubmit"),
    prog_name="presubmit",
)
@click.option(
    "--config",
    "config_path",
    default=".presubmit.yml",
    show_default=True,
    help="Path to the configuration file.",
    envvar="PRESUBMIT_CONFIG",
)
@click.option(
    "--log-level",
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"], case_sensitive=False),
    default="WARNING",
    show_default=True,
    help="Logging verbosity.",
)
@click.pass_context
def main(ctx: click.Context, config_path: str, log_level: str):
    """AI-powered GitHub pull request reviewer."""
    from presubmit_cli.auth import resolve_github_token
    from presubmit_core.config import load_config

    _configure_logging(log_level)
    ctx.ensure_object(dict)

    config = load_config(config_path)

    # Resolve the token once so every subcommand shares it.
    token = resolve_github_token()
    if token:
        config["github_token"] = token

    ctx.obj["config"] = config


main.add_command(review_cmd)
main.add_command(reply_cmd)
