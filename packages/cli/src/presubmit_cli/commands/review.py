"""review command — summarize and review a pull request."""

from __future__ import annotations

import click
from rich.console import Console

from presubmit_core.config import validate_config
from presubmit_core.errors import ConfigError, PresubmitError
from presubmit_core.reviewer import run_review

console = Console()


@click.command("review")
@click.option("--repo", required=True, help="GitHub repository in owner/name format.")
@click.option("--pr", "pr_number", type=int, required=True, help="Pull request number.")
@click.option("--yes", "-y", is_flag=True, help="Skip the confirmation prompt.")
@click.option(
    "--shadow",
    "-s",
    is_flag=True,
    help="Dry-run mode: print review comments without posting to GitHub.",
)
@click.pass_context
def review_cmd(ctx, repo: str, pr_number: int, yes: bool, shadow: bool):
    """Review a pull request and post inline comments.

    \b
    Required environment variables:
      GITHUB_TOKEN   GitHub token (or use the gh CLI)
      LLM_API_KEY    API key for the configured LLM provider
    """
    config = ctx.obj["config"]
    try:
        validate_config(config)
    except ConfigError as e:
        raise click.UsageError(str(e))

    try:
        summary = run_review(repo=repo, pr_number=pr_number, config=config, auto_confirm=yes, shadow=shadow)
    except PresubmitError as e:
        raise click.ClickException(str(e))

    if summary is not None:
        console.print(f"[bold]{summary.title}[/bold] · {len(summary.reviewed_files)} file(s) reviewed")
