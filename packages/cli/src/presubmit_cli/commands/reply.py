"""reply command — answer a review comment thread."""

from __future__ import annotations

import click
from rich.console import Console

from presubmit_core.config import validate_config
from presubmit_core.errors import ConfigError, PresubmitError
from presubmit_core.reviewer import run_reply

console = Console()


@click.command("reply")
@click.option("--repo", required=True, help="GitHub repository in owner/name format.")
@click.option("--pr", "pr_number", type=int, required=True, help="Pull request number.")
@click.option("--comment-id", type=int, required=True, help="ID of the review comment to answer.")
@click.option("--shadow", "-s", is_flag=True, help="Print the reply instead of posting it.")
@click.pass_context
def reply_cmd(ctx, repo: str, pr_number: int, comment_id: int, shadow: bool):
    """Reply to a review comment thread the bot started or was mentioned in."""
    config = ctx.obj["config"]
    try:
        validate_config(config)
    except ConfigError as e:
        raise click.UsageError(str(e))

    try:
        run_reply(repo=repo, pr_number=pr_number, comment_id=comment_id, config=config, shadow=shadow)
    except PresubmitError as e:
        raise click.ClickException(str(e))
