"""Core PR review orchestration."""

from __future__ import annotations

import fnmatch
import logging
from dataclasses import dataclass, field
from typing import Iterable

from github import GithubException
from rich.console import Console

from presubmit_core.annotate import FileDiff, annotate_file, annotate_files
from presubmit_core.comments import (
    BotIdentity,
    ReviewCommentThread,
    build_comment,
    get_comment_thread,
    is_own_comment,
    is_thread_relevant,
)
from presubmit_core.config import bot_identity, load_style_guide
from presubmit_core.diff import parse_file_diff, parse_files
from presubmit_core.errors import ParseError
from presubmit_core.gh.pull_request import (
    create_review,
    get_commit_messages,
    get_diff,
    get_pull,
    get_repo,
    list_comment_threads,
    reply_to_comment,
)
from presubmit_core.prompts import (
    AIComment,
    PullRequestReview,
    PullRequestSummary,
    run_review_comment_prompt,
    run_review_prompt,
    run_summary_prompt,
)
from presubmit_core.providers.anthropic import AnthropicProvider
from presubmit_core.providers.openai import OpenAIProvider

console = Console()
logger = logging.getLogger(__name__)


@dataclass
class ReviewSummary:
    """Result returned by run_review."""

    repo: str
    pr_number: int
    event: str  # "COMMENT" | "REQUEST_CHANGES"
    title: str = ""
    reviewed_files: list[str] = field(default_factory=list)
    skipped_files: list[str] = field(default_factory=list)
    comments: list[dict] = field(default_factory=list)


def get_provider(config: dict):
    provider = config["llm_provider"]
    model = config.get("llm_model")
    if provider == "anthropic":
        return AnthropicProvider(api_key=config["llm_api_key"], model=model)
    if provider == "openai":
        return OpenAIProvider(api_key=config["llm_api_key"], model=model)
    raise ValueError(f"Unknown LLM provider: {provider!r}. Choose 'anthropic' or 'openai'.")


def _is_excluded(filename: str, patterns: list[str]) -> bool:
    """Return True if filename matches any exclude pattern.

    Supports:
    - fnmatch globs on the full path: "src/generated/*.py"
    - fnmatch globs on the basename: "*.lock", "*.min.js"
    - Directory names/prefixes: "migrations/", "tests" (matches any file within that tree)
    """
    for pattern in patterns:
        if fnmatch.fnmatch(filename, pattern):
            return True
        if fnmatch.fnmatch(filename.rsplit("/", 1)[-1], pattern):
            return True
        prefix = pattern.rstrip("/") + "/"
        if filename.startswith(prefix) or ("/" + prefix) in filename:
            return True
    return False


def build_file_diffs(
    pr_files: Iterable,
    threads: list[ReviewCommentThread],
    exclude: list[str] | None = None,
    max_chars: int | None = None,
) -> tuple[list[FileDiff], list[str]]:
    """Parse and annotate the reviewable PR files.

    Returns the annotated diffs plus the names of files left out, either by an
    exclude pattern or because their patch is longer than ``max_chars``.
    Oversized patches are dropped whole, since cutting one would break the
    line numbering of its last hunk.
    """
    reviewable, skipped = [], []
    for pr_file in pr_files:
        patch = pr_file.patch or ""
        if _is_excluded(pr_file.filename, exclude or []):
            skipped.append(pr_file.filename)
        elif max_chars is not None and len(patch) > max_chars:
            logger.info("Skipping %s: patch is %d chars (limit %d)", pr_file.filename, len(patch), max_chars)
            skipped.append(pr_file.filename)
        else:
            reviewable.append(pr_file)
    return annotate_files(parse_files(reviewable), threads), skipped


def _comment_body(comment: AIComment) -> str:
    label = f"`{comment.label}`" + (" **critical**" if comment.critical else "")
    return f"**{comment.header}** {label}\n\n{comment.content}"


def to_review_comments(
    ai_comments: Iterable[AIComment],
    file_diffs: list[FileDiff],
    identity: BotIdentity,
) -> list[dict]:
    """Turn model suggestions into GitHub review-comment payloads.

    A suggestion survives only if its file was reviewed and its end line is a
    new-side line of that file's diff; GitHub rejects anything else.
    """
    lines_by_file = {fd.filename: fd.file.new_line_numbers for fd in file_diffs}
    results = []
    for comment in ai_comments:
        lines = lines_by_file.get(comment.file)
        if lines is None:
            logger.debug("Skipping comment for unknown file %s", comment.file)
            continue
        if comment.end_line not in lines:
            logger.debug("Skipping comment for %s:%d (not in diff)", comment.file, comment.end_line)
            continue
        payload = {
            "path": comment.file,
            "line": comment.end_line,
            "side": "RIGHT",
            "body": build_comment(_comment_body(comment), identity),
        }
        if comment.start_line < comment.end_line and comment.start_line in lines:
            payload["start_line"] = comment.start_line
            payload["start_side"] = "RIGHT"
        results.append(payload)
    return results


def _determine_event(ai_comments: Iterable[AIComment]) -> str:
    if any(c.critical for c in ai_comments):
        return "REQUEST_CHANGES"
    return "COMMENT"


def _build_review_body(summary: PullRequestSummary, review: PullRequestReview) -> str:
    verdict = review.review
    lines = [
        f"## {summary.title}",
        "",
        summary.description,
        "",
        "| | |",
        "|---|---|",
        f"| Estimated effort to review | {verdict.estimated_effort_to_review}/5 |",
        f"| Score | {verdict.score}/100 |",
        f"| Relevant tests | {'Yes' if verdict.has_relevant_tests else 'No'} |",
        f"| Security concerns | {verdict.security_concerns} |",
    ]
    if summary.files:
        lines += ["", "### Changes", ""]
        lines += [f"- `{f.filename}`: **{f.title}**. {f.summary}" for f in summary.files]
    return "\n".join(lines)


def print_shadow_comments(comments: list[dict]) -> None:
    """Print review comments to the terminal without posting to GitHub."""
    if not comments:
        console.print("[yellow]Shadow mode: no comments generated.[/yellow]")
        return
    console.print(f"\n[bold]Shadow review — {len(comments)} comment(s) (not posted)[/bold]\n")
    for c in comments:
        span = f"{c['start_line']}-{c['line']}" if "start_line" in c else str(c["line"])
        console.print(f"[bold cyan]{c['path']}[/bold cyan]  line [bold]{span}[/bold]")
        console.print(f"  {c['body']}")
        console.print()


def run_review(
    repo: str,
    pr_number: int,
    config: dict,
    auto_confirm: bool = False,
    shadow: bool = False,
    repo_obj=None,
) -> ReviewSummary | None:
    """Summarize and review a pull request, then post a single review.

    Returns None when the PR is a skipped draft or the user declines to post.
    """
    this_repo = (
        repo_obj
        if repo_obj is not None
        else get_repo(repo, token=config["github_token"], base_url=config["github_api_url"])
    )

    try:
        this_pr = get_pull(this_repo, pr_number)
    except GithubException:
        raise ValueError(f"PR #{pr_number} not found in {repo}.")

    if this_pr.draft and not config.get("review_draft_prs", False):
        console.print(
            "[yellow]Skipping draft PR. Set review_draft_prs: true in .presubmit.yml to review drafts.[/yellow]"
        )
        return None

    identity = bot_identity(config)
    provider = get_provider(config)
    style_guide = load_style_guide(config)
    language = config.get("language")

    pr_files = list(get_diff(this_pr))
    threads = list_comment_threads(this_pr, identity)
    file_diffs, skipped = build_file_diffs(
        pr_files, threads, config.get("exclude", []), config.get("max_chars_per_file")
    )
    for name in skipped:
        console.print(f"  Skipping: {name}")

    console.print(f"Summarizing PR #{pr_number} ({len(pr_files)} file(s))...")
    summary = run_summary_prompt(
        provider,
        pr_title=this_pr.title or "",
        pr_description=this_pr.body or "",
        commit_messages=get_commit_messages(this_pr),
        files=[fd.file for fd in file_diffs],
        language=language,
    )

    console.print(f"Reviewing {len(file_diffs)} file(s)...")
    review = run_review_prompt(
        provider,
        pr_title=this_pr.title or "",
        pr_description=this_pr.body or "",
        pr_summary=summary.description,
        file_diffs=file_diffs,
        language=language,
        style_guide=style_guide,
        bot_login=identity.login,
    )

    comments = to_review_comments(review.comments, file_diffs, identity)
    event = _determine_event(review.comments)
    result = ReviewSummary(
        repo=repo,
        pr_number=pr_number,
        event=event,
        title=summary.title,
        reviewed_files=[fd.filename for fd in file_diffs],
        skipped_files=skipped,
        comments=comments,
    )

    if shadow:
        print_shadow_comments(comments)
        console.print(f"[bold]Shadow review complete. {len(comments)} comment(s) would be posted.[/bold]")
        return result

    if not auto_confirm:
        answer = input(f"Post {len(comments)} comment(s) as {event}? (y/n): ").strip().lower()
        if answer != "y":
            return None

    body = build_comment(_build_review_body(summary, review), identity)
    create_review(this_pr, body, comments, event)
    console.print(f"\n[green]Review posted: {event}. {len(comments)} comment(s).[/green]")
    return result


def run_reply(
    repo: str,
    pr_number: int,
    comment_id: int,
    config: dict,
    shadow: bool = False,
    repo_obj=None,
) -> str | None:
    """Answer the review thread containing ``comment_id``.

    Nothing is posted when the thread cannot be found, does not involve the
    bot, already ends with a bot comment, or the model sees nothing to answer.
    Returns the reply body, or None when there is nothing to post.
    """
    this_repo = (
        repo_obj
        if repo_obj is not None
        else get_repo(repo, token=config["github_token"], base_url=config["github_api_url"])
    )
    this_pr = get_pull(this_repo, pr_number)
    identity = bot_identity(config)

    threads = list_comment_threads(this_pr, identity)
    thread = get_comment_thread(threads, comment_id)
    if thread is None:
        console.print(f"[yellow]No review thread contains comment {comment_id}.[/yellow]")
        return None
    if not is_thread_relevant(thread, identity):
        logger.info("Thread %d does not involve %s; not replying.", thread.root.id, identity.login)
        return None
    if is_own_comment(thread.last.body, identity):
        logger.info("Thread %d already ends with our comment.", thread.root.id)
        return None

    # A thread on a renamed file keeps the path it was written against.
    pr_file = next(
        (f for f in get_diff(this_pr) if thread.file in (f.filename, f.previous_filename)),
        None,
    )
    if pr_file is None:
        console.print(f"[yellow]{thread.file} is no longer part of PR #{pr_number}.[/yellow]")
        return None
    try:
        file = parse_file_diff(pr_file.filename, pr_file.status, pr_file.patch, pr_file.previous_filename)
    except ParseError as e:
        logger.warning("Cannot reply on %s: %s", thread.file, e)
        return None

    response = run_review_comment_prompt(
        get_provider(config),
        thread=thread,
        file_diff=annotate_file(file, threads),
        language=config.get("language"),
        bot_login=identity.login,
    )
    if not response.action_requested or not response.response_comment.strip():
        console.print("No reply needed.")
        return None

    body = build_comment(response.response_comment, identity)
    if shadow:
        console.print(f"[bold]Shadow reply to comment {thread.root.id} (not posted):[/bold]\n{body}")
        return body

    # GitHub only accepts replies addressed to the top-level comment of a thread.
    reply_to_comment(this_pr, thread.root.id, body)
    console.print(f"[green]Replied to thread {thread.root.id}.[/green]")
    return body
