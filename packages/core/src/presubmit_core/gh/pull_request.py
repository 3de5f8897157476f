from __future__ import annotations

from github import Auth, Github

from presubmit_core.comments import (
    BotIdentity,
    ReviewComment,
    ReviewCommentThread,
    build_comment_threads,
    normalize_author,
)

DEFAULT_API_URL = "https://api.github.com"


def get_repo(repo_name: str, token: str, base_url: str = DEFAULT_API_URL):
    return Github(auth=Auth.Token(token), base_url=base_url).get_repo(repo_name)


def get_pull(repo, pr_number: int):
    return repo.get_pull(pr_number)


def get_diff(pr):
    return pr.get_files()


def get_commit_messages(pr) -> list[str]:
    return [commit.commit.message for commit in pr.get_commits()]


def fetch_review_comments(pr, identity: BotIdentity) -> list[ReviewComment]:
    """Return every review comment on the PR, with bot-signed comments attributed to the bot."""
    return [normalize_author(ReviewComment.from_github(c), identity) for c in pr.get_review_comments()]


def list_comment_threads(pr, identity: BotIdentity) -> list[ReviewCommentThread]:
    return build_comment_threads(fetch_review_comments(pr, identity))


def create_review(pr, body: str, comments: list[dict], event: str = "COMMENT"):
    return pr.create_review(body=body, event=event, comments=comments)


def reply_to_comment(pr, comment_id: int, body: str):
    return pr.create_review_comment_reply(comment_id, body)
