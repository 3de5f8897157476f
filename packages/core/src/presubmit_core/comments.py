"""Review comment threads rebuilt from GitHub's flat comment list.

GitHub returns pull request review comments as one paginated list in which a
reply only points at its parent through ``in_reply_to_id``. This module turns
that list into ReviewCommentThreads (root first, then every descendant in
pre-order) and decides which threads the bot should take part in.

The bot is recognised by a signature marker embedded in every comment it
posts, not by the account that posted it, so several GitHub accounts can act
as the same bot. The marker and the handles are carried by a BotIdentity that
callers inject; nothing here hard-codes them.
"""

from __future__ import annotations

import logging
from collections import defaultdict
from dataclasses import dataclass, replace
from typing import Iterable

from presubmit_core.errors import OrphanReply

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class BotIdentity:
    login: str = "presubmit"
    signature: str = "<!-- presubmit.ai: comment -->"
    handles: tuple[str, ...] = ("@presubmitai", "@presubmit")

    def is_own(self, body: str) -> bool:
        return self.signature in (body or "")

    def is_mentioned(self, body: str) -> bool:
        return any(handle in (body or "") for handle in self.handles)


@dataclass(frozen=True)
class ReviewComment:
    id: int
    path: str
    body: str
    login: str
    diff_hunk: str = ""
    line: int | None = None
    start_line: int | None = None
    in_reply_to_id: int | None = None

    @classmethod
    def from_github(cls, comment) -> "ReviewComment":
        """Build from a PyGithub ``PullRequestComment``."""
        user = comment.user
        return cls(
            id=comment.id,
            path=comment.path,
            body=comment.body or "",
            login=user.login if user is not None else "ghost",
            diff_hunk=comment.diff_hunk or "",
            line=comment.line,
            start_line=comment.start_line,
            in_reply_to_id=comment.in_reply_to_id,
        )


@dataclass(frozen=True)
class ReviewCommentThread:
    file: str
    comments: tuple[ReviewComment, ...]

    @property
    def root(self) -> ReviewComment:
        return self.comments[0]

    @property
    def last(self) -> ReviewComment:
        return self.comments[-1]

    def __contains__(self, comment_id: int) -> bool:
        return any(c.id == comment_id for c in self.comments)


def is_own_comment(body: str, identity: BotIdentity) -> bool:
    return identity.is_own(body)


def normalize_author(comment: ReviewComment, identity: BotIdentity) -> ReviewComment:
    """Attribute a signed comment to the bot login, whoever actually posted it."""
    if is_own_comment(comment.body, identity) and comment.login != identity.login:
        return replace(comment, login=identity.login)
    return comment


def build_comment(body: str, identity: BotIdentity) -> str:
    """Append the bot signature so later runs recognise the comment as ours."""
    return body + "\n\n" + identity.signature


def _dedupe(comments: Iterable[ReviewComment]) -> list[ReviewComment]:
    # Pages can overlap when comments are added mid-fetch; first copy wins.
    seen: set[int] = set()
    unique = []
    for comment in comments:
        if comment.id in seen:
            continue
        seen.add(comment.id)
        unique.append(comment)
    return unique


def _children_index(comments: list[ReviewComment]) -> dict[int, list[ReviewComment]]:
    children: dict[int, list[ReviewComment]] = defaultdict(list)
    for comment in comments:
        if comment.in_reply_to_id is not None:
            children[comment.in_reply_to_id].append(comment)
    return children


def _is_root(comment: ReviewComment) -> bool:
    return comment.in_reply_to_id is None and bool(comment.body)


def _gather_replies(root: ReviewComment, children: dict[int, list[ReviewComment]]) -> list[ReviewComment]:
    """Return the descendants of ``root`` in pre-order.

    Each reply is followed immediately by its own replies, siblings keep their
    input order. Empty-body replies are not emitted but their children are
    still walked. ``visited`` guards against id cycles in malformed input.
    """
    replies = []
    visited = {root.id}
    stack = list(reversed(children.get(root.id, [])))
    while stack:
        comment = stack.pop()
        if comment.id in visited:
            continue
        visited.add(comment.id)
        if comment.body:
            replies.append(comment)
        stack.extend(reversed(children.get(comment.id, [])))
    return replies


def find_orphan_replies(comments: Iterable[ReviewComment]) -> list[OrphanReply]:
    """Return the non-empty replies that no thread root can reach.

    This covers replies to a missing parent and replies hanging off a root
    whose body is empty (such roots never start a thread).
    """
    unique = _dedupe(comments)
    children = _children_index(unique)
    reachable: set[int] = set()
    for root in unique:
        if _is_root(root):
            reachable.add(root.id)
            reachable.update(c.id for c in _gather_replies(root, children))
    return [
        OrphanReply(c.id, c.in_reply_to_id)
        for c in unique
        if c.in_reply_to_id is not None and c.body and c.id not in reachable
    ]


def build_comment_threads(comments: Iterable[ReviewComment]) -> list[ReviewCommentThread]:
    """Group a flat list of review comments into threads, one per root.

    A root is a comment with no ``in_reply_to_id`` and a non-empty body.
    Threads come out in the order their roots appear in ``comments`` and take
    their file from the root's path. Orphaned replies are logged and left out.
    """
    unique = _dedupe(comments)
    children = _children_index(unique)

    threads = [
        ReviewCommentThread(file=root.path, comments=(root, *_gather_replies(root, children)))
        for root in unique
        if _is_root(root)
    ]

    for orphan in find_orphan_replies(unique):
        logger.warning("Dropping review comment: %s", orphan)

    return threads


def get_comment_thread(threads: Iterable[ReviewCommentThread], comment_id: int) -> ReviewCommentThread | None:
    """Return the thread containing ``comment_id``, or None."""
    for thread in threads:
        if comment_id in thread:
            return thread
    return None


def is_thread_relevant(thread: ReviewCommentThread, identity: BotIdentity) -> bool:
    """True if the bot wrote or was mentioned in any comment of the thread."""
    return any(is_own_comment(c.body, identity) or identity.is_mentioned(c.body) for c in thread.comments)
