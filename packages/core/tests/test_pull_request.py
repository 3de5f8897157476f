"""Tests for GitHub pull request helper functions."""

from unittest.mock import MagicMock

from presubmit_core.comments import BotIdentity
from presubmit_core.gh.pull_request import (
    create_review,
    fetch_review_comments,
    get_commit_messages,
    list_comment_threads,
    reply_to_comment,
)

BOT = BotIdentity()


def gh_comment(id, body, login="alice", in_reply_to_id=None, path="src/foo.py", line=3):
    c = MagicMock()
    c.id = id
    c.path = path
    c.body = body
    c.user.login = login
    c.diff_hunk = "@@ -1,3 +1,3 @@\n a\n+b"
    c.line = line
    c.start_line = None
    c.in_reply_to_id = in_reply_to_id
    return c


def make_pr(comments):
    pr = MagicMock()
    pr.get_review_comments.return_value = comments
    return pr


class TestFetchReviewComments:
    def test_signed_comments_attributed_to_bot(self):
        pr = make_pr(
            [
                gh_comment(1, f"Bug\n\n{BOT.signature}", login="github-actions[bot]"),
                gh_comment(2, "Thanks", in_reply_to_id=1),
            ]
        )
        comments = fetch_review_comments(pr, BOT)
        assert [c.login for c in comments] == ["presubmit", "alice"]
        assert comments[1].in_reply_to_id == 1


class TestCommentThreads:
    def test_list_comment_threads(self):
        pr = make_pr([gh_comment(1, "root"), gh_comment(2, "reply", in_reply_to_id=1), gh_comment(3, "")])
        threads = list_comment_threads(pr, BOT)
        assert len(threads) == 1
        assert [c.id for c in threads[0].comments] == [1, 2]


def test_get_commit_messages():
    pr = MagicMock()
    commit = MagicMock()
    commit.commit.message = "fix: handle empty input"
    pr.get_commits.return_value = [commit]
    assert get_commit_messages(pr) == ["fix: handle empty input"]


def test_create_review_forwards_payload():
    pr = MagicMock()
    comments = [{"path": "a.py", "line": 2, "side": "RIGHT", "body": "x"}]
    create_review(pr, "summary", comments, "REQUEST_CHANGES")
    pr.create_review.assert_called_once_with(body="summary", event="REQUEST_CHANGES", comments=comments)


def test_reply_to_comment():
    pr = MagicMock()
    reply_to_comment(pr, 7, "answer")
    pr.create_review_comment_reply.assert_called_once_with(7, "answer")
