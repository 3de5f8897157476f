"""Render annotated diffs into the text the review prompt asks the model to read.

The output grammar is fixed because the system prompt describes it to the
model and the line numbers the model echoes back are resolved against it::

    ## File: 'src/app.py'

    @@ -10,4 +10,5 @@ def handler():
    __new hunk__
    10  unchanged line
    11 +added line
    __old hunk__
     unchanged line
    -removed line
     __existing_comment_thread__
     presubmit: earlier suggestion
     alice: reply

New-side lines are always numbered, old-side lines never are, and the
``__old hunk__`` block only exists when the hunk removed something. Comment
threads close the hunk, each opened by its own delimiter. Every line of a
comment body keeps the one-space gutter so it never reads as a diff line.
"""

from __future__ import annotations

import re
from typing import Iterable

from presubmit_core.annotate import AnnotatedHunk, FileDiff
from presubmit_core.comments import ReviewCommentThread
from presubmit_core.diff import File, Hunk

THREAD_DELIMITER = "__existing_comment_thread__"

_HTML_COMMENT = re.compile(r"<!--.*?-->", re.DOTALL)


def format_new_hunk(hunk: Hunk) -> str:
    lines = [f"{line.line_number} {line.prefix.value}{line.text}" for line in hunk.new_lines]
    return "\n".join(["__new hunk__", *lines])


def format_old_hunk(hunk: Hunk) -> str | None:
    """Return the ``__old hunk__`` block, or None when nothing was removed."""
    if hunk.old_lines is None:
        return None
    lines = [f"{line.prefix.value}{line.text}" for line in hunk.old_lines]
    return "\n".join(["__old hunk__", *lines])


def _comment_text(body: str) -> str:
    # HTML comments (the bot signature among them) never render on GitHub.
    text = _HTML_COMMENT.sub("", body).strip()
    return "\n ".join(text.splitlines())


def format_comment_thread(thread: ReviewCommentThread) -> str:
    comments = [f" {comment.login}: {_comment_text(comment.body)}" for comment in thread.comments]
    return "\n".join([f" {THREAD_DELIMITER}", *comments])


def format_hunk(annotated: AnnotatedHunk) -> str:
    hunk = annotated.hunk
    parts = [hunk.header, format_new_hunk(hunk)]
    old = format_old_hunk(hunk)
    if old is not None:
        parts.append(old)
    parts.extend(format_comment_thread(thread) for thread in annotated.threads)
    return "\n".join(parts)


def generate_file_code_diff(file_diff: FileDiff) -> str:
    """Serialize one annotated file; hunks are separated by a blank line."""
    header = f"## File: '{file_diff.filename}'"
    if not file_diff.hunks:
        return header
    hunks = "\n\n".join(format_hunk(annotated) for annotated in file_diff.hunks)
    return f"{header}\n\n{hunks}"


def generate_pr_code_diff(file_diffs: Iterable[FileDiff]) -> str:
    """Serialize every file that has hunks, separated by a blank line."""
    return "\n\n".join(generate_file_code_diff(fd) for fd in file_diffs if fd.hunks)


def format_file_diff(file: File) -> str:
    """Raw patch of one file, as shown to the summary prompt."""
    header = f"## File: '{file.filename}'"
    if not file.patch:
        return header
    return f"{header}\n\n{file.patch}"


def format_affected_files(files: Iterable[File]) -> str:
    return "\n".join(f"- {file.status.value}: {file.filename}" for file in files)
