"""Attach existing review comment threads to the hunks they discuss.

The model sees earlier discussion next to the code it refers to, which stops
it from repeating suggestions that were already made or answered. Placement
is decided by the thread's root comment:

1. its ``line`` is a new-side line inside the hunk, otherwise
2. the comment is outdated (GitHub cleared ``line``, or the line moved out of
   every hunk), and the hunk sharing the most content with the comment's
   recorded ``diff_hunk`` wins, provided it contains the commented line.

Threads that match neither way are dropped from the annotation.
"""

from __future__ import annotations

import logging
from collections import defaultdict
from dataclasses import dataclass
from typing import Iterable, Sequence

from presubmit_core.comments import ReviewCommentThread
from presubmit_core.diff import File, Hunk
from presubmit_core.errors import AttachmentMiss

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AnnotatedHunk:
    hunk: Hunk
    threads: tuple[ReviewCommentThread, ...] = ()


@dataclass(frozen=True)
class FileDiff:
    file: File
    hunks: tuple[AnnotatedHunk, ...] = ()

    @property
    def filename(self) -> str:
        return self.file.filename


def _diff_hunk_lines(diff_hunk: str) -> list[str]:
    """Content lines of a comment's ``diff_hunk``, prefixes stripped."""
    lines = []
    for raw in diff_hunk.splitlines():
        if raw.startswith("@@") or raw.startswith("\\"):
            continue
        text = raw[1:] if raw[:1] in ("+", "-", " ") else raw
        if text.strip():
            lines.append(text)
    return lines


def _match_by_content(hunks: Sequence[Hunk], diff_hunk: str) -> int | None:
    lines = _diff_hunk_lines(diff_hunk)
    if not lines:
        return None
    # GitHub's diff_hunk ends on the line the comment was left on.
    anchor = lines[-1]
    best, best_score = None, 0
    for index, hunk in enumerate(hunks):
        texts = hunk.texts()
        if anchor not in texts:
            continue
        score = sum(1 for line in lines if line in texts)
        if score > best_score:
            best, best_score = index, score
    return best


def locate_hunk(hunks: Sequence[Hunk], thread: ReviewCommentThread) -> int:
    """Return the index of the hunk ``thread`` belongs to.

    Raises AttachmentMiss when neither the line number nor the recorded hunk
    content places the thread.
    """
    root = thread.root
    if root.line is not None:
        for index, hunk in enumerate(hunks):
            if hunk.covers(root.line):
                return index

    index = _match_by_content(hunks, root.diff_hunk)
    if index is None:
        raise AttachmentMiss(thread.file, root.id)
    return index


def annotate_file(file: File, threads: Iterable[ReviewCommentThread]) -> FileDiff:
    """Embed ``threads`` into the hunks of ``file``.

    Threads on other files are ignored. Threads sharing a hunk keep the order
    in which they were given. Hunk lines are never modified.
    """
    names = {file.filename, file.previous_filename}
    attached: dict[int, list[ReviewCommentThread]] = defaultdict(list)
    for thread in threads:
        if thread.file not in names:
            continue
        try:
            attached[locate_hunk(file.hunks, thread)].append(thread)
        except AttachmentMiss as e:
            logger.debug("Not annotating: %s", e)

    return FileDiff(
        file=file,
        hunks=tuple(AnnotatedHunk(hunk, tuple(attached.get(i, ()))) for i, hunk in enumerate(file.hunks)),
    )


def annotate_files(files: Iterable[File], threads: Iterable[ReviewCommentThread]) -> list[FileDiff]:
    threads = list(threads)
    return [annotate_file(file, threads) for file in files]
