"""Structured model of a pull request diff.

GitHub returns one unified-diff ``patch`` per changed file. This module turns
that text into a File holding an ordered tuple of Hunks. Each hunk keeps two
views of its lines:

- the new side (context and added lines), numbered from the ``+c`` offset of
  the ``@@ -a,b +c,d @@`` header. These are the only line numbers exposed to
  the model and echoed back in its suggestions.
- the old side (context and removed lines), unnumbered. It is only kept when
  the hunk removed something, so the serializer can omit ``__old hunk__``.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Iterable

from presubmit_core.errors import NoParsableFilesError, ParseError

logger = logging.getLogger(__name__)

_HUNK_HEADER_RE = re.compile(r"^@@ -(\d+)(?:,(\d+))? \+(\d+)(?:,(\d+))? @@ ?(.*)$")


class FileStatus(str, Enum):
    ADDED = "added"
    MODIFIED = "modified"
    REMOVED = "removed"
    RENAMED = "renamed"

    @classmethod
    def from_github(cls, status: str | None) -> "FileStatus":
        """Map a GitHub file status onto the four statuses the prompts know about.

        GitHub also reports ``copied``, ``changed`` and ``unchanged``; a copy is
        a new file, the other two carry content changes like a modification.
        """
        if status == "copied":
            return cls.ADDED
        try:
            return cls(status)
        except ValueError:
            return cls.MODIFIED


class LinePrefix(str, Enum):
    CONTEXT = " "
    ADDED = "+"
    REMOVED = "-"


@dataclass(frozen=True)
class NewHunkLine:
    line_number: int
    prefix: LinePrefix  # CONTEXT or ADDED
    text: str


@dataclass(frozen=True)
class OldHunkLine:
    prefix: LinePrefix  # CONTEXT or REMOVED
    text: str


@dataclass(frozen=True)
class Hunk:
    header: str
    old_start: int
    old_count: int
    new_start: int
    new_count: int
    new_lines: tuple[NewHunkLine, ...] = ()
    # None when the hunk removed nothing.
    old_lines: tuple[OldHunkLine, ...] | None = None

    @property
    def first_line(self) -> int | None:
        return self.new_lines[0].line_number if self.new_lines else None

    @property
    def last_line(self) -> int | None:
        return self.new_lines[-1].line_number if self.new_lines else None

    def covers(self, line: int) -> bool:
        """Return True if ``line`` is a new-side line number inside this hunk."""
        if not self.new_lines:
            return False
        return self.first_line <= line <= self.last_line

    def texts(self) -> set[str]:
        """Every line of content visible in the hunk, on either side."""
        lines = {line.text for line in self.new_lines}
        if self.old_lines:
            lines.update(line.text for line in self.old_lines)
        return lines


@dataclass(frozen=True)
class File:
    filename: str
    status: FileStatus
    patch: str = ""
    hunks: tuple[Hunk, ...] = ()
    previous_filename: str | None = None

    @property
    def new_line_numbers(self) -> set[int]:
        return {line.line_number for hunk in self.hunks for line in hunk.new_lines}


@dataclass
class _HunkBuilder:
    header: str
    old_start: int
    old_count: int
    new_start: int
    new_count: int
    next_line: int
    new_lines: list[NewHunkLine] = field(default_factory=list)
    old_lines: list[OldHunkLine] = field(default_factory=list)
    removed: bool = False

    def add(self, raw: str) -> None:
        prefix, text = (raw[0], raw[1:]) if raw else (" ", "")
        if prefix == "+":
            self.new_lines.append(NewHunkLine(self.next_line, LinePrefix.ADDED, text))
            self.next_line += 1
        elif prefix == "-":
            self.old_lines.append(OldHunkLine(LinePrefix.REMOVED, text))
            self.removed = True
        else:
            # Context lines normally start with a space; anything else is
            # treated as unprefixed context and kept whole.
            if prefix != " ":
                text = raw
            self.new_lines.append(NewHunkLine(self.next_line, LinePrefix.CONTEXT, text))
            self.old_lines.append(OldHunkLine(LinePrefix.CONTEXT, text))
            self.next_line += 1

    def build(self) -> Hunk:
        return Hunk(
            header=self.header,
            old_start=self.old_start,
            old_count=self.old_count,
            new_start=self.new_start,
            new_count=self.new_count,
            new_lines=tuple(self.new_lines),
            old_lines=tuple(self.old_lines) if self.removed else None,
        )


def parse_hunk_header(header: str, filename: str = "") -> tuple[int, int, int, int]:
    """Return ``(old_start, old_count, new_start, new_count)`` for an ``@@`` line.

    Omitted counts default to 1, as in ``@@ -3 +3 @@``. Raises ParseError when
    the line does not match the unified-diff header grammar.
    """
    match = _HUNK_HEADER_RE.match(header)
    if not match:
        raise ParseError(filename, header)
    old_start, old_count, new_start, new_count, _ = match.groups()
    return (
        int(old_start),
        int(old_count) if old_count is not None else 1,
        int(new_start),
        int(new_count) if new_count is not None else 1,
    )


def parse_file_diff(
    filename: str,
    status: FileStatus | str,
    patch: str | None,
    previous_filename: str | None = None,
) -> File:
    """Parse one file's unified-diff text into a File.

    Binary files (GitHub sends no patch) and content-free renames produce a
    File with no hunks. Text before the first ``@@`` line, such as ``diff --git``
    or ``---``/``+++`` headers, is ignored, as are ``\\ No newline at end of
    file`` markers.
    """
    if not isinstance(status, FileStatus):
        status = FileStatus.from_github(status)
    if not patch:
        return File(filename=filename, status=status, patch="", previous_filename=previous_filename)

    hunks: list[Hunk] = []
    current: _HunkBuilder | None = None
    for raw in patch.splitlines():
        if raw.startswith("@@"):
            if current is not None:
                hunks.append(current.build())
            old_start, old_count, new_start, new_count = parse_hunk_header(raw, filename)
            current = _HunkBuilder(raw, old_start, old_count, new_start, new_count, next_line=new_start)
            continue
        if current is None or raw.startswith("\\"):
            continue
        current.add(raw)
    if current is not None:
        hunks.append(current.build())

    return File(
        filename=filename,
        status=status,
        patch=patch,
        hunks=tuple(hunks),
        previous_filename=previous_filename,
    )


def parse_files(pr_files: Iterable) -> list[File]:
    """Parse every PR file, skipping those whose diff is malformed.

    ``pr_files`` holds objects shaped like PyGithub's ``File`` (``filename``,
    ``status``, ``patch`` and optionally ``previous_filename``). A file that
    raises ParseError is logged and left out. NoParsableFilesError is raised
    only when files were supplied and none of them parsed.
    """
    files: list[File] = []
    errors: list[ParseError] = []
    for pr_file in pr_files:
        try:
            files.append(
                parse_file_diff(
                    pr_file.filename,
                    pr_file.status,
                    pr_file.patch,
                    getattr(pr_file, "previous_filename", None),
                )
            )
        except ParseError as e:
            logger.warning("Skipping %s: %s", pr_file.filename, e)
            errors.append(e)

    if errors and not files:
        raise NoParsableFilesError(errors)
    return files
