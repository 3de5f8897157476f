"""Error types raised or reported by presubmit_core.

Everything derives from PresubmitError so callers can catch the whole family
at the CLI boundary. Diff and thread errors are absorbed per file or per
thread by the functions that raise them; only NoParsableFilesError,
ConfigError and InferenceError are expected to reach the caller.
"""

from __future__ import annotations


class PresubmitError(Exception):
    """Base class for every presubmit error."""


class ConfigError(PresubmitError):
    """Configuration is missing a required value or names an unknown provider."""


class ParseError(PresubmitError):
    """A hunk header in a file's diff could not be parsed."""

    def __init__(self, filename: str, header: str):
        self.filename = filename
        self.header = header
        super().__init__(f"Malformed hunk header in {filename!r}: {header!r}")


class NoParsableFilesError(PresubmitError):
    """Every file handed to parse_files failed to parse."""

    def __init__(self, errors: list[ParseError]):
        self.errors = errors
        names = ", ".join(e.filename for e in errors)
        super().__init__(f"None of the {len(errors)} file diff(s) could be parsed: {names}")


class AttachmentMiss(PresubmitError):
    """A comment thread could not be positioned in any hunk of its file."""

    def __init__(self, filename: str, comment_id: int):
        self.filename = filename
        self.comment_id = comment_id
        super().__init__(f"Thread {comment_id} does not match any hunk in {filename!r}")


class OrphanReply(PresubmitError):
    """A reply whose parent chain never reaches a thread root."""

    def __init__(self, comment_id: int, in_reply_to_id: int | None):
        self.comment_id = comment_id
        self.in_reply_to_id = in_reply_to_id
        super().__init__(f"Reply {comment_id} has no reachable root (in reply to {in_reply_to_id})")


class InferenceError(PresubmitError):
    """The language model call failed or returned output that does not fit the schema."""
