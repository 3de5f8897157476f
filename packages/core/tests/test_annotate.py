"""Tests for attaching comment threads to hunks."""

import random

import pytest

from presubmit_core.annotate import annotate_file, annotate_files, locate_hunk
from presubmit_core.comments import ReviewComment, ReviewCommentThread
from presubmit_core.diff import parse_file_diff
from presubmit_core.errors import AttachmentMiss

TWO_HUNKS = (
    "@@ -1,3 +1,4 @@ import os\n"
    " import sys\n"
    "+import json\n"
    " \n"
    " def main():\n"
    "@@ -20,3 +21,3 @@ def helper():\n"
    "     value = compute()\n"
    "-    return value\n"
    "+    return value or 0\n"
    "     # end"
)


def thread(id, line=None, diff_hunk="", path="src/app.py", body="please check"):
    root = ReviewComment(id=id, path=path, body=body, login="alice", diff_hunk=diff_hunk, line=line)
    return ReviewCommentThread(file=path, comments=(root,))


@pytest.fixture
def file():
    return parse_file_diff("src/app.py", "modified", TWO_HUNKS)


class TestLocateHunk:
    def test_matches_by_line(self, file):
        assert locate_hunk(file.hunks, thread(1, line=2)) == 0
        assert locate_hunk(file.hunks, thread(2, line=22)) == 1

    def test_line_on_hunk_boundaries(self, file):
        assert locate_hunk(file.hunks, thread(1, line=1)) == 0
        assert locate_hunk(file.hunks, thread(2, line=23)) == 1

    def test_outdated_comment_matches_by_content(self, file):
        diff_hunk = "@@ -19,3 +19,3 @@ def helper():\n     value = compute()\n     return value"
        assert locate_hunk(file.hunks, thread(1, line=None, diff_hunk=diff_hunk)) == 1

    def test_line_outside_every_hunk_falls_back_to_content(self, file):
        diff_hunk = "@@ -1,2 +1,2 @@\n import sys\n+import json"
        assert locate_hunk(file.hunks, thread(1, line=500, diff_hunk=diff_hunk)) == 0

    def test_content_match_prefers_greatest_overlap(self):
        patch = "@@ -1,2 +1,2 @@\n x = 1\n y = 2\n@@ -10,3 +10,3 @@\n a = 1\n b = 2\n y = 2"
        file = parse_file_diff("f.py", "modified", patch)
        diff_hunk = "@@ -10,3 +10,3 @@\n a = 1\n b = 2\n y = 2"
        assert locate_hunk(file.hunks, thread(1, diff_hunk=diff_hunk)) == 1

    def test_no_match_raises(self, file):
        with pytest.raises(AttachmentMiss):
            locate_hunk(file.hunks, thread(1, line=None, diff_hunk="@@ -1 +1 @@\n+something else"))

    def test_empty_diff_hunk_without_line_raises(self, file):
        with pytest.raises(AttachmentMiss):
            locate_hunk(file.hunks, thread(1))


class TestAnnotateFile:
    def test_threads_attached_to_their_hunks(self, file):
        fd = annotate_file(file, [thread(1, line=2), thread(2, line=22)])
        assert [t.root.id for t in fd.hunks[0].threads] == [1]
        assert [t.root.id for t in fd.hunks[1].threads] == [2]

    def test_same_hunk_keeps_discovery_order(self, file):
        fd = annotate_file(file, [thread(1, line=23), thread(2, line=21), thread(3, line=22)])
        assert [t.root.id for t in fd.hunks[1].threads] == [1, 2, 3]

    def test_other_files_ignored(self, file):
        fd = annotate_file(file, [thread(1, line=2, path="src/other.py")])
        assert all(h.threads == () for h in fd.hunks)

    def test_unplaceable_thread_dropped(self, file):
        fd = annotate_file(file, [thread(1, line=None), thread(2, line=2)])
        assert [t.root.id for h in fd.hunks for t in h.threads] == [2]

    def test_annotation_does_not_change_hunks(self, file):
        fd = annotate_file(file, [thread(1, line=2)])
        assert tuple(h.hunk for h in fd.hunks) == file.hunks

    def test_thread_on_previous_filename_of_rename(self):
        renamed = parse_file_diff("new.py", "renamed", "@@ -1,2 +1,2 @@\n a\n-b\n+c", previous_filename="old.py")
        fd = annotate_file(renamed, [thread(1, line=2, path="old.py")])
        assert [t.root.id for t in fd.hunks[0].threads] == [1]

    def test_file_without_hunks(self):
        binary = parse_file_diff("logo.png", "added", None)
        fd = annotate_file(binary, [thread(1, line=1, path="logo.png")])
        assert fd.hunks == ()


def test_annotate_files_keeps_file_order(file):
    other = parse_file_diff("src/other.py", "added", "@@ -0,0 +1,1 @@\n+x")
    fds = annotate_files([other, file], [thread(1, line=1, path="src/other.py")])
    assert [fd.filename for fd in fds] == ["src/other.py", "src/app.py"]
    assert [t.root.id for t in fds[0].hunks[0].threads] == [1]


def test_content_fallback_lands_on_a_hunk_containing_the_commented_line():
    """Outdated comments are placed heuristically; whatever hunk is chosen must hold the anchor line."""
    rng = random.Random(7)
    for _ in range(200):
        hunks, start = [], 1
        for _ in range(rng.randint(1, 4)):
            body = [rng.choice(" +-") + f"stmt_{rng.randint(0, 15)}()" for _ in range(rng.randint(2, 8))]
            new_count = sum(1 for b in body if b[0] in " +")
            old_count = sum(1 for b in body if b[0] in " -")
            hunks.append("\n".join([f"@@ -{start},{old_count} +{start},{new_count} @@", *body]))
            start += new_count + 10
        file = parse_file_diff("f.py", "modified", "\n".join(hunks))

        source = rng.choice(hunks).splitlines()
        cut = rng.randint(2, len(source))
        diff_hunk = "\n".join(source[:cut])
        anchor = source[cut - 1][1:]

        try:
            index = locate_hunk(file.hunks, thread(1, diff_hunk=diff_hunk, path="f.py"))
        except AttachmentMiss:
            pytest.fail("a diff_hunk copied from the current diff must always be placed")
        assert anchor in file.hunks[index].texts()
