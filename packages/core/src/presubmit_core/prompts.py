"""Prompts sent to the language model and the schemas its answers must match.

Each prompt has a pure builder returning ``(system_prompt, user_prompt)`` and a
runner that hands both, with the response schema, to a provider.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Sequence

from pydantic import BaseModel, Field

from presubmit_core.annotate import FileDiff
from presubmit_core.comments import ReviewCommentThread
from presubmit_core.diff import File
from presubmit_core.serialize import (
    format_affected_files,
    format_file_diff,
    generate_file_code_diff,
    generate_pr_code_diff,
)

if TYPE_CHECKING:
    from presubmit_core.providers.base import BaseProvider


# ---------------------------------------------------------------------------
# Response schemas
# ---------------------------------------------------------------------------


class FileSummary(BaseModel):
    filename: str = Field(description="The full file path of the relevant file")
    summary: str = Field(description="Concise summary of the file changes in markdown format (max 70 words)")
    title: str = Field(
        description="An informative title for the changes in this file, describing its main theme (5-10 words)."
    )


class PullRequestSummary(BaseModel):
    title: str = Field(description="Informative title of the PR, describing its main theme (10 words max)")
    description: str = Field(description="Informative description of the PR, describing its main theme")
    files: list[FileSummary] = Field(description="List of files affected in the PR and summaries of their changes")
    type: list[str] = Field(
        description="One or more types that describe this PR's main theme. "
        "Example: BUG, TESTS, ENHANCEMENT, DOCUMENTATION, SECURITY, OTHER"
    )


class AIComment(BaseModel):
    file: str = Field(description="The full file path of the relevant file")
    start_line: int = Field(
        description="The relevant line number, from a '__new hunk__' section, where the comment starts (inclusive). "
        "Should correspond to the prefix of the first line in the 'highlighted_code' snippet. "
        "If comment spans a single line, it should equal the 'end_line'"
    )
    end_line: int = Field(
        description="The relevant line number, from a '__new hunk__' section, where the comment ends (inclusive). "
        "Should correspond to the prefix of the last line in the 'highlighted_code' snippet. "
        "If comment spans a single line, it should equal the 'start_line'"
    )
    content: str = Field(
        description="An actionable comment to enhance, improve or fix the new code introduced in the PR. "
        "Use markdown formatting."
    )
    header: str = Field(
        description="A concise, single-sentence overview of the comment. Focus on the 'what'. "
        "Be general, and avoid method or variable names."
    )
    highlighted_code: str = Field(
        description="A short code snippet from a '__new hunk__' section that the comment is applicable for. "
        "Include only complete code lines, without line numbers."
    )
    label: str = Field(
        description="A single, descriptive label that best characterizes the suggestion type. Possible labels "
        "include 'security', 'possible bug', 'possible issue', 'performance', 'enhancement', 'best practice', "
        "'maintainability', 'readability'. Other relevant labels are also acceptable."
    )
    critical: bool = Field(
        description="True if the comment is critical and the PR should not be merged without addressing it."
    )


class ReviewVerdict(BaseModel):
    estimated_effort_to_review: int = Field(
        ge=1,
        le=5,
        description="Estimate, on a scale of 1-5 (inclusive), the time and effort required to review this PR "
        "by an experienced developer. 1 means short and easy review, 5 means long and hard review.",
    )
    score: int = Field(
        ge=0,
        le=100,
        description="Rate this PR on a scale of 0-100 (inclusive), where 0 means the worst possible PR code, "
        "and 100 means PR code of the highest quality that is ready to be merged immediately.",
    )
    has_relevant_tests: bool = Field(description="True if the PR includes relevant tests added or updated.")
    security_concerns: str = Field(
        description="Does this PR code introduce possible vulnerabilities or security concerns? "
        "Answer 'No' (without explaining why) if there are no possible issues. Otherwise start with a short "
        "header, such as 'SQL injection: ...', and explain."
    )


class PullRequestReview(BaseModel):
    review: ReviewVerdict = Field(description="The full review of the PR")
    comments: list[AIComment] = Field(
        description="Comments about possible bugs, security concerns, code quality, typos or regressions "
        "introduced in this PR."
    )


class ReviewCommentResponse(BaseModel):
    response_comment: str = Field(
        description="Your response to the comment in markdown format, starting by mentioning the user"
    )
    action_requested: bool = Field(
        description="True if the input comment required an action from you (including answering a question, "
        "clarifying a point, or acknowledging a user's explanation). False otherwise."
    )


# ---------------------------------------------------------------------------
# Prompt builders
# ---------------------------------------------------------------------------


def _language_rule(language: str | None) -> str:
    return f" All your responses MUST be in {language}." if language else ""


def build_summary_prompt(
    pr_title: str,
    pr_description: str,
    commit_messages: Sequence[str],
    files: Sequence[File],
    language: str | None = None,
) -> tuple[str, str]:
    system = (
        "You are a helpful assistant that summarizes Git Pull Requests (PRs)."
        + _language_rule(language)
        + """ Your task is to provide a full description for the PR content - title, type, description and affected file summaries.

- Keep in mind that the 'Original title', 'Original description' and 'Commit messages' sections may be partial, simplistic, non-informative or out of date. Hence, compare them to the PR diff code, and use them only as a reference.
- The generated title and description should prioritize the most significant changes.
- When quoting variables or names from the code, use backticks (`).
- Return a summary for each single affected file or if there is nothing to summarize simply use the status of the change (ie. "New file").
- Start the overview with a verb at past tense like "Started", "Commented", "Generated" etc...

IMPORTANT: Do not make assumptions about the code outside the diff."""
    )

    diffs = "\n\n".join(format_file_diff(f) for f in files if f.patch)
    user = f"""
Summarize the following PR:

<Original PR Title>{pr_title}</Original PR Title>
<Original PR Description>
{pr_description}
</Original PR Description>
<Commit Messages>
{chr(10).join(commit_messages)}
</Commit Messages>

<Affected Files>
{format_affected_files(files)}
</Affected Files>

<File Diffs>
{diffs}
</File Diffs>

Make sure each affected file is summarized and it's part of the returned JSON.
"""
    return system, user


def build_review_prompt(
    pr_title: str,
    pr_description: str,
    pr_summary: str,
    file_diffs: Sequence[FileDiff],
    language: str | None = None,
    style_guide: str = "",
    bot_login: str = "presubmit",
) -> tuple[str, str]:
    guidelines = ""
    if style_guide:
        guidelines = (
            "Guidelines for the review, such as style guides, conventions, or best practices, "
            "violating the following guidelines should result in a critical comment:\n" + style_guide
        )

    system = f"""<IMPORTANT INSTRUCTIONS>
You are an experienced senior software engineer tasked with reviewing a Git Pull Request (PR). Your goal is to provide comments to improve code quality, catch typos, potential bugs or security issues, and provide meaningful code suggestions when applicable. You should not make comments about adding comments, about code formatting, about code style or give implementation suggestions.{_language_rule(language)}
The review should focus on new code added in the PR code diff (lines starting with '+') and be actionable.

The PR diff will have the following structure:
======
## File: 'src/file1.py'

@@ ... @@ def func1():
__new hunk__
11  unchanged code line0 in the PR
12  unchanged code line1 in the PR
13 +new code line2 added in the PR
14  unchanged code line3 in the PR
__old hunk__
 unchanged code line0
 unchanged code line1
-old code line2 removed in the PR
 unchanged code line3
 __existing_comment_thread__
 {bot_login}: This is a comment on the code
 user2: This is a reply to the comment above
 __existing_comment_thread__
 {bot_login}: This is a comment on some other parts of the code
 user2: This is a reply to the above comment


@@ ... @@ def func2():
__new hunk__
21  unchanged code line4
22 +new code line5 added in the PR
23  unchanged code line6

## File: 'src/file2.py'
...
======

- In the format above, the diff is organized into separate '__new hunk__' and '__old hunk__' sections for each code chunk. '__new hunk__' contains the updated code, while '__old hunk__' shows the removed code. If no code was removed in a specific chunk, the __old hunk__ section will be omitted.
- We also added line numbers for the '__new hunk__' code, to help you refer to the code lines in your suggestions. These line numbers are not part of the actual code, and should only used for reference.
- Code lines are prefixed with symbols ('+', '-', ' '). The '+' symbol indicates new code added in the PR, the '-' symbol indicates code removed in the PR, and the ' ' symbol indicates unchanged code.
- '__existing_comment_thread__' blocks hold earlier review discussion on that hunk. Comments from {bot_login} are yours.
- Use markdown formatting for your comments.
- Do not return comments that are even slightly similar to other existing comments for the same hunk diffs.
- If you cannot find any actionable comments, return an empty array.
- VERY IMPORTANT: Keep in mind you're only seeing part of the code, and the code might be incomplete. Do not make assumptions about the code outside the diff.

{guidelines}
</IMPORTANT INSTRUCTIONS>"""

    user = f"""
<PR title>
{pr_title}
</PR title>

<PR Description>
{pr_description}
</PR Description>

<PR Summary>
{pr_summary}
</PR Summary>

<PR File Diffs>
{generate_pr_code_diff(file_diffs)}
</PR File Diffs>
"""
    return system, user


def build_review_comment_prompt(
    thread: ReviewCommentThread,
    file_diff: FileDiff,
    language: str | None = None,
    bot_login: str = "presubmit",
) -> tuple[str, str]:
    system = (
        "You are a helpful senior software engineer that reviews comments on Git Pull Requests (PRs). "
        "Your task is to provide a response to a comment on a PR review. The comment might be part of a longer "
        "comment thread, so make sure to respond to the specific comment and not the whole thread."
        + _language_rule(language)
        + f"""

The comment thread is specific to a line or multiple lines of code in a specific file. Keep that in mind when writing your response, but do not assume the code is complete or correct. Also, the comment might request you to suggest some changes or improvements outside the code snippet, so judge accordingly.

In your response, return the exact text of your comment, in markdown, starting by mentioning the @user who made the comment. Your response will be used as a comment on the PR, so make sure it's easy to understand and actionable.

Comments from @{bot_login} are yours.

IMPORTANT:
 - You should respond to any question, clarification, or feedback directed at you or related to your previous comments.
 - If the user explains why a suggestion cannot be applied, acknowledge it.
 - Do not respond with generic comments like "Thanks for the PR!" or "LGTM" if there is no specific question or issue to address.
 - If the input comment is truly not actionable and requires no response, return an empty string.
"""
    )

    root = thread.root
    start_line = root.start_line or root.line
    end_line = root.line
    comments = "\n".join(f"<author>@{c.login}</author>\n<comment>{c.body}</comment>" for c in thread.comments)

    user = f"""
Below you'll see the full comment thread, but you should focus specifically on the last comment.
<Comment Thread>
{comments}
</Comment Thread>

<Comment Scope>
  <Lines>{start_line} - {end_line}</Lines>
  <Hunk>
    {root.diff_hunk}
  </Hunk>
</Comment Scope>

<Comment File Diff>
{generate_file_code_diff(file_diff)}
</Comment File Diff>
"""
    return system, user


# ---------------------------------------------------------------------------
# Runners
# ---------------------------------------------------------------------------


def run_summary_prompt(provider: BaseProvider, **kwargs) -> PullRequestSummary:
    system, user = build_summary_prompt(**kwargs)
    return provider.run_inference(user, PullRequestSummary, system=system)


def run_review_prompt(provider: BaseProvider, **kwargs) -> PullRequestReview:
    system, user = build_review_prompt(**kwargs)
    return provider.run_inference(user, PullRequestReview, system=system)


def run_review_comment_prompt(provider: BaseProvider, **kwargs) -> ReviewCommentResponse:
    system, user = build_review_comment_prompt(**kwargs)
    return provider.run_inference(user, ReviewCommentResponse, system=system)
