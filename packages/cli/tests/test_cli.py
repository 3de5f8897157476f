"""Tests for the CLI entry point."""

import subprocess
from unittest.mock import MagicMock

from click.testing import CliRunner

from presubmit_cli.auth import resolve_github_token
from presubmit_cli.cli import main
from presubmit_core.errors import InferenceError
from presubmit_core.reviewer import ReviewSummary


def _make_config(github_token="tok", llm_api_key="key", llm_provider="anthropic"):
    return {
        "github_token": github_token,
        "llm_api_key": llm_api_key,
        "llm_provider": llm_provider,
        "llm_model": None,
        "language": None,
        "style_guide_rules": None,
        "guidelines": None,
        "exclude": [],
        "review_draft_prs": False,
        "max_chars_per_file": 20000,
        "github_api_url": "https://api.github.com",
    }


def _patch_common(mocker, config=None, token="tok"):
    cfg = config or _make_config()
    mocker.patch("presubmit_core.config.load_config", return_value=cfg)
    mocker.patch("presubmit_cli.auth.resolve_github_token", return_value=token)
    return cfg


class TestReviewCommand:
    def test_missing_github_token(self, mocker):
        _patch_common(mocker, config=_make_config(github_token=None), token=None)
        result = CliRunner().invoke(main, ["review", "--repo", "owner/repo", "--pr", "1"])
        assert result.exit_code != 0
        assert "GITHUB_TOKEN" in result.output

    def test_missing_llm_key(self, mocker):
        _patch_common(mocker, config=_make_config(llm_api_key=None))
        result = CliRunner().invoke(main, ["review", "--repo", "owner/repo", "--pr", "1"])
        assert result.exit_code != 0
        assert "LLM_API_KEY" in result.output

    def test_unknown_provider(self, mocker):
        _patch_common(mocker, config=_make_config(llm_provider="gemini"))
        result = CliRunner().invoke(main, ["review", "--repo", "owner/repo", "--pr", "1"])
        assert result.exit_code != 0
        assert "gemini" in result.output

    def test_calls_run_review(self, mocker):
        cfg = _patch_common(mocker)
        mock_run = mocker.patch(
            "presubmit_cli.commands.review.run_review",
            return_value=ReviewSummary(
                repo="owner/repo", pr_number=42, event="COMMENT", title="Fix bug"
            ),
        )
        result = CliRunner().invoke(main, ["review", "--repo", "owner/repo", "--pr", "42", "--yes", "--shadow"])
        assert result.exit_code == 0, result.output
        kwargs = mock_run.call_args.kwargs
        assert kwargs["pr_number"] == 42
        assert kwargs["auto_confirm"] is True
        assert kwargs["shadow"] is True
        assert kwargs["config"] is cfg
        assert "Fix bug" in result.output

    def test_token_from_resolver_used(self, mocker):
        cfg = _patch_common(mocker, config=_make_config(github_token=None), token="gh-cli-token")
        mocker.patch("presubmit_cli.commands.review.run_review", return_value=None)
        result = CliRunner().invoke(main, ["review", "--repo", "owner/repo", "--pr", "1"])
        assert result.exit_code == 0, result.output
        assert cfg["github_token"] == "gh-cli-token"

    def test_inference_error_reported(self, mocker):
        _patch_common(mocker)
        mocker.patch("presubmit_cli.commands.review.run_review", side_effect=InferenceError("model down"))
        result = CliRunner().invoke(main, ["review", "--repo", "owner/repo", "--pr", "1"])
        assert result.exit_code == 1
        assert "model down" in result.output


class TestReplyCommand:
    def test_calls_run_reply(self, mocker):
        _patch_common(mocker)
        mock_reply = mocker.patch("presubmit_cli.commands.reply.run_reply", return_value=None)
        result = CliRunner().invoke(main, ["reply", "--repo", "owner/repo", "--pr", "3", "--comment-id", "99"])
        assert result.exit_code == 0, result.output
        kwargs = mock_reply.call_args.kwargs
        assert kwargs["comment_id"] == 99
        assert kwargs["shadow"] is False

    def test_comment_id_required(self, mocker):
        _patch_common(mocker)
        result = CliRunner().invoke(main, ["reply", "--repo", "owner/repo", "--pr", "3"])
        assert result.exit_code != 0
        assert "--comment-id" in result.output


class TestResolveGithubToken:
    def test_env_var_wins(self, monkeypatch):
        monkeypatch.setenv("GITHUB_TOKEN", "env-token")
        assert resolve_github_token() == "env-token"

    def test_falls_back_to_gh_cli(self, monkeypatch, mocker):
        monkeypatch.delenv("GITHUB_TOKEN", raising=False)
        mocker.patch("presubmit_cli.auth.subprocess.run", return_value=MagicMock(returncode=0, stdout="gh-token\n"))
        assert resolve_github_token() == "gh-token"

    def test_none_when_gh_missing(self, monkeypatch, mocker):
        monkeypatch.delenv("GITHUB_TOKEN", raising=False)
        mocker.patch("presubmit_cli.auth.subprocess.run", side_effect=FileNotFoundError)
        assert resolve_github_token() is None

    def test_none_when_gh_times_out(self, monkeypatch, mocker):
        monkeypatch.delenv("GITHUB_TOKEN", raising=False)
        mocker.patch("presubmit_cli.auth.subprocess.run", side_effect=subprocess.TimeoutExpired("gh", 5))
        assert resolve_github_token() is None

    def test_none_when_gh_not_logged_in(self, monkeypatch, mocker):
        monkeypatch.delenv("GITHUB_TOKEN", raising=False)
        mocker.patch("presubmit_cli.auth.subprocess.run", return_value=MagicMock(returncode=1, stdout=""))
        assert resolve_github_token() is None
