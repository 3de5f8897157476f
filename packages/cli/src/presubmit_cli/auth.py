"""GitHub token resolution with gh CLI fallback.

Resolution order (stops at first success):
  1. GITHUB_TOKEN environment variable (CI / GitHub Actions)
  2. `gh auth token` (GitHub CLI session, after `gh auth login`)
"""

from __future__ import annotations

import logging
import os
import subprocess

logger = logging.getLogger(__name__)


def resolve_github_token() -> str | None:
    """Return a GitHub token or None if no source has one.

    Never raises; callers check for None and report a usage error.
    """
    token = os.environ.get("GITHUB_TOKEN")
    if token:
        return token

    try:
        result = subprocess.run(
            ["gh", "auth", "token"],
            capture_output=True,
            text=True,
            timeout=5,
        )
    except (FileNotFoundError, subprocess.TimeoutExpired) as e:
        logger.debug("gh CLI token lookup unavailable: %s", e)
        return None

    if result.returncode == 0:
        gh_token = result.stdout.strip()
        if gh_token:
            logger.debug("Resolved GitHub token via gh CLI session.")
            return gh_token
    return None
