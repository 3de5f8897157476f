import os
from pathlib import Path
from typing import Optional

import yaml

from presubmit_core.comments import BotIdentity
from presubmit_core.errors import ConfigError

KNOWN_PROVIDERS = ("anthropic", "openai")

DEFAULT_CONFIG: dict = {
    "llm_provider": "anthropic",
    "llm_model": None,  # None = provider default
    "language": None,
    "style_guide_rules": None,
    "guidelines": None,  # path to a Markdown file of extra review rules
    "exclude": [],  # fnmatch patterns or directory names to skip (e.g. "migrations/", "*.min.js")
    "review_draft_prs": False,
    "max_chars_per_file": 20000,
    "github_api_url": "https://api.github.com",
    "bot_login": "presubmit",
    "bot_signature": "<!-- presubmit.ai: comment -->",
    "bot_handles": ["@presubmitai", "@presubmit"],
}

# Environment variable -> config key. Set values win over the file and CLI.
_ENV_KEYS = {
    "GITHUB_TOKEN": "github_token",
    "LLM_API_KEY": "llm_api_key",
    "LLM_PROVIDER": "llm_provider",
    "LLM_MODEL": "llm_model",
    "GITHUB_API_URL": "github_api_url",
    "STYLE_GUIDE_RULES": "style_guide_rules",
    "LANGUAGE": "language",
}


def load_config(config_path: str = ".presubmit.yml", cli_overrides: Optional[dict] = None) -> dict:
    """
    Load configuration by merging (in order of precedence):
      1. Built-in defaults
      2. .presubmit.yml in the current directory
      3. CLI argument overrides
      4. Environment variables (credentials and model selection)
    """
    config = {
        **DEFAULT_CONFIG,
        "exclude": list(DEFAULT_CONFIG["exclude"]),
        "bot_handles": list(DEFAULT_CONFIG["bot_handles"]),
        "github_token": None,
        "llm_api_key": None,
    }

    path = Path(config_path)
    if path.exists():
        with open(path) as f:
            file_config = yaml.safe_load(f) or {}
        config.update(file_config)

    if cli_overrides:
        for key, value in cli_overrides.items():
            if value is not None:
                config[key] = value

    for env_name, key in _ENV_KEYS.items():
        value = os.environ.get(env_name)
        if value:
            config[key] = value

    return config


def validate_config(config: dict) -> None:
    if not config.get("github_token"):
        raise ConfigError("GITHUB_TOKEN is not set.")
    provider = config.get("llm_provider")
    if provider not in KNOWN_PROVIDERS:
        raise ConfigError(f"Unknown LLM provider: {provider!r}. Valid providers are: {', '.join(KNOWN_PROVIDERS)}")
    if not config.get("llm_api_key"):
        raise ConfigError("LLM_API_KEY is not set.")


def load_style_guide(config: dict) -> str:
    """
    Combine inline ``style_guide_rules`` with the ``guidelines`` file, if any.

    A configured guidelines path that does not exist raises FileNotFoundError.
    """
    parts = []
    rules = config.get("style_guide_rules")
    if isinstance(rules, list):
        rules = "\n".join(rules)
    if rules and rules.strip():
        parts.append(rules.strip())

    custom_path = config.get("guidelines")
    if custom_path:
        p = Path(custom_path)
        if not p.exists():
            raise FileNotFoundError(f"Guidelines file not found: {custom_path}")
        parts.append(p.read_text().strip())

    return "\n\n".join(parts)


def bot_identity(config: dict) -> BotIdentity:
    return BotIdentity(
        login=config.get("bot_login", DEFAULT_CONFIG["bot_login"]),
        signature=config.get("bot_signature", DEFAULT_CONFIG["bot_signature"]),
        handles=tuple(config.get("bot_handles", DEFAULT_CONFIG["bot_handles"])),
    )
