from __future__ import annotations

from presubmit_core.providers.base import BaseProvider


class AnthropicProvider(BaseProvider):
    MODEL = "claude-sonnet-4-20250514"
    TEMPERATURE = 0.0

    def __init__(self, api_key: str, model: str | None = None):
        super().__init__(model)
        try:
            from anthropic import Anthropic
        except ImportError:
            raise ImportError(
                "The 'anthropic' package is required for this provider. "
                "Reinstall presubmit or run: pip install anthropic"
            )
        self.client = Anthropic(api_key=api_key)

    def _call_api(self, system_prompt: str, user_prompt: str) -> str:
        # Imported lazily; __init__ already checked it is importable.
        from anthropic.types import TextBlock

        response = self.client.messages.create(
            model=self.model,
            system=system_prompt,
            messages=[{"role": "user", "content": user_prompt}],
            temperature=self.TEMPERATURE,
            max_tokens=self.MAX_TOKENS,
        )
        text_blocks = [block.text for block in response.content if isinstance(block, TextBlock)]
        return "".join(text_blocks).strip()
