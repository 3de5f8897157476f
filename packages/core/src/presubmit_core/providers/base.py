"""Base provider implementing the Template Method pattern.

Every prompt goes through the same steps:
    run_inference() → _build_system_prompt()
                    → _call_with_retry() → _call_api()   ← only this differs per provider
                    → _parse() → schema.model_validate()

Subclasses implement two things only:
  - __init__: validate and store the SDK client
  - _call_api: make one raw API call and return the text response

The response schema is a pydantic model. Its JSON schema is appended to the
system prompt as format instructions and the reply is validated against it,
so callers only ever see a validated object.
"""

from __future__ import annotations

import json
import logging
import re
import time
from abc import ABC, abstractmethod
from typing import TypeVar

from pydantic import BaseModel, ValidationError

from presubmit_core.errors import InferenceError

logger = logging.getLogger(__name__)

_MAX_RETRIES = 3
_MAX_TOKENS = 8192

T = TypeVar("T", bound=BaseModel)


class BaseProvider(ABC):
    MODEL: str = ""
    TEMPERATURE: float = 0.0
    MAX_RETRIES: int = _MAX_RETRIES
    MAX_TOKENS: int = _MAX_TOKENS

    def __init__(self, model: str | None = None):
        self.model = model or self.MODEL

    # ------------------------------------------------------------------ #
    # Public interface                                                     #
    # ------------------------------------------------------------------ #

    def run_inference(self, prompt: str, schema: type[T], system: str | None = None) -> T:
        """Send one prompt and return the model's answer as an instance of ``schema``.

        Raises InferenceError when every attempt fails or the answer is not
        JSON matching the schema.
        """
        system_prompt = self._build_system_prompt(system, schema)
        raw = self._call_with_retry(system_prompt, prompt)
        return self._parse(raw, schema)

    # ------------------------------------------------------------------ #
    # Abstract — implement in each provider                               #
    # ------------------------------------------------------------------ #

    @abstractmethod
    def _call_api(self, system_prompt: str, user_prompt: str) -> str:
        """Make a single API call and return the raw text response.

        It should raise on failure; _call_with_retry handles retries and logging.
        """

    # ------------------------------------------------------------------ #
    # Shared implementations                                               #
    # ------------------------------------------------------------------ #

    def _call_with_retry(self, system_prompt: str, user_prompt: str) -> str:
        """Retry _call_api up to MAX_RETRIES times with exponential backoff."""
        for attempt in range(self.MAX_RETRIES):
            try:
                return self._call_api(system_prompt, user_prompt)
            except Exception as e:
                if attempt == self.MAX_RETRIES - 1:
                    logger.error(
                        "%s API failed after %d attempts: %s",
                        self.__class__.__name__,
                        self.MAX_RETRIES,
                        e,
                    )
                    raise InferenceError(f"{self.__class__.__name__} API failed: {e}") from e
                delay = 2**attempt
                logger.warning(
                    "%s API error (attempt %d/%d): %s. Retrying in %ds...",
                    self.__class__.__name__,
                    attempt + 1,
                    self.MAX_RETRIES,
                    e,
                    delay,
                )
                time.sleep(delay)
        raise InferenceError(f"{self.__class__.__name__} made no attempts")

    def _build_system_prompt(self, system: str | None, schema: type[BaseModel]) -> str:
        instructions = self._format_instructions(schema)
        return f"{system}\n\n{instructions}" if system else instructions

    @staticmethod
    def _format_instructions(schema: type[BaseModel]) -> str:
        json_schema = json.dumps(schema.model_json_schema(), indent=2)
        return (
            "Respond with **only** a JSON object that conforms to the JSON schema below.\n"
            "Do not return any text outside the JSON object.\n\n"
            f"```json\n{json_schema}\n```"
        )

    def _parse(self, raw: str, schema: type[T]) -> T:
        # Strip only the outer ```json ... ``` fence, not backticks inside values.
        cleaned = re.sub(r"^```(?:json)?\s*", "", (raw or "").strip())
        cleaned = re.sub(r"\s*```$", "", cleaned.strip())
        try:
            return schema.model_validate(json.loads(cleaned))
        except (json.JSONDecodeError, ValidationError) as e:
            logger.warning(
                "%s: response does not match %s: %s",
                self.__class__.__name__,
                schema.__name__,
                (raw or "")[:200],
            )
            raise InferenceError(f"Failed to parse or validate response: {e}") from e
