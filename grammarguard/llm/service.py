"""
Typed calls to the remote language service.

Each method is a single attempt: retries and supersession are applied by the
caller (RetryPolicy / RequestCoordinator). A missing credential raises
AuthMissingError before any network traffic.
"""

from __future__ import annotations

import json
import os
import re
from collections.abc import Callable
from typing import Any

from grammarguard.config import GEMINI_MODEL, GEMINI_TEMPERATURE
from grammarguard.infrastructure.retry import AuthMissingError, RemoteCallError
from grammarguard.llm.gemini import get_gemini_model
from grammarguard.llm.prompts import GRAMMAR_SCHEMA, REWRITE_SCHEMA, get_prompt_loader
from grammarguard.observability.logging import get_logger
from grammarguard.observability.telemetry import counter
from grammarguard.storage.models import GrammarAnalysis, RewriteAnalysis, RewriteStyle

logger = get_logger(__name__)

_WRAPPING_QUOTES = re.compile(r"^[\"']|[\"']$")


class EmptyResponseError(RemoteCallError):
    """The model returned no text."""


class LanguageService:
    """Grammar analysis, style rewriting and example sentences via Gemini."""

    def __init__(
        self,
        credential_provider: Callable[[], str | None],
        model_factory: Callable[[str, str], Any] = get_gemini_model,
        model_name: str = GEMINI_MODEL,
    ):
        self._credential_provider = credential_provider
        self._model_factory = model_factory
        self.model_name = model_name
        self.prompts = get_prompt_loader()

    def _resolve_api_key(self) -> str:
        # Read the env fresh: .env may be loaded after settings were imported
        api_key = self._credential_provider() or os.getenv("GOOGLE_API_KEY")
        if not api_key:
            raise AuthMissingError()
        return api_key

    async def _generate(self, prompt: str, response_schema: dict | None = None) -> str:
        model = self._model_factory(self._resolve_api_key(), self.model_name)

        generation_config: dict[str, Any] = {"temperature": GEMINI_TEMPERATURE}
        if response_schema is not None:
            generation_config["response_mime_type"] = "application/json"
            generation_config["response_schema"] = response_schema

        counter("llm.requests")
        response = await model.generate_content_async(prompt, generation_config=generation_config)
        try:
            text = response.text
        except ValueError as e:
            # The SDK raises when the candidate was blocked or empty
            raise EmptyResponseError(f"No response text from Gemini: {e}") from e
        if not text:
            raise EmptyResponseError("No response text from Gemini")
        return text

    async def check_grammar(self, text: str) -> GrammarAnalysis:
        raw = await self._generate(self.prompts.get_grammar_prompt(text), GRAMMAR_SCHEMA)
        return GrammarAnalysis.model_validate_json(raw)

    async def rewrite_text(self, text: str, style: RewriteStyle) -> RewriteAnalysis:
        style = RewriteStyle(style)
        raw = await self._generate(self.prompts.get_rewrite_prompt(text, style.value), REWRITE_SCHEMA)
        payload = json.loads(raw)
        if not isinstance(payload, dict):
            raise RemoteCallError("Rewrite response is not a JSON object")
        return RewriteAnalysis.model_validate(
            {**payload, "originalText": text, "style": style.value}
        )

    async def generate_example_sentence(self, word: str, definition: str) -> str:
        raw = await self._generate(self.prompts.get_example_prompt(word, definition))
        sentence = _WRAPPING_QUOTES.sub("", raw.strip())
        if not sentence:
            raise EmptyResponseError("No text generated")
        return sentence
