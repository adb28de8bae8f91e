"""
Prompt Management Module

Loads LLM prompt templates from the .txt files next to this module and the
structured-output schemas the language service requests with them.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

# Get the prompts directory
PROMPTS_DIR = Path(__file__).parent

_WORDS_SCHEMA: dict[str, Any] = {
    "type": "ARRAY",
    "items": {
        "type": "OBJECT",
        "properties": {
            "text": {"type": "STRING", "description": "The word, space, or punctuation mark."},
            "ipa": {
                "type": "STRING",
                "description": "IPA pronunciation without slashes; empty for non-words.",
            },
        },
        "required": ["text", "ipa"],
    },
}

_EXPLANATION_SCHEMA: dict[str, Any] = {
    "type": "OBJECT",
    "properties": {
        "overview": {"type": "STRING"},
        "improvements": {"type": "ARRAY", "items": {"type": "STRING"}},
    },
    "required": ["overview", "improvements"],
}

GRAMMAR_SCHEMA: dict[str, Any] = {
    "type": "OBJECT",
    "properties": {
        "segments": {
            "type": "ARRAY",
            "items": {
                "type": "OBJECT",
                "properties": {
                    "text": {"type": "STRING"},
                    "isError": {"type": "BOOLEAN"},
                    "severity": {"type": "STRING", "enum": ["critical", "suggestion"]},
                    "correction": {"type": "STRING"},
                    "reason": {"type": "STRING"},
                },
                "required": ["text", "isError"],
            },
        },
        "correctedSentence": {"type": "STRING"},
        "correctedWords": _WORDS_SCHEMA,
        "explanation": _EXPLANATION_SCHEMA,
    },
    "required": ["segments", "correctedSentence", "correctedWords", "explanation"],
}

REWRITE_SCHEMA: dict[str, Any] = {
    "type": "OBJECT",
    "properties": {
        "rewrittenText": {"type": "STRING"},
        "rewrittenWords": _WORDS_SCHEMA,
        "explanation": _EXPLANATION_SCHEMA,
    },
    "required": ["rewrittenText", "rewrittenWords", "explanation"],
}


class PromptLoader:
    """Load and cache prompt templates from files"""

    def __init__(self):
        self._cache: dict[str, str] = {}

    def load_prompt(self, prompt_name: str) -> str:
        """
        Load a prompt template from file.

        Args:
            prompt_name: Name of the prompt file (without .txt extension)

        Returns:
            Prompt template string
        """
        if prompt_name not in self._cache:
            prompt_path = PROMPTS_DIR / f"{prompt_name}.txt"

            if not prompt_path.exists():
                raise FileNotFoundError(f"Prompt file not found: {prompt_path}")

            with open(prompt_path, encoding="utf-8") as f:
                self._cache[prompt_name] = f.read()

        return self._cache[prompt_name]

    def get_grammar_prompt(self, text: str) -> str:
        return self.load_prompt("grammar_check").format(text=text)

    def get_rewrite_prompt(self, text: str, style: str) -> str:
        return self.load_prompt("rewrite").format(text=text, style=style)

    def get_example_prompt(self, word: str, definition: str) -> str:
        return self.load_prompt("example_sentence").format(word=word, definition=definition)


_loader = PromptLoader()


def get_prompt_loader() -> PromptLoader:
    return _loader
