"""
Gemini Model Manager - cached model instance per API key.

The language service authenticates with a user-supplied key (stored
credential first, GOOGLE_API_KEY second), so the model is built through
google-generativeai and rebuilt only when the key changes.
"""

from __future__ import annotations

from functools import lru_cache

from grammarguard.infrastructure.settings import GEMINI_MODEL
from grammarguard.observability.logging import get_logger

logger = get_logger(__name__)


class GeminiInitializationError(RuntimeError):
    """Raised when Gemini model cannot be initialized."""


@lru_cache(maxsize=1)
def get_gemini_model(api_key: str, model_name: str = GEMINI_MODEL):
    """
    Get or create the Gemini model for api_key.

    Uses @lru_cache(maxsize=1) so switching keys reconfigures the SDK once and
    repeated calls with the same key share one instance.

    Returns:
        GenerativeModel: Gemini model bound to api_key

    Raises:
        GeminiInitializationError: If model cannot be initialized
    """
    try:
        import google.generativeai as genai
    except ImportError as e:
        raise GeminiInitializationError(
            "google-generativeai is not installed. Install it with `pip install google-generativeai`."
        ) from e

    try:
        genai.configure(api_key=api_key)
        model = genai.GenerativeModel(model_name)
    except Exception as e:
        logger.error("Failed to initialize Gemini model: %s", e)
        raise GeminiInitializationError(f"Failed to initialize Gemini: {e}") from e

    logger.info("Initialized Gemini model (google-generativeai): model=%s", model_name)
    return model


def clear_model_cache() -> None:
    """
    Clear the cached model instance.

    Useful for testing or after the stored credential changes.
    """
    get_gemini_model.cache_clear()
    logger.info("Cleared Gemini model cache")
