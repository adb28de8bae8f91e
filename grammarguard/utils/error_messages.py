"""
User-facing error messages.

Only terminal failure kinds ever reach the user, each mapped to one short,
actionable sentence. Raw exception text (which can echo request payloads or
key fragments) is logged, never shown.
"""

from __future__ import annotations

from grammarguard.infrastructure.retry import ErrorKind, classify_error
from grammarguard.observability.logging import get_logger

logger = get_logger(__name__)

USER_MESSAGES: dict[ErrorKind, str] = {
    ErrorKind.AUTH_MISSING: "No API key configured. Add your Gemini API key in settings.",
    ErrorKind.PERMISSION_DENIED: "Your API key was rejected. Check it in settings.",
    ErrorKind.RATE_LIMITED: "The service is busy. Please wait a moment and try again.",
    ErrorKind.SERVICE_UNAVAILABLE: "The service is temporarily unavailable. Please try again.",
    ErrorKind.OTHER: "Something went wrong. Please try again.",
}

NO_DEFINITION_MESSAGE = "Could not find definition."

CREDENTIAL_KINDS = frozenset({ErrorKind.AUTH_MISSING, ErrorKind.PERMISSION_DENIED})


def user_message(error: BaseException) -> str:
    """Log error in full and return the safe message for its kind."""
    kind = classify_error(error)
    logger.error("Request failed (%s): %s - %s", kind.value, type(error).__name__, error)
    return USER_MESSAGES[kind]


def needs_credential(error: BaseException) -> bool:
    """True when the user should be sent to credential configuration."""
    return classify_error(error) in CREDENTIAL_KINDS
