"""Centralized configuration for GrammarGuard.

Re-exports everything from grammarguard.infrastructure.settings, then adds typed
constants for retry, persistence, statistics and the dictionary client.
Environment variable overrides use safe defaults so the app starts without
extra env configuration.

Env vars use GRAMMARGUARD_* as primary with GG_* fallback.
"""

from __future__ import annotations

import os

from grammarguard.infrastructure.settings import *  # noqa: F401, F403


def _env(new_key: str, old_key: str, default: str) -> str:
    """Read env var with GRAMMARGUARD_* primary and GG_* fallback."""
    return os.getenv(new_key, os.getenv(old_key, default))


# --- Retry Policy ---
RETRY_MAX_ATTEMPTS: int = int(_env("GRAMMARGUARD_RETRY_MAX_ATTEMPTS", "GG_RETRY_MAX_ATTEMPTS", "3"))
RETRY_BASE_DELAY_SECONDS: float = float(
    _env("GRAMMARGUARD_RETRY_BASE_DELAY", "GG_RETRY_BASE_DELAY", "2.0")
)

# --- Persistence ---
SNAPSHOT_DEBOUNCE_SECONDS: float = float(
    _env("GRAMMARGUARD_SNAPSHOT_DEBOUNCE", "GG_SNAPSHOT_DEBOUNCE", "1.0")
)
SNIPPET_MAX_CHARS: int = 60

# --- Statistics ---
ACTIVITY_WEEKS: int = 52

# --- Editor ---
QUICK_REWRITE_STYLE_COUNT: int = 4

# --- Dictionary ---
DICTIONARY_TIMEOUT_SECONDS: float = float(
    _env("GRAMMARGUARD_DICTIONARY_TIMEOUT", "GG_DICTIONARY_TIMEOUT", "10")
)
