"""
Application-wide settings and environment configuration
"""

from __future__ import annotations

import os
from pathlib import Path

# Google Gemini
# The API key itself (GOOGLE_API_KEY) is read at call time by the language service.
GEMINI_MODEL = os.getenv("GEMINI_MODEL", "gemini-2.5-flash")
GEMINI_TEMPERATURE = float(os.getenv("GEMINI_TEMPERATURE", "1.0"))

# Dictionary lookups (free public API, no key)
DICTIONARY_API_URL = os.getenv(
    "DICTIONARY_API_URL", "https://api.dictionaryapi.dev/api/v2/entries/en"
)

# Persisted state
# Bump on any change to the persisted app snapshot shape; history survives a bump.
SCHEMA_VERSION = "1.0.3"
STATE_DB_PATH = Path(
    os.getenv("STATE_DB_PATH", str(Path.home() / ".grammarguard" / "state.db"))
).expanduser()

# Storage keys (shared with browser backups, so never rename)
HISTORY_KEY = "grammarguard_history"
APP_STATE_KEY = "grammarguard_app_state"
API_KEY_STORAGE_KEY = "grammarguard_api_key"
VERSION_KEY = "grammarguard_version"
THEME_KEY = "grammarguard_theme"
COLOR_SCHEME_KEY = "grammarguard_color_scheme"
