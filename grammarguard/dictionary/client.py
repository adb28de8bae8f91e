"""
Dictionary Service - dictionaryapi.dev integration

Looks up a single English word and returns its entries (definitions,
phonetics, audio URLs). Lookups are never retried: any failure collapses into
WordNotFoundError, which the editor shows as a single "no definition" state.

Free API, no key required.
"""

from __future__ import annotations

import asyncio
from urllib.parse import quote

import requests
from pydantic import ValidationError

from grammarguard.config import DICTIONARY_API_URL, DICTIONARY_TIMEOUT_SECONDS
from grammarguard.observability.logging import get_logger
from grammarguard.observability.telemetry import counter
from grammarguard.storage.models import DictionaryEntry

logger = get_logger(__name__)


class WordNotFoundError(LookupError):
    """The dictionary has no usable entry for the requested word."""

    def __init__(self, term: str, reason: str = "not found"):
        super().__init__(f"No definition for {term!r}: {reason}")
        self.term = term


class DictionaryClient:
    """Blocking HTTP client wrapped for use from the editor's event loop."""

    def __init__(
        self,
        base_url: str = DICTIONARY_API_URL,
        timeout: float = DICTIONARY_TIMEOUT_SECONDS,
        session: requests.Session | None = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.session = session or requests.Session()

    def lookup_sync(self, term: str) -> list[DictionaryEntry]:
        """
        Fetch entries for term.

        Raises:
            WordNotFoundError: on 404, transport failure or an unusable payload

        Side Effects:
            - Calls the external dictionary API
        """
        term = term.strip()
        if not term:
            raise WordNotFoundError(term, "empty term")

        url = f"{self.base_url}/{quote(term, safe='')}"
        try:
            response = self.session.get(url, timeout=self.timeout)
        except requests.RequestException as e:
            counter("dictionary.transport_error")
            logger.warning("Dictionary request failed for %r: %s", term, e)
            raise WordNotFoundError(term, "request failed") from e

        if not response.ok:
            counter("dictionary.not_found")
            raise WordNotFoundError(term, f"HTTP {response.status_code}")

        try:
            payload = response.json()
            if not isinstance(payload, list) or not payload:
                raise WordNotFoundError(term, "empty result")
            return [DictionaryEntry.model_validate(item) for item in payload]
        except (ValueError, ValidationError) as e:
            logger.warning("Unusable dictionary payload for %r: %s", term, e)
            raise WordNotFoundError(term, "unusable payload") from e

    async def lookup(self, term: str) -> list[DictionaryEntry]:
        return await asyncio.to_thread(self.lookup_sync, term)
