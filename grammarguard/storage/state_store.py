"""
Durable state store: history log, app snapshot, credential and schema tag.

Four independent records live under fixed keys of an injected KeyValueStorage.
Each write replaces one record wholesale; there are no transactions spanning
records. Storage failures never propagate: writes return False, reads fall
back to an empty value, and both are logged.

Key rules:
- History is newest-first and only ever prepended to or cleared.
- A schema-version mismatch wipes the app snapshot only. History and the
  credential are user data and survive every migration.
- Import merges by id, so importing the same bundle twice adds nothing.
"""

from __future__ import annotations

import json
import math
import time
import uuid
from collections.abc import Callable
from datetime import date
from typing import Any

from pydantic import ValidationError

from grammarguard.config import (
    API_KEY_STORAGE_KEY,
    APP_STATE_KEY,
    COLOR_SCHEME_KEY,
    HISTORY_KEY,
    SCHEMA_VERSION,
    SNIPPET_MAX_CHARS,
    THEME_KEY,
    VERSION_KEY,
)
from grammarguard.observability.logging import get_logger
from grammarguard.observability.telemetry import counter, log_event
from grammarguard.storage.kv import KeyValueStorage, StorageError
from grammarguard.storage.models import (
    AppSnapshot,
    ColorScheme,
    ExportBundle,
    GrammarAnalysis,
    HistoryCategory,
    HistoryEntry,
    ImportResult,
    RewriteAnalysis,
    Theme,
    UserStats,
)

logger = get_logger(__name__)


class ImportMalformedError(ValueError):
    """Raised internally when an import bundle cannot be used."""


def _now_ms() -> int:
    return int(time.time() * 1000)


def _new_id() -> str:
    return str(uuid.uuid4())


def make_snippet(content: str, limit: int = SNIPPET_MAX_CHARS) -> str:
    """Truncate content to limit characters, marking the cut with an ellipsis."""
    return content[:limit] + "..." if len(content) > limit else content


def export_filename(today: date | None = None) -> str:
    today = today or date.today()
    return f"grammarguard_backup_{today.isoformat()}.json"


def _optional_enum(enum_cls: type[Theme] | type[ColorScheme], value: Any) -> Any:
    try:
        return enum_cls(value) if value is not None else None
    except ValueError:
        logger.warning("Ignoring unknown %s value in import: %r", enum_cls.__name__, value)
        return None


def _record_timestamp(record: Any) -> int:
    # Unreadable stored records sort after every dated one
    timestamp = record.get("timestamp") if isinstance(record, dict) else None
    if isinstance(timestamp, bool) or not isinstance(timestamp, int):
        return 0
    return timestamp


class StateStore:
    """Sole owner of all persisted GrammarGuard records."""

    def __init__(
        self,
        storage: KeyValueStorage,
        expected_version: str = SCHEMA_VERSION,
        clock: Callable[[], int] = _now_ms,
        id_factory: Callable[[], str] = _new_id,
    ):
        self.storage = storage
        self.expected_version = expected_version
        self._clock = clock
        self._id_factory = id_factory

    # --- low level -------------------------------------------------------

    def _write(self, key: str, value: str) -> bool:
        try:
            self.storage.set(key, value)
        except (StorageError, OSError) as e:
            counter("store.write_failed")
            log_event("store.write_failed", key=key, error=type(e).__name__)
            logger.error("Failed to write %s: %s", key, e)
            return False
        return True

    def _write_json(self, key: str, payload: Any) -> bool:
        try:
            serialized = json.dumps(payload)
        except (TypeError, ValueError) as e:
            counter("store.write_failed")
            logger.error("Failed to serialize %s: %s", key, e)
            return False
        return self._write(key, serialized)

    def _read(self, key: str) -> str | None:
        try:
            return self.storage.get(key)
        except (StorageError, OSError) as e:
            logger.error("Failed to read %s: %s", key, e)
            return None

    def _remove(self, key: str) -> bool:
        try:
            self.storage.remove(key)
        except (StorageError, OSError) as e:
            counter("store.write_failed")
            logger.error("Failed to remove %s: %s", key, e)
            return False
        return True

    def _read_history_records(self) -> list[dict[str, Any]] | None:
        """Raw history records, [] when absent, None when the stored value is corrupt."""
        raw = self._read(HISTORY_KEY)
        if raw is None:
            return []
        try:
            parsed = json.loads(raw)
        except ValueError as e:
            logger.error("Failed to parse history: %s", e)
            return None
        if not isinstance(parsed, list):
            logger.error("Stored history is not a list (%s)", type(parsed).__name__)
            return None
        return parsed

    # --- history ---------------------------------------------------------

    def append_history(self, entry: HistoryEntry) -> bool:
        """Prepend entry and rewrite the history record in one replacement."""
        records = self._read_history_records()
        if records is None:
            # Refuse to overwrite a record we could not read.
            logger.error("History record unreadable; not appending %s", entry.id)
            return False
        return self._write_json(HISTORY_KEY, [entry.to_record(), *records])

    def read_history(self) -> list[HistoryEntry]:
        """History entries, newest first. Unreadable entries are skipped."""
        records = self._read_history_records() or []
        entries: list[HistoryEntry] = []
        for record in records:
            try:
                entries.append(HistoryEntry.model_validate(record))
            except ValidationError as e:
                logger.warning("Skipping unreadable history entry: %s", e.error_count())
        return entries

    def clear_history(self) -> bool:
        return self._remove(HISTORY_KEY)

    def _new_entry(self, **fields: Any) -> HistoryEntry:
        return HistoryEntry(id=self._id_factory(), timestamp=self._clock(), **fields)

    def record_grammar_check(self, text: str, analysis: GrammarAnalysis) -> HistoryEntry | None:
        """Append a grammar entry; the snippet shows the corrected sentence."""
        content = analysis.corrected_sentence or text
        error_count = analysis.error_count
        suggestion_count = analysis.suggestion_count
        entry = self._new_entry(
            text_snippet=make_snippet(content),
            full_text=content,
            error_count=error_count,
            suggestion_count=suggestion_count,
            is_perfect=error_count == 0 and suggestion_count == 0,
            category=HistoryCategory.GRAMMAR,
        )
        return entry if self.append_history(entry) else None

    def record_rewrite(self, analysis: RewriteAnalysis) -> HistoryEntry | None:
        content = analysis.rewritten_text
        entry = self._new_entry(
            text_snippet=make_snippet(content),
            full_text=content,
            is_perfect=True,
            category=HistoryCategory.REWRITE,
            rewrite_style=analysis.style.value,
        )
        return entry if self.append_history(entry) else None

    def record_lookup(self, term: str) -> HistoryEntry | None:
        entry = self._new_entry(
            text_snippet=term,
            full_text=term,
            is_perfect=True,
            category=HistoryCategory.DICTIONARY,
        )
        return entry if self.append_history(entry) else None

    def compute_stats(self) -> UserStats:
        """Accuracy statistics over grammar checks only."""
        grammar = [e for e in self.read_history() if e.category == HistoryCategory.GRAMMAR]
        total = len(grammar)
        if total == 0:
            return UserStats()

        perfect = sum(1 for e in grammar if e.is_perfect)
        return UserStats(
            total_checks=total,
            total_errors=sum(e.error_count for e in grammar),
            # Half-up rounding, so 12.5 -> 13
            accuracy_rate=math.floor(100 * perfect / total + 0.5),
            perfect_runs=perfect,
        )

    # --- preferences -----------------------------------------------------

    def get_theme(self) -> Theme | None:
        return _optional_enum(Theme, self._read(THEME_KEY))

    def set_theme(self, theme: Theme) -> bool:
        return self._write(THEME_KEY, Theme(theme).value)

    def get_color_scheme(self) -> ColorScheme | None:
        return _optional_enum(ColorScheme, self._read(COLOR_SCHEME_KEY))

    def set_color_scheme(self, color_scheme: ColorScheme) -> bool:
        return self._write(COLOR_SCHEME_KEY, ColorScheme(color_scheme).value)

    # --- export / import -------------------------------------------------

    def export_snapshot(self) -> str:
        """Serialize history, theme, color scheme and version tag as pretty JSON."""
        history = self.read_history()
        bundle = ExportBundle(
            history=history,
            theme=self.get_theme(),
            color_scheme=self.get_color_scheme(),
            version=self.expected_version,
        )
        payload = bundle.model_dump(mode="json", by_alias=True)
        payload["history"] = [entry.to_record() for entry in history]
        return json.dumps(payload, indent=2, ensure_ascii=False)

    def import_snapshot(self, bundle: str | bytes) -> ImportResult:
        """
        Merge an exported bundle (or a legacy bare history array) into history.

        Entries whose id already exists are skipped, and the union is re-sorted
        newest first. Stored records that no longer validate are carried over
        as they are. Malformed input, or an unreadable stored history, leaves
        stored data untouched.
        """
        try:
            incoming, theme, color_scheme = self._parse_bundle(bundle)
        except ImportMalformedError as e:
            logger.error("Import rejected: %s", e)
            return ImportResult(success=False)

        records = self._read_history_records()
        if records is None:
            logger.error("History record unreadable; refusing import")
            return ImportResult(success=False)

        known_ids = {record.get("id") for record in records if isinstance(record, dict)}
        accepted: list[HistoryEntry] = []
        for entry in incoming:
            if entry.id in known_ids:
                continue
            known_ids.add(entry.id)
            accepted.append(entry)

        log_event("store.import", accepted=len(accepted), skipped=len(incoming) - len(accepted))

        if accepted:
            merged = sorted(
                [*(entry.to_record() for entry in accepted), *records],
                key=_record_timestamp,
                reverse=True,
            )
            if not self._write_json(HISTORY_KEY, merged):
                return ImportResult(success=False)

        return ImportResult(
            success=True,
            recovered_theme=theme,
            recovered_color_scheme=color_scheme,
            imported_count=len(accepted),
        )

    def _parse_bundle(
        self, bundle: str | bytes
    ) -> tuple[list[HistoryEntry], Theme | None, ColorScheme | None]:
        try:
            parsed = json.loads(bundle)
        except (TypeError, ValueError) as e:
            raise ImportMalformedError(f"not valid JSON: {e}") from e

        theme = color_scheme = None
        if isinstance(parsed, list):
            records = parsed
        elif isinstance(parsed, dict) and isinstance(parsed.get("history"), list):
            records = parsed["history"]
            theme = _optional_enum(Theme, parsed.get("theme"))
            color_scheme = _optional_enum(ColorScheme, parsed.get("colorScheme"))
        else:
            raise ImportMalformedError("expected a history array or an object with 'history'")

        entries: list[HistoryEntry] = []
        for index, record in enumerate(records):
            if not isinstance(record, dict):
                raise ImportMalformedError(f"history[{index}] is not an object")
            if not record.get("id"):
                continue
            try:
                entries.append(HistoryEntry.model_validate(record))
            except ValidationError as e:
                raise ImportMalformedError(f"history[{index}] is invalid: {e}") from e
        return entries, theme, color_scheme

    # --- app snapshot ----------------------------------------------------

    def save_app_snapshot(self, snapshot: AppSnapshot) -> bool:
        return self._write_json(
            APP_STATE_KEY, snapshot.model_dump(mode="json", by_alias=True)
        )

    def load_snapshot_or_none(self) -> AppSnapshot | None:
        """
        Load the app snapshot, migrating first if the schema tag changed.

        On a mismatch the snapshot is discarded, the tag is advanced and None
        is returned for this load.
        """
        stored_version = self._read(VERSION_KEY)
        if stored_version != self.expected_version:
            logger.info(
                "Detected update: %s -> %s. Clearing volatile app state.",
                stored_version,
                self.expected_version,
            )
            log_event("store.schema_migrated", previous=stored_version, current=self.expected_version)
            self._remove(APP_STATE_KEY)
            self._write(VERSION_KEY, self.expected_version)
            return None

        raw = self._read(APP_STATE_KEY)
        if raw is None:
            return None
        try:
            return AppSnapshot.model_validate_json(raw)
        except ValidationError as e:
            logger.error("Failed to load app state: %s", e)
            return None

    # --- credential ------------------------------------------------------

    def set_credential(self, key: str) -> bool:
        return self._write(API_KEY_STORAGE_KEY, key)

    def get_credential(self) -> str | None:
        return self._read(API_KEY_STORAGE_KEY) or None

    def clear_credential(self) -> bool:
        return self._remove(API_KEY_STORAGE_KEY)
