"""
Editor session: wires user actions to the remote services and the store.

    action -> coordinator.begin -> retry-wrapped remote call
           -> (token still active?) -> visible state -> history append
           -> debounced snapshot save

Grammar checks and rewrites share the editor's result area, so starting
either one invalidates both. Quick rewrites (follow-ups on a finished check)
have their own action class and never disturb the main result.
"""

from __future__ import annotations

import random
from dataclasses import dataclass, field
from enum import Enum

from grammarguard.app.debounce import Debouncer
from grammarguard.config import QUICK_REWRITE_STYLE_COUNT, SNAPSHOT_DEBOUNCE_SECONDS
from grammarguard.dictionary.client import DictionaryClient, WordNotFoundError
from grammarguard.infrastructure.coordinator import (
    ActionClass,
    GenerationToken,
    RequestCoordinator,
    SupersededError,
)
from grammarguard.llm.service import LanguageService
from grammarguard.observability.logging import get_logger
from grammarguard.storage.models import (
    AppSnapshot,
    ColorScheme,
    DictionaryEntry,
    GrammarAnalysis,
    RewriteAnalysis,
    RewriteStyle,
)
from grammarguard.storage.state_store import StateStore
from grammarguard.utils.error_messages import NO_DEFINITION_MESSAGE, needs_credential, user_message

logger = get_logger(__name__)


class LoadingState(str, Enum):
    IDLE = "idle"
    LOADING = "loading"
    SUCCESS = "success"
    ERROR = "error"


@dataclass
class QuickRewriteState:
    styles: list[RewriteStyle] = field(default_factory=list)
    selected_style: RewriteStyle | None = None
    result: str | None = None
    is_loading: bool = False


@dataclass
class DictionaryState:
    term: str = ""
    is_loading: bool = False
    entries: list[DictionaryEntry] | None = None
    error: str | None = None


class EditorSession:
    """In-memory editor state plus the operations that mutate it."""

    def __init__(
        self,
        store: StateStore,
        language: LanguageService,
        dictionary: DictionaryClient,
        coordinator: RequestCoordinator | None = None,
        rng: random.Random | None = None,
        snapshot_delay: float = SNAPSHOT_DEBOUNCE_SECONDS,
    ):
        self.store = store
        self.language = language
        self.dictionary = dictionary
        self.coordinator = coordinator or RequestCoordinator()
        self._rng = rng or random.Random()
        self.snapshots = Debouncer(self._save_snapshot, snapshot_delay)

        self.input_text = ""
        self.grammar_result: GrammarAnalysis | None = None
        self.rewrite_result: RewriteAnalysis | None = None
        self.color_scheme = store.get_color_scheme() or ColorScheme.BLUE
        self.loading_state = LoadingState.IDLE
        self.quick_rewrite = QuickRewriteState()
        self.lookup = DictionaryState()
        self.last_error: str | None = None
        self.needs_credential = False
        # Bumped on every history append so views know to re-read
        self.history_revision = 0

    # --- snapshot ----------------------------------------------------------

    def snapshot(self) -> AppSnapshot:
        return AppSnapshot(
            input_text=self.input_text,
            grammar_result=self.grammar_result,
            rewrite_result=self.rewrite_result,
            color_scheme=self.color_scheme,
        )

    def _save_snapshot(self) -> None:
        self.store.save_app_snapshot(self.snapshot())

    def restore(self) -> bool:
        """Reload the last snapshot; False when none survived (or schema changed)."""
        snapshot = self.store.load_snapshot_or_none()
        if snapshot is None:
            return False
        self.input_text = snapshot.input_text
        self.grammar_result = snapshot.grammar_result
        self.rewrite_result = snapshot.rewrite_result
        self.color_scheme = snapshot.color_scheme
        return True

    def set_input(self, text: str) -> None:
        self.input_text = text
        self.snapshots.trigger()

    def set_color_scheme(self, color_scheme: ColorScheme) -> None:
        self.color_scheme = ColorScheme(color_scheme)
        self.store.set_color_scheme(self.color_scheme)
        self.snapshots.trigger()

    # --- main actions --------------------------------------------------------

    def _start_editor_action(self, action_class: ActionClass) -> GenerationToken:
        other = ActionClass.REWRITE if action_class is ActionClass.GRAMMAR else ActionClass.GRAMMAR
        self.coordinator.invalidate(other)
        self.coordinator.invalidate(ActionClass.QUICK_REWRITE)
        token = self.coordinator.begin(action_class)

        self.loading_state = LoadingState.LOADING
        self.grammar_result = None
        self.rewrite_result = None
        self.quick_rewrite = QuickRewriteState()
        self.last_error = None
        self.needs_credential = False
        return token

    def _fail(self, error: Exception) -> None:
        self.loading_state = LoadingState.ERROR
        self.last_error = user_message(error)
        self.needs_credential = needs_credential(error)

    async def check_grammar(self) -> GrammarAnalysis | None:
        text = self.input_text
        if not text.strip():
            return None

        token = self._start_editor_action(ActionClass.GRAMMAR)
        try:
            result = await self.coordinator.run(token, lambda: self.language.check_grammar(text))

            self.grammar_result = result
            self.loading_state = LoadingState.SUCCESS
            if self.store.record_grammar_check(text, result) is not None:
                self.history_revision += 1

            styles = self._rng.sample(list(RewriteStyle), QUICK_REWRITE_STYLE_COUNT)
            # Secondary update: re-check before applying
            self.coordinator.ensure_active(token)
            self.quick_rewrite = QuickRewriteState(styles=styles)
        except SupersededError:
            return None
        except Exception as exc:
            self._fail(exc)
            self.snapshots.trigger()
            return None

        self.snapshots.trigger()
        return result

    async def rewrite(self, style: RewriteStyle) -> RewriteAnalysis | None:
        text = self.input_text
        if not text.strip():
            return None

        style = RewriteStyle(style)
        token = self._start_editor_action(ActionClass.REWRITE)
        try:
            result = await self.coordinator.run(
                token, lambda: self.language.rewrite_text(text, style)
            )

            self.rewrite_result = result
            self.loading_state = LoadingState.SUCCESS
            if self.store.record_rewrite(result) is not None:
                self.history_revision += 1
        except SupersededError:
            return None
        except Exception as exc:
            self._fail(exc)
            self.snapshots.trigger()
            return None

        self.snapshots.trigger()
        return result

    async def retry_rewrite(self) -> RewriteAnalysis | None:
        if self.rewrite_result is None:
            return None
        return await self.rewrite(self.rewrite_result.style)

    async def quick_rewrite_with(self, style: RewriteStyle) -> str | None:
        """Rewrite the corrected sentence of the current check in style."""
        if self.grammar_result is None:
            return None

        style = RewriteStyle(style)
        sentence = self.grammar_result.corrected_sentence
        token = self.coordinator.begin(ActionClass.QUICK_REWRITE)
        self.quick_rewrite.selected_style = style
        self.quick_rewrite.result = None
        self.quick_rewrite.is_loading = True
        try:
            result = await self.coordinator.run(
                token, lambda: self.language.rewrite_text(sentence, style)
            )
        except SupersededError:
            return None
        except Exception as exc:
            self.quick_rewrite.is_loading = False
            if needs_credential(exc):
                self.last_error = user_message(exc)
                self.needs_credential = True
            else:
                logger.error("Quick rewrite failed: %s", exc)
            return None

        self.quick_rewrite.result = result.rewritten_text
        self.quick_rewrite.is_loading = False
        return result.rewritten_text

    def stop_quick_rewrite(self) -> None:
        self.coordinator.invalidate(ActionClass.QUICK_REWRITE)
        self.quick_rewrite.is_loading = False

    def stop(self) -> None:
        """Abandon the in-flight check or rewrite; its result will be ignored."""
        self.coordinator.invalidate(ActionClass.GRAMMAR)
        self.coordinator.invalidate(ActionClass.REWRITE)
        self.loading_state = LoadingState.IDLE

    def clear(self) -> None:
        self.coordinator.invalidate_all()
        self.input_text = ""
        self.grammar_result = None
        self.rewrite_result = None
        self.quick_rewrite = QuickRewriteState()
        self.loading_state = LoadingState.IDLE
        self.last_error = None
        self.needs_credential = False
        self.snapshots.trigger()

    # --- dictionary ------------------------------------------------------------

    async def lookup_word(self, term: str) -> list[DictionaryEntry] | None:
        term = term.strip()
        if not term:
            return None

        token = self.coordinator.begin(ActionClass.LOOKUP)
        self.lookup = DictionaryState(term=term, is_loading=True)
        try:
            entries = await self.dictionary.lookup(term)
            self.coordinator.ensure_active(token)
        except SupersededError:
            return None
        except WordNotFoundError as exc:
            if not self.coordinator.is_active(token):
                return None
            logger.info("%s", exc)
            self.lookup = DictionaryState(term=term, error=NO_DEFINITION_MESSAGE)
            return None

        self.lookup = DictionaryState(term=term, entries=entries)
        if self.store.record_lookup(term) is not None:
            self.history_revision += 1
        return entries

    async def generate_example(self, word: str, definition: str) -> str | None:
        try:
            return await self.coordinator.retry_policy.execute(
                lambda: self.language.generate_example_sentence(word, definition)
            )
        except Exception as exc:
            logger.error("Failed to generate example: %s", exc)
            if needs_credential(exc):
                self.needs_credential = True
            return None
