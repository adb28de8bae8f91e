"""
Domain models for GrammarGuard.

History entries and exported bundles use the camelCase field names of the
browser build's backup files (textSnippet, isPerfect, type, ...) so backups
move freely between the two; Python code uses the snake_case attributes.
"""

from __future__ import annotations

from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel


class HistoryCategory(str, Enum):
    """Which remote operation produced a history entry."""

    GRAMMAR = "grammar"
    REWRITE = "rewrite"
    DICTIONARY = "dictionary"


class Theme(str, Enum):
    LIGHT = "light"
    DARK = "dark"


class ColorScheme(str, Enum):
    BLUE = "blue"
    ORANGE = "orange"
    GREEN = "green"
    INDIGO = "indigo"
    ROSE = "rose"
    RED = "red"


class RewriteStyle(str, Enum):
    PROFESSIONAL = "Professional"
    CASUAL = "Casual"
    ACADEMIC = "Academic"
    CREATIVE = "Creative"
    FORMAL = "Formal"
    INFORMAL = "Informal"
    ANALYTICAL = "Analytical"
    NARRATIVE = "Narrative"
    PERSUASIVE = "Persuasive"
    DESCRIPTIVE = "Descriptive"


class Severity(str, Enum):
    CRITICAL = "critical"  # strict grammar/spelling error
    SUGGESTION = "suggestion"  # grammatical, but stylistically improvable


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# --- Remote language service payloads ---


class Segment(_CamelModel):
    text: str
    is_error: bool
    severity: Severity | None = None
    correction: str | None = None
    reason: str | None = None

    @property
    def is_critical(self) -> bool:
        # Unlabelled errors count as critical
        return self.is_error and self.severity in (None, Severity.CRITICAL)

    @property
    def is_suggestion(self) -> bool:
        return self.is_error and self.severity == Severity.SUGGESTION


class Explanation(_CamelModel):
    overview: str
    improvements: list[str] = Field(default_factory=list)


class WordData(_CamelModel):
    text: str
    ipa: str = ""


class GrammarAnalysis(_CamelModel):
    segments: list[Segment]
    corrected_sentence: str
    corrected_words: list[WordData] | None = None
    explanation: Explanation

    @property
    def error_count(self) -> int:
        return sum(1 for segment in self.segments if segment.is_critical)

    @property
    def suggestion_count(self) -> int:
        return sum(1 for segment in self.segments if segment.is_suggestion)


class RewriteAnalysis(_CamelModel):
    original_text: str
    rewritten_text: str
    rewritten_words: list[WordData] | None = None
    style: RewriteStyle
    explanation: Explanation


# --- Persisted records ---


class HistoryEntry(_CamelModel):
    """
    One durable record of a completed remote operation.

    Never mutated after creation; removed only by a full history clear.
    """

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    id: str = Field(..., min_length=1, description="Unique identifier (UUID)")
    timestamp: int = Field(..., ge=0, description="Creation time, epoch milliseconds")
    text_snippet: str
    full_text: str | None = None
    error_count: int = Field(default=0, ge=0)
    suggestion_count: int = Field(default=0, ge=0)
    is_perfect: bool = False
    # Entries written before categories existed carry no type; they were grammar checks.
    category: HistoryCategory = Field(default=HistoryCategory.GRAMMAR, alias="type")
    rewrite_style: str | None = None

    @field_validator("category", mode="before")
    @classmethod
    def legacy_category(cls, v: Any) -> Any:
        return HistoryCategory.GRAMMAR if v in (None, "") else v

    def to_record(self) -> dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class UserStats(BaseModel):
    total_checks: int = 0
    total_errors: int = 0
    accuracy_rate: int = 0  # percentage of perfect grammar checks
    perfect_runs: int = 0


class AppSnapshot(_CamelModel):
    """Ephemeral editor state, wiped whenever the schema version changes."""

    input_text: str = ""
    grammar_result: GrammarAnalysis | None = None
    rewrite_result: RewriteAnalysis | None = None
    color_scheme: ColorScheme = ColorScheme.BLUE


class ExportBundle(_CamelModel):
    history: list[HistoryEntry]
    theme: Theme | None = None
    color_scheme: ColorScheme | None = None
    version: str | None = None


class ImportResult(BaseModel):
    success: bool
    recovered_theme: Theme | None = None
    recovered_color_scheme: ColorScheme | None = None
    imported_count: int = 0


# --- Remote dictionary service payloads ---


class DictionaryDefinition(BaseModel):
    definition: str
    example: str | None = None
    synonyms: list[str] = Field(default_factory=list)
    antonyms: list[str] = Field(default_factory=list)


class DictionaryMeaning(_CamelModel):
    part_of_speech: str
    definitions: list[DictionaryDefinition] = Field(default_factory=list)
    synonyms: list[str] = Field(default_factory=list)
    antonyms: list[str] = Field(default_factory=list)


class DictionaryPhonetic(BaseModel):
    text: str | None = None
    audio: str | None = None


class DictionaryEntry(_CamelModel):
    word: str
    phonetic: str | None = None
    phonetics: list[DictionaryPhonetic] = Field(default_factory=list)
    meanings: list[DictionaryMeaning] = Field(default_factory=list)
    source_urls: list[str] = Field(default_factory=list)
