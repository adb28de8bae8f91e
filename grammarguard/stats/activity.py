"""
Activity statistics derived from the history log.

Pure functions of a history sequence: a calendar grid of daily counts for
the trailing year and a per-category breakdown.

The grid has ACTIVITY_WEEKS columns of seven days, Sunday first, and ends
with the week containing today. Days after today are flagged is_future and
always count 0, so they can be drawn apart from real zero-activity days.
"""

from __future__ import annotations

from collections import Counter
from collections.abc import Iterable
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta, tzinfo

from grammarguard.config import ACTIVITY_WEEKS
from grammarguard.storage.models import HistoryCategory, HistoryEntry


@dataclass(frozen=True)
class ActivityDay:
    day: date
    count: int
    is_future: bool

    @property
    def label(self) -> str:
        # e.g. "Saturday, Oct 17, 2026"
        return f"{self.day:%A, %b} {self.day.day}, {self.day.year}"


@dataclass(frozen=True)
class CategoryBreakdown:
    counts: dict[HistoryCategory, int] = field(default_factory=dict)

    @property
    def total(self) -> int:
        return sum(self.counts.values())

    def count(self, category: HistoryCategory) -> int:
        return self.counts.get(category, 0)

    def proportion(self, category: HistoryCategory) -> float:
        """Share of category in [0, 1]; 0.0 for an empty history."""
        total = self.total
        return self.count(category) / total if total else 0.0


def local_date(timestamp_ms: int, tz: tzinfo | None = None) -> date:
    """Calendar date of an epoch-ms timestamp in tz (system local time when None)."""
    if tz is None:
        return datetime.fromtimestamp(timestamp_ms / 1000).date()
    return datetime.fromtimestamp(timestamp_ms / 1000, tz=tz).date()


def _week_start(day: date) -> date:
    # date.weekday(): Monday=0 .. Sunday=6
    return day - timedelta(days=(day.weekday() + 1) % 7)


def bucket_by_day(
    history: Iterable[HistoryEntry],
    today: date | None = None,
    tz: tzinfo | None = None,
    weeks: int = ACTIVITY_WEEKS,
) -> list[list[ActivityDay]]:
    """Build the weeks x 7 activity grid ending with the current week."""
    if today is None:
        today = datetime.now(tz).date() if tz is not None else date.today()

    per_day = Counter(local_date(entry.timestamp, tz) for entry in history)

    start = _week_start(today) - timedelta(weeks=weeks - 1)
    grid: list[list[ActivityDay]] = []
    for week in range(weeks):
        column: list[ActivityDay] = []
        for offset in range(7):
            day = start + timedelta(days=week * 7 + offset)
            is_future = day > today
            column.append(
                ActivityDay(day=day, count=0 if is_future else per_day.get(day, 0), is_future=is_future)
            )
        grid.append(column)
    return grid


def bucket_by_category(history: Iterable[HistoryEntry]) -> CategoryBreakdown:
    """Count entries per category; every category is present, possibly with 0."""
    counts = {category: 0 for category in HistoryCategory}
    for entry in history:
        counts[entry.category] += 1
    return CategoryBreakdown(counts=counts)
