"""Historical context - mood trend over a subject's recent entries.

The provider turns raw mood history into a HistoricalContext:

1. Only entries from the last `history_days_back` days are used.
2. Fewer than `minimum_entries_for_pattern` entries -> no context.
3. recent_trend compares the mean of the later half of the entries
   (split at n // 2, ordered by time) with the earlier half.
4. sustained_low_days is the longest run of consecutive calendar days
   whose daily mean mood is below `mood_threshold_score`; a day with no
   entries breaks the run.
5. pattern is DECLINING when that run reaches `mood_threshold_days`,
   otherwise it mirrors recent_trend.

Fetching is bounded by a timeout and never raises: any failure degrades
to None and the analysis continues on the current entry alone.
"""
import asyncio
import logging
import statistics
import threading
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from typing import Dict, List, Optional

from reflectwell.shared.models import HistoricalContext, TrendDirection
from reflectwell.shared.utils import hash_pii
from .clock import ClockSource, SystemClock
from .config import DetectionConfig

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class MoodEntry:
    """A single self-reported mood score (1-10)."""
    recorded_at: datetime
    mood: float

    def __post_init__(self):
        if not 1 <= self.mood <= 10:
            raise ValueError(f"Mood must be 1-10, got {self.mood}")


class MoodHistorySource(ABC):
    """Where mood history comes from (journal store, analytics service, ...)."""

    @abstractmethod
    async def entries_since(self, subject_id: str, since: datetime) -> List[MoodEntry]:
        """Return mood entries recorded at or after `since`."""


class InMemoryMoodHistory(MoodHistorySource):
    """Process-local mood history. In-memory for dev; the journal store in prod."""

    def __init__(self):
        self._entries: Dict[str, List[MoodEntry]] = {}
        self._lock = threading.Lock()

    def record(self, subject_id: str, mood: float, recorded_at: datetime) -> MoodEntry:
        entry = MoodEntry(recorded_at=recorded_at, mood=mood)
        with self._lock:
            self._entries.setdefault(subject_id, []).append(entry)
        return entry

    def clear(self, subject_id: Optional[str] = None) -> None:
        with self._lock:
            if subject_id is None:
                self._entries.clear()
            else:
                self._entries.pop(subject_id, None)

    async def entries_since(self, subject_id: str, since: datetime) -> List[MoodEntry]:
        with self._lock:
            entries = list(self._entries.get(subject_id, ()))
        return [e for e in entries if e.recorded_at >= since]


class HistoricalContextProvider(ABC):
    """Collaborator contract: supplies a trend descriptor for one subject."""

    @abstractmethod
    async def fetch(self, subject_id: str) -> Optional[HistoricalContext]:
        """Return the subject's historical context, or None if unavailable."""


class MoodHistoryProvider(HistoricalContextProvider):
    """Builds HistoricalContext from a MoodHistorySource."""

    def __init__(
        self,
        source: MoodHistorySource,
        config: Optional[DetectionConfig] = None,
        clock: Optional[ClockSource] = None,
    ):
        self.source = source
        self.config = config or DetectionConfig()
        self.clock = clock or SystemClock()

    async def fetch(self, subject_id: str) -> Optional[HistoricalContext]:
        since = self.clock.now() - timedelta(days=self.config.history_days_back)
        entries = await self.source.entries_since(subject_id, since)
        return self.summarize(entries)

    def summarize(self, entries: List[MoodEntry]) -> Optional[HistoricalContext]:
        """Aggregate mood entries into a HistoricalContext.

        Returns:
            HistoricalContext, or None with too few entries to call a pattern
        """
        if len(entries) < self.config.minimum_entries_for_pattern:
            return None

        ordered = sorted(entries, key=lambda e: e.recorded_at)
        moods = [e.mood for e in ordered]
        recent_trend = self._trend(moods)
        sustained_low_days = self._longest_low_run(ordered)

        if sustained_low_days >= self.config.mood_threshold_days:
            pattern = TrendDirection.DECLINING
        else:
            pattern = recent_trend

        return HistoricalContext(
            pattern=pattern,
            average_mood=statistics.mean(moods),
            recent_trend=recent_trend,
            days_analyzed=len({e.recorded_at.date() for e in ordered}),
            entries_analyzed=len(ordered),
            sustained_low_days=sustained_low_days,
        )

    def _trend(self, moods: List[float]) -> TrendDirection:
        split = len(moods) // 2
        if split == 0:
            return TrendDirection.STABLE
        delta = statistics.mean(moods[split:]) - statistics.mean(moods[:split])
        if delta <= -self.config.trend_delta_threshold:
            return TrendDirection.DECLINING
        if delta >= self.config.trend_delta_threshold:
            return TrendDirection.IMPROVING
        return TrendDirection.STABLE

    def _longest_low_run(self, ordered: List[MoodEntry]) -> int:
        by_day: Dict[date, List[float]] = {}
        for entry in ordered:
            by_day.setdefault(entry.recorded_at.date(), []).append(entry.mood)

        longest = 0
        current = 0
        previous: Optional[date] = None
        for day in sorted(by_day):
            is_low = statistics.mean(by_day[day]) < self.config.mood_threshold_score
            if not is_low:
                current = 0
            elif previous is not None and current and day - previous == timedelta(days=1):
                current += 1
            else:
                current = 1
            longest = max(longest, current)
            previous = day
        return longest


def _discard_late_result(task: "asyncio.Future") -> None:
    if not task.cancelled() and task.exception() is not None:
        logger.info(
            "HISTORY_FETCH_LATE_FAILURE",
            extra={"error_type": type(task.exception()).__name__}
        )


async def fetch_with_timeout(
    provider: Optional[HistoricalContextProvider],
    subject_id: str,
    timeout_seconds: float,
) -> Optional[HistoricalContext]:
    """Fetch historical context, degrading every failure to None.

    Logs:
        - HISTORY_FETCH_TIMEOUT: Provider exceeded the timeout
        - HISTORY_FETCH_FAILED: Provider raised
        - HISTORY_FETCH_INVALID: Provider returned the wrong type
    """
    if provider is None:
        return None

    task = asyncio.ensure_future(provider.fetch(subject_id))
    try:
        # shield(): a timeout stops waiting but leaves the fetch running
        context = await asyncio.wait_for(asyncio.shield(task), timeout=timeout_seconds)
    except asyncio.TimeoutError:
        task.add_done_callback(_discard_late_result)
        logger.warning(
            "HISTORY_FETCH_TIMEOUT",
            extra={
                "subject_id_hash": hash_pii(subject_id),
                "timeout_seconds": timeout_seconds,
            }
        )
        return None
    except Exception as e:
        logger.warning(
            "HISTORY_FETCH_FAILED",
            extra={
                "subject_id_hash": hash_pii(subject_id),
                "error": str(e),
                "error_type": type(e).__name__,
            }
        )
        return None

    if context is not None and not isinstance(context, HistoricalContext):
        logger.warning(
            "HISTORY_FETCH_INVALID",
            extra={
                "subject_id_hash": hash_pii(subject_id),
                "returned_type": type(context).__name__,
            }
        )
        return None
    return context
