"""Tests for historical mood context."""
import asyncio
from datetime import datetime, timedelta

import pytest

from reflectwell.shared.models import HistoricalContext, TrendDirection
from reflectwell.shared.utils import configure_pii_salt
from reflectwell.services.crisis_detection.clock import ManualClock
from reflectwell.services.crisis_detection.history import (
    HistoricalContextProvider,
    InMemoryMoodHistory,
    MoodEntry,
    MoodHistoryProvider,
    fetch_with_timeout,
)


@pytest.fixture(autouse=True)
def setup_pii_salt():
    """Configure PII salt for all tests."""
    configure_pii_salt("test_salt_that_is_at_least_32_characters_long")


@pytest.fixture
def provider():
    return MoodHistoryProvider(InMemoryMoodHistory(), clock=ManualClock())


def _daily(moods, start=datetime(2025, 1, 1, 9, 0)):
    return [MoodEntry(recorded_at=start + timedelta(days=i), mood=m) for i, m in enumerate(moods)]


class TestSummarize:
    """Tests for trend aggregation."""

    def test_too_few_entries(self, provider):
        assert provider.summarize(_daily([2, 2])) is None

    def test_declining_trend(self, provider):
        context = provider.summarize(_daily([7, 7, 4, 4]))

        assert context.recent_trend == TrendDirection.DECLINING
        assert context.pattern == TrendDirection.DECLINING
        assert context.average_mood == 5.5
        assert context.days_analyzed == 4
        assert context.entries_analyzed == 4

    def test_improving_trend(self, provider):
        context = provider.summarize(_daily([3, 3, 6, 7]))
        assert context.recent_trend == TrendDirection.IMPROVING

    def test_small_change_is_stable(self, provider):
        context = provider.summarize(_daily([5, 5, 5, 6]))
        assert context.recent_trend == TrendDirection.STABLE

    def test_odd_count_splits_earlier_half_short(self, provider):
        """With 3 entries the earlier half is one entry."""
        context = provider.summarize(_daily([8, 6, 2]))
        assert context.recent_trend == TrendDirection.DECLINING

    def test_entries_sorted_by_time(self, provider):
        entries = list(reversed(_daily([7, 7, 4, 4])))
        context = provider.summarize(entries)
        assert context.recent_trend == TrendDirection.DECLINING

    def test_sustained_low_days_mark_declining(self, provider):
        """A week of consecutive low days is declining even when flat."""
        context = provider.summarize(_daily([2] * 8))

        assert context.recent_trend == TrendDirection.STABLE
        assert context.sustained_low_days == 8
        assert context.pattern == TrendDirection.DECLINING
        assert context.average_mood == 2

    def test_missing_day_breaks_low_run(self, provider):
        start = datetime(2025, 1, 1, 9, 0)
        entries = _daily([2] * 4, start) + _daily([2] * 4, start + timedelta(days=5))

        context = provider.summarize(entries)

        assert context.sustained_low_days == 4
        assert context.pattern == TrendDirection.STABLE

    def test_daily_mean_decides_low_day(self, provider):
        """Two entries on one day are averaged before comparing."""
        day = datetime(2025, 1, 1, 9, 0)
        entries = [
            MoodEntry(day, 2),
            MoodEntry(day + timedelta(hours=6), 6),
            MoodEntry(day + timedelta(days=1), 2),
        ]

        context = provider.summarize(entries)

        assert context.sustained_low_days == 1
        assert context.days_analyzed == 2
        assert context.entries_analyzed == 3


class TestFetch:
    """Tests for window filtering against the mood source."""

    @pytest.mark.asyncio
    async def test_entries_outside_window_excluded(self):
        clock = ManualClock()
        history = InMemoryMoodHistory()
        provider = MoodHistoryProvider(history, clock=clock)
        now = clock.now()
        history.record("user_1", 1, now - timedelta(days=20))
        for days_ago in (3, 2, 1):
            history.record("user_1", 6, now - timedelta(days=days_ago))

        context = await provider.fetch("user_1")

        assert context.entries_analyzed == 3
        assert context.average_mood == 6

    @pytest.mark.asyncio
    async def test_unknown_subject(self, provider):
        assert await provider.fetch("nobody") is None

    def test_invalid_mood_rejected(self):
        with pytest.raises(ValueError):
            InMemoryMoodHistory().record("user_1", 0, datetime(2025, 1, 1))


class _SlowProvider(HistoricalContextProvider):
    def __init__(self, release):
        self.release = release

    async def fetch(self, subject_id):
        await self.release.wait()
        return None


class _FailingProvider(HistoricalContextProvider):
    async def fetch(self, subject_id):
        raise ConnectionError("journal store unavailable")


class _WrongTypeProvider(HistoricalContextProvider):
    async def fetch(self, subject_id):
        return "declining"


class _FixedProvider(HistoricalContextProvider):
    def __init__(self, context):
        self.context = context

    async def fetch(self, subject_id):
        return self.context


class TestFetchWithTimeout:
    """History must degrade to None, never fail the analysis."""

    @pytest.mark.asyncio
    async def test_returns_context(self):
        context = HistoricalContext(
            pattern=TrendDirection.STABLE,
            average_mood=5,
            recent_trend=TrendDirection.STABLE,
            days_analyzed=3,
            entries_analyzed=3,
        )
        assert await fetch_with_timeout(_FixedProvider(context), "user_1", 1.0) is context

    @pytest.mark.asyncio
    async def test_timeout_returns_none(self):
        release = asyncio.Event()

        result = await fetch_with_timeout(_SlowProvider(release), "user_1", 0.01)

        assert result is None
        release.set()
        await asyncio.sleep(0.01)

    @pytest.mark.asyncio
    async def test_failure_returns_none(self):
        assert await fetch_with_timeout(_FailingProvider(), "user_1", 1.0) is None

    @pytest.mark.asyncio
    async def test_wrong_type_returns_none(self):
        assert await fetch_with_timeout(_WrongTypeProvider(), "user_1", 1.0) is None

    @pytest.mark.asyncio
    async def test_no_provider(self):
        assert await fetch_with_timeout(None, "user_1", 1.0) is None
