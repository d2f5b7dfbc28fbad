"""Tests for the tick clock and tick message format."""

import asyncio
import re
from datetime import datetime, timedelta, timezone

import pytest

from wsticker.servers.ticker.ticker import (
    Ticker,
    format_rfc3339,
    format_tick_message,
    local_now,
)

pytestmark = pytest.mark.unit

TICK_PATTERN = re.compile(
    r"^Tick at \d{4}-\d{2}-\d{2}T\d{2}:\d{2}:\d{2}(Z|[+-]\d{2}:\d{2})\n$"
)


class TestFormatRfc3339:
    """Tests for format_rfc3339 function."""

    def test_utc_uses_z(self) -> None:
        dt = datetime(2024, 5, 1, 12, 30, 45, tzinfo=timezone.utc)
        assert format_rfc3339(dt) == "2024-05-01T12:30:45Z"

    def test_offset(self) -> None:
        dt = datetime(2024, 5, 1, 12, 30, 45, tzinfo=timezone(timedelta(hours=2)))
        assert format_rfc3339(dt) == "2024-05-01T12:30:45+02:00"

    def test_negative_offset(self) -> None:
        dt = datetime(2024, 5, 1, 12, 30, 45, tzinfo=timezone(timedelta(hours=-5, minutes=-30)))
        assert format_rfc3339(dt) == "2024-05-01T12:30:45-05:30"

    def test_offset_with_seconds_rounded_to_minutes(self) -> None:
        # Local mean time offsets, e.g. Dublin before 1916, carry seconds
        tz = timezone(timedelta(minutes=-25, seconds=-21))
        dt = datetime(1900, 1, 1, 12, 0, 0, tzinfo=tz)

        text = format_rfc3339(dt)

        assert text == "1900-01-01T12:00:21-00:25"
        assert datetime.fromisoformat(text) == dt

    def test_offset_seconds_round_up(self) -> None:
        tz = timezone(timedelta(hours=1, minutes=19, seconds=32))
        dt = datetime(1900, 1, 1, 12, 0, 0, tzinfo=tz)

        text = format_rfc3339(dt)

        assert text == "1900-01-01T12:00:28+01:20"
        assert datetime.fromisoformat(text) == dt

    def test_sub_second_precision_dropped(self) -> None:
        dt = datetime(2024, 5, 1, 12, 30, 45, 999999, tzinfo=timezone.utc)
        assert format_rfc3339(dt) == "2024-05-01T12:30:45Z"

    def test_naive_datetime_gets_local_offset(self) -> None:
        text = format_rfc3339(datetime(2024, 5, 1, 12, 30, 45))
        assert re.fullmatch(r"2024-05-01T12:30:45(Z|[+-]\d{2}:\d{2})", text)

    @pytest.mark.parametrize(
        "dt",
        [
            datetime(2024, 2, 29, 23, 59, 59, 123456, tzinfo=timezone.utc),
            datetime(1999, 12, 31, 0, 0, 1, 500000, tzinfo=timezone(timedelta(hours=9))),
        ],
    )
    def test_parse_back_equals_truncated_time(self, dt: datetime) -> None:
        parsed = datetime.fromisoformat(format_rfc3339(dt))
        assert parsed == dt.replace(microsecond=0)

    def test_local_now_round_trip(self) -> None:
        now = local_now()
        assert datetime.fromisoformat(format_rfc3339(now)) == now.replace(microsecond=0)


class TestFormatTickMessage:
    """Tests for format_tick_message function."""

    def test_message(self) -> None:
        dt = datetime(2024, 5, 1, 12, 0, 0, tzinfo=timezone.utc)
        assert format_tick_message(dt) == "Tick at 2024-05-01T12:00:00Z\n"

    def test_matches_pattern(self) -> None:
        assert TICK_PATTERN.match(format_tick_message(local_now()))


@pytest.mark.asyncio
class TestTicker:
    """Tests for the Ticker timer."""

    async def test_rejects_non_positive_interval(self) -> None:
        with pytest.raises(ValueError):
            Ticker(0)

    @pytest.mark.parametrize("interval", [float("nan"), float("inf")])
    async def test_rejects_non_finite_interval(self, interval: float) -> None:
        with pytest.raises(ValueError, match="finite"):
            Ticker(interval)

    async def test_returns_clock_value(self) -> None:
        stamp = datetime(2024, 5, 1, tzinfo=timezone.utc)
        ticker = Ticker(0.01, clock=lambda: stamp)
        assert await ticker.wait() == stamp

    async def test_waits_one_interval(self) -> None:
        loop = asyncio.get_running_loop()
        ticker = Ticker(0.05)
        start = loop.time()
        await ticker.wait()
        assert loop.time() - start >= 0.04

    async def test_ticks_are_anchored(self) -> None:
        """Work done between ticks does not push later deadlines back."""
        loop = asyncio.get_running_loop()
        start = loop.time()
        ticker = Ticker(0.05)
        for _ in range(3):
            await ticker.wait()
            await asyncio.sleep(0.02)
        await ticker.wait()
        # Four deadlines at 0.05 * n; a drifting timer would need >= 0.26s
        assert loop.time() - start < 0.25

    async def test_missed_deadlines_collapse(self) -> None:
        loop = asyncio.get_running_loop()
        ticker = Ticker(0.02)
        await asyncio.sleep(0.11)

        start = loop.time()
        await ticker.wait()  # late: returns immediately
        assert loop.time() - start < 0.02

        # The next deadline is in the future, not a backlog of missed ones
        assert ticker._next_deadline > loop.time()

    async def test_cancelled_wait_keeps_deadline(self) -> None:
        loop = asyncio.get_running_loop()
        ticker = Ticker(0.1)
        start = loop.time()

        task = asyncio.create_task(ticker.wait())
        await asyncio.sleep(0.03)
        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task

        await ticker.wait()
        elapsed = loop.time() - start
        assert 0.08 <= elapsed < 0.18
