"""
Tests for backoff and Retry-After parsing.
"""

from datetime import datetime, timedelta, timezone
from email.utils import format_datetime

import pytest

from bundler.retry import ExponentialBackoff, parse_retry_after


class TestExponentialBackoff:
    """Tests for ExponentialBackoff."""

    def test_doubles_from_base(self):
        backoff = ExponentialBackoff(base=1.0, max_attempts=5)

        delays = [backoff.next_delay() for _ in range(4)]

        assert delays == [1.0, 2.0, 4.0, 8.0]

    def test_retry_after_floor(self):
        backoff = ExponentialBackoff(base=1.0)

        assert backoff.next_delay(retry_after=7.5) == 7.5

    def test_strictly_increasing_after_large_floor(self):
        """A long Retry-After never lets the next delay shrink."""
        backoff = ExponentialBackoff(base=1.0, max_attempts=5)

        first = backoff.next_delay(retry_after=10.0)
        second = backoff.next_delay()
        third = backoff.next_delay(retry_after=1.0)

        assert first < second < third
        assert second == 20.0

    def test_exhausted(self):
        backoff = ExponentialBackoff(max_attempts=3)

        assert backoff.exhausted(1) is False
        assert backoff.exhausted(2) is False
        assert backoff.exhausted(3) is True

    @pytest.mark.parametrize("kwargs", [{"base": 0}, {"max_attempts": 0}])
    def test_invalid_arguments(self, kwargs):
        with pytest.raises(ValueError):
            ExponentialBackoff(**kwargs)


class TestParseRetryAfter:
    """Tests for parse_retry_after."""

    @pytest.mark.parametrize(
        "value,expected",
        [("2", 2.0), (" 1.5 ", 1.5), ("0", 0.0), ("-3", 0.0)],
    )
    def test_seconds(self, value, expected):
        assert parse_retry_after(value) == expected

    @pytest.mark.parametrize("value", [None, "", "soon", "inf", "nan"])
    def test_unusable(self, value):
        assert parse_retry_after(value) is None

    def test_http_date(self):
        now = datetime(2026, 1, 1, 12, 0, 0, tzinfo=timezone.utc)
        header = format_datetime(now + timedelta(seconds=30), usegmt=True)

        assert parse_retry_after(header, now=now) == pytest.approx(30.0)

    def test_http_date_in_past(self):
        now = datetime(2026, 1, 1, 12, 0, 0, tzinfo=timezone.utc)
        header = format_datetime(now - timedelta(seconds=30), usegmt=True)

        assert parse_retry_after(header, now=now) == 0.0
