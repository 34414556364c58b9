# tests/test_rate_limiter.py - Rate limiter window tests
import sys
import os

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from utils.rate_limiter import RateLimiter

START = 1_700_000_000.0


class TestMinuteWindow:
    """Tests for the per-minute burst ceiling."""

    def test_first_request_allowed(self):
        limiter = RateLimiter(per_minute=5, per_day=50)
        assert limiter.is_limited("1.2.3.4", now=START) is False

    def test_burst_then_limited(self):
        limiter = RateLimiter(per_minute=5, per_day=50)
        results = [limiter.is_limited("1.2.3.4", now=START + i) for i in range(6)]
        assert results == [False, False, False, False, False, True]

    def test_window_reset_allows_full_burst(self):
        limiter = RateLimiter(per_minute=5, per_day=50)
        for i in range(5):
            assert limiter.is_limited("1.2.3.4", now=START + i) is False
        assert limiter.is_limited("1.2.3.4", now=START + 10) is True

        later = START + 61
        results = [limiter.is_limited("1.2.3.4", now=later + i) for i in range(6)]
        assert results == [False, False, False, False, False, True]

    def test_refused_requests_are_not_counted(self):
        limiter = RateLimiter(per_minute=2, per_day=3)
        limiter.is_limited("c", now=START)
        limiter.is_limited("c", now=START + 1)
        for i in range(10):
            assert limiter.is_limited("c", now=START + 2 + i) is True
        # Only the two accepted requests count toward the day
        assert limiter.is_limited("c", now=START + 61) is False
        assert limiter.is_limited("c", now=START + 62) is True

    def test_clients_are_independent(self):
        limiter = RateLimiter(per_minute=1, per_day=50)
        assert limiter.is_limited("a", now=START) is False
        assert limiter.is_limited("a", now=START + 1) is True
        assert limiter.is_limited("b", now=START + 1) is False


class TestDayWindow:
    """Tests for the daily ceiling."""

    def test_day_limit_across_minutes(self):
        limiter = RateLimiter(per_minute=5, per_day=7)
        now = START
        accepted = 0
        for minute in range(3):
            for i in range(5):
                if not limiter.is_limited("d", now=now + minute * 61 + i):
                    accepted += 1
        assert accepted == 7

    def test_day_window_resets(self):
        limiter = RateLimiter(per_minute=5, per_day=2)
        assert limiter.is_limited("d", now=START) is False
        assert limiter.is_limited("d", now=START + 1) is False
        assert limiter.is_limited("d", now=START + 120) is True
        assert limiter.is_limited("d", now=START + 86401) is False


class TestStoreMaintenance:
    """Tests for client record housekeeping."""

    def test_stale_clients_purged_when_full(self):
        limiter = RateLimiter(per_minute=5, per_day=50, max_clients=2)
        limiter.is_limited("old-1", now=START)
        limiter.is_limited("old-2", now=START)
        assert limiter.tracked_clients == 2

        limiter.is_limited("new", now=START + 2 * 86400)
        assert limiter.tracked_clients == 1

    def test_active_clients_kept(self):
        limiter = RateLimiter(per_minute=5, per_day=50, max_clients=2)
        limiter.is_limited("a", now=START)
        limiter.is_limited("b", now=START)
        limiter.is_limited("c", now=START + 1)
        assert limiter.tracked_clients == 3

    def test_reset(self):
        limiter = RateLimiter(per_minute=1, per_day=50)
        limiter.is_limited("a", now=START)
        assert limiter.is_limited("a", now=START + 1) is True
        limiter.reset("a")
        assert limiter.is_limited("a", now=START + 2) is False

    def test_uses_clock_when_now_omitted(self):
        clock = iter([START, START + 1, START + 2])
        limiter = RateLimiter(per_minute=2, per_day=50, clock=lambda: next(clock))
        assert limiter.is_limited("a") is False
        assert limiter.is_limited("a") is False
        assert limiter.is_limited("a") is True
