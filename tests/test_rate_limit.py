"""
Unit tests for the sliding-window RateLimiter.
"""
import pytest

from greenloop.core.errors import RateLimitError
from greenloop.services.rate_limit import RateLimiter, throttle_action_log


class TestRateLimiter:
    def test_allows_up_to_limit(self):
        limiter = RateLimiter()
        for i in range(20):
            limited, retry = limiter.is_rate_limited("1", "action_log", 20, 60, now=1000.0 + i)
            assert limited is False
            assert retry is None

    def test_rejects_21st_call_in_window(self):
        limiter = RateLimiter()
        for i in range(20):
            limiter.is_rate_limited("1", "action_log", 20, 60, now=1000.0 + i)
        limited, retry = limiter.is_rate_limited("1", "action_log", 20, 60, now=1030.0)
        assert limited is True
        # Oldest call at t=1000 leaves the window at t=1060.
        assert retry == 30

    def test_window_slides(self):
        limiter = RateLimiter()
        for i in range(20):
            limiter.is_rate_limited("1", "action_log", 20, 60, now=1000.0 + i)
        limited, _ = limiter.is_rate_limited("1", "action_log", 20, 60, now=1060.5)
        assert limited is False

    def test_keys_are_independent(self):
        limiter = RateLimiter()
        for i in range(20):
            limiter.is_rate_limited("1", "action_log", 20, 60, now=1000.0 + i)
        limited, _ = limiter.is_rate_limited("2", "action_log", 20, 60, now=1001.0)
        assert limited is False

    def test_commands_are_independent(self):
        limiter = RateLimiter()
        for i in range(3):
            limiter.is_rate_limited("1", "a", 3, 60, now=1000.0 + i)
        assert limiter.is_rate_limited("1", "a", 3, 60, now=1005.0)[0] is True
        assert limiter.is_rate_limited("1", "b", 3, 60, now=1005.0)[0] is False

    def test_retry_after_is_at_least_one_second(self):
        limiter = RateLimiter()
        limiter.is_rate_limited("1", "a", 1, 60, now=1000.0)
        limited, retry = limiter.is_rate_limited("1", "a", 1, 60, now=1059.9)
        assert limited is True
        assert retry == 1

    def test_reset_single_key(self):
        limiter = RateLimiter()
        limiter.is_rate_limited("1", "a", 1, 60, now=1000.0)
        limiter.is_rate_limited("2", "a", 1, 60, now=1000.0)
        limiter.reset("1")
        assert limiter.is_rate_limited("1", "a", 1, 60, now=1001.0)[0] is False
        assert limiter.is_rate_limited("2", "a", 1, 60, now=1001.0)[0] is True

    def test_check_raises(self):
        limiter = RateLimiter()
        limiter.check("1", "a", 1, 60, now=1000.0)
        with pytest.raises(RateLimitError) as exc:
            limiter.check("1", "a", 1, 60, now=1010.0)
        assert exc.value.details["retry_after"] == 50


class TestThrottleActionLog:
    def test_uses_configured_limit(self):
        limiter = RateLimiter()
        for _ in range(20):
            throttle_action_log(7, limiter)
        with pytest.raises(RateLimitError):
            throttle_action_log(7, limiter)
