"""Tests for the bounded retry utility."""

from __future__ import annotations

from itertools import islice

import pytest

from synth_scraper.core.retry import exponential_delays, fixed_delays, retry_until


class TestDelaySchedules:
    def test_exponential_doubles_and_caps(self):
        assert list(islice(exponential_delays(1.0, 2.0, 8.0), 6)) == [1.0, 2.0, 4.0, 8.0, 8.0, 8.0]

    def test_fixed_interval(self):
        assert list(islice(fixed_delays(0.5), 3)) == [0.5, 0.5, 0.5]


class TestRetryUntil:
    @pytest.mark.asyncio
    async def test_returns_on_first_accepted_value(self, sleep):
        outcome = await retry_until(lambda attempt: attempt, max_attempts=5, accept=lambda v: v == 2,
                                    delays=fixed_delays(1.0), sleep=sleep)

        assert outcome.accepted is True
        assert outcome.value == 2
        assert outcome.attempts == 2
        assert sleep.calls == [1.0]

    @pytest.mark.asyncio
    async def test_never_exceeds_max_attempts(self, sleep):
        calls = []

        async def never(attempt):
            calls.append(attempt)
            return None

        outcome = await retry_until(never, max_attempts=3, accept=lambda v: v is not None,
                                    delays=exponential_delays(), sleep=sleep)

        assert outcome.accepted is False
        assert calls == [1, 2, 3]
        assert sleep.calls == [1.0, 2.0, 4.0]
        assert outcome.waited == 7.0

    @pytest.mark.asyncio
    async def test_no_delay_after_final_attempt_when_disabled(self, sleep):
        outcome = await retry_until(lambda attempt: None, max_attempts=3, accept=lambda v: False,
                                    delays=fixed_delays(1.0), sleep=sleep, sleep_after_last=False)

        assert outcome.attempts == 3
        assert sleep.calls == [1.0, 1.0]
        assert outcome.waited == 2.0

    @pytest.mark.asyncio
    async def test_retry_on_exceptions_are_swallowed_and_kept(self, sleep):
        def boom(attempt):
            raise ConnectionError(f"attempt {attempt}")

        outcome = await retry_until(boom, max_attempts=2, retry_on=(ConnectionError,), sleep=sleep)

        assert outcome.accepted is False
        assert isinstance(outcome.last_error, ConnectionError)
        assert str(outcome.last_error) == "attempt 2"

    @pytest.mark.asyncio
    async def test_other_exceptions_propagate(self):
        def boom(attempt):
            raise KeyError("unexpected")

        with pytest.raises(KeyError):
            await retry_until(boom, max_attempts=3, retry_on=(ConnectionError,))

    @pytest.mark.asyncio
    async def test_no_schedule_means_no_sleep(self, sleep):
        await retry_until(lambda attempt: None, max_attempts=3, accept=lambda v: False, sleep=sleep)
        assert sleep.calls == []

    @pytest.mark.asyncio
    async def test_rejects_zero_attempts(self):
        with pytest.raises(ValueError):
            await retry_until(lambda attempt: None, max_attempts=0)
