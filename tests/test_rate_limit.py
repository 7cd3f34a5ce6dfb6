"""Tests for DelayPolicy and call_with_retry."""

import asyncio

import pytest

from aio_diagnosis.services.llm_client import LLMError, LLMRateLimitError
from aio_diagnosis.services.rate_limit import DelayPolicy, call_with_retry


def _recording_policy(**kwargs):
    sleeps = []

    async def sleep(seconds):
        sleeps.append(seconds)

    return DelayPolicy(sleep=sleep, **kwargs), sleeps


def _flaky(*outcomes):
    """Return a zero-arg coroutine factory yielding *outcomes* in order."""
    remaining = list(outcomes)
    calls = []

    async def fn():
        calls.append(1)
        outcome = remaining.pop(0)
        if isinstance(outcome, Exception):
            raise outcome
        return outcome

    return fn, calls


class TestDelayPolicy:
    def test_backoff_doubles_and_caps(self):
        policy = DelayPolicy(backoff_base=5.0, backoff_cap=30.0)
        assert [policy.backoff_delay(n) for n in range(4)] == [5.0, 10.0, 20.0, 30.0]

    def test_pause_sleeps_call_delay(self):
        policy, sleeps = _recording_policy(call_delay=3.0)
        asyncio.run(policy.pause())
        assert sleeps == [3.0]

    def test_none_policy_never_waits(self):
        policy = DelayPolicy.none()
        assert policy.call_delay == 0
        assert policy.backoff_delay(5) == 0


class TestCallWithRetry:
    def test_success_first_try(self):
        policy, sleeps = _recording_policy()
        fn, calls = _flaky("ok")
        assert asyncio.run(call_with_retry(fn, policy)) == "ok"
        assert len(calls) == 1
        assert sleeps == []

    def test_retries_rate_limit_with_backoff(self):
        policy, sleeps = _recording_policy(backoff_base=5.0, backoff_cap=30.0, max_attempts=3)
        fn, calls = _flaky(LLMRateLimitError("429"), LLMRateLimitError("429"), "ok")
        assert asyncio.run(call_with_retry(fn, policy)) == "ok"
        assert len(calls) == 3
        assert sleeps == [5.0, 10.0]

    def test_gives_up_after_max_attempts(self):
        policy, sleeps = _recording_policy(max_attempts=2)
        fn, calls = _flaky(LLMRateLimitError("a"), LLMRateLimitError("b"), "never")
        with pytest.raises(LLMRateLimitError):
            asyncio.run(call_with_retry(fn, policy))
        assert len(calls) == 2
        assert len(sleeps) == 1

    def test_other_errors_are_not_retried(self):
        policy, sleeps = _recording_policy()
        fn, calls = _flaky(LLMError("boom"), "never")
        with pytest.raises(LLMError):
            asyncio.run(call_with_retry(fn, policy))
        assert len(calls) == 1
        assert sleeps == []
