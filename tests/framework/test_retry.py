"""Tests for stream_source.retry."""

from __future__ import annotations

import pytest

from stream_source.config import RetryConfig
from stream_source.retry import with_retry


@pytest.fixture
def fast_config() -> RetryConfig:
    return RetryConfig(max_attempts=3, initial_wait_seconds=0.01, max_wait_seconds=0.02)


class TestWithRetry:
    @pytest.mark.asyncio
    async def test_succeeds_first_try(self, fast_config: RetryConfig):
        calls = 0

        @with_retry(fast_config)
        async def deliver():
            nonlocal calls
            calls += 1
            return "sent"

        assert await deliver() == "sent"
        assert calls == 1

    @pytest.mark.asyncio
    async def test_retries_then_succeeds(self, fast_config: RetryConfig):
        calls = 0

        @with_retry(fast_config)
        async def deliver():
            nonlocal calls
            calls += 1
            if calls < 3:
                raise ConnectionError("broker busy")
            return "sent"

        assert await deliver() == "sent"
        assert calls == 3

    @pytest.mark.asyncio
    async def test_exhausts_retries_and_reraises(self, fast_config: RetryConfig):
        calls = 0

        @with_retry(fast_config)
        async def deliver():
            nonlocal calls
            calls += 1
            raise ConnectionError("broker down")

        with pytest.raises(ConnectionError, match="broker down"):
            await deliver()
        assert calls == 3

    @pytest.mark.asyncio
    async def test_non_retryable_fails_immediately(self):
        config = RetryConfig(max_attempts=5, initial_wait_seconds=0.01, max_wait_seconds=0.02)
        calls = 0

        @with_retry(config, retryable_exceptions=(ConnectionError,))
        async def deliver():
            nonlocal calls
            calls += 1
            raise TypeError("bad record")

        with pytest.raises(TypeError):
            await deliver()
        assert calls == 1

    @pytest.mark.asyncio
    async def test_single_attempt(self):
        config = RetryConfig(max_attempts=1, initial_wait_seconds=0.01, max_wait_seconds=0.02)
        calls = 0

        @with_retry(config)
        async def deliver():
            nonlocal calls
            calls += 1
            raise RuntimeError("fail")

        with pytest.raises(RuntimeError):
            await deliver()
        assert calls == 1
