"""Tests for stream_source.shutdown."""

from __future__ import annotations

import asyncio
import os
import signal

import pytest

from stream_source.shutdown import SHUTDOWN_SIGNALS, install_signal_handlers


class TestInstallSignalHandlers:
    @pytest.mark.asyncio
    async def test_sigterm_sets_event(self):
        event = asyncio.Event()
        install_signal_handlers(event)

        assert not event.is_set()
        os.kill(os.getpid(), signal.SIGTERM)
        # The loop needs an I/O poll cycle to drain the signal self-pipe.
        await asyncio.sleep(0.05)
        assert event.is_set()

    @pytest.mark.asyncio
    async def test_repeated_signal_is_harmless(self):
        event = asyncio.Event()
        install_signal_handlers(event)

        os.kill(os.getpid(), signal.SIGTERM)
        await asyncio.sleep(0.05)
        os.kill(os.getpid(), signal.SIGTERM)
        await asyncio.sleep(0.05)
        assert event.is_set()

    @pytest.mark.asyncio
    async def test_default_signals_registered(self):
        event = asyncio.Event()
        install_signal_handlers(event)
        loop = asyncio.get_running_loop()

        for sig in SHUTDOWN_SIGNALS:
            assert loop.remove_signal_handler(sig) is True

    @pytest.mark.asyncio
    async def test_custom_signal_set(self):
        event = asyncio.Event()
        install_signal_handlers(event, signals=(signal.SIGUSR1,))
        loop = asyncio.get_running_loop()

        os.kill(os.getpid(), signal.SIGUSR1)
        await asyncio.sleep(0.05)
        assert event.is_set()
        assert loop.remove_signal_handler(signal.SIGUSR1) is True
