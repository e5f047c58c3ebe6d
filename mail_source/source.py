"""MailSource: retrieve mail by polling or IMAP IDLE and yield one
OutputRecord per message to the framework delivery loop.
"""

from __future__ import annotations

import asyncio
import imaplib
import poplib
from collections.abc import AsyncIterator
from datetime import UTC, datetime

import structlog

from stream_source import BaseSource, OutputRecord

from .config import MailSourceConfig
from .flow import MailFlow
from .imap_client import AsyncImapClient
from .message import RawMailMessage
from .strategy import ImapIdleStrategy

logger = structlog.get_logger()

RECEIVER_ERRORS: tuple[type[BaseException], ...] = (
    imaplib.IMAP4.error,
    poplib.error_proto,
    OSError,
)


class MailSource(BaseSource):
    """Mail source: the retrieval strategy is fixed when the source is built.

    Building the source runs the strategy resolution, so an unsupported
    protocol or an IDLE request against a POP3 store fails here, before
    any connection is made.
    """

    def __init__(self, config: MailSourceConfig) -> None:
        super().__init__(config)
        self._mail_config = config
        self._flow = MailFlow(config.mail)
        self._receiver = self._flow.create_receiver(max_messages=config.trigger.max_messages)
        self._last_poll_time: datetime | None = None
        self._messages_emitted: int = 0
        self._messages_dropped: int = 0

    @property
    def flow(self) -> MailFlow:
        return self._flow

    async def ingest(self) -> AsyncIterator[OutputRecord]:
        """Retrieve mail indefinitely, yield an OutputRecord per message."""
        if isinstance(self._flow.strategy, ImapIdleStrategy):
            cycles = self._idle_cycles()
        else:
            cycles = self._poll_cycles()
        try:
            async for record in cycles:
                yield record
        finally:
            await cycles.aclose()

    async def _poll_cycles(self) -> AsyncIterator[OutputRecord]:
        trigger = self._mail_config.trigger
        if trigger.initial_delay_seconds:
            await asyncio.sleep(trigger.initial_delay_seconds)
        await self._receiver.connect()

        try:
            while True:
                fetched = await self._fetch()
                if fetched is not None:
                    for record in self._to_records(fetched):
                        yield record
                await asyncio.sleep(trigger.fixed_delay_seconds)
        finally:
            await self._receiver.disconnect()

    async def _idle_cycles(self) -> AsyncIterator[OutputRecord]:
        receiver = self._receiver
        assert isinstance(receiver, AsyncImapClient), "IDLE requires an IMAP receiver"
        timeout = self._mail_config.mail.idle_timeout_seconds
        retry_delay = self._mail_config.trigger.fixed_delay_seconds
        await receiver.connect()

        try:
            while True:
                # Drain what is already waiting before going idle
                fetched = await self._fetch()
                if fetched is None:
                    await asyncio.sleep(retry_delay)
                    continue
                for record in self._to_records(fetched):
                    yield record
                try:
                    await receiver.wait_for_new_mail(timeout)
                except RECEIVER_ERRORS:
                    logger.warning("imap_idle_interrupted, reconnecting")
                    await receiver.connect()
        finally:
            await receiver.disconnect()

    async def _fetch(self) -> list[RawMailMessage] | None:
        """One retrieval; on a protocol error reconnect once and return None."""
        try:
            fetched = await self._receiver.poll_new_messages()
        except RECEIVER_ERRORS:
            logger.warning("mail_connection_lost, reconnecting")
            await self._receiver.connect()
            return None
        self._last_poll_time = datetime.now(UTC)
        return fetched

    def _to_records(self, fetched: list[RawMailMessage]) -> list[OutputRecord]:
        records: list[OutputRecord] = []
        for raw in fetched:
            record = self._flow.process(raw)
            if record is None:
                self._messages_dropped += 1
                continue
            self._messages_emitted += 1
            records.append(record)
        return records

    async def health_check(self) -> dict[str, object]:
        url = self._flow.url
        return {
            "mail_connected": await self._receiver.is_connected(),
            "strategy": self._flow.strategy.kind.value,
            "protocol": url.protocol.value,
            "mail_host": url.host,
            "mailbox": url.mailbox,
            "last_poll_time": (
                self._last_poll_time.isoformat() if self._last_poll_time else None
            ),
            "messages_emitted": self._messages_emitted,
            "messages_dropped": self._messages_dropped,
        }
