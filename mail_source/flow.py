"""MailFlow: resolves the retrieval strategy once and turns retrieved
messages into output records.
"""

from __future__ import annotations

from enum import Enum

import structlog

from stream_source import OutputRecord

from .config import MailConfig
from .envelope import extract_headers, normalize_envelope
from .exceptions import MalformedAddressError, UnsupportedCharsetError
from .imap_client import AsyncImapClient
from .message import RawMailMessage
from .payload import decode_payload
from .pop3_client import AsyncPop3Client
from .strategy import (
    ImapIdleStrategy,
    ImapPollStrategy,
    Pop3PollStrategy,
    RetrievalOptions,
    RetrievalStrategy,
    select_strategy,
)
from .url import MailStoreURL, parse_store_url

logger = structlog.get_logger()


class FlowState(str, Enum):
    CONFIGURING = "configuring"
    RUNNING = "running"


class MailFlow:
    """Store URL + options → strategy, then raw message → OutputRecord.

    Construction runs URL parsing, transport resolution and strategy
    selection; any failure there propagates and aborts startup.  Once
    built the flow is ``RUNNING`` and :meth:`process` never raises for a
    bad message: it logs and returns ``None`` instead.

    :meth:`process` keeps no state between calls and is safe to call
    concurrently.
    """

    def __init__(self, config: MailConfig) -> None:
        self.state = FlowState.CONFIGURING
        self.options: RetrievalOptions = config.retrieval_options()
        self.url: MailStoreURL = parse_store_url(config.url.get_secret_value())
        self.strategy: RetrievalStrategy = select_strategy(self.url, self.options)
        self.state = FlowState.RUNNING
        logger.info(
            "mail_flow_configured",
            url=self.url.redacted,
            strategy=self.strategy.kind.value,
            store_protocol=self.strategy.transport.store_protocol,
            delete=self.strategy.delete,
        )

    def create_receiver(self, *, max_messages: int = 0) -> AsyncImapClient | AsyncPop3Client:
        """Build the receiver adapter that drives the selected strategy.

        IDLE receivers fetch everything pending after each notification,
        so *max_messages* only applies to the polling strategies.
        """
        strategy = self.strategy
        if isinstance(strategy, ImapIdleStrategy):
            return AsyncImapClient(self.url, strategy)
        if isinstance(strategy, ImapPollStrategy):
            return AsyncImapClient(self.url, strategy, max_messages=max_messages)
        if isinstance(strategy, Pop3PollStrategy):
            return AsyncPop3Client(self.url, strategy, max_messages=max_messages)
        raise AssertionError(f"Unknown retrieval strategy {strategy!r}")

    def process(self, raw: RawMailMessage) -> OutputRecord | None:
        """Decode and normalize one retrieved message.

        Returns ``None`` (message dropped) when the payload cannot be
        decoded or the recipients cannot be parsed.
        """
        try:
            payload = decode_payload(raw, self.options.charset)
            recipients = normalize_envelope(raw)
        except (UnsupportedCharsetError, MalformedAddressError) as exc:
            logger.warning(
                "mail_message_dropped",
                uid=raw.uid,
                reason=type(exc).__name__,
                error=str(exc),
            )
            return None

        headers: dict[str, object] = {
            **extract_headers(raw),
            **recipients,
            "mail_uid": raw.uid,
            "mailbox": self.url.mailbox,
        }
        record_id = headers["message_id"] or f"{self.url.protocol.value}-uid-{raw.uid}"
        return OutputRecord(record_id=str(record_id), payload=payload, headers=headers)
