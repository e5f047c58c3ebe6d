"""Retrieval strategy selection.

Exactly one strategy is chosen at startup from the store URL and the
retrieval options:

============  ==========  ==================  ===========================
idle_imap     protocol    strategy            carries
============  ==========  ==================  ===========================
true          imap/imaps  ImapIdleStrategy    delete, mark-as-read, flag,
                                              selector, transport
true          pop3/pop3s  (error)             IncompatibleOptionsError
false         imap/imaps  ImapPollStrategy    delete, mark-as-read, flag,
                                              selector, transport
false         pop3/pop3s  Pop3PollStrategy    delete, transport
============  ==========  ==================  ===========================

POP3 has no read flags, keywords or server side search, so those options
are accepted and ignored for it.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import Enum
from typing import ClassVar

import structlog

from .exceptions import IncompatibleOptionsError
from .transport import TransportProfile, resolve_transport_profile
from .url import MailStoreURL

logger = structlog.get_logger()


class StrategyKind(str, Enum):
    IMAP_POLL = "imap_poll"
    POP3_POLL = "pop3_poll"
    IMAP_IDLE = "imap_idle"


@dataclass(frozen=True)
class RetrievalOptions:
    """Behavioural options for retrieving mail."""

    idle_imap: bool = False
    mark_as_read: bool = False
    delete: bool = False
    user_flag: str | None = None
    selector_expression: str | None = None
    charset: str | None = None
    protocol_properties: Mapping[str, str] = field(default_factory=dict)


@dataclass(frozen=True)
class ImapPollStrategy:
    kind: ClassVar[StrategyKind] = StrategyKind.IMAP_POLL

    transport: TransportProfile
    mark_as_read: bool
    delete: bool
    user_flag: str | None
    selector_expression: str | None


@dataclass(frozen=True)
class ImapIdleStrategy:
    kind: ClassVar[StrategyKind] = StrategyKind.IMAP_IDLE

    transport: TransportProfile
    mark_as_read: bool
    delete: bool
    user_flag: str | None
    selector_expression: str | None


@dataclass(frozen=True)
class Pop3PollStrategy:
    kind: ClassVar[StrategyKind] = StrategyKind.POP3_POLL

    transport: TransportProfile
    delete: bool


RetrievalStrategy = ImapPollStrategy | ImapIdleStrategy | Pop3PollStrategy
ImapStrategy = ImapPollStrategy | ImapIdleStrategy


def select_strategy(url: MailStoreURL, options: RetrievalOptions) -> RetrievalStrategy:
    """Choose and configure the retrieval strategy for *url*.

    Pure configuration derivation, no I/O.  Raises
    :class:`IncompatibleOptionsError` when IDLE is requested for a
    non-IMAP store.
    """
    protocol = url.protocol
    transport = resolve_transport_profile(protocol, options.protocol_properties)

    if options.idle_imap:
        if not protocol.is_imap:
            raise IncompatibleOptionsError(
                f"IMAP IDLE requires an imap or imaps store URL, got {protocol.value!r}"
            )
        return ImapIdleStrategy(
            transport=transport,
            mark_as_read=options.mark_as_read,
            delete=options.delete,
            user_flag=options.user_flag,
            selector_expression=options.selector_expression,
        )

    if protocol.is_imap:
        return ImapPollStrategy(
            transport=transport,
            mark_as_read=options.mark_as_read,
            delete=options.delete,
            user_flag=options.user_flag,
            selector_expression=options.selector_expression,
        )

    if protocol.is_pop3:
        ignored = [
            name
            for name, value in (
                ("mark_as_read", options.mark_as_read),
                ("user_flag", options.user_flag),
                ("selector_expression", options.selector_expression),
            )
            if value
        ]
        if ignored:
            logger.debug("pop3_options_ignored", options=ignored)
        return Pop3PollStrategy(transport=transport, delete=options.delete)

    raise AssertionError(f"No retrieval strategy for protocol {protocol!r}")
