"""Mail stream source: IMAP / POP3 / IMAP IDLE to one record per message."""

from .config import MailConfig, MailSourceConfig, TriggerConfig
from .envelope import extract_headers, normalize_envelope
from .exceptions import (
    ImapIdleNotSupportedError,
    IncompatibleOptionsError,
    InvalidStoreURLError,
    MailSourceError,
    MalformedAddressError,
    UnsupportedCharsetError,
    UnsupportedProtocolError,
)
from .flow import FlowState, MailFlow
from .imap_client import AsyncImapClient
from .message import RawMailMessage
from .payload import decode_payload
from .pop3_client import AsyncPop3Client
from .source import MailSource
from .strategy import (
    ImapIdleStrategy,
    ImapPollStrategy,
    Pop3PollStrategy,
    RetrievalOptions,
    RetrievalStrategy,
    StrategyKind,
    select_strategy,
)
from .transport import TransportProfile, resolve_transport_profile
from .url import MailStoreURL, Protocol, parse_store_url

__all__ = [
    "AsyncImapClient",
    "AsyncPop3Client",
    "FlowState",
    "ImapIdleNotSupportedError",
    "ImapIdleStrategy",
    "ImapPollStrategy",
    "IncompatibleOptionsError",
    "InvalidStoreURLError",
    "MailConfig",
    "MailFlow",
    "MailSource",
    "MailSourceConfig",
    "MailSourceError",
    "MailStoreURL",
    "MalformedAddressError",
    "Pop3PollStrategy",
    "Protocol",
    "RawMailMessage",
    "RetrievalOptions",
    "RetrievalStrategy",
    "StrategyKind",
    "TransportProfile",
    "TriggerConfig",
    "UnsupportedCharsetError",
    "UnsupportedProtocolError",
    "decode_payload",
    "extract_headers",
    "normalize_envelope",
    "parse_store_url",
    "resolve_transport_profile",
    "select_strategy",
]
