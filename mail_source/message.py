"""Raw message handle produced by the mail receivers."""

from __future__ import annotations

import email
import email.message
import email.policy
from dataclasses import dataclass
from functools import cached_property


@dataclass
class RawMailMessage:
    """Raw RFC 822 bytes fetched from the store, keyed by server UID.

    For IMAP the UID is the message UID, for POP3 it is the UIDL value.
    """

    uid: str
    raw_bytes: bytes

    @cached_property
    def message(self) -> email.message.EmailMessage:
        return email.message_from_bytes(self.raw_bytes, policy=email.policy.default)  # type: ignore[return-value]

    @property
    def raw_body(self) -> bytes:
        """Bytes after the header/body separator, undecoded."""
        raw = self.raw_bytes
        candidates = [i for i in (raw.find(b"\r\n\r\n"), raw.find(b"\n\n")) if i != -1]
        if not candidates:
            return b""
        start = min(candidates)
        sep = 4 if raw.startswith(b"\r\n\r\n", start) else 2
        return raw[start + sep :]
