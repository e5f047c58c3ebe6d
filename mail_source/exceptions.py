"""Exceptions raised by the mail source.

Startup errors (``UnsupportedProtocolError``, ``InvalidStoreURLError``,
``IncompatibleOptionsError``) abort the process before any mail is read.
Per-message errors (``MalformedAddressError``, ``UnsupportedCharsetError``)
drop a single message and never stop the retrieval loop.
"""

from __future__ import annotations


class MailSourceError(Exception):
    """Base class for all mail source errors."""


class UnsupportedProtocolError(MailSourceError, ValueError):
    """The store URL scheme is not imap, imaps, pop3 or pop3s."""

    def __init__(self, scheme: str) -> None:
        super().__init__(f"Unsupported mail protocol: {scheme!r}")
        self.scheme = scheme


class InvalidStoreURLError(MailSourceError, ValueError):
    """The store URL could not be used to reach a mail store."""


class IncompatibleOptionsError(MailSourceError, ValueError):
    """The configured retrieval options cannot be combined."""


class MalformedAddressError(MailSourceError):
    """A recipient header could not be parsed into addresses."""

    def __init__(self, header: str, value: str) -> None:
        super().__init__(f"Malformed address list in {header} header: {value!r}")
        self.header = header
        self.value = value


class UnsupportedCharsetError(MailSourceError, LookupError):
    """The charset name is not known to the Python codec registry."""

    def __init__(self, charset: str) -> None:
        super().__init__(f"Unsupported charset: {charset!r}")
        self.charset = charset


class ImapIdleNotSupportedError(MailSourceError):
    """The IMAP server does not advertise the IDLE capability."""
