"""Text payload decoding for retrieved messages."""

from __future__ import annotations

import codecs

import structlog

from .exceptions import UnsupportedCharsetError
from .message import RawMailMessage

logger = structlog.get_logger()

DEFAULT_CHARSET = "utf-8"


def decode_payload(raw: RawMailMessage, charset: str | None = None) -> str:
    """Decode the body of *raw* to text.

    *charset* wins when given; otherwise the charset the message declares
    is used, falling back to UTF-8.  Single-part bodies are transfer
    decoded (base64, quoted-printable) first; multipart bodies are
    rendered as their raw text.  Bytes that are invalid in the charset
    are replaced rather than failing the message.

    Raises :class:`UnsupportedCharsetError` when *charset* is not a known
    codec.
    """
    codec = _resolve_charset(raw, charset)
    msg = raw.message

    if msg.is_multipart():
        body = raw.raw_body
    else:
        body = msg.get_payload(decode=True) or b""

    return body.decode(codec, errors="replace")


def _resolve_charset(raw: RawMailMessage, charset: str | None) -> str:
    if charset and charset.strip():
        try:
            return codecs.lookup(charset.strip()).name
        except LookupError:
            raise UnsupportedCharsetError(charset) from None

    declared = raw.message.get_content_charset()
    if declared:
        try:
            return codecs.lookup(declared).name
        except LookupError:
            logger.debug(
                "declared_charset_unknown",
                uid=raw.uid,
                charset=declared,
                fallback=DEFAULT_CHARSET,
            )
    return DEFAULT_CHARSET
