"""Envelope normalization for retrieved messages.

Recipient headers are expanded into ordered address lists; the keys
``to``, ``cc`` and ``bcc`` are always present so downstream consumers
never have to test for them.

Header text is returned as valid Unicode: raw 8-bit bytes are read as
UTF-8 and anything undecodable becomes U+FFFD.
"""

from __future__ import annotations

from email import errors

from .exceptions import MalformedAddressError
from .message import RawMailMessage

RECIPIENT_HEADERS: dict[str, str] = {
    "To": "to",
    "Cc": "cc",
    "Bcc": "bcc",
}

SUMMARY_HEADERS: dict[str, str] = {
    "Message-ID": "message_id",
    "Subject": "subject",
    "From": "from",
    "Reply-To": "reply_to",
    "Date": "date",
    "Content-Type": "content_type",
}

# Raised by the stdlib header parser on some malformed address lists
HEADER_PARSE_ERRORS: tuple[type[Exception], ...] = (
    errors.HeaderParseError,
    IndexError,
    AttributeError,
    ValueError,
)


def normalize_envelope(raw: RawMailMessage) -> dict[str, list[str]]:
    """Return ``{"to": [...], "cc": [...], "bcc": [...]}`` for *raw*.

    Raises :class:`MalformedAddressError` when a recipient header cannot
    be parsed.
    """
    msg = raw.message
    return {key: _address_list(msg, header) for header, key in RECIPIENT_HEADERS.items()}


def extract_headers(raw: RawMailMessage) -> dict[str, str]:
    """Return the summary headers of *raw*; missing headers map to ``""``.

    A header the parser cannot handle is returned as its raw text.
    """
    msg = raw.message
    headers: dict[str, str] = {}
    for header, key in SUMMARY_HEADERS.items():
        try:
            text = str(msg.get(header, ""))
        except HEADER_PARSE_ERRORS:
            text = _raw_header(msg, header)
        headers[key] = to_valid_text(text)
    return headers


def to_valid_text(text: str) -> str:
    """Replace the surrogate escapes left by undecodable header bytes."""
    try:
        return text.encode("utf-8", "surrogateescape").decode("utf-8", "replace")
    except UnicodeEncodeError:
        return text.encode("utf-8", "replace").decode("utf-8")


def _raw_header(msg, header: str) -> str:
    for name, value in msg.raw_items():
        if name.lower() == header.lower():
            return str(value).strip()
    return ""


def _address_list(msg, header: str) -> list[str]:
    try:
        value = msg.get(header)
        if value is None or not str(value).strip():
            return []
        if any(isinstance(defect, errors.InvalidHeaderDefect) for defect in value.defects):
            raise MalformedAddressError(header, to_valid_text(_raw_header(msg, header)))
        # group members without a domain have no addr_spec
        return [to_valid_text(address.addr_spec) for address in value.addresses]
    except HEADER_PARSE_ERRORS as exc:
        raise MalformedAddressError(header, to_valid_text(_raw_header(msg, header))) from exc
