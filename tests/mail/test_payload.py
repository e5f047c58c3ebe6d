"""Tests for mail_source.payload and RawMailMessage."""

from __future__ import annotations

import pytest

from mail_source.exceptions import UnsupportedCharsetError
from mail_source.message import RawMailMessage
from mail_source.payload import decode_payload

from tests.mail.conftest import _build_8bit_email, _build_multipart_email, _build_plain_email

CYRILLIC = "Привет, мир"


def _raw(eml: bytes) -> RawMailMessage:
    return RawMailMessage(uid="7", raw_bytes=eml)


class TestDecodePayload:
    def test_configured_charset_decodes_8bit_body(self):
        raw = _raw(_build_8bit_email(CYRILLIC.encode("cp1251")))
        assert decode_payload(raw, "cp1251") == CYRILLIC

    def test_declared_charset_used_when_not_configured(self):
        raw = _raw(_build_8bit_email(CYRILLIC.encode("cp1251"), declared_charset="windows-1251"))
        assert decode_payload(raw) == CYRILLIC

    def test_configured_charset_wins_over_declared(self):
        raw = _raw(_build_8bit_email(CYRILLIC.encode("cp1251"), declared_charset="iso-8859-1"))
        assert decode_payload(raw, "CP1251") == CYRILLIC

    def test_unknown_declared_charset_falls_back_to_utf8(self):
        raw = _raw(_build_8bit_email("héllo".encode("utf-8"), declared_charset="x-no-such-charset"))
        assert decode_payload(raw) == "héllo"

    def test_unknown_configured_charset_raises(self):
        raw = _raw(_build_plain_email())
        with pytest.raises(UnsupportedCharsetError) as exc_info:
            decode_payload(raw, "no-such-charset")
        assert exc_info.value.charset == "no-such-charset"
        assert isinstance(exc_info.value, LookupError)

    def test_base64_body_is_transfer_decoded(self):
        raw = _raw(_build_plain_email(body=CYRILLIC, charset="cp1251"))
        assert b"Content-Transfer-Encoding: base64" in raw.raw_bytes
        assert decode_payload(raw) == CYRILLIC

    def test_body_is_kept_verbatim(self):
        raw = _raw(b"To: a@example.com\r\nSubject: test\r\n\r\nfoo\r\n\r\n")
        assert decode_payload(raw, "cp1251") == "foo\r\n\r\n"

    def test_invalid_bytes_are_replaced(self):
        raw = _raw(_build_8bit_email(b"ok \xff"))
        assert decode_payload(raw, "utf-8") == "ok \ufffd"

    def test_multipart_is_rendered_as_raw_text(self):
        raw = _raw(_build_multipart_email(body_text="Plain part", body_html="<p>Rich part</p>"))
        text = decode_payload(raw)
        assert "Plain part" in text
        assert "<p>Rich part</p>" in text
        assert "Content-Type: text/html" in text


class TestRawMailMessage:
    def test_raw_body_crlf(self):
        raw = _raw(b"Subject: x\r\n\r\nline1\r\nline2\r\n")
        assert raw.raw_body == b"line1\r\nline2\r\n"

    def test_raw_body_lf(self):
        raw = _raw(b"Subject: x\n\nline1\n")
        assert raw.raw_body == b"line1\n"

    def test_raw_body_without_separator(self):
        assert _raw(b"Subject: only headers").raw_body == b""

    def test_message_is_parsed_once(self):
        raw = _raw(_build_plain_email(subject="Cached"))
        assert raw.message is raw.message
        assert raw.message["Subject"] == "Cached"
