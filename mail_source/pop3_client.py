"""Async POP3 receiver wrapping stdlib poplib with asyncio.to_thread."""

from __future__ import annotations

import asyncio
import poplib
import ssl

import structlog

from .message import RawMailMessage
from .strategy import Pop3PollStrategy
from .url import MailStoreURL

logger = structlog.get_logger()


class AsyncPop3Client:
    """Async-friendly POP3 receiver.

    POP3 servers lock the maildrop for the length of a session and only
    commit deletions on ``QUIT``, so every poll runs one complete
    session.  UIDL values already retrieved are remembered for the life
    of the client so a message is never emitted twice when ``delete`` is
    off.
    """

    def __init__(
        self,
        url: MailStoreURL,
        strategy: Pop3PollStrategy,
        *,
        max_messages: int = 0,
    ) -> None:
        self._url = url
        self._strategy = strategy
        self._max_messages = max_messages
        self._seen_uids: set[str] = set()
        self._connected = False

    @property
    def seen_count(self) -> int:
        return len(self._seen_uids)

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def connect(self) -> None:
        """Open and close one session to validate host and credentials."""
        count, size = await asyncio.to_thread(self._probe_sync)
        self._connected = True
        logger.info(
            "pop3_connected",
            host=self._url.host,
            store_protocol=self._strategy.transport.store_protocol,
            messages=count,
            size_bytes=size,
        )

    async def disconnect(self) -> None:
        if self._connected:
            self._connected = False
            logger.info("pop3_disconnected")

    async def is_connected(self) -> bool:
        return self._connected

    def _open(self) -> poplib.POP3:
        transport = self._strategy.transport
        kwargs = {}
        if transport.timeout is not None:
            kwargs["timeout"] = transport.timeout

        conn: poplib.POP3
        if transport.uses_tls:
            try:
                conn = poplib.POP3_SSL(self._url.host, self._url.port, **kwargs)
            except ssl.SSLError as exc:
                if not transport.fallback:
                    raise
                logger.warning("pop3_tls_fallback", host=self._url.host, error=str(exc))
                conn = poplib.POP3(self._url.host, self._url.port, **kwargs)
        else:
            conn = poplib.POP3(self._url.host, self._url.port, **kwargs)

        try:
            if transport.debug:
                conn.set_debuglevel(2)
            conn.user(self._url.user or "")
            conn.pass_(self._url.password or "")
        except Exception:
            conn.close()
            raise
        return conn

    def _probe_sync(self) -> tuple[int, int]:
        conn = self._open()
        try:
            return conn.stat()
        finally:
            conn.quit()

    # ------------------------------------------------------------------
    # Message retrieval
    # ------------------------------------------------------------------

    async def poll_new_messages(self) -> list[RawMailMessage]:
        """Run one POP3 session and return messages not retrieved before."""
        try:
            results = await asyncio.to_thread(self._session_sync)
        except (poplib.error_proto, OSError):
            self._connected = False
            raise
        self._seen_uids.update(message.uid for message in results)
        self._connected = True
        return results

    def _session_sync(self) -> list[RawMailMessage]:
        conn = self._open()
        results: list[RawMailMessage] = []
        try:
            _, listing, _ = conn.uidl()
            for entry in listing:
                if self._max_messages > 0 and len(results) >= self._max_messages:
                    break
                number, _, uid = entry.decode("ascii", "replace").partition(" ")
                if uid in self._seen_uids:
                    continue

                _, lines, _ = conn.retr(int(number))
                raw_bytes = b"\r\n".join(lines) + b"\r\n"
                if self._strategy.delete:
                    conn.dele(int(number))
                results.append(RawMailMessage(uid=uid, raw_bytes=raw_bytes))
        finally:
            # QUIT commits DELE; without it deleted messages are restored
            conn.quit()

        logger.debug("pop3_poll_complete", fetched=len(results))
        return results
