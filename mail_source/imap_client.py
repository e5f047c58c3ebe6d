"""Async IMAP receiver wrapping stdlib imaplib with asyncio.to_thread.

Serves both the polling and the IDLE strategy; the strategy decides the
search criteria and which flags are stored after a message is fetched.
"""

from __future__ import annotations

import asyncio
import imaplib
import select
import ssl
import time

import structlog

from .exceptions import ImapIdleNotSupportedError
from .message import RawMailMessage
from .strategy import ImapStrategy
from .url import MailStoreURL

logger = structlog.get_logger()

DEFAULT_USER_FLAG = "mail-source-adapter"


class AsyncImapClient:
    """Async-friendly IMAP receiver.

    All blocking ``imaplib`` operations are wrapped with
    ``asyncio.to_thread()`` to avoid blocking the event loop.
    """

    def __init__(
        self,
        url: MailStoreURL,
        strategy: ImapStrategy,
        *,
        max_messages: int = 0,
    ) -> None:
        self._url = url
        self._strategy = strategy
        self._max_messages = max_messages
        self._conn: imaplib.IMAP4 | None = None
        self._last_uid: str = "0"
        self._user_flags_supported = False

    @property
    def last_uid(self) -> str:
        return self._last_uid

    @property
    def user_flag(self) -> str:
        return self._strategy.user_flag or DEFAULT_USER_FLAG

    @property
    def user_flags_supported(self) -> bool:
        return self._user_flags_supported

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def connect(self) -> None:
        """Connect, login, and select the configured mailbox."""
        await asyncio.to_thread(self._connect_sync)
        logger.info(
            "imap_connected",
            host=self._url.host,
            mailbox=self._url.mailbox,
            store_protocol=self._strategy.transport.store_protocol,
            user_flags_supported=self._user_flags_supported,
        )

    def _open(self) -> imaplib.IMAP4:
        transport = self._strategy.transport
        kwargs = {}
        if transport.timeout is not None:
            kwargs["timeout"] = transport.timeout

        if transport.uses_tls:
            try:
                return imaplib.IMAP4_SSL(self._url.host, self._url.port, **kwargs)
            except ssl.SSLError as exc:
                if not transport.fallback:
                    raise
                logger.warning("imap_tls_fallback", host=self._url.host, error=str(exc))
        return imaplib.IMAP4(self._url.host, self._url.port, **kwargs)

    def _connect_sync(self) -> None:
        if self._conn is not None:
            previous, self._conn = self._conn, None
            _close_quietly(previous)

        conn = self._open()
        try:
            if self._strategy.transport.debug:
                conn.debug = 4
            conn.login(self._url.user or "", self._url.password or "")
            status, data = conn.select(self._quoted_mailbox())
            if status != "OK":
                raise imaplib.IMAP4.error(f"SELECT {self._url.mailbox} failed: {data!r}")
            _, flags = conn.response("PERMANENTFLAGS")
        except Exception:
            conn.shutdown()
            raise
        self._user_flags_supported = any(
            flag is not None and b"\\*" in flag for flag in flags or []
        )
        self._conn = conn

    def _quoted_mailbox(self) -> str:
        mailbox = self._url.mailbox
        if any(ch in mailbox for ch in ' "()'):
            return '"' + mailbox.replace("\\", "\\\\").replace('"', '\\"') + '"'
        return mailbox

    async def disconnect(self) -> None:
        """Close mailbox and logout."""
        if self._conn is not None:
            conn, self._conn = self._conn, None
            await asyncio.to_thread(_close_quietly, conn)
            logger.info("imap_disconnected")

    async def is_connected(self) -> bool:
        """Check connection liveness with a NOOP command."""
        if self._conn is None:
            return False
        try:
            status, _ = await asyncio.to_thread(self._conn.noop)
            return status == "OK"
        except (imaplib.IMAP4.error, OSError):
            return False

    # ------------------------------------------------------------------
    # Message retrieval
    # ------------------------------------------------------------------

    def search_criteria(self) -> str:
        """IMAP SEARCH criteria for messages not yet retrieved."""
        next_uid = int(self._last_uid) + 1
        criteria = [f"UID {next_uid}:*", "UNSEEN", "UNDELETED"]
        if self._user_flags_supported:
            criteria.append(f"UNKEYWORD {self.user_flag}")
        if self._strategy.selector_expression:
            criteria.append(f"({self._strategy.selector_expression})")
        return " ".join(criteria)

    def flags_to_store(self) -> list[str]:
        flags = []
        if self._user_flags_supported:
            flags.append(self.user_flag)
        if self._strategy.mark_as_read:
            flags.append("\\Seen")
        if self._strategy.delete:
            flags.append("\\Deleted")
        return flags

    async def poll_new_messages(self) -> list[RawMailMessage]:
        """Fetch messages matching :meth:`search_criteria`.

        At most ``max_messages`` are fetched when it is positive.  Updates
        ``last_uid`` after each fetched message.  When the connection fails
        partway through a batch the messages fetched so far are returned.
        """
        assert self._conn is not None, "Not connected"
        return await asyncio.to_thread(self._search_and_fetch, self.search_criteria())

    def _search_and_fetch(self, criteria: str) -> list[RawMailMessage]:
        assert self._conn is not None
        status, data = self._conn.uid("SEARCH", None, criteria)
        if status != "OK" or not data or not data[0]:
            return []

        uid_list = data[0].split()
        results: list[RawMailMessage] = []
        flags = self.flags_to_store()

        try:
            for uid_bytes in uid_list:
                if self._max_messages > 0 and len(results) >= self._max_messages:
                    break
                uid = uid_bytes.decode()
                # "UID n:*" always matches the highest UID, even when it is below n
                if int(uid) <= int(self._last_uid):
                    continue

                status, msg_data = self._conn.uid("FETCH", uid, "(BODY.PEEK[])")
                if status != "OK" or not msg_data or not isinstance(msg_data[0], tuple):
                    continue

                raw_bytes: bytes = msg_data[0][1]
                if flags:
                    self._conn.uid("STORE", uid, "+FLAGS", f"({' '.join(flags)})")
                results.append(RawMailMessage(uid=uid, raw_bytes=raw_bytes))
                self._last_uid = uid
        except (imaplib.IMAP4.error, OSError) as exc:
            if not results:
                raise
            # already flagged and past last_uid: hand them back, the next
            # poll hits the broken connection and reconnects
            logger.warning(
                "imap_poll_interrupted",
                fetched=len(results),
                last_uid=self._last_uid,
                error=str(exc),
            )
            return results

        if self._strategy.delete and results:
            self._conn.expunge()

        logger.debug("imap_poll_complete", fetched=len(results), last_uid=self._last_uid)
        return results

    # ------------------------------------------------------------------
    # IDLE
    # ------------------------------------------------------------------

    async def wait_for_new_mail(self, timeout: float) -> bool:
        """Block in IMAP IDLE until the server reports new mail or *timeout*.

        Returns ``True`` when an ``EXISTS`` or ``RECENT`` notification was
        received.
        """
        assert self._conn is not None, "Not connected"
        return await asyncio.to_thread(self._idle_sync, timeout)

    def _idle_sync(self, timeout: float) -> bool:
        conn = self._conn
        assert conn is not None
        if "IDLE" not in conn.capabilities:
            raise ImapIdleNotSupportedError(
                f"IMAP server {self._url.host} does not support IDLE"
            )

        tag = conn._new_tag()
        conn.send(tag + b" IDLE\r\n")
        continuation = conn.readline()
        if not continuation.startswith(b"+"):
            raise imaplib.IMAP4.error(
                f"IDLE rejected: {continuation.decode('utf-8', 'replace').strip()}"
            )

        notified = False
        deadline = time.monotonic() + timeout
        while True:
            remaining = deadline - time.monotonic()
            if remaining <= 0:
                break
            if not _response_pending(conn):
                readable, _, _ = select.select([conn.sock], [], [], remaining)
                if not readable:
                    break
            line = conn.readline()
            if not line:
                raise imaplib.IMAP4.abort("connection closed during IDLE")
            upper = line.upper()
            if b"EXISTS" in upper or b"RECENT" in upper:
                notified = True
                break

        conn.send(b"DONE\r\n")
        while True:
            line = conn.readline()
            if not line:
                raise imaplib.IMAP4.abort("connection closed while ending IDLE")
            if line.startswith(tag):
                break

        logger.debug("imap_idle_returned", notified=notified)
        return notified


def _response_pending(conn: imaplib.IMAP4) -> bool:
    """True when response bytes can be read from *conn* without blocking.

    ``select`` only sees the socket; lines the server sent together with
    the IDLE continuation already sit in ``conn.file``'s buffer, and TLS
    records may be decrypted but unread.
    """
    sock = conn.sock
    if isinstance(sock, ssl.SSLSocket) and sock.pending():
        return True
    previous = sock.gettimeout()
    sock.setblocking(False)
    try:
        return bool(conn.file.peek(1))
    except (BlockingIOError, ssl.SSLWantReadError):
        return False
    finally:
        sock.settimeout(previous)


def _close_quietly(conn: imaplib.IMAP4) -> None:
    try:
        conn.close()
    except (imaplib.IMAP4.error, OSError):
        pass
    try:
        conn.logout()
    except (imaplib.IMAP4.error, OSError):
        try:
            conn.shutdown()
        except OSError:
            pass
