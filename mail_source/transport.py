"""Transport profile resolution.

Every protocol gets a canonical set of connection properties (socket
factory, fallback policy, store protocol name).  Operator supplied
protocol properties are overlaid on top, so any default can be replaced
and extra keys (``mail.debug``, ``mail.imap.timeout``, ...) added without
this module knowing about them.
"""

from __future__ import annotations

from collections.abc import Iterator, Mapping
from dataclasses import dataclass
from types import MappingProxyType

from .url import Protocol

PLAIN_SOCKET_FACTORY = "plain"
SSL_SOCKET_FACTORY = "ssl"

STORE_PROTOCOL_KEY = "mail.store.protocol"
DEBUG_KEY = "mail.debug"

_TRUE_VALUES = frozenset({"1", "true", "yes", "on"})


def socket_factory_key(protocol: Protocol) -> str:
    return f"mail.{protocol.family}.socket_factory"


def fallback_key(protocol: Protocol) -> str:
    return f"mail.{protocol.family}.socket_factory.fallback"


def timeout_key(protocol: Protocol) -> str:
    return f"mail.{protocol.family}.timeout"


def _as_bool(value: str | None) -> bool:
    return value is not None and value.strip().lower() in _TRUE_VALUES


@dataclass(frozen=True)
class TransportProfile(Mapping[str, str]):
    """Immutable, ordered connection properties for one protocol."""

    protocol: Protocol
    properties: Mapping[str, str]

    def __getitem__(self, key: str) -> str:
        return self.properties[key]

    def __iter__(self) -> Iterator[str]:
        return iter(self.properties)

    def __len__(self) -> int:
        return len(self.properties)

    @property
    def socket_factory(self) -> str:
        return self.properties.get(socket_factory_key(self.protocol), PLAIN_SOCKET_FACTORY)

    @property
    def uses_tls(self) -> bool:
        return self.socket_factory.strip().lower() == SSL_SOCKET_FACTORY

    @property
    def fallback(self) -> bool:
        return _as_bool(self.properties.get(fallback_key(self.protocol)))

    @property
    def store_protocol(self) -> str:
        return self.properties.get(STORE_PROTOCOL_KEY, self.protocol.value)

    @property
    def debug(self) -> bool:
        return _as_bool(self.properties.get(DEBUG_KEY))

    @property
    def timeout(self) -> float | None:
        """Socket timeout in seconds, or ``None`` for the library default."""
        raw = self.properties.get(timeout_key(self.protocol))
        if raw is None or not raw.strip():
            return None
        return float(raw)


def _defaults(protocol: Protocol) -> dict[str, str]:
    return {
        socket_factory_key(protocol): (
            SSL_SOCKET_FACTORY if protocol.secure else PLAIN_SOCKET_FACTORY
        ),
        fallback_key(protocol): "false",
        STORE_PROTOCOL_KEY: protocol.value,
    }


def resolve_transport_profile(
    protocol: Protocol,
    overrides: Mapping[str, str] | None = None,
) -> TransportProfile:
    """Return the canonical profile for *protocol* with *overrides* applied.

    Override keys always win over the defaults; keys the defaults do not
    define are appended in the order given.
    """
    properties = _defaults(protocol)
    for key, value in (overrides or {}).items():
        properties[key] = str(value)
    return TransportProfile(protocol=protocol, properties=MappingProxyType(properties))
