"""Mail source configuration loaded from environment variables."""

from __future__ import annotations

import json
from typing import Annotated, Any

from pydantic import Field, SecretStr, field_validator
from pydantic_settings import BaseSettings, NoDecode

from stream_source import SourceConfig

from .strategy import RetrievalOptions


def parse_protocol_properties(value: Any) -> dict[str, str]:
    """Accept a mapping, a JSON object, or ``key=value`` lines.

    Lines may be separated by newlines or commas; blank entries are
    skipped and later keys win.
    """
    if value is None:
        return {}
    if isinstance(value, dict):
        return {str(k): str(v) for k, v in value.items()}
    if not isinstance(value, str):
        raise ValueError("protocol_properties must be a mapping or a string")

    text = value.strip()
    if not text:
        return {}
    if text.startswith("{"):
        decoded = json.loads(text)
        if not isinstance(decoded, dict):
            raise ValueError("protocol_properties JSON must be an object")
        return {str(k): str(v) for k, v in decoded.items()}

    properties: dict[str, str] = {}
    for entry in text.replace(",", "\n").splitlines():
        entry = entry.strip()
        if not entry:
            continue
        key, sep, val = entry.partition("=")
        if not sep or not key.strip():
            raise ValueError(f"protocol property must be key=value, got {entry!r}")
        properties[key.strip()] = val.strip()
    return properties


class MailConfig(BaseSettings):
    """Mail store location and retrieval behaviour."""

    model_config = {"env_prefix": "MAIL_"}

    url: SecretStr = Field(
        description="Mail store URL, e.g. imaps://user:pw@imap.example.com/INBOX",
    )
    idle_imap: bool = Field(
        default=False,
        description="Use IMAP IDLE push notification instead of polling",
    )
    mark_as_read: bool = Field(
        default=False,
        description="Mark retrieved messages as read (IMAP only)",
    )
    delete: bool = Field(
        default=False,
        description="Delete messages from the store after retrieval",
    )
    user_flag: str | None = Field(
        default=None,
        description="IMAP keyword set on processed messages (IMAP only)",
    )
    selector_expression: str | None = Field(
        default=None,
        description="Extra IMAP SEARCH criteria a message must match (IMAP only)",
    )
    charset: str = Field(
        default="UTF-8",
        description="Charset used to decode message bodies; empty uses the declared charset",
    )
    protocol_properties: Annotated[dict[str, str], NoDecode] = Field(
        default_factory=dict,
        description="Extra transport properties overlaid on the protocol defaults",
    )
    idle_timeout_seconds: float = Field(
        default=600.0,
        gt=0,
        description="Seconds an IMAP IDLE command stays open before it is re-issued",
    )

    @field_validator("protocol_properties", mode="before")
    @classmethod
    def _parse_protocol_properties(cls, value: Any) -> dict[str, str]:
        return parse_protocol_properties(value)

    def retrieval_options(self) -> RetrievalOptions:
        return RetrievalOptions(
            idle_imap=self.idle_imap,
            mark_as_read=self.mark_as_read,
            delete=self.delete,
            user_flag=self.user_flag or None,
            selector_expression=self.selector_expression or None,
            charset=self.charset or None,
            protocol_properties=dict(self.protocol_properties),
        )


class TriggerConfig(BaseSettings):
    """Poll trigger: fixed delay between polls and a per-poll message cap."""

    model_config = {"env_prefix": "TRIGGER_"}

    fixed_delay_seconds: float = Field(
        default=1.0,
        ge=0,
        description="Seconds between the end of one poll and the start of the next",
    )
    initial_delay_seconds: float = Field(
        default=0.0,
        ge=0,
        description="Seconds to wait before the first poll",
    )
    max_messages: int = Field(
        default=1,
        description="Maximum messages retrieved per poll; zero or less means unlimited",
    )


class MailSourceConfig(SourceConfig):
    """Root config for the mail source.

    Extends SourceConfig (inherits kafka, retry, health_port, logging).
    """

    name: str = Field(default="mail", description="Unique source name")
    mail: MailConfig = Field(default_factory=MailConfig)
    trigger: TriggerConfig = Field(default_factory=TriggerConfig)
