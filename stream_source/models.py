"""Data models for the source framework."""

from __future__ import annotations

from datetime import UTC, datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, Field


class SourceStatus(str, Enum):
    """Runtime status of a source instance."""

    STARTING = "starting"
    RUNNING = "running"
    DEGRADED = "degraded"
    STOPPING = "stopping"
    STOPPED = "stopped"


class OutputRecord(BaseModel):
    """One record per retrieved message, handed to the output binder.

    Sources yield OutputRecord instances from their ``ingest`` generator.
    The framework publishes them to Kafka and handles retry / dead-letter
    on failure.
    """

    record_id: str = Field(description="Unique identifier for this record (used as the Kafka key)")
    payload: str = Field(description="Decoded text payload")
    headers: dict[str, Any] = Field(
        default_factory=dict,
        description="Envelope metadata (recipient lists, subject, source ids, ...)",
    )
    received_at: datetime = Field(
        default_factory=lambda: datetime.now(UTC),
        description="Timestamp when the source captured this record (UTC)",
    )


class HealthStatus(BaseModel):
    """Response model for the /health and /ready K8s probe endpoints."""

    source_name: str = Field(description="Name of the source")
    status: SourceStatus = Field(description="Current source status")
    uptime_seconds: float = Field(description="Seconds since the source started")
    details: dict[str, Any] = Field(
        default_factory=dict,
        description="Source-specific health details (e.g. last poll time, strategy)",
    )


class DeadLetterEnvelope(BaseModel):
    """Wrapper for records that failed delivery after retry exhaustion."""

    original_record: OutputRecord = Field(description="The record that could not be delivered")
    source_name: str = Field(description="Source that produced the record")
    error: str = Field(description="Final error message")
    attempts: int = Field(description="Total delivery attempts made")
    failed_at: datetime = Field(
        default_factory=lambda: datetime.now(UTC),
        description="Timestamp when the record was routed to dead-letter (UTC)",
    )
