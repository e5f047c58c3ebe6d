"""Source configuration loaded from environment variables.

Uses pydantic-settings so every field can be overridden via env vars,
which is the natural config mechanism in Kubernetes.
"""

from __future__ import annotations

from pydantic import Field
from pydantic_settings import BaseSettings


class KafkaConfig(BaseSettings):
    """Kafka connection and topic settings for the output binder."""

    model_config = {"env_prefix": "KAFKA_"}

    bootstrap_servers: str = Field(
        default="localhost:9092",
        description="Comma-separated Kafka bootstrap servers",
    )
    output_topic: str = Field(
        default="mail-messages",
        description="Topic that output records are published to",
    )
    dead_letter_topic: str = Field(
        default="mail-dead-letter",
        description="Topic for records that failed delivery after retries",
    )
    producer_acks: str = Field(
        default="all",
        description="Producer acknowledgement level",
    )
    producer_compression: str = Field(
        default="gzip",
        description="Compression codec for produced records",
    )


class RetryConfig(BaseSettings):
    """Retry / backoff settings for record delivery, driven by Tenacity."""

    model_config = {"env_prefix": "RETRY_"}

    max_attempts: int = Field(default=5, description="Maximum delivery attempts per record")
    initial_wait_seconds: float = Field(
        default=1.0,
        description="Initial backoff wait in seconds",
    )
    max_wait_seconds: float = Field(
        default=60.0,
        description="Maximum backoff wait in seconds",
    )
    multiplier: float = Field(default=2.0, description="Exponential backoff multiplier")


class SourceConfig(BaseSettings):
    """Root configuration for a source instance.

    Nested configs are populated from their own env-var prefixes.
    """

    model_config = {"env_prefix": "SOURCE_"}

    name: str = Field(description="Unique source name (e.g. mail)")
    health_port: int = Field(default=8080, description="Port for K8s health probe endpoints")
    log_level: str = Field(default="INFO", description="Root log level")
    log_json: bool = Field(
        default=True,
        description="Render logs as JSON lines (false selects the console renderer)",
    )

    kafka: KafkaConfig = Field(default_factory=KafkaConfig)
    retry: RetryConfig = Field(default_factory=RetryConfig)
