"""Shared test fixtures for the stream_source test suite."""

from __future__ import annotations

from unittest.mock import AsyncMock

import pytest

from stream_source.config import KafkaConfig, RetryConfig, SourceConfig
from stream_source.models import OutputRecord


@pytest.fixture
def kafka_config() -> KafkaConfig:
    return KafkaConfig(
        bootstrap_servers="localhost:9092",
        output_topic="mail-messages",
        dead_letter_topic="mail-dead-letter",
    )


@pytest.fixture
def retry_config() -> RetryConfig:
    return RetryConfig(
        max_attempts=3,
        initial_wait_seconds=0.01,
        max_wait_seconds=0.1,
        multiplier=2.0,
    )


@pytest.fixture
def source_config(kafka_config: KafkaConfig, retry_config: RetryConfig) -> SourceConfig:
    return SourceConfig(
        name="test-source",
        health_port=18080,
        kafka=kafka_config,
        retry=retry_config,
    )


@pytest.fixture
def output_record() -> OutputRecord:
    return OutputRecord(
        record_id="<msg-001@example.com>",
        payload="hello world",
        headers={
            "to": ["alice@example.com"],
            "cc": [],
            "bcc": ["audit@example.com"],
            "subject": "Greetings",
        },
    )


@pytest.fixture
def mock_kafka_producer() -> AsyncMock:
    """A mock AIOKafkaProducer with async start/stop/send_and_wait."""
    producer = AsyncMock()
    producer.start = AsyncMock()
    producer.stop = AsyncMock()
    producer.send_and_wait = AsyncMock()
    return producer
