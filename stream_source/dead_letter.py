"""Dead-letter handler: routes undeliverable records to the dead-letter topic."""

from __future__ import annotations

import structlog

from .kafka_producer import KafkaProducerWrapper
from .models import DeadLetterEnvelope, OutputRecord

logger = structlog.get_logger()


class DeadLetterHandler:
    """Wraps a failed :class:`OutputRecord` in a :class:`DeadLetterEnvelope`
    and publishes it to the dead-letter Kafka topic.
    """

    def __init__(self, producer: KafkaProducerWrapper, source_name: str) -> None:
        self._producer = producer
        self._source_name = source_name

    async def send(
        self,
        record: OutputRecord,
        *,
        error: str,
        attempts: int,
    ) -> None:
        """Build a dead-letter envelope and publish it."""
        envelope = DeadLetterEnvelope(
            original_record=record,
            source_name=self._source_name,
            error=error,
            attempts=attempts,
        )
        await self._producer.send_dead_letter(envelope)
        logger.error(
            "record_dead_lettered",
            record_id=record.record_id,
            source=self._source_name,
            error=error,
            attempts=attempts,
        )
