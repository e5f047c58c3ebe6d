"""Output binder: publishes records and dead letters to Kafka."""

from __future__ import annotations

from aiokafka import AIOKafkaProducer
from pydantic import BaseModel
import structlog

from .config import KafkaConfig
from .models import DeadLetterEnvelope, OutputRecord

logger = structlog.get_logger()

CONTENT_TYPE = b"application/json"


def message_headers(record: OutputRecord) -> list[tuple[str, bytes]]:
    """Kafka message headers for *record*.

    Scalar string headers (``message_id``, ``mail_uid``, ``mailbox``, ...)
    are copied so consumers can route without parsing the value; list
    headers such as recipient lists only travel in the JSON body.
    """
    headers = [("content-type", CONTENT_TYPE)]
    for name, value in record.headers.items():
        if isinstance(value, str) and value:
            headers.append((name, value.encode("utf-8")))
    return headers


class KafkaProducerWrapper:
    """Async binder around :class:`AIOKafkaProducer`.

    Output records go to ``output_topic`` keyed by ``record_id``; records
    that exhausted their retries go to ``dead_letter_topic`` under the
    same key so both topics partition a message identically.
    """

    def __init__(self, config: KafkaConfig) -> None:
        self._config = config
        self._producer: AIOKafkaProducer | None = None

    async def start(self) -> None:
        self._producer = AIOKafkaProducer(
            bootstrap_servers=self._config.bootstrap_servers,
            acks=self._config.producer_acks,
            compression_type=self._config.producer_compression,
        )
        await self._producer.start()
        logger.info(
            "output_binder_started",
            servers=self._config.bootstrap_servers,
            output_topic=self._config.output_topic,
        )

    async def stop(self) -> None:
        if self._producer is not None:
            await self._producer.stop()
            self._producer = None
            logger.info("output_binder_stopped")

    async def _publish(
        self,
        topic: str,
        record: OutputRecord,
        body: BaseModel,
    ) -> None:
        assert self._producer is not None, "Producer not started"
        await self._producer.send_and_wait(
            topic,
            value=body.model_dump_json().encode("utf-8"),
            key=record.record_id.encode("utf-8"),
            headers=message_headers(record),
        )

    async def send_record(self, record: OutputRecord) -> None:
        """Publish one output record."""
        await self._publish(self._config.output_topic, record, record)
        logger.debug(
            "record_sent",
            topic=self._config.output_topic,
            record_id=record.record_id,
            mail_uid=record.headers.get("mail_uid"),
        )

    async def send_dead_letter(self, envelope: DeadLetterEnvelope) -> None:
        """Publish a record that could not be delivered."""
        record = envelope.original_record
        await self._publish(self._config.dead_letter_topic, record, envelope)
        logger.warning(
            "dead_letter_sent",
            topic=self._config.dead_letter_topic,
            record_id=record.record_id,
            error=envelope.error,
        )
