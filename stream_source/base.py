"""BaseSource: wires up infrastructure and runs the delivery loop."""

from __future__ import annotations

import asyncio
import time
from collections.abc import AsyncIterator

import structlog
import uvicorn

from .config import SourceConfig
from .dead_letter import DeadLetterHandler
from .health import create_health_app
from .interface import SourceInterface
from .kafka_producer import KafkaProducerWrapper
from .logging import setup_logging
from .models import OutputRecord, SourceStatus
from .retry import with_retry
from .shutdown import install_signal_handlers

logger = structlog.get_logger()


class BaseSource(SourceInterface):
    """Base class for stream sources.

    Subclasses must implement :meth:`ingest` (and optionally
    :meth:`health_check`).  Call ``asyncio.run(source.run())`` to start
    the source.

    ``run()`` starts the following concurrently via
    :class:`asyncio.TaskGroup`:

    * The delivery loop (ingest → Kafka)
    * FastAPI health server (for K8s probes)
    """

    def __init__(self, config: SourceConfig) -> None:
        self.config = config
        self.status: SourceStatus = SourceStatus.STARTING
        self.start_time: float = time.monotonic()

        self._producer = KafkaProducerWrapper(config.kafka)
        self._dead_letter = DeadLetterHandler(self._producer, config.name)
        self._shutdown_event = asyncio.Event()

    # ------------------------------------------------------------------
    # Record delivery with retry + dead-letter
    # ------------------------------------------------------------------

    async def _deliver(self, record: OutputRecord) -> None:
        """Publish a single record to Kafka.

        Delivery is retried on failure; if all retries are exhausted, the
        record is sent to the dead-letter topic.
        """
        retry_decorator = with_retry(self.config.retry)

        @retry_decorator
        async def _send_kafka() -> None:
            await self._producer.send_record(record)

        try:
            await _send_kafka()
        except Exception as exc:
            logger.error(
                "kafka_delivery_failed_permanently",
                record_id=record.record_id,
                error=str(exc),
            )
            await self._dead_letter.send(
                record,
                error=str(exc),
                attempts=self.config.retry.max_attempts,
            )

    # ------------------------------------------------------------------
    # Ingest loop
    # ------------------------------------------------------------------

    async def _run_ingest_loop(self) -> None:
        """Consume records from ``self.ingest()`` and deliver each one."""
        logger.info("ingest_loop_started", source=self.config.name)
        self.status = SourceStatus.RUNNING

        iterator: AsyncIterator[OutputRecord] = self.ingest()
        try:
            async for record in iterator:
                if self._shutdown_event.is_set():
                    break
                await self._deliver(record)
        except Exception:
            self.status = SourceStatus.DEGRADED
            logger.exception("ingest_loop_error", source=self.config.name)
            raise
        finally:
            logger.info("ingest_loop_stopped", source=self.config.name)

    # ------------------------------------------------------------------
    # Health server
    # ------------------------------------------------------------------

    async def _run_health_server(self) -> None:
        """Start the FastAPI health server and shut it down on signal."""
        app = create_health_app(self)
        config = uvicorn.Config(
            app,
            host="0.0.0.0",
            port=self.config.health_port,
            log_level="warning",
        )
        server = uvicorn.Server(config)

        serve_task = asyncio.create_task(server.serve())
        await self._shutdown_event.wait()
        server.should_exit = True
        await serve_task

    # ------------------------------------------------------------------
    # Entry point
    # ------------------------------------------------------------------

    async def run(self) -> None:
        """Start all source subsystems and run until shutdown.

        This is the single entry point::

            asyncio.run(source.run())
        """
        setup_logging(
            json=self.config.log_json,
            level=self.config.log_level,
            source_name=self.config.name,
        )
        install_signal_handlers(self._shutdown_event)
        self.start_time = time.monotonic()

        logger.info("source_starting", source=self.config.name)

        await self._producer.start()

        try:
            async with asyncio.TaskGroup() as tg:
                tg.create_task(self._run_ingest_loop())
                tg.create_task(self._run_health_server())
        except* Exception:
            logger.exception("source_task_group_error", source=self.config.name)
        finally:
            self.status = SourceStatus.STOPPING
            await self._producer.stop()
            self.status = SourceStatus.STOPPED
            logger.info("source_stopped", source=self.config.name)
