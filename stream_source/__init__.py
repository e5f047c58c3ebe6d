"""Stream source framework.

Public API re-exported here for convenience::

    from stream_source import BaseSource, OutputRecord, SourceConfig
"""

from .base import BaseSource
from .config import KafkaConfig, RetryConfig, SourceConfig
from .dead_letter import DeadLetterHandler
from .health import create_health_app
from .interface import SourceInterface
from .kafka_producer import KafkaProducerWrapper
from .logging import setup_logging
from .models import (
    DeadLetterEnvelope,
    HealthStatus,
    OutputRecord,
    SourceStatus,
)
from .retry import with_retry
from .shutdown import install_signal_handlers

__all__ = [
    "BaseSource",
    "DeadLetterEnvelope",
    "DeadLetterHandler",
    "HealthStatus",
    "KafkaConfig",
    "KafkaProducerWrapper",
    "OutputRecord",
    "RetryConfig",
    "SourceConfig",
    "SourceInterface",
    "SourceStatus",
    "create_health_app",
    "install_signal_handlers",
    "setup_logging",
    "with_retry",
]
