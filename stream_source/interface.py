"""SourceInterface: the ABC that every source must implement."""

from __future__ import annotations

import abc
from collections.abc import AsyncIterator

from .models import OutputRecord


class SourceInterface(abc.ABC):
    """Abstract interface for a stream source.

    Concrete sources implement ``ingest``, an async generator that yields
    :class:`OutputRecord` instances.  The framework consumes them and
    handles delivery, retry, and dead-letter routing.
    """

    @abc.abstractmethod
    def ingest(self) -> AsyncIterator[OutputRecord]:
        """Yield output records from the live data source.

        This is an async generator that runs indefinitely (until the
        source is shut down).
        """
        ...

    async def health_check(self) -> dict[str, object]:
        """Return source-specific health details.

        Override to include upstream connectivity checks, last-poll
        timestamps, counters, etc.  The dict is included in the
        ``/health`` response.
        """
        return {}
