"""FastAPI health endpoints for Kubernetes liveness and readiness probes."""

from __future__ import annotations

import time
from typing import TYPE_CHECKING

from fastapi import FastAPI
from fastapi.responses import JSONResponse

from .models import HealthStatus, SourceStatus

if TYPE_CHECKING:
    from .base import BaseSource


def create_health_app(source: BaseSource) -> FastAPI:
    """Build a minimal FastAPI app with ``/health`` and ``/ready`` routes.

    The *source* reference is used to read runtime status and delegate
    to the source's ``health_check()`` method.
    """
    app = FastAPI(title=f"{source.config.name} health", docs_url=None, redoc_url=None)

    @app.get("/health")
    async def health() -> JSONResponse:
        details = await source.health_check()
        status = HealthStatus(
            source_name=source.config.name,
            status=source.status,
            uptime_seconds=time.monotonic() - source.start_time,
            details=details,
        )
        code = 200 if source.status in (SourceStatus.RUNNING, SourceStatus.STARTING) else 503
        return JSONResponse(content=status.model_dump(mode="json"), status_code=code)

    @app.get("/ready")
    async def ready() -> JSONResponse:
        is_ready = source.status == SourceStatus.RUNNING
        return JSONResponse(
            content={"ready": is_ready},
            status_code=200 if is_ready else 503,
        )

    return app
