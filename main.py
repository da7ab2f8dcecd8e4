"""
Entry point for the pgbaseline API server.

Copyright (c) 2026 Stefan Kumarasinghe

Licensed under the Apache License, Version 2.0 (the "License");
you may not use this file except in compliance with the License.
You may obtain a copy of the License at http://www.apache.org/licenses/LICENSE-2.0
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
import sys
from contextlib import asynccontextmanager
from typing import AsyncIterator, Dict, Optional

import uvicorn
from fastapi import FastAPI
from fastapi.responses import JSONResponse

from api.routes import router
from config import settings
from database import dispose_database, init_database, init_db
from services.anomaly_service import anomaly_service
from store.client import close_redis

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)s %(name)s %(message)s",
    stream=sys.stdout,
)
log = logging.getLogger(__name__)

_status: Dict[str, str] = {}


async def _run_scheduler() -> None:
    _status["scheduler"] = "running"
    try:
        await anomaly_service.run_schedule()
        _status["scheduler"] = "disabled"
    except asyncio.CancelledError:
        _status["scheduler"] = "stopped"
        raise
    except Exception as exc:
        log.exception("Scheduler stopped unexpectedly")
        _status["scheduler"] = f"failed: {exc}"


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    init_database(settings.database_url)
    init_db()
    _status["database"] = "ready"

    scheduler_task: Optional[asyncio.Task] = asyncio.create_task(_run_scheduler())
    try:
        yield
    finally:
        if scheduler_task is not None:
            scheduler_task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await scheduler_task
        await anomaly_service.aclose()
        await close_redis()
        dispose_database()
        _status.clear()


app = FastAPI(
    title="pgbaseline",
    description="Seasonal statistical baselines and sigma-based anomaly detection for database health metrics.",
    version="1.0.0",
    lifespan=lifespan,
)

app.include_router(router, prefix="/api/v1")


@app.get("/api/v1/ready", tags=["health"], summary="Readiness probe")
async def ready() -> JSONResponse:
    is_ready = _status.get("database") == "ready"
    return JSONResponse(status_code=200 if is_ready else 503, content={"ready": is_ready, "components": _status})


if __name__ == "__main__":
    uvicorn.run(
        "main:app",
        host=settings.host,
        port=settings.port,
        log_level="info",
        access_log=True,
    )
