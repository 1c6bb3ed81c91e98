"""
main.py

Purpose:
  FastAPI entry point for the GreenScheduling sustainability scorer.

Run:
  uvicorn greenscore.main:app --port 8090

Routes:
  - /health, /ready
  - /score/{node_name}
  - /scheduler/prioritize, /scheduler/score
"""
from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI

from greenscore.api import routes_health, routes_score, routes_scheduler
from greenscore.config import env_flag, env_str
from greenscore.deps import get_green_scheduling

logging.basicConfig(
    level=env_str("GREENSCORE_LOG_LEVEL", "INFO").upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    yield
    # only close what was actually built
    if get_green_scheduling.cache_info().currsize:
        get_green_scheduling().close()
        get_green_scheduling.cache_clear()


app = FastAPI(
    title="GreenScheduling Scorer",
    version="0.1.0",
    description="Sustainability scores for workload placement, backed by SIC telemetry.",
    lifespan=lifespan,
    docs_url="/docs" if env_flag("GREENSCORE_DOCS_ENABLED", True) else None,
    redoc_url=None,
)

app.include_router(routes_health.router)
app.include_router(routes_score.router, prefix="/score", tags=["score"])
app.include_router(routes_scheduler.router, prefix="/scheduler", tags=["scheduler"])
