"""
routes_score.py

Purpose:
  Single-node scoring, mostly for operators checking what a node would get.

Endpoints:
  - **GET /score/{node_name}**: raw scaled score (before batch normalization).
    A fatal scoring error (SIC unreachable, bad payload, bad timestamp) maps
    to 502 with the error text; a node without the serial label scores 0.
"""
from __future__ import annotations

import asyncio

from fastapi import APIRouter, Depends, HTTPException

from greenscore.deps import get_cycle_context, get_green_scheduling
from greenscore.errors import GreenSchedulingError
from greenscore.models.domain import ScoreResponse
from greenscore.services.green_scheduling import CycleContext, GreenScheduling

router = APIRouter()


@router.get("/{node_name}", response_model=ScoreResponse)
async def score_node(
    node_name: str,
    plugin: GreenScheduling = Depends(get_green_scheduling),
    ctx: CycleContext = Depends(get_cycle_context),
) -> ScoreResponse:
    try:
        score = await asyncio.to_thread(plugin.score, node_name, ctx)
    except GreenSchedulingError as e:
        raise HTTPException(status_code=502, detail=str(e))
    return ScoreResponse(node_name=node_name, score=score)
