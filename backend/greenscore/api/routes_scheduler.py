"""
routes_scheduler.py

Purpose:
  Scheduler-extender style surface: the host orchestrator posts the candidate
  nodes of one scheduling cycle and gets comparable scores back.

Endpoints:
  - **POST /scheduler/prioritize**: `[{host, score}]` normalized to [0, 100].
  - **POST /scheduler/score**: per-node raw + normalized score and error text.

Contract:
  - Nodes are scored concurrently; normalization runs after all of them
    finish (it needs the batch maximum).
  - A node whose scoring failed is reported with score 0 and logged. The
    cycle itself is never aborted by one node.
"""
from __future__ import annotations

import asyncio
import logging
from datetime import datetime
from typing import List

from fastapi import APIRouter, Depends

from greenscore.deps import get_cycle_context, get_green_scheduling
from greenscore.models.domain import (
    HostPriority,
    NodeScore,
    NodeScoreDetail,
    PrioritizeRequest,
    ScoreBatchResponse,
)
from greenscore.services.green_scheduling import CycleContext, GreenScheduling
from greenscore.services.score_normalizer import MAX_NODE_SCORE

logger = logging.getLogger(__name__)

router = APIRouter()


async def _score_batch(plugin: GreenScheduling, names: List[str], ctx: CycleContext):
    results = await asyncio.to_thread(plugin.score_nodes, names, ctx)
    for r in results:
        if not r.ok:
            logger.error("Scoring failed for node %s: %s", r.name, r.error)

    scores = [NodeScore(name=r.name, score=r.score) for r in results]
    raw = [s.score for s in scores]
    plugin.normalize_scores(scores)
    return results, raw, scores


@router.post("/prioritize", response_model=List[HostPriority])
async def prioritize(
    req: PrioritizeRequest,
    plugin: GreenScheduling = Depends(get_green_scheduling),
    ctx: CycleContext = Depends(get_cycle_context),
) -> List[HostPriority]:
    _, _, scores = await _score_batch(plugin, req.node_names(), ctx)
    return [HostPriority(host=s.name, score=s.score) for s in scores]


@router.post("/score", response_model=ScoreBatchResponse)
async def score_batch(
    req: PrioritizeRequest,
    plugin: GreenScheduling = Depends(get_green_scheduling),
    ctx: CycleContext = Depends(get_cycle_context),
) -> ScoreBatchResponse:
    results, raw, scores = await _score_batch(plugin, req.node_names(), ctx)
    items = [
        NodeScoreDetail(name=r.name, raw_score=raw_score, normalized_score=s.score, error=r.error)
        for r, raw_score, s in zip(results, raw, scores)
    ]
    return ScoreBatchResponse(ts=datetime.now().isoformat(), max_score=MAX_NODE_SCORE, items=items)
