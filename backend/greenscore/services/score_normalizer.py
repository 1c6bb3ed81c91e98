"""
score_normalizer.py

Purpose:
  Rescales one scheduling cycle's raw node scores onto [0, MAX_NODE_SCORE].

Rules:
  - score' = round(score · MAX_NODE_SCORE / max(scores)), halves rounded up
    (1 of 8 -> 13, not the banker's 12).
  - max <= 0 (every node scored 0, e.g. no telemetry anywhere): all nodes are
    equally ranked and receive 0. No division is attempted.
  - Negative raw scores clamp to 0 so the output range stays bounded.
  - Runs only once the whole batch is available; no I/O.
"""
from __future__ import annotations

import math
from typing import List

from greenscore.models.domain import NodeScore

MAX_NODE_SCORE = 100
MIN_NODE_SCORE = 0


def normalize_values(values: List[int], max_score: int = MAX_NODE_SCORE) -> List[int]:
    if not values:
        return []
    highest = max(values)
    if highest <= 0:
        return [MIN_NODE_SCORE for _ in values]
    return [max(MIN_NODE_SCORE, math.floor(v * max_score / highest + 0.5)) for v in values]


def normalize_scores(scores: List[NodeScore], max_score: int = MAX_NODE_SCORE) -> List[NodeScore]:
    """Rescales `scores` in place and returns the same list."""
    normalized = normalize_values([s.score for s in scores], max_score)
    for node, value in zip(scores, normalized):
        node.score = value
    return scores
