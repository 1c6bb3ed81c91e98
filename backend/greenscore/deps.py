"""
deps.py

Purpose:
  Dependency Injection (DI) container for the scorer service.
  Builds the `GreenScheduling` plugin once per process so the token manager
  (the only shared mutable state) is reused across requests.

Services Managed:
  - `GreenScheduling` (label lookup + SIC client + scoring model)

Pattern:
  - `lru_cache` enforces the singleton.
  - Tests swap it out through `app.dependency_overrides[get_green_scheduling]`.
  - `GREENSCORE_STATIC_LABELS` (JSON: {node: {label: value}}) replaces the
    Kubernetes lookup, for running outside a cluster.
"""
from __future__ import annotations

import json
import logging
from functools import lru_cache

from greenscore.config import GreenSchedulingArgs, env_float, env_str
from greenscore.errors import ConfigError
from greenscore.services.green_scheduling import CycleContext, GreenScheduling, new_green_scheduling
from greenscore.services.kube_info import StaticLabelLookup

logger = logging.getLogger(__name__)


@lru_cache(maxsize=1)
def get_green_scheduling() -> GreenScheduling:
    args = GreenSchedulingArgs.from_env()

    static_labels = env_str("GREENSCORE_STATIC_LABELS")
    kube = None
    if static_labels:
        try:
            kube = StaticLabelLookup(json.loads(static_labels))
        except (ValueError, AttributeError) as e:
            raise ConfigError(f"GREENSCORE_STATIC_LABELS is not a JSON object of objects: {e}") from e
        logger.info("Using static node labels for %d nodes", len(kube))

    return new_green_scheduling(args, kube_client=kube)


def get_cycle_context() -> CycleContext:
    """Fresh deadline per request (one request == one scheduling cycle)."""
    timeout_s = env_float("GREENSCORE_CYCLE_TIMEOUT_S", 30.0)
    return CycleContext.with_timeout(timeout_s if timeout_s > 0 else None)
