"""
green_scheduling.py

Purpose:
  Per-node sustainability scoring for workload placement. Connects the node
  label lookup, the SIC telemetry client and the decay-weighted model, and
  hands batch results to the normalizer.

Flow (per node, sequential):
  1. Resolve the node's serial number from `serial_num_label`.
  2. Build Params with `entitySerialNum eq '<serial>'`.
  3. Window: end = now (UTC), start = end - consideration days.
  4. Fetch usage-by-entity, then usage-series (`time_series_interval`).
  5. Map series samples to EmissionDataPoints (a bad bucket aborts the node).
  6. No aggregate entity -> score 0. Otherwise score the first entity and
     scale by SCORE_SCALING_FACTOR before truncating to int.

Error Policy:
  - Node or label missing: score 0, not an error.
  - Fetch / decode / timestamp failures: raised to the caller. Other nodes
    in the same batch are unaffected (`score_nodes` captures per node).
"""
from __future__ import annotations

import logging
import time
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Callable, List, Optional, Sequence, Tuple

from greenscore.config import Config, GreenSchedulingArgs, validate_green_scheduling_args
from greenscore.errors import GreenSchedulingError, KubeLookupError, LabelNotFoundError, NodeNotFoundError
from greenscore.models.domain import FilterKey, FilterOperator, NodeScore, NodeScoreResult
from greenscore.models.sic_response import UsageByEntityResponse, UsageSeriesResponse
from greenscore.services.kube_info import KubeClient, NodeLabelLookup
from greenscore.services.score_normalizer import normalize_scores
from greenscore.services.sic_client import SicClient, SicClientConfig
from greenscore.services.sic_params import Params, new_filter
from greenscore.services.sustainability_profile import (
    EmissionDataPoint,
    SustainabilityProfile,
    SustainabilityWeights,
)
from greenscore.services.token_manager import TokenConfig, utc_now

logger = logging.getLogger(__name__)

NAME = "GreenScheduling"

# Keeps small fractional scores from truncating to 0
SCORE_SCALING_FACTOR = 1000

WIRE_TIME_FORMAT = "%Y-%m-%dT%H:%M:%SZ"


@dataclass(frozen=True)
class CycleContext:
    """Deadline for one scheduling cycle, in `time.monotonic()` seconds."""
    deadline: Optional[float] = None

    @classmethod
    def with_timeout(cls, timeout_s: Optional[float]) -> "CycleContext":
        if timeout_s is None:
            return cls()
        return cls(deadline=time.monotonic() + timeout_s)

    def remaining(self, default: Optional[float] = None) -> Optional[float]:
        if self.deadline is None:
            return default
        left = self.deadline - time.monotonic()
        return left if default is None else min(left, default)


class GreenScheduling:
    def __init__(
        self,
        config: Config,
        kube_client: NodeLabelLookup,
        sic_client: SicClient,
        clock: Callable[[], datetime] = utc_now,
    ):
        self.config = config
        self.kube_client = kube_client
        self.sic_client = sic_client
        self._clock = clock
        self.weights = SustainabilityWeights(
            co2_decay_weight=config.co2_decay_weight,
            total_co2_weight=config.total_co2_weight,
            cost_weight=config.cost_weight,
            decay_rate=config.decay_rate,
        )

    @property
    def name(self) -> str:
        return NAME

    # -----------------------------
    # Score (one node)
    # -----------------------------
    def score(self, node_name: str, ctx: Optional[CycleContext] = None) -> int:
        ctx = ctx or CycleContext()
        try:
            serial_num = self.kube_client.get_node_label_value(node_name, self.config.serial_num_label)
        except (NodeNotFoundError, LabelNotFoundError) as e:
            logger.info("Node %s missing required label '%s': %s", node_name, self.config.serial_num_label, e)
            return 0
        except KubeLookupError as e:
            logger.error("Error retrieving label '%s' for node %s: %s", self.config.serial_num_label, node_name, e)
            raise

        params = self.build_sic_params(serial_num)

        try:
            usage_by_entity, usage_series = self.fetch_sic_data(params, ctx)
        except GreenSchedulingError as e:
            logger.error("Error fetching SIC data for node %s: %s", node_name, e)
            raise

        try:
            data_points = self.build_emission_data_points(usage_series)
        except GreenSchedulingError as e:
            logger.error("Error building emission data points for node %s: %s", node_name, e)
            raise

        score = self.calculate_sustainability_score(usage_by_entity, data_points)
        logger.info(
            "Calculated sustainability score for node %s with serial number %s: %f",
            node_name, serial_num, score,
        )
        return int(score * SCORE_SCALING_FACTOR)

    def build_sic_params(self, serial_num: str) -> Params:
        return Params().add_filter(
            new_filter(FilterKey.ENTITY_SERIAL_NUM, FilterOperator.EQUALS, serial_num)
        )

    def time_window(self) -> Tuple[str, str]:
        end = self._clock()
        start = end - timedelta(days=self.config.time_series.days_to_consider)
        return start.strftime(WIRE_TIME_FORMAT), end.strftime(WIRE_TIME_FORMAT)

    def fetch_sic_data(
        self, params: Params, ctx: CycleContext
    ) -> Tuple[UsageByEntityResponse, UsageSeriesResponse]:
        start_time, end_time = self.time_window()
        default_timeout = self.config.http_timeout_s

        usage_by_entity = self.sic_client.get_usage_by_entity(
            start_time, end_time, params, timeout=ctx.remaining(default_timeout)
        )
        usage_series = self.sic_client.get_usage_series(
            start_time,
            end_time,
            self.config.time_series.series_interval,
            params,
            timeout=ctx.remaining(default_timeout),
        )
        return usage_by_entity, usage_series

    def build_emission_data_points(self, usage_series: UsageSeriesResponse) -> List[EmissionDataPoint]:
        return [
            EmissionDataPoint(co2=item.get_co2e_metric_ton(), timestamp=item.get_time_bucket())
            for item in usage_series.items
        ]

    def calculate_sustainability_score(
        self,
        usage_by_entity: UsageByEntityResponse,
        data_points: List[EmissionDataPoint],
    ) -> float:
        if not usage_by_entity.items:
            logger.warning("UsageByEntity response is empty")
            return 0.0

        entity = usage_by_entity.items[0]
        profile = SustainabilityProfile(
            emissions=data_points,
            total_co2=entity.get_co2e_metric_ton(),
            total_cost=entity.get_cost_usd(),
        )
        return profile.calculate_score(self.weights)

    # -----------------------------
    # Batch helpers (host side)
    # -----------------------------
    def score_nodes(
        self, node_names: Sequence[str], ctx: Optional[CycleContext] = None
    ) -> List[NodeScoreResult]:
        """Scores nodes concurrently; one node's failure never affects another."""
        ctx = ctx or CycleContext()
        if not node_names:
            return []

        def run(node_name: str) -> NodeScoreResult:
            try:
                return NodeScoreResult(name=node_name, score=self.score(node_name, ctx))
            except GreenSchedulingError as e:
                return NodeScoreResult(name=node_name, score=0, error=str(e))

        workers = max(1, min(self.config.max_workers, len(node_names)))
        with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="greenscore") as pool:
            return list(pool.map(run, node_names))

    def normalize_scores(self, scores: List[NodeScore]) -> List[NodeScore]:
        return normalize_scores(scores)

    def close(self) -> None:
        self.sic_client.close()


def new_green_scheduling(
    args: GreenSchedulingArgs,
    kube_client: Optional[NodeLabelLookup] = None,
    sic_client: Optional[SicClient] = None,
) -> GreenScheduling:
    """Validates args and builds the plugin with its clients."""
    validate_green_scheduling_args(args)

    if kube_client is None:
        kube_client = KubeClient()

    if sic_client is None:
        sic_client = SicClient(
            SicClientConfig(
                hostname=args.sic_hostname,
                token=TokenConfig(
                    url=args.token_url,
                    client_id=args.client_id,
                    client_secret=args.client_secret,
                ),
                default_timeout_s=args.http_timeout_s,
            )
        )

    return GreenScheduling(config=Config.from_args(args), kube_client=kube_client, sic_client=sic_client)
