"""
sustainability_profile.py

Purpose:
  Decay-weighted sustainability score for one node.

Math:
  - **Reference time**: t_ref = max(t_i) over all emission samples (full scan,
    samples need not be sorted). Not wall-clock "now".
  - **Decay factor**: for Δh = hours(t_ref - t_i) >= 0,
        d(Δh) = exp(-r·Δh) / (1 + exp(-r·Δh)) = 1 / (1 + exp(r·Δh))
    a logistic curve equal to 0.5 at Δh = 0 and tending to 0 for old samples.
    Δh < 0 (sample after the reference) gives d = 1.0.
  - **Score**:
        S = w_decay · Σ d_i·co2_i  +  w_total · totalCo2  +  w_cost / (1 + totalCost)

Units:
  - **co2**: metric tons CO2e
  - **cost**: USD
  - **decay_rate**: 1/hour
"""
from __future__ import annotations

import math
from dataclasses import dataclass, field
from datetime import datetime
from enum import IntEnum
from typing import List, Optional, Sequence

SECONDS_PER_HOUR = 3600.0


class WeightType(IntEnum):
    CO2_DECAY = 0
    TOTAL_CO2 = 1
    COST = 2
    DECAY_RATE = 3


@dataclass(frozen=True)
class SustainabilityWeights:
    co2_decay_weight: float
    total_co2_weight: float
    cost_weight: float
    decay_rate: float

    def get_weight(self, weight_type: WeightType) -> float:
        if weight_type == WeightType.CO2_DECAY:
            return self.co2_decay_weight
        if weight_type == WeightType.TOTAL_CO2:
            return self.total_co2_weight
        if weight_type == WeightType.COST:
            return self.cost_weight
        if weight_type == WeightType.DECAY_RATE:
            return self.decay_rate
        return 0.0


@dataclass(frozen=True)
class DecayParameters:
    reference_time: datetime
    decay_rate: float


def decay_factor(delta_hours: float, decay_rate: float) -> float:
    if delta_hours < 0:
        return 1.0
    # exp(-x) form: never overflows, stays > 0 until float underflow
    e = math.exp(-decay_rate * delta_hours)
    return e / (1.0 + e)


@dataclass(frozen=True)
class EmissionDataPoint:
    co2: float          # metric tons
    timestamp: datetime

    def calculate_decay_factor(self, params: DecayParameters) -> float:
        delta_hours = (params.reference_time - self.timestamp).total_seconds() / SECONDS_PER_HOUR
        return decay_factor(delta_hours, params.decay_rate)


def latest_timestamp(emissions: Sequence[EmissionDataPoint]) -> Optional[datetime]:
    if not emissions:
        return None
    latest = emissions[0].timestamp
    for e in emissions:
        if e.timestamp > latest:
            latest = e.timestamp
    return latest


@dataclass
class SustainabilityProfile:
    emissions: List[EmissionDataPoint] = field(default_factory=list)
    total_co2: float = 0.0
    total_cost: float = 0.0

    def calculate_score(self, weights: SustainabilityWeights) -> float:
        return (
            self.co2_weighted_score(weights.co2_decay_weight, weights.decay_rate)
            + self.total_co2_weighted_score(weights.total_co2_weight)
            + self.cost_weighted_score(weights.cost_weight)
        )

    def decayed_co2_sum(self, decay_rate: float) -> float:
        reference = latest_timestamp(self.emissions)
        if reference is None:
            return 0.0
        params = DecayParameters(reference_time=reference, decay_rate=decay_rate)
        return sum(e.calculate_decay_factor(params) * e.co2 for e in self.emissions)

    def co2_weighted_score(self, co2_decay_weight: float, decay_rate: float) -> float:
        if not self.emissions:
            return 0.0
        return co2_decay_weight * self.decayed_co2_sum(decay_rate)

    def total_co2_weighted_score(self, total_co2_weight: float) -> float:
        return total_co2_weight * self.total_co2

    def cost_weighted_score(self, cost_weight: float) -> float:
        # Inverse in cost: bounded by cost_weight for total_cost >= 0
        return cost_weight / (1.0 + self.total_cost)
