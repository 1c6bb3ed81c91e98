"""
config.py

Purpose:
  Environment-driven configuration for the GreenScheduling scorer.

Sources (in priority order):
  1. Real environment variables (`GREENSCORE_*`).
  2. A `.env` file (path from `GREENSCORE_ENV_FILE`, default `.env`).
  3. Field defaults on `GreenSchedulingArgs`.

Validation:
  `validate_green_scheduling_args()` must pass before any client is built.
  Credentials, hostname and the serial-number label are required; weights
  are non-negative; decay rate lies in [0, 1]; the lookback window is
  positive and the series interval non-empty.
"""
from __future__ import annotations

import math
import os
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional

from dotenv import load_dotenv
from pydantic import BaseModel

from greenscore.errors import ConfigError

_TRUE = {"1", "true", "yes", "on"}

ENV_PREFIX = "GREENSCORE_"


def env_flag(name: str, default: bool = False) -> bool:
    val = os.getenv(name)
    if val is None:
        return default
    return str(val).strip().lower() in _TRUE


def env_int(name: str, default: int) -> int:
    val = os.getenv(name)
    if val is None:
        return default
    try:
        return int(val.strip())
    except ValueError:
        return default


def env_float(name: str, default: float) -> float:
    val = os.getenv(name)
    if val is None:
        return default
    try:
        return float(val.strip())
    except ValueError:
        return default


def env_str(name: str, default: str = "") -> str:
    val = os.getenv(name)
    if val is None:
        return default
    return val.strip()


def load_env_file(path: Optional[str] = None) -> bool:
    """Load a dotenv file without overriding variables already set."""
    env_file = path or os.getenv(ENV_PREFIX + "ENV_FILE", ".env")
    if env_file and Path(env_file).exists():
        return load_dotenv(env_file, override=False)
    return False


# ============================================================
# 1) PLUGIN ARGUMENTS
# ============================================================

class GreenSchedulingArgs(BaseModel):
    """
    User-facing settings, one instance per process.
    Units:
      - consideration_days: days of history (fractional allowed)
      - time_series_interval: bucket size understood by the telemetry API ("1h", "1d")
      - http_timeout_s: default per-call timeout when no cycle deadline applies
    """
    sic_hostname: str = ""
    token_url: str = ""
    client_id: str = ""
    client_secret: str = ""

    # Node label whose value is the entity serial number in the telemetry API
    serial_num_label: str = "greenscheduling/serial-number"

    consideration_days: float = 7.0
    time_series_interval: str = "1h"

    co2_decay_weight: float = 1.0
    total_co2_weight: float = 1.0
    cost_weight: float = 1.0
    decay_rate: float = 0.1

    http_timeout_s: float = 10.0
    max_workers: int = 16

    @classmethod
    def from_env(cls) -> "GreenSchedulingArgs":
        load_env_file()
        d = cls()
        p = ENV_PREFIX
        return cls(
            sic_hostname=env_str(p + "SIC_HOSTNAME", d.sic_hostname),
            token_url=env_str(p + "TOKEN_URL", d.token_url),
            client_id=env_str(p + "CLIENT_ID", d.client_id),
            client_secret=env_str(p + "CLIENT_SECRET", d.client_secret),
            serial_num_label=env_str(p + "SERIAL_NUM_LABEL", d.serial_num_label),
            consideration_days=env_float(p + "CONSIDERATION_DAYS", d.consideration_days),
            time_series_interval=env_str(p + "TIME_SERIES_INTERVAL", d.time_series_interval),
            co2_decay_weight=env_float(p + "CO2_DECAY_WEIGHT", d.co2_decay_weight),
            total_co2_weight=env_float(p + "TOTAL_CO2_WEIGHT", d.total_co2_weight),
            cost_weight=env_float(p + "COST_WEIGHT", d.cost_weight),
            decay_rate=env_float(p + "DECAY_RATE", d.decay_rate),
            http_timeout_s=env_float(p + "HTTP_TIMEOUT_S", d.http_timeout_s),
            max_workers=env_int(p + "MAX_WORKERS", d.max_workers),
        )


def validate_green_scheduling_args(args: GreenSchedulingArgs) -> None:
    """Raises ConfigError listing every offending field."""
    missing: List[str] = [
        name
        for name in ("token_url", "client_id", "client_secret", "sic_hostname", "serial_num_label")
        if not getattr(args, name)
    ]
    if missing:
        raise ConfigError(f"missing required arguments: {', '.join(missing)}", missing)

    invalid: List[str] = [
        name
        for name in ("co2_decay_weight", "total_co2_weight", "cost_weight")
        if not math.isfinite(getattr(args, name)) or getattr(args, name) < 0
    ]
    if not (math.isfinite(args.decay_rate) and 0.0 <= args.decay_rate <= 1.0):
        invalid.append("decay_rate")
    if invalid:
        raise ConfigError(f"invalid weight or decay rate: {', '.join(invalid)}", invalid)

    bad_series: List[str] = []
    if not args.time_series_interval:
        bad_series.append("time_series_interval")
    if not math.isfinite(args.consideration_days) or args.consideration_days <= 0:
        bad_series.append("consideration_days")
    if bad_series:
        raise ConfigError(f"invalid interval or consideration days: {', '.join(bad_series)}", bad_series)

    bad_timeout = not math.isfinite(args.http_timeout_s) or args.http_timeout_s <= 0
    if bad_timeout or args.max_workers < 1:
        raise ConfigError("http_timeout_s must be > 0 and max_workers >= 1", ["http_timeout_s", "max_workers"])


# ============================================================
# 2) RESOLVED CONFIG
# ============================================================

@dataclass(frozen=True)
class TimeSeriesConfig:
    days_to_consider: float
    series_interval: str


@dataclass(frozen=True)
class Config:
    time_series: TimeSeriesConfig
    co2_decay_weight: float
    total_co2_weight: float
    cost_weight: float
    decay_rate: float
    serial_num_label: str
    http_timeout_s: float = 10.0
    max_workers: int = 16

    @classmethod
    def from_args(cls, args: GreenSchedulingArgs) -> "Config":
        return cls(
            time_series=TimeSeriesConfig(
                days_to_consider=args.consideration_days,
                series_interval=args.time_series_interval,
            ),
            co2_decay_weight=args.co2_decay_weight,
            total_co2_weight=args.total_co2_weight,
            cost_weight=args.cost_weight,
            decay_rate=args.decay_rate,
            serial_num_label=args.serial_num_label,
            http_timeout_s=args.http_timeout_s,
            max_workers=args.max_workers,
        )
