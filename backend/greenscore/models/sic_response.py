"""
sic_response.py

Purpose:
  Wire shapes returned by the Sustainability Insight Center (SIC) API.

Nullability:
  `costUsd`, `co2eMetricTon` and `kwh` may be null on the wire. They decode to
  `None` and the `get_*` accessors turn `None` into 0.0. A null numeric is
  never a decode error.

Units:
  - **costUsd**: US dollars
  - **co2eMetricTon**: metric tons CO2 equivalent
  - **kwh**: kilowatt-hours
"""
from __future__ import annotations

from datetime import datetime, timezone
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from greenscore.errors import TimestampParseError


class _WireModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")


class _UsageMetrics(_WireModel):
    cost_usd: Optional[float] = Field(default=None, alias="costUsd")
    co2e_metric_ton: Optional[float] = Field(default=None, alias="co2eMetricTon")
    kwh: Optional[float] = Field(default=None, alias="kwh")

    def get_cost_usd(self) -> float:
        return 0.0 if self.cost_usd is None else float(self.cost_usd)

    def get_co2e_metric_ton(self) -> float:
        return 0.0 if self.co2e_metric_ton is None else float(self.co2e_metric_ton)

    def get_kwh(self) -> float:
        return 0.0 if self.kwh is None else float(self.kwh)


# ============================================================
# 1) USAGE BY ENTITY (aggregate totals)
# ============================================================

class UsageEntity(_UsageMetrics):
    id: str = ""
    type: str = ""
    entity_id: str = Field(default="", alias="entityId")
    entity_make: str = Field(default="", alias="entityMake")
    entity_model: str = Field(default="", alias="entityModel")
    entity_type: str = Field(default="", alias="entityType")
    entity_serial_num: str = Field(default="", alias="entitySerialNum")
    entity_product_id: str = Field(default="", alias="entityProductId")
    entity_manufacture_timestamp: str = Field(default="", alias="entityManufactureTimestamp")

    location_name: Optional[str] = Field(default=None, alias="locationName")
    location_id: Optional[str] = Field(default=None, alias="locationId")
    location_city: Optional[str] = Field(default=None, alias="locationCity")
    location_state: Optional[str] = Field(default=None, alias="locationState")
    location_country: Optional[str] = Field(default=None, alias="locationCountry")

    name: str = ""


class UsageByEntityResponse(_WireModel):
    items: List[UsageEntity] = Field(default_factory=list)
    count: int = 0
    total: int = 0
    offset: int = 0

    @field_validator("items", mode="before")
    @classmethod
    def null_items_to_empty(cls, v):
        return [] if v is None else v


# ============================================================
# 2) USAGE SERIES (time-bucketed samples)
# ============================================================

def parse_rfc3339(value: str) -> datetime:
    """
    Parses `2024-05-01T10:00:00Z` / `...+02:00` / fractional seconds.
    Naive timestamps are rejected; the result is always timezone-aware.
    """
    if not isinstance(value, str) or "T" not in value:
        raise TimestampParseError(str(value))
    text = value.strip()
    if text.endswith(("Z", "z")):
        text = text[:-1] + "+00:00"
    try:
        parsed = datetime.fromisoformat(text)
    except ValueError as e:
        raise TimestampParseError(value) from e
    if parsed.tzinfo is None:
        raise TimestampParseError(value)
    return parsed.astimezone(timezone.utc)


class UsageSeriesItem(_UsageMetrics):
    id: str = ""
    type: str = ""
    time_bucket: str = Field(default="", alias="timeBucket")

    def get_time_bucket(self) -> datetime:
        return parse_rfc3339(self.time_bucket)


class UsageSeriesResponse(_WireModel):
    items: List[UsageSeriesItem] = Field(default_factory=list)
    count: int = 0

    @field_validator("items", mode="before")
    @classmethod
    def null_items_to_empty(cls, v):
        return [] if v is None else v
