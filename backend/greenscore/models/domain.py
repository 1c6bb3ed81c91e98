from __future__ import annotations

from enum import Enum
from typing import List, Optional
from pydantic import BaseModel, Field


# ============================================================
# 0) ENUMS (Telemetry API query grammar)
# ============================================================

class FilterKey(str, Enum):
    ENTITY_ID = "entityId"
    ENTITY_MAKE = "entityMake"
    ENTITY_MODEL = "entityModel"
    ENTITY_TYPE = "entityType"
    ENTITY_SERIAL_NUM = "entitySerialNum"
    ENTITY_PRODUCT_ID = "entityProductId"
    LOCATION_NAME = "locationName"
    LOCATION_ID = "locationId"
    LOCATION_CITY = "locationCity"
    LOCATION_STATE = "locationState"
    LOCATION_COUNTRY = "locationCountry"
    NAME = "name"

class FilterOperator(str, Enum):
    EQUALS = "eq"
    CONTAINS = "contains"
    IN = "in"

# Sort keys share the filter key vocabulary on the wire
class SortKey(str, Enum):
    ENTITY_ID = "entityId"
    ENTITY_MAKE = "entityMake"
    ENTITY_MODEL = "entityModel"
    ENTITY_TYPE = "entityType"
    ENTITY_SERIAL_NUM = "entitySerialNum"
    ENTITY_PRODUCT_ID = "entityProductId"
    LOCATION_NAME = "locationName"
    LOCATION_ID = "locationId"
    LOCATION_CITY = "locationCity"
    LOCATION_STATE = "locationState"
    LOCATION_COUNTRY = "locationCountry"
    NAME = "name"

class SortOrder(str, Enum):
    ASC = "asc"
    DESC = "desc"


# ============================================================
# 1) SCORING RESULTS
# ============================================================

class NodeScore(BaseModel):
    """Mutable so the normalizer can rescale a batch in place."""
    name: str
    score: int = 0


class NodeScoreResult(BaseModel):
    name: str
    score: int = 0
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None


# ============================================================
# 2) API SCHEMAS (scheduler-extender surface)
# ============================================================

class HealthResponse(BaseModel):
    status: str
    ts: str


class ScoreResponse(BaseModel):
    node_name: str
    score: int
    error: Optional[str] = None


class PrioritizeRequest(BaseModel):
    """
    Accepts either plain node names (`nodes`) or the extender-style
    `nodenames` list. Both may be given; order is preserved, duplicates dropped.
    """
    nodes: List[str] = Field(default_factory=list)
    nodenames: List[str] = Field(default_factory=list)

    def node_names(self) -> List[str]:
        seen = set()
        out: List[str] = []
        for n in list(self.nodes) + list(self.nodenames):
            if n and n not in seen:
                seen.add(n)
                out.append(n)
        return out


class HostPriority(BaseModel):
    host: str
    score: int


class NodeScoreDetail(BaseModel):
    name: str
    raw_score: int
    normalized_score: int
    error: Optional[str] = None


class ScoreBatchResponse(BaseModel):
    ts: str
    max_score: int
    items: List[NodeScoreDetail] = Field(default_factory=list)
