from __future__ import annotations

import threading
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Tuple

import httpx
import pytest
from fastapi.testclient import TestClient

from greenscore.config import Config, GreenSchedulingArgs
from greenscore.services.green_scheduling import GreenScheduling
from greenscore.services.kube_info import StaticLabelLookup
from greenscore.services.sic_client import SicClient, SicClientConfig
from greenscore.services.token_manager import TokenConfig

SIC_HOST = "sic.example.test"
TOKEN_URL = "https://auth.example.test/oauth/token"
SERIAL_LABEL = "greenscheduling/serial-number"

FIXED_NOW = datetime(2024, 5, 8, 12, 0, 0, tzinfo=timezone.utc)


class FakeSic:
    """
    In-process stand-in for the SIC API and its token endpoint.
    Entities and series are keyed by serial number (taken from the eq filter).
    """

    def __init__(self):
        self.requests: List[httpx.Request] = []
        self.token_calls = 0
        self.expires_in = 3600
        self.token_status = 200
        self.token_body: Optional[str] = None
        self.entities: Dict[str, Dict[str, Any]] = {}
        self.series: Dict[str, List[Dict[str, Any]]] = {}
        self.failures: Dict[str, Tuple[int, str]] = {}
        self.raw_bodies: Dict[str, str] = {}
        self._lock = threading.Lock()

    @property
    def api_requests(self) -> List[httpx.Request]:
        return [r for r in self.requests if r.url.host == SIC_HOST]

    def handler(self, request: httpx.Request) -> httpx.Response:
        with self._lock:
            self.requests.append(request)

        if str(request.url) == TOKEN_URL:
            with self._lock:
                self.token_calls += 1
                n = self.token_calls
            if self.token_status != 200:
                return httpx.Response(self.token_status, text="invalid_client")
            if self.token_body is not None:
                return httpx.Response(200, text=self.token_body)
            return httpx.Response(
                200,
                json={"access_token": f"tok-{n}", "token_type": "Bearer", "expires_in": self.expires_in},
            )

        op = request.url.path.rsplit("/", 1)[-1]
        if op in self.failures:
            status, body = self.failures[op]
            return httpx.Response(status, text=body)
        if op in self.raw_bodies:
            return httpx.Response(200, text=self.raw_bodies[op])

        flt = request.url.params.get("filter") or ""
        serial = flt.split("'")[1] if "'" in flt else None

        if op == "usage-by-entity":
            items = [self.entities[serial]] if serial in self.entities else []
            return httpx.Response(200, json={"items": items, "count": len(items), "total": len(items), "offset": 0})
        if op == "usage-series":
            items = self.series.get(serial, [])
            return httpx.Response(200, json={"items": items, "count": len(items)})
        return httpx.Response(404, text="not found")


@pytest.fixture
def fake_sic() -> FakeSic:
    return FakeSic()


@pytest.fixture
def http_client(fake_sic: FakeSic):
    client = httpx.Client(transport=httpx.MockTransport(fake_sic.handler))
    yield client
    client.close()


@pytest.fixture
def sic_client(http_client: httpx.Client) -> SicClient:
    return SicClient(
        SicClientConfig(
            hostname=SIC_HOST,
            token=TokenConfig(url=TOKEN_URL, client_id="client-id", client_secret="s3cret"),
        ),
        http_client=http_client,
    )


@pytest.fixture
def base_args() -> GreenSchedulingArgs:
    return GreenSchedulingArgs(
        sic_hostname=SIC_HOST,
        token_url=TOKEN_URL,
        client_id="client-id",
        client_secret="s3cret",
        serial_num_label=SERIAL_LABEL,
        consideration_days=7,
        time_series_interval="1h",
        co2_decay_weight=2.0,
        total_co2_weight=1.0,
        cost_weight=1.0,
        decay_rate=0.1,
    )


@pytest.fixture
def labels() -> StaticLabelLookup:
    return StaticLabelLookup({
        "node-a": {SERIAL_LABEL: "SN-A"},
        "node-b": {SERIAL_LABEL: "SN-B"},
        "node-c": {SERIAL_LABEL: "SN-C"},
        "node-unlabeled": {"kubernetes.io/hostname": "node-unlabeled"},
    })


@pytest.fixture
def plugin(base_args, labels, sic_client) -> GreenScheduling:
    return GreenScheduling(
        config=Config.from_args(base_args),
        kube_client=labels,
        sic_client=sic_client,
        clock=lambda: FIXED_NOW,
    )


@pytest.fixture
def client(plugin: GreenScheduling):
    from greenscore.deps import get_green_scheduling
    from greenscore.main import app

    app.dependency_overrides[get_green_scheduling] = lambda: plugin
    yield TestClient(app)
    app.dependency_overrides.clear()


def series_point(ts: str, co2: Optional[float]) -> Dict[str, Any]:
    return {"id": "s", "type": "usage-series", "timeBucket": ts, "costUsd": None, "co2eMetricTon": co2, "kwh": None}


def entity(serial: str, co2: Optional[float], cost: Optional[float]) -> Dict[str, Any]:
    return {
        "id": f"e-{serial}",
        "type": "usage-by-entity",
        "entitySerialNum": serial,
        "entityMake": "HPE",
        "locationName": None,
        "name": serial,
        "co2eMetricTon": co2,
        "costUsd": cost,
        "kwh": None,
    }
