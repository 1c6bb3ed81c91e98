import time

import pytest

from conftest import FIXED_NOW, entity, series_point
from greenscore.config import Config
from greenscore.errors import DeadlineExceededError, TelemetryFetchError, TimestampParseError
from greenscore.models.domain import NodeScore
from greenscore.models.sic_response import UsageByEntityResponse, UsageSeriesResponse
from greenscore.services.green_scheduling import (
    SCORE_SCALING_FACTOR,
    CycleContext,
    GreenScheduling,
    new_green_scheduling,
)
from greenscore.services.kube_info import StaticLabelLookup


def seed_reference_node(fake_sic, serial="SN-A"):
    """totalCo2=10, totalCost=5, three samples at the reference time."""
    fake_sic.entities[serial] = entity(serial, co2=10.0, cost=5.0)
    fake_sic.series[serial] = [
        series_point("2024-05-08T11:00:00Z", 1.0),
        series_point("2024-05-08T11:00:00Z", 2.0),
        series_point("2024-05-08T11:00:00Z", 3.0),
    ]


# ============================================================
# SCORE (single node)
# ============================================================

def test_reference_scenario_scaled(plugin, fake_sic):
    seed_reference_node(fake_sic)
    # 2*3 + 1*10 + 1/(1+5) = 16.1667 -> truncated after x1000
    assert plugin.score("node-a") == 16166


def test_missing_label_scores_zero_without_http(plugin, fake_sic):
    assert plugin.score("node-unlabeled") == 0
    assert fake_sic.requests == []


def test_missing_node_scores_zero(plugin, fake_sic):
    assert plugin.score("node-does-not-exist") == 0
    assert fake_sic.requests == []


def test_empty_aggregate_scores_zero(plugin, fake_sic):
    fake_sic.series["SN-B"] = [series_point("2024-05-08T11:00:00Z", 5.0)]
    assert plugin.score("node-b") == 0
    assert len(fake_sic.api_requests) == 2


def test_null_totals_use_zero(plugin, fake_sic):
    fake_sic.entities["SN-C"] = entity("SN-C", co2=None, cost=None)
    # only the cost term survives: 1 / (1 + 0)
    assert plugin.score("node-c") == SCORE_SCALING_FACTOR


def test_bad_time_bucket_aborts_node(plugin, fake_sic):
    fake_sic.entities["SN-A"] = entity("SN-A", co2=1.0, cost=1.0)
    fake_sic.series["SN-A"] = [
        series_point("2024-05-08T10:00:00Z", 1.0),
        series_point("not-a-time", 2.0),
    ]
    with pytest.raises(TimestampParseError):
        plugin.score("node-a")


def test_api_failure_propagates(plugin, fake_sic):
    fake_sic.failures["usage-series"] = (500, "boom")
    with pytest.raises(TelemetryFetchError) as exc:
        plugin.score("node-a")
    assert exc.value.status_code == 500


def test_expired_cycle_deadline(plugin, fake_sic):
    ctx = CycleContext(deadline=time.monotonic() - 1.0)
    with pytest.raises(DeadlineExceededError):
        plugin.score("node-a", ctx)
    assert fake_sic.requests == []


def test_requests_use_serial_filter_and_window(plugin, fake_sic):
    seed_reference_node(fake_sic)
    plugin.score("node-a")

    by_entity, series = fake_sic.api_requests
    for req in (by_entity, series):
        assert req.url.params.get_list("filter") == ["entitySerialNum eq 'SN-A'"]
        assert req.url.params.get("start-time") == "2024-05-01T12:00:00Z"
        assert req.url.params.get("end-time") == "2024-05-08T12:00:00Z"
    assert series.url.params.get("interval") == "1h"


def test_time_window_fractional_days(base_args, labels, sic_client):
    base_args.consideration_days = 0.5
    p = GreenScheduling(Config.from_args(base_args), labels, sic_client, clock=lambda: FIXED_NOW)
    assert p.time_window() == ("2024-05-08T00:00:00Z", "2024-05-08T12:00:00Z")


def test_first_aggregate_entity_wins(plugin):
    agg = UsageByEntityResponse.model_validate({
        "items": [entity("X", co2=2.0, cost=0.0), entity("Y", co2=100.0, cost=0.0)],
    })
    # total_co2_weight=1, cost_weight=1 -> 2 + 1
    assert plugin.calculate_sustainability_score(agg, []) == pytest.approx(3.0)


def test_emission_points_from_series(plugin):
    series = UsageSeriesResponse.model_validate({
        "items": [series_point("2024-05-08T10:00:00Z", None), series_point("2024-05-08T11:00:00Z", 0.7)],
    })
    points = plugin.build_emission_data_points(series)
    assert [p.co2 for p in points] == [0.0, 0.7]
    assert points[1].timestamp.hour == 11


# ============================================================
# BATCH
# ============================================================

def test_score_nodes_isolates_failures(plugin, fake_sic):
    seed_reference_node(fake_sic, "SN-A")
    fake_sic.entities["SN-B"] = entity("SN-B", co2=1.0, cost=0.0)
    fake_sic.series["SN-B"] = [series_point("garbage", 1.0)]

    results = plugin.score_nodes(["node-a", "node-b", "node-unlabeled"])

    assert [r.name for r in results] == ["node-a", "node-b", "node-unlabeled"]
    assert results[0].score == 16166 and results[0].ok
    assert results[1].score == 0 and "garbage" in results[1].error
    assert results[2].score == 0 and results[2].ok


def test_concurrent_batch_shares_single_token(plugin, fake_sic):
    for s in ("SN-A", "SN-B", "SN-C"):
        seed_reference_node(fake_sic, s)
    results = plugin.score_nodes(["node-a", "node-b", "node-c"])
    assert [r.score for r in results] == [16166] * 3
    assert fake_sic.token_calls == 1


def test_normalize_scores_delegates(plugin):
    scores = [NodeScore(name="a", score=16166), NodeScore(name="b", score=0)]
    plugin.normalize_scores(scores)
    assert [s.score for s in scores] == [100, 0]


def test_new_green_scheduling_validates(base_args, sic_client):
    from greenscore.errors import ConfigError

    base_args.client_secret = ""
    with pytest.raises(ConfigError):
        new_green_scheduling(base_args, kube_client=StaticLabelLookup({}), sic_client=sic_client)


def test_new_green_scheduling_builds_weights(base_args, sic_client):
    p = new_green_scheduling(base_args, kube_client=StaticLabelLookup({}), sic_client=sic_client)
    assert p.name == "GreenScheduling"
    assert p.weights.co2_decay_weight == 2.0
    assert p.weights.decay_rate == 0.1
