"""
Test Suite for API Routes - Anomalies, Baselines and Samples

Copyright (c) 2026 Stefan Kumarasinghe

Licensed under the Apache License, Version 2.0 (the "License");
you may not use this file except in compliance with the License.
You may obtain a copy of the License at http://www.apache.org/licenses/LICENSE-2.0
"""

from datetime import datetime, timezone

import pytest
from fastapi import HTTPException

from api.requests import CalculateBaselinesRequest, ResolveRequest, SampleIngestRequest
from api.routes import anomalies as anomalies_route
from api.routes import baselines as baselines_route
from api.routes import samples as samples_route
from conftest import make_baseline
from datasources.exceptions import DataSourceUnavailable
from engine.baseline import BaselineRunReport
from engine.enums import AnomalyState, Direction, Severity
from engine.models import CorrelatedMetric, DetectedAnomaly
from store.exceptions import PersistenceError

NOW = datetime(2026, 10, 14, 14, 30, tzinfo=timezone.utc)


def _anomaly(anomaly_id=1, **kwargs):
    a = DetectedAnomaly(
        id=anomaly_id,
        instance="db1",
        metric_name="total_connections",
        metric_category="system",
        detected_at=NOW,
        anomaly_value=140.0,
        baseline_mean=100.0,
        baseline_stddev=10.0,
        deviation_sigma=4.0,
        severity=Severity.CRITICAL,
        direction=Direction.ABOVE,
        root_cause_suggestion="hint",
    )
    for k, v in kwargs.items():
        setattr(a, k, v)
    return a


class DummyLifecycle:
    def __init__(self, rows=()):
        self.rows = {a.id: a for a in rows}
        self.calls = []

    async def get_open_anomalies(self, instance):
        return [a for a in self.rows.values() if a.is_open]

    async def get_anomaly_history(self, instance, hours):
        self.calls.append(("history", hours))
        if hours <= 0:
            raise ValueError("hours must be positive")
        return list(self.rows.values())

    async def get_anomaly(self, instance, anomaly_id):
        a = self.rows.get(anomaly_id)
        return a if a is not None and a.instance == instance else None

    async def acknowledge_anomaly(self, instance, anomaly_id, username):
        self.calls.append(("ack", anomaly_id, username))
        self.rows[anomaly_id].acknowledged_at = NOW
        self.rows[anomaly_id].acknowledged_by = username
        return True

    async def resolve_anomaly(self, instance, anomaly_id, notes):
        a = self.rows[anomaly_id]
        if a.resolved_at is not None:
            return False
        a.resolved_at = NOW
        a.resolution_notes = notes
        return True

    async def get_anomaly_summary(self, instance):
        return {Severity.LOW: 0, Severity.MEDIUM: 1, Severity.HIGH: 0, Severity.CRITICAL: 2}


class DummyService:
    def __init__(self, rows=()):
        self.lifecycle = DummyLifecycle(rows)
        self.recorded = []

    async def detect_anomalies(self, instance):
        a = _anomaly(None)
        a.correlated_metrics = [CorrelatedMetric("active_queries", 150.0, Direction.ABOVE)]
        return [a]

    async def calculate_baselines(self, instance, training_days=None):
        if instance == "bad":
            raise RuntimeError("database is gone")
        if instance == "down":
            raise DataSourceUnavailable("sample window query failed")
        return BaselineRunReport(instance=instance, training_days=training_days or 7, saved=32)

    async def list_baselines(self, instance, metric=None):
        if instance == "down":
            raise PersistenceError("baseline listing failed")
        return [make_baseline(hour=3)]

    async def record_samples(self, instance, values, sampled_at=None):
        self.recorded.append((instance, dict(values)))
        return len(values)


@pytest.fixture
def service(monkeypatch):
    svc = DummyService([_anomaly(1), _anomaly(2, severity=Severity.MEDIUM)])
    for mod in (anomalies_route, baselines_route, samples_route):
        monkeypatch.setattr(mod, "get_service", lambda: svc)
    return svc


@pytest.mark.asyncio
async def test_detect_returns_correlated_metrics(service):
    views = await anomalies_route.detect_anomalies(instance="db1")
    assert len(views) == 1
    assert views[0].id is None
    assert views[0].correlated_metrics[0].metric_name == "active_queries"
    assert views[0].deviation_label == "4.0σ above"
    assert views[0].value_label == "140.00 (baseline: 100.00 ± 10.00)"


@pytest.mark.asyncio
async def test_open_and_summary(service):
    views = await anomalies_route.open_anomalies(instance="db1")
    assert [v.id for v in views] == [1, 2]
    assert views[0].state is AnomalyState.DETECTED

    summary = await anomalies_route.anomaly_summary(instance="db1")
    assert summary.total == 3
    assert summary.counts[Severity.CRITICAL] == 2
    assert summary.model_dump()["counts"][Severity.LOW] == 0


@pytest.mark.asyncio
async def test_history_passes_hours(service):
    await anomalies_route.anomaly_history(instance="db1", hours=48)
    assert service.lifecycle.calls == [("history", 48)]


@pytest.mark.asyncio
async def test_history_value_error_becomes_400(service):
    with pytest.raises(HTTPException) as exc:
        await anomalies_route.anomaly_history(instance="db1", hours=0)
    assert exc.value.status_code == 400


@pytest.mark.asyncio
async def test_acknowledge(service):
    resp = await anomalies_route.acknowledge_anomaly(1, instance="db1", username="alice")
    assert resp.status == "acknowledged"
    assert resp.anomaly.acknowledged_by == "alice"
    assert resp.anomaly.state is AnomalyState.ACKNOWLEDGED


@pytest.mark.asyncio
async def test_unknown_id_is_404(service):
    with pytest.raises(HTTPException) as exc:
        await anomalies_route.acknowledge_anomaly(999, instance="db1", username="alice")
    assert exc.value.status_code == 404

    with pytest.raises(HTTPException) as exc:
        await anomalies_route.resolve_anomaly(1, ResolveRequest(instance="other"))
    assert exc.value.status_code == 404
    assert ("ack", 999, "alice") not in service.lifecycle.calls


@pytest.mark.asyncio
async def test_resolve_then_resolve_again(service):
    first = await anomalies_route.resolve_anomaly(1, ResolveRequest(instance="db1", notes="fixed"))
    assert first.status == "resolved"
    assert first.anomaly.resolution_notes == "fixed"

    again = await anomalies_route.resolve_anomaly(1, ResolveRequest(instance="db1", notes="other"))
    assert again.status == "unchanged"
    assert again.anomaly.resolution_notes == "fixed"


@pytest.mark.asyncio
async def test_calculate_baselines_route(service):
    resp = await baselines_route.calculate_baselines(CalculateBaselinesRequest(instance="db1", training_days=14))
    assert resp.saved == 32
    assert resp.training_days == 14


@pytest.mark.asyncio
async def test_unexpected_error_becomes_500(service):
    with pytest.raises(HTTPException) as exc:
        await baselines_route.calculate_baselines(CalculateBaselinesRequest(instance="bad"))
    assert exc.value.status_code == 500
    assert "database is gone" in exc.value.detail


@pytest.mark.asyncio
async def test_backend_errors_become_503(service):
    with pytest.raises(HTTPException) as exc:
        await baselines_route.calculate_baselines(CalculateBaselinesRequest(instance="down"))
    assert exc.value.status_code == 503

    with pytest.raises(HTTPException) as exc:
        await baselines_route.list_baselines(instance="down", metric=None)
    assert exc.value.status_code == 503
    assert "baseline listing failed" in exc.value.detail


@pytest.mark.asyncio
async def test_list_baselines_route(service):
    views = await baselines_route.list_baselines(instance="db1", metric=None)
    assert views[0].time_context == "03:00-03:59"


@pytest.mark.asyncio
async def test_ingest_samples_route(service):
    resp = await samples_route.ingest_samples(
        SampleIngestRequest(instance="db1", values={"total_connections": 12.0}),
    )
    assert resp.recorded == 1
    assert service.recorded == [("db1", {"total_connections": 12.0})]
