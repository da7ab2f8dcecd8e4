"""
Test Suite for Anomaly Lifecycle Manager

Copyright (c) 2026 Stefan Kumarasinghe

Licensed under the Apache License, Version 2.0 (the "License");
you may not use this file except in compliance with the License.
You may obtain a copy of the License at http://www.apache.org/licenses/LICENSE-2.0
"""

from datetime import datetime, timedelta, timezone

import pytest

from db_models import DetectedAnomalyRow
from engine.enums import AnomalyState, Direction, Severity
from engine.lifecycle import AnomalyLifecycleManager
from engine.models import DetectedAnomaly
from store import SqlAnomalyStore

NOW = datetime(2026, 10, 14, 14, 30, tzinfo=timezone.utc)


def _anomaly(severity=Severity.HIGH, minutes_ago=0, instance="db1", metric="total_connections"):
    return DetectedAnomaly(
        instance=instance,
        metric_name=metric,
        metric_category="system",
        detected_at=NOW - timedelta(minutes=minutes_ago),
        anomaly_value=135.0,
        baseline_mean=100.0,
        baseline_stddev=10.0,
        deviation_sigma=3.5,
        severity=severity,
        direction=Direction.ABOVE,
    )


@pytest.fixture
def store(db):
    return SqlAnomalyStore()


@pytest.fixture
def manager(store):
    return AnomalyLifecycleManager(store, clock=lambda: NOW)


@pytest.mark.asyncio
async def test_open_anomalies_ordered_by_severity_then_recency(store, manager):
    low_recent = await store.insert(_anomaly(Severity.LOW, minutes_ago=1))
    critical_old = await store.insert(_anomaly(Severity.CRITICAL, minutes_ago=50))
    high_new = await store.insert(_anomaly(Severity.HIGH, minutes_ago=2))
    high_old = await store.insert(_anomaly(Severity.HIGH, minutes_ago=20))

    rows = await manager.get_open_anomalies("db1")

    assert [a.id for a in rows] == [critical_old, high_new, high_old, low_recent]
    assert rows[0].detected_at == NOW - timedelta(minutes=50)


@pytest.mark.asyncio
async def test_acknowledge_keeps_anomaly_open(store, manager):
    anomaly_id = await store.insert(_anomaly())

    assert await manager.acknowledge_anomaly("db1", anomaly_id, "alice") is True

    rows = await manager.get_open_anomalies("db1")
    assert len(rows) == 1
    assert rows[0].acknowledged_by == "alice"
    assert rows[0].acknowledged_at == NOW
    assert rows[0].state is AnomalyState.ACKNOWLEDGED
    assert rows[0].is_open


@pytest.mark.asyncio
async def test_resolve_moves_anomaly_to_history_only(store, manager):
    anomaly_id = await store.insert(_anomaly())

    assert await manager.resolve_anomaly("db1", anomaly_id, "restarted pooler") is True

    assert await manager.get_open_anomalies("db1") == []
    history = await manager.get_anomaly_history("db1", 24)
    assert [a.id for a in history] == [anomaly_id]
    assert history[0].resolution_notes == "restarted pooler"
    assert history[0].state is AnomalyState.RESOLVED


@pytest.mark.asyncio
async def test_second_resolve_is_a_noop(store):
    anomaly_id = await store.insert(_anomaly())
    first = AnomalyLifecycleManager(store, clock=lambda: NOW)
    later = AnomalyLifecycleManager(store, clock=lambda: NOW + timedelta(hours=1))

    assert await first.resolve_anomaly("db1", anomaly_id, "first") is True
    assert await later.resolve_anomaly("db1", anomaly_id, "second") is False

    row = await first.get_anomaly("db1", anomaly_id)
    assert row.resolved_at == NOW
    assert row.resolution_notes == "first"


@pytest.mark.asyncio
async def test_transitions_are_scoped_to_instance(store, manager):
    anomaly_id = await store.insert(_anomaly(instance="db1"))

    assert await manager.acknowledge_anomaly("db2", anomaly_id, "bob") is False
    assert await manager.resolve_anomaly("db2", anomaly_id, None) is False
    assert await manager.acknowledge_anomaly("db1", 9999, "bob") is False
    assert await manager.get_anomaly("db2", anomaly_id) is None


@pytest.mark.asyncio
async def test_history_window_and_limit(store):
    manager = AnomalyLifecycleManager(store, history_limit=5, clock=lambda: NOW)
    for i in range(7):
        await store.insert(_anomaly(minutes_ago=i))
    await store.insert(_anomaly(minutes_ago=30 * 60))

    history = await manager.get_anomaly_history("db1", 24)
    assert len(history) == 5
    assert [a.detected_at for a in history] == sorted((a.detected_at for a in history), reverse=True)

    wide = AnomalyLifecycleManager(store, clock=lambda: NOW)
    assert len(await wide.get_anomaly_history("db1", 48)) == 8

    with pytest.raises(ValueError):
        await wide.get_anomaly_history("db1", 0)


@pytest.mark.asyncio
async def test_default_history_cap_is_one_hundred(store, manager):
    for i in range(105):
        await store.insert(_anomaly(minutes_ago=i))
    assert len(await manager.get_anomaly_history("db1", 24)) == 100


@pytest.mark.asyncio
async def test_summary_is_zero_filled(store, manager):
    await store.insert(_anomaly(Severity.CRITICAL))
    resolved = await store.insert(_anomaly(Severity.HIGH))
    await manager.resolve_anomaly("db1", resolved, None)

    summary = await manager.get_anomaly_summary("db1")

    assert summary == {Severity.LOW: 0, Severity.MEDIUM: 0, Severity.HIGH: 0, Severity.CRITICAL: 1}
    assert await manager.get_anomaly_summary("empty") == {s: 0 for s in Severity}


@pytest.mark.asyncio
async def test_unknown_stored_values_fall_back(db, store, manager):
    with db() as s:
        s.add(DetectedAnomalyRow(
            instance_id="db1",
            metric_name="total_connections",
            metric_category="system",
            detected_at=NOW,
            anomaly_value=1.0,
            baseline_mean=0.5,
            baseline_stddev=0.1,
            deviation_sigma=5.0,
            severity="CATASTROPHIC",
            anomaly_type="DRIFT",
            direction="SIDEWAYS",
        ))
    await store.insert(_anomaly(Severity.LOW, minutes_ago=5))

    rows = await manager.get_open_anomalies("db1")
    assert [r.severity for r in rows] == [Severity.LOW, Severity.LOW]
    assert rows[0].direction is Direction.ABOVE
    assert rows[0].anomaly_type.value == "SPIKE"

    summary = await manager.get_anomaly_summary("db1")
    assert summary[Severity.LOW] == 2


@pytest.mark.asyncio
async def test_store_failures_degrade_gracefully():
    class BrokenStore:
        async def list_open(self, instance):
            raise RuntimeError("db down")

        async def list_history(self, instance, since, limit):
            raise RuntimeError("db down")

        async def count_open_by_severity(self, instance):
            raise RuntimeError("db down")

        async def acknowledge(self, instance, anomaly_id, user, at):
            raise RuntimeError("db down")

        async def get(self, instance, anomaly_id):
            raise RuntimeError("db down")

    manager = AnomalyLifecycleManager(BrokenStore(), clock=lambda: NOW)
    assert await manager.get_open_anomalies("db1") == []
    assert await manager.get_anomaly_history("db1", 24) == []
    assert await manager.get_anomaly("db1", 1) is None
    assert await manager.acknowledge_anomaly("db1", 1, "alice") is False
    assert await manager.get_anomaly_summary("db1") == {s: 0 for s in Severity}


@pytest.mark.asyncio
async def test_offset_timestamps_are_stored_as_utc(store):
    plus_ten = timezone(timedelta(hours=10))
    anomaly = _anomaly()
    anomaly.detected_at = NOW.astimezone(plus_ten)
    anomaly_id = await store.insert(anomaly)

    local_clock = AnomalyLifecycleManager(store, clock=lambda: (NOW + timedelta(minutes=5)).astimezone(plus_ten))
    assert await local_clock.acknowledge_anomaly("db1", anomaly_id, "alice") is True
    assert await local_clock.resolve_anomaly("db1", anomaly_id, "done") is True

    row = await store.get("db1", anomaly_id)
    assert row.detected_at == NOW
    assert row.detected_at.utcoffset() == timedelta(0)
    assert row.acknowledged_at == NOW + timedelta(minutes=5)
    assert row.resolved_at == NOW + timedelta(minutes=5)

    # stored at 14:30 UTC, not the local 00:30 of the next day
    assert await store.list_history("db1", NOW + timedelta(hours=1), 10) == []
    assert [a.id for a in await store.list_history("db1", NOW - timedelta(minutes=1), 10)] == [anomaly_id]
