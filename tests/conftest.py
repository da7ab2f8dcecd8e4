import os
import sys
from datetime import datetime, timedelta, timezone

import pytest

# ensure workspace root is on sys.path so our application packages can be imported
ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
if ROOT not in sys.path:
    sys.path.insert(0, ROOT)

import database
import store.client as client
from engine.models import MetricBaseline


@pytest.fixture(autouse=True)
def clear_fallback(monkeypatch):
    """Wipe the in-memory redis fallback before and after each test and make
    the client always use it so tests don't attempt network.
    """
    client._fallback.clear()
    monkeypatch.setattr(client, "_redis_client", None)

    async def no_redis():
        return None

    monkeypatch.setattr(client, "get_redis", no_redis)
    monkeypatch.setattr(client, "_using_fallback", True)
    yield
    client._fallback.clear()


@pytest.fixture
def db():
    """Fresh in-memory SQLite schema for one test."""
    database.dispose_database()
    database.init_database("sqlite://")
    database.init_db()
    yield database.get_db_session
    database.dispose_database()


@pytest.fixture
def fixed_now():
    # a Wednesday, 14:30 UTC -> hour 14, PostgreSQL DOW 3
    return datetime(2026, 10, 14, 14, 30, tzinfo=timezone.utc)


def make_baseline(
    metric="total_connections",
    mean=100.0,
    stddev=10.0,
    count=50,
    hour=None,
    day=None,
    instance="db1",
    category="system",
):
    return MetricBaseline(
        instance=instance,
        metric_name=metric,
        category=category,
        mean=mean,
        stddev=stddev,
        min=mean - 3 * stddev,
        max=mean + 3 * stddev,
        median=mean,
        p95=mean + 2 * stddev,
        p99=mean + 2.5 * stddev,
        sample_count=count,
        hour_of_day=hour,
        day_of_week=day,
        calculated_at=datetime(2026, 10, 1, tzinfo=timezone.utc),
    )


def hourly_series(start, hours, value_fn):
    """(timestamps, values) with one sample per hour from ``start``."""
    ts = [start + timedelta(hours=i) for i in range(hours)]
    return ts, [float(value_fn(t)) for t in ts]


class MemoryBaselineStore:
    """Dict-backed stand-in for the baseline store."""

    def __init__(self, baselines=()):
        self.rows = {}
        self.gets = []
        for b in baselines:
            self.rows[(b.instance, b.metric_name, b.hour_of_day, b.day_of_week)] = b

    async def upsert(self, baseline):
        self.rows[(baseline.instance, baseline.metric_name, baseline.hour_of_day, baseline.day_of_week)] = baseline

    async def get(self, instance, metric, hour_of_day=None, day_of_week=None):
        self.gets.append((metric, hour_of_day, day_of_week))
        return self.rows.get((instance, metric, hour_of_day, day_of_week))

    async def list_baselines(self, instance, metric=None):
        return [b for (inst, m, _, _), b in self.rows.items() if inst == instance and metric in (None, m)]
