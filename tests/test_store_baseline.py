"""
Test Suite for Baseline Store

Copyright (c) 2026 Stefan Kumarasinghe

Licensed under the Apache License, Version 2.0 (the "License");
you may not use this file except in compliance with the License.
You may obtain a copy of the License at http://www.apache.org/licenses/LICENSE-2.0
"""

import pytest

from conftest import make_baseline
from store import SqlBaselineStore


@pytest.mark.asyncio
async def test_upsert_overwrites_same_bucket(db):
    store = SqlBaselineStore()
    await store.upsert(make_baseline(mean=100.0))
    await store.upsert(make_baseline(mean=120.0, count=77))

    rows = await store.list_baselines("db1")
    assert len(rows) == 1
    assert rows[0].mean == 120.0
    assert rows[0].sample_count == 77
    assert rows[0].hour_of_day is None and rows[0].day_of_week is None


@pytest.mark.asyncio
async def test_buckets_are_distinct_keys(db):
    store = SqlBaselineStore()
    await store.upsert(make_baseline(mean=1.0))
    await store.upsert(make_baseline(mean=2.0, hour=0))
    await store.upsert(make_baseline(mean=3.0, day=0))
    await store.upsert(make_baseline(mean=4.0, metric="active_queries"))

    assert (await store.get("db1", "total_connections")).mean == 1.0
    assert (await store.get("db1", "total_connections", hour_of_day=0)).mean == 2.0
    assert (await store.get("db1", "total_connections", day_of_week=0)).mean == 3.0
    assert await store.get("db1", "total_connections", hour_of_day=1) is None
    assert await store.get("db2", "total_connections") is None
    assert len(await store.list_baselines("db1", "total_connections")) == 3
    assert len(await store.list_baselines("db1")) == 4


@pytest.mark.asyncio
async def test_roundtrip_preserves_timestamps_as_utc(db):
    store = SqlBaselineStore()
    original = make_baseline(hour=7)
    await store.upsert(original)
    loaded = await store.get("db1", "total_connections", hour_of_day=7)
    assert loaded.calculated_at == original.calculated_at
    assert loaded.calculated_at.tzinfo is not None
    assert loaded.p99 == original.p99
