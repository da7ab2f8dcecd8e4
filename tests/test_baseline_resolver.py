"""
Test Suite for Baseline Resolver

Copyright (c) 2026 Stefan Kumarasinghe

Licensed under the Apache License, Version 2.0 (the "License");
you may not use this file except in compliance with the License.
You may obtain a copy of the License at http://www.apache.org/licenses/LICENSE-2.0
"""

import pytest

from conftest import MemoryBaselineStore, make_baseline
from engine.baseline import BaselineResolver


@pytest.mark.asyncio
async def test_prefers_hourly_bucket():
    store = MemoryBaselineStore([
        make_baseline(mean=1.0, count=50, hour=14),
        make_baseline(mean=2.0, count=50, day=3),
        make_baseline(mean=3.0, count=500),
    ])
    best = await BaselineResolver(store).find_best_baseline("db1", "total_connections", 14, 3)
    assert best.mean == 1.0


@pytest.mark.asyncio
async def test_thin_hourly_falls_back_to_daily():
    store = MemoryBaselineStore([
        make_baseline(mean=1.0, count=5, hour=14),
        make_baseline(mean=2.0, count=20, day=3),
        make_baseline(mean=3.0, count=500),
    ])
    best = await BaselineResolver(store).find_best_baseline("db1", "total_connections", 14, 3)
    assert best.mean == 2.0
    assert best.day_of_week == 3


@pytest.mark.asyncio
async def test_overall_returned_even_when_thin():
    store = MemoryBaselineStore([
        make_baseline(mean=1.0, count=9, hour=14),
        make_baseline(mean=2.0, count=9, day=3),
        make_baseline(mean=3.0, count=4),
    ])
    best = await BaselineResolver(store).find_best_baseline("db1", "total_connections", 14, 3)
    assert best.mean == 3.0
    assert store.gets == [
        ("total_connections", 14, None),
        ("total_connections", None, 3),
        ("total_connections", None, None),
    ]


@pytest.mark.asyncio
async def test_nothing_stored_returns_none():
    best = await BaselineResolver(MemoryBaselineStore()).find_best_baseline("db1", "total_connections", 14, 3)
    assert best is None


@pytest.mark.asyncio
async def test_min_samples_is_configurable():
    store = MemoryBaselineStore([make_baseline(mean=1.0, count=5, hour=14), make_baseline(mean=3.0)])
    best = await BaselineResolver(store, min_samples=5).find_best_baseline("db1", "total_connections", 14, 3)
    assert best.mean == 1.0


@pytest.mark.asyncio
async def test_store_errors_propagate():
    class BrokenStore(MemoryBaselineStore):
        async def get(self, instance, metric, hour_of_day=None, day_of_week=None):
            raise RuntimeError("db gone")

    with pytest.raises(RuntimeError):
        await BaselineResolver(BrokenStore()).find_best_baseline("db1", "total_connections", 14, 3)
