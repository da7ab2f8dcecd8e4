"""
Test Suite for Store Client and Keys

Copyright (c) 2026 Stefan Kumarasinghe

Licensed under the Apache License, Version 2.0 (the "License");
you may not use this file except in compliance with the License.
You may obtain a copy of the License at http://www.apache.org/licenses/LICENSE-2.0
"""

import pytest

from store import keys
from store.client import _fallback, redis_set_nx


@pytest.mark.asyncio
async def test_set_nx_claims_once():
    assert await redis_set_nx("k1", "v1", ttl=60) is True
    assert await redis_set_nx("k1", "v2", ttl=60) is False
    assert _fallback["k1"][0] == "v1"


@pytest.mark.asyncio
async def test_expired_fallback_entries_are_reclaimable():
    _fallback["k2"] = ("old", 0.0)
    assert await redis_set_nx("k2", "new", ttl=60) is True
    assert _fallback["k2"][0] == "new"


def test_alert_cooldown_keys():
    a = keys.alert_cooldown("db1", "ANOMALY_A")
    assert a.startswith("pgb:")
    assert ":alert:" in a
    assert a == keys.alert_cooldown("db1", "ANOMALY_A")
    assert a != keys.alert_cooldown("db2", "ANOMALY_A")
    assert a != keys.alert_cooldown("db1", "ANOMALY_B")
