"""
Client code for Redis access, with in-memory fallback if Redis is unavailable.

Copyright (c) 2026 Stefan Kumarasinghe

Licensed under the Apache License, Version 2.0 (the "License");
you may not use this file except in compliance with the License.
You may obtain a copy of the License at http://www.apache.org/licenses/LICENSE-2.0
"""

from __future__ import annotations

import asyncio
import logging
import time
from typing import Any, Optional, Tuple

from config import settings

log = logging.getLogger(__name__)

_redis_client: Any = None
# key -> (value, monotonic expiry or None)
_fallback: dict[str, Tuple[str, Optional[float]]] = {}
_using_fallback = False
_init_lock: Optional[asyncio.Lock] = None
_retry_after_monotonic: float = 0.0

_MAX_FALLBACK_SIZE = int(settings.store_fallback_max_items)
_REDIS_RETRY_COOLDOWN_SECONDS = float(settings.store_redis_retry_cooldown_seconds)
_REDIS_OP_TIMEOUT_SECONDS = 0.5


def _lock() -> asyncio.Lock:
    global _init_lock
    if _init_lock is None:
        _init_lock = asyncio.Lock()
    return _init_lock


def _fallback_get(key: str) -> Optional[str]:
    entry = _fallback.get(key)
    if entry is None:
        return None
    value, expires = entry
    if expires is not None and time.monotonic() >= expires:
        _fallback.pop(key, None)
        return None
    return value


def _fallback_set(key: str, value: str, ttl: Optional[int]) -> None:
    if key not in _fallback and len(_fallback) >= _MAX_FALLBACK_SIZE:
        now = time.monotonic()
        for k in [k for k, (_, exp) in _fallback.items() if exp is not None and now >= exp]:
            _fallback.pop(k, None)
        if len(_fallback) >= _MAX_FALLBACK_SIZE:
            return
    _fallback[key] = (value, time.monotonic() + ttl if ttl else None)


async def get_redis() -> Any:
    global _redis_client, _using_fallback, _retry_after_monotonic

    if _redis_client is not None:
        return _redis_client
    if time.monotonic() < _retry_after_monotonic:
        _using_fallback = True
        return None

    async with _lock():
        if _redis_client is not None:
            return _redis_client
        if time.monotonic() < _retry_after_monotonic:
            _using_fallback = True
            return None
        try:
            import redis.asyncio as aioredis

            client = aioredis.from_url(
                settings.redis_url,
                decode_responses=True,
                socket_connect_timeout=0.5,
                socket_timeout=0.5,
            )
            await asyncio.wait_for(client.ping(), timeout=0.5)
            _redis_client = client
            _retry_after_monotonic = 0.0
            _using_fallback = False
            log.info("Redis connected: %s", settings.redis_url)
            return _redis_client
        except Exception as exc:
            _retry_after_monotonic = time.monotonic() + max(0.0, _REDIS_RETRY_COOLDOWN_SECONDS)
            if not _using_fallback:
                log.warning("Redis unavailable (%s) - using in-memory fallback", exc)
                _using_fallback = True
            return None


async def redis_set_nx(key: str, value: str, ttl: Optional[int] = None) -> bool:
    """Set ``key`` only when absent. Returns True when this call claimed the key."""
    client = await get_redis()
    if client is None:
        if _fallback_get(key) is not None:
            return False
        _fallback_set(key, value, ttl)
        return True
    try:
        claimed = await asyncio.wait_for(
            client.set(key, value, nx=True, ex=ttl or None),
            timeout=_REDIS_OP_TIMEOUT_SECONDS,
        )
        return bool(claimed)
    except Exception as exc:
        log.debug("Redis SET NX error %s: %s", key, exc)
        if _fallback_get(key) is not None:
            return False
        _fallback_set(key, value, ttl)
        return True


async def close_redis() -> None:
    global _redis_client
    client, _redis_client = _redis_client, None
    if client is not None:
        try:
            await client.aclose()
        except Exception as exc:
            log.debug("Redis close error: %s", exc)


def is_using_fallback() -> bool:
    return _using_fallback
