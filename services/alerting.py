"""
Alert dispatch for high-severity anomalies: per-key cooldown backed by the Redis store and optional webhook delivery.

Copyright (c) 2026 Stefan Kumarasinghe

Licensed under the Apache License, Version 2.0 (the "License");
you may not use this file except in compliance with the License.
You may obtain a copy of the License at http://www.apache.org/licenses/LICENSE-2.0
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from typing import Any, Callable, Dict, Optional

import httpx

from config import ALERT_SOURCE
from datasources.retry import retry
from store import keys
from store.client import redis_set_nx

log = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class AlertDispatcher(ABC):

    @abstractmethod
    async def fire_alert(self, instance: str, alert_key: str, title: str, message: str) -> None:
        """Deliver an alert; callers treat any exception as non-fatal."""

    async def aclose(self) -> None:
        return None


class WebhookAlertDispatcher(AlertDispatcher):
    def __init__(
        self,
        webhook_url: Optional[str] = None,
        cooldown_seconds: int = 300,
        timeout_seconds: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._webhook_url = webhook_url
        self._cooldown_seconds = int(cooldown_seconds)
        self._timeout = httpx.Timeout(timeout_seconds)
        self._transport = transport
        self._clock = clock

    async def _claim(self, instance: str, alert_key: str) -> bool:
        if self._cooldown_seconds <= 0:
            return True
        mark = keys.alert_cooldown(instance, alert_key)
        return await redis_set_nx(mark, self._clock().isoformat(), ttl=self._cooldown_seconds)

    async def fire_alert(self, instance: str, alert_key: str, title: str, message: str) -> None:
        if not await self._claim(instance, alert_key):
            log.debug("Alert %s:%s suppressed by cooldown", instance, alert_key)
            return

        if self._webhook_url:
            await self._send_webhook(instance, alert_key, title, message)

        log.info("Alert sent: [%s] %s", instance, title)

    def _payload(self, instance: str, alert_key: str, title: str, message: str) -> Dict[str, Any]:
        return {
            "timestamp": self._clock().isoformat(),
            "instance": instance,
            "alertType": alert_key,
            "title": title,
            "message": message,
            "source": ALERT_SOURCE,
        }

    @retry(attempts=3, delay=0.5, backoff=2.0, exceptions=(httpx.TransportError,))
    async def _post(self, payload: Dict[str, Any]) -> httpx.Response:
        async with httpx.AsyncClient(timeout=self._timeout, transport=self._transport) as client:
            return await client.post(self._webhook_url, json=payload)

    async def _send_webhook(self, instance: str, alert_key: str, title: str, message: str) -> None:
        try:
            resp = await self._post(self._payload(instance, alert_key, title, message))
        except httpx.HTTPError as exc:
            log.error("Failed to send webhook alert to %s: %s", self._webhook_url, exc)
            return
        if resp.is_success:
            log.debug("Webhook alert delivered to %s (%d)", self._webhook_url, resp.status_code)
        else:
            log.warning("Webhook alert to %s returned status %d", self._webhook_url, resp.status_code)
