"""
Anomaly lifecycle: open listing, bounded history, acknowledgement, resolution and per-severity summary.

Copyright (c) 2026 Stefan Kumarasinghe

Licensed under the Apache License, Version 2.0 (the "License");
you may not use this file except in compliance with the License.
You may obtain a copy of the License at http://www.apache.org/licenses/LICENSE-2.0
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone
from typing import Callable, Dict, List, Optional

from config import HISTORY_LIMIT
from engine.enums import Severity
from engine.models import DetectedAnomaly
from store.base import AnomalyStore

log = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _open_order(anomaly: DetectedAnomaly) -> tuple:
    return (-anomaly.severity.rank(), -anomaly.detected_at.timestamp())


class AnomalyLifecycleManager:
    """
    Read and transition stored anomalies.

    Reads degrade to empty results when the store fails; transitions report whether a row changed.
    """

    def __init__(
        self,
        store: AnomalyStore,
        history_limit: int = HISTORY_LIMIT,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._store = store
        self._history_limit = history_limit
        self._clock = clock

    async def get_open_anomalies(self, instance: str) -> List[DetectedAnomaly]:
        try:
            rows = await self._store.list_open(instance)
        except Exception as exc:
            log.warning("Failed to load open anomalies for %s: %s", instance, exc)
            return []
        # stores may order by the raw severity column; re-sort on the parsed rank
        return sorted(rows, key=_open_order)

    async def get_anomaly_history(self, instance: str, hours: int) -> List[DetectedAnomaly]:
        if hours <= 0:
            raise ValueError(f"hours must be positive, got {hours}")
        since = self._clock() - timedelta(hours=hours)
        try:
            rows = await self._store.list_history(instance, since, self._history_limit)
        except Exception as exc:
            log.warning("Failed to load anomaly history for %s: %s", instance, exc)
            return []
        return rows[: self._history_limit]

    async def get_anomaly(self, instance: str, anomaly_id: int) -> Optional[DetectedAnomaly]:
        try:
            return await self._store.get(instance, anomaly_id)
        except Exception as exc:
            log.warning("Failed to load anomaly %s/%s: %s", instance, anomaly_id, exc)
            return None

    async def acknowledge_anomaly(self, instance: str, anomaly_id: int, username: str) -> bool:
        try:
            changed = await self._store.acknowledge(instance, anomaly_id, username, self._clock())
        except Exception as exc:
            log.warning("Failed to acknowledge anomaly %s/%s: %s", instance, anomaly_id, exc)
            return False
        if changed:
            log.info("Anomaly %s on %s acknowledged by %s", anomaly_id, instance, username)
        return changed

    async def resolve_anomaly(self, instance: str, anomaly_id: int, notes: Optional[str] = None) -> bool:
        try:
            changed = await self._store.resolve(instance, anomaly_id, notes, self._clock())
        except Exception as exc:
            log.warning("Failed to resolve anomaly %s/%s: %s", instance, anomaly_id, exc)
            return False
        if changed:
            log.info("Anomaly %s on %s resolved", anomaly_id, instance)
        return changed

    async def get_anomaly_summary(self, instance: str) -> Dict[Severity, int]:
        summary = {severity: 0 for severity in Severity}
        try:
            counts = await self._store.count_open_by_severity(instance)
        except Exception as exc:
            log.warning("Failed to summarise anomalies for %s: %s", instance, exc)
            return summary
        for raw, count in counts.items():
            summary[Severity.parse(raw)] += int(count)
        return summary
