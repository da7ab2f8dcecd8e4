"""
Persistence interfaces for baselines and detected anomalies.

Copyright (c) 2026 Stefan Kumarasinghe

Licensed under the Apache License, Version 2.0 (the "License");
you may not use this file except in compliance with the License.
You may obtain a copy of the License at http://www.apache.org/licenses/LICENSE-2.0
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from datetime import datetime, timezone
from typing import Dict, List, Optional

from engine.models import DetectedAnomaly, MetricBaseline


def as_utc(ts: Optional[datetime]) -> Optional[datetime]:
    # SQLite hands timestamps back without tzinfo; everything is stored as UTC
    if ts is None:
        return None
    if ts.tzinfo is None:
        return ts.replace(tzinfo=timezone.utc)
    return ts.astimezone(timezone.utc)


class BaselineStore(ABC):

    @abstractmethod
    async def upsert(self, baseline: MetricBaseline) -> None:
        """Create or overwrite the row for the baseline's bucket key."""

    @abstractmethod
    async def get(
        self,
        instance: str,
        metric: str,
        hour_of_day: Optional[int] = None,
        day_of_week: Optional[int] = None,
    ) -> Optional[MetricBaseline]: ...

    @abstractmethod
    async def list_baselines(self, instance: str, metric: Optional[str] = None) -> List[MetricBaseline]: ...


class AnomalyStore(ABC):

    @abstractmethod
    async def insert(self, anomaly: DetectedAnomaly) -> int:
        """Append a new anomaly record and return its generated id."""

    @abstractmethod
    async def get(self, instance: str, anomaly_id: int) -> Optional[DetectedAnomaly]: ...

    @abstractmethod
    async def list_open(self, instance: str) -> List[DetectedAnomaly]: ...

    @abstractmethod
    async def list_history(self, instance: str, since: datetime, limit: int) -> List[DetectedAnomaly]: ...

    @abstractmethod
    async def count_open_by_severity(self, instance: str) -> Dict[str, int]: ...

    @abstractmethod
    async def acknowledge(self, instance: str, anomaly_id: int, user: str, at: datetime) -> bool: ...

    @abstractmethod
    async def resolve(self, instance: str, anomaly_id: int, notes: Optional[str], at: datetime) -> bool: ...
