"""
Best-match baseline lookup: the hour-of-day bucket, then the day-of-week bucket, then the overall profile.

Copyright (c) 2026 Stefan Kumarasinghe

Licensed under the Apache License, Version 2.0 (the "License");
you may not use this file except in compliance with the License.
You may obtain a copy of the License at http://www.apache.org/licenses/LICENSE-2.0
"""

from __future__ import annotations

from typing import Optional

from config import MIN_SAMPLES
from engine.models import MetricBaseline
from store.base import BaselineStore


class BaselineResolver:
    def __init__(self, store: BaselineStore, min_samples: int = MIN_SAMPLES) -> None:
        self._store = store
        self._min_samples = min_samples

    def _usable(self, baseline: Optional[MetricBaseline]) -> bool:
        return baseline is not None and baseline.sample_count >= self._min_samples

    async def find_best_baseline(
        self,
        instance: str,
        metric: str,
        hour: Optional[int],
        day: Optional[int],
    ) -> Optional[MetricBaseline]:
        # the overall profile is returned even when it is thin; callers guard on stddev
        if hour is not None:
            hourly = await self._store.get(instance, metric, hour_of_day=hour)
            if self._usable(hourly):
                return hourly
        if day is not None:
            daily = await self._store.get(instance, metric, day_of_week=day)
            if self._usable(daily):
                return daily
        return await self._store.get(instance, metric)
