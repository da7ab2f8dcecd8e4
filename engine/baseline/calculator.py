"""
Baseline calculation: one overall, 24 hour-of-day and 7 day-of-week buckets per catalog metric,
each aggregated over the training window and upserted into the baseline store.

Copyright (c) 2026 Stefan Kumarasinghe

Licensed under the Apache License, Version 2.0 (the "License");
you may not use this file except in compliance with the License.
You may obtain a copy of the License at http://www.apache.org/licenses/LICENSE-2.0
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Callable, Iterator, Optional, Tuple

from config import DAYS_PER_WEEK, HOURS_PER_DAY, MIN_SAMPLES
from datasources.base import SampleSource
from engine.catalog import DEFAULT_CATALOG, Catalog, MetricDefinition
from engine.models import MetricBaseline
from store.base import BaselineStore

log = logging.getLogger(__name__)

_SAVED = "saved"
_SKIPPED = "skipped"
_FAILED = "failed"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def buckets() -> Iterator[Tuple[Optional[int], Optional[int]]]:
    """(hour_of_day, day_of_week) for the overall, hourly and daily buckets."""
    yield None, None
    for hour in range(HOURS_PER_DAY):
        yield hour, None
    for day in range(DAYS_PER_WEEK):
        yield None, day


@dataclass
class BaselineRunReport:
    instance: str
    training_days: int
    saved: int = 0
    skipped: int = 0
    failed: int = 0
    started_at: Optional[datetime] = None
    finished_at: Optional[datetime] = None

    def record(self, outcome: str) -> None:
        if outcome == _SAVED:
            self.saved += 1
        elif outcome == _SKIPPED:
            self.skipped += 1
        else:
            self.failed += 1

    @property
    def total(self) -> int:
        return self.saved + self.skipped + self.failed


class BaselineCalculator:
    def __init__(
        self,
        sample_source: SampleSource,
        baseline_store: BaselineStore,
        catalog: Catalog = DEFAULT_CATALOG,
        min_samples: int = MIN_SAMPLES,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._source = sample_source
        self._store = baseline_store
        self._catalog = catalog
        self._min_samples = min_samples
        self._clock = clock

    async def calculate_baselines(self, instance: str, training_days: int) -> BaselineRunReport:
        """
        Recompute every bucket of every catalog metric for ``instance``.

        A bucket whose source read or store write fails is counted as failed and the run moves on;
        buckets with fewer than ``min_samples`` samples are skipped, leaving any earlier row in place.
        """
        if training_days <= 0:
            raise ValueError(f"training_days must be positive, got {training_days}")

        report = BaselineRunReport(instance=instance, training_days=training_days, started_at=self._clock())
        log.info("Calculating baselines for instance %s over %d days", instance, training_days)

        for metric in self._catalog:
            for hour, day in buckets():
                outcome = await self._calculate_bucket(instance, metric, training_days, hour, day, report.started_at)
                report.record(outcome)

        report.finished_at = self._clock()
        log.info(
            "Baseline calculation completed for instance %s: %d saved, %d skipped, %d failed",
            instance, report.saved, report.skipped, report.failed,
        )
        return report

    async def _calculate_bucket(
        self,
        instance: str,
        metric: MetricDefinition,
        training_days: int,
        hour: Optional[int],
        day: Optional[int],
        calculated_at: Optional[datetime],
    ) -> str:
        try:
            stats = await self._source.get_samples(
                instance, metric.name, training_days, hour_filter=hour, day_filter=day,
            )
            if stats is None or stats.count < self._min_samples:
                return _SKIPPED
            await self._store.upsert(MetricBaseline.from_stats(
                instance=instance,
                metric_name=metric.name,
                category=metric.category,
                stats=stats,
                hour_of_day=hour,
                day_of_week=day,
                calculated_at=calculated_at,
            ))
            return _SAVED
        except Exception as exc:
            log.warning(
                "Failed to calculate baseline for %s/%s (hour=%s, day=%s): %s",
                instance, metric.name, hour, day, exc,
            )
            return _FAILED
