"""
Value types shared by the baseline and anomaly engines: statistical profiles,
detected anomalies and the aggregate statistics produced by a sample source.

Copyright (c) 2026 Stefan Kumarasinghe

Licensed under the Apache License, Version 2.0 (the "License");
you may not use this file except in compliance with the License.
You may obtain a copy of the License at http://www.apache.org/licenses/LICENSE-2.0
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import List, Optional

from engine.enums import AnomalyState, AnomalyType, Direction, Severity

_DAY_NAMES = ("Sunday", "Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday")


@dataclass(frozen=True)
class SampleStats:
    mean: float
    stddev: float
    min: float
    max: float
    median: float
    p95: float
    p99: float
    count: int
    period_start: Optional[datetime] = None
    period_end: Optional[datetime] = None


@dataclass
class MetricBaseline:
    instance: str
    metric_name: str
    category: str
    mean: float
    stddev: float
    min: Optional[float] = None
    max: Optional[float] = None
    median: Optional[float] = None
    p95: Optional[float] = None
    p99: Optional[float] = None
    sample_count: int = 0
    hour_of_day: Optional[int] = None
    day_of_week: Optional[int] = None
    calculated_at: Optional[datetime] = None
    period_start: Optional[datetime] = None
    period_end: Optional[datetime] = None

    @classmethod
    def from_stats(
        cls,
        instance: str,
        metric_name: str,
        category: str,
        stats: SampleStats,
        hour_of_day: Optional[int] = None,
        day_of_week: Optional[int] = None,
        calculated_at: Optional[datetime] = None,
    ) -> MetricBaseline:
        return cls(
            instance=instance,
            metric_name=metric_name,
            category=category,
            mean=stats.mean,
            stddev=stats.stddev,
            min=stats.min,
            max=stats.max,
            median=stats.median,
            p95=stats.p95,
            p99=stats.p99,
            sample_count=stats.count,
            hour_of_day=hour_of_day,
            day_of_week=day_of_week,
            calculated_at=calculated_at,
            period_start=stats.period_start,
            period_end=stats.period_end,
        )

    @property
    def key(self) -> tuple:
        return (self.instance, self.metric_name, self.category, self.hour_of_day, self.day_of_week)

    @property
    def time_context(self) -> str:
        if self.hour_of_day is None and self.day_of_week is None:
            return "Overall"
        parts = []
        if self.day_of_week is not None:
            parts.append(_DAY_NAMES[self.day_of_week])
        if self.hour_of_day is not None:
            parts.append(f"{self.hour_of_day:02d}:00-{self.hour_of_day:02d}:59")
        return " ".join(parts)


@dataclass(frozen=True)
class CorrelatedMetric:
    metric_name: str
    percent_change: float
    direction: Direction


@dataclass
class DetectedAnomaly:
    instance: str
    metric_name: str
    metric_category: str
    detected_at: datetime
    anomaly_value: float
    baseline_mean: float
    baseline_stddev: float
    deviation_sigma: float
    severity: Severity
    direction: Direction
    anomaly_type: AnomalyType = AnomalyType.SPIKE
    root_cause_suggestion: Optional[str] = None
    id: Optional[int] = None
    acknowledged_at: Optional[datetime] = None
    acknowledged_by: Optional[str] = None
    resolved_at: Optional[datetime] = None
    resolution_notes: Optional[str] = None
    # computed at detection time only; stores do not persist it
    correlated_metrics: List[CorrelatedMetric] = field(default_factory=list)

    @property
    def is_open(self) -> bool:
        return self.resolved_at is None

    @property
    def is_acknowledged(self) -> bool:
        return self.acknowledged_at is not None

    @property
    def state(self) -> AnomalyState:
        if self.resolved_at is not None:
            return AnomalyState.RESOLVED
        if self.acknowledged_at is not None:
            return AnomalyState.ACKNOWLEDGED
        return AnomalyState.DETECTED

    @property
    def deviation_label(self) -> str:
        side = "above" if self.direction is Direction.ABOVE else "below"
        return f"{abs(self.deviation_sigma):.1f}σ {side}"

    @property
    def value_label(self) -> str:
        return f"{self.anomaly_value:.2f} (baseline: {self.baseline_mean:.2f} ± {self.baseline_stddev:.2f})"
