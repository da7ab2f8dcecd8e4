"""
Response models for API endpoints.

Copyright (c) 2026 Stefan Kumarasinghe

Licensed under the Apache License, Version 2.0 (the "License");
you may not use this file except in compliance with the License.
You may obtain a copy of the License at http://www.apache.org/licenses/LICENSE-2.0
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, List, Optional

import numpy as np
from pydantic import BaseModel, Field, model_serializer

from engine.baseline import BaselineRunReport
from engine.enums import AnomalyState, AnomalyType, Direction, Severity
from engine.models import DetectedAnomaly, MetricBaseline


def _coerce(obj: Any) -> Any:
    if isinstance(obj, dict):
        return {k: _coerce(v) for k, v in obj.items()}
    if isinstance(obj, list):
        return [_coerce(v) for v in obj]
    if isinstance(obj, np.integer):
        return int(obj)
    if isinstance(obj, np.floating):
        return float(obj)
    return obj


class NpModel(BaseModel):

    @model_serializer(mode="wrap")
    def _serialize(self, handler: Any) -> Any:
        return _coerce(handler(self))


class BaselineView(NpModel):
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
    sample_count: int
    hour_of_day: Optional[int] = None
    day_of_week: Optional[int] = None
    time_context: str
    calculated_at: Optional[datetime] = None
    period_start: Optional[datetime] = None
    period_end: Optional[datetime] = None

    @classmethod
    def from_baseline(cls, b: MetricBaseline) -> BaselineView:
        return cls(
            instance=b.instance,
            metric_name=b.metric_name,
            category=b.category,
            mean=b.mean,
            stddev=b.stddev,
            min=b.min,
            max=b.max,
            median=b.median,
            p95=b.p95,
            p99=b.p99,
            sample_count=b.sample_count,
            hour_of_day=b.hour_of_day,
            day_of_week=b.day_of_week,
            time_context=b.time_context,
            calculated_at=b.calculated_at,
            period_start=b.period_start,
            period_end=b.period_end,
        )


class BaselineRunResponse(BaseModel):
    instance: str
    training_days: int
    saved: int
    skipped: int
    failed: int
    started_at: Optional[datetime] = None
    finished_at: Optional[datetime] = None

    @classmethod
    def from_report(cls, report: BaselineRunReport) -> BaselineRunResponse:
        return cls(
            instance=report.instance,
            training_days=report.training_days,
            saved=report.saved,
            skipped=report.skipped,
            failed=report.failed,
            started_at=report.started_at,
            finished_at=report.finished_at,
        )


class CorrelatedMetricView(NpModel):
    metric_name: str
    percent_change: float
    direction: Direction


class AnomalyView(NpModel):
    id: Optional[int] = None
    instance: str
    metric_name: str
    metric_category: str
    detected_at: datetime
    anomaly_value: float
    baseline_mean: float
    baseline_stddev: float
    deviation_sigma: float
    severity: Severity
    anomaly_type: AnomalyType
    direction: Direction
    state: AnomalyState
    deviation_label: str
    value_label: str
    root_cause_suggestion: Optional[str] = None
    acknowledged_at: Optional[datetime] = None
    acknowledged_by: Optional[str] = None
    resolved_at: Optional[datetime] = None
    resolution_notes: Optional[str] = None
    correlated_metrics: List[CorrelatedMetricView] = Field(default_factory=list)

    @classmethod
    def from_anomaly(cls, a: DetectedAnomaly) -> AnomalyView:
        return cls(
            id=a.id,
            instance=a.instance,
            metric_name=a.metric_name,
            metric_category=a.metric_category,
            detected_at=a.detected_at,
            anomaly_value=a.anomaly_value,
            baseline_mean=a.baseline_mean,
            baseline_stddev=a.baseline_stddev,
            deviation_sigma=a.deviation_sigma,
            severity=a.severity,
            anomaly_type=a.anomaly_type,
            direction=a.direction,
            state=a.state,
            deviation_label=a.deviation_label,
            value_label=a.value_label,
            root_cause_suggestion=a.root_cause_suggestion,
            acknowledged_at=a.acknowledged_at,
            acknowledged_by=a.acknowledged_by,
            resolved_at=a.resolved_at,
            resolution_notes=a.resolution_notes,
            correlated_metrics=[
                CorrelatedMetricView(
                    metric_name=c.metric_name, percent_change=c.percent_change, direction=c.direction,
                )
                for c in a.correlated_metrics
            ],
        )


class AnomalySummaryResponse(BaseModel):
    instance: str
    counts: Dict[Severity, int]
    total: int


class LifecycleActionResponse(BaseModel):
    status: str
    anomaly: AnomalyView


class SampleIngestResponse(BaseModel):
    instance: str
    recorded: int
