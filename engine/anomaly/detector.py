"""
Anomaly detection pass: score the latest value of every catalog metric against its best baseline,
attach co-deviating metrics and a root-cause hint, persist the record and alert on high severities.

Copyright (c) 2026 Stefan Kumarasinghe

Licensed under the Apache License, Version 2.0 (the "License");
you may not use this file except in compliance with the License.
You may obtain a copy of the License at http://www.apache.org/licenses/LICENSE-2.0
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Callable, Dict, FrozenSet, Iterable, List, Optional

from datasources.base import SampleSource
from engine.anomaly import scoring
from engine.anomaly.correlation import find_correlated
from engine.anomaly.root_cause import RootCauseTable
from engine.baseline.compute import day_of_week, hour_of_day
from engine.baseline.resolver import BaselineResolver
from engine.catalog import DEFAULT_CATALOG, Catalog
from engine.enums import Severity
from engine.models import DetectedAnomaly, MetricBaseline
from store.base import AnomalyStore

if TYPE_CHECKING:
    from services.alerting import AlertDispatcher

log = logging.getLogger(__name__)

DEFAULT_ALERT_SEVERITIES: FrozenSet[Severity] = frozenset({Severity.CRITICAL, Severity.HIGH})


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def alert_key(metric_name: str) -> str:
    return f"ANOMALY_{metric_name.upper()}"


def alert_title(anomaly: DetectedAnomaly) -> str:
    return f"Anomaly Detected: {anomaly.metric_name}"


def alert_message(anomaly: DetectedAnomaly) -> str:
    return (
        f"Instance: {anomaly.instance}\n"
        f"Metric: {anomaly.metric_name}\n"
        f"Value: {anomaly.value_label}\n"
        f"Deviation: {abs(anomaly.deviation_sigma):.1f} sigma {anomaly.direction.display_name.lower()}\n"
        f"Severity: {anomaly.severity.display_name}\n\n"
        f"Suggestion: {anomaly.root_cause_suggestion or ''}"
    )


class AnomalyDetector:
    def __init__(
        self,
        sample_source: SampleSource,
        resolver: BaselineResolver,
        anomaly_store: AnomalyStore,
        alert_dispatcher: Optional[AlertDispatcher] = None,
        catalog: Catalog = DEFAULT_CATALOG,
        severity_table: scoring.SeverityTable = scoring.DEFAULT_SEVERITY_TABLE,
        root_causes: Optional[RootCauseTable] = None,
        alert_severities: Iterable[Severity] = DEFAULT_ALERT_SEVERITIES,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._source = sample_source
        self._resolver = resolver
        self._store = anomaly_store
        self._alerts = alert_dispatcher
        self._catalog = catalog
        self._table = severity_table
        self._root_causes = root_causes if root_causes is not None else RootCauseTable()
        self._alert_severities = frozenset(Severity.parse(s) for s in alert_severities)
        self._clock = clock

    async def detect_anomalies(self, instance: str) -> List[DetectedAnomaly]:
        """
        Run one detection pass for ``instance``.

        Never raises: an unexpected failure part-way through is logged and whatever was detected
        before it is returned. Persistence and alert failures are isolated to the affected anomaly.
        """
        anomalies: List[DetectedAnomaly] = []
        try:
            now = self._clock()
            hour, day = hour_of_day(now), day_of_week(now)
            current = await self._source.get_latest_values(instance)

            resolved: Dict[str, Optional[MetricBaseline]] = {}

            async def lookup(metric_name: str) -> Optional[MetricBaseline]:
                if metric_name not in resolved:
                    resolved[metric_name] = await self._resolver.find_best_baseline(
                        instance, metric_name, hour, day,
                    )
                return resolved[metric_name]

            for metric in self._catalog:
                value = current.get(metric.name)
                if value is None:
                    continue
                baseline = await lookup(metric.name)
                if baseline is None or baseline.stddev == 0:
                    log.debug("No usable baseline for %s/%s", instance, metric.name)
                    continue

                result = scoring.score(value, baseline, self._table)
                if result is None:
                    continue

                anomaly = DetectedAnomaly(
                    instance=instance,
                    metric_name=metric.name,
                    metric_category=metric.category,
                    detected_at=now,
                    anomaly_value=value,
                    baseline_mean=baseline.mean,
                    baseline_stddev=baseline.stddev,
                    deviation_sigma=result.sigma,
                    severity=result.severity,
                    direction=result.direction,
                    root_cause_suggestion=self._root_causes.suggest(metric.name, result.direction),
                )
                anomaly.correlated_metrics = await find_correlated(
                    current, self._catalog, metric.name, lookup, self._table,
                )
                anomalies.append(anomaly)
                log.info(
                    "Anomaly on %s/%s: %s %s (%s)",
                    instance, metric.name, anomaly.value_label, anomaly.deviation_label, anomaly.severity.value,
                )

                await self._persist(anomaly)
                if anomaly.severity in self._alert_severities:
                    await self._alert(anomaly)
        except Exception:
            log.exception("Error detecting anomalies for instance %s", instance)

        return anomalies

    async def _persist(self, anomaly: DetectedAnomaly) -> None:
        try:
            anomaly.id = await self._store.insert(anomaly)
        except Exception as exc:
            log.warning("Failed to save anomaly %s/%s: %s", anomaly.instance, anomaly.metric_name, exc)

    async def _alert(self, anomaly: DetectedAnomaly) -> None:
        if self._alerts is None:
            return
        try:
            await self._alerts.fire_alert(
                anomaly.instance,
                alert_key(anomaly.metric_name),
                alert_title(anomaly),
                alert_message(anomaly),
            )
        except Exception as exc:
            log.warning("Failed to send anomaly alert for %s/%s: %s", anomaly.instance, anomaly.metric_name, exc)
