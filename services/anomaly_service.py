"""
Wires sample source, stores and engine components from settings, and runs the periodic
baseline and detection schedule across configured instances.

Copyright (c) 2026 Stefan Kumarasinghe

Licensed under the Apache License, Version 2.0 (the "License");
you may not use this file except in compliance with the License.
You may obtain a copy of the License at http://www.apache.org/licenses/LICENSE-2.0
"""

from __future__ import annotations

import asyncio
import logging
import time
from datetime import datetime, timezone
from typing import Callable, Dict, List, Optional, Sequence

from config import Settings, settings
from datasources.base import SampleSource
from datasources.sql import SqlSampleSource
from engine.anomaly import AnomalyDetector, RootCauseTable, build_severity_table
from engine.baseline import BaselineCalculator, BaselineResolver, BaselineRunReport
from engine.catalog import Catalog, build_catalog
from engine.enums import Severity
from engine.lifecycle import AnomalyLifecycleManager
from engine.models import DetectedAnomaly, MetricBaseline
from services.alerting import AlertDispatcher, WebhookAlertDispatcher
from store import AnomalyStore, BaselineStore, SqlAnomalyStore, SqlBaselineStore

log = logging.getLogger(__name__)

# floor for the scheduler sleep so a misconfigured interval cannot spin
_MIN_SLEEP_SECONDS = 1.0


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class AnomalyService:
    def __init__(
        self,
        app_settings: Settings = settings,
        sample_source: Optional[SampleSource] = None,
        baseline_store: Optional[BaselineStore] = None,
        anomaly_store: Optional[AnomalyStore] = None,
        alert_dispatcher: Optional[AlertDispatcher] = None,
        catalog: Optional[Catalog] = None,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self.settings = app_settings
        self.catalog = catalog or build_catalog(app_settings.monitored_metrics)
        self.samples = sample_source or SqlSampleSource(clock=clock)
        self.baselines = baseline_store or SqlBaselineStore()
        self.anomalies = anomaly_store or SqlAnomalyStore()
        self.alerts = alert_dispatcher or WebhookAlertDispatcher(
            webhook_url=app_settings.alert_webhook_url,
            cooldown_seconds=app_settings.alert_cooldown_seconds,
            timeout_seconds=app_settings.alert_timeout_seconds,
            clock=clock,
        )

        min_samples = app_settings.baseline_min_samples
        self.calculator = BaselineCalculator(
            self.samples, self.baselines, catalog=self.catalog, min_samples=min_samples, clock=clock,
        )
        self.resolver = BaselineResolver(self.baselines, min_samples=min_samples)
        self.detector = AnomalyDetector(
            self.samples,
            self.resolver,
            self.anomalies,
            alert_dispatcher=self.alerts,
            catalog=self.catalog,
            severity_table=build_severity_table(app_settings.severity_thresholds),
            root_causes=RootCauseTable(),
            alert_severities=[Severity.parse(s) for s in app_settings.alert_severities],
            clock=clock,
        )
        self.lifecycle = AnomalyLifecycleManager(
            self.anomalies, history_limit=app_settings.history_limit, clock=clock,
        )

        self._next_run: Dict[str, float] = {}

    async def calculate_baselines(self, instance: str, training_days: Optional[int] = None) -> BaselineRunReport:
        days = training_days if training_days is not None else self.settings.training_days
        return await self.calculator.calculate_baselines(instance, days)

    async def list_baselines(self, instance: str, metric: Optional[str] = None) -> List[MetricBaseline]:
        return await self.baselines.list_baselines(instance, metric)

    async def record_samples(
        self, instance: str, values: Dict[str, float], sampled_at: Optional[datetime] = None,
    ) -> int:
        if not isinstance(self.samples, SqlSampleSource):
            raise NotImplementedError(f"{type(self.samples).__name__} does not accept sample ingestion")
        return await self.samples.record_samples(instance, values.items(), sampled_at)

    async def detect_anomalies(self, instance: str) -> List[DetectedAnomaly]:
        return await self.detector.detect_anomalies(instance)

    async def run_pending(self, instances: Sequence[str], now: Optional[float] = None) -> Optional[float]:
        """
        Run every job that is due at monotonic time ``now``.

        Returns the seconds until the next job is due, or None when both jobs are disabled.
        """
        now = time.monotonic() if now is None else now
        jobs = (
            ("baselines", self.settings.baseline_interval_seconds, self._baseline_pass),
            ("detection", self.settings.detection_interval_seconds, self._detection_pass),
        )
        waits = []
        for name, interval, job in jobs:
            if interval <= 0:
                continue
            due = self._next_run.get(name, now)
            if now >= due:
                await job(instances)
                due = now + interval
                self._next_run[name] = due
            waits.append(due - now)
        return min(waits) if waits else None

    async def _baseline_pass(self, instances: Sequence[str]) -> None:
        for instance in instances:
            try:
                await self.calculate_baselines(instance)
            except Exception:
                log.exception("Scheduled baseline calculation failed for instance %s", instance)

    async def _detection_pass(self, instances: Sequence[str]) -> None:
        for instance in instances:
            try:
                found = await self.detect_anomalies(instance)
            except Exception:
                log.exception("Scheduled anomaly detection failed for instance %s", instance)
                continue
            if found:
                log.info("Detected %d anomalies on instance %s", len(found), instance)

    async def run_schedule(self, instances: Optional[Sequence[str]] = None) -> None:
        targets = list(instances if instances is not None else self.settings.instances)
        if not targets:
            log.info("No instances configured; scheduler not started")
            return
        log.info("Scheduler started for instances: %s", ", ".join(targets))
        while True:
            wait = await self.run_pending(targets)
            if wait is None:
                log.info("Baseline and detection intervals are disabled; scheduler stopped")
                return
            await asyncio.sleep(max(_MIN_SLEEP_SECONDS, wait))

    async def aclose(self) -> None:
        await self.samples.aclose()
        await self.alerts.aclose()


anomaly_service = AnomalyService()
