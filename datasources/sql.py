"""
SQL-backed metric sample source: historical windows aggregated per seasonal bucket and the latest value per metric.

Copyright (c) 2026 Stefan Kumarasinghe

Licensed under the Apache License, Version 2.0 (the "License");
you may not use this file except in compliance with the License.
You may obtain a copy of the License at http://www.apache.org/licenses/LICENSE-2.0
"""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Dict, Iterable, List, Optional, Tuple

from sqlalchemy import Integer, cast, extract, func, select
from sqlalchemy.exc import SQLAlchemyError

from database import get_db_session
from datasources.base import SampleSource
from datasources.exceptions import DataSourceUnavailable, InvalidQuery
from db_models import MetricSample
from engine.baseline.compute import compute, seasonal_filter
from engine.models import SampleStats
from store.base import as_utc
from store.baseline import SessionScope

log = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _seasonal_columns(dialect: str) -> Optional[Tuple[Any, Any]]:
    """UTC hour-of-day and day-of-week (0 = Sunday) expressions, or None when the dialect has neither."""
    col = MetricSample.sampled_at
    if dialect == "postgresql":
        utc = func.timezone("UTC", col)
        return extract("hour", utc), extract("dow", utc)
    if dialect == "sqlite":
        # stored as naive UTC text
        return cast(func.strftime("%H", col), Integer), cast(func.strftime("%w", col), Integer)
    return None


class SqlSampleSource(SampleSource):
    def __init__(
        self,
        session_scope: SessionScope = get_db_session,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._session_scope = session_scope
        self._clock = clock

    async def get_samples(
        self,
        instance: str,
        metric: str,
        since_days: int,
        hour_filter: Optional[int] = None,
        day_filter: Optional[int] = None,
    ) -> Optional[SampleStats]:
        if since_days <= 0:
            raise InvalidQuery(f"since_days must be positive, got {since_days}")
        if hour_filter is not None and not 0 <= hour_filter <= 23:
            raise InvalidQuery(f"hour_filter out of range: {hour_filter}")
        if day_filter is not None and not 0 <= day_filter <= 6:
            raise InvalidQuery(f"day_filter out of range: {day_filter}")
        since = self._clock() - timedelta(days=since_days)
        ts, vals = await asyncio.to_thread(
            self._window_sync, instance, metric, since, hour_filter, day_filter,
        )
        return compute(ts, vals)

    def _window_sync(
        self,
        instance: str,
        metric: str,
        since: datetime,
        hour: Optional[int] = None,
        day: Optional[int] = None,
    ) -> Tuple[List[datetime], List[float]]:
        stmt = (
            select(MetricSample.sampled_at, MetricSample.value)
            .where(
                MetricSample.instance_id == instance,
                MetricSample.metric_name == metric,
                MetricSample.sampled_at > since,
            )
            .order_by(MetricSample.sampled_at)
        )
        try:
            with self._session_scope() as db:
                columns = _seasonal_columns(db.get_bind().dialect.name)
                if columns is not None:
                    hour_col, day_col = columns
                    if hour is not None:
                        stmt = stmt.where(hour_col == hour)
                    if day is not None:
                        stmt = stmt.where(day_col == day)
                rows = db.execute(stmt).all()
        except SQLAlchemyError as exc:
            raise DataSourceUnavailable(f"sample window query failed for {instance}/{metric}: {exc}") from exc
        ts, vals = [as_utc(r[0]) for r in rows], [float(r[1]) for r in rows]
        if columns is None:
            ts, vals = seasonal_filter(ts, vals, hour=hour, day=day)
        return ts, vals

    async def get_latest_values(self, instance: str) -> Dict[str, float]:
        return await asyncio.to_thread(self._latest_sync, instance)

    def _latest_sync(self, instance: str) -> Dict[str, float]:
        latest = (
            select(MetricSample.metric_name, func.max(MetricSample.sampled_at).label("sampled_at"))
            .where(MetricSample.instance_id == instance)
            .group_by(MetricSample.metric_name)
            .subquery()
        )
        stmt = (
            select(MetricSample.metric_name, MetricSample.value)
            .join(
                latest,
                (MetricSample.metric_name == latest.c.metric_name)
                & (MetricSample.sampled_at == latest.c.sampled_at),
            )
            .where(MetricSample.instance_id == instance)
            .order_by(MetricSample.id)
        )
        try:
            with self._session_scope() as db:
                rows = db.execute(stmt).all()
        except SQLAlchemyError as exc:
            raise DataSourceUnavailable(f"latest sample query failed for {instance}: {exc}") from exc
        # ties on the same timestamp resolve to the last row written
        return {name: float(value) for name, value in rows}

    async def record_samples(
        self,
        instance: str,
        samples: Iterable[Tuple[str, float]],
        sampled_at: Optional[datetime] = None,
    ) -> int:
        at = as_utc(sampled_at) if sampled_at is not None else self._clock()
        rows = [
            MetricSample(instance_id=instance, metric_name=name, sampled_at=at, value=float(value))
            for name, value in samples
        ]
        if not rows:
            return 0
        await asyncio.to_thread(self._insert_sync, rows)
        log.debug("Recorded %d samples for %s at %s", len(rows), instance, at.isoformat())
        return len(rows)

    def _insert_sync(self, rows: List[MetricSample]) -> None:
        try:
            with self._session_scope() as db:
                db.add_all(rows)
        except SQLAlchemyError as exc:
            raise DataSourceUnavailable(f"sample insert failed: {exc}") from exc
