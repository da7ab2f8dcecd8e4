from __future__ import annotations

import asyncio
from contextlib import AbstractContextManager
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from database import get_db_session
from db_models import NO_BUCKET, MetricBaselineRow
from engine.models import MetricBaseline
from store.base import BaselineStore, as_utc
from store.exceptions import PersistenceError


SessionScope = Callable[[], AbstractContextManager[Session]]

_KEY_COLUMNS = ("instance_id", "metric_name", "metric_category", "hour_of_day", "day_of_week")


def _bucket(value: Optional[int]) -> int:
    return NO_BUCKET if value is None else int(value)


def _unbucket(value: Optional[int]) -> Optional[int]:
    if value is None or value == NO_BUCKET:
        return None
    return int(value)


def _to_values(b: MetricBaseline) -> Dict[str, Any]:
    return {
        "instance_id": b.instance,
        "metric_name": b.metric_name,
        "metric_category": b.category,
        "baseline_mean": b.mean,
        "baseline_stddev": b.stddev,
        "baseline_min": b.min,
        "baseline_max": b.max,
        "baseline_median": b.median,
        "baseline_p95": b.p95,
        "baseline_p99": b.p99,
        "sample_count": b.sample_count,
        "hour_of_day": _bucket(b.hour_of_day),
        "day_of_week": _bucket(b.day_of_week),
        "calculated_at": as_utc(b.calculated_at) or datetime.now(timezone.utc),
        "period_start": as_utc(b.period_start),
        "period_end": as_utc(b.period_end),
    }


def _from_row(row: MetricBaselineRow) -> MetricBaseline:
    return MetricBaseline(
        instance=row.instance_id,
        metric_name=row.metric_name,
        category=row.metric_category,
        mean=row.baseline_mean,
        stddev=row.baseline_stddev,
        min=row.baseline_min,
        max=row.baseline_max,
        median=row.baseline_median,
        p95=row.baseline_p95,
        p99=row.baseline_p99,
        sample_count=row.sample_count,
        hour_of_day=_unbucket(row.hour_of_day),
        day_of_week=_unbucket(row.day_of_week),
        calculated_at=as_utc(row.calculated_at),
        period_start=as_utc(row.period_start),
        period_end=as_utc(row.period_end),
    )


def _dialect_insert(dialect: str) -> Any:
    if dialect == "postgresql":
        from sqlalchemy.dialects.postgresql import insert
        return insert
    if dialect == "sqlite":
        from sqlalchemy.dialects.sqlite import insert
        return insert
    return None


class SqlBaselineStore(BaselineStore):
    def __init__(self, session_scope: SessionScope = get_db_session) -> None:
        self._session_scope = session_scope

    async def upsert(self, baseline: MetricBaseline) -> None:
        await asyncio.to_thread(self._upsert_sync, baseline)

    def _upsert_sync(self, baseline: MetricBaseline) -> None:
        values = _to_values(baseline)
        try:
            with self._session_scope() as db:
                insert = _dialect_insert(db.get_bind().dialect.name)
                if insert is None:
                    self._merge(db, values)
                    return
                stmt = insert(MetricBaselineRow).values(**values)
                stmt = stmt.on_conflict_do_update(
                    index_elements=list(_KEY_COLUMNS),
                    set_={k: stmt.excluded[k] for k in values if k not in _KEY_COLUMNS},
                )
                db.execute(stmt)
        except SQLAlchemyError as exc:
            raise PersistenceError(
                f"baseline upsert failed for {baseline.instance}/{baseline.metric_name}: {exc}"
            ) from exc

    @staticmethod
    def _merge(db: Session, values: Dict[str, Any]) -> None:
        # dialects without ON CONFLICT: select-then-write inside the session's transaction
        row = db.scalars(
            select(MetricBaselineRow).where(
                *[getattr(MetricBaselineRow, k) == values[k] for k in _KEY_COLUMNS]
            )
        ).first()
        if row is None:
            db.add(MetricBaselineRow(**values))
            return
        for k, v in values.items():
            setattr(row, k, v)

    async def get(
        self,
        instance: str,
        metric: str,
        hour_of_day: Optional[int] = None,
        day_of_week: Optional[int] = None,
    ) -> Optional[MetricBaseline]:
        return await asyncio.to_thread(self._get_sync, instance, metric, hour_of_day, day_of_week)

    def _get_sync(
        self,
        instance: str,
        metric: str,
        hour_of_day: Optional[int],
        day_of_week: Optional[int],
    ) -> Optional[MetricBaseline]:
        try:
            with self._session_scope() as db:
                row = db.scalars(
                    select(MetricBaselineRow)
                    .where(
                        MetricBaselineRow.instance_id == instance,
                        MetricBaselineRow.metric_name == metric,
                        MetricBaselineRow.hour_of_day == _bucket(hour_of_day),
                        MetricBaselineRow.day_of_week == _bucket(day_of_week),
                    )
                    .order_by(MetricBaselineRow.calculated_at.desc())
                ).first()
                return _from_row(row) if row is not None else None
        except SQLAlchemyError as exc:
            raise PersistenceError(f"baseline read failed for {instance}/{metric}: {exc}") from exc

    async def list_baselines(self, instance: str, metric: Optional[str] = None) -> List[MetricBaseline]:
        return await asyncio.to_thread(self._list_sync, instance, metric)

    def _list_sync(self, instance: str, metric: Optional[str]) -> List[MetricBaseline]:
        stmt = select(MetricBaselineRow).where(MetricBaselineRow.instance_id == instance)
        if metric:
            stmt = stmt.where(MetricBaselineRow.metric_name == metric)
        stmt = stmt.order_by(
            MetricBaselineRow.metric_name,
            MetricBaselineRow.day_of_week,
            MetricBaselineRow.hour_of_day,
        )
        try:
            with self._session_scope() as db:
                return [_from_row(r) for r in db.scalars(stmt).all()]
        except SQLAlchemyError as exc:
            raise PersistenceError(f"baseline listing failed for {instance}: {exc}") from exc
