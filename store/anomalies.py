from __future__ import annotations

import asyncio
from datetime import datetime
from typing import Dict, List, Optional

from sqlalchemy import case, func, select, update
from sqlalchemy.exc import SQLAlchemyError

from config import SEVERITY_RANKS
from database import get_db_session
from db_models import DetectedAnomalyRow
from engine.enums import AnomalyType, Direction, Severity
from engine.models import DetectedAnomaly
from store.base import AnomalyStore, as_utc
from store.baseline import SessionScope
from store.exceptions import PersistenceError

# unknown severities sort with LOW
_SEVERITY_ORDER = case(
    {name: -rank for name, rank in SEVERITY_RANKS.items()},
    value=DetectedAnomalyRow.severity,
    else_=-SEVERITY_RANKS[Severity.LOW.value],
)


def _to_row(a: DetectedAnomaly) -> DetectedAnomalyRow:
    return DetectedAnomalyRow(
        instance_id=a.instance,
        metric_name=a.metric_name,
        metric_category=a.metric_category,
        detected_at=as_utc(a.detected_at),
        anomaly_value=a.anomaly_value,
        baseline_mean=a.baseline_mean,
        baseline_stddev=a.baseline_stddev,
        deviation_sigma=a.deviation_sigma,
        severity=a.severity.value,
        anomaly_type=a.anomaly_type.value,
        direction=a.direction.value,
        root_cause_suggestion=a.root_cause_suggestion,
        acknowledged_at=as_utc(a.acknowledged_at),
        acknowledged_by=a.acknowledged_by,
        resolved_at=as_utc(a.resolved_at),
        resolution_notes=a.resolution_notes,
    )


def _from_row(row: DetectedAnomalyRow) -> DetectedAnomaly:
    return DetectedAnomaly(
        id=row.id,
        instance=row.instance_id,
        metric_name=row.metric_name,
        metric_category=row.metric_category,
        detected_at=as_utc(row.detected_at),
        anomaly_value=row.anomaly_value,
        baseline_mean=row.baseline_mean,
        baseline_stddev=row.baseline_stddev,
        deviation_sigma=row.deviation_sigma,
        severity=Severity.parse(row.severity),
        anomaly_type=AnomalyType.parse(row.anomaly_type),
        direction=Direction.parse(row.direction),
        root_cause_suggestion=row.root_cause_suggestion,
        acknowledged_at=as_utc(row.acknowledged_at),
        acknowledged_by=row.acknowledged_by,
        resolved_at=as_utc(row.resolved_at),
        resolution_notes=row.resolution_notes,
    )


class SqlAnomalyStore(AnomalyStore):
    def __init__(self, session_scope: SessionScope = get_db_session) -> None:
        self._session_scope = session_scope

    async def insert(self, anomaly: DetectedAnomaly) -> int:
        return await asyncio.to_thread(self._insert_sync, anomaly)

    def _insert_sync(self, anomaly: DetectedAnomaly) -> int:
        try:
            with self._session_scope() as db:
                row = _to_row(anomaly)
                db.add(row)
                db.flush()
                return int(row.id)
        except SQLAlchemyError as exc:
            raise PersistenceError(
                f"anomaly insert failed for {anomaly.instance}/{anomaly.metric_name}: {exc}"
            ) from exc

    async def get(self, instance: str, anomaly_id: int) -> Optional[DetectedAnomaly]:
        return await asyncio.to_thread(self._get_sync, instance, anomaly_id)

    def _get_sync(self, instance: str, anomaly_id: int) -> Optional[DetectedAnomaly]:
        try:
            with self._session_scope() as db:
                row = db.scalars(
                    select(DetectedAnomalyRow).where(
                        DetectedAnomalyRow.id == anomaly_id,
                        DetectedAnomalyRow.instance_id == instance,
                    )
                ).first()
                return _from_row(row) if row is not None else None
        except SQLAlchemyError as exc:
            raise PersistenceError(f"anomaly read failed for {instance}/{anomaly_id}: {exc}") from exc

    async def list_open(self, instance: str) -> List[DetectedAnomaly]:
        return await asyncio.to_thread(self._list_open_sync, instance)

    def _list_open_sync(self, instance: str) -> List[DetectedAnomaly]:
        stmt = (
            select(DetectedAnomalyRow)
            .where(
                DetectedAnomalyRow.instance_id == instance,
                DetectedAnomalyRow.resolved_at.is_(None),
            )
            .order_by(_SEVERITY_ORDER, DetectedAnomalyRow.detected_at.desc(), DetectedAnomalyRow.id.desc())
        )
        try:
            with self._session_scope() as db:
                return [_from_row(r) for r in db.scalars(stmt).all()]
        except SQLAlchemyError as exc:
            raise PersistenceError(f"open anomaly listing failed for {instance}: {exc}") from exc

    async def list_history(self, instance: str, since: datetime, limit: int) -> List[DetectedAnomaly]:
        return await asyncio.to_thread(self._list_history_sync, instance, since, limit)

    def _list_history_sync(self, instance: str, since: datetime, limit: int) -> List[DetectedAnomaly]:
        stmt = (
            select(DetectedAnomalyRow)
            .where(
                DetectedAnomalyRow.instance_id == instance,
                DetectedAnomalyRow.detected_at > since,
            )
            .order_by(DetectedAnomalyRow.detected_at.desc(), DetectedAnomalyRow.id.desc())
            .limit(limit)
        )
        try:
            with self._session_scope() as db:
                return [_from_row(r) for r in db.scalars(stmt).all()]
        except SQLAlchemyError as exc:
            raise PersistenceError(f"anomaly history failed for {instance}: {exc}") from exc

    async def count_open_by_severity(self, instance: str) -> Dict[str, int]:
        return await asyncio.to_thread(self._count_sync, instance)

    def _count_sync(self, instance: str) -> Dict[str, int]:
        stmt = (
            select(DetectedAnomalyRow.severity, func.count())
            .where(
                DetectedAnomalyRow.instance_id == instance,
                DetectedAnomalyRow.resolved_at.is_(None),
            )
            .group_by(DetectedAnomalyRow.severity)
        )
        try:
            with self._session_scope() as db:
                return {str(sev): int(cnt) for sev, cnt in db.execute(stmt).all()}
        except SQLAlchemyError as exc:
            raise PersistenceError(f"anomaly summary failed for {instance}: {exc}") from exc

    async def acknowledge(self, instance: str, anomaly_id: int, user: str, at: datetime) -> bool:
        stmt = (
            update(DetectedAnomalyRow)
            .where(DetectedAnomalyRow.id == anomaly_id, DetectedAnomalyRow.instance_id == instance)
            .values(acknowledged_at=as_utc(at), acknowledged_by=user)
        )
        return await asyncio.to_thread(self._update_sync, stmt, instance, anomaly_id)

    async def resolve(self, instance: str, anomaly_id: int, notes: Optional[str], at: datetime) -> bool:
        # resolved_at only ever moves from NULL to a timestamp
        stmt = (
            update(DetectedAnomalyRow)
            .where(
                DetectedAnomalyRow.id == anomaly_id,
                DetectedAnomalyRow.instance_id == instance,
                DetectedAnomalyRow.resolved_at.is_(None),
            )
            .values(resolved_at=as_utc(at), resolution_notes=notes)
        )
        return await asyncio.to_thread(self._update_sync, stmt, instance, anomaly_id)

    def _update_sync(self, stmt, instance: str, anomaly_id: int) -> bool:
        try:
            with self._session_scope() as db:
                result = db.execute(stmt)
                return (result.rowcount or 0) > 0
        except SQLAlchemyError as exc:
            raise PersistenceError(f"anomaly update failed for {instance}/{anomaly_id}: {exc}") from exc
