from typing import List

from fastapi import APIRouter, Query

from api.requests import ResolveRequest
from api.responses import AnomalySummaryResponse, AnomalyView, LifecycleActionResponse
from api.routes.common import get_service, require_found
from api.routes.exception import handle_exceptions
from config import settings

router = APIRouter(tags=["Anomalies"])


def _not_found(instance: str, anomaly_id: int) -> str:
    return f"Anomaly {anomaly_id} not found for instance {instance}"


@router.post("/anomalies/detect", response_model=List[AnomalyView])
@handle_exceptions
async def detect_anomalies(instance: str = Query(..., min_length=1)) -> List[AnomalyView]:
    found = await get_service().detect_anomalies(instance)
    return [AnomalyView.from_anomaly(a) for a in found]


@router.get("/anomalies/open", response_model=List[AnomalyView])
@handle_exceptions
async def open_anomalies(instance: str = Query(..., min_length=1)) -> List[AnomalyView]:
    rows = await get_service().lifecycle.get_open_anomalies(instance)
    return [AnomalyView.from_anomaly(a) for a in rows]


@router.get("/anomalies/history", response_model=List[AnomalyView])
@handle_exceptions
async def anomaly_history(
    instance: str = Query(..., min_length=1),
    hours: int = Query(default=24, ge=1, le=settings.history_max_hours),
) -> List[AnomalyView]:
    rows = await get_service().lifecycle.get_anomaly_history(instance, hours)
    return [AnomalyView.from_anomaly(a) for a in rows]


@router.get("/anomalies/summary", response_model=AnomalySummaryResponse)
@handle_exceptions
async def anomaly_summary(instance: str = Query(..., min_length=1)) -> AnomalySummaryResponse:
    counts = await get_service().lifecycle.get_anomaly_summary(instance)
    return AnomalySummaryResponse(instance=instance, counts=counts, total=sum(counts.values()))


@router.post("/anomalies/{anomaly_id}/acknowledge", response_model=LifecycleActionResponse)
@handle_exceptions
async def acknowledge_anomaly(
    anomaly_id: int,
    instance: str = Query(..., min_length=1),
    username: str = Query(default="anonymous", min_length=1),
) -> LifecycleActionResponse:
    lifecycle = get_service().lifecycle
    existing = require_found(await lifecycle.get_anomaly(instance, anomaly_id), _not_found(instance, anomaly_id))
    changed = await lifecycle.acknowledge_anomaly(instance, anomaly_id, username)
    current = await lifecycle.get_anomaly(instance, anomaly_id) or existing
    return LifecycleActionResponse(
        status="acknowledged" if changed else "unchanged",
        anomaly=AnomalyView.from_anomaly(current),
    )


@router.post("/anomalies/{anomaly_id}/resolve", response_model=LifecycleActionResponse)
@handle_exceptions
async def resolve_anomaly(anomaly_id: int, req: ResolveRequest) -> LifecycleActionResponse:
    lifecycle = get_service().lifecycle
    existing = require_found(
        await lifecycle.get_anomaly(req.instance, anomaly_id), _not_found(req.instance, anomaly_id),
    )
    changed = await lifecycle.resolve_anomaly(req.instance, anomaly_id, req.notes)
    current = await lifecycle.get_anomaly(req.instance, anomaly_id) or existing
    return LifecycleActionResponse(
        status="resolved" if changed else "unchanged",
        anomaly=AnomalyView.from_anomaly(current),
    )
