from typing import List, Optional

from fastapi import APIRouter, Query

from api.requests import CalculateBaselinesRequest
from api.responses import BaselineRunResponse, BaselineView
from api.routes.common import get_service
from api.routes.exception import handle_exceptions

router = APIRouter(tags=["Baselines"])


@router.post("/baselines/calculate", response_model=BaselineRunResponse)
@handle_exceptions
async def calculate_baselines(req: CalculateBaselinesRequest) -> BaselineRunResponse:
    report = await get_service().calculate_baselines(req.instance, req.training_days)
    return BaselineRunResponse.from_report(report)


@router.get("/baselines", response_model=List[BaselineView])
@handle_exceptions
async def list_baselines(
    instance: str = Query(..., min_length=1),
    metric: Optional[str] = Query(default=None),
) -> List[BaselineView]:
    baselines = await get_service().list_baselines(instance, metric)
    return [BaselineView.from_baseline(b) for b in baselines]
