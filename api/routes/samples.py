from fastapi import APIRouter, HTTPException, status

from api.requests import SampleIngestRequest
from api.responses import SampleIngestResponse
from api.routes.common import get_service
from api.routes.exception import handle_exceptions

router = APIRouter(tags=["Samples"])


@router.post("/samples", response_model=SampleIngestResponse, status_code=status.HTTP_201_CREATED)
@handle_exceptions
async def ingest_samples(req: SampleIngestRequest) -> SampleIngestResponse:
    try:
        recorded = await get_service().record_samples(req.instance, req.values, req.sampled_at)
    except NotImplementedError as exc:
        raise HTTPException(status_code=status.HTTP_501_NOT_IMPLEMENTED, detail=str(exc)) from exc
    return SampleIngestResponse(instance=req.instance, recorded=recorded)
