from fastapi import APIRouter, Depends, HTTPException, Request, status

from sportsfeed.errors import UnknownFeedError
from sportsfeed.providers.connectivity import CandidateProbe, probe_candidates
from sportsfeed.schemas.feed import FeedDescriptor
from sportsfeed.schemas.snapshot import AcquisitionUnavailable, Snapshot
from sportsfeed.service import AcquisitionService

router = APIRouter()


def get_service(request: Request) -> AcquisitionService:
    """FastAPI dependency returning the service built at startup."""
    return request.app.state.service


def _require_feed(service: AcquisitionService, feed_id: str) -> FeedDescriptor:
    try:
        return service.catalog.get(feed_id)
    except UnknownFeedError as exc:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail={"message": str(exc)},
        ) from exc


@router.get("/health")
def health() -> dict:
    return {"status": "ok"}


@router.get("/feeds", response_model=list[FeedDescriptor])
def list_feeds(service: AcquisitionService = Depends(get_service)) -> list[FeedDescriptor]:
    return service.catalog.all()


@router.get("/feeds/{feed_id}", response_model=Snapshot)
def latest_snapshot(
    feed_id: str, service: AcquisitionService = Depends(get_service)
) -> Snapshot:
    _require_feed(service, feed_id)
    snapshot = service.scheduler.get_latest(feed_id)
    if snapshot is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail={"message": f"No snapshot for {feed_id} yet. POST /feeds/{feed_id}/refresh first."},
        )
    return snapshot


@router.post("/feeds/{feed_id}/refresh", response_model=Snapshot)
async def refresh_feed(
    feed_id: str, service: AcquisitionService = Depends(get_service)
) -> Snapshot:
    _require_feed(service, feed_id)
    result = await service.scheduler.trigger(feed_id)
    if isinstance(result, AcquisitionUnavailable):
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=result.model_dump(),
        )
    return result


@router.get("/feeds/{feed_id}/debug")
async def feed_debug_trace(
    feed_id: str, service: AcquisitionService = Depends(get_service)
) -> dict:
    _require_feed(service, feed_id)
    trace = await service.store.read_debug_trace(feed_id)
    state = service.orchestrator.last_state.get(feed_id)
    return {
        "feed_id": feed_id,
        "state": state.value if state else None,
        "inflight": service.scheduler.is_inflight(feed_id),
        "trace": trace,
    }


@router.get("/feeds/{feed_id}/connectivity", response_model=list[CandidateProbe])
async def feed_connectivity(
    feed_id: str, service: AcquisitionService = Depends(get_service)
) -> list[CandidateProbe]:
    feed = _require_feed(service, feed_id)
    return await probe_candidates(
        service.client,
        feed,
        base_url=service.config.base_url,
        timeout_seconds=service.config.http.timeout_seconds,
    )
