from __future__ import annotations

import asyncio

from fastapi import APIRouter, Depends, HTTPException
from sse_starlette.sse import EventSourceResponse

from boatresearch.api.deps import ResearchServices, get_services
from boatresearch.models.schemas import (
    LinkSelectionRequest,
    ResearchResultResponse,
    ResearchStatus,
    SelectionResponse,
    SpecsSelectionRequest,
)
from boatresearch.research_core.registry import (
    ResearchAlreadyRunningError,
    TooManyConcurrentResearchError,
)
from boatresearch.services import logger as log_service

router = APIRouter(prefix="/api/research", tags=["research"])


def _status_event(status: ResearchStatus) -> dict[str, str]:
    return {"event": "status", "data": status.model_dump_json()}


@router.post("/{listing_id}", response_model=ResearchStatus)
async def start_research(listing_id: int, services: ResearchServices = Depends(get_services)):
    """Start research for a listing. Progress is reported via /status or /stream."""
    listing = await services.store.get_listing(listing_id)
    if listing is None:
        raise HTTPException(status_code=404, detail="Listing not found")

    try:
        return await services.registry.start(listing_id)
    except ResearchAlreadyRunningError as e:
        raise HTTPException(status_code=409, detail=str(e))
    except TooManyConcurrentResearchError as e:
        raise HTTPException(status_code=429, detail=str(e))


@router.get("/{listing_id}", response_model=ResearchResultResponse)
async def get_research_result(listing_id: int, services: ResearchServices = Depends(get_services)):
    """Return the persisted research for a listing and its model."""
    record = await services.store.get_research_record(listing_id)

    model = None
    if record is not None:
        listing = await services.store.get_listing(listing_id)
        if listing is not None and listing.manufacturer and listing.boat_class:
            model = await services.store.find_latest_model_research(
                listing.manufacturer, listing.boat_class
            )

    return ResearchResultResponse(listing=record, model=model)


@router.get("/{listing_id}/status", response_model=ResearchStatus)
async def get_research_status(listing_id: int, services: ResearchServices = Depends(get_services)):
    return services.registry.get_status(listing_id)


@router.get("/{listing_id}/stream")
async def stream_research_status(
    listing_id: int,
    services: ResearchServices = Depends(get_services),
):
    """SSE endpoint emitting one ``status`` event per job transition."""
    queue: asyncio.Queue[ResearchStatus] = asyncio.Queue()

    async def event_generator():
        # Subscribe before the first yield so no transition is missed meanwhile.
        unsubscribe = services.publisher.subscribe(listing_id, queue.put_nowait)
        try:
            current = services.registry.get_status(listing_id)
            yield _status_event(current)
            if current.is_terminal:
                return

            while True:
                status = await queue.get()
                yield _status_event(status)
                if status.is_terminal:
                    break
        finally:
            # Disconnecting only stops the stream; the pipeline keeps running.
            unsubscribe()
            log_service.log_event(
                event_type="stream_closed",
                message="Status stream closed",
                listing_id=listing_id,
            )

    return EventSourceResponse(event_generator())


@router.post("/{listing_id}/select-specs", response_model=SelectionResponse)
async def select_specs(
    listing_id: int,
    body: SpecsSelectionRequest,
    services: ResearchServices = Depends(get_services),
):
    if not services.registry.select_specs(listing_id, body.slug):
        raise HTTPException(status_code=404, detail="No pending specs selection for this listing")
    return SelectionResponse(ok=True)


@router.post("/{listing_id}/select-reviews", response_model=SelectionResponse)
async def select_reviews(
    listing_id: int,
    body: LinkSelectionRequest,
    services: ResearchServices = Depends(get_services),
):
    if not services.registry.select_reviews(listing_id, body.urls):
        raise HTTPException(status_code=404, detail="No pending review selection for this listing")
    return SelectionResponse(ok=True)


@router.post("/{listing_id}/select-forums", response_model=SelectionResponse)
async def select_forums(
    listing_id: int,
    body: LinkSelectionRequest,
    services: ResearchServices = Depends(get_services),
):
    if not services.registry.select_forums(listing_id, body.urls):
        raise HTTPException(status_code=404, detail="No pending forum selection for this listing")
    return SelectionResponse(ok=True)
