import logging
from typing import Annotated

from fastapi import APIRouter, Body, Depends, HTTPException, Request, status

from app.core.exceptions import (
    NoPendingPositionRequestError,
    RefreshInProgressError,
    StalePositionError,
)
from app.schemas.display import LocationDisplay
from app.schemas.location import GeolocationErrorReport, GpsFixReport, LocationSnapshot
from app.services.display import build_display
from app.services.geolocation import ReportedPositionProvider
from app.services.location import LocationOrchestrator

logger = logging.getLogger(__name__)

router = APIRouter()


def get_location_orchestrator(request: Request) -> LocationOrchestrator:
    orchestrator = getattr(request.app.state, "location", None)
    if orchestrator is None or not orchestrator.alive:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Location service is not running",
        )
    return orchestrator


def get_reported_position_provider(
    orchestrator: Annotated[LocationOrchestrator, Depends(get_location_orchestrator)],
) -> ReportedPositionProvider:
    if not isinstance(orchestrator.geolocation, ReportedPositionProvider):
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="This device does not accept reported positions",
        )
    return orchestrator.geolocation


@router.get("", response_model=LocationSnapshot)
async def get_location(
    orchestrator: Annotated[LocationOrchestrator, Depends(get_location_orchestrator)],
) -> LocationSnapshot:
    return orchestrator.snapshot()


@router.get("/display", response_model=LocationDisplay)
async def get_location_display(
    orchestrator: Annotated[LocationOrchestrator, Depends(get_location_orchestrator)],
) -> LocationDisplay:
    return build_display(orchestrator.snapshot())


@router.post("/refresh", response_model=LocationSnapshot, status_code=status.HTTP_202_ACCEPTED)
async def refresh_location(
    orchestrator: Annotated[LocationOrchestrator, Depends(get_location_orchestrator)],
) -> LocationSnapshot:
    """
    Re-run the full load sequence. The IP lookup and position request run in
    the background; poll GET /location for the outcome.
    """
    try:
        await orchestrator.refresh()
    except RefreshInProgressError as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e)) from e
    return orchestrator.snapshot()


@router.post("/position", response_model=LocationSnapshot)
async def report_position(
    fix: Annotated[GpsFixReport, Body()],
    orchestrator: Annotated[LocationOrchestrator, Depends(get_location_orchestrator)],
    provider: Annotated[ReportedPositionProvider, Depends(get_reported_position_provider)],
) -> LocationSnapshot:
    try:
        provider.report_position(fix.latitude, fix.longitude, fix.accuracy, fix.timestamp)
    except NoPendingPositionRequestError as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e)) from e
    except StalePositionError as e:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(e)
        ) from e
    await orchestrator.wait_for_position()
    return orchestrator.snapshot()


@router.post("/position-error", response_model=LocationSnapshot)
async def report_position_error(
    report: Annotated[GeolocationErrorReport, Body()],
    orchestrator: Annotated[LocationOrchestrator, Depends(get_location_orchestrator)],
    provider: Annotated[ReportedPositionProvider, Depends(get_reported_position_provider)],
) -> LocationSnapshot:
    try:
        provider.report_error(report.code, report.message)
    except NoPendingPositionRequestError as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e)) from e
    await orchestrator.wait_for_position()
    return orchestrator.snapshot()
