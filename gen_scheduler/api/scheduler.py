"""Scheduler trigger route."""

from fastapi import APIRouter, Depends, status
from fastapi.responses import JSONResponse

from gen_scheduler.schemas.schemas import SchedulerErrorResponse, SchedulerRunResponse
from gen_scheduler.services.scheduler import Scheduler

router = APIRouter(prefix="/v1/scheduler", tags=["Scheduler"])


def get_scheduler() -> Scheduler:
    """Dependency that builds a scheduler from settings."""
    return Scheduler.from_settings()


@router.post(
    "/run",
    response_model=SchedulerRunResponse,
    response_model_exclude_none=True,
    summary="Run one scheduler pass",
    description="Admit, select and dispatch masters once, then return the run summary.",
    responses={500: {"model": SchedulerErrorResponse}},
)
async def run_scheduler(scheduler: Scheduler = Depends(get_scheduler)):
    """
    Run one scheduler pass.

    - Returns **skipped** when the concurrency cap is already reached
    - Returns a **message** when no master is eligible
    - Otherwise returns one result per dispatched master
    """
    result = await scheduler.run_pass()

    if isinstance(result, SchedulerErrorResponse):
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content=result.model_dump(),
        )

    return result
