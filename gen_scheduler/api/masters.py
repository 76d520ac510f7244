"""Master and document progress API routes."""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from gen_scheduler.db.models import GenerationState, MasterStatus
from gen_scheduler.db.session import get_db
from gen_scheduler.schemas.schemas import (
    GenerateAllResponse,
    GenerationStatusResponse,
    GenerationStatusUpdate,
    MasterListResponse,
    MasterResponse,
)
from gen_scheduler.services.edge_client import EdgeFunctionClient, EdgeFunctionError
from gen_scheduler.services.job_store import (
    GenerationStatusNotFoundError,
    MasterNotFoundError,
    job_store,
)
from gen_scheduler.services.status import InvalidTransitionError

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/v1", tags=["Masters"])


def get_edge_client() -> EdgeFunctionClient:
    """Dependency that builds the remote function client from settings."""
    return EdgeFunctionClient.from_settings()


@router.get(
    "/masters",
    response_model=MasterListResponse,
    summary="List masters",
    description="Get a paginated list of masters, optionally filtered by generate_status.",
)
async def list_masters(
    status_filter: Optional[str] = Query(
        None,
        alias="status",
        description="Filter by generate_status (belum_siap, belum_mulai, menunggu, sedang_jalan, ...)",
    ),
    page: int = Query(1, ge=1, description="Page number"),
    page_size: int = Query(20, ge=1, le=100, description="Items per page"),
    db: AsyncSession = Depends(get_db),
):
    """List masters with their generation progress."""
    status_enum = None
    if status_filter:
        try:
            status_enum = MasterStatus(status_filter)
        except ValueError:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail=f"Invalid status: {status_filter}",
            )

    masters, total = await job_store.list_masters(db, status_enum, page, page_size)

    total_pages = (total + page_size - 1) // page_size

    return MasterListResponse(
        masters=[job_store.master_to_response(m) for m in masters],
        total=total,
        page=page,
        page_size=page_size,
        total_pages=total_pages,
    )


@router.get(
    "/masters/{master_id}",
    response_model=MasterResponse,
    summary="Get master",
)
async def get_master(master_id: str, db: AsyncSession = Depends(get_db)):
    """Get one master with its status and document counters."""
    master = await job_store.get_master(db, master_id)

    if not master:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Master {master_id} not found",
        )

    return job_store.master_to_response(master)


@router.get(
    "/masters/{master_id}/generation-status",
    response_model=list[GenerationStatusResponse],
    summary="List document progress",
    description="Get every generation_status row of a master, ordered by document kind and chapter.",
)
async def list_generation_status(master_id: str, db: AsyncSession = Depends(get_db)):
    """Document rows of a master with chapter number and step progress."""
    if not await job_store.get_master(db, master_id):
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Master {master_id} not found",
        )

    rows = await job_store.list_generation_statuses(db, master_id)
    return [job_store.generation_status_to_response(r) for r in rows]


@router.post(
    "/masters/{master_id}/generate",
    response_model=GenerateAllResponse,
    status_code=status.HTTP_202_ACCEPTED,
    summary="Generate all documents",
    description="Initialize every expected document row of a master and trigger the orchestrator once.",
)
async def generate_all(
    master_id: str,
    db: AsyncSession = Depends(get_db),
    edge_client: EdgeFunctionClient = Depends(get_edge_client),
):
    """
    Start generation for a master.

    - Creates the prota/prosem rows and the rpm/lkpd rows of each chapter
      (existing rows are kept)
    - Hands the master to the orchestrator
    """
    try:
        inserted = await job_store.init_generation_for_master(db, master_id)
    except MasterNotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    await db.commit()

    try:
        await edge_client.run_orchestrator(master_id)
    except EdgeFunctionError as e:
        logger.error(f"Orchestrator trigger failed for master {master_id}: {e}")
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=str(e))

    return GenerateAllResponse(
        master_id=master_id,
        initialized_rows=inserted,
        orchestrator_triggered=True,
    )


@router.patch(
    "/generation-status/{row_id}",
    response_model=GenerationStatusResponse,
    summary="Report document progress",
    description="Update the state, step counters or output path of one document row.",
)
async def update_generation_status(
    row_id: str,
    request: GenerationStatusUpdate,
    db: AsyncSession = Depends(get_db),
):
    """Progress report from the generation workers."""
    try:
        row = await job_store.update_generation_status(
            db,
            row_id,
            GenerationState(request.status),
            current_step=request.current_step,
            total_steps=request.total_steps,
            file_path=request.file_path,
        )
    except GenerationStatusNotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    except InvalidTransitionError as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e))

    response = job_store.generation_status_to_response(row)
    await db.commit()
    return response
