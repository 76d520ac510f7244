"""Pydantic schemas for request/response validation."""

from datetime import datetime
from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator


# ============== Scheduler Schemas ==============


class DispatchResult(BaseModel):
    """Outcome of one master's task within a pass."""

    id: str
    action: Literal["sync", "orchestrate"]
    success: bool
    error: Optional[str] = None


class SchedulerRunResponse(BaseModel):
    """Summary of one scheduler pass. Unset fields are omitted."""

    success: bool = True
    skipped: Optional[bool] = None
    message: Optional[str] = None
    running_count: Optional[int] = None
    processed: Optional[int] = None
    available_slots: Optional[int] = None
    results: Optional[list[DispatchResult]] = None


class SchedulerErrorResponse(BaseModel):
    """Scheduler-level failure; the whole pass was aborted."""

    success: Literal[False] = False
    error: str


# ============== Master Schemas ==============


class MasterResponse(BaseModel):
    """A generation campaign with its aggregate progress."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    nama: Optional[str] = None
    generate_status: str
    generate_updated_at: datetime
    percobaan: int
    dokumen_total: int
    dokumen_selesai: int
    dokumen_error: int
    progress_percent: float
    created_at: Optional[datetime] = None


class MasterListResponse(BaseModel):
    """Paginated list of masters."""

    masters: list[MasterResponse]
    total: int
    page: int
    page_size: int
    total_pages: int


class GenerationStatusResponse(BaseModel):
    """Progress of one document artifact."""

    id: str
    master_id: str
    jenis: str
    bab_id: Optional[str] = None
    bab_nomor: Optional[int] = None
    bab_judul: Optional[str] = None
    status: str
    current_step: int
    total_steps: Optional[int] = None
    progress: str
    file_path: Optional[str] = None


class GenerationStatusUpdate(BaseModel):
    """Progress report for one document row."""

    status: Literal["pending", "generating", "generating_ai", "done", "error"]
    current_step: Optional[int] = Field(None, ge=0)
    total_steps: Optional[int] = Field(None, ge=1)
    file_path: Optional[str] = None

    @model_validator(mode="after")
    def check_steps(self) -> "GenerationStatusUpdate":
        if (
            self.current_step is not None
            and self.total_steps is not None
            and self.current_step > self.total_steps
        ):
            raise ValueError("current_step cannot exceed total_steps")
        return self


class GenerateAllResponse(BaseModel):
    """Response after initializing a master's documents and triggering generation."""

    master_id: str
    initialized_rows: int
    orchestrator_triggered: bool


# ============== Health & Misc Schemas ==============


class HealthResponse(BaseModel):
    """Health check response."""

    status: str
    version: str
    database: str
    redis: str

