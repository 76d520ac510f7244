"""Job store access: pool queries, status writes and generation bookkeeping."""

import logging
from datetime import datetime, timezone
from typing import Iterable, Optional
from uuid import uuid4

from sqlalchemy import func, select, update
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from gen_scheduler.db.models import (
    Chapter,
    DocumentKind,
    GenerationState,
    GenerationStatus,
    Master,
    MasterStatus,
)
from gen_scheduler.schemas.schemas import GenerationStatusResponse, MasterResponse
from gen_scheduler.services.status import (
    RUNNING_STATUS,
    ensure_generation_transition,
    ensure_master_transition,
)

logger = logging.getLogger(__name__)

MASTER_SCOPED_KINDS = tuple(kind for kind in DocumentKind if not kind.chapter_scoped)
CHAPTER_SCOPED_KINDS = tuple(kind for kind in DocumentKind if kind.chapter_scoped)
KIND_ORDER = {kind: position for position, kind in enumerate(DocumentKind)}


class MasterNotFoundError(LookupError):
    """Raised when a master id does not exist in the store."""

    def __init__(self, master_id: str):
        self.master_id = master_id
        super().__init__(f"Master {master_id} not found")


class GenerationStatusNotFoundError(LookupError):
    """Raised when a generation_status row does not exist."""

    def __init__(self, row_id: str):
        self.row_id = row_id
        super().__init__(f"Generation status {row_id} not found")


class JobStore:
    """Queries and procedures over masters, babs and generation_status."""

    # ---------------------------------------------------------------- reads

    async def count_running(self, db: AsyncSession) -> int:
        """Point-in-time count of masters in sedang_jalan."""
        result = await db.execute(
            select(func.count())
            .select_from(Master)
            .where(Master.generate_status == RUNNING_STATUS)
        )
        return result.scalar() or 0

    async def list_pool(
        self,
        db: AsyncSession,
        statuses: Iterable[MasterStatus],
        limit: int,
        updated_before: Optional[datetime] = None,
    ) -> list[Master]:
        """
        Masters in any of `statuses`, oldest generate_updated_at first.

        Args:
            db: Database session
            statuses: Status values that make up the pool
            limit: Maximum number of rows to return
            updated_before: Only masters whose last transition is older than this

        Returns:
            List of Master rows
        """
        query = select(Master).where(Master.generate_status.in_(list(statuses)))

        if updated_before is not None:
            query = query.where(Master.generate_updated_at < updated_before)

        query = query.order_by(Master.generate_updated_at.asc(), Master.id).limit(limit)

        result = await db.execute(query)
        return list(result.scalars().all())

    async def get_master(self, db: AsyncSession, master_id: str) -> Optional[Master]:
        """Get a master by ID."""
        result = await db.execute(select(Master).where(Master.id == master_id))
        return result.scalar_one_or_none()

    async def list_masters(
        self,
        db: AsyncSession,
        status: Optional[MasterStatus] = None,
        page: int = 1,
        page_size: int = 20,
    ) -> tuple[list[Master], int]:
        """
        List masters, most recently transitioned first.

        Returns:
            Tuple of (masters, total_count)
        """
        query = select(Master)

        if status:
            query = query.where(Master.generate_status == status)

        count_query = select(func.count()).select_from(query.subquery())
        total = (await db.execute(count_query)).scalar() or 0

        query = (
            query.order_by(Master.generate_updated_at.desc())
            .offset((page - 1) * page_size)
            .limit(page_size)
        )

        result = await db.execute(query)
        return list(result.scalars().all()), total

    async def get_chapters(self, db: AsyncSession, master_id: str) -> list[Chapter]:
        """Chapters of a master ordered by nomor."""
        result = await db.execute(
            select(Chapter).where(Chapter.master_id == master_id).order_by(Chapter.nomor)
        )
        return list(result.scalars().all())

    async def list_generation_statuses(
        self, db: AsyncSession, master_id: str
    ) -> list[GenerationStatus]:
        """Generation rows of a master with their chapter, by kind then chapter number."""
        result = await db.execute(
            select(GenerationStatus)
            .where(GenerationStatus.master_id == master_id)
            .options(selectinload(GenerationStatus.bab))
        )
        rows = list(result.scalars().all())
        return sorted(
            rows,
            key=lambda row: (KIND_ORDER[row.jenis], row.bab.nomor if row.bab else 0),
        )

    # --------------------------------------------------------------- writes

    async def set_generate_status(
        self,
        db: AsyncSession,
        master_id: str,
        status: MasterStatus,
        now: Optional[datetime] = None,
        force: bool = False,
    ) -> MasterStatus:
        """
        Move a master to a new generate_status.

        The transition is checked against the master state machine unless
        `force` is set, and generate_updated_at is stamped. There is no
        concurrency token: the last writer wins.

        Returns:
            The status the master had before the update
        """
        result = await db.execute(
            select(Master.generate_status).where(Master.id == master_id)
        )
        current = result.scalar_one_or_none()
        if current is None:
            raise MasterNotFoundError(master_id)

        if not force:
            ensure_master_transition(current, status)

        await db.execute(
            update(Master)
            .where(Master.id == master_id)
            .values(
                generate_status=status,
                generate_updated_at=now or datetime.now(timezone.utc),
            )
        )
        logger.debug(f"Master {master_id}: {current.value} -> {status.value}")
        return current

    async def update_generation_status(
        self,
        db: AsyncSession,
        row_id: str,
        status: GenerationState,
        current_step: Optional[int] = None,
        total_steps: Optional[int] = None,
        file_path: Optional[str] = None,
    ) -> GenerationStatus:
        """Update the state and progress of one document row."""
        row = await db.get(
            GenerationStatus, row_id, options=[selectinload(GenerationStatus.bab)]
        )
        if row is None:
            raise GenerationStatusNotFoundError(row_id)

        if row.status != status:
            ensure_generation_transition(row.status, status)
            row.status = status

        if current_step is not None:
            row.current_step = current_step
        if total_steps is not None:
            row.total_steps = total_steps
        if file_path is not None:
            row.file_path = file_path

        await db.flush()
        return row

    # ----------------------------------------------------------- procedures

    async def init_generation_for_master(self, db: AsyncSession, master_id: str) -> int:
        """
        Create the expected generation_status rows for a master.

        prota and prosem are master-scoped; rpm and lkpd get one row per
        chapter. Rows that already exist are left untouched, so calling this
        again only adds rows for chapters created since the last call.

        Returns:
            Number of rows inserted
        """
        if await self.get_master(db, master_id) is None:
            raise MasterNotFoundError(master_id)

        chapters = await self.get_chapters(db, master_id)

        expected: list[tuple[DocumentKind, Optional[str]]] = [
            (kind, None) for kind in MASTER_SCOPED_KINDS
        ]
        for chapter in chapters:
            expected.extend((kind, chapter.id) for kind in CHAPTER_SCOPED_KINDS)

        # NULL bab_id never conflicts in a unique index, so filter explicitly
        existing_result = await db.execute(
            select(GenerationStatus.jenis, GenerationStatus.bab_id).where(
                GenerationStatus.master_id == master_id
            )
        )
        existing = {(row.jenis, row.bab_id) for row in existing_result}

        now = datetime.now(timezone.utc)
        rows = [
            {
                "id": str(uuid4()),
                "master_id": master_id,
                "jenis": kind,
                "bab_id": bab_id,
                "status": GenerationState.PENDING,
                "current_step": 0,
                "updated_at": now,
            }
            for kind, bab_id in expected
            if (kind, bab_id) not in existing
        ]
        if not rows:
            return 0

        insert = pg_insert if db.bind.dialect.name == "postgresql" else sqlite_insert
        stmt = (
            insert(GenerationStatus)
            .values(rows)
            .on_conflict_do_nothing(index_elements=["master_id", "jenis", "bab_id"])
        )
        await db.execute(stmt)

        logger.info(f"Initialized {len(rows)} generation rows for master {master_id}")
        return len(rows)

    async def sync_progress(self, db: AsyncSession, master_id: str) -> dict[str, int]:
        """
        Recompute the master's document counters from its generation rows.

        Returns:
            Dict with total, done and error counts
        """
        result = await db.execute(
            select(
                func.count().filter(GenerationStatus.status == GenerationState.DONE).label("done"),
                func.count().filter(GenerationStatus.status == GenerationState.ERROR).label("error"),
                func.count().label("total"),
            ).where(GenerationStatus.master_id == master_id)
        )
        row = result.one()

        await db.execute(
            update(Master)
            .where(Master.id == master_id)
            .values(
                dokumen_total=row.total,
                dokumen_selesai=row.done,
                dokumen_error=row.error,
            )
        )

        return {"total": row.total, "done": row.done, "error": row.error}

    async def finalize_after_sync(
        self,
        db: AsyncSession,
        master_id: str,
        now: Optional[datetime] = None,
    ) -> MasterStatus:
        """
        Derive the master's post-sync status from its document rows.

        Returns:
            The status written to the master
        """
        result = await db.execute(
            select(
                func.count().filter(GenerationStatus.status == GenerationState.DONE).label("done"),
                func.count().filter(GenerationStatus.status == GenerationState.ERROR).label("error"),
                func.count()
                .filter(
                    GenerationStatus.status.in_(
                        [GenerationState.GENERATING, GenerationState.GENERATING_AI]
                    )
                )
                .label("active"),
                func.count().label("total"),
            ).where(GenerationStatus.master_id == master_id)
        )
        row = result.one()

        if row.total == 0:
            status = MasterStatus.BELUM_SIAP
        elif row.done == row.total:
            status = MasterStatus.SELESAI
        elif row.done + row.error == row.total:
            status = MasterStatus.ERROR
        elif row.done > 0 or row.active > 0:
            status = MasterStatus.MENUNGGU
        else:
            status = MasterStatus.BELUM_MULAI

        await self.set_generate_status(db, master_id, status, now=now)
        return status

    # ------------------------------------------------------------ responses

    def master_to_response(self, master: Master) -> MasterResponse:
        """Convert Master model to response schema."""
        progress = 0.0
        if master.dokumen_total > 0:
            progress = master.dokumen_selesai / master.dokumen_total * 100

        return MasterResponse(
            id=master.id,
            nama=master.nama,
            generate_status=master.generate_status.value,
            generate_updated_at=master.generate_updated_at,
            percobaan=master.percobaan,
            dokumen_total=master.dokumen_total,
            dokumen_selesai=master.dokumen_selesai,
            dokumen_error=master.dokumen_error,
            progress_percent=round(progress, 2),
            created_at=master.created_at,
        )

    def generation_status_to_response(self, row: GenerationStatus) -> GenerationStatusResponse:
        """Convert a generation_status row to response schema."""
        if row.total_steps:
            progress = f"{row.current_step or 0} / {row.total_steps}"
        else:
            progress = "-"

        return GenerationStatusResponse(
            id=row.id,
            master_id=row.master_id,
            jenis=row.jenis.value,
            bab_id=row.bab_id,
            bab_nomor=row.bab.nomor if row.bab else None,
            bab_judul=row.bab.judul if row.bab else None,
            status=row.status.value,
            current_step=row.current_step,
            total_steps=row.total_steps,
            progress=progress,
            file_path=row.file_path,
        )


# Singleton instance
job_store = JobStore()
