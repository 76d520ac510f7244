"""Sequential preparation pipeline for not-ready masters."""

import logging

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from gen_scheduler.db.models import MasterStatus
from gen_scheduler.services.edge_client import EdgeFunctionClient, EdgeFunctionError
from gen_scheduler.services.job_store import job_store

logger = logging.getLogger(__name__)


class SyncError(Exception):
    """A hard failure inside the sync pipeline."""


class SyncPipeline:
    """
    Prepares one master for orchestration.

    Steps, strictly in order:
        1. claim the master (generate_status -> sedang_jalan)
        2. init_generation_for_master
        3. fetch chapters ordered by nomor
        4. generate the AI structure of each chapter, one at a time
        5. sync_progress, then finalize_after_sync

    Any failure in steps 2-5 puts the master back to belum_siap, whatever
    its status is by then, and re-raises. Chapters generated before the
    failure are kept. A master without chapters skips step 4.
    """

    def __init__(
        self,
        session_maker: async_sessionmaker[AsyncSession],
        edge_client: EdgeFunctionClient,
    ):
        self.session_maker = session_maker
        self.edge_client = edge_client

    async def run(self, master_id: str) -> MasterStatus:
        """
        Run the pipeline for one master.

        Returns:
            The status written by finalize_after_sync
        """
        async with self.session_maker() as db:
            await job_store.set_generate_status(db, master_id, MasterStatus.SEDANG_JALAN)
            await db.commit()

        try:
            final_status = await self._sync(master_id)
        except Exception as e:
            logger.error(f"Sync failed for master {master_id}: {e}")
            await self._rollback(master_id)
            raise

        logger.info(f"Sync completed for master {master_id} ({final_status.value})")
        return final_status

    async def _sync(self, master_id: str) -> MasterStatus:
        async with self.session_maker() as db:
            await job_store.init_generation_for_master(db, master_id)
            await db.commit()

        async with self.session_maker() as db:
            try:
                chapters = await job_store.get_chapters(db, master_id)
            except SQLAlchemyError as e:
                raise SyncError(f"Failed to fetch chapters for master {master_id}") from e
            chapter_ids = [chapter.id for chapter in chapters]

        if not chapter_ids:
            logger.info(f"Master {master_id} has no chapters yet, skipping structure generation")

        # One chapter at a time, in nomor order
        for bab_id in chapter_ids:
            try:
                await self.edge_client.generate_bab_structure(bab_id)
            except EdgeFunctionError as e:
                raise SyncError(f"Failed to generate bab {bab_id}: {e.detail}") from e

        async with self.session_maker() as db:
            await job_store.sync_progress(db, master_id)
            await db.commit()

        async with self.session_maker() as db:
            final_status = await job_store.finalize_after_sync(db, master_id)
            await db.commit()

        return final_status

    async def _rollback(self, master_id: str) -> None:
        """Return the master to belum_siap so a later pass retries it."""
        try:
            async with self.session_maker() as db:
                await job_store.set_generate_status(
                    db, master_id, MasterStatus.BELUM_SIAP, force=True
                )
                await db.commit()
        except Exception:
            # The caller re-raises the original failure
            logger.exception(
                f"Rollback to belum_siap failed for master {master_id}: store write error"
            )
        else:
            logger.info(f"Master {master_id} rolled back to belum_siap")
