"""One scheduler pass: admission, candidate selection and dispatch."""

import asyncio
import logging
from datetime import datetime, timedelta
from typing import Optional, Union

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from gen_scheduler.config import Settings, get_settings
from gen_scheduler.schemas.schemas import (
    DispatchResult,
    SchedulerErrorResponse,
    SchedulerRunResponse,
)
from gen_scheduler.services.admission import check_admission
from gen_scheduler.services.edge_client import EdgeFunctionClient
from gen_scheduler.services.selector import Candidate, select_candidates
from gen_scheduler.services.sync_pipeline import SyncPipeline

logger = logging.getLogger(__name__)

NO_ELIGIBLE_MESSAGE = "No eligible masters to process"

PassResponse = Union[SchedulerRunResponse, SchedulerErrorResponse]


class Scheduler:
    """
    Advances masters under a global concurrency cap.

    The scheduler keeps no state between passes: every pass re-reads the
    running count, so overlapping passes are allowed.
    """

    def __init__(
        self,
        session_maker: async_sessionmaker[AsyncSession],
        edge_client: EdgeFunctionClient,
        max_concurrent: int = 3,
        stuck_threshold: timedelta = timedelta(minutes=10),
    ):
        self.session_maker = session_maker
        self.edge_client = edge_client
        self.max_concurrent = max_concurrent
        self.stuck_threshold = stuck_threshold
        self.sync_pipeline = SyncPipeline(session_maker, edge_client)

    @classmethod
    def from_settings(cls, settings: Optional[Settings] = None) -> "Scheduler":
        from gen_scheduler.db.session import async_session_maker

        settings = settings or get_settings()
        return cls(
            session_maker=async_session_maker,
            edge_client=EdgeFunctionClient.from_settings(settings),
            max_concurrent=settings.max_concurrent,
            stuck_threshold=settings.stuck_threshold,
        )

    async def run_pass(self, now: Optional[datetime] = None) -> PassResponse:
        """
        Run one pass and summarize it.

        Per-master failures are reported in `results`. Anything that fails
        before dispatch aborts the pass and yields a SchedulerErrorResponse.
        """
        try:
            async with self.session_maker() as db:
                decision = await check_admission(db, self.max_concurrent)
                if decision.skipped:
                    return SchedulerRunResponse(
                        skipped=True,
                        message=f"Quota full: {decision.running_count} sedang_jalan",
                        running_count=decision.running_count,
                    )

                candidates = await select_candidates(
                    db, decision.available_slots, self.stuck_threshold, now=now
                )

            if not candidates:
                logger.info(NO_ELIGIBLE_MESSAGE)
                return SchedulerRunResponse(message=NO_ELIGIBLE_MESSAGE)

            results = await self.dispatch(candidates)
        except Exception as e:
            logger.exception(f"Scheduler pass failed: {e}")
            return SchedulerErrorResponse(error=str(e))

        failed = sum(1 for r in results if not r.success)
        logger.info(f"Pass finished: {len(results)} processed, {failed} failed")

        return SchedulerRunResponse(
            processed=len(results),
            available_slots=decision.available_slots,
            results=results,
        )

    async def dispatch(self, candidates: list[Candidate]) -> list[DispatchResult]:
        """
        Run every candidate concurrently and collect settled outcomes.

        Results keep the order of `candidates`; one task failing never
        cancels the others.
        """
        outcomes = await asyncio.gather(
            *(self._run_candidate(candidate) for candidate in candidates),
            return_exceptions=True,
        )

        results = []
        for candidate, outcome in zip(candidates, outcomes):
            if isinstance(outcome, BaseException):
                logger.error(f"{candidate.action} failed for master {candidate.id}: {outcome}")
                results.append(
                    DispatchResult(
                        id=candidate.id,
                        action=candidate.action,
                        success=False,
                        error=str(outcome) or type(outcome).__name__,
                    )
                )
            else:
                results.append(outcome)

        return results

    async def _run_candidate(self, candidate: Candidate) -> DispatchResult:
        if candidate.action == "sync":
            logger.info(f"Syncing: {candidate.id}")
            await self.sync_pipeline.run(candidate.id)
        else:
            # Status changes on this path belong to the orchestrator
            logger.info(f"Orchestrating: {candidate.id}")
            await self.edge_client.run_orchestrator(candidate.id)

        return DispatchResult(id=candidate.id, action=candidate.action, success=True)
