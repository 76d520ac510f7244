"""Admission control against the global concurrency cap."""

import logging
from dataclasses import dataclass

from sqlalchemy.ext.asyncio import AsyncSession

from gen_scheduler.services.job_store import job_store

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AdmissionDecision:
    """Outcome of the admission check at the start of a pass."""

    cap: int
    running_count: int
    available_slots: int

    @property
    def skipped(self) -> bool:
        return self.available_slots == 0


def available_slots(cap: int, running_count: int) -> int:
    """Free slots under `cap`, never negative."""
    return max(0, cap - running_count)


async def check_admission(db: AsyncSession, cap: int) -> AdmissionDecision:
    """
    Read the running count once and compute free capacity.

    This is an optimistic check, not a lock: overlapping passes may both
    see the same count and briefly overshoot the cap.
    """
    running = await job_store.count_running(db)
    decision = AdmissionDecision(
        cap=cap,
        running_count=running,
        available_slots=available_slots(cap, running),
    )
    if decision.skipped:
        logger.info(f"Quota full: {running} sedang_jalan (cap {cap})")
    else:
        logger.info(f"Available slots: {decision.available_slots} ({running} sedang_jalan)")
    return decision
