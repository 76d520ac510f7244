"""Candidate selection from the not-ready, ready and stuck pools."""

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Iterable, Literal, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from gen_scheduler.db.models import Master
from gen_scheduler.services.job_store import job_store
from gen_scheduler.services.status import POOL_NOT_READY, POOL_READY, RUNNING_STATUS

logger = logging.getLogger(__name__)

Action = Literal["sync", "orchestrate"]


@dataclass
class Candidate:
    """A master selected for this pass and what to do with it."""

    id: str
    action: Action
    generate_status: Optional[str] = None
    percobaan: Optional[int] = None


def _sync_candidate(master: Master) -> Candidate:
    return Candidate(id=master.id, action="sync")


def _orchestrate_candidate(master: Master) -> Candidate:
    return Candidate(
        id=master.id,
        action="orchestrate",
        generate_status=master.generate_status.value,
        percobaan=master.percobaan,
    )


def merge_pools(slots: int, *pools: Iterable[Candidate]) -> list[Candidate]:
    """
    Drain pools in the given priority order until `slots` are filled.

    A master id already taken from an earlier pool is never added twice.
    """
    selected: list[Candidate] = []
    seen: set[str] = set()

    for pool in pools:
        for candidate in pool:
            if len(selected) >= slots:
                return selected
            if candidate.id in seen:
                continue
            seen.add(candidate.id)
            selected.append(candidate)

    return selected


async def select_candidates(
    db: AsyncSession,
    slots: int,
    stuck_threshold: timedelta,
    now: Optional[datetime] = None,
) -> list[Candidate]:
    """
    Build the ordered candidate list for one pass.

    Pools, in priority order, each oldest generate_updated_at first:
    - A: belum_siap -> sync
    - B: belum_mulai / menunggu -> orchestrate
    - C: sedang_jalan older than `stuck_threshold` -> orchestrate

    Each query is limited to `slots` rows and later pools are not queried
    once the list is full.
    """
    if slots <= 0:
        return []

    now = now or datetime.now(timezone.utc)
    candidates: list[Candidate] = []

    not_ready = await job_store.list_pool(db, POOL_NOT_READY, slots)
    candidates = merge_pools(slots, candidates, map(_sync_candidate, not_ready))

    if len(candidates) < slots:
        ready = await job_store.list_pool(db, POOL_READY, slots)
        candidates = merge_pools(slots, candidates, map(_orchestrate_candidate, ready))

    if len(candidates) < slots:
        stuck = await job_store.list_pool(
            db, (RUNNING_STATUS,), slots, updated_before=now - stuck_threshold
        )
        if stuck:
            logger.warning(
                f"Reclaiming {len(stuck)} stuck master(s) older than {stuck_threshold}"
            )
        candidates = merge_pools(slots, candidates, map(_orchestrate_candidate, stuck))

    return candidates
