"""Status state machines for masters and generated documents.

The store keeps statuses as plain strings; every write that goes through
this service is checked against the tables below so that an illegal
transition is rejected before it reaches the database.
"""

from gen_scheduler.db.models import GenerationState, MasterStatus

# Pools read by the candidate selector
POOL_NOT_READY = (MasterStatus.BELUM_SIAP,)
POOL_READY = (MasterStatus.BELUM_MULAI, MasterStatus.MENUNGGU)
RUNNING_STATUS = MasterStatus.SEDANG_JALAN

MASTER_TRANSITIONS: dict[MasterStatus, frozenset[MasterStatus]] = {
    MasterStatus.BELUM_SIAP: frozenset(
        {
            MasterStatus.SEDANG_JALAN,
            MasterStatus.BELUM_MULAI,
            MasterStatus.MENUNGGU,
            MasterStatus.ERROR,
        }
    ),
    MasterStatus.BELUM_MULAI: frozenset(
        {
            MasterStatus.MENUNGGU,
            MasterStatus.SEDANG_JALAN,
            MasterStatus.SEDANG_PROSES,
            MasterStatus.ERROR,
        }
    ),
    MasterStatus.MENUNGGU: frozenset(
        {
            MasterStatus.BELUM_MULAI,
            MasterStatus.SEDANG_JALAN,
            MasterStatus.SEDANG_PROSES,
            MasterStatus.ERROR,
        }
    ),
    MasterStatus.SEDANG_JALAN: frozenset(
        {
            MasterStatus.BELUM_SIAP,  # sync rollback
            MasterStatus.BELUM_MULAI,
            MasterStatus.MENUNGGU,
            MasterStatus.SEDANG_PROSES,
            MasterStatus.SELESAI,
            MasterStatus.ERROR,
        }
    ),
    MasterStatus.SEDANG_PROSES: frozenset(
        {
            MasterStatus.SEDANG_JALAN,
            MasterStatus.MENUNGGU,
            MasterStatus.SELESAI,
            MasterStatus.ERROR,
        }
    ),
    MasterStatus.ERROR: frozenset({MasterStatus.BELUM_SIAP, MasterStatus.MENUNGGU}),
    MasterStatus.SELESAI: frozenset(),
}

GENERATION_TRANSITIONS: dict[GenerationState, frozenset[GenerationState]] = {
    GenerationState.PENDING: frozenset(
        {GenerationState.GENERATING, GenerationState.GENERATING_AI, GenerationState.ERROR}
    ),
    GenerationState.GENERATING: frozenset(
        {GenerationState.GENERATING_AI, GenerationState.DONE, GenerationState.ERROR}
    ),
    GenerationState.GENERATING_AI: frozenset(
        {GenerationState.GENERATING, GenerationState.DONE, GenerationState.ERROR}
    ),
    GenerationState.ERROR: frozenset({GenerationState.PENDING}),
    GenerationState.DONE: frozenset(),
}


class InvalidTransitionError(ValueError):
    """Raised when a status change is not in the transition table."""

    def __init__(self, entity: str, current: str, target: str):
        self.entity = entity
        self.current = current
        self.target = target
        super().__init__(f"Invalid {entity} transition: {current} -> {target}")


def can_transition_master(current: MasterStatus, target: MasterStatus) -> bool:
    return target in MASTER_TRANSITIONS[current]


def ensure_master_transition(current: MasterStatus, target: MasterStatus) -> None:
    """Raise InvalidTransitionError unless current -> target is allowed."""
    if not can_transition_master(current, target):
        raise InvalidTransitionError("master", current.value, target.value)


def ensure_generation_transition(current: GenerationState, target: GenerationState) -> None:
    """Raise InvalidTransitionError unless a document row may move current -> target."""
    if target not in GENERATION_TRANSITIONS[current]:
        raise InvalidTransitionError("generation_status", current.value, target.value)

