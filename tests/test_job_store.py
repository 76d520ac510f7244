"""Tests for the job store procedures."""

from datetime import datetime, timezone
from uuid import uuid4

import pytest
from sqlalchemy import select, update

from gen_scheduler.db.models import (
    Chapter,
    DocumentKind,
    GenerationState,
    GenerationStatus,
    Master,
    MasterStatus,
)
from gen_scheduler.services.job_store import (
    GenerationStatusNotFoundError,
    MasterNotFoundError,
    job_store,
)
from gen_scheduler.services.status import InvalidTransitionError


async def _row_keys(db, master_id):
    result = await db.execute(
        select(GenerationStatus.jenis, GenerationStatus.bab_id).where(
            GenerationStatus.master_id == master_id
        )
    )
    return sorted((row.jenis.value, row.bab_id or "") for row in result)


async def _set_row_states(db, master_id, *states):
    rows = (
        await db.execute(
            select(GenerationStatus)
            .where(GenerationStatus.master_id == master_id)
            .order_by(GenerationStatus.id)
        )
    ).scalars().all()
    for row, state in zip(rows, states):
        row.status = state
    await db.commit()


@pytest.mark.asyncio
async def test_init_generation_creates_expected_rows(create_master, db_session):
    master_id = await create_master(chapters=[1, 2])

    inserted = await job_store.init_generation_for_master(db_session, master_id)
    await db_session.commit()

    rows = (
        await db_session.execute(
            select(GenerationStatus).where(GenerationStatus.master_id == master_id)
        )
    ).scalars().all()
    kinds = sorted(row.jenis.value for row in rows)

    assert inserted == 6
    assert kinds == ["lkpd", "lkpd", "prosem", "prota", "rpm", "rpm"]
    assert all(row.status == GenerationState.PENDING for row in rows)
    assert all(row.current_step == 0 for row in rows)
    assert all((row.bab_id is None) == (not row.jenis.chapter_scoped) for row in rows)


@pytest.mark.asyncio
async def test_init_generation_is_idempotent(create_master, db_session):
    master_id = await create_master(chapters=[1, 2])

    await job_store.init_generation_for_master(db_session, master_id)
    await db_session.commit()
    first = await _row_keys(db_session, master_id)

    inserted = await job_store.init_generation_for_master(db_session, master_id)
    await db_session.commit()

    assert inserted == 0
    assert await _row_keys(db_session, master_id) == first


@pytest.mark.asyncio
async def test_init_generation_keeps_existing_progress(create_master, db_session):
    master_id = await create_master(chapters=[1])
    await job_store.init_generation_for_master(db_session, master_id)
    await db_session.commit()
    await _set_row_states(db_session, master_id, GenerationState.DONE)

    db_session.add(Chapter(id=str(uuid4()), master_id=master_id, nomor=2, judul="Bab 2"))
    await db_session.commit()
    inserted = await job_store.init_generation_for_master(db_session, master_id)
    await db_session.commit()

    done = (
        await db_session.execute(
            select(GenerationStatus).where(
                GenerationStatus.master_id == master_id,
                GenerationStatus.status == GenerationState.DONE,
            )
        )
    ).scalars().all()

    assert inserted == 2
    assert len(done) == 1
    assert len(await _row_keys(db_session, master_id)) == 6


@pytest.mark.asyncio
async def test_init_generation_unknown_master(db_session):
    with pytest.raises(MasterNotFoundError):
        await job_store.init_generation_for_master(db_session, str(uuid4()))


@pytest.mark.asyncio
async def test_set_generate_status_stamps_updated_at(create_master, db_session, fetch_master):
    master_id = await create_master(MasterStatus.BELUM_SIAP, age_minutes=60)
    stamp = datetime(2026, 10, 19, 8, 0, tzinfo=timezone.utc)

    previous = await job_store.set_generate_status(
        db_session, master_id, MasterStatus.SEDANG_JALAN, now=stamp
    )
    await db_session.commit()

    master = await fetch_master(master_id)
    assert previous == MasterStatus.BELUM_SIAP
    assert master.generate_status == MasterStatus.SEDANG_JALAN
    assert master.generate_updated_at.replace(tzinfo=timezone.utc) == stamp


@pytest.mark.asyncio
async def test_set_generate_status_rejects_invalid_transition(create_master, db_session, fetch_master):
    master_id = await create_master(MasterStatus.SELESAI)

    with pytest.raises(InvalidTransitionError):
        await job_store.set_generate_status(db_session, master_id, MasterStatus.SEDANG_JALAN)

    assert (await fetch_master(master_id)).generate_status == MasterStatus.SELESAI


@pytest.mark.asyncio
async def test_forced_status_write_skips_transition_check(create_master, db_session, fetch_master):
    master_id = await create_master(MasterStatus.SEDANG_PROSES)

    previous = await job_store.set_generate_status(
        db_session, master_id, MasterStatus.BELUM_SIAP, force=True
    )
    await db_session.commit()

    assert previous == MasterStatus.SEDANG_PROSES
    assert (await fetch_master(master_id)).generate_status == MasterStatus.BELUM_SIAP


@pytest.mark.asyncio
async def test_set_generate_status_unknown_master(db_session):
    with pytest.raises(MasterNotFoundError):
        await job_store.set_generate_status(db_session, str(uuid4()), MasterStatus.MENUNGGU)


@pytest.mark.asyncio
async def test_sync_progress_counts_documents(create_master, db_session, fetch_master):
    master_id = await create_master(chapters=[1])
    await job_store.init_generation_for_master(db_session, master_id)
    await db_session.commit()
    await _set_row_states(
        db_session, master_id, GenerationState.DONE, GenerationState.DONE, GenerationState.ERROR
    )

    counts = await job_store.sync_progress(db_session, master_id)
    await db_session.commit()

    master = await fetch_master(master_id)
    assert counts == {"total": 4, "done": 2, "error": 1}
    assert (master.dokumen_total, master.dokumen_selesai, master.dokumen_error) == (4, 2, 1)


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "states,expected",
    [
        ((), MasterStatus.BELUM_MULAI),
        ((GenerationState.DONE,), MasterStatus.MENUNGGU),
        ((GenerationState.GENERATING_AI,), MasterStatus.MENUNGGU),
        ((GenerationState.DONE,) * 4, MasterStatus.SELESAI),
        ((GenerationState.DONE,) * 3 + (GenerationState.ERROR,), MasterStatus.ERROR),
    ],
)
async def test_finalize_after_sync(create_master, db_session, fetch_master, states, expected):
    master_id = await create_master(MasterStatus.SEDANG_JALAN, chapters=[1])
    await job_store.init_generation_for_master(db_session, master_id)
    await db_session.commit()
    await _set_row_states(db_session, master_id, *states)

    status = await job_store.finalize_after_sync(db_session, master_id)
    await db_session.commit()

    assert status == expected
    assert (await fetch_master(master_id)).generate_status == expected


@pytest.mark.asyncio
async def test_finalize_without_rows_returns_to_belum_siap(create_master, db_session):
    master_id = await create_master(MasterStatus.SEDANG_JALAN)

    status = await job_store.finalize_after_sync(db_session, master_id)

    assert status == MasterStatus.BELUM_SIAP


@pytest.mark.asyncio
async def test_generation_statuses_ordered_by_kind_and_chapter(create_master, db_session):
    master_id = await create_master(chapters=[2, 1])
    await job_store.init_generation_for_master(db_session, master_id)
    await db_session.commit()

    rows = await job_store.list_generation_statuses(db_session, master_id)

    assert [(r.jenis.value, r.bab.nomor if r.bab else None) for r in rows] == [
        ("prota", None),
        ("prosem", None),
        ("rpm", 1),
        ("rpm", 2),
        ("lkpd", 1),
        ("lkpd", 2),
    ]


@pytest.mark.asyncio
async def test_update_generation_status_progress(create_master, db_session):
    master_id = await create_master(chapters=[1])
    await job_store.init_generation_for_master(db_session, master_id)
    await db_session.commit()
    [row] = [
        r
        for r in await job_store.list_generation_statuses(db_session, master_id)
        if r.jenis == DocumentKind.RPM
    ]

    await job_store.update_generation_status(
        db_session, row.id, GenerationState.GENERATING, current_step=1, total_steps=4
    )
    updated = await job_store.update_generation_status(
        db_session, row.id, GenerationState.GENERATING, current_step=2
    )
    response = job_store.generation_status_to_response(updated)

    assert response.status == "generating"
    assert response.progress == "2 / 4"
    assert response.bab_nomor == 1

    with pytest.raises(InvalidTransitionError):
        await job_store.update_generation_status(db_session, row.id, GenerationState.PENDING)


@pytest.mark.asyncio
async def test_update_generation_status_unknown_row(db_session):
    with pytest.raises(GenerationStatusNotFoundError):
        await job_store.update_generation_status(db_session, str(uuid4()), GenerationState.DONE)


@pytest.mark.asyncio
async def test_list_masters_filters_by_status(create_master, db_session):
    await create_master(MasterStatus.MENUNGGU)
    await create_master(MasterStatus.MENUNGGU)
    await create_master(MasterStatus.BELUM_SIAP)

    masters, total = await job_store.list_masters(db_session, MasterStatus.MENUNGGU, page_size=1)

    assert total == 2
    assert len(masters) == 1
    assert masters[0].generate_status == MasterStatus.MENUNGGU


@pytest.mark.asyncio
async def test_master_progress_percent(create_master, db_session):
    master_id = await create_master()
    await db_session.execute(
        update(Master)
        .where(Master.id == master_id)
        .values(dokumen_total=8, dokumen_selesai=2)
    )
    await db_session.commit()

    master = await job_store.get_master(db_session, master_id)

    assert job_store.master_to_response(master).progress_percent == 25.0
