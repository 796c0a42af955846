from __future__ import annotations

import asyncio
import os
import time
from datetime import UTC, datetime, timedelta, timezone
from pathlib import Path

import pytest

from sharealyzer.archive import ArchiveWriter, record_path
from sharealyzer.config import ReplayConfig
from sharealyzer.models import CircScooter, Snapshot
from sharealyzer.sources.replay import ReplaySource

_T0 = datetime(2019, 10, 8, 22, 0, tzinfo=UTC)


def _write(base: Path, minutes: float, *ids: str) -> Path:
    records = [
        {"identifier": vehicle_id, "latitude": 51.48, "longitude": 7.22, "energyLevel": 80, "state": "IDLE_RENTABLE"}
        for vehicle_id in ids or ("a",)
    ]
    snapshot = Snapshot.from_vehicles(
        _T0 + timedelta(minutes=minutes),
        [CircScooter.model_validate(record).to_vehicle() for record in records],
    )
    return ArchiveWriter(base).write(snapshot)


def _age(path: Path, seconds: float = 600.0) -> None:
    past = time.time() - seconds
    os.utime(path, (past, past))


async def _collect(source: ReplaySource, stop: asyncio.Event | None = None) -> list[Snapshot]:
    return [snapshot async for snapshot in source.snapshots(stop or asyncio.Event())]


async def _next(queue: asyncio.Queue[Snapshot]) -> Snapshot:
    return await asyncio.wait_for(queue.get(), timeout=5.0)


@pytest.mark.asyncio
async def test_replays_across_day_folders_in_order(tmp_path: Path) -> None:
    # Written out of order; 130 minutes lands in the next day folder.
    for minutes in (130, 5, 0, 60):
        _write(tmp_path, minutes)

    snapshots = await _collect(ReplaySource(ReplayConfig(base_dir=tmp_path)))

    assert [s.taken_at for s in snapshots] == [_T0 + timedelta(minutes=m) for m in (0, 5, 60, 130)]
    assert sorted(p.name for p in tmp_path.iterdir()) == ["circ_2019-10-08", "circ_2019-10-09"]


@pytest.mark.asyncio
async def test_window_start_inclusive_end_exclusive(tmp_path: Path) -> None:
    for minutes in (0, 5, 10, 15):
        _write(tmp_path, minutes)
    config = ReplayConfig(
        base_dir=tmp_path,
        start=_T0 + timedelta(minutes=5),
        end=_T0 + timedelta(minutes=15),
    )

    snapshots = await _collect(ReplaySource(config))

    assert [s.taken_at for s in snapshots] == [_T0 + timedelta(minutes=5), _T0 + timedelta(minutes=10)]


@pytest.mark.asyncio
async def test_malformed_record_is_skipped(tmp_path: Path, caplog: pytest.LogCaptureFixture) -> None:
    _write(tmp_path, 0)
    broken = record_path(tmp_path, "circ", _T0 + timedelta(minutes=1))
    broken.write_bytes(b"\x1f\x8b not really gzip")
    _write(tmp_path, 2)
    source = ReplaySource(ReplayConfig(base_dir=tmp_path))

    snapshots = await _collect(source)

    assert [s.taken_at for s in snapshots] == [_T0, _T0 + timedelta(minutes=2)]
    assert source.skipped_records == 1
    assert "Skipping malformed record" in caplog.text


@pytest.mark.asyncio
async def test_stop_before_start_yields_nothing(tmp_path: Path) -> None:
    _write(tmp_path, 0)
    stop = asyncio.Event()
    stop.set()

    assert await _collect(ReplaySource(ReplayConfig(base_dir=tmp_path)), stop) == []


@pytest.mark.asyncio
async def test_empty_archive_finishes(tmp_path: Path) -> None:
    assert await _collect(ReplaySource(ReplayConfig(base_dir=tmp_path / "nothing-here"))) == []


@pytest.mark.asyncio
async def test_tail_picks_up_new_records_and_new_folders(tmp_path: Path) -> None:
    _write(tmp_path, 0)
    config = ReplayConfig(base_dir=tmp_path, tail=True, poll_interval=0.01, settle_seconds=0.0)
    source = ReplaySource(config)
    stop = asyncio.Event()
    received: asyncio.Queue[Snapshot] = asyncio.Queue()

    async def consume() -> None:
        async for snapshot in source.snapshots(stop):
            await received.put(snapshot)

    task = asyncio.create_task(consume())
    try:
        assert (await _next(received)).taken_at == _T0

        _write(tmp_path, 1, "a", "b")
        second = await _next(received)
        assert second.taken_at == _T0 + timedelta(minutes=1)
        assert second.vehicle_ids == {"a", "b"}

        # Crosses midnight: a new day folder appears.
        _write(tmp_path, 150)
        assert (await _next(received)).taken_at == _T0 + timedelta(minutes=150)
    finally:
        stop.set()
        await asyncio.wait_for(task, timeout=5.0)


@pytest.mark.asyncio
async def test_tail_defers_records_still_being_written(tmp_path: Path) -> None:
    first = _write(tmp_path, 0)
    _age(first)
    fresh = _write(tmp_path, 1)
    config = ReplayConfig(base_dir=tmp_path, tail=True, poll_interval=0.01, settle_seconds=60.0)
    stop = asyncio.Event()
    received: asyncio.Queue[Snapshot] = asyncio.Queue()

    async def consume() -> None:
        async for snapshot in ReplaySource(config).snapshots(stop):
            await received.put(snapshot)

    task = asyncio.create_task(consume())
    try:
        assert (await _next(received)).taken_at == _T0
        await asyncio.sleep(0.1)
        assert received.empty()

        _age(fresh)
        assert (await _next(received)).taken_at == _T0 + timedelta(minutes=1)
    finally:
        stop.set()
        await asyncio.wait_for(task, timeout=5.0)


@pytest.mark.asyncio
async def test_tail_skips_late_records(tmp_path: Path) -> None:
    _write(tmp_path, 10)
    config = ReplayConfig(base_dir=tmp_path, tail=True, poll_interval=0.01, settle_seconds=0.0)
    source = ReplaySource(config)
    stop = asyncio.Event()
    received: asyncio.Queue[Snapshot] = asyncio.Queue()

    async def consume() -> None:
        async for snapshot in source.snapshots(stop):
            await received.put(snapshot)

    task = asyncio.create_task(consume())
    try:
        assert (await _next(received)).taken_at == _T0 + timedelta(minutes=10)

        _write(tmp_path, 5)
        _write(tmp_path, 20)
        assert (await _next(received)).taken_at == _T0 + timedelta(minutes=20)
        assert source.skipped_records == 1
    finally:
        stop.set()
        await asyncio.wait_for(task, timeout=5.0)


@pytest.mark.asyncio
async def test_tail_does_not_revisit_records_across_utc_offsets(
    tmp_path: Path, caplog: pytest.LogCaptureFixture
) -> None:
    # Local folder days differ from UTC days: 2019-10-08 00:30+14:00 is 10:30 UTC
    # on the 7th, 2019-10-09 11:00-12:00 is 23:00 UTC on the 9th.
    early = datetime(2019, 10, 8, 0, 30, tzinfo=timezone(timedelta(hours=14)))
    late = datetime(2019, 10, 9, 11, 0, tzinfo=timezone(timedelta(hours=-12)))
    writer = ArchiveWriter(tmp_path)
    for taken_at in (early, late):
        vehicle = CircScooter.model_validate(
            {"identifier": "a", "latitude": 51.48, "longitude": 7.22, "energyLevel": 80, "state": "IDLE_RENTABLE"}
        ).to_vehicle()
        writer.write(Snapshot.from_vehicles(taken_at, [vehicle]))
    config = ReplayConfig(base_dir=tmp_path, tail=True, poll_interval=0.01, settle_seconds=0.0)
    source = ReplaySource(config)
    stop = asyncio.Event()
    received: asyncio.Queue[Snapshot] = asyncio.Queue()

    async def consume() -> None:
        async for snapshot in source.snapshots(stop):
            await received.put(snapshot)

    task = asyncio.create_task(consume())
    try:
        assert (await _next(received)).taken_at == early
        assert (await _next(received)).taken_at == late
        # Several tail polls go by.
        await asyncio.sleep(0.2)
        assert received.empty()
        assert source.skipped_records == 0
        assert "late record" not in caplog.text
    finally:
        stop.set()
        await asyncio.wait_for(task, timeout=5.0)
