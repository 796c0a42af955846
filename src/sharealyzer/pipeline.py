"""Pipeline orchestration.

Stages run as independent asyncio tasks joined by bounded queues::

    source ──┬─> tracker ─> classifier ──┬─> trip sink 1
             ├─> snapshot sink 1         └─> trip sink 2
             └─> snapshot sink 2

Every fan-out point hands each item to all branches, in order, before
looking at the next item. End of stream is a sentinel travelling the same
way, so cancelling the source lets every stage drain and finish.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Sequence
from dataclasses import dataclass, field
from datetime import datetime
from enum import StrEnum
from typing import Any, Generic, TypeVar

from sharealyzer.exceptions import SharealyzerError
from sharealyzer.models.snapshot import Snapshot
from sharealyzer.models.trip import OpenTrip, Trip
from sharealyzer.sinks import Sink
from sharealyzer.sources.base import SnapshotSource
from sharealyzer.trips.policy import TripClassifier
from sharealyzer.trips.tracker import TripTracker

_logger = logging.getLogger(__name__)

T = TypeVar("T")


class _End:
    def __repr__(self) -> str:
        return "<end of stream>"


_END = _End()


class OverflowPolicy(StrEnum):
    """What a branch does when its queue is full.

    ``BLOCK`` makes the producer wait (bounded back pressure). ``DROP_OLDEST``
    discards the oldest queued item to make room; drops are counted and
    logged, never silent.
    """

    BLOCK = "block"
    DROP_OLDEST = "drop_oldest"


class _Branch(Generic[T]):
    """Bounded queue feeding one consumer."""

    def __init__(self, name: str, maxsize: int, policy: OverflowPolicy) -> None:
        self.name = name
        self.policy = policy
        self.queue: asyncio.Queue[T | _End] = asyncio.Queue(maxsize=maxsize)
        self.dropped = 0

    async def put(self, item: T | _End) -> None:
        if self.policy is OverflowPolicy.BLOCK:
            await self.queue.put(item)
            return
        while self.queue.full():
            self.queue.get_nowait()
            self.dropped += 1
            _logger.warning("Branch %s full, dropped oldest item (%d dropped so far)", self.name, self.dropped)
        self.queue.put_nowait(item)

    async def get(self) -> T | _End:
        return await self.queue.get()


async def _fan_out(branches: Sequence[_Branch[T]], item: T | _End) -> None:
    for branch in branches:
        await branch.put(item)


@dataclass(frozen=True, slots=True)
class PipelineFailure:
    """Fatal stage failure.

    ``last_snapshot_at`` is the capture time of the last snapshot the
    tracker processed completely; replaying from just after it resumes the
    run without gaps or duplicates.
    """

    stage: str
    error: BaseException
    last_snapshot_at: datetime | None

    def __str__(self) -> str:
        last = self.last_snapshot_at.isoformat() if self.last_snapshot_at else "none"
        return f"stage {self.stage!r} failed: {self.error}; last processed snapshot: {last}"


@dataclass(frozen=True)
class PipelineResult:
    name: str
    snapshots_delivered: int
    snapshots_processed: int
    trips_finalized: int
    last_snapshot_at: datetime | None
    open_trips: dict[str, OpenTrip]
    dropped: dict[str, int] = field(default_factory=dict)
    failure: PipelineFailure | None = None

    @property
    def ok(self) -> bool:
        return self.failure is None


class Pipeline:
    """Runs one snapshot source through tracker, classifier and sinks.

    Each pipeline owns its tracker; independent fleets get independent
    pipelines (see :func:`run_pipelines`).

    Usage::

        pipeline = Pipeline(source, trip_sinks=[stats])
        result = await pipeline.run()
        if not result.ok:
            log.error("%s", result.failure)
    """

    def __init__(
        self,
        source: SnapshotSource,
        *,
        tracker: TripTracker | None = None,
        classifier: TripClassifier | None = None,
        snapshot_sinks: Sequence[Sink[Snapshot]] = (),
        trip_sinks: Sequence[Sink[Trip]] = (),
        queue_size: int = 100,
        overflow: dict[str, OverflowPolicy] | None = None,
        name: str | None = None,
    ) -> None:
        if queue_size < 1:
            raise ValueError("queue_size must be at least 1")
        self._source = source
        self._tracker = tracker or TripTracker()
        self._classifier = classifier or TripClassifier()
        self._snapshot_sinks = list(snapshot_sinks)
        self._trip_sinks = list(trip_sinks)
        self._name = name or source.name
        self._stop = asyncio.Event()
        self._started = False

        policies = overflow or {}
        unknown = set(policies) - {sink.name for sink in (*self._snapshot_sinks, *self._trip_sinks)}
        if unknown:
            raise ValueError(f"Overflow policy for unknown sinks: {sorted(unknown)}")

        # Tracker and classifier never drop: losing a snapshot would corrupt trips.
        self._tracker_branch: _Branch[Snapshot] = _Branch("tracker", queue_size, OverflowPolicy.BLOCK)
        self._classifier_branch: _Branch[Trip] = _Branch("classifier", queue_size, OverflowPolicy.BLOCK)
        self._snapshot_branches: list[_Branch[Snapshot]] = [
            _Branch(sink.name, queue_size, policies.get(sink.name, OverflowPolicy.BLOCK))
            for sink in self._snapshot_sinks
        ]
        self._trip_branches: list[_Branch[Trip]] = [
            _Branch(sink.name, queue_size, policies.get(sink.name, OverflowPolicy.BLOCK))
            for sink in self._trip_sinks
        ]

        self._delivered = 0
        self._trips_finalized = 0
        self._failure: tuple[str, BaseException] | None = None

    @property
    def name(self) -> str:
        return self._name

    @property
    def tracker(self) -> TripTracker:
        return self._tracker

    def cancel(self) -> None:
        """Ask the source to stop; stages finish once they saw every delivered item."""
        if not self._stop.is_set():
            _logger.info("Pipeline %s: cancellation requested", self._name)
        self._stop.set()

    def _fail(self, stage: str, error: BaseException) -> None:
        _logger.error("Pipeline %s: stage %s failed", self._name, stage, exc_info=error)
        if self._failure is None:
            self._failure = (stage, error)
        self.cancel()

    # ------------------------------------------------------------------
    # Stages
    # ------------------------------------------------------------------

    async def _run_source(self) -> None:
        branches: list[_Branch[Snapshot]] = [self._tracker_branch, *self._snapshot_branches]
        try:
            async for snapshot in self._source.snapshots(self._stop):
                await _fan_out(branches, snapshot)
                self._delivered += 1
        except Exception as exc:
            self._fail(f"source:{self._source.name}", exc)
        await _fan_out(branches, _END)

    async def _run_tracker(self) -> None:
        failed = False
        while True:
            item = await self._tracker_branch.get()
            if isinstance(item, _End):
                break
            if failed:
                # Keep draining so the source never blocks on a dead stage.
                continue
            try:
                trips = self._tracker.observe(item)
            except Exception as exc:
                self._fail("tracker", exc)
                failed = True
                continue
            for trip in trips:
                await self._classifier_branch.put(trip)
        await self._classifier_branch.put(_END)

    async def _run_classifier(self) -> None:
        failed = False
        while True:
            item = await self._classifier_branch.get()
            if isinstance(item, _End):
                break
            if failed:
                continue
            try:
                trip = self._classifier.classify(item)
            except Exception as exc:
                self._fail("classifier", exc)
                failed = True
                continue
            self._trips_finalized += 1
            await _fan_out(self._trip_branches, trip)
        await _fan_out(self._trip_branches, _END)

    async def _run_sink(self, sink: Sink[Any], branch: _Branch[Any]) -> None:
        while True:
            item = await branch.get()
            if isinstance(item, _End):
                break
            try:
                await sink.write(item)
            except Exception:
                _logger.exception("Pipeline %s: sink %s failed to write an item", self._name, sink.name)
        try:
            await sink.close()
        except Exception:
            _logger.exception("Pipeline %s: sink %s failed to close", self._name, sink.name)

    # ------------------------------------------------------------------
    # Run
    # ------------------------------------------------------------------

    async def run(self) -> PipelineResult:
        """Run until the source ends, is cancelled, or a stage fails."""
        if self._started:
            raise SharealyzerError(f"Pipeline {self._name} can only run once")
        self._started = True

        coros = [self._run_source(), self._run_tracker(), self._run_classifier()]
        coros += [self._run_sink(sink, branch) for sink, branch in zip(self._snapshot_sinks, self._snapshot_branches)]
        coros += [self._run_sink(sink, branch) for sink, branch in zip(self._trip_sinks, self._trip_branches)]
        tasks = [asyncio.create_task(coro) for coro in coros]

        _logger.info("Pipeline %s started with %d stages", self._name, len(tasks))
        try:
            await asyncio.gather(*tasks)
        except BaseException:
            for task in tasks:
                task.cancel()
            await asyncio.gather(*tasks, return_exceptions=True)
            raise

        result = self._result()
        if result.ok:
            _logger.info(
                "Pipeline %s finished: %d snapshots, %d trips, %d still open",
                self._name,
                result.snapshots_processed,
                result.trips_finalized,
                len(result.open_trips),
            )
        else:
            _logger.error("Pipeline %s stopped: %s", self._name, result.failure)
        return result

    def _result(self) -> PipelineResult:
        last = self._tracker.last_snapshot_at
        failure = None
        if self._failure is not None:
            stage, error = self._failure
            failure = PipelineFailure(stage=stage, error=error, last_snapshot_at=last)
        dropped = {
            branch.name: branch.dropped
            for branch in (*self._snapshot_branches, *self._trip_branches)
            if branch.dropped
        }
        return PipelineResult(
            name=self._name,
            snapshots_delivered=self._delivered,
            snapshots_processed=self._tracker.snapshots_seen,
            trips_finalized=self._trips_finalized,
            last_snapshot_at=last,
            open_trips=self._tracker.open_trips,
            dropped=dropped,
            failure=failure,
        )


async def run_pipelines(*pipelines: Pipeline) -> list[PipelineResult]:
    """Run independent pipelines concurrently.

    A failure in one pipeline does not stop the others.
    """
    trackers = {id(pipeline.tracker) for pipeline in pipelines}
    if len(trackers) != len(pipelines):
        raise ValueError("Concurrent pipelines must not share a tracker")
    return list(await asyncio.gather(*(pipeline.run() for pipeline in pipelines)))
