from __future__ import annotations

import logging
import threading
import time
from dataclasses import dataclass, field

from kazoo.client import KazooClient
from tqdm import tqdm

from .config import BenchmarkConfig
from .errors import BenchmarkFailedError
from .operations import Operation
from .session import SessionFactory, close_session, open_session

LOGGER = logging.getLogger("zoobench.runner")

PROGRESS_FORMAT = "[{elapsed}] {bar:40} {n_fmt:>7}/{total_fmt:7} {desc}"


def partition(total: int, workers: int, assign_remainder: bool = False) -> list[range]:
    """Split ``[0, total)`` into one contiguous range per worker.

    Each worker gets ``total // workers`` items. The ``total % workers``
    trailing items are left out unless ``assign_remainder`` is set, in which
    case the last worker also takes them.
    """
    if workers <= 0:
        raise ValueError("workers must be > 0")
    count = total // workers
    ranges = [range(worker_id * count, (worker_id + 1) * count) for worker_id in range(workers)]
    if assign_remainder and ranges:
        last = ranges[-1]
        ranges[-1] = range(last.start, total)
    return ranges


@dataclass
class WorkerOutcome:
    worker_id: int
    completed: int
    error: BaseException | None = None
    session: KazooClient | None = field(default=None, repr=False)

    @property
    def failed(self) -> bool:
        return self.error is not None


@dataclass
class PhaseResult:
    phase: str
    elapsed: float
    outcomes: list[WorkerOutcome]

    @property
    def operations(self) -> int:
        return sum(outcome.completed for outcome in self.outcomes)

    def close_sessions(self) -> None:
        for outcome in self.outcomes:
            if outcome.session is not None:
                close_session(outcome.session)
                outcome.session = None


class BenchmarkRunner:
    """Fan one phase out to a fixed set of worker threads and time it.

    Workers own their sessions and are never cancelled: a failing worker
    stops on its own while its siblings run to completion. The phase is
    timed from before the first worker starts until the last one joined.
    """

    def __init__(
        self,
        config: BenchmarkConfig,
        connect: SessionFactory = open_session,
    ) -> None:
        self._config = config
        self._connect = connect

    def ranges(self) -> list[range]:
        return partition(
            self._config.total_iterations,
            self._config.worker_count,
            self._config.assign_remainder,
        )

    def run(
        self,
        phase: str,
        operation: Operation,
        keep_sessions: bool = False,
    ) -> PhaseResult:
        ranges = self.ranges()
        dropped = self._config.total_iterations - sum(len(items) for items in ranges)
        if dropped:
            LOGGER.warning(
                "%d of %d item(s) do not divide evenly across %d worker(s) and are skipped",
                dropped,
                self._config.total_iterations,
                self._config.worker_count,
            )

        bars = [self._new_progress_bar(worker_id, len(items)) for worker_id, items in enumerate(ranges)]
        # Each worker writes only its own slot; slots are read after the join.
        slots: list[WorkerOutcome | None] = [None] * len(ranges)

        def worker(worker_id: int, items: range, bar: tqdm) -> None:
            slots[worker_id] = self._run_worker(worker_id, items, operation, keep_sessions, bar)

        threads = [
            threading.Thread(
                target=worker,
                args=(worker_id, items, bar),
                name=f"zoobench-{phase}-{worker_id}",
                daemon=True,
            )
            for worker_id, (items, bar) in enumerate(zip(ranges, bars))
        ]
        started_at = time.perf_counter()
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()
        elapsed = time.perf_counter() - started_at

        for bar in bars:
            bar.close()

        outcomes = [
            outcome
            if outcome is not None
            else WorkerOutcome(worker_id, 0, error=RuntimeError("worker exited without an outcome"))
            for worker_id, outcome in enumerate(slots)
        ]
        result = PhaseResult(phase=phase, elapsed=elapsed, outcomes=outcomes)
        failures = [outcome for outcome in outcomes if outcome.failed]
        if failures:
            result.close_sessions()
            raise BenchmarkFailedError(phase, failures)

        LOGGER.info(
            "%s phase finished: %d operation(s) in %.3fs",
            phase,
            result.operations,
            elapsed,
        )
        return result

    def _run_worker(
        self,
        worker_id: int,
        items: range,
        operation: Operation,
        keep_session: bool,
        bar: tqdm,
    ) -> WorkerOutcome:
        completed = 0
        session: KazooClient | None = None
        try:
            session = self._connect(self._config)
            bar.set_description_str("Connected")
            for item_index in items:
                operation(session, self._config, item_index)
                completed += 1
                bar.update(1)
        except Exception as exc:  # noqa: BLE001
            LOGGER.error("Worker #%d exit after %d operation(s), %s", worker_id, completed, exc)
            bar.set_description_str(f"Worker #{worker_id} failed")
            if session is not None:
                close_session(session)
            return WorkerOutcome(worker_id=worker_id, completed=completed, error=exc)

        bar.set_description_str(f"Worker #{worker_id} finish")
        if keep_session:
            return WorkerOutcome(worker_id=worker_id, completed=completed, session=session)
        close_session(session)
        return WorkerOutcome(worker_id=worker_id, completed=completed)

    def _new_progress_bar(self, worker_id: int, total: int) -> tqdm:
        return tqdm(
            total=total,
            desc=f"Worker #{worker_id}",
            position=worker_id,
            bar_format=PROGRESS_FORMAT,
            disable=not self._config.show_progress,
            leave=True,
        )


__all__ = ["BenchmarkRunner", "PhaseResult", "WorkerOutcome", "partition"]
