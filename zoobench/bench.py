from __future__ import annotations

import logging
from dataclasses import dataclass

from .config import BenchmarkConfig
from .operations import create_node, read_node
from .prepare import prepare
from .runner import BenchmarkRunner
from .session import SessionFactory, open_session

LOGGER = logging.getLogger("zoobench.bench")

WRITE_PHASE = "TPS"
READ_PHASE = "QPS"


@dataclass(frozen=True)
class BenchmarkResult:
    tps: float
    qps: float
    write_elapsed: float
    read_elapsed: float

    @property
    def elapsed(self) -> float:
        return self.write_elapsed + self.read_elapsed


def throughput(operations: int, elapsed: float) -> float:
    """Operations per second over a measured wall-clock interval."""
    if elapsed < 0:
        raise ValueError("elapsed time must be >= 0")
    if elapsed == 0:
        return float("inf") if operations > 0 else 0.0
    return operations / elapsed


def run_benchmark(config: BenchmarkConfig, connect: SessionFactory = open_session) -> BenchmarkResult:
    """Prepare the namespace, then run the write phase followed by the read phase.

    Any failure propagates immediately, so a failed write phase never
    reaches the read phase and no rate is produced for a failed phase.
    """
    LOGGER.info("Preparing namespace %s", config.prefix)
    prepare(config, connect)

    runner = BenchmarkRunner(config, connect)

    LOGGER.info("Running %s benchmark", WRITE_PHASE)
    # Ephemeral znodes vanish with their session, so writers stay connected
    # until the readers are done.
    writes = runner.run(WRITE_PHASE, create_node, keep_sessions=config.ephemeral)
    try:
        tps = throughput(config.total_iterations, writes.elapsed)

        LOGGER.info("Running %s benchmark", READ_PHASE)
        reads = runner.run(READ_PHASE, read_node)
        qps = throughput(config.total_iterations, reads.elapsed)
    finally:
        writes.close_sessions()

    return BenchmarkResult(
        tps=tps,
        qps=qps,
        write_elapsed=writes.elapsed,
        read_elapsed=reads.elapsed,
    )


__all__ = ["BenchmarkResult", "READ_PHASE", "WRITE_PHASE", "run_benchmark", "throughput"]
