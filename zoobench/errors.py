from __future__ import annotations

from typing import TYPE_CHECKING, Sequence

if TYPE_CHECKING:
    from .runner import WorkerOutcome


class ZooBenchError(Exception):
    """Base class for every failure the benchmark reports to its caller."""


class ConfigurationError(ZooBenchError, ValueError):
    """Raised when a benchmark configuration cannot be run as given."""


class SessionError(ZooBenchError):
    """Raised when a ZooKeeper session cannot be established or authenticated."""


class PreparationError(ZooBenchError):
    """Raised when the benchmark namespace cannot be reset."""


class OperationError(ZooBenchError):
    """Raised when a single create or read against a znode fails."""

    def __init__(self, path: str, cause: BaseException) -> None:
        super().__init__(f"{path}: {cause!r}")
        self.path = path
        self.cause = cause


class BenchmarkFailedError(ZooBenchError):
    """Raised when at least one worker of a phase stopped on an error."""

    def __init__(self, phase: str, failures: Sequence["WorkerOutcome"]) -> None:
        workers = ", ".join(f"#{outcome.worker_id}" for outcome in failures)
        super().__init__(
            f"{phase} benchmark failed: {len(failures)} worker(s) exited with errors ({workers})"
        )
        self.phase = phase
        self.failures = list(failures)


__all__ = [
    "ZooBenchError",
    "ConfigurationError",
    "SessionError",
    "PreparationError",
    "OperationError",
    "BenchmarkFailedError",
]
