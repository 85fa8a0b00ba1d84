from __future__ import annotations

import os
import re
from dataclasses import dataclass, field

from .errors import ConfigurationError

DEFAULT_HOSTS = "127.0.0.1:2181"
DEFAULT_TIMEOUT_SECONDS = 10.0
DEFAULT_ITERATIONS = 1000
DEFAULT_THREADS = 8
DEFAULT_NODE_SIZE = "128K"
DEFAULT_PREFIX = "/zoobench"
NODE_NAME = "test-node"

_SIZE_PATTERN = re.compile(r"^\s*(\d+(?:\.\d+)?)\s*([a-z]*)\s*$", re.IGNORECASE)
_SIZE_UNITS: dict[str, int] = {
    "": 1,
    "b": 1,
    "k": 1000,
    "kb": 1000,
    "m": 1000**2,
    "mb": 1000**2,
    "g": 1000**3,
    "gb": 1000**3,
    "t": 1000**4,
    "tb": 1000**4,
    "p": 1000**5,
    "pb": 1000**5,
    "ki": 1024,
    "kib": 1024,
    "mi": 1024**2,
    "mib": 1024**2,
    "gi": 1024**3,
    "gib": 1024**3,
    "ti": 1024**4,
    "tib": 1024**4,
    "pi": 1024**5,
    "pib": 1024**5,
}


@dataclass(frozen=True)
class BenchmarkConfig:
    """Immutable description of one benchmark run, shared read-only by all workers."""

    hosts: str
    connect_timeout: float
    total_iterations: int
    worker_count: int
    node_value: bytes = field(repr=False)
    ephemeral: bool = False
    prefix: str = DEFAULT_PREFIX
    digest: str | None = field(default=None, repr=False)
    assign_remainder: bool = False
    show_progress: bool = True

    def __post_init__(self) -> None:
        if self.total_iterations <= 0:
            raise ConfigurationError("iteration count must be > 0")
        if self.worker_count <= 0:
            raise ConfigurationError("thread count must be > 0")
        if self.worker_count > self.total_iterations:
            raise ConfigurationError(
                f"thread count ({self.worker_count}) must not exceed "
                f"iteration count ({self.total_iterations})"
            )
        if self.connect_timeout <= 0:
            raise ConfigurationError("connection timeout must be > 0")
        if not self.prefix.startswith("/") or self.prefix == "/" or self.prefix.endswith("/"):
            raise ConfigurationError(
                f"prefix must be an absolute znode path without a trailing slash, got {self.prefix!r}"
            )

    @classmethod
    def build(
        cls,
        hosts: str,
        *,
        node_size: int,
        connect_timeout: float = DEFAULT_TIMEOUT_SECONDS,
        total_iterations: int = DEFAULT_ITERATIONS,
        worker_count: int = DEFAULT_THREADS,
        **options,
    ) -> "BenchmarkConfig":
        """Create a config whose payload is ``node_size`` random bytes."""
        if node_size < 0:
            raise ConfigurationError("node size must be >= 0")
        return cls(
            hosts=hosts,
            connect_timeout=connect_timeout,
            total_iterations=total_iterations,
            worker_count=worker_count,
            node_value=os.urandom(node_size),
            **options,
        )

    @property
    def node_path_template(self) -> str:
        return f"{self.prefix}/{NODE_NAME}"

    def node_path(self, item_index: int) -> str:
        return f"{self.node_path_template}{item_index}"

    @property
    def node_size(self) -> int:
        return len(self.node_value)


def parse_size(value: str) -> int:
    """Parse ``128K``/``1MiB`` style sizes; decimal units are powers of 1000."""

    match = _SIZE_PATTERN.match(value)
    if not match:
        raise ValueError(f"invalid size {value!r}")
    number, unit = match.groups()
    multiplier = _SIZE_UNITS.get(unit.lower())
    if multiplier is None:
        raise ValueError(f"unknown size unit {unit!r} in {value!r}")
    return int(float(number) * multiplier)


__all__ = [
    "BenchmarkConfig",
    "DEFAULT_HOSTS",
    "DEFAULT_ITERATIONS",
    "DEFAULT_NODE_SIZE",
    "DEFAULT_PREFIX",
    "DEFAULT_THREADS",
    "DEFAULT_TIMEOUT_SECONDS",
    "parse_size",
]
