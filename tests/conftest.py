"""
Shared fixtures: an in-memory stand-in for a ZooKeeper ensemble.

``FakeEnsemble.connect`` has the signature of ``zoobench.session.open_session``
and hands out one ``FakeZooKeeper`` client per call, all backed by the same
thread-safe tree. Failures can be injected per (operation, path).
"""

from __future__ import annotations

import itertools
import threading

import pytest
from kazoo.exceptions import NodeExistsError, NoNodeError, NotEmptyError

from zoobench.config import BenchmarkConfig


class FakeZooKeeper:
    def __init__(self, ensemble: "FakeEnsemble", session_id: int) -> None:
        self.ensemble = ensemble
        self.session_id = session_id
        self.auth: list[tuple[str, str]] = []
        self.thread_name = threading.current_thread().name
        self.connected = True

    def add_auth(self, scheme: str, credential: str) -> None:
        self.ensemble.record(self, "add_auth", credential)
        self.auth.append((scheme, credential))

    def create(self, path, value=b"", acl=None, ephemeral=False, sequence=False, makepath=False):
        self.ensemble.record(self, "create", path)
        with self.ensemble.lock:
            if path in self.ensemble.nodes:
                raise NodeExistsError()
            parent = path.rsplit("/", 1)[0] or "/"
            if parent not in self.ensemble.nodes:
                raise NoNodeError()
            self.ensemble.nodes[path] = bytes(value)
            self.ensemble.acls[path] = acl
            if ephemeral:
                self.ensemble.ephemeral_owners[path] = self.session_id
        return path

    def get(self, path, watch=None):
        self.ensemble.record(self, "get", path)
        if watch is not None:
            self.ensemble.watches.append(path)
        with self.ensemble.lock:
            if path not in self.ensemble.nodes:
                raise NoNodeError()
            return self.ensemble.nodes[path], None

    def delete(self, path, version=-1, recursive=False):
        self.ensemble.record(self, "delete", path)
        with self.ensemble.lock:
            if path not in self.ensemble.nodes:
                raise NoNodeError()
            subtree = [node for node in self.ensemble.nodes if node.startswith(path + "/")]
            if subtree and not recursive:
                raise NotEmptyError()
            for node in subtree + [path]:
                del self.ensemble.nodes[node]
                self.ensemble.ephemeral_owners.pop(node, None)
        return True

    def stop(self) -> None:
        self.connected = False
        with self.ensemble.lock:
            owned = [
                path
                for path, owner in self.ensemble.ephemeral_owners.items()
                if owner == self.session_id
            ]
            for path in owned:
                del self.ensemble.ephemeral_owners[path]
                self.ensemble.nodes.pop(path, None)

    def close(self) -> None:
        self.ensemble.closed.append(self.session_id)


class FakeEnsemble:
    def __init__(self) -> None:
        self.lock = threading.Lock()
        self.nodes: dict[str, bytes] = {"/": b""}
        self.acls: dict[str, object] = {}
        self.ephemeral_owners: dict[str, int] = {}
        self.watches: list[str] = []
        self.calls: list[tuple[int, str, str]] = []
        self.sessions: list[FakeZooKeeper] = []
        self.closed: list[int] = []
        self.failures: dict[tuple[str, str], Exception] = {}
        self.connect_error: Exception | None = None
        self._ids = itertools.count()

    def connect(self, config: BenchmarkConfig) -> FakeZooKeeper:
        if self.connect_error is not None:
            raise self.connect_error
        with self.lock:
            client = FakeZooKeeper(self, next(self._ids))
            self.sessions.append(client)
        if config.digest:
            client.add_auth("digest", config.digest)
        return client

    def fail(self, operation: str, path: str, exc: Exception) -> None:
        self.failures[(operation, path)] = exc

    def record(self, client: FakeZooKeeper, operation: str, path: str) -> None:
        with self.lock:
            self.calls.append((client.session_id, operation, path))
        exc = self.failures.get((operation, path))
        if exc is not None:
            raise exc

    def paths(self, operation: str) -> list[str]:
        with self.lock:
            return [path for _, op, path in self.calls if op == operation]

    def children(self, path: str) -> list[str]:
        with self.lock:
            return sorted(
                node[len(path) + 1 :]
                for node in self.nodes
                if node.startswith(path + "/") and "/" not in node[len(path) + 1 :]
            )


@pytest.fixture
def ensemble() -> FakeEnsemble:
    return FakeEnsemble()


@pytest.fixture
def make_config():
    def factory(**overrides) -> BenchmarkConfig:
        options = {
            "hosts": "zk1:2181",
            "connect_timeout": 5.0,
            "total_iterations": 100,
            "worker_count": 4,
            "node_value": b"payload",
            "prefix": "/bench-test",
            "show_progress": False,
        }
        options.update(overrides)
        return BenchmarkConfig(**options)

    return factory
