from __future__ import annotations

import contextlib
import logging
import time
from typing import Iterator

import docker
from docker.errors import DockerException
from docker.models.containers import Container

from .errors import ZooBenchError

LOGGER = logging.getLogger("zoobench.docker")

CLIENT_PORT = "2181/tcp"


class ZooKeeperServerManager:
    """Start a throwaway ZooKeeper container and yield its client address."""

    def __init__(
        self,
        image: str,
        settle_seconds: float = 2.0,
        startup_grace_seconds: float = 30.0,
        client: docker.DockerClient | None = None,
    ) -> None:
        self._image = image
        self._settle_seconds = settle_seconds
        self._startup_grace_seconds = startup_grace_seconds
        self._client = client

    @contextlib.contextmanager
    def run(self) -> Iterator[str]:
        LOGGER.info("Starting ZooKeeper container from image %s", self._image)
        container: Container | None = None
        try:
            client = self._client or docker.from_env()
            container = client.containers.run(
                self._image,
                name=f"zoobench-zookeeper-{int(time.time())}",
                detach=True,
                ports={CLIENT_PORT: None},
            )
            hosts = self._await_client_address(container)
        except DockerException as exc:
            _remove(container)
            raise ZooBenchError(f"failed to start ZooKeeper container from {self._image}") from exc
        except ZooBenchError:
            _remove(container)
            raise

        LOGGER.info("ZooKeeper container %s listening on %s", container.name, hosts)
        try:
            yield hosts
        finally:
            _remove(container)

    def _await_client_address(self, container: Container) -> str:
        deadline = time.time() + self._startup_grace_seconds
        while True:
            container.reload()
            if container.attrs.get("State", {}).get("Running", False):
                time.sleep(self._settle_seconds)
                break
            if time.time() >= deadline:
                LOGGER.warning("ZooKeeper container is not running yet; benchmarking anyway")
                break
            time.sleep(1.0)

        bindings = container.attrs.get("NetworkSettings", {}).get("Ports", {}).get(CLIENT_PORT)
        if not bindings:
            raise ZooBenchError(f"container {container.name} did not publish {CLIENT_PORT}")
        return f"127.0.0.1:{bindings[0]['HostPort']}"


def _remove(container: Container | None) -> None:
    if container is None:
        return
    LOGGER.info("Removing ZooKeeper container %s", container.name)
    with contextlib.suppress(DockerException):
        container.remove(force=True)


__all__ = ["ZooKeeperServerManager"]
