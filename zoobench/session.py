from __future__ import annotations

import contextlib
import logging
from typing import Callable, Iterator

from kazoo.client import KazooClient
from kazoo.exceptions import KazooException
from kazoo.handlers.threading import KazooTimeoutError
from kazoo.protocol.states import KazooState

from .config import BenchmarkConfig
from .errors import SessionError

LOGGER = logging.getLogger("zoobench.session")

DIGEST_SCHEME = "digest"

SessionFactory = Callable[[BenchmarkConfig], KazooClient]


def _log_state_change(state: KazooState) -> None:
    if state == KazooState.CONNECTED:
        LOGGER.debug("ZooKeeper session state changed: %s", state)
    else:
        LOGGER.info("ZooKeeper session state changed: %s", state)


def _log_closing_state_change(state: KazooState) -> None:
    LOGGER.debug("ZooKeeper session state changed while closing: %s", state)


def open_session(config: BenchmarkConfig) -> KazooClient:
    """Connect a new client and apply the digest credential when configured.

    Every caller gets its own client; clients are never shared between
    workers.
    """
    try:
        client = KazooClient(hosts=config.hosts, timeout=config.connect_timeout)
    except ValueError as exc:
        raise SessionError(f"invalid ZooKeeper hosts {config.hosts!r}: {exc}") from exc

    client.add_listener(_log_state_change)
    try:
        client.start(timeout=config.connect_timeout)
    except KazooTimeoutError as exc:
        close_session(client)
        raise SessionError(
            f"failed to connect to ZooKeeper at {config.hosts} within "
            f"{config.connect_timeout:g} seconds"
        ) from exc
    except (KazooException, ValueError, OSError) as exc:
        close_session(client)
        raise SessionError(f"failed to connect to ZooKeeper at {config.hosts}: {exc}") from exc

    if config.digest:
        try:
            client.add_auth(DIGEST_SCHEME, config.digest)
        except KazooException as exc:
            close_session(client)
            raise SessionError(f"failed to authenticate with scheme {DIGEST_SCHEME!r}") from exc
    return client


def close_session(client: KazooClient) -> None:
    # stop() always ends in LOST; that one is expected.
    with contextlib.suppress(Exception):
        client.remove_listener(_log_state_change)
        client.add_listener(_log_closing_state_change)
    with contextlib.suppress(Exception):
        client.stop()
    with contextlib.suppress(Exception):
        client.close()


@contextlib.contextmanager
def session_scope(
    config: BenchmarkConfig, connect: SessionFactory = open_session
) -> Iterator[KazooClient]:
    client = connect(config)
    try:
        yield client
    finally:
        close_session(client)


__all__ = ["SessionFactory", "close_session", "open_session", "session_scope"]
