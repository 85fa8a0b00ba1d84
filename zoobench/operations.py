from __future__ import annotations

from typing import Callable

from kazoo.client import KazooClient
from kazoo.exceptions import KazooException
from kazoo.security import OPEN_ACL_UNSAFE

from .config import BenchmarkConfig
from .errors import OperationError

Operation = Callable[[KazooClient, BenchmarkConfig, int], None]


def create_node(session: KazooClient, config: BenchmarkConfig, item_index: int) -> None:
    """Create the znode for ``item_index`` holding the shared payload."""
    path = config.node_path(item_index)
    try:
        session.create(
            path,
            config.node_value,
            acl=OPEN_ACL_UNSAFE,
            ephemeral=config.ephemeral,
        )
    except KazooException as exc:
        raise OperationError(path, exc) from exc


def read_node(session: KazooClient, config: BenchmarkConfig, item_index: int) -> None:
    """Read back the znode for ``item_index`` without leaving a watch."""
    path = config.node_path(item_index)
    try:
        session.get(path)
    except KazooException as exc:
        raise OperationError(path, exc) from exc


__all__ = ["Operation", "create_node", "read_node"]
