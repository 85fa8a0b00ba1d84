from __future__ import annotations

import logging

from kazoo.client import KazooClient
from kazoo.exceptions import KazooException, NodeExistsError, NoNodeError
from kazoo.security import OPEN_ACL_UNSAFE

from .config import BenchmarkConfig
from .errors import PreparationError
from .session import SessionFactory, open_session, session_scope

LOGGER = logging.getLogger("zoobench.prepare")


def intermediate_paths(template: str) -> list[str]:
    """Return the parent znodes of ``template``, root first.

    The last segment is a name prefix that node indices are appended to,
    so it is never created itself.
    """
    segments = [segment for segment in template.split("/") if segment]
    paths: list[str] = []
    current = ""
    for segment in segments[:-1]:
        current = f"{current}/{segment}"
        paths.append(current)
    return paths


def prepare(config: BenchmarkConfig, connect: SessionFactory = open_session) -> None:
    """Reset ``config.prefix`` to an empty subtree so every run starts clean."""
    with session_scope(config, connect) as session:
        _delete_namespace(session, config.prefix)
        for path in intermediate_paths(config.node_path_template):
            _ensure_node(session, path)


def _delete_namespace(session: KazooClient, prefix: str) -> None:
    try:
        session.delete(prefix, recursive=True)
    except NoNodeError:
        LOGGER.debug("Namespace %s does not exist yet", prefix)
        return
    except KazooException as exc:
        raise PreparationError(f"failed to delete namespace {prefix}") from exc
    LOGGER.info("Cleared namespace %s", prefix)


def _ensure_node(session: KazooClient, path: str) -> None:
    try:
        session.create(path, b"", acl=OPEN_ACL_UNSAFE)
    except NodeExistsError:
        LOGGER.debug("Node %s already exists", path)
    except KazooException as exc:
        raise PreparationError(f"failed to create {path}") from exc


__all__ = ["intermediate_paths", "prepare"]
