from __future__ import annotations

import pytest
from kazoo.exceptions import ConnectionLoss, NoAuthError
from kazoo.security import OPEN_ACL_UNSAFE

from zoobench.errors import PreparationError
from zoobench.prepare import intermediate_paths, prepare


@pytest.mark.parametrize(
    "template, expected",
    [
        ("/zoobench/test-node", ["/zoobench"]),
        ("/a/b/test-node", ["/a", "/a/b"]),
        ("/a//b/test-node", ["/a", "/a/b"]),
        ("/test-node", []),
    ],
)
def test_intermediate_paths_exclude_leaf(template, expected):
    assert intermediate_paths(template) == expected


def test_prepare_creates_empty_persistent_prefix(ensemble, make_config):
    prepare(make_config(), ensemble.connect)

    assert ensemble.nodes["/bench-test"] == b""
    assert ensemble.acls["/bench-test"] == OPEN_ACL_UNSAFE
    assert "/bench-test" not in ensemble.ephemeral_owners
    assert "/bench-test/test-node" not in ensemble.nodes
    assert ensemble.closed == [0]


def test_prepare_creates_every_parent_of_nested_prefix(ensemble, make_config):
    prepare(make_config(prefix="/perf/zk/run"), ensemble.connect)

    assert ensemble.paths("create") == ["/perf", "/perf/zk", "/perf/zk/run"]


def test_prepare_removes_leftovers_from_previous_run(ensemble, make_config):
    ensemble.nodes.update(
        {
            "/bench-test": b"",
            "/bench-test/test-node0": b"old",
            "/bench-test/test-node1": b"old",
            "/bench-test/other": b"",
            "/bench-test/other/deep": b"",
        }
    )

    prepare(make_config(), ensemble.connect)

    assert ensemble.children("/bench-test") == []
    assert "/bench-test" in ensemble.nodes


def test_prepare_is_idempotent(ensemble, make_config):
    config = make_config()

    prepare(config, ensemble.connect)
    first = dict(ensemble.nodes)
    prepare(config, ensemble.connect)

    assert ensemble.nodes == first


def test_prepare_tolerates_parent_that_already_exists(ensemble, make_config):
    ensemble.nodes["/perf"] = b"keep"

    prepare(make_config(prefix="/perf/run"), ensemble.connect)

    assert ensemble.nodes["/perf"] == b"keep"
    assert ensemble.nodes["/perf/run"] == b""


def test_prepare_applies_credential_before_any_call(ensemble, make_config):
    prepare(make_config(digest="bench:secret"), ensemble.connect)

    assert ensemble.calls[0] == (0, "add_auth", "bench:secret")


def test_delete_failure_aborts_preparation(ensemble, make_config):
    ensemble.nodes["/bench-test"] = b""
    ensemble.fail("delete", "/bench-test", NoAuthError())

    with pytest.raises(PreparationError):
        prepare(make_config(), ensemble.connect)

    assert ensemble.paths("create") == []
    assert ensemble.closed == [0]


def test_create_failure_aborts_preparation(ensemble, make_config):
    ensemble.fail("create", "/perf", ConnectionLoss())

    with pytest.raises(PreparationError, match="/perf"):
        prepare(make_config(prefix="/perf/run"), ensemble.connect)

    assert ensemble.paths("create") == ["/perf"]
    assert ensemble.closed == [0]
