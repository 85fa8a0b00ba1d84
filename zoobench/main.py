from __future__ import annotations

import argparse
import contextlib
import logging
import os
import sys

from .bench import BenchmarkResult, run_benchmark
from .config import (
    DEFAULT_HOSTS,
    DEFAULT_ITERATIONS,
    DEFAULT_NODE_SIZE,
    DEFAULT_PREFIX,
    DEFAULT_THREADS,
    DEFAULT_TIMEOUT_SECONDS,
    BenchmarkConfig,
    parse_size,
)
from .docker_control import ZooKeeperServerManager
from .errors import ZooBenchError
from .session import SessionFactory, open_session

LOGGER = logging.getLogger("zoobench")


def _size(value: str) -> int:
    try:
        return parse_size(value)
    except ValueError as exc:
        raise argparse.ArgumentTypeError(str(exc)) from exc


def _seconds(value: str) -> float:
    try:
        seconds = float(value)
    except ValueError as exc:
        raise argparse.ArgumentTypeError(f"invalid duration {value!r}") from exc
    if seconds <= 0:
        raise argparse.ArgumentTypeError("duration must be > 0 seconds")
    return seconds


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="zoobench",
        description="ZooKeeper write (TPS) and read (QPS) throughput benchmark",
    )
    parser.add_argument(
        "hosts",
        nargs="?",
        default=os.environ.get("ZOOBENCH_HOSTS", DEFAULT_HOSTS),
        help="ZooKeeper hosts",
    )
    parser.add_argument(
        "-t",
        "--timeout",
        type=_seconds,
        default=os.environ.get("ZOOBENCH_TIMEOUT", str(DEFAULT_TIMEOUT_SECONDS)),
        help="Connection timeout in seconds",
    )
    parser.add_argument(
        "-n",
        "--iteration",
        type=int,
        default=os.environ.get("ZOOBENCH_ITERATION", str(DEFAULT_ITERATIONS)),
        help="Number of total znodes",
    )
    parser.add_argument(
        "-j",
        "--threads",
        type=int,
        default=os.environ.get("ZOOBENCH_THREADS", str(DEFAULT_THREADS)),
        help="Number of threads",
    )
    parser.add_argument(
        "-s",
        "--node-size",
        type=_size,
        default=os.environ.get("ZOOBENCH_NODE_SIZE", DEFAULT_NODE_SIZE),
        help="ZNode value size in bytes (accepts units such as 128K or 1MiB)",
    )
    parser.add_argument(
        "-e",
        "--ephemeral",
        action="store_true",
        help="Create ephemeral znodes",
    )
    parser.add_argument(
        "-p",
        "--prefix",
        default=os.environ.get("ZOOBENCH_PREFIX", DEFAULT_PREFIX),
        help="Test prefix; the whole subtree is deleted before the run",
    )
    parser.add_argument(
        "-d",
        "--digest",
        default=os.environ.get("ZOOBENCH_DIGEST"),
        help="user:password credential applied with the digest scheme",
    )
    parser.add_argument(
        "--assign-remainder",
        action="store_true",
        help="Give the iterations left over by an uneven split to the last thread",
    )
    parser.add_argument(
        "--no-progress",
        action="store_true",
        help="Disable per-worker progress bars",
    )
    parser.add_argument(
        "--zookeeper-image",
        default=os.environ.get("ZOOBENCH_ZOOKEEPER_IMAGE"),
        help="Start a disposable ZooKeeper container from this image and benchmark it",
    )
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Only print the resolved benchmark settings without executing them",
    )
    parser.add_argument(
        "--log-level",
        default=os.environ.get("ZOOBENCH_LOG_LEVEL", "INFO"),
        help="Logging level",
    )
    return parser.parse_args(argv)


def setup_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )
    # kazoo logs every connection attempt at INFO
    logging.getLogger("kazoo.client").setLevel(logging.WARNING)


def build_config(args: argparse.Namespace, hosts: str | None = None) -> BenchmarkConfig:
    return BenchmarkConfig.build(
        hosts or args.hosts,
        node_size=args.node_size,
        connect_timeout=args.timeout,
        total_iterations=args.iteration,
        worker_count=args.threads,
        ephemeral=args.ephemeral,
        prefix=args.prefix,
        digest=args.digest,
        assign_remainder=args.assign_remainder,
        show_progress=not args.no_progress,
    )


def print_bench_result(result: BenchmarkResult) -> None:
    LOGGER.info(
        "Write phase %.3fs, read phase %.3fs, total %.3fs",
        result.write_elapsed,
        result.read_elapsed,
        result.elapsed,
    )
    LOGGER.info("TPS: %.2f, QPS: %.2f", result.tps, result.qps)


def main(argv: list[str] | None = None, connect: SessionFactory = open_session) -> int:
    args = parse_args(argv)
    setup_logging(args.log_level)

    try:
        # Validate before a container is started for nothing.
        config = build_config(args)
    except ZooBenchError as exc:
        LOGGER.error("Invalid configuration: %s", exc)
        return 1

    if args.dry_run:
        _print_plan(config, args.zookeeper_image)
        return 0

    if args.zookeeper_image:
        server = ZooKeeperServerManager(args.zookeeper_image).run()
    else:
        server = contextlib.nullcontext(None)

    try:
        with server as provisioned_hosts:
            if provisioned_hosts:
                config = build_config(args, hosts=provisioned_hosts)
            LOGGER.info("Benchmarking %s", config.hosts)
            result = run_benchmark(config, connect)
    except ZooBenchError as exc:
        LOGGER.error("%s", exc)
        return 1

    print_bench_result(result)
    return 0


def _print_plan(config: BenchmarkConfig, image: str | None) -> None:
    hosts = f"<container from {image}>" if image else config.hosts
    print(f"Hosts: {hosts}")
    print(
        f"  iterations={config.total_iterations} threads={config.worker_count} "
        f"node_size={config.node_size}B ephemeral={config.ephemeral}"
    )
    print(
        f"  prefix={config.prefix} node_path_template={config.node_path_template} "
        f"timeout={config.connect_timeout:g}s auth={'digest' if config.digest else 'none'}"
    )


if __name__ == "__main__":
    sys.exit(main())
