"""
ZooKeeper throughput benchmark.

This package resets a disposable namespace, drives a fixed number of znode
creates and then reads across a pool of worker threads, each holding its own
session, and reports write (TPS) and read (QPS) throughput.
"""

from .main import main

__all__ = ["main"]
