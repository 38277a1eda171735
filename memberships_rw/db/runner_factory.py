"""Query runner factory.

Selects the runner adapter for the configured engine:
- neo4j: Neo4jQueryRunner (default)
- memgraph: MemgraphQueryRunner

Environment variables:
- GRAPH_BACKEND: Backend used when none is passed ('neo4j', 'memgraph')
"""

import os
import socket
import time
from typing import Literal
from urllib.parse import urlparse

from memberships_rw.db.query_protocol import DEFAULT_MAX_BATCH_SIZE, QueryRunner
from memberships_rw.log_config import get_logger

log = get_logger("db.runner_factory")

BackendType = Literal["neo4j", "memgraph"]

SUPPORTED_BACKENDS = ("neo4j", "memgraph")


def create_query_runner(
    backend: BackendType | None = None,
    uri: str = "bolt://localhost:7687",
    username: str = "",
    password: str = "",
    max_batch_size: int = DEFAULT_MAX_BATCH_SIZE,
    verify: bool = True,
) -> QueryRunner:
    """Create a query runner for the given engine.

    A failed connectivity check is logged, not raised: the service starts
    anyway and reports the problem through its health checks.

    Args:
        backend: "neo4j" or "memgraph" (default: GRAPH_BACKEND, then neo4j)
        uri: Bolt URI of the database
        username: Optional username
        password: Optional password
        max_batch_size: Maximum statements per batch
        verify: Probe connectivity after creating the runner

    Returns:
        QueryRunner instance

    Raises:
        ValueError: If the backend name is unknown
    """
    if backend is None:
        backend = os.environ.get("GRAPH_BACKEND", "").lower() or "neo4j"
        log.info(f"Using backend from environment: {backend}")

    if backend == "neo4j":
        from memberships_rw.db.neo4j_backend import Neo4jQueryRunner

        runner = Neo4jQueryRunner(uri, username, password, max_batch_size=max_batch_size)
    elif backend == "memgraph":
        from memberships_rw.db.memgraph_backend import MemgraphQueryRunner

        runner = MemgraphQueryRunner(uri, username, password, max_batch_size=max_batch_size)
    else:
        raise ValueError(f"Unknown graph backend '{backend}', expected one of {SUPPORTED_BACKENDS}")

    if verify and not runner.health_check():
        log.error(f"Could not connect to {backend} at {uri}")
    elif verify:
        log.info(f"{backend} runner verified at {uri}")

    return runner


def wait_for_ready(runner: QueryRunner, timeout: float = 60.0, interval: float = 0.5) -> bool:
    """Block until the runner answers or the timeout expires.

    Uses exponential backoff capped at 5 seconds.

    Returns:
        True if the database became reachable, False on timeout
    """
    start_time = time.time()
    attempts = 0
    current_interval = interval

    while (time.time() - start_time) < timeout:
        attempts += 1
        if runner.health_check():
            elapsed = time.time() - start_time
            if attempts > 1:
                log.info(f"{runner.backend_name} ready after {elapsed:.1f}s ({attempts} attempts)")
            return True
        time.sleep(current_interval)
        current_interval = min(current_interval * 1.5, 5.0)

    log.warning(f"{runner.backend_name} not ready after {timeout:.0f}s ({attempts} attempts)")
    return False


def is_endpoint_open(uri: str, timeout: float = 2.0) -> bool:
    """Socket-level check that something listens on the Bolt port.

    Avoids the driver's long connection timeout when nothing is running.
    """
    parsed = urlparse(uri)
    host = parsed.hostname or "localhost"
    port = parsed.port or 7687
    try:
        sock = socket.create_connection((host, port), timeout=timeout)
        sock.close()
        return True
    except OSError as e:
        log.debug(f"Socket check failed at {host}:{port}: {e}")
        return False
