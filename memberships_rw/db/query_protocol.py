"""Query runner protocol for memberships-rw.

Defines the abstract interface the repository talks to. Concrete adapters
(Neo4j, Memgraph) execute batches of parameterized Cypher statements
atomically and report per-statement results and mutation counters.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Iterator, Protocol, runtime_checkable

from memberships_rw.errors import BatchTooLargeError
from memberships_rw.log_config import get_logger

log = get_logger("db.protocol")

DEFAULT_MAX_BATCH_SIZE = 1024


@dataclass
class CypherStatement:
    """One parameterized statement in a batch.

    Attributes:
        cypher: Cypher text (use $param syntax)
        params: Statement parameters
        name: Short label used in logs
        include_stats: Ask the runner to report mutation counters
    """
    cypher: str
    params: dict[str, Any] = field(default_factory=dict)
    name: str = ""
    include_stats: bool = False


@dataclass
class QueryResult:
    """Result of one statement from any runner.

    Attributes:
        result_set: List of result rows (each row is a list of values)
        header: Column names if available
        stats: Mutation counters, only for statements with include_stats
    """
    result_set: list[list[Any]]
    header: list[str] | None = None
    stats: dict[str, Any] | None = None

    def __iter__(self):
        """Allow iteration over result set."""
        return iter(self.result_set)

    def __len__(self):
        """Return number of result rows."""
        return len(self.result_set)

    def __bool__(self):
        """Check if result has any rows."""
        return len(self.result_set) > 0

    def records(self) -> Iterator[dict[str, Any]]:
        """Yield rows as dicts keyed by column name."""
        header = self.header or []
        for row in self.result_set:
            yield dict(zip(header, row))


@runtime_checkable
class QueryRunner(Protocol):
    """Protocol for graph query runners.

    The repository depends only on this interface.
    """

    @property
    def backend_name(self) -> str:
        """Return the backend name (e.g., 'neo4j', 'memgraph')."""
        ...

    def run_batch(self, statements: list[CypherStatement]) -> list[QueryResult]:
        """Run all statements in one transaction.

        Either every statement is applied or none is. Results are returned
        in statement order.

        Raises:
            QueryRunnerError: If any statement fails (the batch is rolled back)
        """
        ...

    def ensure_constraints(self, constraints: dict[str, str]) -> None:
        """Create uniqueness constraints, mapping label -> property. Idempotent."""
        ...

    def check(self) -> None:
        """Probe connectivity.

        Raises:
            QueryRunnerError: If the database cannot be reached
        """
        ...

    def health_check(self) -> bool:
        """Return True if the database is reachable."""
        ...

    def close(self) -> None:
        """Close the connection and release resources."""
        ...


class BaseQueryRunner(ABC):
    """Abstract base class for query runners with common functionality."""

    def __init__(self, max_batch_size: int = DEFAULT_MAX_BATCH_SIZE):
        self.max_batch_size = max_batch_size

    @property
    @abstractmethod
    def backend_name(self) -> str:
        """Return the backend name."""
        pass

    @abstractmethod
    def _execute_batch(self, statements: list[CypherStatement]) -> list[QueryResult]:
        """Run statements in a single transaction."""
        pass

    @abstractmethod
    def ensure_constraints(self, constraints: dict[str, str]) -> None:
        """Create uniqueness constraints."""
        pass

    @abstractmethod
    def check(self) -> None:
        """Probe connectivity, raising on failure."""
        pass

    @abstractmethod
    def close(self) -> None:
        """Close connection."""
        pass

    def run_batch(self, statements: list[CypherStatement]) -> list[QueryResult]:
        """Validate batch size, then run statements atomically."""
        if len(statements) > self.max_batch_size:
            raise BatchTooLargeError(len(statements), self.max_batch_size)
        if not statements:
            return []

        log.debug(f"Running batch of {len(statements)} statements on {self.backend_name}")
        return self._execute_batch(statements)

    def health_check(self) -> bool:
        """Check backend health without raising."""
        try:
            self.check()
            return True
        except Exception as e:
            log.warning(f"{self.backend_name} health check failed: {e}")
            return False
