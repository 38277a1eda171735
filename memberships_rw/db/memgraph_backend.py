"""Memgraph query runner for memberships-rw.

Memgraph speaks Bolt and is compatible with the neo4j Python driver, so this
runner reuses the Neo4j transport and only swaps the dialect-specific parts.

Key differences from Neo4j:
- Constraint syntax: CREATE CONSTRAINT ON (n:Label) ASSERT n.prop IS UNIQUE
- No IF NOT EXISTS: re-creating a constraint may be reported as an error
- Constraint and serialization failures surface as generic client errors,
  recognisable only by their message text
"""

from neo4j.exceptions import DriverError, Neo4jError

from memberships_rw.db.neo4j_backend import Neo4jQueryRunner
from memberships_rw.errors import ConstraintOrTransactionError, QueryRunnerError
from memberships_rw.log_config import get_logger

log = get_logger("db.memgraph")

_CONFLICT_MARKERS = (
    "constraint violation",
    "conflicting transactions",
    "serialization error",
)


class MemgraphQueryRunner(Neo4jQueryRunner):
    """Bolt-based query runner for Memgraph."""

    @property
    def backend_name(self) -> str:
        return "memgraph"

    def _translate_error(self, error: Exception) -> QueryRunnerError:
        message = str(error).lower()
        if any(marker in message for marker in _CONFLICT_MARKERS):
            return ConstraintOrTransactionError(str(error))
        return super()._translate_error(error)

    def _constraint_statement(self, label: str, prop: str) -> str:
        return f"CREATE CONSTRAINT ON (n:{label}) ASSERT n.{prop} IS UNIQUE"

    def ensure_constraints(self, constraints: dict[str, str]) -> None:
        """Create uniqueness constraints, tolerating ones that already exist."""
        log.info(f"Ensuring {len(constraints)} uniqueness constraints")
        for label, prop in constraints.items():
            try:
                with self._session() as session:
                    session.run(self._constraint_statement(label, prop)).consume()
                log.debug(f"Constraint ensured: {label}.{prop}")
            except (Neo4jError, DriverError) as e:
                if "already exists" in str(e).lower():
                    log.trace(f"Constraint already exists: {label}.{prop}")
                    continue
                log.error(f"Constraint creation failed: {e}")
                raise self._translate_error(e) from e
