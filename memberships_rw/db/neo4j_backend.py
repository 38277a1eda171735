"""Neo4j query runner for memberships-rw.

Talks Bolt through the official neo4j Python driver. Each batch runs in one
explicit transaction so a failing statement rolls back everything before it.
"""

from typing import Any

from neo4j import GraphDatabase
from neo4j.exceptions import ConstraintError, DriverError, Neo4jError, TransientError

from memberships_rw.db.query_protocol import (
    DEFAULT_MAX_BATCH_SIZE,
    BaseQueryRunner,
    CypherStatement,
    QueryResult,
)
from memberships_rw.errors import ConstraintOrTransactionError, QueryRunnerError
from memberships_rw.log_config import get_logger

log = get_logger("db.neo4j")


def _summary_stats(summary) -> dict[str, Any]:
    """Flatten the driver's SummaryCounters into a plain dict."""
    counters = summary.counters
    return {
        "contains_updates": counters.contains_updates,
        "labels_added": counters.labels_added,
        "labels_removed": counters.labels_removed,
        "nodes_created": counters.nodes_created,
        "nodes_deleted": counters.nodes_deleted,
        "relationships_created": counters.relationships_created,
        "relationships_deleted": counters.relationships_deleted,
        "properties_set": counters.properties_set,
    }


class Neo4jQueryRunner(BaseQueryRunner):
    """Bolt-based query runner for Neo4j.

    Wraps the neo4j Python driver to implement the QueryRunner protocol.
    """

    def __init__(
        self,
        uri: str = "bolt://localhost:7687",
        username: str = "",
        password: str = "",
        database: str | None = None,
        max_batch_size: int = DEFAULT_MAX_BATCH_SIZE,
        connection_timeout: float = 30.0,
    ):
        """Create the driver. Connectivity is not verified here.

        Args:
            uri: Bolt URI (bolt:// or neo4j://)
            username: Optional username for authentication
            password: Optional password for authentication
            database: Database name (server default if None)
            max_batch_size: Maximum statements accepted per batch
            connection_timeout: Connection timeout in seconds
        """
        super().__init__(max_batch_size=max_batch_size)
        self.uri = uri
        self.database = database

        log.info(f"Creating {self.backend_name} driver for {uri} (auth={'yes' if password else 'no'})")

        if username or password:
            self._driver = GraphDatabase.driver(
                uri,
                auth=(username, password),
                connection_timeout=connection_timeout,
            )
        else:
            self._driver = GraphDatabase.driver(uri, connection_timeout=connection_timeout)

    @property
    def backend_name(self) -> str:
        return "neo4j"

    def __str__(self) -> str:
        return f"{self.backend_name}@{self.uri}"

    def _session(self):
        if self.database:
            return self._driver.session(database=self.database)
        return self._driver.session()

    def _translate_error(self, error: Exception) -> QueryRunnerError:
        """Map driver exceptions onto the runner's error types."""
        if isinstance(error, (ConstraintError, TransientError)):
            return ConstraintOrTransactionError(str(error))
        return QueryRunnerError(str(error))

    def _execute_batch(self, statements: list[CypherStatement]) -> list[QueryResult]:
        results: list[QueryResult] = []
        try:
            with self._session() as session:
                with session.begin_transaction() as tx:
                    for statement in statements:
                        log.trace(f"{self.backend_name} [{statement.name}]: {statement.cypher.strip()[:100]}...")
                        result = tx.run(statement.cypher, statement.params)
                        records = list(result)
                        summary = result.consume()

                        header = list(records[0].keys()) if records else None
                        results.append(
                            QueryResult(
                                result_set=[list(record.values()) for record in records],
                                header=header,
                                stats=_summary_stats(summary) if statement.include_stats else None,
                            )
                        )
                    tx.commit()
        except (Neo4jError, DriverError) as e:
            log.error(f"{self.backend_name} batch failed: {e}")
            raise self._translate_error(e) from e

        return results

    def _constraint_statement(self, label: str, prop: str) -> str:
        name = f"{label.lower()}_{prop}_unique"
        return f"CREATE CONSTRAINT {name} IF NOT EXISTS FOR (n:{label}) REQUIRE n.{prop} IS UNIQUE"

    def ensure_constraints(self, constraints: dict[str, str]) -> None:
        """Create uniqueness constraints outside any explicit transaction."""
        log.info(f"Ensuring {len(constraints)} uniqueness constraints")
        try:
            with self._session() as session:
                for label, prop in constraints.items():
                    session.run(self._constraint_statement(label, prop)).consume()
                    log.debug(f"Constraint ensured: {label}.{prop}")
        except (Neo4jError, DriverError) as e:
            log.error(f"Constraint creation failed: {e}")
            raise self._translate_error(e) from e

    def check(self) -> None:
        """Run a trivial query to prove the database answers."""
        try:
            with self._session() as session:
                session.run("RETURN 1").consume()
        except (Neo4jError, DriverError, OSError) as e:
            raise QueryRunnerError(f"cannot reach {self.backend_name} at {self.uri}: {e}") from e

    def close(self) -> None:
        """Close the driver."""
        log.info(f"Closing {self.backend_name} connection")
        if self._driver:
            self._driver.close()
