"""Graph database access for memberships-rw.

Module Structure:
- query_protocol.py: QueryRunner protocol, CypherStatement, QueryResult
- neo4j_backend.py: Neo4j implementation (Bolt, neo4j driver)
- memgraph_backend.py: Memgraph implementation (Bolt, neo4j driver)
- runner_factory.py: Backend selection

Example:
    from memberships_rw.db import CypherStatement, create_query_runner

    runner = create_query_runner("neo4j", "bolt://localhost:7687")
    [result] = runner.run_batch([CypherStatement("MATCH (n:Membership) RETURN count(n) AS c")])
"""

from memberships_rw.db.query_protocol import (
    BaseQueryRunner,
    CypherStatement,
    QueryResult,
    QueryRunner,
)
from memberships_rw.db.runner_factory import create_query_runner

__all__ = [
    "BaseQueryRunner",
    "CypherStatement",
    "QueryResult",
    "QueryRunner",
    "create_query_runner",
]
