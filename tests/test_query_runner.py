"""Tests for the query runner layer.

Covers QueryResult, BaseQueryRunner batch handling, the Neo4j and Memgraph
runners over a mocked Bolt driver, and the runner factory.
"""

from types import SimpleNamespace
from unittest.mock import MagicMock, patch

import pytest
from neo4j.exceptions import ServiceUnavailable

from memberships_rw.db.memgraph_backend import MemgraphQueryRunner
from memberships_rw.db.neo4j_backend import Neo4jQueryRunner
from memberships_rw.db.query_protocol import BaseQueryRunner, CypherStatement, QueryResult, QueryRunner
from memberships_rw.db.runner_factory import create_query_runner, is_endpoint_open, wait_for_ready
from memberships_rw.errors import BatchTooLargeError, ConstraintOrTransactionError, QueryRunnerError


class FakeRecord:
    """Minimal stand-in for neo4j.Record."""

    def __init__(self, data):
        self._data = data

    def keys(self):
        return list(self._data.keys())

    def values(self):
        return list(self._data.values())


def fake_result(records=(), **counters):
    result = MagicMock()
    result.__iter__.return_value = iter([FakeRecord(r) for r in records])
    defaults = {
        "contains_updates": False,
        "labels_added": 0,
        "labels_removed": 0,
        "nodes_created": 0,
        "nodes_deleted": 0,
        "relationships_created": 0,
        "relationships_deleted": 0,
        "properties_set": 0,
    }
    defaults.update(counters)
    result.consume.return_value = SimpleNamespace(counters=SimpleNamespace(**defaults))
    return result


@pytest.fixture
def driver():
    """Patch the Bolt driver; yields (driver, session, tx) mocks."""
    with patch("memberships_rw.db.neo4j_backend.GraphDatabase") as graph_database:
        drv = graph_database.driver.return_value
        session = MagicMock()
        drv.session.return_value.__enter__.return_value = session
        tx = MagicMock()
        session.begin_transaction.return_value.__enter__.return_value = tx
        yield SimpleNamespace(graph_database=graph_database, driver=drv, session=session, tx=tx)


# ============================================================================
# QueryResult
# ============================================================================


class TestQueryResult:
    """Test QueryResult dataclass."""

    def test_empty_result(self):
        """Empty result should be falsy and have len 0."""
        result = QueryResult(result_set=[])
        assert not result
        assert len(result) == 0

    def test_iteration(self):
        result = QueryResult(result_set=[["a"], ["b"]])
        assert [row[0] for row in result] == ["a", "b"]

    def test_records_keyed_by_header(self):
        result = QueryResult(result_set=[["m1", 3]], header=["uuid", "n"])
        assert list(result.records()) == [{"uuid": "m1", "n": 3}]

    def test_records_without_header(self):
        result = QueryResult(result_set=[["m1"]])
        assert list(result.records()) == [{}]


# ============================================================================
# BaseQueryRunner
# ============================================================================


class RecordingRunner(BaseQueryRunner):
    def __init__(self, max_batch_size=3, healthy=True):
        super().__init__(max_batch_size=max_batch_size)
        self.batches = []
        self.healthy = healthy

    @property
    def backend_name(self):
        return "recording"

    def _execute_batch(self, statements):
        self.batches.append(statements)
        return [QueryResult(result_set=[]) for _ in statements]

    def ensure_constraints(self, constraints):
        pass

    def check(self):
        if not self.healthy:
            raise QueryRunnerError("down")

    def close(self):
        pass


class TestBaseQueryRunner:
    def test_satisfies_protocol(self):
        assert isinstance(RecordingRunner(), QueryRunner)

    def test_batch_at_limit_runs(self):
        runner = RecordingRunner(max_batch_size=3)
        results = runner.run_batch([CypherStatement("RETURN 1")] * 3)
        assert len(results) == 3
        assert len(runner.batches) == 1

    def test_batch_over_limit_rejected(self):
        runner = RecordingRunner(max_batch_size=3)
        with pytest.raises(BatchTooLargeError) as exc_info:
            runner.run_batch([CypherStatement("RETURN 1")] * 4)
        assert exc_info.value.size == 4
        assert exc_info.value.limit == 3
        assert runner.batches == []

    def test_batch_too_large_is_runner_error(self):
        with pytest.raises(QueryRunnerError):
            RecordingRunner(max_batch_size=1).run_batch([CypherStatement("RETURN 1")] * 2)

    def test_empty_batch(self):
        runner = RecordingRunner()
        assert runner.run_batch([]) == []
        assert runner.batches == []

    def test_health_check(self):
        assert RecordingRunner(healthy=True).health_check() is True
        assert RecordingRunner(healthy=False).health_check() is False


# ============================================================================
# Neo4jQueryRunner
# ============================================================================


class TestNeo4jQueryRunner:
    def test_driver_without_auth(self, driver):
        Neo4jQueryRunner("bolt://db:7687")
        args, kwargs = driver.graph_database.driver.call_args
        assert args == ("bolt://db:7687",)
        assert "auth" not in kwargs

    def test_driver_with_auth(self, driver):
        Neo4jQueryRunner("bolt://db:7687", "neo4j", "secret")
        _, kwargs = driver.graph_database.driver.call_args
        assert kwargs["auth"] == ("neo4j", "secret")

    def test_batch_runs_in_one_transaction(self, driver):
        driver.tx.run.side_effect = [
            fake_result([{"uuid": "m1", "prefLabel": "x"}]),
            fake_result(),
        ]
        runner = Neo4jQueryRunner()

        results = runner.run_batch([
            CypherStatement("MATCH (m) RETURN m.uuid AS uuid, m.prefLabel AS prefLabel", {"uuid": "m1"}),
            CypherStatement("MATCH (m) DELETE m"),
        ])

        assert driver.session.begin_transaction.call_count == 1
        assert driver.tx.run.call_count == 2
        driver.tx.commit.assert_called_once_with()
        assert results[0].header == ["uuid", "prefLabel"]
        assert results[0].result_set == [["m1", "x"]]
        assert results[1].header is None
        assert results[1].result_set == []

    def test_params_passed_through(self, driver):
        driver.tx.run.side_effect = [fake_result()]
        Neo4jQueryRunner().run_batch([CypherStatement("RETURN $uuid", {"uuid": "m1"})])
        driver.tx.run.assert_called_once_with("RETURN $uuid", {"uuid": "m1"})

    def test_stats_only_when_requested(self, driver):
        driver.tx.run.side_effect = [
            fake_result(contains_updates=True, labels_removed=2),
            fake_result(contains_updates=True, nodes_deleted=1),
        ]
        results = Neo4jQueryRunner().run_batch([
            CypherStatement("REMOVE ...", include_stats=True),
            CypherStatement("DELETE ..."),
        ])

        assert results[0].stats["contains_updates"] is True
        assert results[0].stats["labels_removed"] == 2
        assert results[1].stats is None

    def test_failed_statement_is_not_committed(self, driver):
        driver.tx.run.side_effect = [fake_result(), ServiceUnavailable("connection lost")]

        with pytest.raises(QueryRunnerError) as exc_info:
            Neo4jQueryRunner().run_batch([CypherStatement("A"), CypherStatement("B")])

        assert not isinstance(exc_info.value, ConstraintOrTransactionError)
        driver.tx.commit.assert_not_called()

    def test_ensure_constraints(self, driver):
        Neo4jQueryRunner().ensure_constraints({"Thing": "uuid", "UPPIdentifier": "value"})

        cyphers = [c.args[0] for c in driver.session.run.call_args_list]
        assert cyphers == [
            "CREATE CONSTRAINT thing_uuid_unique IF NOT EXISTS FOR (n:Thing) REQUIRE n.uuid IS UNIQUE",
            "CREATE CONSTRAINT uppidentifier_value_unique IF NOT EXISTS FOR (n:UPPIdentifier) REQUIRE n.value IS UNIQUE",
        ]

    def test_check_success(self, driver):
        Neo4jQueryRunner().check()
        driver.session.run.assert_called_once_with("RETURN 1")

    def test_check_failure(self, driver):
        driver.session.run.side_effect = ServiceUnavailable("refused")
        runner = Neo4jQueryRunner("bolt://db:7687")

        with pytest.raises(QueryRunnerError, match="bolt://db:7687"):
            runner.check()
        assert runner.health_check() is False

    def test_database_selects_session(self, driver):
        driver.tx.run.side_effect = [fake_result()]
        Neo4jQueryRunner(database="memberships").run_batch([CypherStatement("RETURN 1")])
        driver.driver.session.assert_called_with(database="memberships")

    def test_close(self, driver):
        Neo4jQueryRunner().close()
        driver.driver.close.assert_called_once_with()


# ============================================================================
# MemgraphQueryRunner
# ============================================================================


class TestMemgraphQueryRunner:
    def test_backend_name(self, driver):
        assert MemgraphQueryRunner().backend_name == "memgraph"

    def test_constraint_syntax(self, driver):
        MemgraphQueryRunner().ensure_constraints({"Membership": "uuid"})
        driver.session.run.assert_called_once_with(
            "CREATE CONSTRAINT ON (n:Membership) ASSERT n.uuid IS UNIQUE"
        )

    def test_existing_constraint_tolerated(self, driver):
        driver.session.run.side_effect = [ServiceUnavailable("Constraint already exists"), MagicMock()]
        MemgraphQueryRunner().ensure_constraints({"Thing": "uuid", "Concept": "uuid"})
        assert driver.session.run.call_count == 2

    @pytest.mark.parametrize(
        "message",
        [
            "Unable to commit due to unique constraint violation on :Thing(uuid)",
            "Cannot resolve conflicting transactions.",
            "Serialization error occurred",
        ],
    )
    def test_conflicts_map_to_constraint_error(self, driver, message):
        error = MemgraphQueryRunner()._translate_error(Exception(message))
        assert isinstance(error, ConstraintOrTransactionError)

    def test_other_errors_map_to_runner_error(self, driver):
        error = MemgraphQueryRunner()._translate_error(Exception("syntax error"))
        assert type(error) is QueryRunnerError


# ============================================================================
# Factory
# ============================================================================


class TestRunnerFactory:
    @pytest.fixture(autouse=True)
    def _no_backend_env(self, monkeypatch):
        monkeypatch.delenv("GRAPH_BACKEND", raising=False)

    def test_neo4j_default(self, driver):
        runner = create_query_runner(verify=False)
        assert type(runner) is Neo4jQueryRunner

    def test_memgraph(self, driver):
        runner = create_query_runner("memgraph", verify=False)
        assert isinstance(runner, MemgraphQueryRunner)

    def test_env_used_when_no_backend_given(self, driver, monkeypatch):
        monkeypatch.setenv("GRAPH_BACKEND", "Memgraph")
        runner = create_query_runner(verify=False)
        assert runner.backend_name == "memgraph"

    def test_explicit_backend_beats_env(self, driver, monkeypatch):
        monkeypatch.setenv("GRAPH_BACKEND", "memgraph")
        runner = create_query_runner("neo4j", verify=False)
        assert type(runner) is Neo4jQueryRunner

    def test_unknown_backend(self, driver):
        with pytest.raises(ValueError, match="falkordb"):
            create_query_runner("falkordb", verify=False)

    def test_batch_size_passed(self, driver):
        runner = create_query_runner(max_batch_size=7, verify=False)
        assert runner.max_batch_size == 7

    def test_unreachable_database_still_returns_runner(self, driver):
        driver.session.run.side_effect = ServiceUnavailable("refused")
        runner = create_query_runner(verify=True)
        assert runner.health_check() is False


class TestReadiness:
    def test_wait_for_ready_retries(self):
        runner = MagicMock()
        runner.health_check.side_effect = [False, True]

        with patch("memberships_rw.db.runner_factory.time.sleep") as sleep:
            assert wait_for_ready(runner, timeout=10, interval=0.5) is True

        sleep.assert_called_once_with(0.5)

    def test_wait_for_ready_timeout(self):
        runner = MagicMock()
        runner.health_check.return_value = False
        assert wait_for_ready(runner, timeout=0) is False

    def test_endpoint_closed(self):
        with patch("memberships_rw.db.runner_factory.socket.create_connection", side_effect=OSError("refused")):
            assert is_endpoint_open("bolt://db:7687") is False

    def test_endpoint_open(self):
        with patch("memberships_rw.db.runner_factory.socket.create_connection") as connect:
            assert is_endpoint_open("bolt://db:7688") is True
        connect.assert_called_once_with(("db", 7688), timeout=2.0)
