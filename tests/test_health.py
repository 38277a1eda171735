"""Tests for health check execution and reporting."""

import threading
from unittest.mock import MagicMock

from memberships_rw.backend.health import HealthCheck, health_report, make_check, run_checks
from memberships_rw.errors import QueryRunnerError


def passing():
    return "fine"


def failing():
    raise QueryRunnerError("no route to host")


class TestMakeCheck:
    def test_check_metadata(self):
        check = make_check("memberships", MagicMock(), "bolt://db:7687")

        assert check.id == "check-memberships-connectivity"
        assert check.severity == 1
        assert "memberships" in check.business_impact
        assert "bolt://db:7687" in check.technical_summary

    def test_checker_calls_service(self):
        service = MagicMock()
        check = make_check("memberships", service, "bolt://db:7687")

        assert check.checker() == "Connected to bolt://db:7687"
        service.check.assert_called_once_with()

    def test_checker_propagates_failure(self):
        service = MagicMock()
        service.check.side_effect = QueryRunnerError("down")
        check = make_check("memberships", service, "bolt://db:7687")

        [result] = run_checks([check])
        assert result["ok"] is False
        assert result["checkOutput"] == "down"


class TestRunChecks:
    def test_no_checks(self):
        assert run_checks([]) == []

    def test_result_layout(self):
        [result] = run_checks([HealthCheck(id="a", name="A", checker=passing, panic_guide="restart")])

        assert result["id"] == "a"
        assert result["ok"] is True
        assert result["checkOutput"] == "fine"
        assert result["panicGuide"] == "restart"
        assert set(result) == {
            "id",
            "name",
            "ok",
            "severity",
            "businessImpact",
            "technicalSummary",
            "panicGuide",
            "checkOutput",
            "lastUpdated",
        }

    def test_order_preserved(self):
        checks = [
            HealthCheck(id="a", name="A", checker=passing),
            HealthCheck(id="b", name="B", checker=failing),
        ]
        results = run_checks(checks)
        assert [(r["id"], r["ok"]) for r in results] == [("a", True), ("b", False)]
        assert results[1]["checkOutput"] == "no route to host"

    def test_hung_check_times_out(self):
        release = threading.Event()

        def hung():
            release.wait(5)
            return "late"

        try:
            [result] = run_checks([HealthCheck(id="slow", name="Slow", checker=hung)], timeout=0.1)
        finally:
            release.set()

        assert result["ok"] is False
        assert "Timed out" in result["checkOutput"]


class TestHealthReport:
    def test_ok_when_all_pass(self):
        report = health_report(
            [HealthCheck(id="a", name="A", checker=passing)],
            system_code="memberships-rw-neo4j",
            name="memberships-rw-neo4j",
            description="Writes memberships",
        )
        assert report["schemaVersion"] == 1
        assert report["ok"] is True
        assert report["description"] == "Writes memberships"

    def test_not_ok_when_any_fails(self):
        report = health_report(
            [HealthCheck(id="a", name="A", checker=passing), HealthCheck(id="b", name="B", checker=failing)],
            system_code="x",
            name="x",
            description="",
        )
        assert report["ok"] is False
        assert len(report["checks"]) == 2
