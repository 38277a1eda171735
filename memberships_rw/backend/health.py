"""Health checks for the service host.

The report follows the schemaVersion 1 layout used by the platform's
healthcheck aggregators: a list of named checks, each with a severity,
business impact and panic guide, plus an overall ok flag.
"""

from concurrent.futures import ThreadPoolExecutor
from concurrent.futures import TimeoutError as FutureTimeoutError
from dataclasses import dataclass
from datetime import datetime, timezone
from time import monotonic
from typing import Any, Callable

from memberships_rw.backend.service import RWService
from memberships_rw.log_config import get_logger

log = get_logger("backend.health")


@dataclass
class HealthCheck:
    """One named health check.

    Attributes:
        id: Stable identifier for the check
        name: Human-readable name
        checker: Callable returning an output string, raising on failure
        severity: 1 (critical) to 3 (minor)
        business_impact: What breaks for users when this fails
        technical_summary: What is wrong technically
        panic_guide: Where to look when it fails
    """
    id: str
    name: str
    checker: Callable[[], str]
    severity: int = 1
    business_impact: str = ""
    technical_summary: str = ""
    panic_guide: str = ""


def make_check(service_name: str, service: RWService, endpoint: str) -> HealthCheck:
    """Build the connectivity check for one mounted service."""

    def _checker() -> str:
        service.check()
        return f"Connected to {endpoint}"

    return HealthCheck(
        id=f"check-{service_name}-connectivity",
        name="Check connectivity to the graph database",
        checker=_checker,
        severity=1,
        business_impact=f"Cannot read/write {service_name} via this writer",
        technical_summary=f"Cannot connect to graph database instance {endpoint}",
        panic_guide="Check the database is up and NEO_URL points at it",
    )


def _timestamp() -> str:
    return datetime.now(timezone.utc).isoformat()


def run_checks(checks: list[HealthCheck], timeout: float = 10.0) -> list[dict[str, Any]]:
    """Run all checks concurrently, each bounded by timeout seconds.

    A check that raises or times out is reported with ok=False.
    """
    if not checks:
        return []

    results = []
    deadline = monotonic() + timeout
    # Hung checks are abandoned, not awaited
    pool = ThreadPoolExecutor(max_workers=len(checks))
    try:
        futures = [(check, pool.submit(check.checker)) for check in checks]
        for check, future in futures:
            try:
                output = future.result(timeout=max(deadline - monotonic(), 0))
                ok = True
            except FutureTimeoutError:
                output = f"Timed out after {timeout:.0f}s"
                ok = False
            except Exception as e:
                output = str(e)
                ok = False

            if not ok:
                log.warning(f"Health check '{check.id}' failed: {output}")

            results.append({
                "id": check.id,
                "name": check.name,
                "ok": ok,
                "severity": check.severity,
                "businessImpact": check.business_impact,
                "technicalSummary": check.technical_summary,
                "panicGuide": check.panic_guide,
                "checkOutput": output,
                "lastUpdated": _timestamp(),
            })
    finally:
        pool.shutdown(wait=False)
    return results


def health_report(
    checks: list[HealthCheck],
    system_code: str,
    name: str,
    description: str,
    timeout: float = 10.0,
) -> dict[str, Any]:
    """Run checks and wrap the results in a health report."""
    results = run_checks(checks, timeout)
    return {
        "schemaVersion": 1,
        "systemCode": system_code,
        "name": name,
        "description": description,
        "checks": results,
        "ok": all(result["ok"] for result in results),
    }
