"""Shared pytest fixtures for memberships-rw tests."""

from __future__ import annotations

from typing import Any
from unittest.mock import MagicMock

import pytest

from memberships_rw.db.query_protocol import QueryResult
from memberships_rw.memberships import Membership, MembershipRepository


def _make_result(
    header: list[str] | None = None,
    rows: list[list[Any]] | None = None,
    stats: dict[str, Any] | None = None,
) -> QueryResult:
    """Build a QueryResult the way a runner would return it."""
    return QueryResult(result_set=rows or [], header=header, stats=stats)


@pytest.fixture
def make_result():
    """Factory for runner results."""
    return _make_result


@pytest.fixture
def mock_runner():
    """Mock query runner that records batches without a database."""
    runner = MagicMock()
    runner.backend_name = "mock"
    runner.run_batch = MagicMock(side_effect=lambda statements: [_make_result() for _ in statements])
    return runner


@pytest.fixture
def repository(mock_runner) -> MembershipRepository:
    """MembershipRepository over the mock runner."""
    return MembershipRepository(mock_runner)


@pytest.fixture
def membership_payload() -> dict[str, Any]:
    """A complete membership as sent over the wire."""
    return {
        "uuid": "f4ba3a8f-d0b6-4b8a-9d0c-5a4c0f3e4b8e",
        "prefLabel": "Chief Executive Officer",
        "personUuid": "2b2b2b2b-0000-4000-8000-000000000001",
        "organisationUuid": "3c3c3c3c-0000-4000-8000-000000000002",
        "inceptionDate": "2010-01-01T00:00:00Z",
        "terminationDate": "2015-06-30T00:00:00Z",
        "alternativeIdentifiers": {
            "factsetIdentifier": "FACTSET-1234",
            "uuids": [
                "f4ba3a8f-d0b6-4b8a-9d0c-5a4c0f3e4b8e",
                "5d5d5d5d-0000-4000-8000-000000000003",
            ],
        },
        "membershipRoles": [
            {
                "roleuuid": "4d4d4d4d-0000-4000-8000-000000000004",
                "inceptionDate": "2010-01-01T00:00:00Z",
                "terminationDate": "2012-12-31T00:00:00Z",
            },
        ],
    }


@pytest.fixture
def membership(membership_payload) -> Membership:
    """The sample payload as a Membership record."""
    return Membership.model_validate(membership_payload)
