"""Guards for the live-database suite, which is skipped in most runs."""

import ast
from pathlib import Path

import pytest

INTEGRATION_DIR = Path(__file__).parent / "integration"


@pytest.mark.parametrize("path", sorted(INTEGRATION_DIR.glob("test_*.py")), ids=lambda p: p.name)
def test_integration_module_parses(path):
    """A syntax error here would abort collection of the whole suite."""
    ast.parse(path.read_text(), filename=str(path))


def test_cleanup_tracks_factset_identifiers():
    source = (INTEGRATION_DIR / "test_membership_graph.py").read_text()
    assert 'created["values"].add(membership.alternative_identifiers.factset_identifier)' in source
