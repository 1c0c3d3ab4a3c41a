"""Shared fixtures for the statement categorizer tests"""
import pytest

from statement_categorizer.core.categorization_orchestrator import CategorizationOrchestrator
from statement_categorizer.core.entity_resolver import InMemoryRegistryResolver
from statement_categorizer.core.reference_data import ReferenceData


class FakeCursor:
    """Records executed SQL and replays queued results"""

    def __init__(self, conn):
        self.conn = conn
        self.closed = False

    def execute(self, sql, params=None):
        self.conn.executed.append((' '.join(sql.split()), params))
        if self.conn.fail_on and self.conn.fail_on in sql:
            raise self.conn.error

    def fetchall(self):
        return self.conn.results.pop(0) if self.conn.results else []

    def fetchone(self):
        rows = self.fetchall()
        return rows[0] if rows else None

    def close(self):
        self.closed = True


class FakeConnection:
    def __init__(self, results=None, fail_on=None, error=None):
        self.results = list(results or [])
        self.fail_on = fail_on
        self.error = error
        self.executed = []
        self.commits = 0
        self.rollbacks = 0
        self.cursors = []

    def cursor(self):
        cursor = FakeCursor(self)
        self.cursors.append(cursor)
        return cursor

    def commit(self):
        self.commits += 1

    def rollback(self):
        self.rollbacks += 1


@pytest.fixture
def orchestrator():
    return CategorizationOrchestrator()


@pytest.fixture
def no_registry_orchestrator():
    """Built-in tables with an empty registry"""
    reference = ReferenceData.default()
    reference = ReferenceData(
        dictionary=reference.dictionary,
        registry=InMemoryRegistryResolver([]),
        rules=reference.rules,
    )
    return CategorizationOrchestrator(reference=reference)


@pytest.fixture
def make_conn():
    return FakeConnection
