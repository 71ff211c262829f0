"""
Shared fixtures for the apptrack test suite.

- remote: in-memory stand-in for the PostgREST store, with failure switches
- local_store: LocalStore over an in-memory DuckDB connection
- session / demo_session: SessionContext for a regular and an ephemeral identity
- manager / demo_manager: ApplicationLifecycleManager wired to the above
- clock: deterministic, strictly increasing timestamps for the lifecycle module
"""

from __future__ import annotations

from collections import defaultdict
from datetime import datetime, timedelta, timezone
from typing import Any

import duckdb
import pytest

from apptrack.db import initialize_tables
from apptrack.errors import RemoteUnavailableError
from apptrack.models.application import ApplicationDraft
from apptrack.models.identity import Identity
from apptrack.services.lifecycle import ApplicationLifecycleManager, InFlightGuard
from apptrack.services.local_store import LocalStore
from apptrack.services.session import SessionContext


def _matches(row: dict[str, Any], filters: dict[str, Any] | None) -> bool:
    for column, value in (filters or {}).items():
        if isinstance(value, (list, tuple, set)):
            if row.get(column) not in value:
                return False
        elif row.get(column) != value:
            return False
    return True


class FakeRemoteStore:
    """Same interface as RemoteStore, backed by dicts.

    Set ``fail`` to make every call raise, or add operation names
    ("select", "insert", "update", "delete") to ``fail_on``.
    """

    def __init__(self) -> None:
        self.tables: dict[str, list[dict[str, Any]]] = defaultdict(list)
        self.fail = False
        self.fail_on: set[str] = set()
        self.calls: list[str] = []

    def _check(self, op: str) -> None:
        self.calls.append(op)
        if self.fail or op in self.fail_on:
            raise RemoteUnavailableError(f"{op} failed")

    async def select(self, table, filters=None, order=None, limit=None, columns="*"):
        self._check("select")
        rows = [dict(r) for r in self.tables[table] if _matches(r, filters)]
        if order:
            column, _, direction = order.partition(".")
            rows.sort(key=lambda r: r.get(column) or "", reverse=direction == "desc")
        if limit is not None:
            rows = rows[:limit]
        return rows

    async def insert(self, table, row):
        self._check("insert")
        self.tables[table].append(dict(row))
        return dict(row)

    async def update(self, table, row, filters):
        self._check("update")
        updated = []
        for existing in self.tables[table]:
            if _matches(existing, filters):
                existing.update(row)
                updated.append(dict(existing))
        return updated

    async def delete(self, table, filters):
        self._check("delete")
        removed = [dict(r) for r in self.tables[table] if _matches(r, filters)]
        self.tables[table] = [r for r in self.tables[table] if not _matches(r, filters)]
        return removed


class Clock:
    def __init__(self) -> None:
        self.now = datetime(2026, 1, 1, tzinfo=timezone.utc)

    def __call__(self) -> str:
        self.now += timedelta(seconds=1)
        return self.now.isoformat()


def make_draft(**overrides: Any) -> ApplicationDraft:
    fields = {
        "title": "FE Dev at Acme",
        "company": "Acme",
        "position": "Frontend Developer",
    }
    fields.update(overrides)
    return ApplicationDraft(**fields)


@pytest.fixture(autouse=True)
def clock(monkeypatch):
    clock = Clock()
    monkeypatch.setattr("apptrack.services.lifecycle.utcnow", clock)
    return clock


@pytest.fixture
def con():
    con = duckdb.connect(":memory:")
    initialize_tables(con)
    yield con
    con.close()


@pytest.fixture
def local_store(con):
    return LocalStore(con)


@pytest.fixture
def remote():
    return FakeRemoteStore()


@pytest.fixture
def guard():
    return InFlightGuard()


@pytest.fixture
def session():
    return SessionContext(Identity(user_id="U1"))


@pytest.fixture
def demo_session():
    return SessionContext(Identity(user_id="demo-1", is_ephemeral=True))


@pytest.fixture
def manager(session, remote, local_store, guard):
    manager = ApplicationLifecycleManager(
        session, remote, local_store, guard, table="applications", cache_key="demoApplications"
    )
    yield manager
    manager.close()


@pytest.fixture
def demo_manager(demo_session, remote, local_store):
    manager = ApplicationLifecycleManager(
        demo_session, remote, local_store, table="applications", cache_key="demoApplications"
    )
    yield manager
    manager.close()
