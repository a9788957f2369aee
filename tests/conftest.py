"""
Pytest configuration and shared fixtures for minorm tests.

Fixtures here cover:
- A recording executor that captures rendered statements
- Entity kinds used across the core tests
- An in-memory SQLite database with a ``users`` table
"""

from __future__ import annotations

import sqlite3
from collections.abc import Generator
from dataclasses import dataclass
from typing import Any

import pytest
import structlog

from minorm.core.connection import Connection, ExecutionMode, ResultSet
from minorm.core.entity import Entity
from minorm.core.settings import clear_settings_cache


# =============================================================================
# Pytest Configuration
# =============================================================================


def pytest_collection_modifyitems(config, items):
    """Mark tests touching a real database as integration, the rest as unit."""
    for item in items:
        if "sqlite_conn" in getattr(item, "fixturenames", ()):
            item.add_marker(pytest.mark.integration)
        else:
            item.add_marker(pytest.mark.unit)


@pytest.fixture(autouse=True)
def reset_global_state() -> Generator[None, None, None]:
    """Each test starts with fresh settings and default structlog config."""
    clear_settings_cache()
    yield
    clear_settings_cache()
    structlog.reset_defaults()


# =============================================================================
# Recording executor
# =============================================================================


@dataclass
class ExecutedStatement:
    sql: str
    params: Any
    mode: ExecutionMode | None


class RecordingExecutor:
    """Executor double that records statements and replays queued results."""

    def __init__(self) -> None:
        self.calls: list[ExecutedStatement] = []
        self.results: list[ResultSet] = []
        self.insert_id: Any = 1

    def queue(self, rows: list[dict[str, Any]] | None = None, row_count: int | None = None) -> None:
        rows = rows or []
        self.results.append(ResultSet(rows=rows, row_count=len(rows) if row_count is None else row_count))

    def execute(self, sql: str, params: Any = None, mode: ExecutionMode | None = None) -> ResultSet:
        self.calls.append(ExecutedStatement(sql, params, mode))
        if sql.startswith("insert"):
            return ResultSet(row_count=1, last_insert_id=self.insert_id)
        if self.results:
            return self.results.pop(0)
        return ResultSet()

    def last_insert_id(self) -> Any:
        return self.insert_id

    @property
    def last(self) -> ExecutedStatement:
        return self.calls[-1]


@pytest.fixture
def executor() -> RecordingExecutor:
    return RecordingExecutor()


# =============================================================================
# Entity kinds
# =============================================================================


class User(Entity):
    table = "users"
    columns = ("id", "username", "access_level")


class BrokenUser(Entity):
    """Refuses to hydrate rows for users named ``broken``."""

    table = "users"
    columns = ("id", "username", "access_level")

    @classmethod
    def construct(cls, row, is_new=True):
        if row.get("username") == "broken":
            raise ValueError("cannot hydrate")
        return super().construct(row, is_new)


@pytest.fixture
def user_kind() -> type[User]:
    return User


@pytest.fixture
def broken_user_kind() -> type[BrokenUser]:
    return BrokenUser


# =============================================================================
# SQLite
# =============================================================================


@pytest.fixture
def sqlite_conn() -> Generator[Connection, None, None]:
    """Autocommit in-memory SQLite with an empty ``users`` table."""
    raw = sqlite3.connect(":memory:", isolation_level=None)
    raw.execute(
        """
        CREATE TABLE users (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            username TEXT NOT NULL,
            access_level INTEGER
        )
        """
    )
    conn = Connection(raw)
    yield conn
    conn.close()


@pytest.fixture
def seeded_conn(sqlite_conn: Connection) -> Connection:
    """``users`` table holding admin (9), guest (1) and editor (5)."""
    for username, level in (("admin", 9), ("guest", 1), ("editor", 5)):
        sqlite_conn.execute(
            "insert into users (username, access_level) values (?, ?)",
            [username, level],
            ExecutionMode.POSITIONAL,
        )
    return sqlite_conn
