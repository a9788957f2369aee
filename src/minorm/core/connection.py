"""Connection wrapper and factory: run parameterised statements.

:class:`Connection` wraps a DB-API 2.0 connection (``sqlite3`` out of the
box) and exposes the single capability the query builder needs::

    execute(sql, params, mode) -> ResultSet(rows, row_count, last_insert_id)

Execution modes
---------------
==================  =====================  ==================================
Mode                Placeholders           Parameters
==================  =====================  ==================================
``ASSOCIATIVE``     ``:name``              mapping; values bound with an
                                           inferred numeric-or-string type
``POSITIONAL``      ``?``                  sequence bound by position
==================  =====================  ==================================

The query builder always picks the mode matching how it rendered the
statement; a single statement never mixes the two.

Supported URLs
--------------
==================  ==========================================  ============
Scheme              Example                                     Backend
==================  ==========================================  ============
``memory``          ``memory`` or ``:memory:`` or ``None``       SQLite RAM
``sqlite``          ``sqlite:///path/to/file.db``                SQLite file
``(file path)``     ``./data/my.db``                             SQLite file
``(SQLAlchemy)``    ``mysql+pymysql://user:pw@host/db``          SQLAlchemy
==================  ==========================================  ============

Usage
-----
::

    from minorm.core.connection import create_connection, ExecutionMode

    conn, info = create_connection("sqlite:///app.db")
    result = conn.execute(
        "select * from `users` where (`id` = :placeholder0) ;",
        {"placeholder0": 1},
        ExecutionMode.ASSOCIATIVE,
    )
    result.rows          # [{'id': 1, 'username': 'admin'}]

Driver errors raised while executing (``sqlite3.OperationalError`` etc.)
propagate unmodified; only failing to open a SQLite file raises
:class:`~minorm.core.errors.DatabaseError`.
"""

from __future__ import annotations

import sqlite3
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from decimal import Decimal
from enum import Enum
from pathlib import Path
from typing import Any

from minorm.core.errors import DatabaseError, InvalidConfigError
from minorm.core.logging import get_logger
from minorm.core.protocols import DBAPIConnection, Executor

logger = get_logger(__name__)


class ExecutionMode(str, Enum):
    """How statement parameters are bound."""

    ASSOCIATIVE = "associative"
    POSITIONAL = "positional"


@dataclass(frozen=True)
class ResultSet:
    """Outcome of one executed statement."""

    rows: list[dict[str, Any]] = field(default_factory=list)
    row_count: int = 0
    last_insert_id: Any = None

    def first(self) -> dict[str, Any] | None:
        """First row, or ``None`` when the statement produced no rows."""
        return self.rows[0] if self.row_count >= 1 and self.rows else None


def infer_binding(value: Any) -> Any:
    """Bind numbers, ``None`` and bytes as-is; everything else as a string."""
    if value is None or isinstance(value, (int, float, Decimal, bytes)):
        return value
    return str(value)


def bind_params(
    params: Mapping[str, Any] | Sequence[Any] | None,
    mode: ExecutionMode,
) -> dict[str, Any] | list[Any]:
    """Normalise *params* for *mode*.

    Associative mode expects a mapping and applies :func:`infer_binding`;
    positional mode expects a sequence and passes values through untouched.
    """
    if mode is ExecutionMode.ASSOCIATIVE:
        if params is None:
            return {}
        if not isinstance(params, Mapping):
            raise TypeError("associative execution needs a mapping of parameters")
        return {name: infer_binding(value) for name, value in params.items()}

    if params is None:
        return []
    if isinstance(params, Mapping):
        raise TypeError("positional execution needs a sequence of parameters")
    return list(params)


class Connection:
    """Executor over a DB-API 2.0 connection.

    Each :meth:`execute` call opens a fresh cursor, so result sets never
    leak between statements.  The wrapped connection should run in
    autocommit mode (``isolation_level=None`` for ``sqlite3``); minorm does
    not manage transactions.
    """

    def __init__(self, raw: DBAPIConnection, *, echo: bool = False) -> None:
        self._raw = raw
        self._echo = echo
        self._last_insert_id: Any = None

    def execute(
        self,
        sql: str,
        params: Mapping[str, Any] | Sequence[Any] | None = None,
        mode: ExecutionMode | None = None,
    ) -> ResultSet:
        mode = mode or ExecutionMode.ASSOCIATIVE
        bound = bind_params(params, mode)
        if self._echo:
            logger.debug("sql_executed", sql=sql, mode=mode.value, params=len(bound))

        cursor = self._raw.cursor()
        try:
            cursor.execute(sql, bound)
            if cursor.description:
                columns = [desc[0] for desc in cursor.description]
                rows = [dict(zip(columns, row, strict=False)) for row in cursor.fetchall()]
                row_count = len(rows)
            else:
                rows = []
                row_count = cursor.rowcount
            last_id = getattr(cursor, "lastrowid", None)
        finally:
            cursor.close()

        if last_id is not None and not rows:
            self._last_insert_id = last_id
        return ResultSet(rows=rows, row_count=row_count, last_insert_id=last_id)

    def last_insert_id(self) -> Any:
        return self._last_insert_id

    def commit(self) -> None:
        self._raw.commit()

    def close(self) -> None:
        self._raw.close()

    @property
    def raw(self) -> DBAPIConnection:
        """Access the underlying DB-API connection (e.g. for pragmas)."""
        return self._raw

    def __repr__(self) -> str:
        return f"Connection({self._raw!r})"


# ── ConnectionInfo ───────────────────────────────────────────────────────


@dataclass(frozen=True)
class ConnectionInfo:
    """Metadata about a database connection."""

    backend: str
    """Backend identifier: ``"sqlite"`` or the SQLAlchemy dialect name."""

    persistent: bool
    """Whether data survives process exit."""

    url: str
    """The original URL or path used to create the connection."""

    resolved_path: str | None = None
    """For file-based SQLite, the resolved absolute path."""

    def __repr__(self) -> str:
        parts = [f"backend={self.backend!r}", f"persistent={self.persistent}"]
        if self.resolved_path:
            parts.append(f"path={self.resolved_path!r}")
        else:
            parts.append(f"url={self.url!r}")
        return f"ConnectionInfo({', '.join(parts)})"

    @property
    def is_sqlite(self) -> bool:
        return self.backend == "sqlite"


# ── Backends ─────────────────────────────────────────────────────────────


def _open_sqlite(path: str) -> sqlite3.Connection:
    try:
        return sqlite3.connect(path, isolation_level=None)
    except sqlite3.Error as e:
        raise DatabaseError(f"Cannot open SQLite database {path!r}: {e}", cause=e).with_context(
            operation="connect"
        ) from e


def _create_sqlite_memory(echo: bool) -> tuple[Connection, ConnectionInfo]:
    conn = Connection(_open_sqlite(":memory:"), echo=echo)
    return conn, ConnectionInfo(backend="sqlite", persistent=False, url=":memory:")


def _create_sqlite_file(path_str: str, echo: bool) -> tuple[Connection, ConnectionInfo]:
    path = Path(path_str)
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        raise DatabaseError(f"Cannot create directory for {path_str!r}: {e}", cause=e).with_context(
            operation="connect"
        ) from e
    resolved = str(path.resolve())

    conn = Connection(_open_sqlite(resolved), echo=echo)
    info = ConnectionInfo(
        backend="sqlite",
        persistent=True,
        url=path_str,
        resolved_path=resolved,
    )
    return conn, info


def _create_sqlalchemy(url: str, echo: bool) -> tuple[Executor, ConnectionInfo]:
    from minorm.core.orm.session import SAExecutor, create_engine

    engine = create_engine(url)
    executor = SAExecutor(engine, echo=echo)
    info = ConnectionInfo(backend=engine.dialect.name, persistent=True, url=url)
    return executor, info


# ── URL parsing ──────────────────────────────────────────────────────────


def _parse_url(db: str | None) -> tuple[str, str]:
    """Parse a database URL into ``(scheme, target)``.

    ``scheme`` is one of ``"memory"``, ``"sqlite"``, ``"file"`` or
    ``"sqlalchemy"``.
    """
    if db is None or db in ("", "memory", ":memory:"):
        return "memory", ":memory:"

    for prefix in ("sqlite:///", "sqlite://"):
        if db.startswith(prefix):
            path = db[len(prefix):]
            if not path or path == ":memory:":
                return "memory", ":memory:"
            return "sqlite", path

    if "://" in db:
        scheme = db.split("://", 1)[0]
        if not scheme:
            raise InvalidConfigError("database_url", db, f"Database URL has no scheme: {db!r}")
        return "sqlalchemy", db

    return "file", db


def create_connection(
    db: str | None = None,
    *,
    echo: bool = False,
    data_dir: str | None = None,
) -> tuple[Executor, ConnectionInfo]:
    """Create an executor from a URL, path, or keyword.

    Parameters
    ----------
    db:
        ``None``/``"memory"`` for in-memory SQLite, a file path or
        ``sqlite:///`` URL for file SQLite, or any SQLAlchemy URL.
    echo:
        Log every executed statement at debug level.
    data_dir:
        For relative SQLite paths, resolve within this directory.

    Raises
    ------
    InvalidConfigError
        The URL cannot be parsed or names a driver that is not installed.
    DatabaseError
        A SQLite file cannot be opened or its directory created.
    """
    scheme, target = _parse_url(db)

    if scheme == "memory":
        return _create_sqlite_memory(echo)

    if scheme in ("sqlite", "file"):
        if data_dir and not Path(target).is_absolute():
            target = str(Path(data_dir) / target)
        return _create_sqlite_file(target, echo)

    return _create_sqlalchemy(target, echo)


__all__ = [
    "Connection",
    "ConnectionInfo",
    "ExecutionMode",
    "ResultSet",
    "bind_params",
    "create_connection",
    "infer_binding",
]
