"""SQLAlchemy engine factory and executor bridge.

Manifesto:
    The query builder renders plain SQL text with ``:name`` or ``?``
    placeholders.  For any store ``sqlite3`` cannot reach (MySQL,
    MariaDB, ...) we hand that text to a SQLAlchemy engine instead of
    growing a driver layer of our own.  ``SAExecutor`` satisfies the
    :class:`~minorm.core.protocols.Executor` protocol on top of an engine.

This module provides:

* ``create_engine``  -- Create a SA engine from a URL, with URL validation.
* ``rewrite_positional`` / ``escape_unbound`` -- Adapt rendered SQL to
  ``text()`` bind-parameter syntax.
* ``SAExecutor``     -- Runs one statement per engine transaction and
  returns a :class:`~minorm.core.connection.ResultSet`.

Tags:
    minorm, sqlalchemy, engine, bridge, executor
"""

from __future__ import annotations

import re
from collections.abc import Collection, Mapping, Sequence
from typing import Any

from sqlalchemy import create_engine as _sa_create_engine
from sqlalchemy import text
from sqlalchemy.engine import Engine, make_url
from sqlalchemy.exc import ArgumentError, NoSuchModuleError

from minorm.core.connection import ExecutionMode, ResultSet, bind_params
from minorm.core.errors import InvalidConfigError
from minorm.core.logging import get_logger

logger = get_logger(__name__)


def create_engine(url: str, **kwargs: Any) -> Engine:
    """Create a SQLAlchemy engine, turning bad URLs into ``InvalidConfigError``."""
    try:
        parsed = make_url(url)
        return _sa_create_engine(parsed, **kwargs)
    except (ArgumentError, NoSuchModuleError) as e:
        raise InvalidConfigError("database_url", url, f"Unusable database URL {url!r}: {e}") from e


_QUOTES = ("'", '"', "`")

# same pattern text() uses to find bind parameters
_BIND_RE = re.compile(r"(?<![:\w\\]):(\w+)(?!:)")


def rewrite_positional(sql: str) -> str:
    """Rewrite ``?`` placeholders as ``:p0, :p1 ...`` for ``text()``.

    Question marks inside quoted literals or identifiers (``'``, ``"`` or
    backticks) are left alone.
    """
    rewritten: list[str] = []
    idx = 0
    quote: str | None = None
    for ch in sql:
        if quote is None and ch in _QUOTES:
            quote = ch
        elif ch == quote:
            quote = None
        if ch == "?" and quote is None:
            rewritten.append(f":p{idx}")
            idx += 1
        else:
            rewritten.append(ch)
    return "".join(rewritten)


def escape_unbound(sql: str, names: Collection[str]) -> str:
    """Escape every ``:word`` that is not one of *names*.

    ``text()`` reads any ``:word`` as a bind parameter, so colons in raw
    fragments such as ``'a :b'`` must be escaped to reach the database
    verbatim.
    """
    return _BIND_RE.sub(lambda m: m.group(0) if m.group(1) in names else "\\" + m.group(0), sql)



class SAExecutor:
    """Executor backed by a SQLAlchemy ``Engine``.

    Every statement runs inside ``engine.begin()`` so it is committed
    on its own; minorm does not span transactions across calls.
    """

    def __init__(self, engine: Engine, *, echo: bool = False) -> None:
        self._engine = engine
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
        if mode is ExecutionMode.POSITIONAL:
            rendered = rewrite_positional(sql)
            bound = {f"p{i}": v for i, v in enumerate(bound)}
        else:
            rendered = sql
        statement = text(escape_unbound(rendered, bound))

        if self._echo:
            logger.debug("sql_executed", sql=sql, mode=mode.value, params=len(bound))

        with self._engine.begin() as conn:
            result = conn.execute(statement, bound)
            if result.returns_rows:
                rows = [dict(row._mapping) for row in result]
                row_count = len(rows)
            else:
                rows = []
                row_count = result.rowcount

            last_id = None
            if sql.lstrip().lower().startswith("insert"):
                last_id = result.lastrowid
                self._last_insert_id = last_id

        return ResultSet(rows=rows, row_count=row_count, last_insert_id=last_id)

    def last_insert_id(self) -> Any:
        return self._last_insert_id

    def close(self) -> None:
        self._engine.dispose()

    @property
    def engine(self) -> Engine:
        return self._engine

    def __repr__(self) -> str:
        return f"SAExecutor({self._engine.url!r})"


__all__ = [
    "SAExecutor",
    "create_engine",
    "escape_unbound",
    "rewrite_positional",
]
