"""Deferred raw-SQL values.

Any callable handed to an operator, ``update()`` or ``insert()`` is
invoked and its return value is inlined into the statement verbatim,
with no placeholder.  :class:`RawSql` is the named way to build one::

    qb.le("created_at", raw("now()")).wrap()
    qb.update({"visits": raw("`visits` + 1")})

Never build a ``RawSql`` from user input; its text is not escaped.
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class RawSql:
    """SQL fragment inlined as-is when the builder renders a statement."""

    sql: str

    def __call__(self) -> str:
        return self.sql

    def __str__(self) -> str:
        return self.sql


def raw(sql: str) -> RawSql:
    """Shortcut for ``RawSql(sql)``."""
    return RawSql(sql)


__all__ = [
    "RawSql",
    "raw",
]
