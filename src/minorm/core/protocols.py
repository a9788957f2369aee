"""
Canonical protocol definitions for minorm.

This module defines the structural contracts the ORM layers depend on.
Query builders, repositories and the data source import their collaborator
shapes from here rather than from concrete classes.

Manifesto:
    The query builder must not care whether a statement ends up in
    ``sqlite3``, a SQLAlchemy engine, or a recording fake in a test.
    Likewise the repository must not reach into a class registry to build
    entities.  Both collaborators are therefore described as protocols:

    - **Executor:** runs one parameterised statement and returns a result set
    - **EntityDescriptor:** column set, table, primary key and a constructor
    - **DBAPIConnection:** the minimal DB-API 2.0 surface we wrap

Architecture:
    ::

        protocols.py (YOU ARE HERE)
        ├── Executor          - execute(sql, params, mode) -> ResultSet
        ├── EntityDescriptor  - columns / table / primary_key / construct()
        └── DBAPIConnection   - cursor() / commit() / rollback() / close()

    Consumers:
        query_builder.py, repository.py, data_source.py, connection.py

Guardrails:
    ❌ DON'T: Import ``Connection`` from connection.py for type hints
    ✅ DO: Depend on ``Executor`` so fakes satisfy the contract

Tags:
    protocol, executor, entity, contracts
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

if TYPE_CHECKING:
    from minorm.core.connection import ExecutionMode, ResultSet


@runtime_checkable
class Executor(Protocol):
    """
    Runs a parameterised statement against a relational store.

    ``params`` is a mapping in associative mode (``:name`` placeholders) and
    a sequence in positional mode (``?`` placeholders).  Implementations
    never mix the two within one statement.

    Examples:
        >>> result = executor.execute(
        ...     "select * from `users` where (`id` = :placeholder0) ;",
        ...     {"placeholder0": 1},
        ...     ExecutionMode.ASSOCIATIVE,
        ... )
        >>> result.row_count
        1
    """

    def execute(
        self,
        sql: str,
        params: Mapping[str, Any] | Sequence[Any] | None = None,
        mode: ExecutionMode | None = None,
    ) -> ResultSet:
        """Execute one statement and return its result set."""
        ...

    def last_insert_id(self) -> Any:
        """Identifier generated by the most recent insert."""
        ...


@runtime_checkable
class EntityDescriptor(Protocol):
    """
    Everything a repository needs to know about one entity kind.

    :class:`~minorm.core.entity.Entity` subclasses satisfy this protocol
    through class attributes and the ``construct`` classmethod.
    """

    columns: tuple[str, ...]
    table: str
    primary_key: str

    def construct(self, row: Mapping[str, Any], is_new: bool = True) -> Any:
        """Build an entity instance from a row mapping."""
        ...


@runtime_checkable
class DBAPIConnection(Protocol):
    """Minimal DB-API 2.0 connection surface wrapped by ``Connection``."""

    def cursor(self) -> Any:
        ...

    def commit(self) -> None:
        ...

    def rollback(self) -> None:
        ...

    def close(self) -> None:
        ...


__all__ = [
    "DBAPIConnection",
    "EntityDescriptor",
    "Executor",
]
