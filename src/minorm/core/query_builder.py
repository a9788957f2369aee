"""Fluent SQL query builder.

Accumulates clause fragments and parameter bindings, renders exactly one
statement, and hands it to an :class:`~minorm.core.protocols.Executor`.

Manifesto:
    Application code should be able to express typed CRUD without string
    formatting values into SQL.  The builder therefore has one rule it
    never bends: a plain value handed to an operator becomes a named
    placeholder plus a binding.  Only callables (see
    :mod:`minorm.core.raw`) are inlined, and only because the caller asked
    for raw SQL explicitly.

    - **Fragments, not a parse tree:** clauses are pre-rendered strings
    - **One builder per statement:** state is mutable and never shared
    - **Deterministic placeholders:** ``placeholder0``, ``placeholder1`` ...
      allocated per builder, never reused

Architecture::

    ┌──────────────────────────────────────────────────────────────────┐
    │                          QueryBuilder                            │
    ├──────────────────────────────────────────────────────────────────┤
    │  eq / ne / gt / ge / lt / le / notnull / isnull                  │
    │        │  apply_operator(tag, field, value)                      │
    │        ▼                                                          │
    │  expressions  ──wrap()───▶  where:  (`a` = :placeholder0)        │
    │               ──wrap_or()─▶         or (`b` = :placeholder1)     │
    │                                                                  │
    │  select · joins · where · order by · group by [having] · limit   │
    │        │  prepare_query()                                        │
    │        ▼                                                          │
    │  get_many / get_one / count   (associative)                      │
    │  update / delete              (associative)                      │
    │  insert                       (positional, returns id)           │
    └──────────────────────────────────────────────────────────────────┘

Examples:
    >>> qb = QueryBuilder(executor, "users")
    >>> qb.select(["username"]).eq("id", 1).wrap().debug()
    ('select username from `users` where (`id` = :placeholder0) ;', {'placeholder0': 1})

    Find options, groups OR-ed and fields AND-ed:

    >>> QueryBuilder(executor, "users").set_find_options({
    ...     "where": [{"id": 1, "username": ["ne", "guest"]}, {"access_level": ["ge", 9]}],
    ...     "orderBy": {"id": "desc"},
    ...     "take": 10,
    ... }).prepare_query()
    'select * from `users` where (`id` = :placeholder0 and `username` != :placeholder1) or (`access_level` >= :placeholder2) order by id desc limit 0, 10 ;'

Guardrails:
    ❌ DON'T: Reuse a builder for a second statement
    ✅ DO: Ask the data source or repository for a fresh builder

    ❌ DON'T: Pass user input through ``raw()``
    ✅ DO: Pass it as a plain operator value so it is bound

Tags:
    query-builder, sql, fluent, bindings, find-options, minorm
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from typing import Any, TypedDict

from minorm.core.connection import ExecutionMode
from minorm.core.errors import QueryBuildError
from minorm.core.logging import get_logger
from minorm.core.operators import Operator, resolve_operator
from minorm.core.protocols import Executor

logger = get_logger(__name__)

_MISSING: Any = object()


class FindOptions(TypedDict, total=False):
    """Structured find options accepted by :meth:`QueryBuilder.set_find_options`.

    ``where`` is a list of groups; each group maps a field to a bare value
    (``eq``) or an ``[operator, value]`` pair.  Fields within a group are
    AND-ed, groups are OR-ed.  ``having`` is a raw condition or a
    ``[condition, bindings]`` pair.
    """

    select: list[str]
    where: list[Mapping[str, Any]]
    orderBy: Mapping[str, str]
    order_by: Mapping[str, str]
    groupBy: list[str]
    group_by: list[str]
    having: str | Sequence[Any]
    take: int
    offset: int


class QueryBuilder:
    """Mutable, single-statement SQL builder.

    Fluent methods return ``self``; materialisers (``get_many``,
    ``get_one``, ``count``, ``update``, ``insert``, ``delete``) render the
    statement and call the executor.
    """

    def __init__(
        self,
        executor: Executor,
        table: str | None = None,
        alias: str | None = None,
    ) -> None:
        self._executor = executor
        self._table = table
        self._alias = alias

        self._select: list[str] = []
        self._joins: list[str] = []
        self._where: list[str] = []
        self._expressions: list[str] = []
        self._order_by: list[str] = []
        self._group_by: list[str] = []
        self._having: list[str] = []

        self._offset = 0
        self._take = 0

        self._bindings: dict[str, Any] = {}
        self._placeholder_seq = 0

    # -- State -------------------------------------------------------------

    @property
    def table(self) -> str | None:
        return self._table

    @property
    def alias(self) -> str | None:
        return self._alias

    @property
    def bindings(self) -> dict[str, Any]:
        return dict(self._bindings)

    @property
    def expressions(self) -> tuple[str, ...]:
        """Operator fragments staged for the next ``wrap``/``wrap_or``."""
        return tuple(self._expressions)

    # -- Select / from / join ----------------------------------------------

    def select(self, columns: Sequence[str]) -> QueryBuilder:
        self._select = list(columns)
        return self

    def add_select(self, column: str) -> QueryBuilder:
        self._select.append(column)
        return self

    def from_(self, table: str, alias: str | None = None) -> QueryBuilder:
        """Set the target table and optional alias."""
        self._table = table
        self._alias = alias
        return self

    def join(
        self,
        table: str,
        alias: str | None,
        condition: str,
        type: str = "left",
    ) -> QueryBuilder:
        """Append a join clause.

        ``condition`` is raw SQL, e.g.
        ``.join("users", "u", "u.id = uf.friend_id")``.
        """
        if alias is not None:
            self._joins.append(f"{type} join `{table}` as `{alias}` on {condition}")
        else:
            self._joins.append(f"{type} join `{table}` on {condition}")
        return self

    def left_join(self, table: str, alias: str | None, condition: str) -> QueryBuilder:
        return self.join(table, alias, condition, "left")

    def inner_join(self, table: str, alias: str | None, condition: str) -> QueryBuilder:
        return self.join(table, alias, condition, "inner")

    def right_join(self, table: str, alias: str | None, condition: str) -> QueryBuilder:
        return self.join(table, alias, condition, "right")

    # -- Operators ---------------------------------------------------------

    def add_expression(self, expression: str) -> QueryBuilder:
        """Stage a raw fragment alongside operator-built ones."""
        self._expressions.append(expression)
        return self

    def apply_operator(
        self,
        tag: str | Operator | None,
        field: str,
        value: Any = _MISSING,
    ) -> QueryBuilder:
        """Stage ``field <op> value`` for the next ``wrap``/``wrap_or``.

        Unknown operators and binary operators without a value (or with
        ``None``) leave the builder untouched.  A callable value is invoked
        and its SQL inlined; any other value is bound to a fresh
        ``placeholderN``.
        """
        operator = resolve_operator(tag) if tag is not None else None
        if operator is None:
            logger.debug("operator_ignored", operator=tag, field=field)
            return self

        if operator.is_unary:
            self._expressions.append(f"`{field}` {operator.sql}")
        elif callable(value):
            self._expressions.append(f"`{field}` {operator.sql} {value()}")
        elif value is not _MISSING and value is not None:
            placeholder = self._next_placeholder()
            self._expressions.append(f"`{field}` {operator.sql} :{placeholder}")
            self._bindings[placeholder] = value
        return self

    def eq(self, field: str, value: Any = _MISSING) -> QueryBuilder:
        return self.apply_operator(Operator.EQ, field, value)

    def ne(self, field: str, value: Any = _MISSING) -> QueryBuilder:
        return self.apply_operator(Operator.NE, field, value)

    def gt(self, field: str, value: Any = _MISSING) -> QueryBuilder:
        return self.apply_operator(Operator.GT, field, value)

    def ge(self, field: str, value: Any = _MISSING) -> QueryBuilder:
        return self.apply_operator(Operator.GE, field, value)

    def lt(self, field: str, value: Any = _MISSING) -> QueryBuilder:
        return self.apply_operator(Operator.LT, field, value)

    def le(self, field: str, value: Any = _MISSING) -> QueryBuilder:
        return self.apply_operator(Operator.LE, field, value)

    def notnull(self, field: str) -> QueryBuilder:
        return self.apply_operator(Operator.NOTNULL, field)

    def isnull(self, field: str) -> QueryBuilder:
        return self.apply_operator(Operator.ISNULL, field)

    def _next_placeholder(self) -> str:
        index = max(self._placeholder_seq, len(self._bindings))
        while f"placeholder{index}" in self._bindings:
            index += 1
        self._placeholder_seq = index + 1
        return f"placeholder{index}"

    # -- Where -------------------------------------------------------------

    def where(self, condition: str) -> QueryBuilder:
        self._where.append(condition)
        return self

    def and_where(self, condition: str) -> QueryBuilder:
        self._where.append(f"and {condition}")
        return self

    def or_where(self, condition: str) -> QueryBuilder:
        self._where.append(f"or {condition}")
        return self

    def wrap(self) -> QueryBuilder:
        """Move staged expressions into ``where`` as one AND-ed group."""
        if self._expressions:
            self._where.append(f"({' and '.join(self._expressions)})")
            self._expressions = []
        return self

    def wrap_or(self) -> QueryBuilder:
        """Like :meth:`wrap`, but the group is OR-ed onto what precedes it."""
        if self._expressions:
            self._where.append(f"or ({' and '.join(self._expressions)})")
            self._expressions = []
        return self

    # -- Order / group / having --------------------------------------------

    def order_by(self, field: str, order: str = "desc") -> QueryBuilder:
        self._order_by.append(f"{field} {order}")
        return self

    def group_by(self, expression: str) -> QueryBuilder:
        self._group_by.append(expression)
        return self

    def having(self, condition: str) -> QueryBuilder:
        """Append a having condition (rendered only alongside ``group by``)."""
        self._having.append(condition)
        return self

    def and_having(self, condition: str) -> QueryBuilder:
        self._having.append(f"and {condition}")
        return self

    def or_having(self, condition: str) -> QueryBuilder:
        self._having.append(f"or {condition}")
        return self

    # -- Paging / bindings -------------------------------------------------

    def offset(self, offset: int) -> QueryBuilder:
        self._offset = self._non_negative("offset", offset)
        return self

    def take(self, take: int) -> QueryBuilder:
        """Limit the row count; ``0`` means no limit."""
        self._take = self._non_negative("take", take)
        return self

    @staticmethod
    def _non_negative(name: str, value: Any) -> int:
        if isinstance(value, bool) or not isinstance(value, int) or value < 0:
            raise QueryBuildError(f"{name} must be a non-negative integer", field=name, value=value)
        return value

    def bind(self, bindings: Mapping[str, Any] | None = None) -> QueryBuilder:
        """Replace all bindings."""
        self._bindings = dict(bindings or {})
        return self

    def add_bindings(self, bindings: Mapping[str, Any]) -> QueryBuilder:
        """Merge bindings; later values win for the same name."""
        self._bindings.update(bindings)
        return self

    # -- Find options ------------------------------------------------------

    def set_find_options(self, options: FindOptions | Mapping[str, Any] | None = None) -> QueryBuilder:
        """Translate find options into builder state.

        Not additive: ``select``, ``where``, ``groupBy``, ``take`` and
        ``offset`` are replaced (unset keys reset them), while ``orderBy``
        and ``having`` append to whatever was set before the call.
        Operator fragments staged before the call join the first where
        group, together with their bindings.
        """
        options = options or {}

        self._select = list(options.get("select") or [])

        self._where = []
        where = options.get("where")
        if isinstance(where, (list, tuple)):
            for group in where:
                if not isinstance(group, Mapping):
                    continue
                for field, expression in group.items():
                    if isinstance(expression, (list, tuple)):
                        op = expression[0] if len(expression) > 0 else None
                        value = expression[1] if len(expression) > 1 else _MISSING
                        self.apply_operator(op, field, value)
                    else:
                        self.eq(field, expression)

                # first emitted group opens the clause, later groups are OR-ed
                if self._where:
                    self.wrap_or()
                else:
                    self.wrap()

        order_by = options.get("orderBy", options.get("order_by"))
        if isinstance(order_by, Mapping):
            for field, order in order_by.items():
                self.order_by(field, order)

        self._group_by = list(options.get("groupBy", options.get("group_by")) or [])

        having = options.get("having")
        if isinstance(having, str):
            self._having.append(having)
        elif isinstance(having, (list, tuple)) and len(having) > 0:
            self._having.append(having[0])
            if len(having) > 1 and isinstance(having[1], Mapping):
                self.add_bindings(having[1])

        self.take(options.get("take") or 0)
        self.offset(options.get("offset") or 0)
        return self

    # -- Rendering ---------------------------------------------------------

    def _require_table(self, operation: str) -> str:
        if not self._table:
            raise QueryBuildError("query builder has no table").with_context(operation=operation)
        return self._table

    def prepare_query(self) -> str:
        """Render the SELECT statement for the current state."""
        table = self._require_table("select")
        chunks = ["select", ", ".join(self._select) if self._select else "*", "from"]
        chunks.append(f"`{table}` as {self._alias}" if self._alias is not None else f"`{table}`")

        if self._joins:
            chunks.append(" ".join(self._joins))

        if self._where:
            chunks += ["where", " ".join(self._where)]

        if self._order_by:
            chunks += ["order by", ",".join(self._order_by)]

        # having is only meaningful, and only rendered, with a group by
        if self._group_by:
            chunks += ["group by", ",".join(self._group_by)]
            if self._having:
                chunks += ["having", " ".join(self._having)]

        if self._take > 0:
            chunks += ["limit", f"{self._offset}, {self._take}"]
        elif self._offset > 0:
            chunks += ["offset", str(self._offset)]

        chunks.append(";")
        return " ".join(chunks)

    def debug(self) -> tuple[str, dict[str, Any]]:
        """Rendered SELECT plus a copy of the bindings."""
        return self.prepare_query(), dict(self._bindings)

    # -- Materialisers -----------------------------------------------------

    def get_many(self) -> list[dict[str, Any]]:
        result = self._executor.execute(self.prepare_query(), self._bindings, ExecutionMode.ASSOCIATIVE)
        return list(result.rows)

    def get_one(self) -> dict[str, Any] | None:
        """First row of the result, or ``None`` when nothing matched."""
        result = self._executor.execute(self.prepare_query(), self._bindings, ExecutionMode.ASSOCIATIVE)
        return result.rows[0] if result.row_count >= 1 and result.rows else None

    def count(self) -> int:
        """Row count of the built SELECT (not a ``count(*)`` rewrite)."""
        result = self._executor.execute(self.prepare_query(), self._bindings, ExecutionMode.ASSOCIATIVE)
        return result.row_count

    def update(self, data: Mapping[str, Any]) -> int:
        """Update rows matching ``where`` and return the affected row count.

        Plain values bind to ``:<column>``, overwriting any binding of the
        same name; callables inline their SQL.
        """
        table = self._require_table("update")
        if not data:
            raise QueryBuildError("update needs at least one column").with_context(table=table, operation="update")

        assignments = []
        for key, value in data.items():
            if callable(value):
                assignments.append(f"`{key}` = {value()}")
            else:
                assignments.append(f"`{key}` = :{key}")
                self._bindings[key] = value

        chunks = ["update", f"`{table}`", "set", ", ".join(assignments)]
        if self._where:
            chunks += ["where", " ".join(self._where)]
        chunks.append(";")

        result = self._executor.execute(" ".join(chunks), self._bindings, ExecutionMode.ASSOCIATIVE)
        return result.row_count

    def insert(self, data: Mapping[str, Any]) -> Any:
        """Insert one row and return the generated primary key."""
        table = self._require_table("insert")
        if not data:
            raise QueryBuildError("insert needs at least one column").with_context(table=table, operation="insert")

        placeholders = []
        values = []
        for value in data.values():
            if callable(value):
                placeholders.append(value())
            else:
                placeholders.append("?")
                values.append(value)

        chunks = [
            "insert into",
            f"`{table}`",
            "(",
            ", ".join(f"`{key}`" for key in data),
            ")",
            "values",
            "(",
            ", ".join(placeholders),
            ")",
            ";",
        ]

        result = self._executor.execute(" ".join(chunks), values, ExecutionMode.POSITIONAL)
        return result.last_insert_id

    def delete(self) -> QueryBuilder:
        """Delete rows matching ``where``; returns the builder."""
        table = self._require_table("delete")
        chunks = ["delete from", f"`{table}`"]
        if self._where:
            chunks += ["where", " ".join(self._where)]
        chunks.append(";")

        self._executor.execute(" ".join(chunks), self._bindings, ExecutionMode.ASSOCIATIVE)
        return self

    def __repr__(self) -> str:
        return f"QueryBuilder(table={self._table!r}, alias={self._alias!r})"


__all__ = [
    "FindOptions",
    "QueryBuilder",
]
