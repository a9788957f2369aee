"""Entity repository: find, save and delete entities of one kind.

Provides :class:`Repository`, which binds an executor to one entity kind
(its table and primary key) and translates between rows and entities:

Architecture::

    ┌────────────────────────────────────────────────────────────────────┐
    │                           Repository                               │
    │                                                                    │
    │   executor     ← protocol from minorm.core.protocols               │
    │   entity_kind  ← Entity subclass (table, columns, primary_key)     │
    │                                                                    │
    │   find(options)            → list[Entity]   (is_new=False)         │
    │   find_one(options)        → Entity | None                         │
    │   find_by / find_one_by    → raw condition + bindings              │
    │   save(entity)             → insert or update the modified set     │
    │   delete(entity)           → delete by primary key                 │
    └────────────────────────────────────────────────────────────────────┘

Hydration is best-effort: a row whose entity cannot be constructed is
skipped and logged as ``entity_hydration_failed``.  Callers therefore
cannot tell "no rows" from "rows that failed to hydrate" by looking at the
return value alone.

Usage:
    >>> repo = Repository(conn, User)
    >>> admins = repo.find({"where": [{"access_level": ["ge", 9]}]})
    >>> user = User({"username": "new"})
    >>> user.set("access_level", 1)
    >>> repo.save(user)          # insert, id written back
    >>> user.set("access_level", 2)
    >>> repo.save(user)          # update where id = <id>

Tags:
    repository, entity, persistence, dirty-tracking, minorm
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from minorm.core.entity import Entity
from minorm.core.errors import EntityDefinitionError
from minorm.core.logging import get_logger
from minorm.core.protocols import EntityDescriptor, Executor
from minorm.core.query_builder import FindOptions, QueryBuilder

logger = get_logger(__name__)


class Repository:
    """Persistence for one entity kind.

    Parameters:
        executor: Any object satisfying the :class:`Executor` protocol.
        entity_kind: The entity class (or any :class:`EntityDescriptor`).
        table: Overrides ``entity_kind.table``.
        primary_key: Overrides ``entity_kind.primary_key``.

    Raises:
        EntityDefinitionError: the kind declares no table or no columns,
            or its primary key is not one of its columns.
    """

    def __init__(
        self,
        executor: Executor,
        entity_kind: type[Entity] | EntityDescriptor,
        table: str | None = None,
        primary_key: str | None = None,
    ) -> None:
        name = getattr(entity_kind, "__name__", repr(entity_kind))
        table = table or getattr(entity_kind, "table", None)
        primary_key = primary_key or getattr(entity_kind, "primary_key", None) or "id"
        columns = tuple(getattr(entity_kind, "columns", ()) or ())

        if not table:
            raise EntityDefinitionError(f"{name} declares no table", field="table").with_context(entity=name)
        if not columns:
            raise EntityDefinitionError(f"{name} declares no columns", field="columns").with_context(
                entity=name, table=table
            )
        if primary_key not in columns:
            raise EntityDefinitionError(
                f"{name} primary key {primary_key!r} is not a declared column",
                field="primary_key",
                value=primary_key,
            ).with_context(entity=name, table=table)

        self._executor = executor
        self._entity_kind = entity_kind
        self._entity_name = name
        self._table = table
        self._primary_key = primary_key

    @property
    def entity_kind(self) -> type[Entity] | EntityDescriptor:
        return self._entity_kind

    @property
    def table(self) -> str:
        return self._table

    @property
    def primary_key(self) -> str:
        return self._primary_key

    def create_query_builder(self, alias: str | None = None) -> QueryBuilder:
        return QueryBuilder(self._executor, self._table, alias)

    # -- Reads -------------------------------------------------------------

    def _hydrate(self, row: Mapping[str, Any]) -> Any | None:
        try:
            return self._entity_kind.construct(row, False)
        except Exception as e:
            logger.warning(
                "entity_hydration_failed",
                entity=self._entity_name,
                table=self._table,
                error=str(e),
            )
            return None

    def _hydrate_all(self, rows: list[dict[str, Any]]) -> list[Any]:
        entities = []
        for row in rows:
            entity = self._hydrate(row)
            if entity is not None:
                entities.append(entity)
        return entities

    def _condition_builder(
        self,
        condition: str | Mapping[str, Any],
        bindings: Mapping[str, Any] | None,
    ) -> QueryBuilder:
        qb = self.create_query_builder()
        if isinstance(condition, Mapping):
            qb.set_find_options({"where": [condition]})
        else:
            qb.where(condition)
        if bindings:
            qb.add_bindings(bindings)
        return qb

    def find(self, options: FindOptions | Mapping[str, Any] | None = None) -> list[Any]:
        """Entities matching *options*; rows that fail to hydrate are skipped."""
        rows = self.create_query_builder().set_find_options(options or {}).get_many()
        return self._hydrate_all(rows)

    def find_by(
        self,
        condition: str | Mapping[str, Any],
        bindings: Mapping[str, Any] | None = None,
    ) -> list[Any]:
        """Entities matching a raw condition (``"`username` = :name"``) or one where group."""
        return self._hydrate_all(self._condition_builder(condition, bindings).get_many())

    def find_one(self, options: FindOptions | Mapping[str, Any] | None = None) -> Any | None:
        row = self.create_query_builder().set_find_options(options or {}).get_one()
        if row is None:
            return None
        return self._hydrate(row)

    def find_one_by(
        self,
        condition: str | Mapping[str, Any],
        bindings: Mapping[str, Any] | None = None,
    ) -> Any | None:
        row = self._condition_builder(condition, bindings).get_one()
        if row is None:
            return None
        return self._hydrate(row)

    # -- Writes ------------------------------------------------------------

    def save(self, entity: Entity) -> None:
        """Persist the entity's modified set exactly once.

        New entities are inserted and receive the generated id; persisted
        entities are updated by primary key.  Unmodified entities cause no
        statement at all.
        """
        if not entity.is_modified:
            return

        modified = entity.get_modified()
        if entity.is_new:
            new_id = self.create_query_builder().insert(modified)
            entity.set(self._primary_key, new_id)
            entity.mark_persisted()
            logger.debug("entity_saved", entity=self._entity_name, action="insert", id=new_id)
        else:
            key = entity.get(self._primary_key) or 0
            self.create_query_builder().eq(self._primary_key, key).wrap().update(modified)
            logger.debug("entity_saved", entity=self._entity_name, action="update", id=key)

        entity.clear_modified()

    def delete(self, entity: Entity | None) -> None:
        """Delete a persisted entity by primary key; new entities are ignored."""
        if entity is None or entity.is_new:
            return

        key = entity.get(self._primary_key) or 0
        self.create_query_builder().eq(self._primary_key, key).wrap().delete()
        logger.debug("entity_deleted", entity=self._entity_name, id=key)

    def __repr__(self) -> str:
        return f"Repository({self._entity_name}, table={self._table!r})"


__all__ = [
    "Repository",
]
