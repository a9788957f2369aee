"""Data source: the entry point handing out builders and repositories.

Usage::

    from minorm import DataSource

    ds = DataSource.from_url("sqlite:///app.db")
    row = ds.create_query_builder("users").eq("id", 1).wrap().get_one()
    users = ds.get_repository(User)
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from typing import Any

from minorm.core.connection import ConnectionInfo, ExecutionMode, ResultSet, create_connection
from minorm.core.entity import Entity
from minorm.core.errors import EntityDefinitionError, MissingConfigError
from minorm.core.logging import get_logger
from minorm.core.protocols import Executor
from minorm.core.query_builder import QueryBuilder
from minorm.core.repository import Repository
from minorm.core.settings import OrmSettings, get_settings

logger = get_logger(__name__)


class DataSource:
    """Factory for query builders and repositories over one executor."""

    def __init__(self, executor: Executor, info: ConnectionInfo | None = None) -> None:
        self._executor = executor
        self.info = info

    @classmethod
    def from_url(cls, url: str | None = None, *, settings: OrmSettings | None = None) -> DataSource:
        """Connect to *url*, defaulting to ``MINORM_DATABASE_URL``.

        Raises:
            MissingConfigError: no *url* and ``database_url`` is blank.
        """
        settings = settings or get_settings()
        url = url or settings.database_url
        if not url or not url.strip():
            raise MissingConfigError("database_url")
        executor, info = create_connection(url, echo=settings.echo_sql)
        logger.debug("data_source_opened", backend=info.backend, persistent=info.persistent)
        return cls(executor, info)

    @property
    def executor(self) -> Executor:
        return self._executor

    def query(
        self,
        sql: str,
        params: Mapping[str, Any] | Sequence[Any] | None = None,
        mode: ExecutionMode = ExecutionMode.ASSOCIATIVE,
    ) -> ResultSet:
        """Execute a native statement."""
        return self._executor.execute(sql, params, mode)

    def create_query_builder(self, table: str | None = None, alias: str | None = None) -> QueryBuilder:
        return QueryBuilder(self._executor, table, alias)

    def get_repository(self, entity_kind: Any) -> Repository | None:
        """Repository for *entity_kind*, or ``None`` if it is not a usable entity class."""
        if not (isinstance(entity_kind, type) and issubclass(entity_kind, Entity)):
            logger.warning("repository_unavailable", entity=repr(entity_kind), reason="not an Entity subclass")
            return None
        try:
            return Repository(self._executor, entity_kind)
        except EntityDefinitionError as e:
            logger.warning("repository_unavailable", entity=entity_kind.__name__, reason=e.message)
            return None

    def close(self) -> None:
        close = getattr(self._executor, "close", None)
        if close is not None:
            close()


__all__ = [
    "DataSource",
]
