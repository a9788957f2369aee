"""minorm core -- query builder, entities, repositories.

Architecture::

    Layer 1 -- Contracts & Errors
        protocols.py       Executor / EntityDescriptor / DBAPIConnection
        errors.py          OrmError hierarchy
        logging.py         structlog configuration
        settings.py        OrmSettings (pydantic-settings)

    Layer 2 -- Execution
        connection.py      Connection wrapper, ResultSet, create_connection()
        orm/               SQLAlchemy executor bridge

    Layer 3 -- Query building
        operators.py       Operator table (eq, ne, gt, ge, lt, le, notnull, isnull)
        raw.py             RawSql values inlined verbatim
        query_builder.py   QueryBuilder + find options

    Layer 4 -- Mapping
        entity.py          Entity with dirty-field tracking
        repository.py      Repository (find / save / delete)
        data_source.py     DataSource factory
"""

from minorm.core.connection import (
    Connection,
    ConnectionInfo,
    ExecutionMode,
    ResultSet,
    create_connection,
)
from minorm.core.data_source import DataSource
from minorm.core.entity import Entity
from minorm.core.errors import (
    ConfigError,
    DatabaseError,
    EntityDefinitionError,
    ErrorCategory,
    ErrorContext,
    InvalidConfigError,
    MissingConfigError,
    OrmError,
    QueryBuildError,
    ValidationError,
)
from minorm.core.operators import OPERATORS, Operator, resolve_operator
from minorm.core.protocols import EntityDescriptor, Executor
from minorm.core.query_builder import FindOptions, QueryBuilder
from minorm.core.raw import RawSql, raw
from minorm.core.repository import Repository

__all__ = [
    "Connection",
    "ConnectionInfo",
    "DataSource",
    "Entity",
    "EntityDescriptor",
    "ExecutionMode",
    "Executor",
    "FindOptions",
    "OPERATORS",
    "Operator",
    "QueryBuilder",
    "RawSql",
    "Repository",
    "ResultSet",
    "create_connection",
    "raw",
    "resolve_operator",
    # errors
    "ConfigError",
    "DatabaseError",
    "EntityDefinitionError",
    "ErrorCategory",
    "ErrorContext",
    "InvalidConfigError",
    "MissingConfigError",
    "OrmError",
    "QueryBuildError",
    "ValidationError",
]
