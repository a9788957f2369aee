"""SQLAlchemy bridge for stores ``sqlite3`` cannot reach.

Imported lazily by :func:`minorm.core.connection.create_connection` so the
SQLite path never loads SQLAlchemy.
"""

from minorm.core.orm.session import SAExecutor, create_engine, escape_unbound, rewrite_positional

__all__ = [
    "SAExecutor",
    "create_engine",
    "escape_unbound",
    "rewrite_positional",
]
