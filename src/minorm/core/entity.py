"""Base entity with dirty-field tracking.

Each entity kind subclasses :class:`Entity` and declares its table, its
closed set of columns and its primary key::

    class User(Entity):
        table = "users"
        columns = ("id", "username", "access_level")

    user = User({"username": "admin"})       # new, nothing modified yet
    user.access_level = 9                    # same as user.set("access_level", 9)
    user.get_modified()                      # {'access_level': 9}

Only values written through :meth:`Entity.set` (or attribute assignment)
land in the modified set; values passed to the constructor do not.  The
repository uses that set to decide what to insert or update.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any, ClassVar

from minorm.core.errors import EntityDefinitionError


class Entity:
    """In-memory record of one row.

    Class attributes
    ────────────────
    table        : Table the kind is stored in
    columns      : Closed set of known column names
    primary_key  : Column holding the generated identifier
    """

    table: ClassVar[str | None] = None
    columns: ClassVar[tuple[str, ...]] = ()
    primary_key: ClassVar[str] = "id"

    def __init_subclass__(cls, **kwargs: Any) -> None:
        super().__init_subclass__(**kwargs)
        cls.columns = tuple(cls.columns)
        # attribute access would resolve these to Entity members, not columns
        reserved = [column for column in cls.columns if hasattr(Entity, column)]
        if reserved:
            raise EntityDefinitionError(
                f"{cls.__name__} columns shadow Entity attributes: {', '.join(reserved)}",
                field="columns",
                value=reserved,
            ).with_context(entity=cls.__name__)

    def __init__(self, data: Mapping[str, Any] | None = None, is_new: bool = True) -> None:
        object.__setattr__(self, "_is_new", is_new)
        object.__setattr__(self, "_data", {})
        object.__setattr__(self, "_modified", {})

        for column in self.columns:
            if data is not None and data.get(column) is not None:
                self._data[column] = data[column]

    @classmethod
    def construct(cls, row: Mapping[str, Any], is_new: bool = True) -> Entity:
        """Build an instance from a row mapping."""
        return cls(row, is_new)

    # -- Field access ------------------------------------------------------

    def get(self, key: str, default: Any = None) -> Any:
        """Current value of *key*, or *default* when unset or unknown."""
        value = self._data.get(key)
        return default if value is None else value

    def set(self, key: str, value: Any) -> None:
        """Set a known column and record it as modified; unknown keys are ignored."""
        if key in self.columns:
            self._data[key] = value
            self._modified[key] = value

    def __getattr__(self, name: str) -> Any:
        if name in type(self).columns:
            return self.get(name)
        raise AttributeError(f"{type(self).__name__!r} object has no attribute {name!r}")

    def __setattr__(self, name: str, value: Any) -> None:
        if name in type(self).columns:
            self.set(name, value)
        else:
            object.__setattr__(self, name, value)

    # -- State -------------------------------------------------------------

    @property
    def is_new(self) -> bool:
        return self._is_new

    def mark_persisted(self) -> None:
        self._is_new = False

    @property
    def is_modified(self) -> bool:
        return len(self._modified) != 0

    def get_modified(self) -> dict[str, Any]:
        return dict(self._modified)

    def set_modified(self, modified: Mapping[str, Any] | None = None) -> None:
        """Replace the modified set, keeping it within the known columns."""
        self._modified = {}
        for key, value in (modified or {}).items():
            self.set(key, value)

    def clear_modified(self) -> None:
        self._modified = {}

    @property
    def data(self) -> dict[str, Any]:
        return dict(self._data)

    def to_dict(self) -> dict[str, Any]:
        return {column: self._data.get(column) for column in self.columns}

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self._data!r}, is_new={self._is_new})"


__all__ = [
    "Entity",
]
