"""Comparison operators understood by the query builder.

Operator mnemonics (``eq``, ``ge``, ``isnull`` ...) are resolved through an
explicit table rather than attribute lookups, so an unknown mnemonic is
simply "not an operator" and never reaches ``getattr``.

Examples:
    >>> resolve_operator("ge")
    <Operator.GE: 'ge'>
    >>> Operator.GE.sql
    '>='
    >>> resolve_operator("between") is None
    True
"""

from __future__ import annotations

from enum import Enum


class Operator(str, Enum):
    """Comparison operator, keyed by its mnemonic."""

    EQ = "eq"
    NE = "ne"
    GT = "gt"
    GE = "ge"
    LT = "lt"
    LE = "le"
    NOTNULL = "notnull"
    ISNULL = "isnull"

    @property
    def sql(self) -> str:
        return OPERATORS[self]

    @property
    def is_unary(self) -> bool:
        return self in (Operator.NOTNULL, Operator.ISNULL)


OPERATORS: dict[Operator, str] = {
    Operator.EQ: "=",
    Operator.NE: "!=",
    Operator.GT: ">",
    Operator.GE: ">=",
    Operator.LT: "<",
    Operator.LE: "<=",
    Operator.NOTNULL: "not null",
    Operator.ISNULL: "is null",
}


def resolve_operator(tag: str | Operator) -> Operator | None:
    """Map a mnemonic to its :class:`Operator`, or ``None`` if unknown."""
    if isinstance(tag, Operator):
        return tag
    try:
        return Operator(tag)
    except ValueError:
        return None


__all__ = [
    "OPERATORS",
    "Operator",
    "resolve_operator",
]
