"""
minorm - a minimal object-relational mapping layer.

Fluent query builder, entities with dirty-field tracking, and repositories
mapping rows to and from entities.
"""

__version__ = "0.1.0"

from minorm.core import *  # noqa
from minorm.core import __all__  # noqa
