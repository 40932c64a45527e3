"""Dynamic repository: query trees over SQLAlchemy mappings."""

from .builder import SelectQueryBuilder
from .catalog import (
    Catalog,
    ColumnMetadata,
    EntityMetadata,
    RelationMetadata,
)
from .exc import (
    CatalogError,
    EntityNotFoundError,
    FieldNotFoundError,
    InvalidArgumentError,
    InvalidOperatorError,
    RelationNotFoundError,
)
from .node import QueryTree
from .options import (
    Filter,
    FilterOperator,
    FindOptions,
    OrderBy,
    OrderType,
    QueryOptions,
)
from .querybuilder import QueryBuilder
from .repository import DynamicRepository

__version__ = "1.0.0"

__all__ = [
    "Catalog",
    "CatalogError",
    "ColumnMetadata",
    "DynamicRepository",
    "EntityMetadata",
    "EntityNotFoundError",
    "FieldNotFoundError",
    "Filter",
    "FilterOperator",
    "FindOptions",
    "InvalidArgumentError",
    "InvalidOperatorError",
    "OrderBy",
    "OrderType",
    "QueryBuilder",
    "QueryOptions",
    "QueryTree",
    "RelationMetadata",
    "RelationNotFoundError",
    "SelectQueryBuilder",
]
