"""DynamicRepo query and find options."""

from __future__ import annotations

import enum
import typing as t
from dataclasses import dataclass, field

from .constants import (
    ASC,
    CONTAINS,
    DESC,
    ENDS_WITH,
    EQUAL,
    FILTER_OPERATORS,
    GREATER,
    GREATER_OR_EQUAL,
    IN,
    LOWER,
    LOWER_OR_EQUAL,
    NOT_EQUAL,
    STARTS_WITH,
)
from .exc import InvalidOperatorError


class FilterOperator(str, enum.Enum):
    IN = IN
    CONTAINS = CONTAINS
    STARTS_WITH = STARTS_WITH
    ENDS_WITH = ENDS_WITH
    LOWER = LOWER
    LOWER_OR_EQUAL = LOWER_OR_EQUAL
    GREATER = GREATER
    GREATER_OR_EQUAL = GREATER_OR_EQUAL
    EQUAL = EQUAL
    NOT_EQUAL = NOT_EQUAL


class OrderType(str, enum.Enum):
    ASC = ASC
    DESC = DESC


@dataclass
class Filter:
    """
    A single predicate of a query.

    Attributes:
        field (str): Property path, dot-separated for relations e.g "articles.price".
        operator (FilterOperator): Comparison operator.
        value (str): Literal value. For "in" a comma separated list of values.
    """

    field: str
    operator: t.Union[FilterOperator, str] = FilterOperator.EQUAL
    value: t.Any = None

    def __post_init__(self):
        if not isinstance(self.operator, FilterOperator):
            try:
                self.operator = FilterOperator(self.operator)
            except ValueError:
                raise InvalidOperatorError(
                    f'Filter operator "{self.operator}" on field '
                    f'"{self.field}" is invalid. '
                    f"Use one of {FILTER_OPERATORS}"
                )

    def route(self, field: str) -> Filter:
        """Copy of this filter addressed to a field one level down."""
        return Filter(field=field, operator=self.operator, value=self.value)


@dataclass
class OrderBy:
    """
    A single ordering entry of a query.

    Unknown order types are accepted here and ignored when
    the SQL query is generated.
    """

    field: str
    type: t.Union[OrderType, str] = OrderType.ASC

    def __post_init__(self):
        if isinstance(self.type, str) and not isinstance(
            self.type, OrderType
        ):
            try:
                self.type = OrderType(self.type.lower())
            except ValueError:
                pass

    def route(self, field: str) -> OrderBy:
        """Copy of this ordering addressed to a field one level down."""
        return OrderBy(field=field, type=self.type)


def _as_filter(value: t.Union[Filter, dict]) -> Filter:
    if isinstance(value, Filter):
        return value
    return Filter(**value)


def _as_order_by(value: t.Union[OrderBy, dict]) -> OrderBy:
    if isinstance(value, OrderBy):
        return value
    return OrderBy(**value)


@dataclass
class QueryOptions:
    """
    Options used to select, filter and order entity attributes.

    Let's say you have entity Order (id, name, ... , articles) which has
    relation with Article (id, name, price, replacement, ...). Order has many
    Articles and each Article can have a replacement Article.

    selections:
        None or [] -> all Order attributes AND eager relations recursively
        ["id", "name"] -> only Order id and name
        ["*"] -> all Order attributes, excluding relations
        ["*", "articles.*"] -> all Order and Article attributes,
            excluding Article relations
        ["*", "articles"] -> all Order and Article attributes,
            including Article eager relations
        ["*", "articles.id", "articles.replacement.*"] -> all Order
            attributes, Article id and all replacement attributes
    where:
        [Filter("id", "=", "1")], [Filter("articles.id", "=", "1")]
    ordering:
        [OrderBy("id", "asc")], [OrderBy("articles.id", "desc")]
    """

    selections: t.Optional[t.List[str]] = None
    where: t.Optional[t.List[Filter]] = None
    ordering: t.Optional[t.List[OrderBy]] = None

    def __post_init__(self):
        if self.where is not None:
            self.where = [_as_filter(value) for value in self.where]
        if self.ordering is not None:
            self.ordering = [_as_order_by(value) for value in self.ordering]


@dataclass
class FindOptions:
    """
    These options tell the DynamicRepository how to behave internally.

    Attributes:
        only_eager (bool): If True (default), only eager relations are
            selected by default. Disable to join every relation regardless
            of its loading strategy (not recommended).
        allow_recursively (list): Table names allowed to be joined once more
            although already explored on the current path. Useful for cyclical
            relations e.g Order -> Article -> Replacement (Article).
    """

    only_eager: bool = True
    allow_recursively: t.List[str] = field(default_factory=list)


def as_query_options(
    value: t.Union[QueryOptions, dict, None],
) -> QueryOptions:
    if value is None:
        return QueryOptions()
    if isinstance(value, QueryOptions):
        return value
    return QueryOptions(**value)


def as_find_options(value: t.Union[FindOptions, dict, None]) -> FindOptions:
    if value is None:
        return FindOptions()
    if isinstance(value, FindOptions):
        return value
    return FindOptions(**value)
