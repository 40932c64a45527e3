"""DynamicRepo QueryBuilder."""

from __future__ import annotations

import logging
import threading
import typing as t
from datetime import date, datetime, time
from decimal import Decimal

import sqlalchemy as sa

from .builder import SelectQueryBuilder
from .catalog import Catalog, EntityMetadata, RelationMetadata
from .constants import (
    ALIAS_SEPARATOR,
    BOOLEAN_LITERALS,
    CONTAINS,
    ENDS_WITH,
    EQUAL,
    GREATER,
    GREATER_OR_EQUAL,
    IN,
    IN_DELIMITER,
    LIKE_WILDCARD,
    LOWER,
    LOWER_OR_EQUAL,
    NOT_EQUAL,
    ORDER_DIRECTIONS,
    PATH_SEPARATOR,
    STARTS_WITH,
)
from .exc import InvalidOperatorError
from .node import QueryTree
from .options import Filter, OrderBy

logger = logging.getLogger(__name__)

COMPARISONS: t.Dict[str, t.Callable] = {
    EQUAL: lambda column, value: column == value,
    NOT_EQUAL: lambda column, value: column != value,
    LOWER: lambda column, value: column < value,
    LOWER_OR_EQUAL: lambda column, value: column <= value,
    GREATER: lambda column, value: column > value,
    GREATER_OR_EQUAL: lambda column, value: column >= value,
}

PATTERNS: t.Dict[str, str] = {
    CONTAINS: f"{LIKE_WILDCARD}{{}}{LIKE_WILDCARD}",
    STARTS_WITH: f"{{}}{LIKE_WILDCARD}",
    ENDS_WITH: f"{LIKE_WILDCARD}{{}}",
}


def _append(values: t.List[str], value: str) -> None:
    if value not in values:
        values.append(value)


def _coerce(column: sa.sql.ColumnElement, value: t.Any) -> t.Any:
    """Convert a literal string to the python type of the column."""
    if not isinstance(value, str):
        return value
    try:
        if isinstance(column.type, sa.Boolean):
            return BOOLEAN_LITERALS[value.strip().lower()]
        if isinstance(column.type, sa.Integer):
            return int(value)
        if isinstance(column.type, sa.Float):
            return float(value)
        if isinstance(column.type, sa.Numeric):
            return Decimal(value)
        if isinstance(column.type, sa.DateTime):
            return datetime.fromisoformat(value.strip())
        if isinstance(column.type, sa.Date):
            return date.fromisoformat(value.strip())
        if isinstance(column.type, sa.Time):
            return time.fromisoformat(value.strip())
    except (KeyError, ValueError, ArithmeticError):
        logger.debug(f"Cannot convert {value!r} to {column.type}")
    return value


def _bind_type(
    column: sa.sql.ColumnElement, values: t.List[t.Any]
) -> t.Optional[sa.types.TypeEngine]:
    """The column type, or None for strings _coerce could not convert."""
    if isinstance(column.type, sa.String):
        return column.type
    if any(isinstance(value, str) for value in values):
        return None
    return column.type


class QueryBuilder(threading.local):
    """
    SQL emitter.

    Walks a QueryTree depth first and drives a SelectQueryBuilder:
    selections, joins, predicates and ordering.
    """

    def __init__(self, verbose: bool = False):
        """Query builder constructor."""
        self.verbose: bool = verbose
        self._placeholders: t.Set[str] = set()

    def _placeholder(self, alias: str, field: str) -> str:
        """Unique bind parameter name e.g order__articles__price."""
        name: str = f"{alias}{ALIAS_SEPARATOR}{field}"
        placeholder: str = name
        index: int = 1
        while placeholder in self._placeholders:
            placeholder = f"{name}_{index}"
            index += 1
        self._placeholders.add(placeholder)
        return placeholder

    def _build_filter(
        self, qb: SelectQueryBuilder, column_path: str, _filter: Filter
    ) -> sa.sql.ColumnElement:
        column: sa.sql.ColumnElement = qb.column(column_path)
        alias: str = column_path.rpartition(PATH_SEPARATOR)[0]
        placeholder: str = self._placeholder(alias, _filter.field)
        operator: str = getattr(_filter.operator, "value", _filter.operator)
        value: t.Any = _filter.value

        if operator in COMPARISONS:
            value = _coerce(column, value)
            return COMPARISONS[operator](
                column,
                sa.bindparam(
                    placeholder, value, type_=_bind_type(column, [value])
                ),
            )

        if operator == IN:
            if isinstance(value, str):
                values = [
                    item.strip() for item in value.split(IN_DELIMITER)
                ]
            else:
                values = list(value or [])
            values = [_coerce(column, item) for item in values]
            return column.in_(
                sa.bindparam(
                    placeholder,
                    values,
                    type_=_bind_type(column, values),
                    expanding=True,
                )
            )

        if operator in PATTERNS:
            return column.like(
                sa.bindparam(
                    placeholder,
                    PATTERNS[operator].format(value),
                    type_=sa.String,
                )
            )

        raise InvalidOperatorError(
            f'Filter operator "{operator}" on field "{_filter.field}" '
            f"is invalid"
        )

    def _build_ordering(
        self, qb: SelectQueryBuilder, column_path: str, order_by: OrderBy
    ) -> None:
        direction: t.Optional[str] = ORDER_DIRECTIONS.get(
            getattr(order_by.type, "value", order_by.type)
        )
        if direction is None:
            logger.debug(
                f'Ignoring order type "{order_by.type}" on {column_path}'
            )
            return
        qb.add_order_by(column_path, direction)

    def build(
        self,
        tree: QueryTree,
        metadata: EntityMetadata,
        qb: SelectQueryBuilder,
        selections: t.List[str],
        alias: str,
    ) -> None:
        """
        Emit the SQL of one node and recurse into its relations.

        Args:
            tree (QueryTree): The node to emit.
            metadata (EntityMetadata): The entity of the node.
            qb (SelectQueryBuilder): The builder being driven.
            selections (list): Accumulated "alias.column" selections.
            alias (str): The alias of the node entity.
        """
        for child in tree.fields:
            if not child.is_relation():
                _append(
                    selections,
                    f"{alias}{PATH_SEPARATOR}"
                    f"{metadata.column_name(child.name)}",
                )
        # primary keys identify entities when rows are folded
        for column_name in metadata.primary_keys:
            _append(selections, f"{alias}{PATH_SEPARATOR}{column_name}")

        for order_by in tree.ordering:
            self._build_ordering(
                qb,
                f"{alias}{PATH_SEPARATOR}"
                f"{metadata.column_name(order_by.field)}",
                order_by,
            )

        for _filter in tree.where:
            qb.and_where(
                self._build_filter(
                    qb,
                    f"{alias}{PATH_SEPARATOR}"
                    f"{metadata.column_name(_filter.field)}",
                    _filter,
                )
            )

        for child in tree.fields:
            if not child.is_relation():
                continue

            relation: t.Optional[RelationMetadata] = metadata.find_relation(
                child.name
            )
            if relation is None:
                logger.debug(
                    f"Relation {child.name} not found in {metadata.name}, "
                    f"skipping"
                )
                continue

            child_alias: str = f"{alias}{ALIAS_SEPARATOR}{child.name}"

            # join keys on both sides so rows can be folded into entities
            for column_name in relation.join_columns:
                _append(selections, f"{alias}{PATH_SEPARATOR}{column_name}")
            for column_name in relation.inverse_join_columns:
                _append(
                    selections, f"{child_alias}{PATH_SEPARATOR}{column_name}"
                )
            if relation.inverse_relation is not None:
                inverse: RelationMetadata = relation.inverse_relation
                for column_name in inverse.join_columns:
                    _append(
                        selections,
                        f"{child_alias}{PATH_SEPARATOR}{column_name}",
                    )
                for column_name in inverse.inverse_join_columns:
                    _append(
                        selections, f"{alias}{PATH_SEPARATOR}{column_name}"
                    )

            qb.left_join(f"{alias}{PATH_SEPARATOR}{child.name}", child_alias)
            self.build(child, relation.target, qb, selections, child_alias)

    def generate(
        self,
        catalog: Catalog,
        entity: t.Any,
        tree: QueryTree,
        bind: t.Optional[
            t.Union[sa.engine.Engine, sa.engine.Connection]
        ] = None,
    ) -> SelectQueryBuilder:
        """Create a SelectQueryBuilder for the entity and emit the tree."""
        metadata: EntityMetadata = catalog.get(entity)
        alias: str = metadata.table_name
        self._placeholders = set()
        qb: SelectQueryBuilder = SelectQueryBuilder(
            metadata, alias=alias, bind=bind
        )
        qb.select([])
        selections: t.List[str] = []
        self.build(tree, metadata, qb, selections, alias)
        qb.select(selections)
        if self.verbose:
            logger.debug(f"Selections: {selections}")
        return qb
