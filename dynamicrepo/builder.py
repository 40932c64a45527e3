"""DynamicRepo SelectQueryBuilder.

A fluent clause accumulator over SQLAlchemy Core. Selections and
ordering are addressed as "alias.column", joins as "alias.relation".
"""

from __future__ import annotations

import typing as t
from contextlib import contextmanager
from dataclasses import dataclass

import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

from .catalog import EntityMetadata, RelationMetadata
from .constants import ALIAS_SEPARATOR, ORDER_DIRECTIONS, PATH_SEPARATOR
from .settings import QUERY_LITERAL_BINDS
from .utils import compiled_query


@dataclass
class Join:
    parent_alias: str
    relation: RelationMetadata
    alias: str

    @property
    def secondary_alias(self) -> str:
        return f"{self.alias}{ALIAS_SEPARATOR}{self.relation.secondary.name}"


class SelectQueryBuilder(object):
    """Select query builder scoped to a root entity and alias."""

    def __init__(
        self,
        metadata: EntityMetadata,
        alias: t.Optional[str] = None,
        bind: t.Optional[t.Union[sa.engine.Engine, sa.engine.Connection]] = None,
    ):
        self.metadata: EntityMetadata = metadata
        self.alias: str = alias or metadata.table_name
        self.bind = bind
        self._models: t.Dict[str, sa.sql.Alias] = {
            self.alias: metadata.table.alias(self.alias)
        }
        self._entities: t.Dict[str, EntityMetadata] = {self.alias: metadata}
        self._joins: t.List[Join] = []
        # like an ORM query builder, the root entity is selected by default
        self._selections: t.List[str] = [
            f"{self.alias}{PATH_SEPARATOR}{column.column_name}"
            for column in metadata.columns
        ]
        self._where: t.List[sa.sql.ColumnElement] = []
        self._order_by: t.List[t.Tuple[str, str]] = []
        self._offset: t.Optional[int] = None
        self._limit: t.Optional[int] = None

    def __str__(self):
        return f"SelectQueryBuilder: {self.metadata.name} as {self.alias}"

    def __repr__(self):
        return self.__str__()

    @property
    def selections(self) -> t.List[str]:
        return list(self._selections)

    @property
    def joins(self) -> t.List[Join]:
        return list(self._joins)

    def select(self, selections: t.List[str]) -> "SelectQueryBuilder":
        """Replace the selections, an empty list clears them."""
        self._selections = []
        return self.add_select(selections)

    def add_select(self, selections: t.List[str]) -> "SelectQueryBuilder":
        for selection in selections:
            self.column(selection)
            if selection not in self._selections:
                self._selections.append(selection)
        return self

    def left_join(self, path: str, alias: str) -> "SelectQueryBuilder":
        """Left join the relation at path e.g "order.articles" as alias."""
        parent_alias, _, property_name = path.rpartition(PATH_SEPARATOR)
        if parent_alias not in self._entities:
            raise ValueError(f'Alias "{parent_alias}" is not in this query')
        if alias in self._entities:
            raise ValueError(f'Alias "{alias}" is already in this query')
        relation: t.Optional[RelationMetadata] = self._entities[
            parent_alias
        ].find_relation(property_name)
        if relation is None:
            raise ValueError(
                f'Relation "{property_name}" does not exist in '
                f"{self._entities[parent_alias].name} entity"
            )
        join: Join = Join(
            parent_alias=parent_alias, relation=relation, alias=alias
        )
        if relation.secondary is not None:
            self._models[join.secondary_alias] = relation.secondary.alias(
                join.secondary_alias
            )
        self._models[alias] = relation.target.table.alias(alias)
        self._entities[alias] = relation.target
        self._joins.append(join)
        return self

    def column(self, path: str) -> sa.sql.ColumnElement:
        """Resolve "alias.column" to the aliased column."""
        alias, _, name = path.rpartition(PATH_SEPARATOR)
        if alias not in self._models:
            raise ValueError(f'Alias "{alias}" is not in this query')
        try:
            return self._models[alias].c[name]
        except KeyError:
            raise ValueError(
                f'Column "{name}" does not exist in {alias} ({path})'
            )

    def and_where(
        self, expression: sa.sql.ColumnElement
    ) -> "SelectQueryBuilder":
        self._where.append(expression)
        return self

    def add_order_by(
        self, path: str, direction: str = "ASC"
    ) -> "SelectQueryBuilder":
        direction = direction.upper()
        if direction not in ORDER_DIRECTIONS.values():
            raise ValueError(f'Order direction "{direction}" is invalid')
        self.column(path)
        self._order_by.append((path, direction))
        return self

    def skip(self, offset: t.Optional[int] = None) -> "SelectQueryBuilder":
        self._offset = offset
        return self

    def take(self, limit: t.Optional[int] = None) -> "SelectQueryBuilder":
        self._limit = limit
        return self

    @property
    def is_paginated(self) -> bool:
        return bool(self._offset) or self._limit is not None

    def _columns(self) -> t.List[str]:
        """Selections, or the root primary keys when nothing is selected."""
        return self._selections or [
            f"{self.alias}{PATH_SEPARATOR}{name}"
            for name in self.metadata.primary_keys
        ]

    def _primary_keys(self) -> t.List[sa.sql.ColumnElement]:
        root: sa.sql.Alias = self._models[self.alias]
        return [root.c[name] for name in self.metadata.primary_keys]

    def _ordering(self, path: str, direction: str) -> sa.sql.ColumnElement:
        column = self.column(path)
        return column.desc() if direction == "DESC" else column.asc()

    def _outerjoins(self, from_obj: sa.sql.FromClause) -> sa.sql.FromClause:
        for join in self._joins:
            parent: sa.sql.Alias = self._models[join.parent_alias]
            child: sa.sql.Alias = self._models[join.alias]
            relation: RelationMetadata = join.relation
            if relation.secondary is not None:
                secondary: sa.sql.Alias = self._models[join.secondary_alias]
                from_obj = from_obj.outerjoin(
                    secondary,
                    sa.and_(
                        *[
                            parent.c[left] == secondary.c[right]
                            for left, right in relation.pairs
                        ]
                    ),
                )
                from_obj = from_obj.outerjoin(
                    child,
                    sa.and_(
                        *[
                            secondary.c[left] == child.c[right]
                            for left, right in relation.secondary_pairs
                        ]
                    ),
                )
            else:
                from_obj = from_obj.outerjoin(
                    child,
                    sa.and_(
                        *[
                            parent.c[left] == child.c[right]
                            for left, right in relation.pairs
                        ]
                    ),
                )
        return from_obj

    def _page(self) -> t.Optional[sa.sql.Subquery]:
        """
        Root primary keys of the requested page.

        Offset and limit apply to root entities, not to joined rows,
        so a page never truncates a joined collection.
        """
        primary_keys: t.List[sa.sql.ColumnElement] = self._primary_keys()
        if not self.is_paginated or not primary_keys:
            return None

        statement: sa.sql.Select = (
            sa.select(*primary_keys)
            .select_from(self._outerjoins(self._models[self.alias]))
            .where(*self._where)
            .group_by(*primary_keys)
        )
        for path, direction in self._order_by:
            column = self.column(path)
            if direction == "DESC":
                statement = statement.order_by(sa.func.max(column).desc())
            else:
                statement = statement.order_by(sa.func.min(column).asc())
        statement = statement.order_by(*primary_keys)
        if self._offset:
            statement = statement.offset(self._offset)
        if self._limit is not None:
            statement = statement.limit(self._limit)
        return statement.subquery(f"{self.alias}{ALIAS_SEPARATOR}page")

    @property
    def statement(self) -> sa.sql.Select:
        """The SELECT statement for the current builder state."""
        root: sa.sql.Alias = self._models[self.alias]
        from_obj: sa.sql.FromClause = root

        page: t.Optional[sa.sql.Subquery] = self._page()
        if page is not None:
            from_obj = from_obj.join(
                page,
                sa.and_(
                    *[
                        root.c[name] == page.c[name]
                        for name in self.metadata.primary_keys
                    ]
                ),
            )

        statement: sa.sql.Select = (
            sa.select(
                *[
                    self.column(selection).label(selection)
                    for selection in self._columns()
                ]
            )
            .select_from(self._outerjoins(from_obj))
            .where(*self._where)
        )
        for path, direction in self._order_by:
            statement = statement.order_by(self._ordering(path, direction))

        if page is None and self.is_paginated:
            # no primary key to page on, fall back to row pagination
            if self._offset:
                statement = statement.offset(self._offset)
            if self._limit is not None:
                statement = statement.limit(self._limit)
        return statement

    @property
    def count_statement(self) -> sa.sql.Select:
        """Count of distinct root entities, ignoring offset and limit."""
        keys: t.List[sa.sql.ColumnElement] = self._primary_keys() or [
            self.column(selection)
            for selection in self._selections
            if selection.rpartition(PATH_SEPARATOR)[0] == self.alias
        ]
        subquery: sa.sql.Subquery = (
            sa.select(*keys)
            .select_from(self._outerjoins(self._models[self.alias]))
            .where(*self._where)
            .distinct()
            .subquery()
        )
        return sa.select(sa.func.count()).select_from(subquery)

    def _dialect(self) -> sa.engine.Dialect:
        if self.bind is not None:
            return self.bind.dialect
        return postgresql.dialect()

    def get_sql(self, literal_binds: bool = QUERY_LITERAL_BINDS) -> str:
        return compiled_query(
            self.statement,
            dialect=self._dialect(),
            literal_binds=literal_binds,
        )

    def get_parameters(self) -> dict:
        return dict(self.statement.compile(dialect=self._dialect()).params)

    @contextmanager
    def _connect(self) -> t.Generator[sa.engine.Connection, None, None]:
        if self.bind is None:
            raise RuntimeError(f"{self} is not bound to an engine")
        if isinstance(self.bind, sa.engine.Connection):
            yield self.bind
        else:
            with self.bind.connect() as conn:
                yield conn

    def get_many(self) -> t.List[dict]:
        with self._connect() as conn:
            rows: t.List[sa.engine.Row] = conn.execute(
                self.statement
            ).fetchall()
        return self.hydrate(rows)

    def get_one(self) -> t.Optional[dict]:
        """Fetch at most one root entity."""
        offset, limit = self._offset, self._limit
        self._limit = 1
        try:
            results: t.List[dict] = self.get_many()
        finally:
            self._offset, self._limit = offset, limit
        return results[0] if results else None

    def get_many_and_count(self) -> t.Tuple[t.List[dict], int]:
        with self._connect() as conn:
            rows: t.List[sa.engine.Row] = conn.execute(
                self.statement
            ).fetchall()
            count: int = conn.execute(self.count_statement).scalar()
        return self.hydrate(rows), count

    def _identity(self, alias: str, record: dict) -> tuple:
        primary_keys: t.List[str] = self._entities[alias].primary_keys
        if primary_keys and all(name in record for name in primary_keys):
            return tuple(record[name] for name in primary_keys)
        return tuple(record.values())

    def _entity(self, alias: str, record: dict) -> dict:
        metadata: EntityMetadata = self._entities[alias]
        entity: dict = {
            metadata.property_name(name): value
            for name, value in record.items()
        }
        for join in self._joins:
            if join.parent_alias == alias:
                entity[join.relation.property_name] = (
                    [] if join.relation.uselist else None
                )
        return entity

    def hydrate(self, rows: t.Iterable[t.Sequence]) -> t.List[dict]:
        """
        Fold joined rows into nested entities.

        Each root entity appears once, in row order. Collections are lists,
        scalar relations a dict or None when the left join found nothing.
        """
        layout: t.Dict[str, t.List[t.Tuple[int, str]]] = {}
        for position, selection in enumerate(self._columns()):
            alias, _, name = selection.rpartition(PATH_SEPARATOR)
            layout.setdefault(alias, []).append((position, name))

        roots: t.Dict[tuple, dict] = {}
        seen: t.Dict[t.Tuple[str, int], t.Dict[tuple, dict]] = {}
        for row in rows:
            records: t.Dict[str, dict] = {
                alias: {name: row[position] for position, name in columns}
                for alias, columns in layout.items()
            }
            record: dict = records.get(self.alias, {})
            identity: tuple = self._identity(self.alias, record)
            if identity not in roots:
                roots[identity] = self._entity(self.alias, record)
            current: t.Dict[str, dict] = {self.alias: roots[identity]}

            for join in self._joins:
                parent: t.Optional[dict] = current.get(join.parent_alias)
                record = records.get(join.alias, {})
                if parent is None or all(
                    value is None for value in record.values()
                ):
                    continue
                children: t.Dict[tuple, dict] = seen.setdefault(
                    (join.alias, id(parent)), {}
                )
                identity = self._identity(join.alias, record)
                child: t.Optional[dict] = children.get(identity)
                if child is None:
                    child = children[identity] = self._entity(
                        join.alias, record
                    )
                    if join.relation.uselist:
                        parent[join.relation.property_name].append(child)
                    else:
                        parent[join.relation.property_name] = child
                current[join.alias] = child

        return list(roots.values())
