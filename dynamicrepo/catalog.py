"""DynamicRepo Catalog.

Typed entity, column and relation metadata resolved once from
SQLAlchemy declarative mappings.
"""

from __future__ import annotations

import logging
import typing as t
from dataclasses import dataclass, field

import sqlalchemy as sa
from sqlalchemy import orm

from .constants import EAGER_STRATEGIES, LAZY_SYNONYMS
from .exc import CatalogError, EntityNotFoundError

logger = logging.getLogger(__name__)


@dataclass
class ColumnMetadata:
    """
    A mapped column of an entity.

    Attributes:
        property_name (str): The attribute name on the mapped class.
        column_name (str): The physical column name.
        is_primary (bool): True if the column is part of the primary key.
        is_foreign_key (bool): True if the column references another table.
    """

    property_name: str
    column_name: str
    is_primary: bool = False
    is_foreign_key: bool = False


@dataclass(eq=False)
class RelationMetadata:
    """
    A relation between two entities.

    pairs hold the physical join condition as (owner column, target column).
    For many to many relations pairs join the owner to the secondary
    (association) table and secondary_pairs join the secondary table to the
    target, both as (left column, right column).
    """

    property_name: str
    target: EntityMetadata
    is_eager: bool = False
    uselist: bool = False
    pairs: t.List[t.Tuple[str, str]] = field(default_factory=list)
    secondary: t.Optional[sa.Table] = None
    secondary_pairs: t.List[t.Tuple[str, str]] = field(default_factory=list)
    inverse_relation: t.Optional[RelationMetadata] = None

    def __str__(self):
        return f"RelationMetadata: {self.property_name} -> {self.target.name}"

    def __repr__(self):
        return self.__str__()

    @property
    def join_columns(self) -> t.List[str]:
        """Join columns on the owner side."""
        return [left for left, _ in self.pairs]

    @property
    def inverse_join_columns(self) -> t.List[str]:
        """Join columns on the target side."""
        if self.secondary is not None:
            return [right for _, right in self.secondary_pairs]
        return [right for _, right in self.pairs]


@dataclass(eq=False)
class EntityMetadata:
    name: str
    table: sa.Table
    columns: t.List[ColumnMetadata] = field(default_factory=list)
    relations: t.List[RelationMetadata] = field(default_factory=list)
    model: t.Optional[type] = None

    def __str__(self):
        return f"EntityMetadata: {self.name} ({self.table_name})"

    def __repr__(self):
        return self.__str__()

    @property
    def table_name(self) -> str:
        """The entity identifier used to detect cyclical relations."""
        return self.table.name

    @property
    def primary_keys(self) -> t.List[str]:
        return [
            column.column_name for column in self.columns if column.is_primary
        ]

    @property
    def relation_names(self) -> t.List[str]:
        return [relation.property_name for relation in self.relations]

    @property
    def table_fields(self) -> t.List[str]:
        """Property names of every column that is not a relation."""
        relation_names: t.Set[str] = set(self.relation_names)
        return [
            column.property_name
            for column in self.columns
            if column.property_name not in relation_names
        ]

    def find_relation(self, name: str) -> t.Optional[RelationMetadata]:
        for relation in self.relations:
            if relation.property_name == name:
                return relation
        return None

    def find_column(self, name: str) -> t.Optional[ColumnMetadata]:
        for column in self.columns:
            if column.property_name == name:
                return column
        return None

    def column_name(self, name: str) -> str:
        """Physical column name for a property name."""
        column: t.Optional[ColumnMetadata] = self.find_column(name)
        return column.column_name if column else name

    def property_name(self, name: str) -> str:
        """Property name for a physical column name."""
        for column in self.columns:
            if column.column_name == name:
                return column.property_name
        return name


def _entity(mapper: orm.Mapper) -> EntityMetadata:
    columns: t.List[ColumnMetadata] = []
    for column_property in mapper.column_attrs:
        column = column_property.columns[0]
        if not isinstance(column, sa.Column):
            # column_property() expressions are not selectable by name
            continue
        if column.table is not mapper.local_table:
            continue
        columns.append(
            ColumnMetadata(
                property_name=column_property.key,
                column_name=column.name,
                is_primary=column.primary_key,
                is_foreign_key=bool(column.foreign_keys),
            )
        )
    return EntityMetadata(
        name=mapper.class_.__name__,
        table=mapper.local_table,
        columns=columns,
        model=mapper.class_,
    )


def _lazy_strategy(lazy: t.Any) -> str:
    """Loading strategy name of a relationship e.g lazy=False is joined."""
    if isinstance(lazy, bool) or lazy is None:
        return LAZY_SYNONYMS[lazy]
    return str(lazy)


def _reverse_name(
    relationship: orm.RelationshipProperty,
) -> t.Optional[str]:
    """Name of the relationship declared as the other side, if any."""
    if relationship.back_populates:
        return relationship.back_populates
    backref: t.Any = relationship.backref
    if isinstance(backref, tuple):
        return backref[0]
    return backref or None


def _relation(
    relationship: orm.RelationshipProperty, target: EntityMetadata
) -> RelationMetadata:
    relation: RelationMetadata = RelationMetadata(
        property_name=relationship.key,
        target=target,
        is_eager=_lazy_strategy(relationship.lazy) in EAGER_STRATEGIES,
        uselist=bool(relationship.uselist),
    )
    if relationship.secondary is not None:
        relation.secondary = relationship.secondary
        relation.pairs = [
            (left.name, right.name)
            for left, right in relationship.synchronize_pairs
        ]
        relation.secondary_pairs = [
            (right.name, left.name)
            for left, right in relationship.secondary_synchronize_pairs
        ]
    else:
        relation.pairs = [
            (local.name, remote.name)
            for local, remote in relationship.local_remote_pairs
        ]
    return relation


class Catalog(object):
    """
    Registry of entity metadata.

    Entities can be looked up by mapped class, class name or table name.
    """

    def __init__(
        self, entities: t.Optional[t.Iterable[EntityMetadata]] = None
    ):
        self.__entities: t.Dict[t.Any, EntityMetadata] = {}
        self.__metadata: t.List[EntityMetadata] = []
        for entity in entities or []:
            self.add(entity)

    def __iter__(self) -> t.Iterator[EntityMetadata]:
        return iter(self.__metadata)

    def __len__(self) -> int:
        return len(self.__metadata)

    def __contains__(self, entity: t.Any) -> bool:
        try:
            self.get(entity)
        except EntityNotFoundError:
            return False
        return True

    def add(self, entity: EntityMetadata) -> None:
        self.__metadata.append(entity)
        self.__entities[entity.name] = entity
        self.__entities[entity.table_name] = entity
        if entity.model is not None:
            self.__entities[entity.model] = entity

    def get(self, entity: t.Any) -> EntityMetadata:
        """Resolve an entity class, class name or table name."""
        if isinstance(entity, EntityMetadata):
            return entity
        try:
            return self.__entities[entity]
        except (KeyError, TypeError):
            raise EntityNotFoundError(
                f'Entity "{getattr(entity, "__name__", entity)}" '
                f"not found in catalog"
            )

    @classmethod
    def from_base(cls, base: t.Any) -> Catalog:
        """Build a catalog from every mapper of a declarative base."""
        registry = getattr(base, "registry", base)
        return cls.from_mappers(registry.mappers)

    @classmethod
    def from_models(cls, *models: type) -> Catalog:
        """
        Build a catalog from mapped classes.

        Entities reachable through relations are registered too.
        """
        mappers: t.List[orm.Mapper] = []
        for model in models:
            try:
                mappers.append(sa.inspect(model))
            except sa.exc.NoInspectionAvailable:
                raise CatalogError(f'"{model}" is not a mapped class')
        return cls.from_mappers(mappers)

    @classmethod
    def from_mappers(cls, mappers: t.Iterable[orm.Mapper]) -> Catalog:
        orm.configure_mappers()

        stack: t.List[orm.Mapper] = list(mappers)
        entities: t.Dict[orm.Mapper, EntityMetadata] = {}
        while stack:
            mapper: orm.Mapper = stack.pop(0)
            if mapper in entities:
                continue
            entities[mapper] = _entity(mapper)
            for relationship in mapper.relationships:
                stack.append(relationship.mapper)

        relations: t.Dict[
            orm.RelationshipProperty, RelationMetadata
        ] = {}
        for mapper, entity in entities.items():
            for relationship in mapper.relationships:
                relation: RelationMetadata = _relation(
                    relationship, entities[relationship.mapper]
                )
                entity.relations.append(relation)
                relations[relationship] = relation

        for relationship, relation in relations.items():
            name: t.Optional[str] = _reverse_name(relationship)
            targets = relationship.mapper.relationships
            if name is None or name not in targets:
                continue
            reverse: orm.RelationshipProperty = targets[name]
            if reverse in relations:
                relation.inverse_relation = relations[reverse]

        logger.debug(
            f"Catalog: {[entity.name for entity in entities.values()]}"
        )
        return cls(entities.values())
