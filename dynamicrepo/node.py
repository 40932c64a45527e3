"""DynamicRepo QueryTree class representation."""

from __future__ import annotations

import dataclasses
import enum
import typing as t
from dataclasses import dataclass, field

from .catalog import Catalog, EntityMetadata, RelationMetadata
from .constants import CLAUSES, ORDERING, PATH_SEPARATOR, WHERE, WILDCARD
from .exc import FieldNotFoundError, RelationNotFoundError
from .options import (
    as_find_options,
    as_query_options,
    Filter,
    FindOptions,
    OrderBy,
    QueryOptions,
)


def _split(path: str) -> t.Tuple[t.Optional[str], str]:
    """Split "relation.sub.path" into ("relation", "sub.path")."""
    if PATH_SEPARATOR in path:
        relation, subpath = path.split(PATH_SEPARATOR, 1)
        return relation, subpath
    return None, path


def _append(values: list, value: t.Any) -> None:
    if value not in values:
        values.append(value)


def _can_explore(
    table_name: str, explored: t.List[str], allow_recursively: t.List[str]
) -> bool:
    """
    Cycle breaking rule.

    A relation target already present on the current path is refused unless
    explicitly allowed, in which case it may be entered exactly once more.
    """
    visits: int = explored.count(table_name)
    if visits == 0:
        return True
    return table_name in allow_recursively and visits < 2


def _clause_to_dict(clause: t.Any) -> dict:
    return {
        key: value.value if isinstance(value, enum.Enum) else value
        for key, value in dataclasses.asdict(clause).items()
    }


def build_query_tree(
    catalog: Catalog,
    table: t.Any,
    property_path: str,
    find_options: t.Optional[FindOptions] = None,
    query_options: t.Optional[QueryOptions] = None,
    explored: t.Optional[t.List[str]] = None,
) -> QueryTree:
    """
    Map query options to a QueryTree so that the QueryBuilder
    can build the SQL query dynamically.

    Args:
        catalog (Catalog): The schema catalog.
        table: The entity of this node (class, name or metadata).
        property_path (str): The name of the attribute at the parent entity.
        find_options (FindOptions): Eager and recursion behaviour.
        query_options (QueryOptions): Selections, filters and ordering.
        explored (list): Table names already explored on this path.

    Returns:
        QueryTree: this node once every child node has been built.
    """
    find_options = as_find_options(find_options)
    query_options = as_query_options(query_options)

    metadata: EntityMetadata = catalog.get(table)

    # the ancestry of this path only, sibling branches get their own copy
    explored = list(explored or []) + [metadata.table_name]

    clauses: dict = {}
    fields: t.List[QueryTree] = []

    # nested options for relation nodes, keyed by relation property name
    relations_selections: t.Dict[str, t.List[str]] = {}
    relations_filters: t.Dict[str, t.List[Filter]] = {}
    relations_ordering: t.Dict[str, t.List[OrderBy]] = {}
    # relations selected without a sub selection are selected entirely
    full_relations: t.Set[str] = set()

    table_fields: t.List[str] = metadata.table_fields
    table_selections: t.List[str] = []

    def check_relation(relation: str) -> None:
        if metadata.find_relation(relation) is None:
            raise RelationNotFoundError(
                f'Relation "{relation}" does not exist in '
                f"{metadata.name} entity"
            )

    def check_field(name: str) -> None:
        if name not in table_fields:
            raise FieldNotFoundError(
                f'Field "{name}" does not exist in {metadata.name} entity'
            )

    if query_options.selections:
        for selection in query_options.selections:
            if selection == WILDCARD:
                for table_field in table_fields:
                    _append(table_selections, table_field)
                continue

            relation, subpath = _split(selection)
            if relation is not None:
                check_relation(relation)
                relations_selections.setdefault(relation, [])
                _append(relations_selections[relation], subpath)
            elif metadata.find_relation(selection) is not None:
                relations_selections.setdefault(selection, [])
                full_relations.add(selection)
            else:
                check_field(selection)
                _append(table_selections, selection)
    else:
        # all attributes and the eligible relations
        table_selections = list(table_fields)
        eligible: t.List[RelationMetadata] = metadata.relations
        if find_options.only_eager:
            eligible = [
                candidate for candidate in eligible if candidate.is_eager
            ]
        for candidate in eligible:
            if _can_explore(
                candidate.target.table_name,
                explored,
                find_options.allow_recursively,
            ):
                relations_selections[candidate.property_name] = []

    if query_options.where:
        table_filters: t.List[Filter] = []
        for _filter in query_options.where:
            relation, subpath = _split(_filter.field)
            if relation is not None:
                check_relation(relation)
                relations_filters.setdefault(relation, []).append(
                    _filter.route(subpath)
                )
            else:
                check_field(_filter.field)
                _append(table_selections, _filter.field)
                table_filters.append(_filter)
        if table_filters:
            clauses[WHERE] = table_filters

    if query_options.ordering:
        table_ordering: t.List[OrderBy] = []
        for order_by in query_options.ordering:
            relation, subpath = _split(order_by.field)
            if relation is not None:
                check_relation(relation)
                relations_ordering.setdefault(relation, []).append(
                    order_by.route(subpath)
                )
            else:
                check_field(order_by.field)
                _append(table_selections, order_by.field)
                table_ordering.append(order_by)
        if table_ordering:
            clauses[ORDERING] = table_ordering

    for table_selection in table_selections:
        fields.append(QueryTree(table_selection))

    names: t.List[str] = []
    for relation in (
        list(relations_selections)
        + list(relations_filters)
        + list(relations_ordering)
    ):
        _append(names, relation)

    for name in names:
        selections: t.Optional[t.List[str]] = None
        if name not in full_relations:
            selections = relations_selections.get(name) or None
        fields.append(
            build_query_tree(
                catalog,
                metadata.find_relation(name).target,
                name,
                find_options=find_options,
                query_options=QueryOptions(
                    selections=selections,
                    where=relations_filters.get(name),
                    ordering=relations_ordering.get(name),
                ),
                explored=explored,
            )
        )

    return QueryTree(property_path, clauses=clauses, fields=fields)


@dataclass
class QueryTree:
    """
    A query represented as a tree, each node with its clauses.

    Each node is related to its fields (children). A node without
    children is a simple attribute, a node with children is a relation.
    """

    name: str
    clauses: dict = field(default_factory=dict)
    fields: t.List[QueryTree] = field(default_factory=list)

    def __str__(self):
        return f"QueryTree: {self.name}"

    def __repr__(self):
        return self.__str__()

    @classmethod
    def create_tree(
        cls,
        catalog: Catalog,
        entity: t.Any,
        query_options: t.Optional[QueryOptions] = None,
        find_options: t.Optional[FindOptions] = None,
    ) -> QueryTree:
        """
        Create the tree.

        Args:
            catalog (Catalog): The schema catalog.
            entity: Entity to find e.g Order, "Order" or "order".
            query_options (QueryOptions): Selections, filters, ordering.
            find_options (FindOptions): Eager and recursion behaviour.

        Returns:
            QueryTree: The root node, named after the entity identifier.
        """
        metadata: EntityMetadata = catalog.get(entity)
        name: str = entity if isinstance(entity, str) else metadata.table_name
        return build_query_tree(
            catalog,
            metadata,
            name,
            find_options=find_options,
            query_options=query_options,
        )

    @property
    def where(self) -> t.List[Filter]:
        return self.clauses.get(WHERE, [])

    @property
    def ordering(self) -> t.List[OrderBy]:
        return self.clauses.get(ORDERING, [])

    def set_fields(self, fields: t.List[QueryTree]) -> None:
        self.fields = fields

    def set_clauses(self, clauses: dict) -> None:
        self.clauses = clauses

    def get_field(self, name: str) -> t.Optional[QueryTree]:
        for child in self.fields:
            if child.name == name:
                return child
        return None

    def is_relation(self) -> bool:
        return bool(self.fields)

    def to_dict(self) -> dict:
        """Project the entire tree into a printable dict."""
        obj: dict = {}
        if self.clauses:
            obj[CLAUSES] = {
                key: [_clause_to_dict(clause) for clause in values]
                for key, values in self.clauses.items()
            }
        for child in self.fields:
            obj[child.name] = child.to_dict()
        return obj

    def traverse_breadth_first(self) -> t.Generator:
        stack: t.List[QueryTree] = [self]
        while stack:
            node: QueryTree = stack.pop(0)
            yield node
            for child in node.fields:
                stack.append(child)

    def traverse_post_order(self) -> t.Generator:
        for child in self.fields:
            yield from child.traverse_post_order()
        yield self
