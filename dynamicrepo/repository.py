"""DynamicRepo DynamicRepository.

Read only repository whose selections, filters and ordering are
described at runtime by QueryOptions.

e.g
    repository = DynamicRepository(Catalog.from_base(Base), bind=engine)
    orders = repository.find(
        "order",
        query_options=QueryOptions(
            selections=["*", "articles.*"],
            where=[Filter("articles.price", ">", "10")],
            ordering=[OrderBy("id", "desc")],
        ),
        limit=10,
    )
"""

import json
import logging
import typing as t

import sqlalchemy as sa

from . import settings
from .base import Base
from .builder import SelectQueryBuilder
from .catalog import Catalog
from .node import QueryTree
from .options import FindOptions, QueryOptions
from .querybuilder import QueryBuilder
from .utils import HIGHLIGHT_BEGIN, HIGHLIGHT_END

logger = logging.getLogger(__name__)

Sink = t.Callable[[str, t.Any], None]


def log_sink(event: str, payload: t.Any) -> None:
    """Default diagnostic sink writing trace events to the module logger."""
    if isinstance(payload, dict) and "sql" in payload:
        text: str = payload["sql"]
        if payload.get("parameters"):
            text = f"{text}\n{payload['parameters']}"
    else:
        text = json.dumps(payload, indent=2, sort_keys=False, default=str)
    logger.debug(f"{HIGHLIGHT_BEGIN}{event}{HIGHLIGHT_END}\n{text}")


class DynamicRepository(object):
    """
    Repository facade.

    Each call builds a QueryTree from the options, emits it to a
    SelectQueryBuilder and executes it. Results are nested dicts keyed
    by property name.
    """

    def __init__(
        self,
        catalog: Catalog,
        bind: t.Optional[
            t.Union[sa.engine.Engine, sa.engine.Connection]
        ] = None,
        debug: bool = settings.DEBUG,
        sink: t.Optional[Sink] = None,
    ):
        self.catalog: Catalog = catalog
        self.__bind = bind
        self.debug: bool = debug
        self.sink: Sink = sink or log_sink
        self.query_builder: QueryBuilder = QueryBuilder()

    @property
    def bind(self) -> t.Union[sa.engine.Engine, sa.engine.Connection]:
        """The engine, created from settings on first use if not given."""
        if self.__bind is None:
            self.__bind = Base().engine
        return self.__bind

    def _trace(self, event: str, payload: t.Callable[[], t.Any]) -> None:
        if self.debug:
            self.sink(event, payload())

    def create_query_builder(
        self,
        entity: t.Any,
        query_options: t.Optional[QueryOptions] = None,
        find_options: t.Optional[FindOptions] = None,
        operation: str = "create_query_builder",
    ) -> SelectQueryBuilder:
        """
        Build the SelectQueryBuilder of an entity for the given options.

        Args:
            entity: Entity to query e.g Order, "Order" or "order".
            query_options (QueryOptions): Selections, filters, ordering.
            find_options (FindOptions): Eager and recursion behaviour.

        Returns:
            SelectQueryBuilder: ready to paginate and execute.

        Raises:
            InvalidArgumentError: an unknown field, relation or operator.
            EntityNotFoundError: the entity is not in the catalog.
        """
        tree: QueryTree = QueryTree.create_tree(
            self.catalog,
            entity,
            query_options=query_options,
            find_options=find_options,
        )
        self._trace(f"{operation} query tree", tree.to_dict)
        return self.query_builder.generate(
            self.catalog, entity, tree, bind=self.bind
        )

    def _trace_query(self, operation: str, qb: SelectQueryBuilder) -> None:
        self._trace(
            f"{operation} SQL query",
            lambda: {"sql": qb.get_sql(), "parameters": qb.get_parameters()},
        )

    def find_one(
        self,
        entity: t.Any,
        query_options: t.Optional[QueryOptions] = None,
        find_options: t.Optional[FindOptions] = None,
    ) -> t.Optional[dict]:
        """The first matching entity or None."""
        qb: SelectQueryBuilder = self.create_query_builder(
            entity,
            query_options=query_options,
            find_options=find_options,
            operation="find_one",
        )
        self._trace_query("find_one", qb)
        result: t.Optional[dict] = qb.get_one()
        self._trace("find_one results", lambda: result)
        return result

    def find(
        self,
        entity: t.Any,
        query_options: t.Optional[QueryOptions] = None,
        find_options: t.Optional[FindOptions] = None,
        offset: t.Optional[int] = None,
        limit: t.Optional[int] = None,
    ) -> t.List[dict]:
        """Every matching entity, optionally paginated."""
        qb: SelectQueryBuilder = self.create_query_builder(
            entity,
            query_options=query_options,
            find_options=find_options,
            operation="find",
        )
        qb.skip(offset).take(limit)
        self._trace_query("find", qb)
        results: t.List[dict] = qb.get_many()
        self._trace("find results", lambda: results[:1])
        return results

    def find_and_count(
        self,
        entity: t.Any,
        query_options: t.Optional[QueryOptions] = None,
        find_options: t.Optional[FindOptions] = None,
        offset: t.Optional[int] = None,
        limit: t.Optional[int] = None,
    ) -> t.Tuple[t.List[dict], int]:
        """
        A page of matching entities and the total number of matches.

        Without pagination the results are counted in memory.
        """
        if not offset and not limit:
            results: t.List[dict] = self.find(
                entity,
                query_options=query_options,
                find_options=find_options,
            )
            return results, len(results)

        qb: SelectQueryBuilder = self.create_query_builder(
            entity,
            query_options=query_options,
            find_options=find_options,
            operation="find_and_count",
        )
        qb.skip(offset).take(limit)
        self._trace_query("find_and_count", qb)
        results, count = qb.get_many_and_count()
        self._trace("find_and_count results", lambda: [results[:1], count])
        return results, count
