"""DynamicRepo utils."""

from __future__ import annotations

import logging
import typing as t
from urllib.parse import ParseResult, urlparse

import sqlalchemy as sa
import sqlparse
from sqlalchemy.dialects import postgresql

from . import settings

logger = logging.getLogger(__name__)

HIGHLIGHT_BEGIN = "\033[4m"
HIGHLIGHT_END = "\033[0m:"


def get_redacted_url(url: str) -> str:
    """
    Returns a redacted version of the input URL, with the password replaced by asterisks.
    """
    parsed_url: ParseResult = urlparse(url)
    if not parsed_url.password:
        return url
    username = parsed_url.username or ""
    hostname = parsed_url.hostname or ""
    port = f":{parsed_url.port}" if parsed_url.port else ""
    redacted_password = "*" * len(parsed_url.password)
    netloc: str = f"{username}:{redacted_password}@{hostname}{port}"
    parsed_url = parsed_url._replace(netloc=netloc)
    return parsed_url.geturl()


def compiled_query(
    query: sa.sql.ClauseElement,
    label: t.Optional[str] = None,
    dialect: t.Optional[sa.engine.Dialect] = None,
    literal_binds: bool = settings.QUERY_LITERAL_BINDS,
) -> str:
    """
    Compile an SQLAlchemy query into readable SQL.

    The query is logged when a label is given.
    """
    query = str(
        query.compile(
            dialect=dialect or postgresql.dialect(),
            compile_kwargs={"literal_binds": literal_binds},
        )
    )
    query = sqlparse.format(query, reindent=True, keyword_case="upper")
    if label:
        logger.debug(f"{HIGHLIGHT_BEGIN}{label}{HIGHLIGHT_END}\n{query}")
    return query
