"""DynamicRepo Base class."""

import logging
import typing as t

import sqlalchemy as sa
from sqlalchemy.pool import NullPool

from .settings import (
    DB_DATABASE,
    SQLALCHEMY_MAX_OVERFLOW,
    SQLALCHEMY_POOL_PRE_PING,
    SQLALCHEMY_POOL_RECYCLE,
    SQLALCHEMY_POOL_SIZE,
    SQLALCHEMY_POOL_TIMEOUT,
    SQLALCHEMY_USE_NULLPOOL,
)
from .urls import get_database_url
from .utils import get_redacted_url

logger = logging.getLogger(__name__)


def _engine(url: str, echo: bool = False, **kwargs) -> sa.engine.Engine:
    # Use NullPool for testing to avoid connection exhaustion
    if SQLALCHEMY_USE_NULLPOOL:
        return sa.create_engine(url, echo=echo, poolclass=NullPool, **kwargs)

    if sa.engine.make_url(url).get_backend_name() == "sqlite":
        # sqlite uses a singleton or file pool without sizing options
        return sa.create_engine(url, echo=echo, **kwargs)

    return sa.create_engine(
        url,
        echo=echo,
        pool_size=SQLALCHEMY_POOL_SIZE,
        max_overflow=SQLALCHEMY_MAX_OVERFLOW,
        pool_pre_ping=SQLALCHEMY_POOL_PRE_PING,
        pool_recycle=SQLALCHEMY_POOL_RECYCLE,
        pool_timeout=SQLALCHEMY_POOL_TIMEOUT,
        **kwargs,
    )


class Base(object):
    """Owns the engine the repository executes against."""

    def __init__(
        self,
        database: t.Optional[str] = None,
        url: t.Optional[str] = None,
        echo: bool = False,
        **kwargs,
    ) -> None:
        """Initialize the base class constructor."""
        self.database: str = database or DB_DATABASE
        if url is None:
            url = get_database_url(
                self.database,
                user=kwargs.pop("user", None),
                host=kwargs.pop("host", None),
                password=kwargs.pop("password", None),
                port=kwargs.pop("port", None),
                driver=kwargs.pop("driver", None),
            )
        self.__url: str = url
        self.__engine: sa.engine.Engine = _engine(url, echo=echo, **kwargs)
        logger.debug(f"Engine: {get_redacted_url(url)}")

    def __str__(self):
        return f"Base: {get_redacted_url(self.__url)}"

    def __repr__(self):
        return self.__str__()

    @property
    def engine(self) -> sa.engine.Engine:
        """Get the database engine."""
        return self.__engine

    @property
    def url(self) -> str:
        return self.__url

    def connect(self) -> sa.engine.Connection:
        return self.__engine.connect()

    def dispose(self) -> None:
        self.__engine.dispose()
