"""DynamicRepo urls."""

import logging
import typing as t
from urllib.parse import ParseResult, quote, quote_plus, urlparse, urlunparse

from .settings import (
    DATABASE_URL,
    DB_DRIVER,
    DB_HOST,
    DB_PASSWORD,
    DB_PORT,
    DB_USER,
)

logger = logging.getLogger(__name__)

DIALECT = {
    "psycopg2": "postgresql",
    "psycopg": "postgresql",
    "asyncpg": "postgresql",
    "pymysql": "mysql",
    "mysqldb": "mysql",
    "pysqlite": "sqlite",
}


def get_database_url(
    database: str,
    user: t.Optional[str] = None,
    host: t.Optional[str] = None,
    password: t.Optional[str] = None,
    port: t.Optional[int] = None,
    driver: t.Optional[str] = None,
) -> str:
    """
    Return the URL to connect to the database.

    Args:
        database (str): The name of the database to connect to.
        user (str, optional): The username to use for authentication. Defaults to None.
        host (str, optional): The hostname of the database server. Defaults to None.
        password (str, optional): The password to use for authentication. Defaults to None.
        port (int, optional): The port number to use for the database connection. Defaults to None.
        driver (str, optional): The name of the driver to use for the connection. Defaults to None.

    Returns:
        str: The URL to connect to the database.
    """
    user = user or DB_USER
    host = host or DB_HOST
    password = password or DB_PASSWORD
    port = port or DB_PORT
    driver = driver or DB_DRIVER
    # override the default URL if DATABASE_URL is set
    if DATABASE_URL:
        parsed_url: ParseResult = urlparse(DATABASE_URL.strip())
        # keep existing scheme/netloc/query/fragment; swap just the path
        new_path: str = "/" + quote(database)
        return urlunparse(
            (
                parsed_url.scheme,
                parsed_url.netloc,
                new_path,
                parsed_url.params,
                parsed_url.query,
                parsed_url.fragment,
            )
        )

    protocol: t.Optional[str] = DIALECT.get(driver)
    if not protocol:
        raise ValueError(
            f"Unsupported DB_DRIVER={driver!r}; "
            f"expected one of {sorted(DIALECT)}."
        )

    if protocol == "sqlite":
        return f"{protocol}+{driver}:///{database}"

    auth: str = f"{user}:{quote_plus(password)}" if password else user or ""
    if not password:
        logger.debug("Connecting to database without password.")

    return f"{protocol}+{driver}://{auth}@{host}:{port}/{database}"
