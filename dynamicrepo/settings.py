"""DynamicRepo settings

This module contains the settings for DynamicRepo.
It reads environment variables from a .env file and sets default values for each variable.
The variables are used to configure the database connection, the SQLAlchemy pool and diagnostics.
"""

import logging
import logging.config
import os
import typing as t

from environs import Env

logger = logging.getLogger(__name__)

env = Env()
env.read_env(path=os.path.join(os.getcwd(), ".env"))

# DynamicRepo:
# trace the query tree, the SQL query and the first result of every call
DEBUG = env.bool("DYNAMIC_REPOSITORY_DEBUG", default=False)
# render bound parameters inline when printing diagnostic SQL
QUERY_LITERAL_BINDS = env.bool("QUERY_LITERAL_BINDS", default=False)

# SQLAlchemy Settings:
# Use NullPool (no connection pooling) - useful for testing or when you want to close connections immediately
SQLALCHEMY_USE_NULLPOOL = env.bool("SQLALCHEMY_USE_NULLPOOL", default=False)
# This is the number of connections that will be persistently maintained in the pool.
SQLALCHEMY_POOL_SIZE = env.int("SQLALCHEMY_POOL_SIZE", default=5)
# This is the number of connections that can be opened beyond the pool_size when all connections in the pool are in use.
SQLALCHEMY_MAX_OVERFLOW = env.int("SQLALCHEMY_MAX_OVERFLOW", default=10)
# When set to True, a "ping" will be performed on connections before they are checked out of the pool to ensure they are still live.
SQLALCHEMY_POOL_PRE_PING = env.bool("SQLALCHEMY_POOL_PRE_PING", default=False)
# This means connections are not recycled based on a timeout. If set to a positive integer, connections will be recycled after that many seconds.
SQLALCHEMY_POOL_RECYCLE = env.int("SQLALCHEMY_POOL_RECYCLE", default=-1)
# This is the number of seconds to wait for a connection to become available from the pool before raising a TimeoutError.
SQLALCHEMY_POOL_TIMEOUT = env.int("SQLALCHEMY_POOL_TIMEOUT", default=30)

# Database:
# full database url including user, password, host, port and dbname
DATABASE_URL = env.str("DATABASE_URL", default=None)
# database driver e.g psycopg2, pymysql or pysqlite
DB_DRIVER = env.str("DB_DRIVER", default="psycopg2")
DB_HOST = env.str("DB_HOST", default="localhost")
DB_PASSWORD = env.str("DB_PASSWORD", default=None)
DB_PORT = env.int("DB_PORT", default=5432)
DB_USER = env.str("DB_USER", default=None)
DB_DATABASE = env.str("DB_DATABASE", default="postgres")
if DATABASE_URL:
    # If DATABASE_URL is set, we don't need to use the other DB_* variables
    DB_HOST = None
    DB_PASSWORD = None
    DB_PORT = None


# Logging:
def _get_logging_config(silent_loggers: t.Optional[t.List[str]] = None):
    """Return the logging configuration based on environment variables."""
    config: dict = {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "simple": {
                "format": "%(asctime)s.%(msecs)03d:%(levelname)s:%(name)s: %(message)s",  # noqa E501
                "datefmt": "%Y-%m-%d %H:%M:%S",
            },
        },
        "handlers": {
            "console": {
                "class": "logging.StreamHandler",
                "level": env.str(
                    "CONSOLE_LOGGING_HANDLER_MIN_LEVEL",
                    default="WARNING",
                ),
                "formatter": "simple",
            },
        },
        "loggers": {
            "dynamicrepo": {
                "handlers": env.list("LOG_HANDLERS", default=["console"]),
                "level": env.str("GENERAL_LOGGING_LEVEL", default="DEBUG"),
                "propagate": True,
            },
        },
    }
    if silent_loggers:
        for silent_logger in silent_loggers:
            config["loggers"][silent_logger] = {
                "level": "WARNING",
            }

    for logger_config in env.list("CUSTOM_LOGGING", default=[]):
        name, level = logger_config.split("=")
        config["loggers"][name] = {
            "level": level,
        }
    return config


LOGGING = _get_logging_config(
    silent_loggers=[
        "sqlalchemy.engine",
        "sqlalchemy.pool",
    ]
)

logging.config.dictConfig(LOGGING)
