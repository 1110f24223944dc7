"""SQL record store for secrets."""

from .schema import MIGRATIONS, metadata, migrate, secret_table
from .secretstore import SecretSQLStore
from .session import DBSession, SQLStore, create_engine

__all__ = [
    "DBSession",
    "MIGRATIONS",
    "SQLStore",
    "SecretSQLStore",
    "create_engine",
    "metadata",
    "migrate",
    "secret_table",
]
