"""
SecretStore Configuration.

Environment variables:
    SECRETSTORE_DATABASE_URL = SQLAlchemy async URL
    SECRETSTORE_ECHO_SQL = true/false
    SECRETSTORE_CACHE_SIZE = max decrypted records kept in memory (empty = unbounded)
"""
import os
from typing import Optional

from pydantic import BaseModel, Field

DEFAULT_DATABASE_URL = "sqlite+aiosqlite:///:memory:"

_TRUE_VALUES = ("1", "true", "yes", "on")


class StoreConfig(BaseModel):
    """Validated record-store settings."""

    database_url: str = Field(default=DEFAULT_DATABASE_URL)
    echo_sql: bool = False
    pool_size: int = Field(default=5, ge=1)
    max_overflow: int = Field(default=10, ge=0)
    decryption_cache_size: Optional[int] = Field(default=None, ge=1)

    @property
    def is_sqlite(self) -> bool:
        return self.database_url.startswith("sqlite")

    @classmethod
    def from_env(cls) -> "StoreConfig":
        """Create StoreConfig from environment, falling back to defaults."""
        cache_size = os.environ.get("SECRETSTORE_CACHE_SIZE") or None
        return cls(
            database_url=os.environ.get("SECRETSTORE_DATABASE_URL", DEFAULT_DATABASE_URL),
            echo_sql=os.environ.get("SECRETSTORE_ECHO_SQL", "").lower() in _TRUE_VALUES,
            decryption_cache_size=int(cache_size) if cache_size else None,
        )
