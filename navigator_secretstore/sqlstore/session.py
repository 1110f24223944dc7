"""
SQL session plumbing — engine creation, sessions and post-commit events.

``with_transactional_db_session`` runs a callback inside a single transaction.
Events queued with ``DBSession.publish_after_commit`` are delivered to the
bus only after that transaction commits; when the callback raises (or is
cancelled) the transaction rolls back and the queued events are dropped.
"""
import logging
from typing import Any, Awaitable, Callable, Optional, TypeVar

from sqlalchemy.ext.asyncio import AsyncConnection, AsyncEngine, create_async_engine
from sqlalchemy.pool import StaticPool

from ..bus import Bus
from ..conf import StoreConfig

logger = logging.getLogger("navigator.secretstore.sqlstore")

T = TypeVar("T")


def create_engine(config: StoreConfig) -> AsyncEngine:
    """Build an async engine from a StoreConfig."""
    kwargs: dict[str, Any] = {"echo": config.echo_sql, "future": True}
    if config.is_sqlite:
        if ":memory:" in config.database_url:
            # every checkout must see the same in-memory database
            kwargs["poolclass"] = StaticPool
            kwargs["connect_args"] = {"check_same_thread": False}
    else:
        kwargs.update({
            "pool_size": config.pool_size,
            "max_overflow": config.max_overflow,
            "pool_pre_ping": True,
            "pool_recycle": 3600,
        })
    return create_async_engine(config.database_url, **kwargs)


class DBSession:
    """A connection plus the events waiting for its transaction to commit."""

    def __init__(self, conn: AsyncConnection):
        self.conn = conn
        self.events: list[Any] = []

    async def execute(self, statement: Any, params: Optional[dict] = None) -> Any:
        return await self.conn.execute(statement, params)

    def publish_after_commit(self, event: Any) -> None:
        """Queue ``event`` for delivery once the transaction commits."""
        self.events.append(event)


class SQLStore:
    """Session management shared by the record stores."""

    def __init__(self, engine: AsyncEngine, bus: Optional[Bus] = None):
        self.engine = engine
        self.bus = bus

    async def with_db_session(self, fn: Callable[[DBSession], Awaitable[T]]) -> T:
        """Run a read-only callback on a pooled connection."""
        async with self.engine.connect() as conn:
            return await fn(DBSession(conn))

    async def with_transactional_db_session(
        self,
        fn: Callable[[DBSession], Awaitable[T]],
    ) -> T:
        """Run ``fn`` in one transaction and release its events after commit."""
        async with self.engine.connect() as conn:
            sess = DBSession(conn)
            async with conn.begin():
                result = await fn(sess)
        await self._publish_events(sess.events)
        return result

    async def _publish_events(self, events: list[Any]) -> None:
        if self.bus is None:
            return
        # the transaction is already committed; listener failures are
        # logged by the bus
        for event in events:
            logger.debug("Publishing %s after commit", type(event).__name__)
            await self.bus.publish(event)

    async def close(self) -> None:
        await self.engine.dispose()
