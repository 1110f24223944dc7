"""
Secret table declaration and its initial migrations.

Column names are shared with existing deployments and must not change:

    secret(id, org_id, entity_uid, secure_json_data, created, updated)
    index IDX_secret_org_id (org_id)
    unique index UQE_secret_org_id_entity_uid (org_id, entity_uid)

The unique index is the guard for one secret per (org_id, entity_uid);
``is_entity_uid_violation`` recognises its error across dialects.
"""
import logging

from sqlalchemy import (
    BigInteger,
    Boolean,
    CheckConstraint,
    Column,
    DateTime,
    Index,
    Integer,
    MetaData,
    String,
    Table,
    Text,
    insert,
    select,
)
from sqlalchemy.dialects import mysql
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncEngine
from sqlalchemy.schema import CreateIndex, CreateTable, DDLElement

from ..models import DEFAULT_ENTITY_UID, ENTITY_UID_MAX_LENGTH, utcnow

logger = logging.getLogger("navigator.secretstore.sqlstore")

metadata = MetaData()

# SQLite only auto-increments INTEGER PRIMARY KEY columns.
_BigIntId = BigInteger().with_variant(Integer(), "sqlite")
# MySQL DATETIME drops fractional seconds unless fsp is set.
_Timestamp = DateTime().with_variant(mysql.DATETIME(fsp=6), "mysql", "mariadb")

secret_table = Table(
    "secret",
    metadata,
    Column("id", _BigIntId, primary_key=True, autoincrement=True),
    Column("org_id", BigInteger, nullable=False),
    Column(
        "entity_uid",
        String(ENTITY_UID_MAX_LENGTH),
        nullable=False,
        default=DEFAULT_ENTITY_UID,
        server_default=DEFAULT_ENTITY_UID,
    ),
    Column("secure_json_data", Text, nullable=True),
    Column("created", _Timestamp, nullable=False),
    Column("updated", _Timestamp, nullable=False),
    # VARCHAR length is not enforced by every engine (SQLite).
    CheckConstraint(
        f"length(entity_uid) <= {ENTITY_UID_MAX_LENGTH}",
        name="CHK_secret_uid_length",
    ),
)

secret_org_id_index = Index("IDX_secret_org_id", secret_table.c.org_id)
secret_org_id_entity_uid_index = Index(
    "UQE_secret_org_id_entity_uid",
    secret_table.c.org_id,
    secret_table.c.entity_uid,
    unique=True,
)

migration_log_table = Table(
    "secretstore_migration_log",
    metadata,
    Column("id", _BigIntId, primary_key=True, autoincrement=True),
    Column("migration_id", String(255), nullable=False, unique=True),
    Column("sql", Text, nullable=False),
    Column("success", Boolean, nullable=False),
    Column("timestamp", DateTime, nullable=False),
)

# Ordered; ids are recorded in the migration log and must never be renamed.
MIGRATIONS: list[tuple[str, DDLElement]] = [
    ("create secrets table v1", CreateTable(secret_table)),
    ("add index secret.org_id", CreateIndex(secret_org_id_index)),
    (
        "add unique index secret.org_id_entity_uid",
        CreateIndex(secret_org_id_entity_uid_index),
    ),
]


def is_entity_uid_violation(err: IntegrityError) -> bool:
    """True when ``err`` is the unique violation on (org_id, entity_uid)."""
    message = str(err.orig).lower()
    return "entity_uid" in message and ("unique" in message or "duplicate" in message)


async def migrate(engine: AsyncEngine) -> list[str]:
    """Apply pending secret-table migrations in order.

    Args:
        engine: Target database.

    Returns:
        Migration ids applied by this call (empty when up to date).
    """
    applied: list[str] = []
    async with engine.begin() as conn:
        await conn.run_sync(migration_log_table.create, checkfirst=True)
        result = await conn.execute(select(migration_log_table.c.migration_id))
        done = {row[0] for row in result}
        for migration_id, ddl in MIGRATIONS:
            if migration_id in done:
                continue
            await conn.execute(ddl)
            await conn.execute(
                insert(migration_log_table).values(
                    migration_id=migration_id,
                    sql=str(ddl.compile(dialect=conn.dialect)).strip(),
                    success=True,
                    timestamp=utcnow(),
                )
            )
            applied.append(migration_id)
            logger.info("Migration applied: %s", migration_id)
    return applied
