"""
Secret Record Store — transactional CRUD over the ``secret`` table.

A lookup or delete needs ``org_id`` plus ``entity_uid`` (preferred) or ``id``;
when both are given reads and deletes select by ``entity_uid`` while updates
select by ``id``. Mutations queue a lifecycle event that is delivered only
after the transaction commits.

Security Note:
    ``secure_json_data`` only ever receives ciphertext. Never log its values.
"""
import base64
import logging
from typing import Any, Optional

import orjson
from sqlalchemy import delete, insert, select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from ..events import SecretCreated, SecretDeleted, SecretUpdated
from ..exceptions import SecretEntityUidExists, SecretIdentifierNotSet, SecretNotFound
from ..models import (
    AddSecretCommand,
    DeleteSecretCommand,
    GetSecretQuery,
    GetSecretsQuery,
    Secret,
    UpdateSecretCommand,
    utcnow,
)
from .schema import is_entity_uid_violation, secret_table
from .session import DBSession, SQLStore

logger = logging.getLogger("navigator.secretstore.sqlstore")


# ---------------------------------------------------------------------------
# Column codec
# ---------------------------------------------------------------------------

def encode_secure_json_data(data: dict[str, bytes]) -> str:
    """Serialize ciphertext blobs as a JSON object of base64 strings."""
    return orjson.dumps(
        {key: base64.b64encode(blob).decode("ascii") for key, blob in data.items()}
    ).decode("utf-8")


def decode_secure_json_data(raw: Optional[str]) -> dict[str, bytes]:
    if not raw:
        return {}
    return {key: base64.b64decode(value) for key, value in orjson.loads(raw).items()}


def _row_to_secret(row: Any) -> Secret:
    return Secret(
        id=row["id"],
        org_id=row["org_id"],
        entity_uid=row["entity_uid"],
        secure_json_data=decode_secure_json_data(row["secure_json_data"]),
        created=row["created"],
        updated=row["updated"],
    )


def _has_identifier(org_id: int, secret_id: int, entity_uid: str) -> bool:
    return org_id > 0 and (secret_id != 0 or bool(entity_uid))


class SecretSQLStore(SQLStore):
    """Record store for secrets."""

    async def _fetch(
        self,
        sess: DBSession,
        org_id: int,
        *,
        secret_id: int = 0,
        entity_uid: str = "",
    ) -> Optional[Secret]:
        stmt = select(secret_table).where(secret_table.c.org_id == org_id)
        if entity_uid:
            stmt = stmt.where(secret_table.c.entity_uid == entity_uid)
        else:
            stmt = stmt.where(secret_table.c.id == secret_id)
        result = await sess.execute(stmt)
        row = result.mappings().first()
        return _row_to_secret(row) if row is not None else None

    async def get_secret(self, query: GetSecretQuery) -> Secret:
        """Get a secret by org_id plus entity_uid (preferred) or id.

        Raises:
            SecretIdentifierNotSet: If the identifier rule is not satisfied.
            SecretNotFound: If no row matches.
        """
        if not _has_identifier(query.org_id, query.id, query.entity_uid):
            raise SecretIdentifierNotSet()

        async def _get(sess: DBSession) -> Secret:
            try:
                secret = await self._fetch(
                    sess, query.org_id, secret_id=query.id, entity_uid=query.entity_uid
                )
            except SQLAlchemyError as err:
                logger.error(
                    "Failed getting secret: err=%s uid=%s id=%s org_id=%s",
                    err, query.entity_uid, query.id, query.org_id,
                )
                raise
            if secret is None:
                raise SecretNotFound()
            return secret

        return await self.with_db_session(_get)

    async def get_secrets(self, query: GetSecretsQuery) -> list[Secret]:
        """List the secrets of an org by ascending id.

        ``secret_limit <= 0`` returns every row.
        """
        async def _list(sess: DBSession) -> list[Secret]:
            stmt = (
                select(secret_table)
                .where(secret_table.c.org_id == query.org_id)
                .order_by(secret_table.c.id.asc())
            )
            if query.secret_limit > 0:
                stmt = stmt.limit(query.secret_limit)
            try:
                result = await sess.execute(stmt)
            except SQLAlchemyError as err:
                logger.error(
                    "Failed listing secrets: err=%s org_id=%s", err, query.org_id
                )
                raise
            return [_row_to_secret(row) for row in result.mappings()]

        return await self.with_db_session(_list)

    async def add_secret(
        self,
        cmd: AddSecretCommand,
        encrypted_secure_json_data: dict[str, bytes],
    ) -> Secret:
        """Insert a new secret holding already encrypted data.

        Raises:
            SecretEntityUidExists: If (org_id, entity_uid) is already taken,
                detected either before the insert or by the unique index.
        """
        async def _add(sess: DBSession) -> Secret:
            existing = await self._fetch(sess, cmd.org_id, entity_uid=cmd.entity_uid)
            if existing is not None:
                raise SecretEntityUidExists()

            now = utcnow()
            try:
                result = await sess.execute(
                    insert(secret_table).values(
                        org_id=cmd.org_id,
                        entity_uid=cmd.entity_uid,
                        secure_json_data=encode_secure_json_data(
                            encrypted_secure_json_data
                        ),
                        created=now,
                        updated=now,
                    )
                )
            except IntegrityError as err:
                if is_entity_uid_violation(err):
                    raise SecretEntityUidExists() from err
                logger.error(
                    "Failed adding secret: err=%s uid=%s org_id=%s",
                    err, cmd.entity_uid, cmd.org_id,
                )
                raise
            except SQLAlchemyError as err:
                logger.error(
                    "Failed adding secret: err=%s uid=%s org_id=%s",
                    err, cmd.entity_uid, cmd.org_id,
                )
                raise

            secret = Secret(
                id=result.inserted_primary_key[0],
                org_id=cmd.org_id,
                entity_uid=cmd.entity_uid,
                secure_json_data=encrypted_secure_json_data,
                created=now,
                updated=now,
            )
            sess.publish_after_commit(SecretCreated(
                id=secret.id,
                entity_uid=secret.entity_uid,
                org_id=secret.org_id,
            ))
            return secret

        return await self.with_transactional_db_session(_add)

    async def update_secret(
        self,
        cmd: UpdateSecretCommand,
        encrypted_secure_json_data: dict[str, bytes],
    ) -> Secret:
        """Rewrite a secret's data and ``updated``; ``created`` is kept.

        The row is selected by id when set, else by (org_id, entity_uid). When
        selecting by id a non-empty entity_uid renames the secret.

        Raises:
            SecretIdentifierNotSet: If org_id or both id and entity_uid are missing.
            SecretNotFound: If no row was affected.
            SecretEntityUidExists: If a rename clashes with another secret.
        """
        if not _has_identifier(cmd.org_id, cmd.id, cmd.entity_uid):
            raise SecretIdentifierNotSet()

        async def _update(sess: DBSession) -> Secret:
            values: dict[str, Any] = {
                "secure_json_data": encode_secure_json_data(encrypted_secure_json_data),
                "updated": utcnow(),
            }
            stmt = update(secret_table).where(secret_table.c.org_id == cmd.org_id)
            if cmd.id:
                stmt = stmt.where(secret_table.c.id == cmd.id)
                if cmd.entity_uid:
                    values["entity_uid"] = cmd.entity_uid
            else:
                stmt = stmt.where(secret_table.c.entity_uid == cmd.entity_uid)
            try:
                result = await sess.execute(stmt.values(**values))
            except IntegrityError as err:
                if is_entity_uid_violation(err):
                    raise SecretEntityUidExists() from err
                logger.error(
                    "Failed updating secret: err=%s uid=%s id=%s org_id=%s",
                    err, cmd.entity_uid, cmd.id, cmd.org_id,
                )
                raise
            except SQLAlchemyError as err:
                logger.error(
                    "Failed updating secret: err=%s uid=%s id=%s org_id=%s",
                    err, cmd.entity_uid, cmd.id, cmd.org_id,
                )
                raise
            if result.rowcount == 0:
                raise SecretNotFound()

            if cmd.id:
                secret = await self._fetch(sess, cmd.org_id, secret_id=cmd.id)
            else:
                secret = await self._fetch(sess, cmd.org_id, entity_uid=cmd.entity_uid)
            if secret is None:
                raise SecretNotFound()
            sess.publish_after_commit(SecretUpdated(
                id=secret.id,
                entity_uid=secret.entity_uid,
                org_id=secret.org_id,
            ))
            return secret

        return await self.with_transactional_db_session(_update)

    async def delete_secret(self, cmd: DeleteSecretCommand) -> int:
        """Delete a secret by org_id plus entity_uid (preferred) or id.

        ``SecretDeleted`` is queued only when a row was removed.

        Returns:
            Number of deleted secrets (0 or 1).

        Raises:
            SecretIdentifierNotSet: If the identifier rule is not satisfied.
        """
        if not _has_identifier(cmd.org_id, cmd.id, cmd.entity_uid):
            raise SecretIdentifierNotSet()

        async def _delete(sess: DBSession) -> int:
            stmt = delete(secret_table).where(secret_table.c.org_id == cmd.org_id)
            if cmd.entity_uid:
                stmt = stmt.where(secret_table.c.entity_uid == cmd.entity_uid)
            else:
                stmt = stmt.where(secret_table.c.id == cmd.id)
            try:
                existing = await self._fetch(
                    sess, cmd.org_id, secret_id=cmd.id, entity_uid=cmd.entity_uid
                )
                result = await sess.execute(stmt)
            except SQLAlchemyError as err:
                logger.error(
                    "Failed deleting secret: err=%s uid=%s id=%s org_id=%s",
                    err, cmd.entity_uid, cmd.id, cmd.org_id,
                )
                raise
            deleted = result.rowcount
            if deleted > 0 and existing is not None:
                sess.publish_after_commit(SecretDeleted(
                    id=existing.id,
                    entity_uid=existing.entity_uid,
                    org_id=cmd.org_id,
                ))
            return deleted

        return await self.with_transactional_db_session(_delete)
