"""
SecretStoreService — encrypts on write, delegates to the record store and
serves plaintext through the decryption cache.

Provides the public API of the secret store:
- ``get_secret(query)`` / ``get_secrets(query)`` — read ciphertext records
- ``add_secret(cmd)`` / ``update_secret(cmd)`` — encrypt, then persist
- ``delete_secret(cmd)`` — remove a record
- ``decrypted_values(secret)`` — plaintext map, cached per ``(id, updated)``
- ``provide_service(...)`` — composition helper wiring engine, crypto and bus

Security Note:
    Never log plaintext or ciphertext values. Only log ids, entity uids and
    org ids.
"""
import logging
from typing import Optional, Protocol

from .bus import Bus
from .cache import DecryptionCache
from .conf import StoreConfig
from .crypto import WITHOUT_SCOPE, CryptoConfig, EnvelopeSecretsService, SecretsService
from .models import (
    AddSecretCommand,
    DeleteSecretCommand,
    GetSecretQuery,
    GetSecretsQuery,
    Secret,
    UpdateSecretCommand,
)
from .sqlstore import SecretSQLStore, create_engine, migrate

logger = logging.getLogger("navigator.secretstore")


class SecretRetriever(Protocol):
    """Read-only view used by consumers that only look secrets up."""

    async def get_secret(self, query: GetSecretQuery) -> Secret:
        ...


class SecretStoreService:
    """Facade over the record store plus the decryption cache.

    On construction the five request handlers are registered on ``bus``
    under their query/command types.
    """

    def __init__(
        self,
        bus: Bus,
        store: SecretSQLStore,
        secrets_service: SecretsService,
        cache: Optional[DecryptionCache] = None,
    ):
        self.bus = bus
        self.store = store
        self.secrets_service = secrets_service
        self._decryption_cache = cache if cache is not None else DecryptionCache()

        self.bus.add_handler(GetSecretsQuery, self.get_secrets)
        self.bus.add_handler(GetSecretQuery, self.get_secret)
        self.bus.add_handler(AddSecretCommand, self.add_secret)
        self.bus.add_handler(DeleteSecretCommand, self.delete_secret)
        self.bus.add_handler(UpdateSecretCommand, self.update_secret)

    @property
    def decryption_cache(self) -> DecryptionCache:
        return self._decryption_cache

    async def get_secret(self, query: GetSecretQuery) -> Secret:
        return await self.store.get_secret(query)

    async def get_secrets(self, query: GetSecretsQuery) -> list[Secret]:
        return await self.store.get_secrets(query)

    async def add_secret(self, cmd: AddSecretCommand) -> Secret:
        """Encrypt ``cmd.secure_json_data`` and insert the secret.

        Encryption errors propagate before any database work.
        """
        encrypted = await self.secrets_service.encrypt_json_data(
            cmd.secure_json_data, WITHOUT_SCOPE
        )
        secret = await self.store.add_secret(cmd, encrypted)
        logger.debug(
            "Secret added: id=%s uid=%s org_id=%s", secret.id, secret.entity_uid, secret.org_id
        )
        return secret

    async def update_secret(self, cmd: UpdateSecretCommand) -> Secret:
        """Encrypt ``cmd.secure_json_data`` and rewrite the secret."""
        encrypted = await self.secrets_service.encrypt_json_data(
            cmd.secure_json_data, WITHOUT_SCOPE
        )
        secret = await self.store.update_secret(cmd, encrypted)
        logger.debug(
            "Secret updated: id=%s uid=%s org_id=%s", secret.id, secret.entity_uid, secret.org_id
        )
        return secret

    async def delete_secret(self, cmd: DeleteSecretCommand) -> int:
        deleted = await self.store.delete_secret(cmd)
        logger.debug(
            "Secret delete: id=%s uid=%s org_id=%s deleted=%d",
            cmd.id, cmd.entity_uid, cmd.org_id, deleted,
        )
        return deleted

    async def decrypted_values(self, secret: Secret) -> dict[str, str]:
        """Return the plaintext map of ``secret``.

        Any decryption failure yields an empty map and nothing is cached, so
        the next call retries.
        """
        async def _decrypt() -> dict[str, str]:
            return await self.secrets_service.decrypt_json_data(secret.secure_json_data)

        try:
            values = await self._decryption_cache.get_or_load(
                secret.id, secret.updated, _decrypt
            )
        except Exception as err:
            logger.warning(
                "Failed to decrypt secret id=%s uid=%s org_id=%s: %s",
                secret.id, secret.entity_uid, secret.org_id, type(err).__name__,
            )
            return {}
        return dict(values)


async def provide_service(
    config: Optional[StoreConfig] = None,
    crypto_config: Optional[CryptoConfig] = None,
    bus: Optional[Bus] = None,
) -> SecretStoreService:
    """Build a ready-to-use service: engine, schema, crypto, cache and bus.

    Args:
        config: Store settings, read from the environment when omitted.
        crypto_config: Master keys, read from the environment when omitted.
        bus: Bus owned by the caller; a new one is created when omitted.

    Returns:
        SecretStoreService with its handlers registered on ``bus``.
    """
    config = config or StoreConfig.from_env()
    crypto_config = crypto_config or CryptoConfig.from_env()
    bus = bus or Bus()
    engine = create_engine(config)
    await migrate(engine)
    store = SecretSQLStore(engine, bus)
    service = SecretStoreService(
        bus,
        store,
        EnvelopeSecretsService(crypto_config),
        DecryptionCache(config.decryption_cache_size),
    )
    logger.info(
        "SecretStore ready (crypto key v%d, cache size=%s)",
        crypto_config.active_key_id, config.decryption_cache_size or "unbounded",
    )
    return service
