"""Shared fixtures: file-backed SQLite store, envelope crypto and a bus."""
import os

import pytest
import pytest_asyncio

from navigator_secretstore.bus import Bus
from navigator_secretstore.cache import DecryptionCache
from navigator_secretstore.conf import StoreConfig
from navigator_secretstore.crypto import CryptoConfig, EnvelopeSecretsService
from navigator_secretstore.events import SecretEvent
from navigator_secretstore.service import SecretStoreService
from navigator_secretstore.sqlstore import SecretSQLStore, create_engine, migrate


class CountingSecretsService(EnvelopeSecretsService):
    """Envelope service that counts calls to the crypto collaborator."""

    def __init__(self, config: CryptoConfig):
        super().__init__(config)
        self.encrypt_calls = 0
        self.decrypt_calls = 0

    async def encrypt_json_data(self, plaintext, scope="root"):
        self.encrypt_calls += 1
        return await super().encrypt_json_data(plaintext, scope)

    async def decrypt_json_data(self, ciphertext):
        self.decrypt_calls += 1
        return await super().decrypt_json_data(ciphertext)


@pytest.fixture
def crypto_config():
    """Two random master key versions, v2 active."""
    return CryptoConfig(
        master_keys={1: os.urandom(32), 2: os.urandom(32)},
        active_key_id=2,
    )


@pytest.fixture
def secrets_service(crypto_config):
    return CountingSecretsService(crypto_config)


@pytest.fixture
def bus():
    return Bus()


@pytest.fixture
def events(bus):
    """Every lifecycle event published on the bus, in order."""
    received = []
    bus.add_event_listener(SecretEvent, received.append)
    return received


@pytest_asyncio.fixture
async def engine(tmp_path):
    config = StoreConfig(database_url=f"sqlite+aiosqlite:///{tmp_path / 'secrets.db'}")
    engine = create_engine(config)
    await migrate(engine)
    yield engine
    await engine.dispose()


@pytest.fixture
def store(engine, bus):
    return SecretSQLStore(engine, bus)


@pytest.fixture
def service(bus, store, secrets_service):
    return SecretStoreService(bus, store, secrets_service, DecryptionCache())
