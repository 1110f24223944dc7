"""
Secrets Service — the cryptographic collaborator used by the secret store.

``SecretsService`` is the contract the store consumes. ``EnvelopeSecretsService``
is the bundled implementation: every value of a JSON map is sealed
independently so fields can be decrypted on their own, and decryption of a
map is all-or-nothing.

Security Note:
    Never log plaintext or ciphertext values.
"""
import logging
from typing import Optional, Protocol

from cryptography.exceptions import InvalidTag

from ..exceptions import DecryptionError, EncryptionError
from .config import CryptoConfig
from .envelope import get_cipher_cls, open_sealed, seal

logger = logging.getLogger("navigator.secretstore.crypto")

WITHOUT_SCOPE = "root"


class SecretsService(Protocol):
    """Envelope encryption of secure JSON data."""

    async def encrypt_json_data(
        self,
        plaintext: dict[str, str],
        scope: str = WITHOUT_SCOPE,
    ) -> dict[str, bytes]:
        ...

    async def decrypt_json_data(
        self,
        ciphertext: dict[str, bytes],
    ) -> dict[str, str]:
        ...


class EnvelopeSecretsService:
    """Seal each JSON value with a key derived from the active master key."""

    def __init__(self, config: CryptoConfig):
        self._master_keys = dict(config.master_keys)
        self._active_key_id = config.active_key_id
        self._cipher_cls = get_cipher_cls(config.cipher_backend)

    @property
    def active_key_id(self) -> int:
        return self._active_key_id

    def encrypt(self, value: str, scope: Optional[str] = None) -> bytes:
        """Seal a single plaintext string.

        Raises:
            EncryptionError: If the value cannot be sealed.
        """
        try:
            return seal(
                value.encode("utf-8"),
                self._active_key_id,
                self._master_keys[self._active_key_id],
                scope or WITHOUT_SCOPE,
                self._cipher_cls,
            )
        except (ValueError, TypeError, AttributeError, UnicodeError) as err:
            raise EncryptionError(str(err)) from err

    def decrypt(self, blob: bytes) -> str:
        """Open a single sealed value.

        Raises:
            DecryptionError: If the blob is corrupt or its key is unknown.
        """
        try:
            return open_sealed(blob, self._master_keys, self._cipher_cls).decode("utf-8")
        except InvalidTag as err:
            raise DecryptionError("authentication failed") from err
        except KeyError as err:
            raise DecryptionError(str(err.args[0]) if err.args else "unknown key") from err
        except (ValueError, TypeError, UnicodeError) as err:
            raise DecryptionError(str(err)) from err

    async def encrypt_json_data(
        self,
        plaintext: dict[str, str],
        scope: str = WITHOUT_SCOPE,
    ) -> dict[str, bytes]:
        """Encrypt every value of ``plaintext`` under the same key name.

        Args:
            plaintext: Field name → plaintext value.
            scope: Key-derivation scope.

        Returns:
            Field name → sealed blob.

        Raises:
            EncryptionError: If any value cannot be sealed.
        """
        encrypted = {key: self.encrypt(value, scope) for key, value in plaintext.items()}
        logger.debug(
            "Encrypted %d field(s) with key v%d", len(encrypted), self._active_key_id
        )
        return encrypted

    async def decrypt_json_data(
        self,
        ciphertext: dict[str, bytes],
    ) -> dict[str, str]:
        """Decrypt every value of ``ciphertext``; any failure fails the call.

        Raises:
            DecryptionError: If any value cannot be opened.
        """
        return {key: self.decrypt(blob) for key, blob in ciphertext.items()}
