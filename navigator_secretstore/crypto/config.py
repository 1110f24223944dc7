"""
Crypto Configuration — master key versions for the envelope service.

Keys are read from the environment under a configurable prefix:
    {prefix}MASTER_KEY_v{N} = <base64 32-byte key>    (one per version)
    {prefix}ACTIVE_KEY_ID   = <N>                      (default: newest version)
    {prefix}CIPHER_BACKEND  = aesgcm | chacha20

Security Note:
    Never log key material. Only log key versions.
"""
import base64
import binascii
import logging
import os
import re
from collections.abc import Mapping
from typing import Literal, Optional, Union

from pydantic import BaseModel, field_validator, model_validator

logger = logging.getLogger("navigator.secretstore.crypto")

DEFAULT_ENV_PREFIX = "SECRETSTORE_"
MASTER_KEY_SIZE = 32
# the key version is stored as an unsigned 16-bit header in every blob
MAX_KEY_VERSION = 0xFFFF


def _decode_key(name: str, value: Union[str, bytes]) -> bytes:
    if isinstance(value, str):
        try:
            value = base64.b64decode(value, validate=True)
        except binascii.Error as err:
            raise ValueError(f"{name} is not valid base64") from err
    if len(value) != MASTER_KEY_SIZE:
        raise ValueError(
            f"{name} must be {MASTER_KEY_SIZE} bytes, got {len(value)}"
        )
    return value


class CryptoConfig(BaseModel):
    """Master keys by version, the version used for new blobs and the AEAD."""

    master_keys: dict[int, bytes]
    active_key_id: Optional[int] = None
    cipher_backend: Literal["aesgcm", "chacha20"] = "aesgcm"

    @field_validator("master_keys", mode="before")
    @classmethod
    def decode_master_keys(cls, v):
        """Accept raw bytes or base64 strings; every blob key is 32 bytes."""
        if not isinstance(v, Mapping) or not v:
            raise ValueError("at least one master key is required")
        keys = {}
        for version, key in v.items():
            version = int(version)
            if not 0 < version <= MAX_KEY_VERSION:
                raise ValueError(f"key version {version} out of range (1..{MAX_KEY_VERSION})")
            keys[version] = _decode_key(f"master key v{version}", key)
        return keys

    @field_validator("cipher_backend", mode="before")
    @classmethod
    def normalize_backend(cls, v):
        return v.lower() if isinstance(v, str) else v

    @model_validator(mode="after")
    def resolve_active_key(self) -> "CryptoConfig":
        if self.active_key_id is None:
            self.active_key_id = max(self.master_keys)
        elif self.active_key_id not in self.master_keys:
            raise ValueError(
                f"active key v{self.active_key_id} not among "
                f"{sorted(self.master_keys)}"
            )
        return self

    @property
    def active_key(self) -> bytes:
        return self.master_keys[self.active_key_id]

    @classmethod
    def from_env(
        cls,
        prefix: str = DEFAULT_ENV_PREFIX,
        environ: Optional[Mapping[str, str]] = None,
    ) -> "CryptoConfig":
        """Build the config from ``{prefix}*`` variables.

        Args:
            prefix: Variable name prefix, so several stores can share a process.
            environ: Mapping to read instead of ``os.environ``.

        Raises:
            RuntimeError: If no ``{prefix}MASTER_KEY_v{N}`` variable is set.
            ValueError: If a key or setting is invalid.
        """
        environ = os.environ if environ is None else environ
        pattern = re.compile(rf"^{re.escape(prefix)}MASTER_KEY_v(\d+)$")
        keys = {}
        for name, value in environ.items():
            match = pattern.match(name)
            if match:
                keys[int(match.group(1))] = value
        if not keys:
            raise RuntimeError(
                f"No master keys configured; set {prefix}MASTER_KEY_v1 "
                "to a base64-encoded 32-byte key"
            )
        active = environ.get(f"{prefix}ACTIVE_KEY_ID")
        config = cls(
            master_keys=keys,
            active_key_id=int(active) if active else None,
            cipher_backend=environ.get(f"{prefix}CIPHER_BACKEND", "aesgcm"),
        )
        logger.debug(
            "Loaded master key version(s) %s from %s*, active v%d",
            sorted(config.master_keys), prefix, config.active_key_id,
        )
        return config
