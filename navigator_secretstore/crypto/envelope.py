"""
Envelope Crypto Core — Key derivation and per-value encryption/decryption.

Each value is sealed with a key derived from a master key version and a scope:
    HKDF(MASTER_KEY_vN, "secretstore-{scope}-v{N}") → AEAD → blob

Blob format:
    [key_id 2B uint16 BE][scope_len 1B][scope][nonce 12B][encrypted_payload + tag]

Security Note:
    Never log plaintext or ciphertext values.
    Nonces are random 96-bit; collision probability negligible under normal usage.
"""
import os
import struct

from cryptography.hazmat.primitives.kdf.hkdf import HKDF
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.ciphers.aead import AESGCM, ChaCha20Poly1305

NONCE_SIZE = 12  # 96-bit nonce
KEY_ID_SIZE = 2  # uint16 big-endian
KEY_LENGTH = 32  # AES-256
TAG_SIZE = 16

_CIPHERS: dict[str, type] = {
    "aesgcm": AESGCM,
    "chacha20": ChaCha20Poly1305,
}


def get_cipher_cls(backend: str) -> type:
    """Return the AEAD cipher class for a backend name."""
    try:
        return _CIPHERS[backend.lower()]
    except KeyError:
        raise ValueError(f"Unsupported cipher backend: {backend}") from None


def derive_key(seed: bytes, context: str) -> bytes:
    """Derive a 32-byte encryption key using HKDF-SHA256.

    Args:
        seed: Input key material (master key bytes).
        context: Context string for domain separation.

    Returns:
        32-byte derived key.
    """
    hkdf = HKDF(
        algorithm=hashes.SHA256(),
        length=KEY_LENGTH,
        salt=None,
        info=context.encode("utf-8"),
    )
    return hkdf.derive(seed)


def _context(scope: str, key_id: int) -> str:
    return f"secretstore-{scope}-v{key_id}"


def seal(
    plaintext: bytes,
    key_id: int,
    master_key: bytes,
    scope: str,
    cipher_cls: type = AESGCM,
) -> bytes:
    """Encrypt a single value with embedded key version and scope.

    Args:
        plaintext: Data to encrypt.
        key_id: Master key version identifier.
        master_key: Raw 32-byte master key for this version.
        scope: Key-derivation scope (``"root"`` when unscoped).
        cipher_cls: AEAD implementation.

    Returns:
        Sealed blob.
    """
    scope_bytes = scope.encode("utf-8")
    if len(scope_bytes) > 255:
        raise ValueError("scope cannot exceed 255 bytes")
    cipher = cipher_cls(derive_key(master_key, _context(scope, key_id)))
    nonce = os.urandom(NONCE_SIZE)
    ct = cipher.encrypt(nonce, plaintext, None)
    header = struct.pack("!HB", key_id, len(scope_bytes)) + scope_bytes
    return header + nonce + ct


def open_sealed(
    blob: bytes,
    master_keys: dict[int, bytes],
    cipher_cls: type = AESGCM,
) -> bytes:
    """Decrypt a blob produced by :func:`seal`.

    Args:
        blob: Sealed value.
        master_keys: Mapping of key_id → raw 32-byte master key.
        cipher_cls: AEAD implementation.

    Returns:
        Decrypted plaintext bytes.

    Raises:
        ValueError: If the blob is truncated.
        KeyError: If the embedded key_id is not in master_keys.
        cryptography.exceptions.InvalidTag: If authentication fails.
    """
    if len(blob) < KEY_ID_SIZE + 1:
        raise ValueError(f"blob too short: {len(blob)} bytes")
    key_id, scope_len = struct.unpack("!HB", blob[:KEY_ID_SIZE + 1])
    offset = KEY_ID_SIZE + 1 + scope_len
    if len(blob) < offset + NONCE_SIZE + TAG_SIZE:
        raise ValueError(
            f"blob too short: {len(blob)} bytes "
            f"(minimum {offset + NONCE_SIZE + TAG_SIZE})"
        )
    if key_id not in master_keys:
        raise KeyError(f"Master key version {key_id} not found in provided keys")
    scope = blob[KEY_ID_SIZE + 1:offset].decode("utf-8")
    cipher = cipher_cls(derive_key(master_keys[key_id], _context(scope, key_id)))
    nonce = blob[offset:offset + NONCE_SIZE]
    return cipher.decrypt(nonce, blob[offset + NONCE_SIZE:], None)
