"""Crypto — the envelope-encryption collaborator of the secret store.

Security Note (Threat Model):
    Plaintext secure JSON data exists in process memory while the decryption
    cache holds it. A memory dump of the application process can expose it.
    Mitigation requires HSM/secure enclave integration which is out of scope.
"""

from .config import DEFAULT_ENV_PREFIX, CryptoConfig
from .service import WITHOUT_SCOPE, EnvelopeSecretsService, SecretsService

__all__ = [
    "CryptoConfig",
    "DEFAULT_ENV_PREFIX",
    "EnvelopeSecretsService",
    "SecretsService",
    "WITHOUT_SCOPE",
]
