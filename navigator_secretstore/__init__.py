"""Navigator SecretStore — per-tenant encrypted credential records.

Secure JSON data is encrypted value by value before it reaches the
``secret`` table and decrypted on demand through a per-record cache.
"""

from .bus import Bus
from .cache import DecryptionCache
from .conf import StoreConfig
from .events import SecretCreated, SecretDeleted, SecretEvent, SecretUpdated
from .exceptions import (
    CryptoError,
    DecryptionError,
    EncryptionError,
    HandlerNotFound,
    SecretEntityUidExists,
    SecretIdentifierNotSet,
    SecretNotFound,
    SecretStoreError,
)
from .models import (
    AddSecretCommand,
    DeleteSecretCommand,
    GetSecretQuery,
    GetSecretsQuery,
    Secret,
    SignedInUser,
    UpdateSecretCommand,
)
from .permissions import SecretsPermissionFilter, allow_all, filter_from_predicate
from .service import SecretRetriever, SecretStoreService, provide_service
from .version import __version__

__all__ = [
    "AddSecretCommand",
    "Bus",
    "CryptoError",
    "DecryptionCache",
    "DecryptionError",
    "DeleteSecretCommand",
    "EncryptionError",
    "GetSecretQuery",
    "GetSecretsQuery",
    "HandlerNotFound",
    "Secret",
    "SecretCreated",
    "SecretDeleted",
    "SecretEntityUidExists",
    "SecretEvent",
    "SecretIdentifierNotSet",
    "SecretNotFound",
    "SecretRetriever",
    "SecretStoreError",
    "SecretStoreService",
    "SecretUpdated",
    "SecretsPermissionFilter",
    "SignedInUser",
    "StoreConfig",
    "UpdateSecretCommand",
    "__version__",
    "allow_all",
    "filter_from_predicate",
    "provide_service",
]
