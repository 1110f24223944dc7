"""SecretStore exceptions.

Storage errors raised by the database driver are not wrapped: they reach the
caller as the original ``sqlalchemy.exc.SQLAlchemyError``.
"""


class SecretStoreError(Exception):
    """Base error for the secret store."""


class SecretNotFound(SecretStoreError):
    """No secret matches the given identifier."""

    def __init__(self, message: str = "secret not found") -> None:
        super().__init__(message)


class SecretEntityUidExists(SecretStoreError):
    """A secret already exists for the same (org_id, entity_uid)."""

    def __init__(
        self,
        message: str = "secret with the same entity_uid and org_id already exists"
    ) -> None:
        super().__init__(message)


class SecretIdentifierNotSet(SecretStoreError):
    """Lookup or delete issued without org_id plus id or entity_uid."""

    def __init__(
        self,
        message: str = (
            "unique identifier and org id are needed to be able "
            "to get or delete a secret"
        )
    ) -> None:
        super().__init__(message)


class CryptoError(SecretStoreError):
    """Failure inside the cryptographic collaborator."""


class EncryptionError(CryptoError):
    """Secure JSON data could not be encrypted."""


class DecryptionError(CryptoError):
    """Secure JSON data could not be decrypted."""


class HandlerNotFound(SecretStoreError):
    """No bus handler is registered for a message type."""

    def __init__(self, msg_type: type) -> None:
        super().__init__(f"handler not found for {msg_type.__name__}")
        self.msg_type = msg_type


class HandlerAlreadyRegistered(SecretStoreError):
    """A bus handler is already registered for a message type."""

    def __init__(self, msg_type: type) -> None:
        super().__init__(f"handler already registered for {msg_type.__name__}")
        self.msg_type = msg_type
