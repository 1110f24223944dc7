"""
SecretStore Models — the Secret entity plus its commands and queries.

Commands and queries are immutable; handlers return their result instead of
writing it back into the request.
"""
import base64
from datetime import datetime, timezone
from typing import Any, Optional

import orjson
from pydantic import BaseModel, ConfigDict, Field, field_serializer, field_validator

DEFAULT_ENTITY_UID = "0"
ENTITY_UID_MAX_LENGTH = 40


def utcnow() -> datetime:
    """Return current UTC time without tzinfo (DATETIME columns are naive)."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def _b64decode_values(value: Any) -> Any:
    if isinstance(value, dict):
        return {
            k: base64.b64decode(v) if isinstance(v, str) else v
            for k, v in value.items()
        }
    return value


class Secret(BaseModel):
    """One tenant's encrypted credential bag for one logical entity.

    ``secure_json_data`` values are always ciphertext blobs produced by the
    crypto collaborator.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    id: int
    org_id: int = Field(alias="orgId")
    entity_uid: str = Field(default=DEFAULT_ENTITY_UID, alias="entityUid")
    secure_json_data: dict[str, bytes] = Field(
        default_factory=dict, alias="secureJsonData"
    )
    created: datetime
    updated: datetime

    @field_validator("secure_json_data", mode="before")
    @classmethod
    def decode_secure_json_data(cls, v: Any) -> Any:
        """Accept base64 strings as they come from the JSON form."""
        if v is None:
            return {}
        return _b64decode_values(v)

    @field_serializer("secure_json_data", when_used="json")
    def encode_secure_json_data(self, v: dict[str, bytes]) -> dict[str, str]:
        return {k: base64.b64encode(blob).decode("ascii") for k, blob in v.items()}

    def to_json(self) -> bytes:
        """Serialize to the camelCase API form."""
        return orjson.dumps(self.model_dump(mode="json", by_alias=True))

    @classmethod
    def from_json(cls, data: bytes | str) -> "Secret":
        return cls.model_validate(orjson.loads(data))


class SignedInUser(BaseModel):
    """Caller identity handed to permission filters."""

    model_config = ConfigDict(frozen=True)

    user_id: int
    org_id: int
    login: str = ""
    org_role: str = "Viewer"


# ----------------------
# COMMANDS
# ----------------------

class AddSecretCommand(BaseModel):
    """Create a secret; ``secure_json_data`` holds plaintext values."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    org_id: int = Field(gt=0, alias="orgId")
    entity_uid: str = Field(default=DEFAULT_ENTITY_UID, alias="entityUid")
    secure_json_data: dict[str, str] = Field(alias="secureJsonData")


class UpdateSecretCommand(BaseModel):
    """Rewrite a secret selected by ``id`` or, without one, by ``entity_uid``."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    org_id: int = Field(alias="orgId")
    id: int = 0
    entity_uid: str = Field(default="", alias="entityUid")
    secure_json_data: dict[str, str] = Field(alias="secureJsonData")


class DeleteSecretCommand(BaseModel):
    """Delete a secret by org_id plus entity_uid (preferred) or id.

    At least one of entity_uid or id must be set in addition to org_id.
    """

    model_config = ConfigDict(frozen=True)

    org_id: int
    id: int = 0
    entity_uid: str = ""


# ---------------------
# QUERIES
# ---------------------

class GetSecretsQuery(BaseModel):
    """List secrets of an org; ``secret_limit <= 0`` means no limit."""

    model_config = ConfigDict(frozen=True)

    org_id: int
    secret_limit: int = 0
    user: Optional[SignedInUser] = None


class GetSecretQuery(BaseModel):
    """Get a secret by org_id plus entity_uid (preferred) or id.

    At least one of entity_uid or id must be set in addition to org_id.
    """

    model_config = ConfigDict(frozen=True)

    org_id: int
    id: int = 0
    entity_uid: str = ""
