"""Lifecycle events emitted after a secret mutation commits."""
from datetime import datetime, timezone

from pydantic import BaseModel, ConfigDict, Field


def _now() -> datetime:
    return datetime.now(timezone.utc)


class SecretEvent(BaseModel):
    """Base shape shared by all secret lifecycle events."""

    model_config = ConfigDict(frozen=True)

    timestamp: datetime = Field(default_factory=_now)
    id: int = 0
    entity_uid: str = ""
    org_id: int


class SecretCreated(SecretEvent):
    pass


class SecretUpdated(SecretEvent):
    pass


class SecretDeleted(SecretEvent):
    pass
