"""Device models.

`Device` is the in-memory record owned by the registry. `DeviceView` is the
same record without the secret and is the only shape that leaves the
registry after registration. `DeviceRecord` is the table row used by the
SQLite snapshot store.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from sqlmodel import Field as SQLField
from sqlmodel import SQLModel

UNKNOWN_VERSION = "unknown"


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class DeviceStatus(str, Enum):
    ACTIVE = "active"
    SUSPENDED = "suspended"  # declared only, nothing sets it
    REVOKED = "revoked"


class DeviceMetadata(BaseModel):
    """Two recognized version fields plus any extra device attributes.

    Only the wire names are recognized; a `firmware_version` key is just
    another extra attribute. Version values are kept as given.
    """

    model_config = ConfigDict(extra="allow")

    firmware_version: Any = Field(default=UNKNOWN_VERSION, alias="firmwareVersion")
    hardware_version: Any = Field(default=UNKNOWN_VERSION, alias="hardwareVersion")

    @field_validator("firmware_version", "hardware_version", mode="before")
    @classmethod
    def _default_unknown(cls, value: Any) -> Any:
        return UNKNOWN_VERSION if value in (None, "") else value


class _DeviceFields(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    device_id: str = Field(alias="deviceId")
    status: DeviceStatus = DeviceStatus.ACTIVE
    registered_at: datetime = Field(default_factory=utcnow, alias="registeredAt")
    last_auth_at: Optional[datetime] = Field(default=None, alias="lastAuthAt")
    auth_count: int = Field(default=0, ge=0, alias="authCount")
    revoked_at: Optional[datetime] = Field(default=None, alias="revokedAt")
    revoke_reason: Optional[str] = Field(default=None, alias="revokeReason")
    metadata: DeviceMetadata = Field(default_factory=DeviceMetadata)


class DeviceView(_DeviceFields):
    pass


class Device(_DeviceFields):
    secret: str

    def to_view(self) -> DeviceView:
        return DeviceView.model_validate(self.model_dump(exclude={"secret"}, by_alias=True))

    def to_snapshot(self) -> dict:
        """JSON-ready dict keyed by the wire (camelCase) names."""
        return self.model_dump(mode="json", by_alias=True)


class Credentials(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    device_id: str = Field(alias="deviceId")
    secret: str


class DeviceRecord(SQLModel, table=True):
    __tablename__ = "devices"

    device_id: str = SQLField(primary_key=True)
    secret: str
    status: str = SQLField(default=DeviceStatus.ACTIVE.value)  # 'active' | 'suspended' | 'revoked'
    registered_at: str  # ISO-8601
    last_auth_at: Optional[str] = None
    auth_count: int = SQLField(default=0)
    revoked_at: Optional[str] = None
    revoke_reason: Optional[str] = None
    metadata_json: str = SQLField(default="{}")
