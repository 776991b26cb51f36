"""Device administration schemas."""

from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field

from authserver.models.device import Credentials, DeviceView


class RegisterRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    device_id: Optional[str] = Field(default=None, alias="deviceId")
    metadata: Optional[dict[str, Any]] = None


class RegisterResponse(BaseModel):
    message: str = "Device registered successfully"
    device: Credentials


class RevokeRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    device_id: Optional[str] = Field(default=None, alias="deviceId")
    reason: Optional[str] = None


class RevokeResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    message: str = "Device revoked successfully"
    device_id: str = Field(alias="deviceId")


class DeviceListResponse(BaseModel):
    count: int
    devices: list[DeviceView]


class DeviceDetailResponse(BaseModel):
    device: DeviceView
