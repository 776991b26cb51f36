"""Device auth request/response schemas."""

from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field


class TokenRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    device_id: Optional[str] = Field(default=None, alias="deviceId")
    secret: Optional[str] = None
    firmware_version: Optional[str] = Field(default=None, alias="firmwareVersion")


class TokenResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    custom_token: str = Field(alias="customToken")
    expires_in: int = Field(alias="expiresIn")
    message: str = "Authentication successful"


class VerifyRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id_token: Optional[str] = Field(default=None, alias="idToken")


class VerifyResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    valid: bool
    device_id: Optional[str] = Field(default=None, alias="deviceId")
    claims: dict[str, Any] = {}
