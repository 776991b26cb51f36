"""Device Auth Server Models."""

from authserver.models.device import (
    Credentials,
    Device,
    DeviceMetadata,
    DeviceRecord,
    DeviceStatus,
    DeviceView,
)

__all__ = [
    "Credentials",
    "Device",
    "DeviceMetadata",
    "DeviceRecord",
    "DeviceStatus",
    "DeviceView",
]
