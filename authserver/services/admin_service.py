"""Device lifecycle operations for administrators."""

from collections.abc import Mapping
from typing import Any, Optional

from authserver.errors import NotFound
from authserver.models.device import Credentials, DeviceView
from authserver.services.registry import DeviceRegistry
from authserver.utils.identity import normalize


class AdminService:
    def __init__(self, registry: DeviceRegistry):
        self._registry = registry

    def register(
        self, raw_device_id: str, metadata: Optional[Mapping[str, Any]] = None
    ) -> Credentials:
        """Provision a device. Raises AlreadyRegistered."""
        return self._registry.register(normalize(raw_device_id), metadata)

    def revoke(self, raw_device_id: str, reason: str = "") -> str:
        """Revoke a device and return its canonical id. Raises NotFound."""
        device_id = normalize(raw_device_id)
        self._registry.revoke(device_id, reason)
        return device_id

    def get(self, raw_device_id: str) -> DeviceView:
        device = self._registry.get_safe(normalize(raw_device_id))
        if device is None:
            raise NotFound(raw_device_id)
        return device

    def list(self) -> list[DeviceView]:
        return self._registry.list_safe()
