"""Device registry: the single owner of device state.

All device records live in memory and every mutation is followed by a write
of the whole registry to the snapshot store. Keys are canonical device ids;
callers normalize before calling in.

Two locks:
- `_lock` guards the in-memory map. Check-and-insert, counter updates and
  revocations run entirely under it, so they are atomic per device.
- `_persist_lock` makes snapshot writes single-writer. The snapshot is taken
  after acquiring it, so the last write always carries the newest state and
  two saves can never interleave and drop a mutation.

A failed save is logged and absorbed. The in-memory state stays
authoritative and the next mutation writes it out again.
"""

import logging
import threading
from collections.abc import Mapping
from typing import Any, Optional

from pydantic import ValidationError as ModelValidationError

from authserver.errors import AlreadyRegistered, NotFound, PersistenceError
from authserver.models.device import (
    Credentials,
    Device,
    DeviceMetadata,
    DeviceStatus,
    DeviceView,
    utcnow,
)
from authserver.services.snapshot_store import SnapshotStore
from authserver.utils.security import generate_secret

logger = logging.getLogger(__name__)


class DeviceRegistry:
    """In-memory device map backed by a durable snapshot."""

    def __init__(self, store: SnapshotStore):
        self._store = store
        self._devices: dict[str, Device] = {}
        self._lock = threading.Lock()
        self._persist_lock = threading.Lock()

    # --- Persistence ---

    def load(self) -> None:
        """Replace in-memory state with the stored snapshot.

        Missing snapshot: start empty and write an empty one.
        Unreadable snapshot: log and start empty.
        """
        try:
            snapshot = self._store.load()
        except PersistenceError as e:
            logger.error("Error loading devices, starting with an empty registry: %s", e)
            with self._lock:
                self._devices = {}
            return

        if snapshot is None:
            logger.warning("No device database found, creating new one")
            with self._lock:
                self._devices = {}
            self._persist()
            return

        devices: dict[str, Device] = {}
        for key, record in snapshot.items():
            try:
                device = Device.model_validate(record)
            except ModelValidationError as e:
                # Only the error count: pydantic messages echo input values.
                logger.error(
                    "Skipping malformed device record %s (%d errors)", key, e.error_count()
                )
                continue
            devices[device.device_id] = device

        with self._lock:
            self._devices = devices
        logger.info("Loaded %d devices from database", len(devices))

    def _persist(self) -> None:
        with self._persist_lock:
            with self._lock:
                snapshot = {
                    device_id: device.to_snapshot()
                    for device_id, device in self._devices.items()
                }
            try:
                self._store.save(snapshot)
            except PersistenceError as e:
                logger.error("Error saving devices (%d in memory): %s", len(snapshot), e)

    # --- Mutations ---

    def register(
        self, device_id: str, metadata: Optional[Mapping[str, Any]] = None
    ) -> Credentials:
        """Create a device and return its credentials.

        This is the only time the secret leaves the registry.
        """
        device_metadata = DeviceMetadata.model_validate(dict(metadata or {}))

        with self._lock:
            if device_id in self._devices:
                raise AlreadyRegistered(device_id)
            device = Device(
                device_id=device_id,
                secret=generate_secret(),
                metadata=device_metadata,
            )
            self._devices[device_id] = device

        self._persist()
        logger.info("Device registered: %s", device_id)
        return Credentials(device_id=device_id, secret=device.secret)

    def record_success(self, device_id: str) -> None:
        """Stamp a successful authentication. No-op for unknown ids."""
        with self._lock:
            device = self._devices.get(device_id)
            if device is None:
                return
            device.last_auth_at = utcnow()
            device.auth_count += 1

        self._persist()

    def revoke(self, device_id: str, reason: str = "") -> None:
        """Revoke a device. Repeating it refreshes the timestamp and reason."""
        with self._lock:
            device = self._devices.get(device_id)
            if device is None:
                raise NotFound(device_id)
            device.status = DeviceStatus.REVOKED
            device.revoked_at = utcnow()
            device.revoke_reason = reason

        self._persist()
        logger.warning("Device revoked: %s - Reason: %s", device_id, reason)

    # --- Queries ---

    def lookup(self, device_id: str) -> Optional[Device]:
        """Full record including the secret, for credential checks only."""
        with self._lock:
            device = self._devices.get(device_id)
            return device.model_copy(deep=True) if device else None

    def get_safe(self, device_id: str) -> Optional[DeviceView]:
        with self._lock:
            device = self._devices.get(device_id)
            return device.to_view() if device else None

    def list_safe(self) -> list[DeviceView]:
        with self._lock:
            return [device.to_view() for device in self._devices.values()]

    @property
    def count(self) -> int:
        with self._lock:
            return len(self._devices)
