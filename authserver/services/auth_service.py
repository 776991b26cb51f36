"""Device authentication business logic.

Verifies a device's id + secret against the registry and exchanges a
successful check for a signed token from the token issuer.
"""

import logging
import time
from dataclasses import dataclass
from typing import Optional

from authserver.errors import Unauthorized
from authserver.models.device import DeviceStatus
from authserver.services.registry import DeviceRegistry
from authserver.services.token_issuer import TokenIssuer
from authserver.utils.identity import normalize
from authserver.utils.security import verify_secret

logger = logging.getLogger(__name__)

DEVICE_TYPE = "esp8266"
DEVICE_PERMISSIONS = ["switches:read", "switches:write"]
TOKEN_EXPIRES_IN = 3600  # seconds


@dataclass
class TokenGrant:
    token: str
    expires_in: int = TOKEN_EXPIRES_IN


class AuthService:
    def __init__(
        self,
        registry: DeviceRegistry,
        issuer: TokenIssuer,
        server_key: str,
        expires_in: int = TOKEN_EXPIRES_IN,
    ):
        self._registry = registry
        self._issuer = issuer
        self._server_key = server_key
        self._expires_in = expires_in

    def request_token(
        self,
        raw_device_id: str,
        provided_secret: str,
        firmware_hint: Optional[str] = None,
    ) -> TokenGrant:
        """Verify device credentials and issue a token.

        Raises Unauthorized (same public message for every reason) or
        UpstreamError. Success is recorded only after the issuer returns.
        """
        started = time.monotonic()
        device_id = normalize(raw_device_id)

        device = self._registry.lookup(device_id)
        if device is None:
            logger.info("Auth failed: Unknown device %s", device_id)
            raise Unauthorized(Unauthorized.UNKNOWN_DEVICE, device_id)

        if device.status != DeviceStatus.ACTIVE:
            logger.info("Auth failed: Device %s status is %s", device_id, device.status.value)
            raise Unauthorized(Unauthorized.INACTIVE, device_id)

        if not verify_secret(self._server_key, provided_secret, device.secret):
            logger.warning("Auth failed: Invalid secret for device %s", device_id)
            raise Unauthorized(Unauthorized.BAD_SECRET, device_id)

        claims = {
            "deviceType": DEVICE_TYPE,
            "deviceId": device_id,
            "permissions": list(DEVICE_PERMISSIONS),
            "firmwareVersion": firmware_hint or device.metadata.firmware_version,
            "authTimestamp": int(time.time() * 1000),
        }

        # UpstreamError propagates before anything is recorded
        token = self._issuer.issue(device_id, claims)
        self._registry.record_success(device_id)

        duration_ms = (time.monotonic() - started) * 1000
        logger.info("Token issued for %s (%.0fms)", device_id, duration_ms)
        return TokenGrant(token=token, expires_in=self._expires_in)

    def verify_external_token(self, token: str) -> dict:
        """Return the claims of a token minted by the issuer. Raises InvalidToken."""
        return self._issuer.verify(token)
