"""Error taxonomy shared by the registry, the services and the HTTP layer."""


class DeviceAuthError(Exception):
    """Base class. `message` is safe to show to API callers."""

    status_code = 500

    def __init__(self, message: str = ""):
        super().__init__(message)
        self.message = message or self.__class__.__name__


class ValidationError(DeviceAuthError):
    status_code = 400


class AlreadyRegistered(DeviceAuthError):
    status_code = 400

    def __init__(self, device_id: str):
        super().__init__("Device already registered")
        self.device_id = device_id


class NotFound(DeviceAuthError):
    status_code = 404

    def __init__(self, device_id: str):
        super().__init__("Device not found")
        self.device_id = device_id


class Unauthorized(DeviceAuthError):
    """Credential check failed.

    `reason` is one of UNKNOWN_DEVICE, INACTIVE or BAD_SECRET and is meant for
    audit logs only. The public message is the same for all three.
    """

    status_code = 401

    UNKNOWN_DEVICE = "unknown_device"
    INACTIVE = "inactive"
    BAD_SECRET = "bad_secret"

    def __init__(self, reason: str, device_id: str = ""):
        super().__init__("Invalid credentials")
        self.reason = reason
        self.device_id = device_id


class PersistenceError(DeviceAuthError):
    """Snapshot could not be read or written."""


class UpstreamError(DeviceAuthError):
    """Token issuer failed."""

    def __init__(self, message: str = "Failed to create token"):
        super().__init__(message)


class InvalidToken(DeviceAuthError):
    status_code = 401
