"""Device administration API endpoints (provisioning, revocation, listing)."""

from fastapi import APIRouter, Depends, HTTPException, status

from authserver.api.deps import get_admin_service, require_admin
from authserver.errors import NotFound, ValidationError
from authserver.schemas.admin import (
    DeviceDetailResponse,
    DeviceListResponse,
    RegisterRequest,
    RegisterResponse,
    RevokeRequest,
    RevokeResponse,
)
from authserver.services.admin_service import AdminService

router = APIRouter(prefix="/admin", tags=["admin"], dependencies=[Depends(require_admin)])


@router.post("/register", response_model=RegisterResponse)
def register_device(request: RegisterRequest, admin: AdminService = Depends(get_admin_service)):
    """Register a new device. The response is the only place its secret appears."""
    if not request.device_id:
        raise ValidationError("Missing deviceId")

    credentials = admin.register(request.device_id, request.metadata)
    return RegisterResponse(device=credentials)


@router.post("/revoke", response_model=RevokeResponse)
def revoke_device(request: RevokeRequest, admin: AdminService = Depends(get_admin_service)):
    """Revoke a device. Tokens already issued stay valid until they expire."""
    if not request.device_id:
        raise ValidationError("Missing deviceId")

    try:
        device_id = admin.revoke(request.device_id, request.reason or "")
    except NotFound as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=e.message)
    return RevokeResponse(device_id=device_id)


@router.get("/devices", response_model=DeviceListResponse)
def list_devices(admin: AdminService = Depends(get_admin_service)):
    """List all devices (without secrets)."""
    devices = admin.list()
    return DeviceListResponse(count=len(devices), devices=devices)


@router.get("/devices/{device_id}", response_model=DeviceDetailResponse)
def get_device(device_id: str, admin: AdminService = Depends(get_admin_service)):
    """Get a single device (without secret). 404 if unknown."""
    return DeviceDetailResponse(device=admin.get(device_id))
