"""Device authentication API endpoints."""

from fastapi import APIRouter, Depends, status
from fastapi.responses import JSONResponse

from authserver.api.deps import get_auth_service
from authserver.errors import InvalidToken, ValidationError
from authserver.schemas.auth import (
    TokenRequest,
    TokenResponse,
    VerifyRequest,
    VerifyResponse,
)
from authserver.services.auth_service import AuthService

router = APIRouter(prefix="/auth", tags=["auth"])


@router.post("/token", response_model=TokenResponse)
def request_token(request: TokenRequest, auth: AuthService = Depends(get_auth_service)):
    """Exchange a device id + secret for a signed device token."""
    if not request.device_id or not request.secret:
        raise ValidationError("Missing required fields: deviceId, secret")

    grant = auth.request_token(
        request.device_id,
        request.secret,
        request.firmware_version,
    )
    return TokenResponse(custom_token=grant.token, expires_in=grant.expires_in)


@router.post("/verify", response_model=VerifyResponse)
def verify_token(request: VerifyRequest, auth: AuthService = Depends(get_auth_service)):
    """Check a device token (testing/debugging)."""
    if not request.id_token:
        raise ValidationError("Missing idToken")

    try:
        claims = auth.verify_external_token(request.id_token)
    except InvalidToken as e:
        return JSONResponse(
            status_code=status.HTTP_401_UNAUTHORIZED,
            content={"valid": False, "error": e.message},
        )
    return VerifyResponse(valid=True, device_id=claims.get("uid") or claims.get("sub"), claims=claims)
