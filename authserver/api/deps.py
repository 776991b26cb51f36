"""Common API dependencies: service lookup, admin key check."""

from typing import Optional

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from authserver.config import settings
from authserver.services.admin_service import AdminService
from authserver.services.auth_service import AuthService
from authserver.utils.security import api_key_matches

bearer_scheme = HTTPBearer(auto_error=False)


def get_auth_service(request: Request) -> AuthService:
    return request.app.state.auth_service


def get_admin_service(request: Request) -> AdminService:
    return request.app.state.admin_service


def require_admin(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
) -> None:
    """Require the admin API key when one is configured."""
    if not settings.admin_api_key:
        return
    if credentials is None or not api_key_matches(
        credentials.credentials, settings.admin_api_key
    ):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Admin access required",
            headers={"WWW-Authenticate": "Bearer"},
        )
