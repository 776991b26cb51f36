"""Signed device tokens.

`TokenIssuer` is the seam to the identity provider that mints and checks
device tokens. `JwtTokenIssuer` is the built-in provider: HMAC-signed JWTs
with a fixed lifetime.
"""

import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Mapping, Protocol

import jwt

from authserver.config import Settings
from authserver.errors import InvalidToken, UpstreamError

logger = logging.getLogger(__name__)

TOKEN_TYPE = "device"


class TokenIssuer(Protocol):
    def issue(self, subject: str, claims: Mapping[str, Any]) -> str:
        """Mint a signed token for `subject`. Raises UpstreamError."""
        ...

    def verify(self, token: str) -> dict:
        """Return the token's claims. Raises InvalidToken."""
        ...


class JwtTokenIssuer:
    def __init__(
        self,
        secret: str,
        algorithm: str = "HS256",
        expires_in: int = 3600,
        issuer: str = "device-auth-server",
    ):
        self._secret = secret
        self._algorithm = algorithm
        self._expires_in = expires_in
        self._issuer = issuer

    @classmethod
    def from_settings(cls, settings: Settings) -> "JwtTokenIssuer":
        return cls(
            secret=settings.jwt_secret,
            algorithm=settings.jwt_algorithm,
            expires_in=settings.token_expires_in,
            issuer=settings.token_issuer,
        )

    def issue(self, subject: str, claims: Mapping[str, Any]) -> str:
        now = datetime.now(timezone.utc)
        payload = {
            **claims,
            "sub": subject,
            "uid": subject,
            "iss": self._issuer,
            "iat": now,
            "exp": now + timedelta(seconds=self._expires_in),
            "type": TOKEN_TYPE,
        }
        try:
            return jwt.encode(payload, self._secret, algorithm=self._algorithm)
        except (jwt.PyJWTError, TypeError, ValueError) as e:
            logger.error("Token signing failed for %s: %s", subject, type(e).__name__)
            raise UpstreamError() from e

    def verify(self, token: str) -> dict:
        try:
            payload = jwt.decode(
                token,
                self._secret,
                algorithms=[self._algorithm],
                issuer=self._issuer,
                options={"require": ["exp", "iat", "sub"]},
            )
        except jwt.PyJWTError as e:
            raise InvalidToken(str(e) or "Invalid token") from e

        if payload.get("type") != TOKEN_TYPE:
            raise InvalidToken("Invalid token type")
        return payload
