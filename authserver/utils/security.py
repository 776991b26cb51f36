"""Security utilities: device secrets, keyed constant-time comparison."""

import hashlib
import hmac
import secrets

SECRET_BYTES = 32  # 256-bit device secret


# --- Device Secrets ---

def generate_secret() -> str:
    """Generate a new device secret (64 hex chars)."""
    return secrets.token_hex(SECRET_BYTES)


def _keyed_digest(server_key: str, value: str) -> bytes:
    return hmac.new(
        server_key.encode(), value.encode("utf-8", "surrogatepass"), hashlib.sha256
    ).digest()


def verify_secret(server_key: str, provided: str, stored: str) -> bool:
    """Compare two secrets without leaking where they differ.

    Both values are HMAC-SHA256'd with the server key first, so the
    comparison always runs over two 32-byte digests regardless of the
    input lengths.
    """
    return hmac.compare_digest(
        _keyed_digest(server_key, provided),
        _keyed_digest(server_key, stored),
    )


# --- API Keys ---

def api_key_matches(provided: str, expected: str) -> bool:
    """Constant-time check of an admin API key."""
    return hmac.compare_digest(
        provided.encode("utf-8", "surrogatepass"), expected.encode("utf-8", "surrogatepass")
    )
