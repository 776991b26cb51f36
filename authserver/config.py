"""Device Auth Server Configuration."""

import secrets
from pathlib import Path

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    # Server
    server_name: str = "Device Auth Server"
    host: str = "0.0.0.0"
    port: int = 3000
    debug: bool = False
    environment: str = "production"  # 'development' | 'production'

    # Paths
    data_dir: Path = Path.home() / "authserver" / "data"

    # Device registry snapshot
    snapshot_backend: str = "json"  # 'json' | 'sqlite'
    snapshot_path: Path = Path.home() / "authserver" / "data" / "devices.json"
    db_path: Path = Path.home() / "authserver" / "data" / "devices.db"

    # HMAC key for secret comparison
    server_secret: str = Field(
        default="",
        validation_alias=AliasChoices("SERVER_SECRET", "AUTHSERVER_SERVER_SECRET"),
    )

    # Device tokens
    jwt_secret: str = ""
    jwt_algorithm: str = "HS256"
    token_expires_in: int = 3600  # seconds
    token_issuer: str = "device-auth-server"

    # Admin API (open when empty)
    admin_api_key: str = ""

    cors_origins: list[str] = ["*"]

    model_config = {"env_prefix": "AUTHSERVER_", "populate_by_name": True}

    def ensure_dirs(self) -> None:
        """Create all required directories."""
        for d in [self.data_dir, self.snapshot_path.parent, self.db_path.parent]:
            d.mkdir(parents=True, exist_ok=True)

    def ensure_secrets(self) -> None:
        """Generate secrets if not set, persist to file so they survive restarts."""
        secrets_file = self.data_dir / ".secrets"
        saved = {}
        if secrets_file.exists():
            for line in secrets_file.read_text().strip().splitlines():
                if "=" in line:
                    k, v = line.split("=", 1)
                    saved[k.strip()] = v.strip()

        generated = {}
        if not self.server_secret:
            self.server_secret = saved.get("server_secret", "") or secrets.token_hex(32)
            generated["server_secret"] = self.server_secret
        if not self.jwt_secret:
            self.jwt_secret = saved.get("jwt_secret", "") or secrets.token_urlsafe(32)
            generated["jwt_secret"] = self.jwt_secret

        # Persist generated values for next restart; env-provided ones stay in the env
        if generated and any(saved.get(k) != v for k, v in generated.items()):
            saved.update(generated)
            secrets_file.write_text("".join(f"{k}={v}\n" for k, v in saved.items()))
            secrets_file.chmod(0o600)


settings = Settings()
settings.ensure_dirs()
settings.ensure_secrets()
