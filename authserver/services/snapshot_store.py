"""Durable storage for the device registry.

A snapshot is the whole registry: a dict keyed by canonical device id whose
values are JSON-ready device records (see `Device.to_snapshot`). Stores only
know how to load and save a complete snapshot; they never write single
fields.
"""

import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Optional, Protocol

from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session, select

from authserver.config import Settings
from authserver.database import init_db, make_engine
from authserver.errors import PersistenceError
from authserver.models.device import DeviceRecord

logger = logging.getLogger(__name__)

Snapshot = dict[str, dict]


class SnapshotStore(Protocol):
    def load(self) -> Optional[Snapshot]:
        """Return the stored snapshot, or None if nothing has been stored yet.

        Raises PersistenceError if the snapshot exists but cannot be read.
        """
        ...

    def save(self, snapshot: Snapshot) -> None:
        """Replace the stored snapshot. Raises PersistenceError on failure."""
        ...


class JsonFileSnapshotStore:
    """Whole registry in one JSON file, replaced atomically on every save."""

    def __init__(self, path: Path):
        self.path = Path(path)

    def load(self) -> Optional[Snapshot]:
        try:
            raw = self.path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return None
        except UnicodeDecodeError as e:
            raise PersistenceError(f"Corrupt snapshot {self.path}: not valid UTF-8") from e
        except OSError as e:
            raise PersistenceError(f"Cannot read {self.path}: {e}") from e

        try:
            data = json.loads(raw)
        except json.JSONDecodeError as e:
            raise PersistenceError(f"Corrupt snapshot {self.path}: {e}") from e
        if not isinstance(data, dict):
            raise PersistenceError(f"Corrupt snapshot {self.path}: expected an object")
        return data

    def save(self, snapshot: Snapshot) -> None:
        tmp_name = None
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(
                prefix=f".{self.path.name}.", suffix=".tmp", dir=self.path.parent
            )
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(snapshot, f, indent=2)
                f.flush()
                os.fsync(f.fileno())
            os.replace(tmp_name, self.path)
            tmp_name = None
        except OSError as e:
            raise PersistenceError(f"Cannot write {self.path}: {e}") from e
        finally:
            if tmp_name is not None:
                try:
                    os.unlink(tmp_name)
                except OSError:
                    logger.warning("Could not remove temp snapshot %s", tmp_name)


def _record_to_row(record: dict) -> DeviceRecord:
    return DeviceRecord(
        device_id=record["deviceId"],
        secret=record["secret"],
        status=record.get("status", "active"),
        registered_at=record["registeredAt"],
        last_auth_at=record.get("lastAuthAt"),
        auth_count=record.get("authCount", 0),
        revoked_at=record.get("revokedAt"),
        revoke_reason=record.get("revokeReason"),
        metadata_json=json.dumps(record.get("metadata") or {}),
    )


def _row_to_record(row: DeviceRecord) -> dict:
    return {
        "deviceId": row.device_id,
        "secret": row.secret,
        "status": row.status,
        "registeredAt": row.registered_at,
        "lastAuthAt": row.last_auth_at,
        "authCount": row.auth_count,
        "revokedAt": row.revoked_at,
        "revokeReason": row.revoke_reason,
        "metadata": json.loads(row.metadata_json or "{}"),
    }


def _describe(error: Exception) -> str:
    # str() of a SQLAlchemy error carries the bound row values, secrets included
    orig = getattr(error, "orig", None)
    if orig is not None:
        return f"{type(error).__name__}: {orig}"
    return type(error).__name__


class SqlSnapshotStore:
    """Registry snapshot as rows of the `devices` table.

    Each save replaces every row inside one transaction, so a failed save
    leaves the previous snapshot intact.
    """

    def __init__(self, db_path: Path, echo: bool = False):
        self.db_path = Path(db_path)
        self._engine = make_engine(self.db_path, echo=echo)
        self._initialized = False

    def _ensure_schema(self) -> None:
        if not self._initialized:
            init_db(self._engine)
            self._initialized = True

    def load(self) -> Optional[Snapshot]:
        existed = self.db_path.exists()
        try:
            self._ensure_schema()
            with Session(self._engine) as session:
                rows = session.exec(select(DeviceRecord)).all()
                if not rows and not existed:
                    return None
                return {row.device_id: _row_to_record(row) for row in rows}
        except (SQLAlchemyError, ValueError) as e:
            raise PersistenceError(f"Cannot read {self.db_path}: {_describe(e)}") from e

    def save(self, snapshot: Snapshot) -> None:
        try:
            self._ensure_schema()
            with Session(self._engine) as session:
                stored = session.exec(select(DeviceRecord)).all()
                for row in stored:
                    if row.device_id not in snapshot:
                        session.delete(row)
                for record in snapshot.values():
                    session.merge(_record_to_row(record))
                session.commit()
        except (SQLAlchemyError, KeyError) as e:
            raise PersistenceError(f"Cannot write {self.db_path}: {_describe(e)}") from e

    def close(self) -> None:
        self._engine.dispose()


def build_snapshot_store(settings: Settings) -> SnapshotStore:
    """Pick the store configured by `snapshot_backend`."""
    if settings.snapshot_backend == "sqlite":
        return SqlSnapshotStore(settings.db_path, echo=settings.debug)
    if settings.snapshot_backend == "json":
        return JsonFileSnapshotStore(settings.snapshot_path)
    raise ValueError(f"Unknown snapshot backend: {settings.snapshot_backend!r}")
