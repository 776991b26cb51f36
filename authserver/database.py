"""Database connection and initialization for the SQLite snapshot store."""

from pathlib import Path

from sqlalchemy.engine import Engine
from sqlmodel import SQLModel, create_engine

# Import all models so SQLModel registers them
import authserver.models  # noqa: F401


def make_engine(db_path: Path, echo: bool = False) -> Engine:
    return create_engine(
        f"sqlite:///{db_path}",
        echo=echo,
        hide_parameters=True,
        connect_args={"check_same_thread": False},
    )


def init_db(engine: Engine) -> None:
    """Create all tables and enable WAL mode."""
    SQLModel.metadata.create_all(engine)

    with engine.connect() as conn:
        conn.exec_driver_sql("PRAGMA journal_mode=WAL")
        conn.exec_driver_sql("PRAGMA synchronous=FULL")
        conn.commit()
