"""Database helpers for the cart service."""
from __future__ import annotations

import os
from pathlib import Path

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker

from .models import Base

_DEFAULT_DB_PATH = Path(__file__).resolve().parents[4] / "var" / "cartstream.db"


def _resolve_engine() -> Engine:
    url = os.getenv("CARTSTREAM_DB_URL")
    if url:
        return create_engine(url, echo=False, future=True)

    sqlite_path = Path(os.getenv("CARTSTREAM_DB_PATH", str(_DEFAULT_DB_PATH)))
    sqlite_path.parent.mkdir(parents=True, exist_ok=True)
    return create_engine(
        f"sqlite:///{sqlite_path}",
        echo=False,
        future=True,
        connect_args={"check_same_thread": False},
    )


ENGINE = _resolve_engine()

SessionFactory = sessionmaker(bind=ENGINE, expire_on_commit=False, class_=Session)


def init_db() -> None:
    """Initialise tables if they do not exist."""
    Base.metadata.create_all(ENGINE)
