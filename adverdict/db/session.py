"""Database engine helpers."""

from __future__ import annotations

import functools
import os

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine


DEFAULT_DATABASE_URL = "postgresql://user:pass@db:5432/adverdict"


def database_url() -> str:
    return os.environ.get("DATABASE_URL", DEFAULT_DATABASE_URL)


def create_engine_from_env() -> Engine:
    """Create a fresh engine from the DATABASE_URL environment variable."""
    return create_engine(database_url(), pool_pre_ping=True, future=True)


@functools.lru_cache(maxsize=None)
def shared_engine(url: str) -> Engine:
    """One pooled engine per URL for the life of the API process."""
    return create_engine(url, pool_pre_ping=True, future=True)
