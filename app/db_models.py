"""SQLAlchemy ORM models backing the persistent cache."""

from __future__ import annotations

from typing import Any

from sqlalchemy import JSON, BigInteger, String
from sqlalchemy.orm import Mapped, mapped_column

from .database import Base


class CacheEntryRecord(Base):
    """A cached provider answer stored under its namespaced query key."""

    __tablename__ = "cache_entries"

    key: Mapped[str] = mapped_column(String(512), primary_key=True)
    payload: Mapped[Any] = mapped_column(JSON, nullable=True)
    written_at: Mapped[int] = mapped_column(BigInteger)
