"""
db.models - SQLAlchemy ORM declarations.

Tables
------
component_files - one row per (component, field, filename) reference.
                  The autoincrement id doubles as insertion order, which
                  is the display order of multi-valued fields.  Component
                  ids are opaque keys owned by the external catalog.
"""

from __future__ import annotations

from datetime import datetime, timezone

from sqlalchemy import (
    Column, String, Integer, DateTime, Index, UniqueConstraint,
)
from sqlalchemy.orm import DeclarativeBase


class Base(DeclarativeBase):
    pass


class ComponentFile(Base):
    __tablename__ = "component_files"

    id           = Column(Integer, primary_key=True, autoincrement=True)
    component_id = Column(String(200), nullable=False, index=True)
    field        = Column(String(32), nullable=False)
    category     = Column(String(32), nullable=False)
    file_name    = Column(String(300), nullable=False)

    # ── Timestamps ─────────────────────────────────────────────────────
    created_at = Column(DateTime, default=lambda: datetime.now(timezone.utc))
    updated_at = Column(DateTime, default=lambda: datetime.now(timezone.utc),
                        onupdate=lambda: datetime.now(timezone.utc))

    __table_args__ = (
        UniqueConstraint("component_id", "field", "file_name",
                         name="uq_component_field_file"),
        Index("ix_category_file", "category", "file_name"),
    )
