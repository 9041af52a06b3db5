"""
services.orphan_detector - Read-only consistency scans.

An orphan is a stored file nothing references; a dangling reference
names a file the store does not hold.  Neither scan takes key locks,
so a result may be stale by the time the caller acts on it.
"""

from __future__ import annotations

from typing import Optional

from sqlalchemy.orm import Session

from schema.cad_types import parse_category
from services.asset_store import AssetStore, get_store
from services.reference_index import ReferenceIndex


def list_orphans(session: Session, category, store: Optional[AssetStore] = None) -> list[str]:
    """Stored filenames in a category with zero references, sorted."""
    category = parse_category(category)
    store = store or get_store()
    stored = set(store.list(category))
    referenced = ReferenceIndex.referenced_filenames(session, category)
    return sorted(stored - referenced)


def list_dangling(session: Session, category, store: Optional[AssetStore] = None) -> list[dict]:
    """References in a category whose file is not stored."""
    category = parse_category(category)
    store = store or get_store()
    stored = set(store.list(category))
    return [
        row.to_dict()
        for row in ReferenceIndex.references_in_category(session, category)
        if row.file_name not in stored
    ]
