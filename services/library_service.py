"""
services.library_service - Read-only views over the file library.

Listings, search, pickers and statistics combine the asset store with
the reference index.  Nothing here takes key locks or mutates state;
session management is the caller's responsibility.
"""

from __future__ import annotations

from typing import Optional

from sqlalchemy.orm import Session

import config
from schema.cad_types import FIELD_CATEGORY, Category, parse_category
from services.asset_store import AssetStore, get_store
from services.errors import NotFound
from services.reference_index import ReferenceIndex


def _categories(category=None) -> list[Category]:
    if category:
        return [parse_category(category)]
    return list(Category)


class LibraryService:

    # ── Per component ──────────────────────────────────────────────────

    @staticmethod
    def list_component_files(session: Session, component_id: str,
                             store: Optional[AssetStore] = None) -> dict[str, list[dict]]:
        """
        Every file a component references, grouped by category.  Entries
        whose bytes are missing are listed with exists=False.
        """
        store = store or get_store()
        refs = ReferenceIndex.list_references(session, component_id)
        files: dict[str, list[dict]] = {}
        for field, names in refs.items():
            category = FIELD_CATEGORY[field]
            entries = []
            for name in names:
                try:
                    size, exists = store.stat(category, name).size, True
                except NotFound:
                    size, exists = 0, False
                entries.append({
                    "name": name,
                    "size": size,
                    "path": f"{category.value}/{name}",
                    "exists": exists,
                })
            files[category.value] = entries
        return files

    @staticmethod
    def export_component_files(session: Session, component_id: str,
                               store: Optional[AssetStore] = None) -> bytes:
        """ZIP of every stored file the component references."""
        store = store or get_store()
        refs = ReferenceIndex.list_references(session, component_id)
        entries = [
            (FIELD_CATEGORY[field], name)
            for field, names in refs.items()
            for name in names
        ]
        data, written = store.export_archive(entries)
        if not written:
            raise NotFound(f"No files found for component {component_id}",
                           component_id=component_id)
        return data

    @staticmethod
    def components_by_file(session: Session, category, filename: str) -> list[dict]:
        """Components referencing one file, with the field they use."""
        category = parse_category(category)
        return [
            {"component_id": row.component_id, "field": row.field.value}
            for row in ReferenceIndex.references_to(session, category, filename)
        ]

    # ── Library views ──────────────────────────────────────────────────

    @staticmethod
    def files_by_type(session: Session, category,
                      store: Optional[AssetStore] = None) -> list[dict]:
        """Stored files of a category with their reference counts, by name."""
        category = parse_category(category)
        store = store or get_store()
        counts = ReferenceIndex.reference_counts(session, category)
        files = []
        for name in sorted(store.list(category), key=str.lower):
            try:
                size = store.stat(category, name).size
            except NotFound:
                continue            # deleted while listing
            files.append({
                "name": name,
                "category": category.value,
                "size": size,
                "componentCount": counts.get((category, name), 0),
            })
        return files

    @staticmethod
    def search_files(session: Session, query: str = "", category=None,
                     store: Optional[AssetStore] = None,
                     limit: Optional[int] = None) -> list[dict]:
        """Case-insensitive substring match on stored filenames."""
        store = store or get_store()
        limit = limit or config.SEARCH_LIMIT
        needle = (query or "").strip().lower()
        counts = ReferenceIndex.reference_counts(session)

        results = []
        for cat in _categories(category):
            for name in sorted(store.list(cat), key=str.lower):
                if needle and needle not in name.lower():
                    continue
                results.append({
                    "name": name,
                    "category": cat.value,
                    "componentCount": counts.get((cat, name), 0),
                })
                if len(results) >= limit:
                    return results
        return results

    @staticmethod
    def available_files(session: Session, category=None, query: str = "",
                        store: Optional[AssetStore] = None,
                        limit: Optional[int] = None) -> list[dict]:
        """
        Picker entries for linking existing files.  The archive category
        has no field and is never offered.
        """
        store = store or get_store()
        limit = limit or config.SEARCH_LIMIT
        needle = (query or "").strip().lower()
        counts = ReferenceIndex.reference_counts(session)

        entries = []
        for cat in _categories(category):
            if cat is Category.ARCHIVE:
                continue
            for name in sorted(store.list(cat), key=str.lower):
                if needle and needle not in name.lower():
                    continue
                entries.append({
                    "id": f"{cat.value}/{name}",
                    "file_name": name,
                    "file_type": cat.value,
                    "component_count": counts.get((cat, name), 0),
                })
                if len(entries) >= limit:
                    return entries
        return entries

    @staticmethod
    def file_stats(session: Session, store: Optional[AssetStore] = None) -> dict:
        """Per-category counts of stored, referenced and orphaned files."""
        store = store or get_store()
        stats = {}
        total = 0
        for cat in Category:
            stored = set(store.list(cat))
            referenced = ReferenceIndex.referenced_filenames(session, cat)
            stats[cat.value] = {
                "files": len(stored),
                "referenced": len(stored & referenced),
                "orphans": len(stored - referenced),
                "dangling": len(referenced - stored),
            }
            total += len(stored)
        return {"categories": stats, "total": total}
