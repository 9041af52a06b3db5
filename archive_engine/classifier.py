"""
archive_engine.classifier - Decide what happens to one archive member.

Returns the target category for members worth extracting, or the
reason the member is skipped.
"""

from __future__ import annotations

from typing import Optional

from schema.cad_types import Category, category_for_filename

SKIP_HIDDEN   = "hidden file"
SKIP_METADATA = "archive metadata"
SKIP_NESTED   = "nested archive"
SKIP_UNKNOWN  = "unrecognised extension"


def classify(name: str, basename: str) -> tuple[Optional[Category], Optional[str]]:
    """Return (category, None) to extract or (None, skip reason)."""
    parts = name.replace("\\", "/").split("/")
    if "__MACOSX" in parts:
        return None, SKIP_METADATA
    if not basename or basename.startswith("."):
        return None, SKIP_HIDDEN

    category = category_for_filename(basename)
    if category is None:
        return None, SKIP_UNKNOWN
    if category is Category.ARCHIVE:
        return None, SKIP_NESTED
    return category, None
