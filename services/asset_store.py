"""
services.asset_store - Durable storage of CAD file bytes.

Files are keyed by (category, filename) with one flat directory per
category under the library root:

    library/
        footprint/FOOT123.kicad_mod
        symbol/ABC.kicad_sym
        model/ABC.step
        ...

The store knows nothing about components.  It is the single writer of
bytes; callers serialise mutations of one key through services.key_locks.
"""

from __future__ import annotations

import hashlib
import io
import logging
import os
import tempfile
import zipfile
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, Optional

from schema.cad_types import Category, parse_category
from services.errors import InvalidName, NameConflict, NotFound

logger = logging.getLogger(__name__)

_TMP_PREFIX = ".upload-"


@dataclass
class StoredFile:
    category: Category
    filename: str
    size: int
    path: str                       # relative to the library root
    sha256: Optional[str] = None

    def to_dict(self) -> dict:
        return {
            "category": self.category.value,
            "name": self.filename,
            "size": self.size,
            "path": self.path,
            "sha256": self.sha256,
        }


def sha256_of(data: bytes) -> str:
    return hashlib.sha256(data).hexdigest()


def validate_filename(filename: str) -> str:
    """Reject names that are empty, hidden or contain a path."""
    name = (filename or "").strip()
    if not name or name in (".", ".."):
        raise InvalidName("Filename is empty", filename=filename)
    if "/" in name or "\\" in name or "\x00" in name:
        raise InvalidName(f"Filename may not contain a path: {filename!r}", filename=filename)
    if name.startswith("."):
        raise InvalidName(f"Filename may not start with a dot: {filename!r}", filename=filename)
    return name


class AssetStore:
    """Filesystem-backed asset store rooted at ``root``."""

    def __init__(self, root: str | Path):
        self.root = Path(root).resolve()
        for category in Category:
            (self.root / category.value).mkdir(parents=True, exist_ok=True)

    # ── Paths ──────────────────────────────────────────────────────────

    def category_dir(self, category) -> Path:
        return self.root / parse_category(category).value

    def path_for(self, category, filename: str) -> Path:
        return self.category_dir(category) / validate_filename(filename)

    def _stored(self, category: Category, filename: str, path: Path,
                sha256: Optional[str] = None) -> StoredFile:
        return StoredFile(
            category=category,
            filename=filename,
            size=path.stat().st_size,
            path=f"{category.value}/{filename}",
            sha256=sha256,
        )

    # ── Read ───────────────────────────────────────────────────────────

    def exists(self, category, filename: str) -> bool:
        return self.path_for(category, filename).is_file()

    def get(self, category, filename: str) -> bytes:
        path = self.path_for(category, filename)
        if not path.is_file():
            raise NotFound(f"File not found: {filename}",
                           category=category, filename=filename)
        return path.read_bytes()

    def stat(self, category, filename: str, *, with_hash: bool = False) -> StoredFile:
        category = parse_category(category)
        path = self.path_for(category, filename)
        if not path.is_file():
            raise NotFound(f"File not found: {filename}",
                           category=category, filename=filename)
        digest = sha256_of(path.read_bytes()) if with_hash else None
        return self._stored(category, filename, path, digest)

    def list(self, category) -> list[str]:
        """Filenames stored in a category.  Order is unspecified."""
        folder = self.category_dir(category)
        if not folder.exists():
            return []
        return [
            f.name for f in folder.iterdir()
            if f.is_file() and not f.name.startswith(".")
        ]

    # ── Write ──────────────────────────────────────────────────────────

    def put(self, category, filename: str, data: bytes, *,
            overwrite: bool = False) -> StoredFile:
        """
        Store bytes under (category, filename).

        Raises NameConflict if the name is taken and overwrite is False.
        Bytes land in a temp file first and are moved into place with a
        single os.replace, so readers never observe a half-written file.
        """
        category = parse_category(category)
        dest = self.path_for(category, filename)
        if dest.exists() and not overwrite:
            raise NameConflict(
                f'File "{filename}" already exists in the {category.value} directory',
                category=category, filename=filename,
            )

        fd, tmp = tempfile.mkstemp(prefix=_TMP_PREFIX, dir=dest.parent)
        try:
            with os.fdopen(fd, "wb") as fh:
                fh.write(data)
                fh.flush()
                os.fsync(fh.fileno())
            os.replace(tmp, dest)
        except BaseException:
            if os.path.exists(tmp):
                os.unlink(tmp)
            raise

        logger.info("Stored %s/%s (%d bytes)", category.value, filename, len(data))
        return self._stored(category, filename, dest, sha256_of(data))

    def rename(self, category, old_filename: str, new_filename: str) -> StoredFile:
        """Move bytes from one name to another within a category."""
        category = parse_category(category)
        src = self.path_for(category, old_filename)
        dst = self.path_for(category, new_filename)
        if not src.is_file():
            raise NotFound(f"File not found: {old_filename}",
                           category=category, filename=old_filename)
        if dst.exists():
            raise NameConflict(
                f'File "{new_filename}" already exists in the {category.value} directory',
                category=category, filename=new_filename,
            )
        os.rename(src, dst)
        logger.info("Renamed %s/%s -> %s", category.value, old_filename, new_filename)
        return self._stored(category, new_filename, dst)

    def delete(self, category, filename: str) -> bool:
        """Remove a file.  Deleting an absent file is not an error."""
        category = parse_category(category)
        path = self.path_for(category, filename)
        try:
            path.unlink()
        except FileNotFoundError:
            return False
        logger.info("Deleted %s/%s", category.value, filename)
        return True

    # ── Export ─────────────────────────────────────────────────────────

    def export_archive(self, entries: Iterable[tuple]) -> tuple[bytes, int]:
        """
        Bundle (category, filename) entries into an in-memory ZIP laid
        out as <category>/<filename>.  Missing files are skipped.

        Returns (zip bytes, number of files written).
        """
        buf = io.BytesIO()
        written = 0
        seen = set()
        with zipfile.ZipFile(buf, "w", zipfile.ZIP_DEFLATED) as zf:
            for category, filename in entries:
                category = parse_category(category)
                key = (category, filename)
                if key in seen:
                    continue
                seen.add(key)
                path = self.path_for(category, filename)
                if path.is_file():
                    zf.write(path, f"{category.value}/{filename}")
                    written += 1
        return buf.getvalue(), written


# ── Process-wide instance (set up once by the app factory) ──────────

_store: AssetStore | None = None


def init_store(root: str | Path) -> AssetStore:
    """Create the category directories and install the shared store."""
    global _store
    _store = AssetStore(root)
    return _store


def get_store() -> AssetStore:
    if _store is None:
        raise RuntimeError("Asset store not initialised - call init_store() first")
    return _store
