"""
services.upload_service - Per-component file upload flow.

Each uploaded file is handled on its own:
  • .zip        → archive_engine, falling back to storing the archive
                  as-is when nothing usable comes out of it
  • known ext   → stored (identical bytes reused) and linked
  • anything else → reported, never stored
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from typing import Callable, Iterable, Optional

from sqlalchemy.orm import Session
from archive_engine import ArchiveError, ExpansionReport, expand_archive
from schema.cad_types import Category, category_for_filename, supported_extensions
from services.asset_store import AssetStore, get_store
from services.errors import CadAssetError, InvalidName, NameConflict
from services.key_locks import KeyLocks, file_key, file_locks
from services.link_manager import store_and_link, store_or_reuse
from services.naming_policy import storage_name

logger = logging.getLogger(__name__)


@dataclass
class UploadedFile:
    filename: str
    data: bytes


@dataclass
class UploadResult:
    filename: str
    type: str = "regular"                       # "regular" | "archive"
    category: Optional[Category] = None
    reused: bool = False
    files_extracted: Optional[int] = None
    report: Optional[ExpansionReport] = None
    error: Optional[str] = None
    note: Optional[str] = None
    supported: Optional[list[str]] = None

    def to_dict(self) -> dict:
        d = {"filename": self.filename, "type": self.type}
        if self.category is not None:
            d["category"] = self.category.value
            d["reused"] = self.reused
        if self.files_extracted is not None:
            d["filesExtracted"] = self.files_extracted
        if self.report is not None:
            d["report"] = self.report.to_dict()
        if self.error is not None:
            d["error"] = self.error
        if self.note is not None:
            d["note"] = self.note
        if self.supported is not None:
            d["supported"] = self.supported
        return d


def upload_files(
    component_id: str,
    files: Iterable[UploadedFile],
    *,
    cancel: Optional[threading.Event] = None,
    store: Optional[AssetStore] = None,
    locks: Optional[KeyLocks] = None,
    session_factory: Optional[Callable[[], Session]] = None,
) -> list[UploadResult]:
    """
    Store and link every file for one component.

    Failures are reported per file; one bad file never stops the others.
    Once ``cancel`` is set, the files not yet started are reported as
    cancelled.
    """
    store = store or get_store()
    locks = locks or file_locks
    results: list[UploadResult] = []

    for upload in files:
        result = UploadResult(filename=upload.filename or "")
        results.append(result)

        if cancel is not None and cancel.is_set():
            result.error = "cancelled"
            continue
        try:
            name = storage_name(upload.filename)
        except InvalidName:
            result.error = "Invalid filename"
            continue
        result.filename = name

        category = category_for_filename(name)
        if category is None:
            result.error = "Unknown file type"
            result.supported = supported_extensions()
            continue

        if category is Category.ARCHIVE:
            _upload_archive(result, component_id, name, upload.data,
                            store, locks, session_factory, cancel)
            continue

        result.category = category
        try:
            result.reused = store_and_link(component_id, category, name, upload.data,
                                           store=store, locks=locks,
                                           session_factory=session_factory)
        except CadAssetError as exc:
            result.error = exc.message
            continue
        logger.info("Uploaded %s/%s for %s%s", category.value, name, component_id,
                    " (reused)" if result.reused else "")

    return results


def _upload_archive(
    result: UploadResult,
    component_id: str,
    name: str,
    data: bytes,
    store: AssetStore,
    locks: KeyLocks,
    session_factory: Optional[Callable[[], Session]],
    cancel: Optional[threading.Event],
) -> None:
    result.type = "archive"
    try:
        report = expand_archive(component_id, name, data, store=store, cancel=cancel,
                                session_factory=session_factory, locks=locks)
    except ArchiveError as exc:
        logger.warning("Could not open %s: %s", name, exc)
        _keep_archive(result, name, data, store, locks,
                      f"{exc}; stored as-is in the archive library")
        return

    result.report = report
    result.files_extracted = report.files_extracted
    if not report.extracted and not report.errors and not report.cancelled:
        _keep_archive(result, name, data, store, locks,
                      "No CAD files found in archive; stored as-is in the archive library")


def _keep_archive(result: UploadResult, name: str, data: bytes,
                  store: AssetStore, locks: KeyLocks, message: str) -> None:
    with locks.hold(file_key(Category.ARCHIVE, name)):
        try:
            result.reused = store_or_reuse(store, Category.ARCHIVE, name, data)
        except NameConflict as exc:
            result.error = exc.message
            return
    result.category = Category.ARCHIVE
    result.note = message
