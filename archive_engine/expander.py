"""
archive_engine.expander - Top-level orchestrator.

Coordinates zip_reader → classifier → asset store → reference index
and produces a structured ExpansionReport.  Each extracted member is
stored and linked on its own, so one bad member never undoes another.
"""

from __future__ import annotations

import logging
import threading
from typing import Callable, Optional

from sqlalchemy.orm import Session

import config
from archive_engine.classifier import classify
from archive_engine.report import ExpansionReport
from archive_engine.zip_reader import MemberError, iter_members, open_archive, read_member
from db.engine import get_session
from services.asset_store import AssetStore, get_store
from services.errors import CardinalityViolation, DuplicateReference, InvalidName, NameConflict
from services.key_locks import KeyLocks, file_locks
from services.link_manager import store_and_link
from services.naming_policy import storage_name

logger = logging.getLogger(__name__)


def expand_archive(
    component_id: str,
    archive_name: str,
    data: bytes,
    *,
    store: Optional[AssetStore] = None,
    cancel: Optional[threading.Event] = None,
    session_factory: Optional[Callable[[], Session]] = None,
    locks: Optional[KeyLocks] = None,
    max_member_bytes: Optional[int] = None,
) -> ExpansionReport:
    """
    Extract every recognised member of a ZIP into the store and link it
    to ``component_id``.

    Parameters
    ----------
    component_id : component the extracted files are linked to
    archive_name : display name, copied into the report
    data : raw archive bytes
    cancel : checked between members; once set, the loop stops and the
             report is returned with cancelled=True

    Raises ArchiveError if the archive itself is unreadable.  Anything
    that goes wrong with a single member is recorded in the report.
    """
    store = store or get_store()
    session_factory = session_factory or get_session
    locks = locks or file_locks
    limit = max_member_bytes if max_member_bytes is not None else config.MAX_ARCHIVE_MEMBER_BYTES

    report = ExpansionReport(archive=archive_name)
    zf = open_archive(data)

    with zf:
        for member in iter_members(zf):
            if cancel is not None and cancel.is_set():
                report.cancelled = True
                logger.warning("Expansion of %s cancelled after %d member(s)",
                               archive_name, report.total_members)
                break

            report.total_members += 1
            category, skip_reason = classify(member.name, member.basename)
            if skip_reason:
                report.add_skipped(member.name, skip_reason)
                continue

            try:
                filename = storage_name(member.basename)
                payload = read_member(zf, member, limit)
            except InvalidName as exc:
                report.add_error(member.name, "invalid_name", exc.message)
                continue
            except MemberError as exc:
                report.add_error(member.name, exc.kind, exc.reason)
                continue

            try:
                reused = store_and_link(component_id, category, filename, payload,
                                        store=store, locks=locks,
                                        session_factory=session_factory)
            except NameConflict as exc:
                logger.warning("Archive member %s conflicts with stored %s/%s; kept existing",
                               member.name, category.value, filename)
                report.add_conflict(member.name, filename, category, exc.message)
                continue
            except (CardinalityViolation, DuplicateReference) as exc:
                report.add_error(member.name, type(exc).__name__, exc.message)
                continue
            except Exception as exc:
                logger.exception("Unexpected failure extracting %s from %s",
                                 member.name, archive_name)
                report.add_error(member.name, "unexpected", f"Unexpected: {exc}")
                continue

            report.add_extracted(member.name, filename, category, reused=reused)

    logger.info("Expanded %s for %s: %d extracted, %d skipped, %d error(s)",
                archive_name, component_id, len(report.extracted),
                len(report.skipped), len(report.errors))
    return report

