"""
services.link_manager - Attach / detach stored files on a component field.

Linking never creates bytes and unlinking never removes them; a file
left unreferenced by an unlink becomes an orphan until someone deletes
it explicitly.
"""

from __future__ import annotations

import logging
from typing import Callable, Optional

from sqlalchemy.orm import Session

from db.engine import get_session
from schema.cad_types import CATEGORY_FIELD, FIELD_CATEGORY, parse_category, parse_field
from services.asset_store import AssetStore, get_store, sha256_of, validate_filename
from services.errors import NameConflict, NotFound
from services.key_locks import KeyLocks, field_key, file_key, file_locks
from services.reference_index import ReferenceIndex

logger = logging.getLogger(__name__)


def link(
    component_id: str,
    field,
    filename: str,
    *,
    store: Optional[AssetStore] = None,
    locks: Optional[KeyLocks] = None,
    session_factory: Optional[Callable[[], Session]] = None,
) -> dict:
    """
    Reference an existing stored file from a component field.

    Raises NotFound when the file is not stored, CardinalityViolation
    when a single-valued field is occupied and DuplicateReference when
    the field already lists the file.
    """
    field = parse_field(field)
    category = FIELD_CATEGORY[field]
    filename = validate_filename(filename)
    store = store or get_store()
    locks = locks or file_locks
    session_factory = session_factory or get_session

    # The file key keeps a concurrent delete from removing the bytes
    # between the existence check and the commit.
    with locks.hold(file_key(category, filename), field_key(component_id, field)):
        if not store.exists(category, filename):
            raise NotFound(f"File not found: {filename}", category=category,
                           filename=filename, component_id=component_id, field=field)
        session = session_factory()
        try:
            ReferenceIndex.add_reference(session, component_id, field, filename)
            session.commit()
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

    logger.info("Linked %s/%s to %s.%s", category.value, filename, component_id, field.value)
    return {
        "component_id": component_id,
        "field": field.value,
        "fileName": filename,
        "linked": True,
    }


def unlink(
    component_id: str,
    field,
    filename: str,
    *,
    locks: Optional[KeyLocks] = None,
    session_factory: Optional[Callable[[], Session]] = None,
) -> dict:
    """Drop one reference.  Unlinking an absent reference is a no-op."""
    field = parse_field(field)
    locks = locks or file_locks
    session_factory = session_factory or get_session

    with locks.hold(field_key(component_id, field)):
        session = session_factory()
        try:
            removed = ReferenceIndex.remove_reference(session, component_id, field, filename)
            session.commit()
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

    if removed:
        logger.info("Unlinked %s from %s.%s", filename, component_id, field.value)
    return {
        "component_id": component_id,
        "field": field.value,
        "fileName": filename,
        "removed": removed,
        "file_kept": True,
    }


# ── Store + link (upload and archive paths) ──────────────────────────

def store_or_reuse(store: AssetStore, category, filename: str, data: bytes) -> bool:
    """
    Put bytes under a fresh name.  If the name is taken by identical
    bytes the stored file is reused and True is returned; different
    bytes raise NameConflict and the stored file is left alone.
    Caller holds the file key.
    """
    try:
        store.put(category, filename, data)
        return False
    except NameConflict:
        existing = store.stat(category, filename, with_hash=True)
        if existing.sha256 != sha256_of(data):
            raise
        logger.info("Reusing identical %s/%s", existing.category.value, filename)
        return True


def store_and_link(
    component_id: str,
    category,
    filename: str,
    data: bytes,
    *,
    store: Optional[AssetStore] = None,
    locks: Optional[KeyLocks] = None,
    session_factory: Optional[Callable[[], Session]] = None,
) -> bool:
    """
    Store bytes and reference them from the category's field, holding
    both keys for the whole step.  Returns True when existing identical
    bytes were reused.

    A failed link leaves the stored file in place (it shows up in the
    pickers and as an orphan).
    """
    category = parse_category(category)
    field = CATEGORY_FIELD[category]
    store = store or get_store()
    locks = locks or file_locks
    session_factory = session_factory or get_session

    with locks.hold(file_key(category, filename), field_key(component_id, field)):
        reused = store_or_reuse(store, category, filename, data)
        session = session_factory()
        try:
            ReferenceIndex.add_reference(session, component_id, field, filename)
            session.commit()
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()
    return reused
