"""
services.file_coordinator - Ordered rename / delete across store and index.

Each operation runs Resolve → Validate → Mutate → Report while holding
the key locks of every (category, filename) it touches.  Validation
failures leave everything untouched.  The only window where the store
and the index can disagree is a physical rename whose database step
failed after the bytes moved; re-running the same rename detects that
state (old name gone, new name present, references still on the old
name) and finishes the reference rewrite.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Optional, Union

from sqlalchemy.orm import Session

from db.engine import get_session
from schema.cad_types import Category, parse_category
from services.asset_store import AssetStore, get_store, validate_filename
from services.errors import NameConflict, NotFound
from services.key_locks import KeyLocks, file_key, file_locks
from services.reference_index import ReferenceIndex

logger = logging.getLogger(__name__)


class RenameMode(str, Enum):
    PHYSICAL = "physical"
    LOGICAL  = "logical"


@dataclass
class RenameOperation:
    category: Category
    old_filename: str
    new_filename: str
    mode: RenameMode = RenameMode.PHYSICAL
    component_ids: Optional[list[str]] = None      # None → every referencing component


@dataclass
class DeleteOperation:
    category: Category
    filename: str


@dataclass
class OperationResult:
    updated_components: int = 0
    component_ids: list[str] = field(default_factory=list)
    mode: str = ""
    resumed: bool = False

    def to_dict(self) -> dict:
        return {
            "updatedComponents": self.updated_components,
            "componentIds": self.component_ids,
            "mode": self.mode,
            "resumed": self.resumed,
        }


class FileCoordinator:

    def __init__(
        self,
        store: Optional[AssetStore] = None,
        locks: Optional[KeyLocks] = None,
        session_factory: Optional[Callable[[], Session]] = None,
    ):
        self.store = store or get_store()
        self.locks = locks or file_locks
        self.session_factory = session_factory or get_session

    # ── Dispatch ───────────────────────────────────────────────────────

    def execute(self, op: Union[RenameOperation, DeleteOperation]) -> OperationResult:
        if isinstance(op, DeleteOperation):
            return self.delete(op.category, op.filename)
        if RenameMode(op.mode) is RenameMode.LOGICAL:
            return self.rename_logical(op.category, op.old_filename,
                                       op.new_filename, op.component_ids)
        return self.rename_physical(op.category, op.old_filename, op.new_filename)

    # ── Physical rename ────────────────────────────────────────────────

    def rename_physical(self, category, old_filename: str, new_filename: str) -> OperationResult:
        """
        Move the bytes, then point every reference at the new name.
        Always cascades to all referencing components.
        """
        category = parse_category(category)
        old_filename = validate_filename(old_filename)
        new_filename = validate_filename(new_filename)
        if old_filename == new_filename:
            return OperationResult(mode=RenameMode.PHYSICAL.value)

        with self.locks.hold(file_key(category, old_filename),
                             file_key(category, new_filename)):
            session = self.session_factory()
            try:
                result = self._rename_physical(session, category, old_filename, new_filename)
                session.commit()
            except Exception:
                session.rollback()
                raise
            finally:
                session.close()

        logger.info("Physical rename %s/%s -> %s updated %d component(s)",
                    category.value, old_filename, new_filename, result.updated_components)
        return result

    def _rename_physical(self, session: Session, category: Category,
                         old_filename: str, new_filename: str) -> OperationResult:
        # Resolve
        referencing = ReferenceIndex.find_components_referencing(session, category, old_filename)
        old_present = self.store.exists(category, old_filename)
        new_present = self.store.exists(category, new_filename)

        # Validate
        resumed = False
        if not old_present and not referencing:
            raise NotFound(f"File not found: {old_filename}",
                           category=category, filename=old_filename)
        if old_present and new_present:
            raise NameConflict(
                f'File "{new_filename}" already exists in the {category.value} directory',
                category=category, filename=new_filename,
            )
        if not old_present and new_present:
            resumed = True
            logger.warning("Resuming rename %s/%s -> %s: bytes already moved, "
                           "rewriting %d reference(s)",
                           category.value, old_filename, new_filename, len(referencing))
        elif not old_present:
            logger.warning("No stored bytes for %s/%s; rewriting references only",
                           category.value, old_filename)

        # Mutate: bytes first so a filesystem failure aborts before any DB write
        if old_present:
            self.store.rename(category, old_filename, new_filename)
        try:
            updated = ReferenceIndex.rewrite_filename(session, category, old_filename, new_filename)
            session.flush()
        except Exception:
            if old_present:
                logger.error("Rename %s/%s -> %s interrupted after moving bytes; "
                             "retry the same rename to finish it",
                             category.value, old_filename, new_filename)
            raise

        return OperationResult(
            updated_components=len(updated),
            component_ids=updated,
            mode=RenameMode.PHYSICAL.value,
            resumed=resumed,
        )

    # ── Logical rename ─────────────────────────────────────────────────

    def rename_logical(
        self,
        category,
        old_filename: str,
        new_filename: str,
        component_ids: Optional[list[str]] = None,
    ) -> OperationResult:
        """
        Rewrite references for a subset of components without touching
        the stored bytes.  The selected components may end up naming a
        file that does not exist under that name; that divergence is the
        point of the operation.

        When the selection covers every referencing component, the old
        bytes exist and the new name is free, the rename is carried out
        physically instead so the store and index stay in step.
        """
        category = parse_category(category)
        old_filename = validate_filename(old_filename)
        new_filename = validate_filename(new_filename)
        if old_filename == new_filename:
            return OperationResult(mode=RenameMode.LOGICAL.value)

        with self.locks.hold(file_key(category, old_filename),
                             file_key(category, new_filename)):
            session = self.session_factory()
            try:
                referencing = ReferenceIndex.find_components_referencing(
                    session, category, old_filename)
                old_present = self.store.exists(category, old_filename)
                if not referencing and not old_present:
                    raise NotFound(f"File not found: {old_filename}",
                                   category=category, filename=old_filename)

                if component_ids is None:
                    targets = referencing
                else:
                    wanted = set(component_ids)
                    targets = [cid for cid in referencing if cid in wanted]

                covers_all = bool(referencing) and len(targets) == len(referencing)
                if covers_all and old_present and not self.store.exists(category, new_filename):
                    result = self._rename_physical(session, category, old_filename, new_filename)
                else:
                    updated = ReferenceIndex.rewrite_filename(
                        session, category, old_filename, new_filename, targets)
                    result = OperationResult(
                        updated_components=len(updated),
                        component_ids=updated,
                        mode=RenameMode.LOGICAL.value,
                    )
                session.commit()
            except Exception:
                session.rollback()
                raise
            finally:
                session.close()

            if result.mode == RenameMode.LOGICAL.value and result.updated_components \
                    and not self.store.exists(category, new_filename):
                logger.warning("Logical rename %s/%s -> %s: %d component(s) now name "
                               "a file that is not stored",
                               category.value, old_filename, new_filename,
                               result.updated_components)

        logger.info("%s rename %s/%s -> %s updated %d component(s)",
                    result.mode.capitalize(), category.value, old_filename,
                    new_filename, result.updated_components)
        return result

    # ── Delete ─────────────────────────────────────────────────────────

    def delete(self, category, filename: str) -> OperationResult:
        """
        Drop every reference, then the bytes.  Referencing components
        are expected and handled, never a conflict.  Deleting something
        that is neither stored nor referenced is a no-op.
        """
        category = parse_category(category)
        filename = validate_filename(filename)

        with self.locks.hold(file_key(category, filename)):
            session = self.session_factory()
            try:
                affected = ReferenceIndex.remove_all_references(session, category, filename)
                session.commit()
            except Exception:
                session.rollback()
                raise
            finally:
                session.close()

            # A failure here leaves an unreferenced file: an orphan, never
            # a dangling reference.
            self.store.delete(category, filename)

        logger.info("Deleted %s/%s, removed references from %d component(s)",
                    category.value, filename, len(affected))
        return OperationResult(
            updated_components=len(affected),
            component_ids=affected,
            mode="delete",
        )
