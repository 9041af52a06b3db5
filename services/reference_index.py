"""
services.reference_index - Component ↔ stored-file associations.

All session management is the caller's responsibility (open before,
commit/rollback after).  Every method only flushes, so a caller that
runs several of them and then commits gets all-or-nothing behaviour
from the surrounding transaction.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Optional

from sqlalchemy import func
from sqlalchemy.orm import Session

from db.models import ComponentFile
from schema.cad_types import (
    CadField, Category, FIELD_CATEGORY, is_multi_valued, parse_category, parse_field,
)
from services.errors import CardinalityViolation, DuplicateReference


# Every field is always present; order of each list is insertion order
ReferenceMap = dict[CadField, list[str]]


@dataclass
class ReferenceRow:
    component_id: str
    field: CadField
    file_name: str

    def to_dict(self) -> dict:
        return {
            "component_id": self.component_id,
            "field": self.field.value,
            "file_name": self.file_name,
        }


def empty_reference_map() -> ReferenceMap:
    return {f: [] for f in CadField}


class ReferenceIndex:

    # ── Read ───────────────────────────────────────────────────────────

    @staticmethod
    def list_references(session: Session, component_id: str) -> ReferenceMap:
        refs = empty_reference_map()
        rows = (
            session.query(ComponentFile)
            .filter(ComponentFile.component_id == component_id)
            .order_by(ComponentFile.id)
            .all()
        )
        for row in rows:
            refs[CadField(row.field)].append(row.file_name)
        return refs

    @staticmethod
    def find_components_referencing(session: Session, category, filename: str) -> list[str]:
        """Distinct component ids referencing a file, in first-reference order."""
        category = parse_category(category)
        rows = (
            session.query(ComponentFile.component_id)
            .filter(ComponentFile.category == category.value,
                    ComponentFile.file_name == filename)
            .order_by(ComponentFile.id)
            .all()
        )
        seen: dict[str, None] = {}
        for (cid,) in rows:
            seen.setdefault(cid, None)
        return list(seen)

    @staticmethod
    def referenced_filenames(session: Session, category) -> set[str]:
        category = parse_category(category)
        rows = (
            session.query(ComponentFile.file_name)
            .filter(ComponentFile.category == category.value)
            .distinct()
            .all()
        )
        return {name for (name,) in rows}

    @staticmethod
    def reference_counts(session: Session, category=None) -> dict[tuple[Category, str], int]:
        """(category, filename) → number of distinct referencing components."""
        query = session.query(
            ComponentFile.category,
            ComponentFile.file_name,
            func.count(func.distinct(ComponentFile.component_id)),
        )
        if category is not None:
            query = query.filter(ComponentFile.category == parse_category(category).value)
        rows = query.group_by(ComponentFile.category, ComponentFile.file_name).all()
        return {(Category(cat), name): count for cat, name, count in rows}

    @staticmethod
    def references_in_category(session: Session, category) -> list[ReferenceRow]:
        category = parse_category(category)
        rows = (
            session.query(ComponentFile)
            .filter(ComponentFile.category == category.value)
            .order_by(ComponentFile.file_name, ComponentFile.id)
            .all()
        )
        return [ReferenceRow(r.component_id, CadField(r.field), r.file_name) for r in rows]

    @staticmethod
    def references_to(session: Session, category, filename: str) -> list[ReferenceRow]:
        category = parse_category(category)
        rows = (
            session.query(ComponentFile)
            .filter(ComponentFile.category == category.value,
                    ComponentFile.file_name == filename)
            .order_by(ComponentFile.id)
            .all()
        )
        return [ReferenceRow(r.component_id, CadField(r.field), r.file_name) for r in rows]

    @staticmethod
    def components_sharing(session: Session, component_id: str) -> list[dict]:
        """Other components that reference any file this component references."""
        mine = (
            session.query(ComponentFile.category, ComponentFile.file_name)
            .filter(ComponentFile.component_id == component_id)
            .distinct()
            .all()
        )
        result = []
        for category, file_name in mine:
            others = (
                session.query(ComponentFile.component_id)
                .filter(ComponentFile.category == category,
                        ComponentFile.file_name == file_name,
                        ComponentFile.component_id != component_id)
                .distinct()
                .order_by(ComponentFile.component_id)
                .all()
            )
            for (other,) in others:
                result.append({
                    "component_id": other,
                    "file_type": category,
                    "file_name": file_name,
                })
        result.sort(key=lambda r: (r["file_type"], r["file_name"], r["component_id"]))
        return result

    # ── Write ──────────────────────────────────────────────────────────

    @staticmethod
    def add_reference(session: Session, component_id: str, field, filename: str) -> ComponentFile:
        """
        Append (multi-valued) or set (single-valued) a reference.

        A single-valued field that already holds an entry always raises
        CardinalityViolation, even when the filename is the same one.
        """
        field = parse_field(field)
        category = FIELD_CATEGORY[field]
        existing = (
            session.query(ComponentFile)
            .filter(ComponentFile.component_id == component_id,
                    ComponentFile.field == field.value)
            .order_by(ComponentFile.id)
            .all()
        )

        if not is_multi_valued(field) and existing:
            raise CardinalityViolation(
                f"{field.value} already holds {existing[0].file_name!r}; "
                f"unlink it before linking another file",
                category=category, filename=filename,
                component_id=component_id, field=field,
            )
        if any(r.file_name == filename for r in existing):
            raise DuplicateReference(
                f"{filename!r} is already linked to {field.value}",
                category=category, filename=filename,
                component_id=component_id, field=field,
            )

        row = ComponentFile(
            component_id=component_id,
            field=field.value,
            category=category.value,
            file_name=filename,
        )
        session.add(row)
        session.flush()
        return row

    @staticmethod
    def remove_reference(session: Session, component_id: str, field, filename: str) -> bool:
        """Remove one reference.  Removing an absent reference is a no-op."""
        field = parse_field(field)
        deleted = (
            session.query(ComponentFile)
            .filter(ComponentFile.component_id == component_id,
                    ComponentFile.field == field.value,
                    ComponentFile.file_name == filename)
            .delete(synchronize_session=False)
        )
        session.flush()
        return deleted > 0

    @staticmethod
    def remove_all_references(session: Session, category, filename: str) -> list[str]:
        """Drop every reference to a file.  Returns the affected component ids."""
        category = parse_category(category)
        affected = ReferenceIndex.find_components_referencing(session, category, filename)
        (
            session.query(ComponentFile)
            .filter(ComponentFile.category == category.value,
                    ComponentFile.file_name == filename)
            .delete(synchronize_session=False)
        )
        session.flush()
        return affected

    @staticmethod
    def rewrite_filename(
        session: Session,
        category,
        old_filename: str,
        new_filename: str,
        component_ids: Optional[Iterable[str]] = None,
    ) -> list[str]:
        """
        Point references from old_filename to new_filename.

        component_ids=None targets every referencing component.  All row
        changes happen in the caller's transaction.  If a component
        already holds new_filename in the same field, its old row is
        dropped instead of producing a duplicate.

        Returns the ids of the components that were updated.
        """
        category = parse_category(category)
        query = session.query(ComponentFile).filter(
            ComponentFile.category == category.value,
            ComponentFile.file_name == old_filename,
        )
        if component_ids is not None:
            ids = list(component_ids)
            if not ids:
                return []
            query = query.filter(ComponentFile.component_id.in_(ids))

        rows = query.order_by(ComponentFile.id).all()
        if not rows:
            return []

        holders = {
            (cid, fld)
            for cid, fld in session.query(ComponentFile.component_id, ComponentFile.field)
            .filter(ComponentFile.category == category.value,
                    ComponentFile.file_name == new_filename,
                    ComponentFile.component_id.in_(sorted({r.component_id for r in rows})))
            .all()
        }

        updated: dict[str, None] = {}
        for row in rows:
            if (row.component_id, row.field) in holders:
                session.delete(row)
            else:
                row.file_name = new_filename
            updated.setdefault(row.component_id, None)

        session.flush()
        return list(updated)
