"""
archive_engine.report - Structured result of one archive expansion.

Every processed member lands in exactly one of extracted / skipped /
errors.  Conflicts are a subset of errors.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from schema.cad_types import Category


@dataclass
class ExpansionReport:
    archive: str = ""
    total_members: int = 0
    extracted: list[dict] = field(default_factory=list)   # [{member, fileName, category, reused}]
    skipped: list[dict] = field(default_factory=list)     # [{member, reason}]
    conflicts: list[dict] = field(default_factory=list)   # [{member, fileName, category}]
    errors: list[dict] = field(default_factory=list)      # [{member, kind, reason}]
    cancelled: bool = False

    def add_extracted(self, member: str, filename: str, category: Category,
                      reused: bool = False):
        self.extracted.append({
            "member": member,
            "fileName": filename,
            "category": category.value,
            "reused": reused,
        })

    def add_skipped(self, member: str, reason: str):
        self.skipped.append({"member": member, "reason": reason})

    def add_error(self, member: str, kind: str, reason: str):
        self.errors.append({"member": member, "kind": kind, "reason": reason})

    def add_conflict(self, member: str, filename: str, category: Category, reason: str):
        self.conflicts.append({
            "member": member,
            "fileName": filename,
            "category": category.value,
        })
        self.add_error(member, "conflict", reason)

    @property
    def files_extracted(self) -> int:
        return len(self.extracted)

    def to_dict(self) -> dict:
        return {
            "archive": self.archive,
            "total_members": self.total_members,
            "extracted": self.extracted,
            "skipped": self.skipped,
            "conflicts": self.conflicts,
            "errors": self.errors,
            "cancelled": self.cancelled,
        }
