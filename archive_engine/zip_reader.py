"""
archive_engine.zip_reader - Low-level ZIP reading.

Responsibilities:
  • Opening the archive from bytes (bad / truncated archives → ArchiveError)
  • Iterating file members (directories are not members)
  • Bounded member reads (oversize / encrypted / corrupt → MemberError)
"""

from __future__ import annotations

import io
import posixpath
import zipfile
import zlib
from dataclasses import dataclass
from typing import Iterator


class ArchiveError(Exception):
    """Raised when the archive as a whole cannot be read."""
    pass


class MemberError(Exception):
    """Raised when one member cannot be read."""

    def __init__(self, kind: str, reason: str):
        super().__init__(reason)
        self.kind = kind
        self.reason = reason


@dataclass
class ArchiveMember:
    name: str          # path inside the archive, as stored
    basename: str      # last path component; the only part ever used on disk
    size: int          # uncompressed size declared in the directory
    info: zipfile.ZipInfo


def open_archive(data: bytes) -> zipfile.ZipFile:
    try:
        return zipfile.ZipFile(io.BytesIO(data))
    except (zipfile.BadZipFile, zipfile.LargeZipFile, OSError) as exc:
        raise ArchiveError(f"Not a readable ZIP archive: {exc}") from exc


def iter_members(zf: zipfile.ZipFile) -> Iterator[ArchiveMember]:
    for info in zf.infolist():
        if info.is_dir():
            continue
        name = info.filename
        # Windows-built archives sometimes use backslashes
        basename = posixpath.basename(name.replace("\\", "/"))
        yield ArchiveMember(name=name, basename=basename, size=info.file_size, info=info)


def read_member(zf: zipfile.ZipFile, member: ArchiveMember, limit: int) -> bytes:
    """Read one member, refusing anything larger than ``limit`` bytes."""
    if member.size > limit:
        raise MemberError("too_large",
                          f"Member is {member.size} bytes, limit is {limit}")
    try:
        with zf.open(member.info) as fh:
            data = fh.read(limit + 1)
    except RuntimeError as exc:                       # encrypted member
        raise MemberError("unreadable", str(exc)) from exc
    except (zipfile.BadZipFile, zlib.error, NotImplementedError, OSError) as exc:
        raise MemberError("unreadable", f"Corrupt member: {exc}") from exc

    # The directory can understate the real size
    if len(data) > limit:
        raise MemberError("too_large", f"Member exceeds the {limit}-byte limit")
    return data
