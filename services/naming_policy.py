"""
services.naming_policy - Canonical filename derivation.

Pure functions, no I/O.  The results are suggestions shown to the
operator; nothing here renames a file by itself.
"""

from __future__ import annotations

import os
import re
from dataclasses import dataclass
from typing import Optional

from schema.cad_types import extensions_for, parse_category
from services.asset_store import validate_filename
from services.errors import InvalidName

# IPC-7351 density levels: Most / Nominal / Least
DENSITY_SUFFIXES = ("-M", "-N", "-L")

_ILLEGAL = re.compile(r'[<>:"/\\|?*\x00-\x1f]')
_SPACE = re.compile(r"\s+")
_UNDERSCORES = re.compile(r"_+")


@dataclass(frozen=True)
class NameParts:
    base: str
    suffix: str
    ext: str


def sanitize(value: str) -> str:
    """Make a string safe as a filename stem."""
    text = _ILLEGAL.sub("_", str(value or "").strip())
    text = _SPACE.sub("_", text)
    text = _UNDERSCORES.sub("_", text).strip("_")
    if not text:
        raise InvalidName(f"Nothing left of {value!r} after sanitising")
    return text


def storage_name(filename: str) -> str:
    """
    Name an incoming file is stored under, for direct uploads and archive
    members alike.  Any directory part is dropped, the stem is sanitised
    and the extension is kept as given.
    """
    base = re.split(r"[\\/]", filename or "")[-1].strip()
    stem, ext = os.path.splitext(base)
    if not stem or base.startswith("."):
        raise InvalidName(f"Invalid filename: {filename!r}", filename=filename)
    return validate_filename(f"{sanitize(stem)}{ext}")


def extract_density_suffix(filename: str) -> NameParts:
    """
    Split "SOT23-M.kicad_mod" → ("SOT23", "-M", ".kicad_mod").
    Without a recognised suffix the whole stem is the base.
    """
    stem, ext = os.path.splitext(filename)
    upper = stem.upper()
    for suffix in DENSITY_SUFFIXES:
        if upper.endswith(suffix) and len(stem) > len(suffix):
            return NameParts(stem[:-len(suffix)], stem[-len(suffix):], ext)
    return NameParts(stem, "", ext)


def apply_mpn_policy(filename: str, mpn: str) -> str:
    """Rename to the sanitised MPN, keeping density suffix and extension."""
    parts = extract_density_suffix(filename)
    return f"{sanitize(mpn)}{parts.suffix}{parts.ext}"


def apply_package_policy(filename: str, package_size: str) -> str:
    """Rename to the sanitised package size, keeping only the extension."""
    _, ext = os.path.splitext(filename)
    return f"{sanitize(package_size)}{ext}"


def normalize_rename_target(old_filename: str, new_filename: str, category) -> str:
    """
    Clean up an operator-typed rename target.  The new extension is kept
    only when it belongs to the category; otherwise the old one is used.
    """
    category = parse_category(category)
    old_ext = os.path.splitext(old_filename)[1]
    new_stem, new_ext = os.path.splitext(new_filename.strip())
    allowed = extensions_for(category)

    if new_ext and new_ext.lower() in allowed:
        ext = new_ext
    else:
        # "foo.bar" typed for a footprint: ".bar" is part of the name
        if new_ext:
            new_stem = new_stem + new_ext
        ext = old_ext
    return f"{sanitize(new_stem)}{ext}"


def suggest_names(filename: str, *, mpn: Optional[str] = None,
                  package_size: Optional[str] = None) -> dict:
    """
    Advisory suggestions for the UI.  A suggestion equal to the current
    name is flagged as a no-op rather than treated as an error.
    """
    parts = extract_density_suffix(filename)
    result = {
        "fileName": filename,
        "parts": {"base": parts.base, "suffix": parts.suffix, "ext": parts.ext},
        "suggestions": [],
    }

    for policy, value, fn in (
        ("mpn", mpn, apply_mpn_policy),
        ("package", package_size, apply_package_policy),
    ):
        if not value:
            continue
        try:
            suggested = fn(filename, value)
        except InvalidName as exc:
            result["suggestions"].append({"policy": policy, "error": exc.message})
            continue
        result["suggestions"].append({
            "policy": policy,
            "fileName": suggested,
            "noop": suggested == filename,
        })
    return result
