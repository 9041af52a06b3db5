"""
schema.cad_types - Static CAD category / field / extension tables.

Categories partition the asset store; fields are the component slots
that reference stored files.  The extension table decides which
category an uploaded file (or archive member) belongs to.
"""

from __future__ import annotations

import os
from enum import Enum
from typing import Optional


class Category(str, Enum):
    FOOTPRINT = "footprint"
    SYMBOL    = "symbol"
    MODEL     = "model"
    PSPICE    = "pspice"
    PAD       = "pad"
    ARCHIVE   = "archive"


class CadField(str, Enum):
    PCB_FOOTPRINT = "pcb_footprint"
    SCHEMATIC     = "schematic"
    STEP_MODEL    = "step_model"
    PSPICE        = "pspice"
    PAD_FILE      = "pad_file"


# Field → category it stores.  The archive category has no field.
FIELD_CATEGORY: dict[CadField, Category] = {
    CadField.PCB_FOOTPRINT: Category.FOOTPRINT,
    CadField.SCHEMATIC:     Category.SYMBOL,
    CadField.STEP_MODEL:    Category.MODEL,
    CadField.PSPICE:        Category.PSPICE,
    CadField.PAD_FILE:      Category.PAD,
}

CATEGORY_FIELD: dict[Category, CadField] = {c: f for f, c in FIELD_CATEGORY.items()}

# Fields holding an ordered list of files; every other field holds one.
MULTI_VALUED = frozenset({CadField.PCB_FOOTPRINT, CadField.PAD_FILE})

# Lower-cased extension → category
EXTENSION_CATEGORY: dict[str, Category] = {
    ".kicad_mod": Category.FOOTPRINT,
    ".brd":       Category.FOOTPRINT,
    ".mod":       Category.FOOTPRINT,

    ".kicad_sym": Category.SYMBOL,
    ".lib":       Category.SYMBOL,
    ".olb":       Category.SYMBOL,
    ".bxl":       Category.SYMBOL,
    ".schlib":    Category.SYMBOL,
    ".bsm":       Category.SYMBOL,

    ".step":      Category.MODEL,
    ".stp":       Category.MODEL,
    ".iges":      Category.MODEL,
    ".igs":       Category.MODEL,
    ".wrl":       Category.MODEL,
    ".3ds":       Category.MODEL,
    ".x_t":       Category.MODEL,

    ".cir":       Category.PSPICE,
    ".sub":       Category.PSPICE,
    ".inc":       Category.PSPICE,
    ".psm":       Category.PSPICE,
    ".fsm":       Category.PSPICE,

    ".pad":       Category.PAD,
    ".plb":       Category.PAD,

    ".zip":       Category.ARCHIVE,
}

# Route-type names accepted from the file library screens
CATEGORY_ALIASES: dict[str, Category] = {
    "schematic": Category.SYMBOL,
    "step":      Category.MODEL,
}


def category_for_filename(filename: str) -> Optional[Category]:
    """Return the category for a filename by extension, or None."""
    _, ext = os.path.splitext(filename)
    return EXTENSION_CATEGORY.get(ext.lower())


def extensions_for(category: Category) -> list[str]:
    return [ext for ext, cat in EXTENSION_CATEGORY.items() if cat is category]


def supported_extensions() -> list[str]:
    return list(EXTENSION_CATEGORY.keys())


def is_multi_valued(field: CadField) -> bool:
    return field in MULTI_VALUED


def parse_category(value) -> Category:
    """
    Resolve a category from its name or an accepted alias.
    Raises UnknownCategory for anything else.
    """
    if isinstance(value, Category):
        return value
    key = str(value or "").strip().lower()
    if key in CATEGORY_ALIASES:
        return CATEGORY_ALIASES[key]
    try:
        return Category(key)
    except ValueError:
        from services.errors import UnknownCategory
        raise UnknownCategory(f"Invalid file type: {value!r}", category=key) from None


def parse_field(value) -> CadField:
    """Resolve a component field name.  Raises UnknownCategory on mismatch."""
    if isinstance(value, CadField):
        return value
    key = str(value or "").strip().lower()
    try:
        return CadField(key)
    except ValueError:
        from services.errors import UnknownCategory
        raise UnknownCategory(f"Invalid field: {value!r}", field=key) from None
