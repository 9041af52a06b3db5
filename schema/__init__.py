"""
schema - Static CAD asset configuration.

Public API:
    Category, CadField          → fixed enums
    FIELD_CATEGORY / CATEGORY_FIELD / MULTI_VALUED
    category_for_filename()     → extension lookup
    parse_category / parse_field
"""

from schema.cad_types import (                      # noqa: F401
    Category,
    CadField,
    FIELD_CATEGORY,
    CATEGORY_FIELD,
    MULTI_VALUED,
    EXTENSION_CATEGORY,
    category_for_filename,
    extensions_for,
    supported_extensions,
    is_multi_valued,
    parse_category,
    parse_field,
)
