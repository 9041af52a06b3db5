"""
services.errors - Error taxonomy for the CAD asset layer.

Every error carries enough context (category, filename, component id,
field) for the caller to act on it.  The API layer maps each class to
an HTTP status via ``status_code``.
"""

from __future__ import annotations


class CadAssetError(Exception):
    """Base class for all asset-layer validation errors."""

    status_code = 400

    def __init__(self, message: str, *, category=None, filename: str | None = None,
                 component_id: str | None = None, field=None):
        super().__init__(message)
        self.message = message
        self.category = getattr(category, "value", category)
        self.filename = filename
        self.component_id = component_id
        self.field = getattr(field, "value", field)

    def to_dict(self) -> dict:
        d = {"error": self.message, "code": type(self).__name__}
        for key in ("category", "filename", "component_id", "field"):
            val = getattr(self, key)
            if val is not None:
                d[key] = val
        return d


class NotFound(CadAssetError):
    """Referenced file or reference is absent."""
    status_code = 404


class NameConflict(CadAssetError):
    """Target name already occupied in that category."""
    status_code = 409


class CardinalityViolation(CadAssetError):
    """Single-valued field already holds a file."""
    status_code = 409


class DuplicateReference(CadAssetError):
    """Association already exists for that component and field."""
    status_code = 409


class InvalidName(CadAssetError):
    """Filename is empty, reserved, or would escape its category directory."""
    status_code = 400


class UnknownCategory(CadAssetError):
    """Category, alias, or field name is not recognised."""
    status_code = 400


class PartialBatchFailure(CadAssetError):
    """
    Some members of a batch failed.  Batch paths report this through
    their result objects; the HTTP layer raises it so a mixed
    outcome is answered with 207 and every per-item result.
    """
    status_code = 207

    def __init__(self, message: str, *, report=None, **kwargs):
        super().__init__(message, **kwargs)
        self.report = report

    def to_dict(self) -> dict:
        d = super().to_dict()
        d["results"] = self.report if self.report is not None else []
        return d
