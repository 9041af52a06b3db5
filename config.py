"""
CADLIB - Centralised configuration.

All tunables live here.  Every other module imports from config
instead of reading os.environ directly.
"""

from __future__ import annotations
import os
from pathlib import Path


# ── Paths ──────────────────────────────────────────────────────────────
BASE_DIR    = Path(__file__).resolve().parent

# Root of the CAD asset store.  One flat sub-directory per category
# (footprint/, symbol/, model/, pspice/, pad/, archive/) lives here.
LIBRARY_DIR = Path(os.environ.get("CADLIB_LIBRARY_DIR", BASE_DIR / "library"))

# ── Database ───────────────────────────────────────────────────────────
DB_URL = os.environ.get("CADLIB_DB", f"sqlite:///{BASE_DIR / 'cadlib.sqlite'}")

# ── Server ─────────────────────────────────────────────────────────────
HOST   = os.environ.get("CADLIB_HOST", "0.0.0.0")
PORT   = int(os.environ.get("CADLIB_PORT", "5000"))
DEBUG  = os.environ.get("CADLIB_DEBUG", "0") == "1"
SECRET = os.environ.get("CADLIB_SECRET", "cadlib-dev-key-change-in-prod")

# ── Logging ────────────────────────────────────────────────────────────
LOG_LEVEL = os.environ.get("CADLIB_LOG_LEVEL", "INFO").upper()

# ── Upload limits ──────────────────────────────────────────────────────
MAX_UPLOAD_BYTES         = int(os.environ.get("CADLIB_MAX_UPLOAD_BYTES", 50 * 1024 * 1024))
MAX_UPLOAD_FILES         = int(os.environ.get("CADLIB_MAX_UPLOAD_FILES", "20"))
MAX_ARCHIVE_MEMBER_BYTES = int(os.environ.get("CADLIB_MAX_ARCHIVE_MEMBER_BYTES", 100 * 1024 * 1024))

# ── Listing ────────────────────────────────────────────────────────────
SEARCH_LIMIT = 100
