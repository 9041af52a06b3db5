"""
services - Business-logic layer sitting between API and DB / asset store.
"""

from services.asset_store import AssetStore, get_store, init_store     # noqa: F401
from services.reference_index import ReferenceIndex                    # noqa: F401
from services.file_coordinator import FileCoordinator                  # noqa: F401
from services.library_service import LibraryService                    # noqa: F401
