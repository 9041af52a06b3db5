"""
db - Database layer.

Public API:
    init_db()       → create engine + tables
    get_session()   → new Session
    ComponentFile   → ORM model for file references
"""

from db.engine import init_db, get_session          # noqa: F401
from db.models import Base, ComponentFile            # noqa: F401
