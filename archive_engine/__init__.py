"""
archive_engine - ZIP library-archive expansion pipeline.

Public API:
    expand_archive(component_id, archive_name, data, ...) → ExpansionReport
"""

from archive_engine.expander import expand_archive      # noqa: F401
from archive_engine.report import ExpansionReport       # noqa: F401
from archive_engine.zip_reader import ArchiveError      # noqa: F401
