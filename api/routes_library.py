"""
api.routes_library - /api/v1/file-library endpoints.

Library-wide views (stats, search, per-type listings, orphan and
dangling scans, pickers, naming suggestions) and the library-wide
rename / delete actions.
"""

from flask import jsonify, request

import config
from api import api_bp
from db import get_session
from schema.cad_types import parse_category
from services.file_coordinator import FileCoordinator
from services.library_service import LibraryService
from services.naming_policy import suggest_names
from services.orphan_detector import list_dangling, list_orphans


def _limit() -> int:
    try:
        return min(int(request.args.get("limit", config.SEARCH_LIMIT)), config.SEARCH_LIMIT)
    except ValueError:
        return config.SEARCH_LIMIT


# ── Read ───────────────────────────────────────────────────────────────

@api_bp.route("/file-library/stats")
def file_library_stats():
    """GET /api/v1/file-library/stats"""
    session = get_session()
    try:
        return jsonify(LibraryService.file_stats(session))
    finally:
        session.close()


@api_bp.route("/file-library/search")
def file_library_search():
    """GET /api/v1/file-library/search?query=&type=&limit=100"""
    query = request.args.get("query", "").strip()
    category = request.args.get("type", "").strip() or None
    session = get_session()
    try:
        files = LibraryService.search_files(session, query, category, limit=_limit())
        return jsonify({"query": query, "results": files})
    finally:
        session.close()


@api_bp.route("/file-library/type/<category>")
def file_library_by_type(category: str):
    """GET /api/v1/file-library/type/{category}"""
    category = parse_category(category)
    session = get_session()
    try:
        files = LibraryService.files_by_type(session, category)
        return jsonify({"category": category.value, "files": files})
    finally:
        session.close()


@api_bp.route("/file-library/type/<category>/orphans")
def file_library_orphans(category: str):
    """GET /api/v1/file-library/type/{category}/orphans"""
    category = parse_category(category)
    session = get_session()
    try:
        orphans = list_orphans(session, category)
        return jsonify({"category": category.value, "orphans": orphans,
                        "count": len(orphans)})
    finally:
        session.close()


@api_bp.route("/file-library/type/<category>/dangling")
def file_library_dangling(category: str):
    """GET /api/v1/file-library/type/{category}/dangling"""
    category = parse_category(category)
    session = get_session()
    try:
        dangling = list_dangling(session, category)
        return jsonify({"category": category.value, "dangling": dangling,
                        "count": len(dangling)})
    finally:
        session.close()


@api_bp.route("/file-library/type/<category>/components")
def file_library_components(category: str):
    """GET /api/v1/file-library/type/{category}/components?fileName="""
    category = parse_category(category)
    filename = request.args.get("fileName", "").strip()
    if not filename:
        return jsonify({"error": "fileName is required"}), 400
    session = get_session()
    try:
        components = LibraryService.components_by_file(session, category, filename)
        return jsonify({"category": category.value, "fileName": filename,
                        "components": components})
    finally:
        session.close()


@api_bp.route("/file-library/available")
def file_library_available():
    """GET /api/v1/file-library/available?type=&query=: picker entries"""
    category = request.args.get("type", "").strip() or None
    query = request.args.get("query", "").strip()
    session = get_session()
    try:
        files = LibraryService.available_files(session, category, query, limit=_limit())
        return jsonify({"files": files})
    finally:
        session.close()


@api_bp.route("/file-library/naming")
def file_library_naming():
    """GET /api/v1/file-library/naming?fileName=&mpn=&packageSize="""
    filename = request.args.get("fileName", "").strip()
    if not filename:
        return jsonify({"error": "fileName is required"}), 400
    return jsonify(suggest_names(
        filename,
        mpn=request.args.get("mpn", "").strip() or None,
        package_size=request.args.get("packageSize", "").strip() or None,
    ))


# ── Write ──────────────────────────────────────────────────────────────

@api_bp.route("/file-library/type/<category>/rename", methods=["PUT"])
def file_library_rename(category: str):
    """
    PUT /api/v1/file-library/type/{category}/rename

    JSON body: {oldFileName, newFileName, componentIds?}
    Logical rename: only the listed components (all when omitted) are
    pointed at the new name.
    """
    data = request.get_json(silent=True) or {}
    old_filename = (data.get("oldFileName") or "").strip()
    new_filename = (data.get("newFileName") or "").strip()
    component_ids = data.get("componentIds")
    if not old_filename or not new_filename:
        return jsonify({"error": "oldFileName and newFileName are required"}), 400
    if component_ids is not None and not isinstance(component_ids, list):
        return jsonify({"error": "componentIds must be a list"}), 400

    result = FileCoordinator().rename_logical(category, old_filename, new_filename,
                                              component_ids)
    return jsonify({"oldFileName": old_filename, "newFileName": new_filename,
                    **result.to_dict()})


@api_bp.route("/file-library/type/<category>/rename-physical", methods=["PUT"])
def file_library_rename_physical(category: str):
    """
    PUT /api/v1/file-library/type/{category}/rename-physical

    JSON body: {oldFileName, newFileName}
    """
    data = request.get_json(silent=True) or {}
    old_filename = (data.get("oldFileName") or "").strip()
    new_filename = (data.get("newFileName") or "").strip()
    if not old_filename or not new_filename:
        return jsonify({"error": "oldFileName and newFileName are required"}), 400

    result = FileCoordinator().rename_physical(category, old_filename, new_filename)
    return jsonify({"oldFileName": old_filename, "newFileName": new_filename,
                    **result.to_dict()})


@api_bp.route("/file-library/type/<category>/file", methods=["DELETE"])
def file_library_delete(category: str):
    """
    DELETE /api/v1/file-library/type/{category}/file

    JSON body: {fileName}.  Removes the file and every reference to it.
    """
    data = request.get_json(silent=True) or {}
    filename = (data.get("fileName") or "").strip()
    if not filename:
        return jsonify({"error": "fileName is required"}), 400

    result = FileCoordinator().delete(category, filename)
    return jsonify({"fileName": filename, **result.to_dict()})
