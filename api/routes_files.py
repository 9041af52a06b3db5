"""
api.routes_files - /api/v1/files per-component file endpoints.

Upload, listing, download, export and the per-component rename /
delete actions.  Mutations go through the upload service and the
file coordinator; every response is JSON except downloads.
"""

import io

from flask import jsonify, request, send_file
from werkzeug.utils import secure_filename

import config
from api import api_bp
from db import get_session
from schema.cad_types import parse_category
from services.asset_store import get_store
from services.errors import NotFound, PartialBatchFailure
from services.file_coordinator import FileCoordinator
from services.library_service import LibraryService
from services.naming_policy import normalize_rename_target
from services.reference_index import ReferenceIndex
from services.upload_service import UploadedFile, upload_files


@api_bp.route("/files/upload/<component_id>", methods=["POST"])
def upload_component_files(component_id: str):
    """
    POST /api/v1/files/upload/{component_id}

    Multipart: field name 'files' (repeatable).  ZIP archives are
    expanded; every other file is stored and linked by extension.
    Answers 207 when at least one file failed.
    """
    uploads = request.files.getlist("files")
    if not uploads:
        return jsonify({"error": "no files in upload"}), 400
    if len(uploads) > config.MAX_UPLOAD_FILES:
        return jsonify({"error": f"at most {config.MAX_UPLOAD_FILES} files per upload"}), 400

    files = [UploadedFile(filename=f.filename or "", data=f.read()) for f in uploads]
    results = upload_files(component_id, files)
    payload = [r.to_dict() for r in results]

    failed = sum(1 for r in results if r.error)
    if failed:
        raise PartialBatchFailure(f"{failed} of {len(results)} file(s) failed",
                                  report=payload, component_id=component_id)
    return jsonify({"component_id": component_id, "results": payload})


@api_bp.route("/files/list/<component_id>")
def list_component_files(component_id: str):
    """GET /api/v1/files/list/{component_id}"""
    session = get_session()
    try:
        files = LibraryService.list_component_files(session, component_id)
        return jsonify({"component_id": component_id, "files": files})
    finally:
        session.close()


@api_bp.route("/files/<category>/<component_id>/<filename>", methods=["DELETE"])
def delete_component_file(category: str, component_id: str, filename: str):
    """
    DELETE /api/v1/files/{category}/{component_id}/{filename}

    Deletes the stored file and every reference to it, not only the
    one held by this component.
    """
    category = parse_category(category)
    session = get_session()
    try:
        referencing = ReferenceIndex.find_components_referencing(session, category, filename)
    finally:
        session.close()
    if component_id not in referencing and not get_store().exists(category, filename):
        raise NotFound(f"File not found: {filename}", category=category,
                       filename=filename, component_id=component_id)

    result = FileCoordinator().delete(category, filename)
    return jsonify({"message": "File deleted", **result.to_dict()})


@api_bp.route("/files/rename", methods=["PUT"])
def rename_component_file():
    """
    PUT /api/v1/files/rename

    JSON body: {category, componentId, oldFilename, newFilename}
    The new name is sanitised and keeps a valid extension for the
    category.  The rename is physical and cascades to every component.
    """
    data = request.get_json(silent=True) or {}
    category = data.get("category")
    component_id = data.get("componentId")
    old_filename = (data.get("oldFilename") or "").strip()
    new_filename = (data.get("newFilename") or "").strip()
    if not category or not component_id or not old_filename or not new_filename:
        return jsonify({"error": "category, componentId, oldFilename and "
                                 "newFilename are required"}), 400

    category = parse_category(category)
    target = normalize_rename_target(old_filename, new_filename, category)
    if target == old_filename:
        return jsonify({"message": "No changes needed", "oldFilename": old_filename,
                        "newFilename": target, "updatedComponents": 0})

    result = FileCoordinator().rename_physical(category, old_filename, target)
    return jsonify({
        "message": "File renamed",
        "oldFilename": old_filename,
        "newFilename": target,
        "updatedComponents": result.updated_components,
        "resumed": result.resumed,
    })


@api_bp.route("/files/download/<category>/<component_id>/<filename>")
def download_component_file(category: str, component_id: str, filename: str):
    """GET /api/v1/files/download/{category}/{component_id}/{filename}"""
    data = get_store().get(category, filename)
    return send_file(io.BytesIO(data), as_attachment=True, download_name=filename,
                     mimetype="application/octet-stream")


@api_bp.route("/files/export/<component_id>")
def export_component_files(component_id: str):
    """GET /api/v1/files/export/{component_id} → ZIP of every linked file"""
    session = get_session()
    try:
        data = LibraryService.export_component_files(session, component_id)
    finally:
        session.close()
    name = secure_filename(component_id) or "component"
    return send_file(io.BytesIO(data), as_attachment=True,
                     download_name=f"{name}_files.zip", mimetype="application/zip")


@api_bp.route("/files/exists/<category>/<filename>")
def file_exists(category: str, filename: str):
    """GET /api/v1/files/exists/{category}/{filename}: collision check before upload"""
    category = parse_category(category)
    store = get_store()
    body = {"category": category.value, "fileName": filename,
            "exists": store.exists(category, filename)}
    if body["exists"]:
        body["file"] = store.stat(category, filename, with_hash=True).to_dict()
    return jsonify(body)
