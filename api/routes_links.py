"""
api.routes_links - /api/v1/components/{id}/cad link endpoints.

Attach existing stored files to component fields and detach them.
Unlinking never deletes the file.
"""

from flask import jsonify, request

from api import api_bp
from db import get_session
from services import link_manager
from services.reference_index import ReferenceIndex


@api_bp.route("/components/<component_id>/cad")
def component_cad_references(component_id: str):
    """GET /api/v1/components/{component_id}/cad → field → [file names]"""
    session = get_session()
    try:
        refs = ReferenceIndex.list_references(session, component_id)
        return jsonify({
            "component_id": component_id,
            "references": {field.value: names for field, names in refs.items()},
        })
    finally:
        session.close()


@api_bp.route("/components/<component_id>/cad/shared")
def component_cad_shared(component_id: str):
    """GET /api/v1/components/{component_id}/cad/shared"""
    session = get_session()
    try:
        shared = ReferenceIndex.components_sharing(session, component_id)
        return jsonify({"component_id": component_id, "shared": shared})
    finally:
        session.close()


@api_bp.route("/components/<component_id>/cad/<field>", methods=["POST"])
def component_cad_link(component_id: str, field: str):
    """
    POST /api/v1/components/{component_id}/cad/{field}

    JSON body: {fileName}.  404 if the file is not stored, 409 if the
    field is single-valued and occupied or already lists the file.
    """
    data = request.get_json(silent=True) or {}
    filename = (data.get("fileName") or "").strip()
    if not filename:
        return jsonify({"error": "fileName is required"}), 400

    result = link_manager.link(component_id, field, filename)
    return jsonify(result), 201


@api_bp.route("/components/<component_id>/cad/<field>/<filename>", methods=["DELETE"])
def component_cad_unlink(component_id: str, field: str, filename: str):
    """DELETE /api/v1/components/{component_id}/cad/{field}/{filename}"""
    return jsonify(link_manager.unlink(component_id, field, filename))
