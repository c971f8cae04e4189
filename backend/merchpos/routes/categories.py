# Overview: Flask API routes for category values; reads for everyone, edits for admins.

"""
Category Routes

Supports Excel (.xlsx, one sheet per category type) and CSV uploads.
"""

import io

from flask import Blueprint, request, jsonify, current_app, send_file

from ..decorators import require_auth, require_admin
from ..services import catalog_service
from ..services.catalog_service import CategoryError
from ..validation import ValidationError, coerce_int


categories_bp = Blueprint("categories", __name__, url_prefix="/api/categories")

XLSX_MIMETYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"
UPDATE_KEYS = {"value", "displayOrder", "abbreviation"}


def _category_error(e: CategoryError):
    body = {"error": str(e)}
    if e.details:
        body["details"] = e.details
    return jsonify(body), e.status_code


@categories_bp.get("")
@require_auth
def list_categories_route():
    if request.args.get("grouped", "false").lower() == "true":
        return jsonify(catalog_service.grouped_categories()), 200
    return jsonify([c.to_dict() for c in catalog_service.list_categories()]), 200


@categories_bp.get("/<category_type>")
@require_auth
def list_by_type_route(category_type: str):
    try:
        cats = catalog_service.list_categories(category_type)
    except CategoryError as e:
        return _category_error(e)
    return jsonify([c.to_dict() for c in cats]), 200


@categories_bp.post("")
@require_auth
@require_admin
def create_category_route():
    data = request.get_json(silent=True) or {}
    category_type = data.get("type")
    value = data.get("value")
    if not isinstance(category_type, str) or not isinstance(value, str):
        return jsonify({"error": "type and value are required"}), 400

    try:
        cat = catalog_service.create_category(category_type, value)
    except CategoryError as e:
        return _category_error(e)
    return jsonify(cat.to_dict()), 201


@categories_bp.put("/<int:category_id>")
@require_auth
@require_admin
def update_category_route(category_id: int):
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        return jsonify({"error": "Invalid JSON payload"}), 400

    unknown = sorted(set(data) - UPDATE_KEYS)
    if unknown:
        return jsonify({"error": f"Field not allowed: {', '.join(unknown)}"}), 400

    patch = {}
    try:
        if "value" in data:
            if not isinstance(data["value"], str):
                raise ValidationError("value must be a string")
            patch["value"] = data["value"]
        if "displayOrder" in data:
            patch["display_order"] = coerce_int(data["displayOrder"], "displayOrder")
        if "abbreviation" in data:
            abbreviation = data["abbreviation"]
            if abbreviation is not None and (not isinstance(abbreviation, str) or len(abbreviation) > 10):
                raise ValidationError("abbreviation must be a string of at most 10 characters")
            patch["abbreviation"] = abbreviation
        cat = catalog_service.update_category(category_id, patch)
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except CategoryError as e:
        return _category_error(e)

    return jsonify(cat.to_dict()), 200


@categories_bp.delete("/<int:category_id>")
@require_auth
@require_admin
def delete_category_route(category_id: int):
    try:
        catalog_service.delete_category(category_id)
    except CategoryError as e:
        return _category_error(e)
    return jsonify({"message": "Category deleted successfully"}), 200


@categories_bp.post("/reorder")
@require_auth
@require_admin
def reorder_categories_route():
    data = request.get_json(silent=True) or {}
    category_type = data.get("type")
    category_ids = data.get("categoryIds")
    if not category_type or not isinstance(category_ids, list):
        return jsonify({"error": "Type and categoryIds array required"}), 400

    try:
        ids = [coerce_int(cid, "categoryIds") for cid in category_ids]
        cats = catalog_service.reorder_categories(category_type, ids)
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except CategoryError as e:
        return _category_error(e)

    return jsonify([c.to_dict() for c in cats]), 200


@categories_bp.get("/export/excel")
@require_auth
@require_admin
def export_excel_route():
    content = catalog_service.export_workbook()
    return send_file(
        io.BytesIO(content),
        mimetype=XLSX_MIMETYPE,
        as_attachment=True,
        download_name="categories.xlsx",
    )


@categories_bp.post("/import/file")
@require_auth
@require_admin
def import_file_route():
    file = request.files.get("categoryFile") or request.files.get("file")
    if file is None:
        return jsonify({"error": "No file uploaded"}), 400

    filename = (file.filename or "").lower()
    is_excel = filename.endswith(".xlsx") or file.mimetype == XLSX_MIMETYPE

    try:
        if is_excel:
            rows = catalog_service.rows_from_workbook(io.BytesIO(file.stream.read()))
        elif filename.endswith(".csv") or file.mimetype in {"text/csv", "application/vnd.ms-excel"}:
            rows = catalog_service.rows_from_csv(file.stream.read().decode("utf-8-sig"))
        else:
            return jsonify({"error": "Unsupported file format"}), 400
    except Exception:
        current_app.logger.exception("Failed to parse category import %s", file.filename)
        return jsonify({"error": "Failed to parse upload"}), 400

    result = catalog_service.import_rows(rows)
    return jsonify(result), 200
