# Overview: Flask API routes for suppliers; parses input and returns JSON responses.

from flask import Blueprint, request, jsonify

from ..decorators import require_auth
from ..models import Supplier
from ..services import supplier_service
from ..services.supplier_service import SupplierError
from ..validation import ModelValidationPolicy, validate_payload, ValidationError


suppliers_bp = Blueprint("suppliers", __name__, url_prefix="/api/suppliers")

SUPPLIER_POLICY = ModelValidationPolicy(
    writable_fields={"name", "contact_info"},
    required_on_create={"name"},
)


@suppliers_bp.get("")
@require_auth
def list_suppliers_route():
    return jsonify([s.to_dict() for s in supplier_service.list_suppliers()]), 200


@suppliers_bp.post("")
@require_auth
def create_supplier_route():
    payload = request.get_json(silent=True)
    try:
        patch = validate_payload(model=Supplier, payload=payload, policy=SUPPLIER_POLICY, partial=False)
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400

    supplier = supplier_service.create_supplier(patch)
    return jsonify(supplier.to_dict()), 201


@suppliers_bp.put("/<int:supplier_id>")
@require_auth
def update_supplier_route(supplier_id: int):
    payload = request.get_json(silent=True)
    try:
        patch = validate_payload(model=Supplier, payload=payload, policy=SUPPLIER_POLICY, partial=True)
        supplier = supplier_service.update_supplier(supplier_id, patch)
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except SupplierError as e:
        return jsonify({"error": str(e)}), e.status_code

    return jsonify(supplier.to_dict()), 200


@suppliers_bp.delete("/<int:supplier_id>")
@require_auth
def delete_supplier_route(supplier_id: int):
    try:
        supplier_service.delete_supplier(supplier_id)
    except SupplierError as e:
        return jsonify({"error": str(e)}), e.status_code

    return jsonify({"message": "Supplier deleted successfully"}), 200
