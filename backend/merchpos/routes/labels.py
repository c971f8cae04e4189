# Overview: Flask API routes for the current user's saved label templates.

from flask import Blueprint, request, jsonify, g

from ..decorators import require_auth
from ..models import LabelTemplate
from ..services import label_service
from ..services.label_service import LabelTemplateError
from ..validation import ModelValidationPolicy, validate_payload, ValidationError


labels_bp = Blueprint("labels", __name__, url_prefix="/api/label-templates")

LABEL_TEMPLATE_POLICY = ModelValidationPolicy(
    writable_fields={
        "name",
        "is_default",
        "selected_inventory_id",
        "product_name",
        "product_code",
        "price",
        "qr_content",
        "custom_message",
        "size_indicator",
        "logo_url",
        "show_qr",
        "show_logo",
        "show_price",
        "show_message",
        "show_size",
        "layout_positions",
    },
    required_on_create={"name"},
)


def _validated(partial: bool) -> dict:
    payload = request.get_json(silent=True)
    return validate_payload(model=LabelTemplate, payload=payload, policy=LABEL_TEMPLATE_POLICY, partial=partial)


@labels_bp.get("")
@require_auth
def list_templates_route():
    templates = label_service.list_templates(g.current_user.id)
    return jsonify([t.to_dict() for t in templates]), 200


@labels_bp.get("/default")
@require_auth
def default_template_route():
    template = label_service.get_default_template(g.current_user.id)
    return jsonify(template.to_dict() if template else None), 200


@labels_bp.post("")
@require_auth
def create_template_route():
    try:
        template = label_service.create_template(g.current_user.id, _validated(partial=False))
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except LabelTemplateError as e:
        return jsonify({"error": str(e)}), e.status_code
    return jsonify(template.to_dict()), 201


@labels_bp.put("/<int:template_id>")
@require_auth
def update_template_route(template_id: int):
    try:
        template = label_service.update_template(template_id, g.current_user.id, _validated(partial=True))
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except LabelTemplateError as e:
        return jsonify({"error": str(e)}), e.status_code
    return jsonify(template.to_dict()), 200


@labels_bp.delete("/<int:template_id>")
@require_auth
def delete_template_route(template_id: int):
    try:
        label_service.delete_template(template_id, g.current_user.id)
    except LabelTemplateError as e:
        return jsonify({"error": str(e)}), e.status_code
    return jsonify({"message": "Label template deleted successfully"}), 200
