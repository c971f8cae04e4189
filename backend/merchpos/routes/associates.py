# Overview: Flask API routes for the associate directory (admin only).

from flask import Blueprint, request, jsonify, current_app, g

from ..decorators import require_auth, require_admin
from ..services import auth_service
from ..services.auth_service import AssociateError
from ..validation import ValidationError


associates_bp = Blueprint("associates", __name__, url_prefix="/api/associates")

ASSOCIATE_FIELDS = {"name", "email", "role", "isActive"}


def _read_payload(required_name: bool) -> dict:
    payload = request.get_json(silent=True)
    if not isinstance(payload, dict):
        raise ValidationError("Invalid JSON payload")

    unknown = sorted(set(payload) - ASSOCIATE_FIELDS)
    if unknown:
        raise ValidationError(f"Field not allowed: {', '.join(unknown)}")

    name = payload.get("name")
    if required_name and (not isinstance(name, str) or not name.strip()):
        raise ValidationError("Name is required")
    if name is not None and not isinstance(name, str):
        raise ValidationError("name must be a string")

    email = payload.get("email")
    if email is not None and not isinstance(email, str):
        raise ValidationError("email must be a string")

    is_active = payload.get("isActive")
    if is_active is not None and not isinstance(is_active, bool):
        raise ValidationError("isActive must be a boolean")

    return payload


@associates_bp.get("")
@require_auth
@require_admin
def list_associates_route():
    include_inactive = request.args.get("includeInactive", "true").lower() != "false"
    users = auth_service.list_associates(include_inactive=include_inactive)
    return jsonify([u.to_associate_dict() for u in users]), 200


@associates_bp.post("")
@require_auth
@require_admin
def create_associate_route():
    try:
        payload = _read_payload(required_name=True)
        user = auth_service.create_associate(
            payload["name"],
            email=payload.get("email"),
            role=payload.get("role") or "associate",
        )
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except AssociateError as e:
        return jsonify({"error": str(e)}), e.status_code

    current_app.logger.info("Associate %s created by user_id=%s", user.id, g.current_user.id)
    return jsonify(user.to_associate_dict()), 201


@associates_bp.patch("/<int:user_id>")
@require_auth
@require_admin
def update_associate_route(user_id: int):
    try:
        payload = _read_payload(required_name=False)
        if user_id == g.current_user.id and payload.get("isActive") is False:
            return jsonify({"error": "You cannot deactivate your own account"}), 409
        user = auth_service.update_associate(
            user_id,
            name=payload.get("name"),
            email=payload.get("email"),
            clear_email="email" in payload and payload["email"] is None,
            is_active=payload.get("isActive"),
            role=payload.get("role"),
        )
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except AssociateError as e:
        return jsonify({"error": str(e)}), e.status_code

    return jsonify(user.to_associate_dict()), 200
