# Overview: Flask API routes for auth operations; parses input and returns JSON responses.

"""
Associate-code authentication routes.

POST /api/auth/login  {associateCode} -> {token, user}
POST /api/auth/logout (revokes the presented bearer token)
GET  /api/auth/user   (current associate)
"""

from flask import Blueprint, request, jsonify, current_app, g

from ..services import auth_service
from ..services import session_service
from ..decorators import require_auth, bearer_token


auth_bp = Blueprint("auth", __name__, url_prefix="/api/auth")


@auth_bp.post("/login")
def login_route():
    data = request.get_json(silent=True) or {}
    associate_code = data.get("associateCode")

    if not associate_code or not isinstance(associate_code, str):
        return jsonify({"error": "Associate code required"}), 400

    try:
        user = auth_service.authenticate_code(associate_code)
        if not user:
            current_app.logger.info("Failed associate-code login from %s", request.remote_addr)
            return jsonify({"error": "Invalid associate code"}), 401

        _session, token = session_service.create_session(
            user.id,
            user_agent=request.headers.get("User-Agent"),
            ip_address=request.remote_addr,
        )
    except Exception:
        current_app.logger.exception("Failed to log in associate")
        return jsonify({"error": "Internal server error"}), 500

    return jsonify({"token": token, "user": user.to_dict()}), 200


@auth_bp.post("/logout")
@require_auth
def logout_route():
    session_service.revoke_session(bearer_token(), reason="User logout")
    return jsonify({"message": "Logged out successfully"}), 200


@auth_bp.get("/user")
@require_auth
def current_user_route():
    return jsonify(g.current_user.to_dict()), 200
