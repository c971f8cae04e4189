# Overview: Flask API route for dashboard headline numbers.

from flask import Blueprint, current_app, jsonify

from ..decorators import require_auth
from ..services.reporting_service import dashboard_stats


dashboard_bp = Blueprint("dashboard", __name__, url_prefix="/api/dashboard")


@dashboard_bp.get("/stats")
@require_auth
def stats_route():
    try:
        return jsonify(dashboard_stats()), 200
    except Exception:
        current_app.logger.exception("Failed to compute dashboard stats")
        return jsonify({"error": "Internal server error"}), 500
