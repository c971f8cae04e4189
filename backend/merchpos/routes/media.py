# Overview: Flask routes for uploaded label logos; upload, list, delete and serve from local disk.

from flask import Blueprint, current_app, g, jsonify, request, send_from_directory

from ..decorators import require_auth
from ..services import media_service
from ..services.media_service import MediaError


media_bp = Blueprint("media", __name__)


@media_bp.get("/api/media")
@require_auth
def list_media_route():
    category = request.args.get("category", "logo")
    return jsonify([m.to_dict() for m in media_service.list_media(category)]), 200


@media_bp.post("/api/media")
@require_auth
def upload_media_route():
    """Multipart upload: "file" plus an optional "category" (default logo)."""
    file = request.files.get("file")
    if file is None:
        return jsonify({"error": "No file uploaded"}), 400

    try:
        media = media_service.save_upload(
            file.stream,
            file.filename,
            category=request.form.get("category", "logo"),
            user_id=g.current_user.id,
        )
    except MediaError as e:
        return jsonify({"error": str(e)}), e.status_code

    current_app.logger.info(
        "Media %s uploaded by user_id=%s (%s bytes)", media.file_name, g.current_user.id, media.file_size
    )
    return jsonify(media.to_dict()), 201


@media_bp.delete("/api/media/<int:media_id>")
@require_auth
def delete_media_route(media_id: int):
    try:
        cleared = media_service.delete_media(media_id)
    except MediaError as e:
        return jsonify({"error": str(e)}), e.status_code

    return jsonify({"message": "Media file deleted successfully", "templatesCleared": cleared}), 200


# Public: no bearer token required
@media_bp.get("/media/<path:file_name>")
def serve_media_route(file_name: str):
    try:
        media = media_service.get_media_by_file_name(file_name)
    except MediaError as e:
        return jsonify({"error": str(e)}), e.status_code

    return send_from_directory(media_service.media_root(), media.file_name, mimetype=media.file_type)
