# Overview: Service-layer operations for uploaded media (label logos) kept on local disk.

from __future__ import annotations

import os
import uuid

from flask import current_app
from sqlalchemy.exc import SQLAlchemyError
from werkzeug.utils import secure_filename

from ..extensions import db
from ..models import LabelTemplate, MediaFile

MEDIA_CATEGORIES = ("logo", "image")

# extension -> (mimetype, accepted leading bytes)
IMAGE_TYPES = {
    "png": ("image/png", (b"\x89PNG\r\n\x1a\n",)),
    "jpg": ("image/jpeg", (b"\xff\xd8\xff",)),
    "jpeg": ("image/jpeg", (b"\xff\xd8\xff",)),
    "gif": ("image/gif", (b"GIF87a", b"GIF89a")),
    "webp": ("image/webp", (b"RIFF",)),
}


class MediaError(Exception):
    """Raised for media upload/lookup errors."""
    def __init__(self, message: str, status_code: int = 400):
        super().__init__(message)
        self.status_code = status_code


def media_root() -> str:
    return current_app.config["MEDIA_ROOT"]


def _matches_signature(extension: str, content: bytes) -> bool:
    _mimetype, signatures = IMAGE_TYPES[extension]
    if not content.startswith(signatures):
        return False
    if extension == "webp":
        return content[8:12] == b"WEBP"
    return True


def list_media(category: str | None = "logo") -> list[MediaFile]:
    query = db.session.query(MediaFile).filter(MediaFile.is_active.is_(True))
    if category:
        query = query.filter(MediaFile.category == category)
    return query.order_by(MediaFile.created_at.desc(), MediaFile.id.desc()).all()


def get_media(media_id: int) -> MediaFile:
    media = db.session.get(MediaFile, media_id)
    if media is None or not media.is_active:
        raise MediaError("Media file not found", status_code=404)
    return media


def get_media_by_file_name(file_name: str) -> MediaFile:
    media = (
        db.session.query(MediaFile)
        .filter(MediaFile.file_name == file_name, MediaFile.is_active.is_(True))
        .first()
    )
    if media is None:
        raise MediaError("Media file not found", status_code=404)
    return media


def save_upload(stream, original_name: str | None, *, category: str = "logo", user_id: int | None = None) -> MediaFile:
    """
    Store an uploaded image under MEDIA_ROOT with a generated name.

    Only PNG, JPEG, GIF and WebP are accepted, checked by extension and by the
    file's leading bytes. Files over MEDIA_MAX_BYTES are refused with 413.
    """
    if category not in MEDIA_CATEGORIES:
        raise MediaError(f"category must be one of: {', '.join(MEDIA_CATEGORIES)}")

    safe_name = secure_filename(original_name or "")
    extension = safe_name.rsplit(".", 1)[-1].lower() if "." in safe_name else ""
    if extension not in IMAGE_TYPES:
        raise MediaError("Unsupported file type; upload a PNG, JPEG, GIF or WebP image")

    max_bytes = current_app.config["MEDIA_MAX_BYTES"]
    content = stream.read(max_bytes + 1)
    if not content:
        raise MediaError("Uploaded file is empty")
    if len(content) > max_bytes:
        raise MediaError(f"File exceeds the {max_bytes} byte limit", status_code=413)
    if not _matches_signature(extension, content):
        raise MediaError("File content does not match its extension")

    file_name = f"{uuid.uuid4().hex}.{extension}"
    root = media_root()
    os.makedirs(root, exist_ok=True)
    path = os.path.join(root, file_name)
    with open(path, "wb") as fh:
        fh.write(content)

    media = MediaFile(
        file_name=file_name,
        original_name=safe_name,
        file_type=IMAGE_TYPES[extension][0],
        file_size=len(content),
        category=category,
        uploaded_by=user_id,
    )
    db.session.add(media)
    try:
        db.session.commit()
    except SQLAlchemyError:
        db.session.rollback()
        os.remove(path)
        raise
    return media


def delete_media(media_id: int) -> int:
    """
    Soft-delete the record, remove the file and clear it from any label
    template still pointing at it. Returns the number of templates cleared.
    """
    media = get_media(media_id)
    media.is_active = False

    templates = db.session.query(LabelTemplate).filter(LabelTemplate.logo_url == media.url).all()
    for template in templates:
        template.logo_url = ""
        template.show_logo = False
    db.session.commit()

    path = os.path.join(media_root(), media.file_name)
    if os.path.exists(path):
        os.remove(path)
    return len(templates)
