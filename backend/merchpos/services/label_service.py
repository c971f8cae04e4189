"""
Label Template Service - saved print-designer layouts, one set per user

DEFAULT: at most one template per user has is_default. Saving a template
as default clears the flag on that user's other templates in the same
commit.

LAYOUT: layout_positions maps element name -> {"x": pct, "y": pct} with
both coordinates in 0..100 (percent of the label), so a layout prints the
same on any label size.
"""

from __future__ import annotations

from ..extensions import db
from ..models import InventoryItem, LabelTemplate

LAYOUT_ELEMENTS = {"qr", "logo", "productName", "productCode", "price", "message", "size"}


class LabelTemplateError(Exception):
    """Raised for label template errors."""
    def __init__(self, message: str, status_code: int = 400):
        super().__init__(message)
        self.status_code = status_code


def validate_layout_positions(layout) -> dict:
    if layout is None:
        return {}
    if not isinstance(layout, dict):
        raise LabelTemplateError("layoutPositions must be an object")

    cleaned = {}
    for element, pos in layout.items():
        if element not in LAYOUT_ELEMENTS:
            raise LabelTemplateError(f"Unknown layout element: {element}")
        if not isinstance(pos, dict) or set(pos) != {"x", "y"}:
            raise LabelTemplateError(f"{element} position must have exactly x and y")
        coords = {}
        for axis in ("x", "y"):
            value = pos[axis]
            if isinstance(value, bool) or not isinstance(value, (int, float)):
                raise LabelTemplateError(f"{element}.{axis} must be a number")
            if not 0 <= value <= 100:
                raise LabelTemplateError(f"{element}.{axis} must be between 0 and 100")
            coords[axis] = value
        cleaned[element] = coords
    return cleaned


def list_templates(user_id: int) -> list[LabelTemplate]:
    return (
        db.session.query(LabelTemplate)
        .filter(LabelTemplate.user_id == user_id)
        .order_by(LabelTemplate.is_default.desc(), LabelTemplate.updated_at.desc(), LabelTemplate.id.desc())
        .all()
    )


def get_default_template(user_id: int) -> LabelTemplate | None:
    return (
        db.session.query(LabelTemplate)
        .filter(LabelTemplate.user_id == user_id, LabelTemplate.is_default.is_(True))
        .first()
    )


def get_template(template_id: int, user_id: int) -> LabelTemplate:
    """Another user's template is reported as missing."""
    template = (
        db.session.query(LabelTemplate)
        .filter(LabelTemplate.id == template_id, LabelTemplate.user_id == user_id)
        .first()
    )
    if template is None:
        raise LabelTemplateError("Label template not found", status_code=404)
    return template


def _clear_other_defaults(user_id: int, keep_id: int | None) -> None:
    query = db.session.query(LabelTemplate).filter(
        LabelTemplate.user_id == user_id,
        LabelTemplate.is_default.is_(True),
    )
    if keep_id is not None:
        query = query.filter(LabelTemplate.id != keep_id)
    for other in query.all():
        other.is_default = False


def _apply(template: LabelTemplate, patch: dict) -> None:
    if "layout_positions" in patch:
        patch["layout_positions"] = validate_layout_positions(patch["layout_positions"])
    if patch.get("selected_inventory_id") is not None:
        if db.session.get(InventoryItem, patch["selected_inventory_id"]) is None:
            raise LabelTemplateError("Selected inventory item not found")
    for k, v in patch.items():
        setattr(template, k, v)


def create_template(user_id: int, patch: dict) -> LabelTemplate:
    patch = dict(patch)
    template = LabelTemplate(user_id=user_id)
    _apply(template, patch)
    db.session.add(template)
    db.session.flush()
    if template.is_default:
        _clear_other_defaults(user_id, template.id)
    db.session.commit()
    return template


def update_template(template_id: int, user_id: int, patch: dict) -> LabelTemplate:
    patch = dict(patch)
    template = get_template(template_id, user_id)
    _apply(template, patch)
    if template.is_default:
        _clear_other_defaults(user_id, template.id)
    db.session.commit()
    return template


def delete_template(template_id: int, user_id: int) -> None:
    template = get_template(template_id, user_id)
    db.session.delete(template)
    db.session.commit()
