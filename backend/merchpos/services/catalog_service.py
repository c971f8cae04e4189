"""
Catalog Service - category values that drive item dropdowns, names and SKUs

ORDERING: display_order is dense (0..n-1) among the active values of one
type. Create appends, delete renumbers the survivors, reorder rewrites.

SOFT DELETE: deleted values keep their row (is_active=False) so existing
items that reference the text value are untouched.
"""

from __future__ import annotations

import csv
import io

from openpyxl import Workbook, load_workbook
from sqlalchemy import func

from ..extensions import db
from ..models import Category
from ..models.catalog import CATEGORY_TYPES
from .naming import generate_abbreviation, unique_abbreviation

# Worksheet title <-> category type
SHEET_TITLES = {
    "type": "Type",
    "color": "Color",
    "size": "Size",
    "design": "Design",
    "groupType": "GroupType",
    "styleGroup": "StyleGroup",
}
SHEET_HEADERS = ("Value", "Display Order", "Is Active")

MAX_IMPORT_ERRORS_REPORTED = 10

DEFAULT_CATEGORIES = {
    "type": ["Shirt", "Pants", "Shoes", "Hat", "Jacket", "Accessory", "Bag", "Other"],
    "color": [
        "Red", "Blue", "Black", "White", "Green", "Yellow", "Orange", "Purple",
        "Pink", "Gray", "Brown", "Navy", "Maroon", "Teal", "Multi-Color",
    ],
    "size": [
        "XS", "S", "M", "L", "XL", "XXL", "XXXL",
        "6", "7", "8", "9", "10", "11", "12", "13", "14",
        "One Size", "N/A",
    ],
    "design": [
        "Lipstick", "Cancer", "Event-Specific", "Holiday", "Seasonal", "Logo", "Plain",
        "Graphic", "Text", "Pattern", "Floral", "Stripe", "Solid",
    ],
    "groupType": [
        "Supporter", "Ladies", "Member-Only", "Kids", "Youth", "Adult", "Senior",
        "VIP", "Staff", "Volunteer", "General",
    ],
    "styleGroup": [
        "T-Shirt", "V-Neck", "Tank Top", "Long Sleeve", "Polo", "Button-Up", "Hoodie",
        "Sweatshirt", "Dress", "Skirt", "Jeans", "Shorts", "Sneakers", "Boots",
        "Sandals", "Cap", "Beanie", "Other",
    ],
}


class CategoryError(Exception):
    """Raised for category operation errors."""
    def __init__(self, message: str, status_code: int = 400, details: dict | None = None):
        super().__init__(message)
        self.status_code = status_code
        self.details = details or {}


def require_category_type(category_type: str) -> str:
    if category_type not in CATEGORY_TYPES:
        raise CategoryError(
            f"Unknown category type: {category_type}",
            details={"allowed": list(CATEGORY_TYPES)},
        )
    return category_type


def _active_of_type(category_type: str):
    return db.session.query(Category).filter(
        Category.type == category_type,
        Category.is_active.is_(True),
    )


def list_categories(category_type: str | None = None) -> list[Category]:
    if category_type is not None:
        require_category_type(category_type)
        query = _active_of_type(category_type)
        return query.order_by(Category.display_order.asc(), Category.value.asc()).all()

    return (
        db.session.query(Category)
        .filter(Category.is_active.is_(True))
        .order_by(Category.type.asc(), Category.display_order.asc(), Category.value.asc())
        .all()
    )


def grouped_categories() -> dict[str, list[str]]:
    """{"type": ["Shirt", ...], "color": [...], ...} for form dropdowns."""
    grouped = {t: [] for t in CATEGORY_TYPES}
    for cat in list_categories():
        grouped.setdefault(cat.type, []).append(cat.value)
    return grouped


def get_category(category_id: int) -> Category:
    cat = db.session.get(Category, category_id)
    if cat is None:
        raise CategoryError("Category not found", status_code=404)
    return cat


def _find_active_value(category_type: str, value: str, *, exclude_id: int | None = None):
    query = _active_of_type(category_type).filter(func.lower(Category.value) == value.lower())
    if exclude_id is not None:
        query = query.filter(Category.id != exclude_id)
    return query.first()


def _next_display_order(category_type: str) -> int:
    current = (
        db.session.query(func.max(Category.display_order))
        .filter(Category.type == category_type, Category.is_active.is_(True))
        .scalar()
    )
    return 0 if current is None else current + 1


def _taken_abbreviations(category_type: str) -> set[str]:
    rows = (
        db.session.query(Category.abbreviation)
        .filter(Category.type == category_type, Category.abbreviation.isnot(None))
        .all()
    )
    return {r[0] for r in rows if r[0]}


def _add_category(category_type: str, value: str, *, is_active: bool = True) -> Category:
    abbreviation = unique_abbreviation(
        generate_abbreviation(value, category_type),
        _taken_abbreviations(category_type),
    )
    cat = Category(
        type=category_type,
        value=value,
        abbreviation=abbreviation or None,
        display_order=_next_display_order(category_type),
        is_active=is_active,
    )
    db.session.add(cat)
    db.session.flush()
    return cat


def create_category(category_type: str, value: str) -> Category:
    """Append a new value at the end of its type's display order."""
    require_category_type(category_type)
    value = (value or "").strip()
    if not value:
        raise CategoryError("value is required")
    if _find_active_value(category_type, value):
        raise CategoryError(f"{category_type} '{value}' already exists", status_code=409)

    cat = _add_category(category_type, value)
    db.session.commit()
    return cat


def update_category(category_id: int, patch: dict) -> Category:
    """
    Rename a value or move it. Allowed keys: value, display_order, abbreviation.
    """
    cat = get_category(category_id)

    value = None
    if "value" in patch:
        value = (patch["value"] or "").strip()
        if not value:
            raise CategoryError("value cannot be blank")
        if _find_active_value(cat.type, value, exclude_id=cat.id):
            raise CategoryError(f"{cat.type} '{value}' already exists", status_code=409)

    order = patch.get("display_order")
    if "display_order" in patch and (order is None or order < 0):
        raise CategoryError("display_order must be >= 0")

    if value is not None:
        cat.value = value
    if order is not None:
        cat.display_order = order

    if "abbreviation" in patch:
        cat.abbreviation = (patch["abbreviation"] or "").strip().upper() or None

    db.session.commit()
    return cat


def _renumber(category_type: str) -> None:
    remaining = _active_of_type(category_type).order_by(
        Category.display_order.asc(), Category.id.asc()
    ).all()
    for position, cat in enumerate(remaining):
        if cat.display_order != position:
            cat.display_order = position


def delete_category(category_id: int) -> None:
    """Soft delete, then close the gap in display_order."""
    cat = get_category(category_id)
    if not cat.is_active:
        raise CategoryError("Category already deleted", status_code=409)

    cat.is_active = False
    db.session.flush()
    _renumber(cat.type)
    db.session.commit()


def reorder_categories(category_type: str, category_ids: list[int]) -> list[Category]:
    """Assign display_order 0..n-1 following category_ids."""
    require_category_type(category_type)
    if not isinstance(category_ids, list):
        raise CategoryError("categoryIds must be a list")
    if len(set(category_ids)) != len(category_ids):
        raise CategoryError("categoryIds contains duplicates")

    by_id = {c.id: c for c in _active_of_type(category_type).all()}
    missing = [cid for cid in category_ids if cid not in by_id]
    if missing:
        raise CategoryError(
            f"Categories not found for type {category_type}",
            details={"missing_ids": missing},
        )

    for position, cid in enumerate(category_ids):
        by_id[cid].display_order = position
    db.session.commit()
    return list_categories(category_type)


def seed_defaults() -> int:
    """Insert the default values that are missing. Returns rows created."""
    created = 0
    for category_type, values in DEFAULT_CATEGORIES.items():
        for value in values:
            if _find_active_value(category_type, value):
                continue
            _add_category(category_type, value)
            created += 1
    db.session.commit()
    return created


def backfill_abbreviations() -> list[Category]:
    """Fill in missing abbreviations, keeping them unique within each type."""
    updated = []
    missing = (
        db.session.query(Category)
        .filter((Category.abbreviation.is_(None)) | (Category.abbreviation == ""))
        .order_by(Category.type.asc(), Category.display_order.asc(), Category.id.asc())
        .all()
    )
    taken: dict[str, set[str]] = {}
    for cat in missing:
        if cat.type not in taken:
            taken[cat.type] = _taken_abbreviations(cat.type)
        abbreviation = unique_abbreviation(generate_abbreviation(cat.value, cat.type), taken[cat.type])
        if not abbreviation:
            continue
        taken[cat.type].add(abbreviation)
        cat.abbreviation = abbreviation
        updated.append(cat)
    db.session.commit()
    return updated


# --- Excel / CSV ------------------------------------------------------------

def export_workbook() -> bytes:
    """One worksheet per category type: Value | Display Order | Is Active."""
    wb = Workbook()
    wb.remove(wb.active)

    for category_type in CATEGORY_TYPES:
        ws = wb.create_sheet(title=SHEET_TITLES[category_type])
        ws.append(list(SHEET_HEADERS))
        for cat in list_categories(category_type):
            ws.append([cat.value, cat.display_order, "Yes" if cat.is_active else "No"])

    buffer = io.BytesIO()
    wb.save(buffer)
    return buffer.getvalue()


def _is_truthy(value) -> bool:
    if isinstance(value, bool):
        return value
    return str(value).strip().lower() in {"yes", "true", "1"}


def rows_from_workbook(stream) -> list[dict]:
    """Sheets named after category types become rows tagged with that type."""
    wb = load_workbook(stream, data_only=True, read_only=True)
    titles_to_type = {title: t for t, title in SHEET_TITLES.items()}

    rows = []
    for sheet_name in wb.sheetnames:
        category_type = titles_to_type.get(sheet_name)
        if category_type is None:
            continue
        data = list(wb[sheet_name].values)
        if not data:
            continue
        headers = [str(h).strip() if h is not None else "" for h in data[0]]
        for raw in data[1:]:
            record = {headers[i]: raw[i] for i in range(min(len(headers), len(raw)))}
            if all(v is None for v in record.values()):
                continue
            rows.append({
                "type": category_type,
                "value": record.get("Value", record.get("value")),
                "displayOrder": record.get("Display Order", record.get("displayOrder")),
                "isActive": record.get("Is Active", record.get("isActive", "Yes")),
            })
    return rows


def rows_from_csv(text: str) -> list[dict]:
    """CSV columns: type, value[, displayOrder, isActive]."""
    reader = csv.DictReader(io.StringIO(text))
    rows = []
    for record in reader:
        rows.append({
            "type": record.get("type"),
            "value": record.get("value"),
            "displayOrder": record.get("displayOrder", record.get("Display Order")),
            "isActive": record.get("isActive", record.get("Is Active", "Yes")),
        })
    return rows


def import_rows(rows: list[dict]) -> dict:
    """
    Create categories from parsed rows.

    Existing values (case-insensitive, per type) are skipped, not errors.
    New values are appended in file order; displayOrder from the file is
    ignored so the ordering stays dense.
    """
    success_count = 0
    skipped_count = 0
    errors: list[str] = []

    for index, row in enumerate(rows, start=1):
        category_type = str(row.get("type") or "").strip()
        value = str(row.get("value") or "").strip()

        if not category_type or not value:
            errors.append(f"Row {index}: missing required fields type/value")
            continue
        if category_type not in CATEGORY_TYPES:
            errors.append(f"Row {index}: unknown category type {category_type!r}")
            continue
        if len(value) > Category.__table__.c.value.type.length:
            errors.append(f"Row {index}: value too long")
            continue
        if _find_active_value(category_type, value):
            skipped_count += 1
            continue

        if not _is_truthy(row.get("isActive", "Yes")):
            # Inactive rows in an export are deleted values; nothing to create
            skipped_count += 1
            continue

        _add_category(category_type, value)
        success_count += 1

    db.session.commit()
    return {
        "message": "Import completed",
        "successCount": success_count,
        "skippedCount": skipped_count,
        "errorCount": len(errors),
        "errors": errors[:MAX_IMPORT_ERRORS_REPORTED],
        "totalErrors": len(errors),
    }
