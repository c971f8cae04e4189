"""
Inventory Service - catalog reads and attribute edits for InventoryItem

WHY: Keeps item lookup/search rules and SKU/name defaults in one place.

QUANTITY: this module never changes InventoryItem.quantity on an existing
item. Stock changes go through stock_service (add_stock / record_sale /
adjust_inventory) so the ledger always explains the counter.
"""

from __future__ import annotations

import json

from sqlalchemy import or_
from sqlalchemy.exc import IntegrityError

from ..extensions import db
from ..models import InventoryItem, InventoryTransaction, Supplier
from ..validation import ConflictError, ValidationError
from . import naming
from .stock_service import ConcurrentModification, ItemNotFound, record_opening_stock, run_atomic

ITEM_UPDATABLE_FIELDS = {
    "sku",
    "name",
    "description",
    "type",
    "size",
    "color",
    "design",
    "group_type",
    "style_group",
    "price",
    "cost",
    "min_stock_level",
    "supplier_id",
}

SEARCH_FIELDS = (
    InventoryItem.sku,
    InventoryItem.name,
    InventoryItem.description,
    InventoryItem.type,
    InventoryItem.color,
    InventoryItem.design,
    InventoryItem.group_type,
    InventoryItem.style_group,
)


def selections_from_patch(patch: dict) -> dict:
    """Column-keyed patch -> the camelCase selection dict used by naming."""
    return {
        "type": patch.get("type"),
        "color": patch.get("color"),
        "size": patch.get("size"),
        "design": patch.get("design"),
        "groupType": patch.get("group_type"),
        "styleGroup": patch.get("style_group"),
    }


def sku_exists(sku: str, *, exclude_id: int | None = None) -> bool:
    query = db.session.query(InventoryItem.id).filter(InventoryItem.sku == sku)
    if exclude_id is not None:
        query = query.filter(InventoryItem.id != exclude_id)
    return query.first() is not None


def list_items(include_archived: bool = False) -> list[InventoryItem]:
    query = db.session.query(InventoryItem)
    if not include_archived:
        query = query.filter(InventoryItem.is_active.is_(True))
    return query.order_by(InventoryItem.sku.asc()).all()


def get_item(item_id: int) -> InventoryItem:
    item = db.session.get(InventoryItem, item_id)
    if item is None:
        raise ItemNotFound(f"Inventory item {item_id} not found", details={"item_id": item_id})
    return item


def normalize_search_term(term: str) -> str:
    """
    Scanned QR labels carry JSON like {"sku": "SHI-BLU-M-123", "id": 4}.
    Unwrap to the most specific identifier; plain text passes through.
    """
    term = (term or "").strip()
    if term.startswith("{") and term.endswith("}"):
        try:
            data = json.loads(term)
        except ValueError:
            return term
        if isinstance(data, dict):
            for key in ("sku", "id", "name"):
                if data.get(key) not in (None, ""):
                    return str(data[key]).strip()
    return term


def search_items(term: str, include_archived: bool = False, limit: int = 10) -> list[InventoryItem]:
    """Case-insensitive partial match across the descriptive columns."""
    term = normalize_search_term(term)
    if not term:
        return []

    # Escape LIKE wildcards so "%" and "_" are matched literally
    escaped = term.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
    pattern = f"%{escaped}%"

    query = db.session.query(InventoryItem).filter(
        or_(*(col.ilike(pattern, escape="\\") for col in SEARCH_FIELDS))
    )
    if not include_archived:
        query = query.filter(InventoryItem.is_active.is_(True))
    return query.order_by(InventoryItem.sku.asc()).limit(limit).all()


def get_item_by_sku(sku: str) -> InventoryItem:
    """Exact SKU match first, then the first partial search hit."""
    term = normalize_search_term(sku)
    item = db.session.query(InventoryItem).filter(InventoryItem.sku == term).first()
    if item is not None:
        return item

    if term.isdigit():
        item = db.session.get(InventoryItem, int(term))
        if item is not None:
            return item

    matches = search_items(term, include_archived=False, limit=1)
    if not matches:
        raise ItemNotFound(f"No inventory item matches {term!r}", details={"sku": term})
    return matches[0]


def list_low_stock() -> list[InventoryItem]:
    return (
        db.session.query(InventoryItem)
        .filter(
            InventoryItem.is_active.is_(True),
            InventoryItem.quantity <= InventoryItem.min_stock_level,
        )
        .order_by(InventoryItem.quantity.asc(), InventoryItem.sku.asc())
        .all()
    )


def _require_supplier(supplier_id: int | None) -> None:
    if supplier_id is not None and db.session.get(Supplier, supplier_id) is None:
        raise ValidationError(f"Supplier {supplier_id} not found")


def preview_generated_fields(selections: dict) -> dict:
    """Name + unique SKU suggestion for the add-item form."""
    try:
        sku = naming.generate_unique_sku(selections, sku_exists)
    except ValueError as e:
        raise ConflictError(str(e))
    return {"name": naming.generate_item_name(selections), "sku": sku}


def create_item(patch: dict, user_id: int | None = None) -> InventoryItem:
    """
    Create an item from a validated patch.

    - sku omitted: generated from type/color/size with a uniqueness retry.
    - name omitted: generated from the category selections.
    - opening quantity > 0 is written to the ledger as "initial stock".
    """
    patch = dict(patch)
    _require_supplier(patch.get("supplier_id"))

    selections = selections_from_patch(patch)
    if not patch.get("name"):
        patch["name"] = naming.generate_item_name(selections)

    if patch.get("sku"):
        if sku_exists(patch["sku"]):
            raise ConflictError(f"SKU {patch['sku']} already exists")
    else:
        try:
            patch["sku"] = naming.generate_unique_sku(selections, sku_exists)
        except ValueError as e:
            raise ConflictError(str(e))

    def _op():
        item = InventoryItem(**patch)
        db.session.add(item)
        db.session.flush()  # ensure item.id exists before ledger append
        record_opening_stock(item, user_id=user_id)
        db.session.commit()
        return item

    try:
        return run_atomic(_op)
    except IntegrityError as e:
        # Lost a race with another create using the same SKU
        raise ConflictError(f"SKU {patch['sku']} already exists") from e


def update_item(item_id: int, patch: dict, expected_version: int | None = None) -> InventoryItem:
    """
    Apply attribute edits. quantity/is_active are not editable here.

    expected_version: the versionId the client last saw; a mismatch means
    someone else (a sale, a restock, another editor) changed the item.
    """
    unknown = set(patch) - ITEM_UPDATABLE_FIELDS
    if unknown:
        raise ValidationError(f"Field not allowed: {', '.join(sorted(unknown))}")

    if "supplier_id" in patch:
        _require_supplier(patch["supplier_id"])
    if patch.get("sku") and sku_exists(patch["sku"], exclude_id=item_id):
        raise ConflictError(f"SKU {patch['sku']} already exists")

    def _op():
        item = db.session.get(InventoryItem, item_id, populate_existing=True)
        if item is None:
            raise ItemNotFound(f"Inventory item {item_id} not found", details={"item_id": item_id})
        if expected_version is not None and item.version_id != expected_version:
            raise ConcurrentModification(
                "Item was modified by someone else; reload and retry",
                details={"expected_version": expected_version, "current_version": item.version_id},
            )
        for k, v in patch.items():
            setattr(item, k, v)
        db.session.commit()
        return item

    return run_atomic(_op)


def list_transactions(item_id: int | None = None, limit: int | None = None) -> list[InventoryTransaction]:
    query = db.session.query(InventoryTransaction)
    if item_id is not None:
        get_item(item_id)
        query = query.filter(InventoryTransaction.item_id == item_id)
    query = query.order_by(InventoryTransaction.created_at.desc(), InventoryTransaction.id.desc())
    if limit:
        query = query.limit(limit)
    return query.all()
