# backend/merchpos/routes/inventory.py
"""
Inventory management routes.

SECURITY: All routes require authentication.

Stock mutations (add-stock, adjust, and sales in routes/sales.py) go through
services/stock_service.py; StockError subclasses propagate to the app-level
handler, which maps them to 400/404/409/500.

Wire format: camelCase JSON. Money as "12.50" strings.
"""
from flask import Blueprint, request, g

from ..models import InventoryItem
from ..validation import (
    ModelValidationPolicy,
    validate_payload,
    ValidationError,
    ConflictError,
    coerce_int,
    enforce_rules_item,
    parse_stock_request,
)
from ..decorators import require_auth
from ..services import inventory_service, stock_service


inventory_bp = Blueprint("inventory", __name__, url_prefix="/api/inventory")

_ITEM_FIELDS = {
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

ITEM_CREATE_POLICY = ModelValidationPolicy(
    # quantity here is the opening stock; it is recorded in the ledger
    writable_fields=_ITEM_FIELDS | {"quantity"},
    required_on_create={"type", "price"},
)

ITEM_UPDATE_POLICY = ModelValidationPolicy(
    writable_fields=_ITEM_FIELDS,
)

SELECTION_KEYS = ("type", "color", "size", "design", "groupType", "styleGroup")


def _include_archived() -> bool:
    return request.args.get("includeArchived", "false").lower() == "true"


def _current_user_id():
    return g.current_user.id if hasattr(g, "current_user") else None


@inventory_bp.get("")
@require_auth
def list_items_route():
    items = inventory_service.list_items(include_archived=_include_archived())
    return [i.to_dict() for i in items], 200


@inventory_bp.get("/low-stock")
@require_auth
def low_stock_route():
    return [i.to_dict() for i in inventory_service.list_low_stock()], 200


@inventory_bp.get("/search/<path:term>")
@require_auth
def search_route(term: str):
    items = inventory_service.search_items(term, include_archived=_include_archived())
    return [i.to_dict() for i in items], 200


@inventory_bp.get("/sku/<path:sku>")
@require_auth
def get_by_sku_route(sku: str):
    return inventory_service.get_item_by_sku(sku).to_dict(), 200


@inventory_bp.get("/transactions")
@require_auth
def recent_transactions_route():
    limit = request.args.get("limit", default=100, type=int)
    txs = inventory_service.list_transactions(limit=max(1, min(limit, 500)))
    return [t.to_dict() for t in txs], 200


@inventory_bp.get("/<int:item_id>")
@require_auth
def get_item_route(item_id: int):
    return inventory_service.get_item(item_id).to_dict(), 200


@inventory_bp.post("")
@require_auth
def create_item_route():
    payload = request.get_json(silent=True)

    try:
        patch = validate_payload(model=InventoryItem, payload=payload, policy=ITEM_CREATE_POLICY, partial=False)
        enforce_rules_item(patch)
        item = inventory_service.create_item(patch, user_id=_current_user_id())
    except ValidationError as e:
        return {"error": str(e)}, 400
    except ConflictError as e:
        return {"error": str(e)}, 409

    return item.to_dict(), 201


@inventory_bp.patch("/<int:item_id>")
@require_auth
def update_item_route(item_id: int):
    """
    Attribute edits only. quantity is rejected: use add-stock/adjust.
    Send the versionId you loaded to detect concurrent edits (409).
    """
    payload = request.get_json(silent=True)

    try:
        if not isinstance(payload, dict):
            raise ValidationError("Invalid JSON payload")
        expected_version = None
        if payload.get("versionId") is not None:
            expected_version = coerce_int(payload["versionId"], "versionId")
        patch = validate_payload(
            model=InventoryItem,
            payload=payload,
            policy=ITEM_UPDATE_POLICY,
            partial=True,
            ignore_fields={"versionId"},
        )
        enforce_rules_item(patch)
        item = inventory_service.update_item(item_id, patch, expected_version=expected_version)
    except ValidationError as e:
        return {"error": str(e)}, 400
    except ConflictError as e:
        return {"error": str(e)}, 409

    return item.to_dict(), 200


@inventory_bp.patch("/<int:item_id>/archive")
@require_auth
def archive_item_route(item_id: int):
    return stock_service.archive_item(item_id).to_dict(), 200


@inventory_bp.patch("/<int:item_id>/restore")
@require_auth
def restore_item_route(item_id: int):
    return stock_service.restore_item(item_id).to_dict(), 200


@inventory_bp.post("/<int:item_id>/add-stock")
@require_auth
def add_stock_route(item_id: int):
    try:
        req = parse_stock_request(request.get_json(silent=True))
    except ValidationError as e:
        return {"error": str(e)}, 400

    item = stock_service.add_stock(
        item_id,
        req.quantity,
        reason=req.reason or "restock",
        notes=req.notes,
        user_id=_current_user_id(),
    )
    return item.to_dict(), 200


@inventory_bp.post("/<int:item_id>/adjust")
@require_auth
def adjust_route(item_id: int):
    """Remove damaged/lost units. quantity is the positive amount removed."""
    try:
        req = parse_stock_request(request.get_json(silent=True))
    except ValidationError as e:
        return {"error": str(e)}, 400

    item = stock_service.adjust_inventory(
        item_id,
        req.quantity,
        reason=req.reason or "adjustment",
        notes=req.notes,
        user_id=_current_user_id(),
    )
    return item.to_dict(), 200


@inventory_bp.get("/<int:item_id>/transactions")
@require_auth
def item_transactions_route(item_id: int):
    return [t.to_dict() for t in inventory_service.list_transactions(item_id)], 200


@inventory_bp.get("/<int:item_id>/reconcile")
@require_auth
def reconcile_route(item_id: int):
    """Read-only drift report; repairs are done with `flask inventory reconcile --repair`."""
    return stock_service.reconcile_item(item_id).to_dict(), 200


@inventory_bp.post("/generate")
@require_auth
def generate_route():
    payload = request.get_json(silent=True)
    if not isinstance(payload, dict):
        return {"error": "Invalid JSON payload"}, 400

    unknown = sorted(set(payload) - set(SELECTION_KEYS))
    if unknown:
        return {"error": f"Field not allowed: {', '.join(unknown)}"}, 400

    selections = {k: payload.get(k) for k in SELECTION_KEYS}
    try:
        return inventory_service.preview_generated_fields(selections), 200
    except ConflictError as e:
        return {"error": str(e)}, 409
