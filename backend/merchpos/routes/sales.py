# backend/merchpos/routes/sales.py
"""
Sales routes.

POST /api/sales         one line  {itemId, quantity, unitPrice, totalAmount?,
                                   paymentMethod, salesAssociateId, orderNumber?}
POST /api/sales/orders  many lines sharing one order number, all-or-nothing
                        {orderNumber?, paymentMethod, salesAssociateId,
                         items: [{itemId, quantity, unitPrice, totalAmount?}]}

totalAmount must equal quantity x unitPrice; it is computed when omitted.
Stock failures (InsufficientStock, ItemArchived, ...) are StockErrors and
handled app-wide.

Sales are immutable: no PUT/PATCH/DELETE.
"""
from flask import Blueprint, request, current_app, g

from ..models import Sale
from ..validation import (
    ModelValidationPolicy,
    validate_payload,
    ValidationError,
    enforce_rules_sale,
)
from ..decorators import require_auth
from ..services import sales_service
from ..services.sales_service import SaleError


sales_bp = Blueprint("sales", __name__, url_prefix="/api/sales")

SALE_POLICY = ModelValidationPolicy(
    writable_fields={
        "order_number",
        "item_id",
        "quantity",
        "unit_price",
        "total_amount",
        "payment_method",
        "sales_associate_id",
    },
    required_on_create={"item_id", "quantity", "unit_price", "payment_method", "sales_associate_id"},
)

ORDER_HEADER_KEYS = {"orderNumber", "paymentMethod", "salesAssociateId", "items"}
ORDER_LINE_KEYS = {"itemId", "quantity", "unitPrice", "totalAmount"}


def _validate_sale(payload: dict) -> dict:
    patch = validate_payload(model=Sale, payload=payload, policy=SALE_POLICY, partial=False)
    enforce_rules_sale(patch)
    return patch


def _sale_error(e: SaleError):
    body = {"error": str(e)}
    if e.details:
        body["details"] = e.details
    return body, e.status_code


@sales_bp.get("")
@require_auth
def list_sales_route():
    limit = request.args.get("limit", type=int)
    return [s.to_dict(include_related=True) for s in sales_service.list_sales(limit=limit)], 200


@sales_bp.post("")
@require_auth
def create_sale_route():
    payload = request.get_json(silent=True)
    try:
        patch = _validate_sale(payload)
        sale = sales_service.create_sale(patch)
    except ValidationError as e:
        return {"error": str(e)}, 400
    except SaleError as e:
        return _sale_error(e)

    current_app.logger.info(
        "Sale %s recorded: order=%s item=%s qty=%s by user_id=%s",
        sale.id, sale.order_number, sale.item_id, sale.quantity, g.current_user.id,
    )
    return sale.to_dict(include_related=True), 201


@sales_bp.post("/orders")
@require_auth
def create_order_route():
    payload = request.get_json(silent=True)
    try:
        if not isinstance(payload, dict):
            raise ValidationError("Invalid JSON payload")
        unknown = sorted(set(payload) - ORDER_HEADER_KEYS)
        if unknown:
            raise ValidationError(f"Field not allowed: {', '.join(unknown)}")

        items = payload.get("items")
        if not isinstance(items, list) or not items:
            raise ValidationError("items must be a non-empty list")

        header = {k: payload.get(k) for k in ("paymentMethod", "salesAssociateId")}
        lines = []
        for index, line in enumerate(items, start=1):
            if not isinstance(line, dict):
                raise ValidationError(f"items[{index}] must be an object")
            unknown = sorted(set(line) - ORDER_LINE_KEYS)
            if unknown:
                raise ValidationError(f"items[{index}]: field not allowed: {', '.join(unknown)}")
            try:
                lines.append(_validate_sale({**line, **header}))
            except ValidationError as e:
                raise ValidationError(f"items[{index}]: {e}")

        order_number = payload.get("orderNumber")
        if order_number is not None:
            order_number = str(order_number).strip()[:20] or None

        sales = sales_service.create_order(lines, order_number=order_number)
    except ValidationError as e:
        return {"error": str(e)}, 400
    except SaleError as e:
        return _sale_error(e)

    return sales_service.get_order(sales[0].order_number), 201


@sales_bp.get("/<int:sale_id>")
@require_auth
def get_sale_route(sale_id: int):
    try:
        sale = sales_service.get_sale(sale_id)
    except SaleError as e:
        return _sale_error(e)
    return sale.to_dict(include_related=True), 200


@sales_bp.get("/order/<order_number>")
@require_auth
def get_order_route(order_number: str):
    try:
        return sales_service.get_order(order_number), 200
    except SaleError as e:
        return _sale_error(e)
