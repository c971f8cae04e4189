"""
Sales Service - ring up sale lines against the stock contract

WHY: A Sale row and the stock decrement it causes must commit together.
Each line calls stock_service.record_sale(commit=False) inside the same
unit of work as the Sale insert; any failure (insufficient stock, unknown
associate, bad insert) rolls back every line of the order.

Sales are immutable: there is no update or delete path.
"""

from __future__ import annotations

import time

from sqlalchemy.orm import joinedload

from ..extensions import db
from ..models import Sale, User
from ..money import money_str
from .stock_service import record_sale, run_atomic


class SaleError(Exception):
    """Raised for sale operation errors."""
    def __init__(self, message: str, details: dict | None = None, status_code: int = 400):
        super().__init__(message)
        self.details = details or {}
        self.status_code = status_code


def generate_order_number() -> str:
    """ORD- followed by the last six digits of the millisecond clock."""
    return f"ORD-{str(int(time.time() * 1000))[-6:]}"


def _require_active_associate(user_id: int) -> User:
    user = db.session.get(User, user_id)
    if user is None:
        raise SaleError("Sales associate not found", details={"sales_associate_id": user_id})
    if not user.is_active:
        raise SaleError("Sales associate is inactive", details={"sales_associate_id": user_id})
    return user


def _insert_sale(patch: dict) -> Sale:
    # Stock first: the conditional UPDATE is the first statement of the unit
    record_sale(
        patch["item_id"],
        patch["quantity"],
        order_number=patch["order_number"],
        user_id=patch["sales_associate_id"],
        commit=False,
    )
    _require_active_associate(patch["sales_associate_id"])

    sale = Sale(**patch)
    db.session.add(sale)
    db.session.flush()
    return sale


def create_sale(patch: dict) -> Sale:
    """
    Record one sale line from a validated patch (see validation.enforce_rules_sale).
    """
    patch = dict(patch)
    if not patch.get("order_number"):
        patch["order_number"] = generate_order_number()

    def _op():
        sale = _insert_sale(patch)
        db.session.commit()
        return sale

    return run_atomic(_op)


def create_order(lines: list[dict], order_number: str | None = None) -> list[Sale]:
    """
    Multi-line checkout: every line shares order_number; all-or-nothing.
    """
    if not lines:
        raise SaleError("Order must contain at least one line item")

    order_number = order_number or generate_order_number()
    prepared = [dict(line, order_number=order_number) for line in lines]

    def _op():
        sales = [_insert_sale(line) for line in prepared]
        db.session.commit()
        return sales

    return run_atomic(_op)


def _with_related(query):
    return query.options(joinedload(Sale.item), joinedload(Sale.sales_associate))


def list_sales(limit: int | None = None) -> list[Sale]:
    query = _with_related(db.session.query(Sale)).order_by(Sale.sale_date.desc(), Sale.id.desc())
    if limit:
        query = query.limit(limit)
    return query.all()


def get_sale(sale_id: int) -> Sale:
    sale = _with_related(db.session.query(Sale)).filter(Sale.id == sale_id).first()
    if sale is None:
        raise SaleError("Sale not found", status_code=404)
    return sale


def get_order(order_number: str) -> dict:
    """All lines of one order plus its totals."""
    sales = (
        _with_related(db.session.query(Sale))
        .filter(Sale.order_number == order_number)
        .order_by(Sale.id.asc())
        .all()
    )
    if not sales:
        raise SaleError("Order not found", status_code=404)

    total = sum(s.total_amount for s in sales)
    return {
        "orderNumber": order_number,
        "sales": [s.to_dict(include_related=True) for s in sales],
        "itemCount": sum(s.quantity for s in sales),
        "totalAmount": money_str(total),
        "paymentMethod": sales[0].payment_method,
        "saleDate": sales[0].to_dict()["saleDate"],
    }
