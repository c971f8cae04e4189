# Overview: Service-layer aggregates for the dashboard; read-only SQL over sales and inventory.

from __future__ import annotations

from datetime import datetime

from flask import current_app
from sqlalchemy import func

from merchpos.extensions import db
from merchpos.models import InventoryItem, Sale
from merchpos.money import money_str
from merchpos.time_utils import start_of_local_day, utcnow, to_utc_z


def dashboard_stats(now: datetime | None = None) -> dict:
    """
    Headline numbers for the dashboard.

    - totalRevenue: SUM(sale.total_amount)
    - totalProfit:  SUM(total_amount - quantity * COALESCE(item.cost, 0))
    - totalItems:   SUM(item.quantity) over active items
    - salesToday:   sale rows since local midnight (STORE_TIMEZONE)
    - lowStockCount: active items with quantity <= min_stock_level
    """
    now = now or utcnow()
    day_start = start_of_local_day(current_app.config.get("STORE_TIMEZONE", "UTC"), now)

    revenue = db.session.query(func.coalesce(func.sum(Sale.total_amount), 0)).scalar()

    profit = (
        db.session.query(
            func.coalesce(
                func.sum(Sale.total_amount - Sale.quantity * func.coalesce(InventoryItem.cost, 0)),
                0,
            )
        )
        .join(InventoryItem, InventoryItem.id == Sale.item_id)
        .scalar()
    )

    total_items = (
        db.session.query(func.coalesce(func.sum(InventoryItem.quantity), 0))
        .filter(InventoryItem.is_active.is_(True))
        .scalar()
    )

    sales_today = (
        db.session.query(func.count(Sale.id))
        .filter(Sale.sale_date >= day_start)
        .scalar()
    )

    low_stock_count = (
        db.session.query(func.count(InventoryItem.id))
        .filter(
            InventoryItem.is_active.is_(True),
            InventoryItem.quantity <= InventoryItem.min_stock_level,
        )
        .scalar()
    )

    return {
        "totalRevenue": money_str(revenue),
        "totalProfit": money_str(profit),
        "totalItems": int(total_items or 0),
        "salesToday": int(sales_today or 0),
        "lowStockCount": int(low_stock_count or 0),
        "asOf": to_utc_z(now),
    }
