from datetime import timedelta
from decimal import Decimal

from merchpos.services import sales_service, stock_service
from merchpos.services.reporting_service import dashboard_stats
from merchpos.time_utils import utcnow

from conftest import make_item


def _sell(item, associate, quantity):
    return sales_service.create_sale({
        "item_id": item.id,
        "quantity": quantity,
        "unit_price": Decimal("25.00"),
        "total_amount": Decimal("25.00") * quantity,
        "payment_method": "cash",
        "sales_associate_id": associate.id,
    })


def test_empty_store(db_session):
    stats = dashboard_stats()
    assert stats["totalRevenue"] == "0.00"
    assert stats["totalProfit"] == "0.00"
    assert stats["totalItems"] == 0
    assert stats["salesToday"] == 0
    assert stats["lowStockCount"] == 0


def test_revenue_profit_and_stock(item, associate_user):
    make_item(quantity=3, sku="HAT-BLA-OS-200", type="Hat", color="Black", size="One Size")
    archived = make_item(quantity=1, sku="BAG-RED-NA-300", type="Bag", color="Red", size="N/A")
    stock_service.archive_item(archived.id)

    _sell(item, associate_user, 2)

    stats = dashboard_stats()
    assert stats["totalRevenue"] == "50.00"
    assert stats["totalProfit"] == "30.00"  # 50.00 - 2 x 10.00 cost
    assert stats["totalItems"] == 8 + 3
    assert stats["salesToday"] == 1
    assert stats["lowStockCount"] == 1
    assert stats["asOf"].endswith("Z")


def test_sales_today_counts_from_local_midnight(item, associate_user):
    _sell(item, associate_user, 1)
    stats = dashboard_stats(now=utcnow() + timedelta(days=2))
    assert stats["salesToday"] == 0
    assert stats["totalRevenue"] == "25.00"


def test_stats_route(client, item, associate_headers):
    resp = client.get("/api/dashboard/stats", headers=associate_headers)
    assert resp.status_code == 200
    assert resp.json["totalItems"] == 10
    assert set(resp.json) == {"totalRevenue", "totalProfit", "totalItems", "salesToday", "lowStockCount", "asOf"}


def test_stats_route_requires_auth(client, db_session):
    assert client.get("/api/dashboard/stats").status_code == 401
