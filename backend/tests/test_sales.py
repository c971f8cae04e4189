"""
Sales tests.

Verifies:
- A sale decrements stock and writes the Sale + ledger row together
- totalAmount is validated against quantity x unitPrice
- Multi-line orders are all-or-nothing
- Sales attributed to an inactive associate are refused
"""

from decimal import Decimal

import pytest

from merchpos.extensions import db
from merchpos.models import InventoryItem, InventoryTransaction, Sale
from merchpos.services import auth_service, sales_service
from merchpos.services.sales_service import SaleError
from merchpos.services.stock_service import InsufficientStock

from conftest import make_item


def quantity_of(item_id):
    return db.session.get(InventoryItem, item_id, populate_existing=True).quantity


def sale_payload(item, associate, **overrides):
    payload = {
        "itemId": item.id,
        "quantity": 2,
        "unitPrice": "25.00",
        "paymentMethod": "cash",
        "salesAssociateId": associate.id,
    }
    payload.update(overrides)
    return payload


# =============================================================================
# SERVICE
# =============================================================================


class TestCreateSale:

    def test_sale_commits_with_stock_change(self, item, associate_user):
        sale = sales_service.create_sale({
            "item_id": item.id,
            "quantity": 3,
            "unit_price": Decimal("25.00"),
            "total_amount": Decimal("75.00"),
            "payment_method": "venmo",
            "sales_associate_id": associate_user.id,
        })

        assert sale.order_number.startswith("ORD-")
        assert len(sale.order_number) == 10
        assert quantity_of(item.id) == 7

        ledger = db.session.query(InventoryTransaction).filter_by(transaction_type="sale").one()
        assert ledger.quantity == -3
        assert ledger.notes == f"Sale {sale.order_number}"
        assert ledger.user_id == associate_user.id

    def test_inactive_associate_rolls_back_stock(self, item, associate_user):
        auth_service.update_associate(associate_user.id, is_active=False)

        with pytest.raises(SaleError):
            sales_service.create_sale({
                "item_id": item.id,
                "quantity": 1,
                "unit_price": Decimal("25.00"),
                "total_amount": Decimal("25.00"),
                "payment_method": "cash",
                "sales_associate_id": associate_user.id,
            })

        assert quantity_of(item.id) == 10
        assert db.session.query(Sale).count() == 0

    def test_order_is_all_or_nothing(self, item, associate_user):
        scarce = make_item(quantity=1, sku="HAT-BLA-OS-200", type="Hat", color="Black", size="One Size")
        line = {
            "unit_price": Decimal("25.00"),
            "total_amount": Decimal("50.00"),
            "payment_method": "cash",
            "sales_associate_id": associate_user.id,
        }

        with pytest.raises(InsufficientStock):
            sales_service.create_order([
                dict(line, item_id=item.id, quantity=2),
                dict(line, item_id=scarce.id, quantity=2),
            ])

        assert quantity_of(item.id) == 10
        assert quantity_of(scarce.id) == 1
        assert db.session.query(Sale).count() == 0
        assert db.session.query(InventoryTransaction).filter_by(transaction_type="sale").count() == 0

    def test_order_lines_share_order_number(self, item, associate_user):
        other = make_item(quantity=4, sku="HAT-BLA-OS-201", type="Hat", color="Black", size="One Size")
        line = {"payment_method": "cash", "sales_associate_id": associate_user.id}

        sales = sales_service.create_order(
            [
                dict(line, item_id=item.id, quantity=1, unit_price=Decimal("25.00"), total_amount=Decimal("25.00")),
                dict(line, item_id=other.id, quantity=2, unit_price=Decimal("12.50"), total_amount=Decimal("25.00")),
            ],
            order_number="ORD-123456",
        )
        assert {s.order_number for s in sales} == {"ORD-123456"}

        order = sales_service.get_order("ORD-123456")
        assert order["itemCount"] == 3
        assert order["totalAmount"] == "50.00"
        assert len(order["sales"]) == 2

    def test_empty_order(self, db_session):
        with pytest.raises(SaleError):
            sales_service.create_order([])

    def test_missing_sale(self, db_session):
        with pytest.raises(SaleError) as exc_info:
            sales_service.get_sale(42)
        assert exc_info.value.status_code == 404


# =============================================================================
# API
# =============================================================================


class TestSalesRoutes:

    def test_create_sale_computes_total(self, client, item, associate_user, associate_headers):
        resp = client.post("/api/sales", json=sale_payload(item, associate_user), headers=associate_headers)
        assert resp.status_code == 201
        assert resp.json["totalAmount"] == "50.00"
        assert resp.json["unitPrice"] == "25.00"
        assert resp.json["item"]["quantity"] == 8
        assert resp.json["salesAssociate"]["id"] == associate_user.id

    def test_total_mismatch_is_rejected(self, client, item, associate_user, associate_headers):
        resp = client.post(
            "/api/sales",
            json=sale_payload(item, associate_user, totalAmount="49.00"),
            headers=associate_headers,
        )
        assert resp.status_code == 400
        assert quantity_of(item.id) == 10

    @pytest.mark.parametrize("overrides", [
        {"quantity": 0},
        {"quantity": 1.5},
        {"quantity": 10**20},
        {"paymentMethod": "card"},
        {"unitPrice": "abc"},
        {"discount": 5},
    ])
    def test_bad_payloads(self, client, item, associate_user, associate_headers, overrides):
        resp = client.post("/api/sales", json=sale_payload(item, associate_user, **overrides), headers=associate_headers)
        assert resp.status_code == 400

    def test_oversell_is_conflict(self, client, item, associate_user, associate_headers):
        resp = client.post(
            "/api/sales",
            json=sale_payload(item, associate_user, quantity=11),
            headers=associate_headers,
        )
        assert resp.status_code == 409
        assert resp.json["details"]["available"] == 10

    def test_unknown_item_is_not_found(self, client, associate_user, associate_headers):
        resp = client.post(
            "/api/sales",
            json={
                "itemId": 9999,
                "quantity": 1,
                "unitPrice": "5.00",
                "paymentMethod": "cash",
                "salesAssociateId": associate_user.id,
            },
            headers=associate_headers,
        )
        assert resp.status_code == 404

    def test_order_route(self, client, item, associate_user, associate_headers):
        resp = client.post(
            "/api/sales/orders",
            json={
                "paymentMethod": "cash",
                "salesAssociateId": associate_user.id,
                "items": [{"itemId": item.id, "quantity": 2, "unitPrice": "25.00"}],
            },
            headers=associate_headers,
        )
        assert resp.status_code == 201
        order_number = resp.json["orderNumber"]
        assert resp.json["totalAmount"] == "50.00"

        resp = client.get(f"/api/sales/order/{order_number}", headers=associate_headers)
        assert resp.status_code == 200
        assert resp.json["itemCount"] == 2

    def test_order_line_errors_name_the_line(self, client, item, associate_user, associate_headers):
        resp = client.post(
            "/api/sales/orders",
            json={
                "paymentMethod": "cash",
                "salesAssociateId": associate_user.id,
                "items": [
                    {"itemId": item.id, "quantity": 1, "unitPrice": "25.00"},
                    {"itemId": item.id, "quantity": -1, "unitPrice": "25.00"},
                ],
            },
            headers=associate_headers,
        )
        assert resp.status_code == 400
        assert resp.json["error"].startswith("items[2]")

    def test_sales_are_immutable(self, client, item, associate_user, associate_headers):
        resp = client.post("/api/sales", json=sale_payload(item, associate_user), headers=associate_headers)
        sale_id = resp.json["id"]

        assert client.delete(f"/api/sales/{sale_id}", headers=associate_headers).status_code == 405
        assert client.put(f"/api/sales/{sale_id}", json={}, headers=associate_headers).status_code == 405

    def test_list_requires_auth(self, client, db_session):
        assert client.get("/api/sales").status_code == 401
