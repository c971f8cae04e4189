"""
Stock mutation tests.

Verifies:
- Every quantity change is paired with exactly one ledger row
- Sales that would oversell are rejected with nothing written
- Archived items reject every mutation
- A failed ledger write rolls the counter back
- Reconciliation reports and repairs counter drift
"""

from decimal import Decimal

import pytest
from sqlalchemy import update
from sqlalchemy.exc import IntegrityError

from merchpos.extensions import db
from merchpos.models import InventoryItem, InventoryTransaction
from merchpos.models.inventory import MAX_QUANTITY
from merchpos.services import stock_service
from merchpos.services.stock_service import (
    InsufficientStock,
    InvalidQuantity,
    ItemArchived,
    ItemNotFound,
    LedgerWriteFailure,
)

from conftest import make_item


def ledger_rows(item_id):
    return (
        db.session.query(InventoryTransaction)
        .filter_by(item_id=item_id)
        .order_by(InventoryTransaction.id.asc())
        .all()
    )


def ledger_sum(item_id):
    return sum(row.quantity for row in ledger_rows(item_id))


def current_quantity(item_id):
    return db.session.get(InventoryItem, item_id, populate_existing=True).quantity


# =============================================================================
# LEDGER PAIRING
# =============================================================================


class TestLedgerPairing:

    def test_opening_stock_is_recorded(self, item):
        rows = ledger_rows(item.id)
        assert len(rows) == 1
        assert rows[0].transaction_type == "addition"
        assert rows[0].quantity == 10
        assert rows[0].reason == "initial stock"

    def test_zero_opening_stock_writes_no_ledger_row(self, db_session):
        item = make_item(quantity=0, sku="HAT-BLA-OS-200", type="Hat", color="Black", size="One Size")
        assert ledger_rows(item.id) == []
        assert item.quantity == 0

    def test_add_sell_adjust_sequence(self, item, admin_user):
        item = stock_service.add_stock(item.id, 20, user_id=admin_user.id)
        assert item.quantity == 30

        item = stock_service.record_sale(item.id, 5, order_number="ORD-000001", user_id=admin_user.id)
        assert item.quantity == 25

        item = stock_service.adjust_inventory(item.id, 3, reason="damaged", user_id=admin_user.id)
        assert item.quantity == 22

        rows = ledger_rows(item.id)
        assert [(r.transaction_type, r.quantity) for r in rows] == [
            ("addition", 10),
            ("addition", 20),
            ("sale", -5),
            ("adjustment", -3),
        ]
        assert rows[2].notes == "Sale ORD-000001"
        assert rows[3].reason == "damaged"
        assert ledger_sum(item.id) == current_quantity(item.id) == 22

    def test_add_stock_large_delivery(self, item):
        item = stock_service.add_stock(item.id, 1_000_000)
        assert item.quantity == 1_000_010

    def test_add_stock_can_fill_to_integer_ceiling(self, db_session):
        item = make_item(quantity=0)
        item = stock_service.add_stock(item.id, MAX_QUANTITY)
        assert item.quantity == MAX_QUANTITY
        assert ledger_sum(item.id) == MAX_QUANTITY

    def test_mutations_bump_version(self, item):
        before = item.version_id
        item = stock_service.add_stock(item.id, 1)
        assert item.version_id == before + 1

    def test_sale_can_take_last_unit(self, item):
        item = stock_service.record_sale(item.id, 10, order_number="ORD-000002", user_id=None)
        assert item.quantity == 0
        assert ledger_sum(item.id) == 0


# =============================================================================
# REJECTED MUTATIONS
# =============================================================================


class TestRejectedMutations:

    def test_oversell_is_rejected_without_writes(self, item):
        with pytest.raises(InsufficientStock) as exc_info:
            stock_service.record_sale(item.id, 100, order_number="ORD-000003", user_id=None)

        assert exc_info.value.details["available"] == 10
        assert exc_info.value.details["requested"] == 100
        assert current_quantity(item.id) == 10
        assert len(ledger_rows(item.id)) == 1

    def test_over_adjust_is_rejected(self, item):
        with pytest.raises(InsufficientStock):
            stock_service.adjust_inventory(item.id, 11)
        assert current_quantity(item.id) == 10

    @pytest.mark.parametrize("quantity", [0, -1, True, 1.5, "3", None, MAX_QUANTITY + 1, 10**20])
    def test_invalid_quantities(self, item, quantity):
        with pytest.raises(InvalidQuantity):
            stock_service.add_stock(item.id, quantity)
        with pytest.raises(InvalidQuantity):
            stock_service.record_sale(item.id, quantity, order_number="ORD-000004", user_id=None)
        with pytest.raises(InvalidQuantity):
            stock_service.adjust_inventory(item.id, quantity)
        assert current_quantity(item.id) == 10

    def test_add_stock_past_integer_ceiling_is_rejected(self, item):
        with pytest.raises(InvalidQuantity) as exc_info:
            stock_service.add_stock(item.id, MAX_QUANTITY)

        assert exc_info.value.status_code == 400
        assert exc_info.value.details["available"] == 10
        assert current_quantity(item.id) == 10
        assert len(ledger_rows(item.id)) == 1

    def test_unknown_item(self, db_session):
        with pytest.raises(ItemNotFound):
            stock_service.add_stock(9999, 1)
        with pytest.raises(ItemNotFound):
            stock_service.archive_item(9999)

    def test_status_codes(self):
        assert InvalidQuantity.status_code == 400
        assert ItemNotFound.status_code == 404
        assert ItemArchived.status_code == 409
        assert InsufficientStock.status_code == 409
        assert LedgerWriteFailure.status_code == 500


# =============================================================================
# ARCHIVE / RESTORE
# =============================================================================


class TestArchivedItems:

    def test_archived_item_rejects_every_mutation(self, item):
        stock_service.archive_item(item.id)

        with pytest.raises(ItemArchived):
            stock_service.add_stock(item.id, 5)
        with pytest.raises(ItemArchived):
            stock_service.record_sale(item.id, 1, order_number="ORD-000005", user_id=None)
        with pytest.raises(ItemArchived):
            stock_service.adjust_inventory(item.id, 1)

        assert current_quantity(item.id) == 10
        assert len(ledger_rows(item.id)) == 1

    def test_archive_is_idempotent(self, item):
        first = stock_service.archive_item(item.id)
        version = first.version_id
        second = stock_service.archive_item(item.id)

        assert second.is_active is False
        assert second.version_id == version
        assert second.quantity == 10

    def test_restore_allows_mutations_again(self, item):
        stock_service.archive_item(item.id)
        restored = stock_service.restore_item(item.id)
        assert restored.is_active is True

        item = stock_service.add_stock(item.id, 5)
        assert item.quantity == 15


# =============================================================================
# ATOMICITY
# =============================================================================


class TestAtomicity:

    def test_failed_ledger_insert_rolls_back_counter(self, item, monkeypatch):
        def broken_insert(entry):
            raise IntegrityError("INSERT INTO inventory_transactions", {}, Exception("boom"))

        monkeypatch.setattr(stock_service, "_insert_ledger_row", broken_insert)

        with pytest.raises(LedgerWriteFailure):
            stock_service.add_stock(item.id, 5)

        monkeypatch.undo()
        assert current_quantity(item.id) == 10
        assert len(ledger_rows(item.id)) == 1

    def test_ledger_rows_cannot_be_edited(self, item):
        row = ledger_rows(item.id)[0]
        row.quantity = 999
        with pytest.raises(ValueError):
            db.session.flush()
        db.session.rollback()


# =============================================================================
# RECONCILIATION
# =============================================================================


class TestReconciliation:

    def _force_counter(self, item_id, quantity):
        db.session.execute(
            update(InventoryItem)
            .where(InventoryItem.id == item_id)
            .values(quantity=quantity)
            .execution_options(synchronize_session=False)
        )
        db.session.commit()

    def test_in_sync_item(self, item):
        result = stock_service.reconcile_item(item.id)
        assert result.in_sync
        assert result.to_dict()["ledgerSum"] == 10

    def test_drift_is_reported_not_repaired(self, item):
        self._force_counter(item.id, 7)

        result = stock_service.reconcile_item(item.id)
        assert result.drift == -3
        assert not result.repaired
        assert current_quantity(item.id) == 7

    def test_repair_overwrites_counter_with_ledger_sum(self, item):
        self._force_counter(item.id, 7)

        result = stock_service.reconcile_item(item.id, repair=True)
        assert result.repaired
        assert result.counter == 7
        assert current_quantity(item.id) == 10

    def test_reconcile_all_includes_archived(self, item):
        other = make_item(quantity=3, sku="PAN-BLA-L-300", type="Pants", color="Black", size="L")
        stock_service.archive_item(other.id)
        self._force_counter(other.id, 4)

        results = stock_service.reconcile_all()
        by_sku = {r.sku: r for r in results}
        assert by_sku["SHI-BLU-M-100"].in_sync
        assert by_sku["PAN-BLA-L-300"].drift == 1


def test_sale_records_price_independent_ledger(item):
    # The ledger only tracks units; money lives on the Sale row
    stock_service.record_sale(item.id, 2, order_number="ORD-000006", user_id=None)
    assert ledger_rows(item.id)[-1].quantity == -2
    assert db.session.get(InventoryItem, item.id).price == Decimal("25.00")
