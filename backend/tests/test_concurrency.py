"""
Concurrent sales against a file-backed SQLite database.

Two associates ring up the last unit at the same moment: exactly one sale
succeeds, the other gets InsufficientStock, and the counter never goes
negative.
"""

import threading

import pytest
from merchpos import create_app
from merchpos.extensions import db
from merchpos.models import InventoryItem, InventoryTransaction
from merchpos.services import stock_service
from merchpos.services.stock_service import InsufficientStock
from sqlalchemy import func

from conftest import make_item


@pytest.fixture
def file_app(tmp_path):
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': f"sqlite:///{tmp_path / 'race.sqlite3'}",
        'SQLALCHEMY_ENGINE_OPTIONS': {'connect_args': {'timeout': 10}},
    })
    with app.app_context():
        db.create_all()
    yield app
    with app.app_context():
        db.drop_all()
        db.engine.dispose()


def _race(app, item_id, quantity, workers):
    barrier = threading.Barrier(workers)
    outcomes = []
    errors = []
    lock = threading.Lock()

    def sell(n):
        with app.app_context():
            barrier.wait()
            try:
                stock_service.record_sale(item_id, quantity, order_number=f"ORD-RACE{n}", user_id=None)
                outcome = "sold"
            except InsufficientStock:
                outcome = "insufficient"
            except Exception as e:  # surfaced through the errors list
                with lock:
                    errors.append(e)
                return
            with lock:
                outcomes.append(outcome)

    threads = [threading.Thread(target=sell, args=(n,)) for n in range(workers)]
    for t in threads:
        t.start()
    for t in threads:
        t.join(timeout=30)

    assert errors == []
    return outcomes


def test_two_sales_race_for_last_unit(file_app):
    with file_app.app_context():
        item_id = make_item(quantity=1).id

    outcomes = _race(file_app, item_id, 1, workers=2)
    assert sorted(outcomes) == ["insufficient", "sold"]

    with file_app.app_context():
        item = db.session.get(InventoryItem, item_id)
        assert item.quantity == 0
        ledger_total = (
            db.session.query(func.sum(InventoryTransaction.quantity))
            .filter(InventoryTransaction.item_id == item_id)
            .scalar()
        )
        assert ledger_total == 0


def test_many_sales_never_oversell(file_app):
    with file_app.app_context():
        item_id = make_item(quantity=5).id

    outcomes = _race(file_app, item_id, 2, workers=3)
    assert outcomes.count("sold") == 2
    assert outcomes.count("insufficient") == 1

    with file_app.app_context():
        item = db.session.get(InventoryItem, item_id)
        assert item.quantity == 1
        assert stock_service.reconcile_item(item_id).in_sync
