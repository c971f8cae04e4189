from sqlalchemy import update

from merchpos.extensions import db
from merchpos.models import Category, InventoryItem, User


def test_system_init_is_idempotent(app, db_session):
    runner = app.test_cli_runner()

    result = runner.invoke(args=["system", "init", "--admin-name", "Store Owner"])
    assert result.exit_code == 0, result.output
    assert "Admin associate code:" in result.output
    assert db.session.query(User).filter_by(role="admin").count() == 1
    assert db.session.query(Category).count() > 0

    result = runner.invoke(args=["system", "init"])
    assert result.exit_code == 0
    assert "already exists" in result.output
    assert db.session.query(User).filter_by(role="admin").count() == 1


def test_associates_create_and_list(app, db_session):
    runner = app.test_cli_runner()

    result = runner.invoke(args=["associates", "create", "--name", "Jane Doe", "--role", "admin"])
    assert result.exit_code == 0, result.output
    assert "code=" in result.output

    result = runner.invoke(args=["associates", "list"])
    assert "Jane Doe" in result.output


def test_inventory_reconcile_reports_and_repairs(app, item):
    db.session.execute(
        update(InventoryItem)
        .where(InventoryItem.id == item.id)
        .values(quantity=3)
        .execution_options(synchronize_session=False)
    )
    db.session.commit()
    runner = app.test_cli_runner()

    result = runner.invoke(args=["inventory", "reconcile"])
    assert result.exit_code == 1
    assert "DRIFT SHI-BLU-M-100" in result.output

    result = runner.invoke(args=["inventory", "reconcile", "--repair"])
    assert result.exit_code == 0
    assert "REPAIRED SHI-BLU-M-100" in result.output
    assert db.session.get(InventoryItem, item.id, populate_existing=True).quantity == 10


def test_categories_seed(app, db_session):
    runner = app.test_cli_runner()
    result = runner.invoke(args=["categories", "seed"])
    assert result.exit_code == 0
    assert "PASS Seeded" in result.output
