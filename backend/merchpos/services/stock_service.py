"""
Stock Mutation Service - the only code path that changes InventoryItem.quantity

WHY: Every change to the on-hand counter must be explained by exactly one
InventoryTransaction row, written in the same database transaction.

HOW:
- Each mutation runs ONE conditional UPDATE:
      UPDATE inventory_items
         SET quantity = quantity + :delta, version_id = version_id + 1
       WHERE id = :id AND is_active AND quantity >= :removed
  The "quantity >= :removed" guard is only applied to decrements. The
  database evaluates the guard and the write together, so two racing sales
  cannot both see the last unit.
- An affected-row count of 0 is diagnosed afterwards (missing / archived /
  insufficient).
- The ledger row is flushed in the same transaction. Any failure rolls the
  whole unit back.
- Lock timeouts and optimistic-lock conflicts are retried; when retries run
  out the caller gets ConcurrentModification.

SIGN CONVENTION (ledger quantity):
- addition:   +quantity
- sale:       -quantity
- adjustment: -quantity (adjustments only ever remove stock; use add_stock
  for found items)

ARCHIVED ITEMS: reject every mutation with ItemArchived.
"""

from __future__ import annotations

from dataclasses import dataclass

from sqlalchemy import func, update
from sqlalchemy.exc import OperationalError, SQLAlchemyError
from sqlalchemy.orm.exc import StaleDataError

from ..extensions import db
from ..models import InventoryItem, InventoryTransaction
from ..models.inventory import MAX_QUANTITY
from .concurrency import is_retryable, run_with_retry


class StockError(Exception):
    """Base class for stock mutation failures. Carries an HTTP status."""
    status_code = 400

    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def to_dict(self) -> dict:
        data = {"error": self.message}
        if self.details:
            data["details"] = self.details
        return data


class InvalidQuantity(StockError):
    status_code = 400


class ItemNotFound(StockError):
    status_code = 404


class ItemArchived(StockError):
    status_code = 409


class InsufficientStock(StockError):
    status_code = 409


class ConcurrentModification(StockError):
    status_code = 409


class LedgerWriteFailure(StockError):
    status_code = 500


def require_positive_quantity(quantity) -> int:
    # bool is an int subclass; True must not mean "1 unit"
    if isinstance(quantity, bool) or not isinstance(quantity, int):
        raise InvalidQuantity("Quantity must be a whole number", details={"quantity": repr(quantity)})
    if quantity <= 0:
        raise InvalidQuantity("Quantity must be greater than 0", details={"quantity": quantity})
    if quantity > MAX_QUANTITY:
        raise InvalidQuantity(f"Quantity cannot exceed {MAX_QUANTITY}", details={"quantity": quantity})
    return quantity


def run_atomic(func):
    """
    Run func as one atomic stock unit: commit inside func, roll back on any
    failure, retry lock conflicts, and translate exhausted retries into
    ConcurrentModification.

    func is re-executed from scratch on retry, so it must do all of its reads
    and writes itself.
    """
    try:
        return run_with_retry(func)
    except (OperationalError, StaleDataError) as exc:
        db.session.rollback()
        if not is_retryable(exc):
            raise
        raise ConcurrentModification(
            "Item was modified concurrently; reload and retry",
        ) from exc
    except Exception:
        db.session.rollback()
        raise


def _diagnose_rejected_update(item_id: int, delta: int) -> StockError:
    item = db.session.get(InventoryItem, item_id, populate_existing=True)
    if item is None:
        return ItemNotFound(f"Inventory item {item_id} not found", details={"item_id": item_id})
    if not item.is_active:
        return ItemArchived(
            f"Inventory item {item.sku} is archived",
            details={"item_id": item_id, "sku": item.sku},
        )
    if delta > 0:
        return InvalidQuantity(
            f"Adding {delta} to {item.sku} would exceed the maximum quantity of {MAX_QUANTITY}",
            details={"item_id": item_id, "sku": item.sku, "requested": delta, "available": item.quantity},
        )
    removed = -delta
    return InsufficientStock(
        f"Insufficient stock for {item.sku}: requested {removed}, available {item.quantity}",
        details={"item_id": item_id, "sku": item.sku, "requested": removed, "available": item.quantity},
    )


def _apply_delta(item_id: int, delta: int) -> None:
    stmt = (
        update(InventoryItem)
        .where(InventoryItem.id == item_id, InventoryItem.is_active.is_(True))
        .values(
            quantity=InventoryItem.quantity + delta,
            version_id=InventoryItem.version_id + 1,
        )
        .execution_options(synchronize_session=False)
    )
    if delta < 0:
        stmt = stmt.where(InventoryItem.quantity >= -delta)
    else:
        stmt = stmt.where(InventoryItem.quantity <= MAX_QUANTITY - delta)

    result = db.session.execute(stmt)
    if result.rowcount != 1:
        raise _diagnose_rejected_update(item_id, delta)


def _insert_ledger_row(entry: InventoryTransaction) -> None:
    db.session.add(entry)
    db.session.flush()


def _append_ledger(
    item_id: int,
    transaction_type: str,
    quantity: int,
    *,
    reason: str | None,
    notes: str | None,
    user_id: int | None,
) -> InventoryTransaction:
    entry = InventoryTransaction(
        item_id=item_id,
        transaction_type=transaction_type,
        quantity=quantity,
        reason=reason,
        notes=notes or None,
        user_id=user_id,
    )
    try:
        _insert_ledger_row(entry)
    except OperationalError as exc:
        if is_retryable(exc):
            raise
        raise LedgerWriteFailure("Failed to write inventory ledger entry") from exc
    except SQLAlchemyError as exc:
        raise LedgerWriteFailure("Failed to write inventory ledger entry") from exc
    return entry


def _reload(item_id: int) -> InventoryItem:
    return db.session.get(InventoryItem, item_id, populate_existing=True)


def _mutate(
    item_id: int,
    delta: int,
    transaction_type: str,
    *,
    reason: str | None,
    notes: str | None,
    user_id: int | None,
) -> InventoryTransaction:
    """Counter update + ledger append, without committing."""
    _apply_delta(item_id, delta)
    return _append_ledger(
        item_id,
        transaction_type,
        delta,
        reason=reason,
        notes=notes,
        user_id=user_id,
    )


def record_sale(
    item_id: int,
    quantity: int,
    *,
    order_number: str,
    user_id: int | None,
    commit: bool = True,
) -> InventoryItem:
    """
    Remove sold units and append a "sale" ledger row.

    commit=False joins the caller's transaction (used by sales_service so the
    Sale row commits together with the stock change); the caller then owns
    commit, rollback and retry.
    """
    require_positive_quantity(quantity)

    def _op():
        _mutate(
            item_id,
            -quantity,
            "sale",
            reason="sale",
            notes=f"Sale {order_number}",
            user_id=user_id,
        )
        if commit:
            db.session.commit()
        return _reload(item_id)

    if not commit:
        return _op()
    return run_atomic(_op)


def add_stock(
    item_id: int,
    quantity: int,
    *,
    reason: str | None = "restock",
    notes: str | None = "",
    user_id: int | None = None,
) -> InventoryItem:
    """Receive units into stock, up to the Integer column ceiling."""
    require_positive_quantity(quantity)

    def _op():
        _mutate(item_id, quantity, "addition", reason=reason or "restock", notes=notes, user_id=user_id)
        db.session.commit()
        return _reload(item_id)

    return run_atomic(_op)


def adjust_inventory(
    item_id: int,
    quantity: int,
    *,
    reason: str | None = "adjustment",
    notes: str | None = "",
    user_id: int | None = None,
) -> InventoryItem:
    """Remove damaged/lost units. quantity is the positive amount to remove."""
    require_positive_quantity(quantity)

    def _op():
        _mutate(item_id, -quantity, "adjustment", reason=reason or "adjustment", notes=notes, user_id=user_id)
        db.session.commit()
        return _reload(item_id)

    return run_atomic(_op)


def record_opening_stock(item: InventoryItem, *, user_id: int | None) -> None:
    """
    Ledger row for the quantity an item is created with, so the counter
    always equals the ledger sum. Caller commits together with the item.
    """
    if item.quantity:
        _append_ledger(
            item.id,
            "addition",
            item.quantity,
            reason="initial stock",
            notes=None,
            user_id=user_id,
        )


def _set_active(item_id: int, active: bool) -> InventoryItem:
    def _op():
        item = db.session.get(InventoryItem, item_id, populate_existing=True)
        if item is None:
            raise ItemNotFound(f"Inventory item {item_id} not found", details={"item_id": item_id})
        if item.is_active == active:
            # Already in the requested state: no write, no version bump
            return item
        item.is_active = active
        db.session.commit()
        return item

    return run_atomic(_op)


def archive_item(item_id: int) -> InventoryItem:
    """Soft delete. Idempotent; never touches quantity or the ledger."""
    return _set_active(item_id, False)


def restore_item(item_id: int) -> InventoryItem:
    """Undo archive. Idempotent; quantity is not replayed or validated."""
    return _set_active(item_id, True)


@dataclass(frozen=True)
class ReconciliationResult:
    item_id: int
    sku: str
    counter: int
    ledger_sum: int
    repaired: bool = False

    @property
    def drift(self) -> int:
        return self.counter - self.ledger_sum

    @property
    def in_sync(self) -> bool:
        return self.drift == 0

    def to_dict(self) -> dict:
        return {
            "itemId": self.item_id,
            "sku": self.sku,
            "quantity": self.counter,
            "ledgerSum": self.ledger_sum,
            "drift": self.drift,
            "inSync": self.in_sync,
            "repaired": self.repaired,
        }


def _ledger_sums(item_id: int | None = None) -> dict[int, int]:
    query = db.session.query(
        InventoryTransaction.item_id,
        func.coalesce(func.sum(InventoryTransaction.quantity), 0),
    ).group_by(InventoryTransaction.item_id)
    if item_id is not None:
        query = query.filter(InventoryTransaction.item_id == item_id)
    return {row[0]: int(row[1]) for row in query.all()}


def _overwrite_counter(item_id: int, quantity: int) -> None:
    db.session.execute(
        update(InventoryItem)
        .where(InventoryItem.id == item_id)
        .values(quantity=quantity, version_id=InventoryItem.version_id + 1)
        .execution_options(synchronize_session=False)
    )


def _reconcile(item: InventoryItem, ledger_sum: int, repair: bool) -> ReconciliationResult:
    result = ReconciliationResult(
        item_id=item.id,
        sku=item.sku,
        counter=item.quantity,
        ledger_sum=ledger_sum,
    )
    # A negative ledger sum cannot be written back (quantity >= 0 constraint);
    # it is reported and left for manual correction.
    if repair and not result.in_sync and ledger_sum >= 0:
        _overwrite_counter(item.id, ledger_sum)
        result = ReconciliationResult(
            item_id=item.id,
            sku=item.sku,
            counter=item.quantity,
            ledger_sum=ledger_sum,
            repaired=True,
        )
    return result


def reconcile_item(item_id: int, *, repair: bool = False) -> ReconciliationResult:
    """
    Compare the counter with SUM(ledger.quantity).

    With repair=True a drifting counter is overwritten with the ledger sum
    (the ledger is the audit trail of truth). The report always shows the
    counter as it was found.
    """
    item = db.session.get(InventoryItem, item_id, populate_existing=True)
    if item is None:
        raise ItemNotFound(f"Inventory item {item_id} not found", details={"item_id": item_id})

    result = _reconcile(item, _ledger_sums(item_id).get(item_id, 0), repair)
    if result.repaired:
        db.session.commit()
    return result


def reconcile_all(repair: bool = False) -> list[ReconciliationResult]:
    """Reconcile every item (archived included), ordered by SKU."""
    sums = _ledger_sums()
    items = db.session.query(InventoryItem).order_by(InventoryItem.sku.asc()).all()

    results = [_reconcile(item, sums.get(item.id, 0), repair) for item in items]
    if any(r.repaired for r in results):
        db.session.commit()
    return results
