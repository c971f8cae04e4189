# Overview: Service-layer operations for suppliers.

from __future__ import annotations

from ..extensions import db
from ..models import InventoryItem, Supplier


class SupplierError(Exception):
    """Raised for supplier operation errors."""
    def __init__(self, message: str, status_code: int = 400):
        super().__init__(message)
        self.status_code = status_code


def list_suppliers() -> list[Supplier]:
    return db.session.query(Supplier).order_by(Supplier.name.asc(), Supplier.id.asc()).all()


def get_supplier(supplier_id: int) -> Supplier:
    supplier = db.session.get(Supplier, supplier_id)
    if supplier is None:
        raise SupplierError("Supplier not found", status_code=404)
    return supplier


def create_supplier(patch: dict) -> Supplier:
    supplier = Supplier(**patch)
    db.session.add(supplier)
    db.session.commit()
    return supplier


def update_supplier(supplier_id: int, patch: dict) -> Supplier:
    supplier = get_supplier(supplier_id)
    for k, v in patch.items():
        setattr(supplier, k, v)
    db.session.commit()
    return supplier


def delete_supplier(supplier_id: int) -> None:
    """Hard delete, refused while any item (archived included) references it."""
    supplier = get_supplier(supplier_id)

    referenced = (
        db.session.query(InventoryItem.id)
        .filter(InventoryItem.supplier_id == supplier_id)
        .count()
    )
    if referenced:
        raise SupplierError(
            f"Cannot delete supplier: referenced by {referenced} inventory item(s). "
            "Reassign or remove those items first.",
            status_code=409,
        )

    db.session.delete(supplier)
    db.session.commit()
