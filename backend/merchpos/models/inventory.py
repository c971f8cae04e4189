from __future__ import annotations

from sqlalchemy import event

from ..extensions import db
from ..money import money_str
from merchpos.time_utils import to_utc_z

TRANSACTION_TYPES = ("addition", "sale", "adjustment")

# Ceiling of a 32-bit Integer column (quantity, min_stock_level, ledger rows)
MAX_QUANTITY = 2_147_483_647


class Supplier(db.Model):
    __tablename__ = "suppliers"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(255), nullable=False)
    contact_info = db.Column(db.Text, nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    def __repr__(self) -> str:
        return f"<Supplier id={self.id} name={self.name!r}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "contactInfo": self.contact_info,
            "createdAt": to_utc_z(self.created_at),
        }


class InventoryItem(db.Model):
    """
    Sellable catalog item with its on-hand counter.

    QUANTITY OWNERSHIP:
    `quantity` is the authoritative on-hand counter, but it is only ever
    changed by services/stock_service.py, in the same DB transaction as the
    InventoryTransaction row that explains the change. The check constraint
    keeps a negative counter from ever being committed.

    version_id is the optimistic-concurrency token; every stock mutation and
    every attribute edit bumps it.

    ARCHIVE: is_active=False is a soft delete. Archived items stay valid
    foreign-key targets for historical sales and ledger rows.
    """
    __tablename__ = "inventory_items"
    __table_args__ = (
        db.CheckConstraint("quantity >= 0", name="ck_inventory_items_quantity_nonnegative"),
        db.Index("ix_inventory_items_active_sku", "is_active", "sku"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)

    sku = db.Column(db.String(50), nullable=False, unique=True)
    name = db.Column(db.Text, nullable=False)
    description = db.Column(db.Text, nullable=True)

    # Category-constrained descriptive attributes
    type = db.Column(db.String(64), nullable=False)
    size = db.Column(db.String(64), nullable=True)
    color = db.Column(db.String(64), nullable=True)
    design = db.Column(db.String(64), nullable=True)
    group_type = db.Column(db.String(64), nullable=True)
    style_group = db.Column(db.String(64), nullable=True)

    price = db.Column(db.Numeric(10, 2), nullable=False)
    cost = db.Column(db.Numeric(10, 2), nullable=True)

    quantity = db.Column(db.Integer, nullable=False, default=0)
    min_stock_level = db.Column(db.Integer, nullable=False, default=10)

    supplier_id = db.Column(db.Integer, db.ForeignKey("suppliers.id"), nullable=True, index=True)

    is_active = db.Column(db.Boolean, nullable=False, default=True)

    version_id = db.Column(db.Integer, nullable=False, default=1)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    supplier = db.relationship("Supplier", backref=db.backref("items", lazy=True))
    __mapper_args__ = {"version_id_col": version_id}

    def __repr__(self) -> str:
        return f"<InventoryItem id={self.id} sku={self.sku!r} qty={self.quantity}>"

    @property
    def is_low_stock(self) -> bool:
        return self.quantity <= self.min_stock_level

    def to_dict(self, *, include_supplier: bool = True) -> dict:
        data = {
            "id": self.id,
            "sku": self.sku,
            "name": self.name,
            "description": self.description,
            "type": self.type,
            "size": self.size,
            "color": self.color,
            "design": self.design,
            "groupType": self.group_type,
            "styleGroup": self.style_group,
            "price": money_str(self.price),
            "cost": money_str(self.cost),
            "quantity": self.quantity,
            "minStockLevel": self.min_stock_level,
            "supplierId": self.supplier_id,
            "isActive": self.is_active,
            "versionId": self.version_id,
            "createdAt": to_utc_z(self.created_at),
            "updatedAt": to_utc_z(self.updated_at),
        }
        if include_supplier:
            data["supplier"] = self.supplier.to_dict() if self.supplier else None
        return data


class InventoryTransaction(db.Model):
    """
    Append-only stock ledger.

    quantity is signed: additions are positive, sales and adjustments are
    negative. For every item, SUM(quantity) equals InventoryItem.quantity.
    """
    __tablename__ = "inventory_transactions"
    __table_args__ = (
        db.CheckConstraint(
            "transaction_type IN ('addition', 'sale', 'adjustment')",
            name="ck_inventory_transactions_type",
        ),
        db.CheckConstraint("quantity <> 0", name="ck_inventory_transactions_nonzero"),
        db.Index("ix_invtx_item_created", "item_id", "created_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    item_id = db.Column(db.Integer, db.ForeignKey("inventory_items.id"), nullable=False, index=True)

    transaction_type = db.Column(db.String(16), nullable=False, index=True)
    quantity = db.Column(db.Integer, nullable=False)

    reason = db.Column(db.String(255), nullable=True)
    notes = db.Column(db.Text, nullable=True)

    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True, index=True)

    created_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        index=True,
    )

    item = db.relationship("InventoryItem", backref=db.backref("transactions", lazy="dynamic"))
    user = db.relationship("User")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "itemId": self.item_id,
            "transactionType": self.transaction_type,
            "quantity": self.quantity,
            "reason": self.reason,
            "notes": self.notes,
            "userId": self.user_id,
            "createdAt": to_utc_z(self.created_at),
        }


@event.listens_for(InventoryTransaction, "before_update")
def _ledger_rows_are_immutable(mapper, connection, target):
    raise ValueError("inventory transactions are append-only")


@event.listens_for(InventoryTransaction, "before_delete")
def _ledger_rows_are_permanent(mapper, connection, target):
    raise ValueError("inventory transactions are append-only")
