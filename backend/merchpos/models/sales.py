from __future__ import annotations

from ..extensions import db
from ..money import money_str
from merchpos.time_utils import to_utc_z

PAYMENT_METHODS = ("cash", "venmo")


class Sale(db.Model):
    """
    One sold line item.

    Rows sharing an order_number were rung up together. Sales are immutable
    once written; there is no update or delete path.
    """
    __tablename__ = "sales"
    __table_args__ = (
        db.CheckConstraint("quantity > 0", name="ck_sales_quantity_positive"),
        db.CheckConstraint("payment_method IN ('cash', 'venmo')", name="ck_sales_payment_method"),
        db.Index("ix_sales_sale_date", "sale_date"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)

    # Groups line items purchased together (not unique per row)
    order_number = db.Column(db.String(20), nullable=False, index=True)

    item_id = db.Column(db.Integer, db.ForeignKey("inventory_items.id"), nullable=False, index=True)
    quantity = db.Column(db.Integer, nullable=False)
    unit_price = db.Column(db.Numeric(10, 2), nullable=False)
    total_amount = db.Column(db.Numeric(10, 2), nullable=False)
    payment_method = db.Column(db.String(16), nullable=False)

    sales_associate_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)

    sale_date = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    item = db.relationship("InventoryItem", backref=db.backref("sales", lazy=True))
    sales_associate = db.relationship("User")

    def to_dict(self, *, include_related: bool = False) -> dict:
        data = {
            "id": self.id,
            "orderNumber": self.order_number,
            "itemId": self.item_id,
            "quantity": self.quantity,
            "unitPrice": money_str(self.unit_price),
            "totalAmount": money_str(self.total_amount),
            "paymentMethod": self.payment_method,
            "salesAssociateId": self.sales_associate_id,
            "saleDate": to_utc_z(self.sale_date),
        }
        if include_related:
            data["item"] = self.item.to_dict(include_supplier=False) if self.item else None
            data["salesAssociate"] = self.sales_associate.to_associate_dict() if self.sales_associate else None
        return data
