from __future__ import annotations

from ..extensions import db
from merchpos.time_utils import to_utc_z

CATEGORY_TYPES = ("type", "color", "size", "design", "groupType", "styleGroup")


class Category(db.Model):
    """
    One allowed value for a category dimension (type, color, size, ...).

    Soft-deleted via is_active. display_order is kept dense (0..n-1) among
    the active values of a type.
    """
    __tablename__ = "categories"
    __table_args__ = (
        db.Index("ix_categories_type_active_order", "type", "is_active", "display_order"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    type = db.Column(db.String(32), nullable=False)
    value = db.Column(db.String(255), nullable=False)
    abbreviation = db.Column(db.String(10), nullable=True)
    display_order = db.Column(db.Integer, nullable=False, default=0)
    is_active = db.Column(db.Boolean, nullable=False, default=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    def __repr__(self) -> str:
        return f"<Category id={self.id} {self.type}={self.value!r} order={self.display_order}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "type": self.type,
            "value": self.value,
            "abbreviation": self.abbreviation,
            "displayOrder": self.display_order,
            "isActive": self.is_active,
            "createdAt": to_utc_z(self.created_at),
            "updatedAt": to_utc_z(self.updated_at),
        }


class LabelTemplate(db.Model):
    """
    Saved label layout for the print designer, owned by one user.

    layout_positions is a JSON object mapping element name -> {"x": pct, "y": pct}.
    At most one template per user carries is_default.
    """
    __tablename__ = "label_templates"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)

    name = db.Column(db.String(255), nullable=False, default="Default Template")
    is_default = db.Column(db.Boolean, nullable=False, default=False)
    selected_inventory_id = db.Column(db.Integer, db.ForeignKey("inventory_items.id"), nullable=True)

    product_name = db.Column(db.String(255), nullable=True, default="Product Name")
    product_code = db.Column(db.String(64), nullable=True, default="PRD-001")
    price = db.Column(db.String(32), nullable=True, default="25.00")
    qr_content = db.Column(db.Text, nullable=True, default="PRD-001")
    custom_message = db.Column(db.String(255), nullable=True, default="Thank you for your purchase")
    size_indicator = db.Column(db.String(32), nullable=True, default="M")
    logo_url = db.Column(db.Text, nullable=True, default="")

    show_qr = db.Column(db.Boolean, nullable=False, default=True)
    show_logo = db.Column(db.Boolean, nullable=False, default=False)
    show_price = db.Column(db.Boolean, nullable=False, default=True)
    show_message = db.Column(db.Boolean, nullable=False, default=True)
    show_size = db.Column(db.Boolean, nullable=False, default=True)

    layout_positions = db.Column(db.JSON, nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "userId": self.user_id,
            "name": self.name,
            "isDefault": self.is_default,
            "selectedInventoryId": self.selected_inventory_id,
            "productName": self.product_name,
            "productCode": self.product_code,
            "price": self.price,
            "qrContent": self.qr_content,
            "customMessage": self.custom_message,
            "sizeIndicator": self.size_indicator,
            "logoUrl": self.logo_url,
            "showQr": self.show_qr,
            "showLogo": self.show_logo,
            "showPrice": self.show_price,
            "showMessage": self.show_message,
            "showSize": self.show_size,
            "layoutPositions": self.layout_positions or {},
            "createdAt": to_utc_z(self.created_at),
            "updatedAt": to_utc_z(self.updated_at),
        }


class MediaFile(db.Model):
    """
    Uploaded image (label logos) stored on local disk under MEDIA_ROOT.

    file_name is the generated on-disk name; original_name is what the
    uploader called it. Deleting flips is_active and removes the file.
    """
    __tablename__ = "media_files"
    __table_args__ = (
        db.Index("ix_media_files_category_active", "category", "is_active"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    file_name = db.Column(db.String(64), nullable=False, unique=True)
    original_name = db.Column(db.String(255), nullable=False)
    file_type = db.Column(db.String(64), nullable=False)
    file_size = db.Column(db.Integer, nullable=False)
    category = db.Column(db.String(32), nullable=False, default="logo")

    uploaded_by = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)
    is_active = db.Column(db.Boolean, nullable=False, default=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    @property
    def url(self) -> str:
        return f"/media/{self.file_name}"

    def __repr__(self) -> str:
        return f"<MediaFile id={self.id} {self.file_name} category={self.category}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "fileName": self.file_name,
            "originalName": self.original_name,
            "fileType": self.file_type,
            "fileSize": self.file_size,
            "category": self.category,
            "url": self.url,
            "uploadedBy": self.uploaded_by,
            "createdAt": to_utc_z(self.created_at),
        }
