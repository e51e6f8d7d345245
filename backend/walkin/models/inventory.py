from __future__ import annotations

from ..extensions import db
from walkin.time_utils import to_utc_z


class Product(db.Model):
    """
    Retail product sold alongside services.

    STOCK DESIGN DECISION:
    stock_quantity is a stored counter, not derived from the sale ledger.
    It is only ever decremented by a conditional UPDATE
    (stock_quantity >= requested) in the same transaction that inserts the
    ProductSale row, and the CHECK constraint keeps it from going negative
    even if a writer forgets the condition.

    SKU:
    Optional. When present it is unique case-insensitively (blank SKUs are
    stored as NULL so several products may have none).

    DELETION:
    A product with sales history is deactivated, never removed, so ledger
    rows keep a valid product_id.
    """
    __tablename__ = "products"
    __table_args__ = (
        db.CheckConstraint("stock_quantity >= 0", name="ck_products_stock_non_negative"),
        db.Index("ix_products_active_name", "is_active", "name"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)

    name = db.Column(db.String(100), nullable=False)
    description = db.Column(db.String(500), nullable=True)
    sku = db.Column(db.String(50), nullable=True)

    # Authoritative storage in cents
    price_cents = db.Column(db.Integer, nullable=False)
    cost_cents = db.Column(db.Integer, nullable=True)

    stock_quantity = db.Column(db.Integer, nullable=False, default=0)
    low_stock_threshold = db.Column(db.Integer, nullable=False, default=5)
    unit = db.Column(db.String(20), nullable=False, default="unit")

    image_url = db.Column(db.String(500), nullable=True)
    thumbnail_url = db.Column(db.String(500), nullable=True)

    is_active = db.Column(db.Boolean, nullable=False, default=True)

    version_id = db.Column(db.Integer, nullable=False, default=1)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    __mapper_args__ = {"version_id_col": version_id}

    @property
    def is_low_stock(self) -> bool:
        return self.stock_quantity <= self.low_stock_threshold

    def __repr__(self) -> str:
        return f"<Product id={self.id} sku={self.sku!r} name={self.name!r} stock={self.stock_quantity}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "sku": self.sku,
            "price_cents": self.price_cents,
            "cost_cents": self.cost_cents,
            "stock_quantity": self.stock_quantity,
            "low_stock_threshold": self.low_stock_threshold,
            "unit": self.unit,
            "image_url": self.image_url,
            "thumbnail_url": self.thumbnail_url,
            "is_active": self.is_active,
            "is_low_stock": self.is_low_stock,
            "version_id": self.version_id,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }


db.Index("uq_products_sku_lower", db.func.lower(Product.sku), unique=True)


class ProductSale(db.Model):
    """
    Append-only ledger of product sales.

    IMMUTABLE: rows are never updated or deleted. unit_price_cents is a
    snapshot taken at sale time; total_price_cents = unit_price_cents * quantity.
    """
    __tablename__ = "product_sales"
    __table_args__ = (
        db.CheckConstraint("quantity >= 1", name="ck_product_sales_quantity_positive"),
        db.Index("ix_product_sales_product_sold", "product_id", "sold_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False, index=True)
    walk_in_id = db.Column(db.Integer, db.ForeignKey("walk_ins.id"), nullable=True, index=True)

    quantity = db.Column(db.Integer, nullable=False)
    unit_price_cents = db.Column(db.Integer, nullable=False)
    total_price_cents = db.Column(db.Integer, nullable=False)
    notes = db.Column(db.String(500), nullable=True)

    sold_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), index=True)

    product = db.relationship("Product", backref=db.backref("sales", lazy=True))
    walk_in = db.relationship("WalkIn", backref=db.backref("product_sales", lazy=True))

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "product_id": self.product_id,
            "walk_in_id": self.walk_in_id,
            "quantity": self.quantity,
            "unit_price_cents": self.unit_price_cents,
            "total_price_cents": self.total_price_cents,
            "notes": self.notes,
            "sold_at": to_utc_z(self.sold_at),
            "product": {
                "id": self.product.id,
                "name": self.product.name,
                "sku": self.product.sku,
            } if self.product else None,
        }
