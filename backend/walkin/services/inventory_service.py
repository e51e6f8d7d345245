# Overview: Service-layer operations for inventory; product stock, the sale ledger and stock reports.

"""
Inventory ledger.

STOCK RULES:
- stock_quantity only goes down through record_sale()
- the decrement is a conditional UPDATE (stock_quantity >= q) issued in the
  same transaction as the ProductSale insert; both commit or neither does
- when two sales race for the last units, the UPDATE that matches zero rows
  loses and surfaces as InsufficientStock with the stock it saw

DELETION:
Products with sales are deactivated (SoftDeleted); products without sales
are removed (HardDeleted). Ledger rows always keep a valid product_id.
"""
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime

from flask import current_app
from sqlalchemy import func

from ..extensions import db
from ..models import Product, ProductSale, WalkIn
from ..validation import (
    ConflictError,
    InactiveProductError,
    InsufficientStock,
    NotFoundError,
    ValidationError,
    MAX_PRICE_CENTS,
    optional_id,
    optional_text,
    require_positive_int,
)
from walkin.time_utils import utcnow
from .concurrency import begin_write_transaction, commit_or_conflict, lock_for_update, run_with_retry
from .uniqueness_service import check_sku_available

PRODUCT_MUTABLE_FIELDS = {
    "name", "description", "sku", "price_cents", "cost_cents", "stock_quantity",
    "low_stock_threshold", "unit", "image_url", "thumbnail_url", "is_active",
}

SALES_PAGE_LIMIT = 100
RECENT_SALES_LIMIT = 10
REPORT_TYPES = ("summary", "low-stock", "sales-report")


@dataclass(frozen=True)
class HardDeleted:
    product_id: int

    def to_dict(self) -> dict:
        return {
            "result": "deleted",
            "product_id": self.product_id,
            "message": "Product deleted successfully",
        }


@dataclass(frozen=True)
class SoftDeleted:
    product_id: int
    reason: str

    def to_dict(self) -> dict:
        return {
            "result": "deactivated",
            "product_id": self.product_id,
            "message": self.reason,
        }


def apply_product_patch(p: Product, patch: dict) -> None:
    for k, v in patch.items():
        if k not in PRODUCT_MUTABLE_FIELDS:
            continue
        setattr(p, k, v)


def _normalize_sku(patch: dict) -> None:
    """Blank SKUs are stored as NULL so they never collide."""
    if "sku" in patch and patch["sku"] is not None and not patch["sku"].strip():
        patch["sku"] = None


def get_product(product_id: int) -> Product:
    product = db.session.query(Product).filter_by(id=product_id).first()
    if product is None:
        raise NotFoundError("Product not found")
    return product


def _sales_totals_by_product() -> dict[int, int]:
    return dict(
        db.session.query(ProductSale.product_id, func.coalesce(func.sum(ProductSale.quantity), 0))
        .group_by(ProductSale.product_id)
        .all()
    )


def list_products(include_inactive: bool = True) -> list[dict]:
    q = db.session.query(Product)
    if not include_inactive:
        q = q.filter(Product.is_active.is_(True))
    products = q.order_by(Product.name.asc(), Product.id.asc()).all()

    sold = _sales_totals_by_product()
    items = []
    for p in products:
        data = p.to_dict()
        data["total_sales"] = int(sold.get(p.id, 0))
        items.append(data)
    return items


def get_product_detail(product_id: int) -> dict:
    product = get_product(product_id)
    recent = (
        db.session.query(ProductSale)
        .filter_by(product_id=product.id)
        .order_by(ProductSale.sold_at.desc(), ProductSale.id.desc())
        .limit(RECENT_SALES_LIMIT)
        .all()
    )
    data = product.to_dict()
    data["recent_sales"] = [s.to_dict() for s in recent]
    return data


def create_product(*, patch: dict) -> Product:
    """
    Create a product from a validated patch.

    Raises:
        ConflictError: SKU already used by another product (case-insensitive)
    """
    _normalize_sku(patch)
    if not check_sku_available(patch.get("sku")):
        raise ConflictError("SKU already exists")

    product = Product(is_active=True)
    apply_product_patch(product, patch)
    db.session.add(product)
    commit_or_conflict("SKU already exists")

    current_app.logger.info("Created product id=%s sku=%s", product.id, product.sku)
    return product


def update_product(*, product_id: int, patch: dict) -> Product:
    _normalize_sku(patch)

    def _op() -> Product:
        product = get_product(product_id)
        if "sku" in patch and not check_sku_available(patch["sku"], exclude_id=product.id):
            raise ConflictError("SKU already exists")

        apply_product_patch(product, patch)
        commit_or_conflict("SKU already exists")
        return product

    return run_with_retry(_op)


def archive_or_delete(product_id: int) -> HardDeleted | SoftDeleted:
    """Remove a product, or deactivate it when sales reference it."""
    def _op() -> HardDeleted | SoftDeleted:
        begin_write_transaction()
        product = lock_for_update(db.session.query(Product).filter_by(id=product_id)).first()
        if product is None:
            raise NotFoundError("Product not found")

        sale_count = db.session.query(ProductSale).filter_by(product_id=product.id).count()
        if sale_count > 0:
            product.is_active = False
            db.session.commit()
            current_app.logger.info(
                "Deactivated product id=%s (%d sales on record)", product_id, sale_count
            )
            return SoftDeleted(
                product_id=product_id,
                reason="Product has sales history and was deactivated instead of deleted",
            )

        db.session.delete(product)
        db.session.commit()
        current_app.logger.info("Deleted product id=%s", product_id)
        return HardDeleted(product_id=product_id)

    return run_with_retry(_op)


def record_sale(product_id, quantity, unit_price_cents=None, walk_in_id=None, notes=None) -> ProductSale:
    """
    Sell quantity units of a product, decrementing stock atomically.

    unit_price_cents overrides the catalog price for this sale only.

    Raises:
        ValidationError: malformed quantity / price / ids
        NotFoundError: product or referenced walk-in absent
        InactiveProductError: product deactivated
        InsufficientStock: quantity exceeds stock on hand
    """
    if isinstance(product_id, bool) or not isinstance(product_id, int):
        raise ValidationError("product_id must be an integer id")
    quantity = require_positive_int(quantity, "quantity")
    if unit_price_cents is not None:
        if isinstance(unit_price_cents, bool) or not isinstance(unit_price_cents, int):
            raise ValidationError("unit_price_cents must be an integer")
        if unit_price_cents < 0 or unit_price_cents > MAX_PRICE_CENTS:
            raise ValidationError(f"unit_price_cents must be between 0 and {MAX_PRICE_CENTS}")
    walk_in_id = optional_id(walk_in_id, "walk_in_id")
    notes = optional_text(notes, "notes", max_length=500)

    def _op() -> ProductSale:
        begin_write_transaction()

        product = get_product(product_id)
        if walk_in_id is not None and db.session.query(WalkIn.id).filter_by(id=walk_in_id).first() is None:
            raise NotFoundError("Walk-in not found")
        if not product.is_active:
            raise InactiveProductError()
        if product.stock_quantity < quantity:
            raise InsufficientStock(available=product.stock_quantity, requested=quantity)

        unit_price = product.price_cents if unit_price_cents is None else unit_price_cents

        updated = (
            db.session.query(Product)
            .filter(
                Product.id == product.id,
                Product.is_active.is_(True),
                Product.stock_quantity >= quantity,
            )
            .update(
                {
                    Product.stock_quantity: Product.stock_quantity - quantity,
                    Product.version_id: Product.version_id + 1,
                    Product.updated_at: utcnow(),
                },
                synchronize_session=False,
            )
        )
        if updated == 0:
            # Another sale took the stock between the read and the update
            db.session.refresh(product)
            if not product.is_active:
                raise InactiveProductError()
            raise InsufficientStock(available=product.stock_quantity, requested=quantity)

        sale = ProductSale(
            product_id=product.id,
            walk_in_id=walk_in_id,
            quantity=quantity,
            unit_price_cents=unit_price,
            total_price_cents=unit_price * quantity,
            notes=notes,
            sold_at=utcnow(),
        )
        db.session.add(sale)
        db.session.commit()

        current_app.logger.info(
            "Sale id=%s: product id=%s qty=%d total_cents=%d",
            sale.id, product_id, quantity, sale.total_price_cents,
        )
        return sale

    return run_with_retry(_op)


def list_sales(
    *,
    product_id: int | None = None,
    walk_in_id: int | None = None,
    start: datetime | None = None,
    end: datetime | None = None,
) -> dict:
    """Newest sales first (at most 100) with totals over the returned rows."""
    q = db.session.query(ProductSale)
    if product_id is not None:
        q = q.filter(ProductSale.product_id == product_id)
    if walk_in_id is not None:
        q = q.filter(ProductSale.walk_in_id == walk_in_id)
    if start is not None:
        q = q.filter(ProductSale.sold_at >= start)
    if end is not None:
        q = q.filter(ProductSale.sold_at <= end)

    sales = q.order_by(ProductSale.sold_at.desc(), ProductSale.id.desc()).limit(SALES_PAGE_LIMIT).all()
    return {
        "sales": [s.to_dict() for s in sales],
        "summary": {
            "count": len(sales),
            "total_quantity": sum(s.quantity for s in sales),
            "total_revenue_cents": sum(s.total_price_cents for s in sales),
        },
    }


def inventory_report(report_type: str = "summary", *, start: datetime | None = None, end: datetime | None = None) -> dict:
    if report_type not in REPORT_TYPES:
        raise ValidationError(f"type must be one of: {', '.join(REPORT_TYPES)}")

    if report_type == "low-stock":
        products = (
            db.session.query(Product)
            .filter(Product.is_active.is_(True), Product.stock_quantity <= Product.low_stock_threshold)
            .order_by(Product.stock_quantity.asc(), Product.name.asc())
            .all()
        )
        return {"type": report_type, "products": [p.to_dict() for p in products], "count": len(products)}

    if report_type == "sales-report":
        return _sales_report(start=start, end=end)

    products = db.session.query(Product).all()
    active = [p for p in products if p.is_active]
    return {
        "type": report_type,
        "total_products": len(products),
        "active_products": len(active),
        "inactive_products": len(products) - len(active),
        "low_stock_count": sum(1 for p in active if p.is_low_stock),
        "out_of_stock_count": sum(1 for p in active if p.stock_quantity == 0),
        "total_units": sum(p.stock_quantity for p in active),
        # Valued at cost when known, else at retail price
        "inventory_value_cents": sum(
            p.stock_quantity * (p.cost_cents if p.cost_cents is not None else p.price_cents)
            for p in active
        ),
    }


def _sales_report(*, start: datetime | None, end: datetime | None) -> dict:
    q = (
        db.session.query(
            Product.id,
            Product.name,
            Product.sku,
            func.count(ProductSale.id),
            func.sum(ProductSale.quantity),
            func.sum(ProductSale.total_price_cents),
        )
        .join(ProductSale, ProductSale.product_id == Product.id)
    )
    if start is not None:
        q = q.filter(ProductSale.sold_at >= start)
    if end is not None:
        q = q.filter(ProductSale.sold_at <= end)

    rows = q.group_by(Product.id, Product.name, Product.sku).order_by(func.sum(ProductSale.total_price_cents).desc()).all()

    by_product = [
        {
            "product_id": pid,
            "name": name,
            "sku": sku,
            "sale_count": int(count),
            "quantity": int(qty or 0),
            "revenue_cents": int(revenue or 0),
        }
        for pid, name, sku, count, qty, revenue in rows
    ]
    return {
        "type": "sales-report",
        "products": by_product,
        "total_sales": sum(r["sale_count"] for r in by_product),
        "total_quantity": sum(r["quantity"] for r in by_product),
        "total_revenue_cents": sum(r["revenue_cents"] for r in by_product),
    }
