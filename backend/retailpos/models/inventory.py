from __future__ import annotations

from ..extensions import db
from retailpos.time_utils import to_utc_z, utcnow


class Category(db.Model):
    """
    Inventory category.

    tax_rate is a percentage (8.25 means 8.25%) applied per line at sale time.
    return_period_days mirrors a category-level ReturnPolicy row.
    """
    __tablename__ = "categories"
    __table_args__ = (
        db.UniqueConstraint("company_id", "name", name="uq_categories_company_name"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    company_id = db.Column(db.Integer, db.ForeignKey("companies.id"), nullable=False, index=True)
    name = db.Column(db.String(128), nullable=False)

    tax_rate = db.Column(db.Float, nullable=False, default=0.0)
    return_period_days = db.Column(db.Integer, nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)

    company = db.relationship("Company", backref=db.backref("categories", lazy=True))

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "company_id": self.company_id,
            "name": self.name,
            "tax_rate": self.tax_rate,
            "return_period_days": self.return_period_days,
            "created_at": to_utc_z(self.created_at),
        }


class Vendor(db.Model):
    """Supplier an item is purchased from."""
    __tablename__ = "vendors"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    company_id = db.Column(db.Integer, db.ForeignKey("companies.id"), nullable=False, index=True)
    name = db.Column(db.String(128), nullable=False)
    contact_name = db.Column(db.String(128), nullable=True)
    email = db.Column(db.String(255), nullable=True)
    phone = db.Column(db.String(32), nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "company_id": self.company_id,
            "name": self.name,
            "contact_name": self.contact_name,
            "email": self.email,
            "phone": self.phone,
            "created_at": to_utc_z(self.created_at),
        }


class Item(db.Model):
    """
    Sellable item.

    RETURN OVERRIDES: return_period_days and no_returns mirror an item-level
    ReturnPolicy row so eligibility checks do not need a join. The policy
    service writes both in the same DB transaction.
    """
    __tablename__ = "items"
    __table_args__ = (
        db.Index("ix_items_company_barcode", "company_id", "barcode"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    company_id = db.Column(db.Integer, db.ForeignKey("companies.id"), nullable=False, index=True)
    category_id = db.Column(db.Integer, db.ForeignKey("categories.id"), nullable=True, index=True)
    vendor_id = db.Column(db.Integer, db.ForeignKey("vendors.id"), nullable=True)

    name = db.Column(db.String(255), nullable=False)
    barcode = db.Column(db.String(64), nullable=True)
    price_cents = db.Column(db.Integer, nullable=False, default=0)
    quantity_on_hand = db.Column(db.Integer, nullable=False, default=0)

    return_period_days = db.Column(db.Integer, nullable=True)
    no_returns = db.Column(db.Boolean, nullable=False, default=False)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)

    category = db.relationship("Category", backref=db.backref("items", lazy=True))
    vendor = db.relationship("Vendor", backref=db.backref("items", lazy=True))

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "company_id": self.company_id,
            "category_id": self.category_id,
            "vendor_id": self.vendor_id,
            "name": self.name,
            "barcode": self.barcode,
            "price_cents": self.price_cents,
            "quantity_on_hand": self.quantity_on_hand,
            "return_period_days": self.return_period_days,
            "no_returns": self.no_returns,
            "created_at": to_utc_z(self.created_at),
        }


class ReturnPolicy(db.Model):
    """
    Return policy override for one item or one category.

    PRECEDENCE: item > category > company default.
    """
    __tablename__ = "return_policies"
    __table_args__ = (
        db.UniqueConstraint("company_id", "target_type", "target_id", name="uq_return_policies_target"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    company_id = db.Column(db.Integer, db.ForeignKey("companies.id"), nullable=False, index=True)
    target_type = db.Column(db.String(16), nullable=False)  # item, category
    target_id = db.Column(db.Integer, nullable=False)

    return_period_days = db.Column(db.Integer, nullable=True)
    no_returns = db.Column(db.Boolean, nullable=False, default=False)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "company_id": self.company_id,
            "target_type": self.target_type,
            "target_id": self.target_id,
            "return_period_days": self.return_period_days,
            "no_returns": self.no_returns,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }
