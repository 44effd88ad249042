from __future__ import annotations

from ..extensions import db
from retailpos.time_utils import to_utc_z, utcnow


class Customer(db.Model):
    """
    Customer tracked for loyalty.

    Denormalized aggregates (loyalty_points, total_spent_cents, visit_count)
    are updated when a sale is recorded.
    """
    __tablename__ = "customers"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    company_id = db.Column(db.Integer, db.ForeignKey("companies.id"), nullable=False, index=True)
    name = db.Column(db.String(128), nullable=False)
    email = db.Column(db.String(255), nullable=True)
    phone = db.Column(db.String(32), nullable=True)

    loyalty_points = db.Column(db.Integer, nullable=False, default=0)
    total_spent_cents = db.Column(db.Integer, nullable=False, default=0)
    visit_count = db.Column(db.Integer, nullable=False, default=0)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "company_id": self.company_id,
            "name": self.name,
            "email": self.email,
            "phone": self.phone,
            "loyalty_points": self.loyalty_points,
            "total_spent_cents": self.total_spent_cents,
            "visit_count": self.visit_count,
            "created_at": to_utc_z(self.created_at),
        }


class LoyaltyConfig(db.Model):
    """Per-company loyalty program settings (created enabled on first use)."""
    __tablename__ = "loyalty_configs"
    __table_args__ = (
        db.UniqueConstraint("company_id", name="uq_loyalty_configs_company"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    company_id = db.Column(db.Integer, db.ForeignKey("companies.id"), nullable=False)
    points_per_dollar = db.Column(db.Float, nullable=False, default=1.0)
    is_enabled = db.Column(db.Boolean, nullable=False, default=True)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "company_id": self.company_id,
            "points_per_dollar": self.points_per_dollar,
            "is_enabled": self.is_enabled,
        }
