from __future__ import annotations

from ..extensions import db
from retailpos.time_utils import to_utc_z, utcnow


class Employee(db.Model):
    """
    Store staff member who signs in at a terminal by scanning a barcode.

    BARCODE: "EMP-XXXXX", generated on create and unique per company. The
    unique constraint is the final guard when the generator's retry budget
    runs out.

    FLAGS:
    - is_manager: can authorize refunds/voids; excluded from peer averages
    - is_active: deactivated staff keep their history but cannot sign in
    - in_sales: participates in sales comparisons (back-office staff do not)
    """
    __tablename__ = "employees"
    __table_args__ = (
        db.UniqueConstraint("company_id", "barcode", name="uq_employees_company_barcode"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    company_id = db.Column(db.Integer, db.ForeignKey("companies.id"), nullable=False, index=True)

    name = db.Column(db.String(128), nullable=False)
    barcode = db.Column(db.String(32), nullable=False)

    # Legacy terminal PIN, kept for older registers
    pin = db.Column(db.String(16), nullable=True)

    is_manager = db.Column(db.Boolean, nullable=False, default=False)
    is_active = db.Column(db.Boolean, nullable=False, default=True, index=True)
    in_sales = db.Column(db.Boolean, nullable=False, default=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)

    company = db.relationship("Company", backref=db.backref("employees", lazy=True))

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "company_id": self.company_id,
            "name": self.name,
            "barcode": self.barcode,
            "is_manager": self.is_manager,
            "is_active": self.is_active,
            "in_sales": self.in_sales,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }
