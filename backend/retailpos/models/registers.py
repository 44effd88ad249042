from __future__ import annotations

from ..extensions import db
from retailpos.time_utils import to_utc_z, utcnow


class Shift(db.Model):
    """
    Cashier shift on a till.

    WHY: Cash accountability. Transactions carry shift_id so the drawer can be
    reconciled against what the shift actually took in.

    LIFECYCLE:
    - open: created on first clock-in, at most one per employee per company
    - closed: end_time stamped, closing count recorded, variance calculated

    All cash amounts in cents.
    """
    __tablename__ = "shifts"
    __table_args__ = (
        db.Index("ix_shifts_company_employee_status", "company_id", "employee_id", "status"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    company_id = db.Column(db.Integer, db.ForeignKey("companies.id"), nullable=False, index=True)
    employee_id = db.Column(db.Integer, db.ForeignKey("employees.id"), nullable=False, index=True)
    closed_by_employee_id = db.Column(db.Integer, db.ForeignKey("employees.id"), nullable=True)

    # Free-form till label ("REG-01", "FRONT")
    register = db.Column(db.String(32), nullable=True)

    status = db.Column(db.String(16), nullable=False, default="open", index=True)  # open, closed

    start_time = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow, index=True)
    end_time = db.Column(db.DateTime(timezone=True), nullable=True)

    opening_balance_cents = db.Column(db.Integer, nullable=False, default=0)
    cash_injections_cents = db.Column(db.Integer, nullable=False, default=0)
    closing_balance_cents = db.Column(db.Integer, nullable=True)

    # Calculated at close
    expected_cash_cents = db.Column(db.Integer, nullable=True)
    variance_cents = db.Column(db.Integer, nullable=True)  # closing - expected

    employee = db.relationship("Employee", foreign_keys=[employee_id], backref=db.backref("shifts", lazy=True))
    closed_by = db.relationship("Employee", foreign_keys=[closed_by_employee_id])
    company = db.relationship("Company", backref=db.backref("shifts", lazy=True))

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "company_id": self.company_id,
            "employee_id": self.employee_id,
            "employee_name": self.employee.name if self.employee else "Unknown",
            "closed_by_employee_id": self.closed_by_employee_id,
            "register": self.register,
            "status": self.status,
            "start_time": to_utc_z(self.start_time),
            "end_time": to_utc_z(self.end_time) if self.end_time else None,
            "opening_balance_cents": self.opening_balance_cents,
            "cash_injections_cents": self.cash_injections_cents,
            "closing_balance_cents": self.closing_balance_cents,
            "expected_cash_cents": self.expected_cash_cents,
            "variance_cents": self.variance_cents,
        }
