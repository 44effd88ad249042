from __future__ import annotations

from ..extensions import db
from retailpos.time_utils import to_utc_z, utcnow


TRANSACTION_TYPE_SALE = "sale"
TRANSACTION_TYPE_REFUND = "refund"
TRANSACTION_TYPE_VOID = "void"

TRANSACTION_STATUS_COMPLETED = "completed"
TRANSACTION_STATUS_REFUNDED = "refunded"
TRANSACTION_STATUS_DELETED = "deleted"

PAYMENT_METHODS = ("cash", "card", "store_credit", "gift_card")


class Transaction(db.Model):
    """
    Financial event at the till.

    IMMUTABLE: amounts never change after creation. Only status moves
    (completed -> refunded for sales, completed -> deleted for voids).
    Rows are never physically deleted so shift reconciliation can always
    be replayed.

    SIGN: refunds carry a negative total_cents.
    """
    __tablename__ = "transactions"
    __table_args__ = (
        db.Index("ix_transactions_company_created", "company_id", "created_at"),
        db.Index("ix_transactions_shift_created", "shift_id", "created_at"),
        db.Index("ix_transactions_employee_type", "employee_id", "type"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    company_id = db.Column(db.Integer, db.ForeignKey("companies.id"), nullable=False, index=True)
    employee_id = db.Column(db.Integer, db.ForeignKey("employees.id"), nullable=False)
    shift_id = db.Column(db.Integer, db.ForeignKey("shifts.id"), nullable=True)
    customer_id = db.Column(db.Integer, db.ForeignKey("customers.id"), nullable=True)
    authorized_by_employee_id = db.Column(db.Integer, db.ForeignKey("employees.id"), nullable=True)

    # Refunds point back at the sale they reverse
    original_transaction_id = db.Column(db.Integer, db.ForeignKey("transactions.id"), nullable=True)

    # Human-readable "TXN-YYYYMMDD-NNNNNN"; time-derived, indexed but not unique
    transaction_number = db.Column(db.String(32), nullable=False, index=True)

    type = db.Column(db.String(16), nullable=False, default=TRANSACTION_TYPE_SALE, index=True)
    status = db.Column(db.String(16), nullable=False, default=TRANSACTION_STATUS_COMPLETED, index=True)

    subtotal_cents = db.Column(db.Integer, nullable=False, default=0)
    tax_cents = db.Column(db.Integer, nullable=False, default=0)
    total_cents = db.Column(db.Integer, nullable=False, default=0)

    payment_method = db.Column(db.String(16), nullable=False, default="cash")
    cash_given_cents = db.Column(db.Integer, nullable=True)
    change_due_cents = db.Column(db.Integer, nullable=True)

    loyalty_points_earned = db.Column(db.Integer, nullable=False, default=0)
    loyalty_points_redeemed = db.Column(db.Integer, nullable=False, default=0)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow, index=True)

    employee = db.relationship("Employee", foreign_keys=[employee_id], backref=db.backref("transactions", lazy=True))
    authorized_by = db.relationship("Employee", foreign_keys=[authorized_by_employee_id])
    shift = db.relationship("Shift", backref=db.backref("transactions", lazy=True))
    customer = db.relationship("Customer", backref=db.backref("transactions", lazy=True))
    original_transaction = db.relationship("Transaction", remote_side=[id])

    def to_dict(self, include_lines: bool = False) -> dict:
        data = {
            "id": self.id,
            "company_id": self.company_id,
            "employee_id": self.employee_id,
            "employee_name": self.employee.name if self.employee else None,
            "shift_id": self.shift_id,
            "customer_id": self.customer_id,
            "authorized_by_employee_id": self.authorized_by_employee_id,
            "original_transaction_id": self.original_transaction_id,
            "transaction_number": self.transaction_number,
            "type": self.type,
            "status": self.status,
            "subtotal_cents": self.subtotal_cents,
            "tax_cents": self.tax_cents,
            "total_cents": self.total_cents,
            "payment_method": self.payment_method,
            "cash_given_cents": self.cash_given_cents,
            "change_due_cents": self.change_due_cents,
            "loyalty_points_earned": self.loyalty_points_earned,
            "loyalty_points_redeemed": self.loyalty_points_redeemed,
            "created_at": to_utc_z(self.created_at),
        }
        if include_lines:
            data["lines"] = [line.to_dict() for line in self.lines]
        return data


class TransactionLine(db.Model):
    """
    Line item on a transaction.

    item_name is snapshotted so receipts survive item renames.
    quantity is fractional for weighed items.
    """
    __tablename__ = "transaction_lines"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    transaction_id = db.Column(db.Integer, db.ForeignKey("transactions.id"), nullable=False, index=True)
    item_id = db.Column(db.Integer, db.ForeignKey("items.id"), nullable=True, index=True)

    item_name = db.Column(db.String(255), nullable=False)
    quantity = db.Column(db.Float, nullable=False, default=1)
    unit_price_cents = db.Column(db.Integer, nullable=False)
    line_total_cents = db.Column(db.Integer, nullable=False)
    is_weight_item = db.Column(db.Boolean, nullable=False, default=False)

    transaction = db.relationship("Transaction", backref=db.backref("lines", lazy=True, order_by="TransactionLine.id"))
    item = db.relationship("Item")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "transaction_id": self.transaction_id,
            "item_id": self.item_id,
            "item_name": self.item_name,
            "quantity": self.quantity,
            "unit_price_cents": self.unit_price_cents,
            "line_total_cents": self.line_total_cents,
            "is_weight_item": self.is_weight_item,
        }
