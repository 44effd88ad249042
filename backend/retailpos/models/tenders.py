from __future__ import annotations

from ..extensions import db
from retailpos.time_utils import to_utc_z, utcnow


class StoreCredit(db.Model):
    """
    Single-use store credit voucher.

    BARCODE: "SC-YYYYMMDD-XXXXXX", globally unique so a terminal can look it up
    without knowing the company.

    SINGLE USE: is_used flips false -> true exactly once, through a
    conditional UPDATE (see store_credit_service.redeem_store_credit).

    transaction_id is a real foreign key to the transaction that issued the
    credit (typically a refund), which is how credits are attributed to
    employees and shifts.
    """
    __tablename__ = "store_credits"
    __table_args__ = (
        db.UniqueConstraint("barcode", name="uq_store_credits_barcode"),
        db.Index("ix_store_credits_company_created", "company_id", "created_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    company_id = db.Column(db.Integer, db.ForeignKey("companies.id"), nullable=False, index=True)
    barcode = db.Column(db.String(32), nullable=False)
    amount_cents = db.Column(db.Integer, nullable=False)
    description = db.Column(db.String(255), nullable=True)

    transaction_id = db.Column(db.Integer, db.ForeignKey("transactions.id"), nullable=True, index=True)
    redeemed_transaction_id = db.Column(db.Integer, db.ForeignKey("transactions.id"), nullable=True)
    issued_by_employee_id = db.Column(db.Integer, db.ForeignKey("employees.id"), nullable=True, index=True)
    authorized_by_employee_id = db.Column(db.Integer, db.ForeignKey("employees.id"), nullable=True)

    is_used = db.Column(db.Boolean, nullable=False, default=False)
    used_at = db.Column(db.DateTime(timezone=True), nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)

    transaction = db.relationship("Transaction", foreign_keys=[transaction_id], backref=db.backref("store_credits", lazy=True))

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "company_id": self.company_id,
            "barcode": self.barcode,
            "amount_cents": self.amount_cents,
            "description": self.description,
            "transaction_id": self.transaction_id,
            "redeemed_transaction_id": self.redeemed_transaction_id,
            "issued_by_employee_id": self.issued_by_employee_id,
            "authorized_by_employee_id": self.authorized_by_employee_id,
            "is_used": self.is_used,
            "used_at": to_utc_z(self.used_at) if self.used_at else None,
            "created_at": to_utc_z(self.created_at),
        }


class GiftCard(db.Model):
    """
    Stored-value gift card.

    LIFECYCLE:
    - created (printed stock, purchased_at NULL, cannot be redeemed)
    - activated (purchased_at set when sold at the till)
    - redeemed partially or fully; balance never goes below zero
    """
    __tablename__ = "gift_cards"
    __table_args__ = (
        db.UniqueConstraint("barcode", name="uq_gift_cards_barcode"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    company_id = db.Column(db.Integer, db.ForeignKey("companies.id"), nullable=False, index=True)
    barcode = db.Column(db.String(64), nullable=False)

    initial_value_cents = db.Column(db.Integer, nullable=False)
    balance_cents = db.Column(db.Integer, nullable=False)

    is_active = db.Column(db.Boolean, nullable=False, default=True)
    purchased_at = db.Column(db.DateTime(timezone=True), nullable=True)
    purchase_transaction_id = db.Column(db.Integer, db.ForeignKey("transactions.id"), nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)

    def to_dict(self, include_usage: bool = False) -> dict:
        data = {
            "id": self.id,
            "company_id": self.company_id,
            "barcode": self.barcode,
            "initial_value_cents": self.initial_value_cents,
            "balance_cents": self.balance_cents,
            "is_active": self.is_active,
            "purchased_at": to_utc_z(self.purchased_at) if self.purchased_at else None,
            "purchase_transaction_id": self.purchase_transaction_id,
            "created_at": to_utc_z(self.created_at),
        }
        if include_usage:
            data["usage_history"] = [u.to_dict() for u in self.usage_history]
        return data


class GiftCardUsage(db.Model):
    """Append-only record of each gift card redemption."""
    __tablename__ = "gift_card_usages"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    gift_card_id = db.Column(db.Integer, db.ForeignKey("gift_cards.id"), nullable=False, index=True)
    transaction_id = db.Column(db.Integer, db.ForeignKey("transactions.id"), nullable=True)
    amount_cents = db.Column(db.Integer, nullable=False)
    balance_after_cents = db.Column(db.Integer, nullable=False)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)

    gift_card = db.relationship(
        "GiftCard",
        backref=db.backref("usage_history", lazy=True, order_by="GiftCardUsage.created_at.desc()"),
    )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "gift_card_id": self.gift_card_id,
            "transaction_id": self.transaction_id,
            "amount_cents": self.amount_cents,
            "balance_after_cents": self.balance_after_cents,
            "created_at": to_utc_z(self.created_at),
        }
