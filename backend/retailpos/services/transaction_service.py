# Overview: Service-layer operations for transactions; encapsulates business logic and database work.

"""
Transaction Service - sales, voids and refunds at the till

TOTALS:
- line_total = quantity * unit_price (rounded to the cent per line)
- tax        = sum of line_total * category.tax_rate / 100, rounded once
- total      = subtotal + tax
- change_due = cash_given - total (cash tenders only)

STATUS MOVES (never deletes):
- void:   sale completed -> deleted
- refund: sale completed -> refunded, plus a new refund transaction with a
          negative total pointing back at the sale

Both moves are conditional UPDATEs on status = completed, so two terminals
cannot refund or void the same sale twice.
"""

from __future__ import annotations

import math
from datetime import datetime, timedelta

from sqlalchemy.exc import IntegrityError

from ..extensions import db
from ..models import Customer, Employee, Item, LoyaltyConfig, Shift, Transaction, TransactionLine
from ..models.sales import (
    PAYMENT_METHODS,
    TRANSACTION_TYPE_SALE,
    TRANSACTION_TYPE_REFUND,
    TRANSACTION_TYPE_VOID,
    TRANSACTION_STATUS_COMPLETED,
    TRANSACTION_STATUS_REFUNDED,
    TRANSACTION_STATUS_DELETED,
)
from ..validation import ConflictError, NotFoundError, ValidationError
from retailpos.time_utils import utcnow
from . import identifier_service, policy_service, store_credit_service
from .concurrency import conditional_update
from .shift_service import SHIFT_STATUS_OPEN


CREATABLE_TYPES = (TRANSACTION_TYPE_SALE, TRANSACTION_TYPE_VOID)


# =============================================================================
# LOYALTY
# =============================================================================

def get_or_create_loyalty_config(company_id: int) -> LoyaltyConfig:
    """
    Companies get an enabled 1 point/dollar program on first use.

    Commits on create, so call it before staging other changes.
    """
    config = db.session.query(LoyaltyConfig).filter_by(company_id=company_id).first()
    if config is not None:
        return config

    config = LoyaltyConfig(company_id=company_id, points_per_dollar=1.0, is_enabled=True)
    db.session.add(config)
    try:
        db.session.commit()
    except IntegrityError:
        # Another request created it first
        db.session.rollback()
        config = db.session.query(LoyaltyConfig).filter_by(company_id=company_id).first()
    return config


def loyalty_points_for(total_cents: int, config: LoyaltyConfig | None) -> int:
    if config is None or not config.is_enabled or total_cents <= 0:
        return 0
    return math.floor((total_cents / 100) * (config.points_per_dollar or 1))


# =============================================================================
# CREATE
# =============================================================================

def _build_lines(company_id: int, lines: list[dict]) -> tuple[list[TransactionLine], int, int]:
    """Returns (line rows, subtotal_cents, tax_cents)."""
    if not lines:
        raise ValidationError("Employee and items are required")

    rows = []
    subtotal = 0
    tax = 0.0
    for raw in lines:
        item_id = raw.get("item_id")
        item = db.session.query(Item).filter_by(id=item_id, company_id=company_id).first() if item_id else None
        if item_id and item is None:
            raise NotFoundError(f"Item {item_id} not found")

        quantity = raw.get("quantity", 1)
        if isinstance(quantity, bool) or not isinstance(quantity, (int, float)) or quantity <= 0:
            raise ValidationError("quantity must be a positive number")

        unit_price = raw.get("unit_price_cents")
        if unit_price is None:
            if item is None:
                raise ValidationError("unit_price_cents required for lines without an item")
            unit_price = item.price_cents
        if isinstance(unit_price, bool) or not isinstance(unit_price, int) or unit_price < 0:
            raise ValidationError("unit_price_cents must be a non-negative integer")

        line_total = int(round(quantity * unit_price))
        tax_rate = item.category.tax_rate if item is not None and item.category is not None else 0
        subtotal += line_total
        tax += line_total * (tax_rate or 0) / 100

        rows.append(TransactionLine(
            item_id=item.id if item is not None else None,
            item_name=(item.name if item is not None else raw.get("item_name")) or "Unknown",
            quantity=quantity,
            unit_price_cents=unit_price,
            line_total_cents=line_total,
            is_weight_item=bool(raw.get("is_weight_item", False)),
        ))

    return rows, subtotal, int(round(tax))


def _get_open_shift_for(company_id: int, shift_id: int | None) -> Shift | None:
    if not shift_id:
        return None
    shift = db.session.query(Shift).filter_by(id=shift_id, company_id=company_id).first()
    if shift is None:
        raise NotFoundError("Shift not found")
    if shift.status != SHIFT_STATUS_OPEN:
        raise ConflictError("Shift is closed")
    return shift


def create_transaction(
    company_id: int,
    employee_id: int,
    lines: list[dict],
    *,
    shift_id: int | None = None,
    payment_method: str = "cash",
    cash_given_cents: int | None = None,
    tx_type: str = TRANSACTION_TYPE_SALE,
    customer_id: int | None = None,
    loyalty_points_redeemed: int = 0,
) -> Transaction:
    if tx_type not in CREATABLE_TYPES:
        raise ValidationError(f"type must be one of: {', '.join(CREATABLE_TYPES)}")
    if payment_method not in PAYMENT_METHODS:
        raise ValidationError(f"payment_method must be one of: {', '.join(PAYMENT_METHODS)}")

    employee = db.session.query(Employee).filter_by(id=employee_id, company_id=company_id).first()
    if employee is None:
        raise NotFoundError("Employee not found")

    shift = _get_open_shift_for(company_id, shift_id)
    rows, subtotal, tax = _build_lines(company_id, lines)
    total = subtotal + tax

    change_due = None
    if payment_method == "cash" and cash_given_cents is not None:
        if cash_given_cents < total:
            raise ValidationError("cash_given is less than the total")
        change_due = cash_given_cents - total

    customer = None
    earned = 0
    is_sale = tx_type == TRANSACTION_TYPE_SALE
    if customer_id:
        customer = db.session.query(Customer).filter_by(id=customer_id, company_id=company_id).first()
        if customer is None:
            raise NotFoundError("Customer not found")
        if loyalty_points_redeemed and loyalty_points_redeemed > customer.loyalty_points:
            raise ValidationError("Customer does not have enough loyalty points")
        if is_sale:
            earned = loyalty_points_for(total, get_or_create_loyalty_config(company_id))

    transaction = Transaction(
        company_id=company_id,
        employee_id=employee_id,
        shift_id=shift.id if shift is not None else None,
        customer_id=customer.id if customer is not None else None,
        transaction_number=identifier_service.generate_unique_code(identifier_service.KIND_TRANSACTION),
        type=tx_type,
        status=TRANSACTION_STATUS_COMPLETED,
        subtotal_cents=subtotal,
        tax_cents=tax,
        total_cents=total,
        payment_method=payment_method,
        cash_given_cents=cash_given_cents,
        change_due_cents=change_due,
        loyalty_points_earned=earned,
        loyalty_points_redeemed=loyalty_points_redeemed or 0,
        created_at=utcnow(),
    )
    transaction.lines = rows
    db.session.add(transaction)

    if is_sale:
        for line in rows:
            if line.item_id is None:
                continue
            db.session.query(Item).filter_by(id=line.item_id).update(
                {Item.quantity_on_hand: Item.quantity_on_hand - math.ceil(line.quantity)},
                synchronize_session=False,
            )

        if customer is not None:
            customer.loyalty_points = customer.loyalty_points + earned - (loyalty_points_redeemed or 0)
            customer.total_spent_cents = customer.total_spent_cents + total
            customer.visit_count = customer.visit_count + 1

    db.session.commit()
    return transaction


# =============================================================================
# QUERIES
# =============================================================================

def get_transaction(transaction_id: int, company_id: int | None = None) -> Transaction:
    query = db.session.query(Transaction).filter_by(id=transaction_id)
    if company_id is not None:
        query = query.filter_by(company_id=company_id)
    transaction = query.first()
    if transaction is None:
        raise NotFoundError("Transaction not found")
    return transaction


def _parse_day(value: str, field: str) -> datetime:
    try:
        return datetime.strptime(value, "%Y-%m-%d")
    except ValueError:
        raise ValidationError(f"{field} must be YYYY-MM-DD")


def list_transactions(
    company_id: int,
    start_date: str | None = None,
    end_date: str | None = None,
    tx_type: str | None = None,
) -> list[Transaction]:
    """end_date is inclusive through the end of that day (UTC)."""
    query = db.session.query(Transaction).filter_by(company_id=company_id)
    if start_date:
        query = query.filter(Transaction.created_at >= _parse_day(start_date, "startDate"))
    if end_date:
        query = query.filter(Transaction.created_at < _parse_day(end_date, "endDate") + timedelta(days=1))
    if tx_type:
        query = query.filter_by(type=tx_type)
    return query.order_by(Transaction.created_at.desc(), Transaction.id.desc()).all()


# =============================================================================
# VOID / REFUND
# =============================================================================

def void_transaction(transaction_id: int, company_id: int, authorized_by_employee_id: int | None = None) -> Transaction:
    """Void a completed sale at the POS. The row stays for reconciliation."""
    transaction = get_transaction(transaction_id, company_id)

    values = {"status": TRANSACTION_STATUS_DELETED}
    if authorized_by_employee_id:
        values["authorized_by_employee_id"] = authorized_by_employee_id

    affected = conditional_update(
        db.session.query(Transaction).filter(
            Transaction.id == transaction.id,
            Transaction.status == TRANSACTION_STATUS_COMPLETED,
        ),
        values,
    )
    if affected == 0:
        db.session.rollback()
        raise ConflictError(f"Transaction is already {transaction.status}")

    db.session.commit()
    db.session.refresh(transaction)
    return transaction


def _check_line_policies(transaction: Transaction, default_period: int, now: datetime | None) -> None:
    age = policy_service.days_since(transaction.created_at, now)
    for line in transaction.lines:
        if line.item is None:
            continue
        verdict = policy_service.check_item_eligibility(line.item, default_period)
        if not verdict["allowed"]:
            raise ConflictError(verdict["reason"], {"item_id": line.item_id})
        if age > verdict["effective_return_period"]:
            raise ConflictError(
                f'"{line.item.name}" can only be returned within {verdict["effective_return_period"]} days',
                {"item_id": line.item_id, "days_since_purchase": age},
            )


def refund_transaction(
    transaction_id: int,
    company_id: int,
    employee_id: int,
    *,
    shift_id: int | None = None,
    payment_method: str = "cash",
    authorized_by_employee_id: int | None = None,
    now: datetime | None = None,
) -> dict:
    """
    Refund a whole sale.

    The sale must pass the transaction-age check and every line item's own
    policy. Refunding to store_credit issues a credit linked to the refund.
    """
    if payment_method not in PAYMENT_METHODS:
        raise ValidationError(f"payment_method must be one of: {', '.join(PAYMENT_METHODS)}")

    original = get_transaction(transaction_id, company_id)
    default_period = policy_service.get_company_default_period(company_id)

    verdict = policy_service.check_transaction_eligibility(original, default_period, now=now)
    if not verdict["allowed"]:
        details = {k: v for k, v in verdict.items() if k in ("days_since_purchase", "max_days")}
        raise ConflictError(verdict["reason"], details)
    _check_line_policies(original, default_period, now)

    employee = db.session.query(Employee).filter_by(id=employee_id, company_id=company_id).first()
    if employee is None:
        raise NotFoundError("Employee not found")
    shift = _get_open_shift_for(company_id, shift_id)

    try:
        affected = conditional_update(
            db.session.query(Transaction).filter(
                Transaction.id == original.id,
                Transaction.status == TRANSACTION_STATUS_COMPLETED,
            ),
            {"status": TRANSACTION_STATUS_REFUNDED},
        )
        if affected == 0:
            raise ConflictError("Transaction has already been refunded or voided")

        refund = Transaction(
            company_id=company_id,
            employee_id=employee_id,
            shift_id=shift.id if shift is not None else None,
            customer_id=original.customer_id,
            authorized_by_employee_id=authorized_by_employee_id,
            original_transaction_id=original.id,
            transaction_number=identifier_service.generate_unique_code(identifier_service.KIND_TRANSACTION),
            type=TRANSACTION_TYPE_REFUND,
            status=TRANSACTION_STATUS_COMPLETED,
            subtotal_cents=-original.subtotal_cents,
            tax_cents=-original.tax_cents,
            total_cents=-original.total_cents,
            payment_method=payment_method,
            created_at=now or utcnow(),
        )
        refund.lines = [
            TransactionLine(
                item_id=line.item_id,
                item_name=line.item_name,
                quantity=line.quantity,
                unit_price_cents=line.unit_price_cents,
                line_total_cents=-line.line_total_cents,
                is_weight_item=line.is_weight_item,
            )
            for line in original.lines
        ]
        db.session.add(refund)
        db.session.flush()

        for line in original.lines:
            if line.item_id is None:
                continue
            db.session.query(Item).filter_by(id=line.item_id).update(
                {Item.quantity_on_hand: Item.quantity_on_hand + math.ceil(line.quantity)},
                synchronize_session=False,
            )

        credit = None
        if payment_method == "store_credit":
            credit = store_credit_service.issue_store_credit(
                company_id,
                original.total_cents,
                transaction_id=refund.id,
                description=f"Refund of {original.transaction_number}",
                issued_by_employee_id=employee_id,
                authorized_by_employee_id=authorized_by_employee_id,
                commit=False,
            )

        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        raise ConflictError("Store credit barcode collision, try again")
    except Exception:
        db.session.rollback()
        raise

    return {
        "refund": refund.to_dict(include_lines=True),
        "store_credit": credit.to_dict() if credit is not None else None,
    }
