"""
Shift and Cash Reconciliation Service

WHY: Each shift is a period of accountability for one cashier. At count-up
the till should hold exactly:

    expected_cash = opening_balance + cash_collected + cash_injections

where cash_collected is, over cash sales, the cash tendered minus the change
handed back (not the recorded total, which differs on rounding and split
tenders). Card and other non-cash tenders never touch the drawer.

DESIGN PRINCIPLES:
- One open shift per employee per company (lookup-before-create)
- Reconciliation only reads transactions whose shift_id matches AND whose
  created_at lies within [start_time, end_time or now]
- Aggregation accumulates exact integer cents; averages are rounded to
  2 decimals only when the result is built
- Store credits have no shift column: they belong to a shift when created
  inside its window, or when issued by one of its transactions
- Hour buckets are local hour-of-day only, so a shift spanning midnight
  merges e.g. 23:00 of two days into one bucket
"""

from __future__ import annotations

from datetime import datetime

from ..extensions import db
from ..models import Employee, Shift, StoreCredit, Transaction
from ..models.sales import (
    TRANSACTION_TYPE_SALE,
    TRANSACTION_TYPE_REFUND,
    TRANSACTION_TYPE_VOID,
    TRANSACTION_STATUS_DELETED,
)
from ..validation import ConflictError, NotFoundError, ValidationError
from retailpos.time_utils import local_hour, utcnow
from .concurrency import lock_for_update


SHIFT_STATUS_OPEN = "open"
SHIFT_STATUS_CLOSED = "closed"

PAYMENT_CASH = "cash"
PAYMENT_CARD = "card"


# =============================================================================
# AGGREGATION (pure functions over fetched rows)
# =============================================================================

def shift_window(shift: Shift, now: datetime | None = None) -> tuple[datetime, datetime]:
    return shift.start_time, shift.end_time or now or utcnow()


def in_window(created_at: datetime, window: tuple[datetime, datetime]) -> bool:
    start, end = window
    return start <= created_at <= end


def partition_transactions(transactions) -> tuple[list, list, list]:
    """
    Split into (sales, refunds, voids).

    A sale whose status is deleted counts as a void, not a sale.
    """
    sales, refunds, voids = [], [], []
    for t in transactions:
        if t.type == TRANSACTION_TYPE_VOID or t.status == TRANSACTION_STATUS_DELETED:
            voids.append(t)
        elif t.type == TRANSACTION_TYPE_SALE:
            sales.append(t)
        elif t.type == TRANSACTION_TYPE_REFUND:
            refunds.append(t)
    return sales, refunds, voids


def cash_collected_cents(sales) -> int:
    total = 0
    for t in sales:
        if t.payment_method != PAYMENT_CASH:
            continue
        given = t.cash_given_cents if t.cash_given_cents is not None else t.total_cents
        change = t.change_due_cents if t.change_due_cents is not None else 0
        total += given - change
    return total


def reconcile(shift: Shift, transactions) -> dict:
    """
    Build the cash-up summary from a shift and its in-window transactions.
    """
    sales, refunds, voids = partition_transactions(transactions)

    cash_sales = [t for t in sales if t.payment_method == PAYMENT_CASH]
    card_sales = [t for t in sales if t.payment_method == PAYMENT_CARD]

    collected = cash_collected_cents(sales)
    opening = shift.opening_balance_cents or 0
    injections = shift.cash_injections_cents or 0

    return {
        "total_sales_cents": sum(t.total_cents for t in sales),
        "total_refunds_cents": sum(abs(t.total_cents) for t in refunds),
        "total_voids_cents": sum(abs(t.total_cents) for t in voids),
        "cash_collected_cents": collected,
        "card_total_cents": sum(t.total_cents for t in card_sales),
        "expected_cash_cents": opening + collected + injections,
        "transaction_count": len(sales),
        "refund_count": len(refunds),
        "void_count": len(voids),
        "cash_transaction_count": len(cash_sales),
        "card_transaction_count": len(card_sales),
    }


def hourly_breakdown(sales, tz_name: str | None) -> list[dict]:
    buckets: dict[int, dict] = {}
    for t in sales:
        hour = local_hour(t.created_at, tz_name)
        bucket = buckets.setdefault(hour, {"hour": hour, "sales_cents": 0, "transactions": 0})
        bucket["sales_cents"] += t.total_cents
        bucket["transactions"] += 1
    return [buckets[h] for h in sorted(buckets)]


def attribute_store_credits(credits, window, transaction_ids) -> list:
    """
    Credits inside the window (inclusive) or linked to one of the shift's
    transactions. Each credit appears once, in input order.
    """
    seen = set()
    attributed = []
    for sc in credits:
        if sc.id in seen:
            continue
        if in_window(sc.created_at, window) or (sc.transaction_id is not None and sc.transaction_id in transaction_ids):
            seen.add(sc.id)
            attributed.append(sc)
    return attributed


def build_shift_stats(transactions, store_credits, tz_name: str | None) -> dict:
    sales, refunds, voids = partition_transactions(transactions)
    total_sales = sum(t.total_cents for t in sales)

    return {
        "total_sales_cents": total_sales,
        "total_refunds_cents": sum(abs(t.total_cents) for t in refunds),
        "total_voids_cents": sum(abs(t.total_cents) for t in voids),
        "total_store_credits_issued_cents": sum(sc.amount_cents for sc in store_credits),
        "transaction_count": len(sales),
        "refund_count": len(refunds),
        "void_count": len(voids),
        "store_credit_count": len(store_credits),
        "cash_sales_cents": sum(t.total_cents for t in sales if t.payment_method == PAYMENT_CASH),
        "card_sales_cents": sum(t.total_cents for t in sales if t.payment_method == PAYMENT_CARD),
        "average_transaction_cents": round(total_sales / len(sales), 2) if sales else 0,
        "hourly_breakdown": hourly_breakdown(sales, tz_name),
    }


# =============================================================================
# QUERIES
# =============================================================================

def _shift_query(shift_id: int, company_id: int | None):
    query = db.session.query(Shift).filter_by(id=shift_id)
    if company_id is not None:
        query = query.filter_by(company_id=company_id)
    return query


def get_shift(shift_id: int, company_id: int | None = None) -> Shift:
    """A shift of another company is reported as not found."""
    shift = _shift_query(shift_id, company_id).first()
    if shift is None:
        raise NotFoundError("Shift not found")
    return shift


def get_shift_transactions(shift: Shift, now: datetime | None = None) -> list[Transaction]:
    """Transactions with this shift_id created within the shift window."""
    start, end = shift_window(shift, now)
    return db.session.query(Transaction).filter(
        Transaction.shift_id == shift.id,
        Transaction.created_at >= start,
        Transaction.created_at <= end,
    ).order_by(Transaction.created_at, Transaction.id).all()


def get_shift_store_credits(shift: Shift, transaction_ids, now: datetime | None = None) -> list[StoreCredit]:
    window = shift_window(shift, now)
    start, end = window

    criteria = db.and_(StoreCredit.created_at >= start, StoreCredit.created_at <= end)
    if transaction_ids:
        criteria = db.or_(criteria, StoreCredit.transaction_id.in_(transaction_ids))

    candidates = db.session.query(StoreCredit).filter(
        StoreCredit.company_id == shift.company_id,
        criteria,
    ).order_by(StoreCredit.created_at, StoreCredit.id).all()
    return attribute_store_credits(candidates, window, set(transaction_ids))


def summarize_shift(shift_id: int, company_id: int | None = None, *, now: datetime | None = None) -> dict:
    shift = get_shift(shift_id, company_id)
    transactions = get_shift_transactions(shift, now)
    return {
        "shift": shift.to_dict(),
        "summary": reconcile(shift, transactions),
    }


def get_shift_stats(shift_id: int, company_id: int | None = None, *, now: datetime | None = None) -> dict:
    shift = get_shift(shift_id, company_id)
    transactions = get_shift_transactions(shift, now)
    credits = get_shift_store_credits(shift, [t.id for t in transactions], now)
    tz_name = shift.company.timezone if shift.company else None
    return build_shift_stats(transactions, credits, tz_name)


def list_shifts(company_id: int, status: str | None = None, employee_id: int | None = None) -> list[Shift]:
    query = db.session.query(Shift).filter_by(company_id=company_id)
    if status:
        query = query.filter_by(status=status)
    if employee_id:
        query = query.filter_by(employee_id=employee_id)
    return query.order_by(Shift.start_time.desc(), Shift.id.desc()).all()


def get_employee_shifts(employee_id: int, limit: int = 20) -> list[Shift]:
    return db.session.query(Shift).filter_by(
        employee_id=employee_id
    ).order_by(Shift.start_time.desc(), Shift.id.desc()).limit(limit).all()


def get_open_shift(company_id: int, employee_id: int) -> Shift | None:
    return db.session.query(Shift).filter_by(
        company_id=company_id,
        employee_id=employee_id,
        status=SHIFT_STATUS_OPEN,
    ).first()


# =============================================================================
# SHIFT LIFECYCLE
# =============================================================================

def open_shift(
    company_id: int,
    employee_id: int,
    opening_balance_cents: int = 0,
    register: str | None = None,
) -> tuple[Shift, bool]:
    """
    Clock an employee in.

    Returns (shift, created). An employee who already has an open shift in
    this company gets that shift back unchanged.
    """
    employee = db.session.query(Employee).filter_by(id=employee_id, company_id=company_id).first()
    if employee is None:
        raise NotFoundError("Employee not found")
    if not employee.is_active:
        raise ValidationError("Employee is inactive")

    existing = get_open_shift(company_id, employee_id)
    if existing is not None:
        return existing, False

    shift = Shift(
        company_id=company_id,
        employee_id=employee_id,
        register=register,
        status=SHIFT_STATUS_OPEN,
        opening_balance_cents=opening_balance_cents,
        cash_injections_cents=0,
        start_time=utcnow(),
    )
    db.session.add(shift)
    db.session.commit()
    return shift, True


def add_cash_injection(shift_id: int, amount_cents: int, company_id: int | None = None) -> Shift:
    """Record cash added to the drawer mid-shift (float top-up)."""
    if amount_cents <= 0:
        raise ValidationError("Cash injection amount must be positive")

    shift = lock_for_update(_shift_query(shift_id, company_id)).first()
    if shift is None:
        raise NotFoundError("Shift not found")
    if shift.status != SHIFT_STATUS_OPEN:
        raise ConflictError("Shift is closed")

    shift.cash_injections_cents = (shift.cash_injections_cents or 0) + amount_cents
    db.session.commit()
    return shift


def close_shift(
    shift_id: int,
    closing_balance_cents: int | None = None,
    closed_by_employee_id: int | None = None,
    company_id: int | None = None,
) -> Shift:
    """
    Close a shift, stamping end_time and calculating variance.

    IMMUTABLE: a closed shift cannot be closed again.
    """
    shift = lock_for_update(_shift_query(shift_id, company_id)).first()
    if shift is None:
        raise NotFoundError("Shift not found")
    if shift.status != SHIFT_STATUS_OPEN:
        raise ConflictError("Shift already closed")

    shift.end_time = utcnow()
    summary = reconcile(shift, get_shift_transactions(shift))

    shift.status = SHIFT_STATUS_CLOSED
    shift.closing_balance_cents = closing_balance_cents
    shift.closed_by_employee_id = closed_by_employee_id
    shift.expected_cash_cents = summary["expected_cash_cents"]
    shift.variance_cents = (
        closing_balance_cents - summary["expected_cash_cents"]
        if closing_balance_cents is not None
        else None
    )

    db.session.commit()
    return shift
