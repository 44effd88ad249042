# Overview: Service-layer operations for reporting; encapsulates business logic and database work.

"""
Reporting Service - company-wide sales reports

CLASSIFICATION (same rules as shift reconciliation):
- sale:   type sale and status not deleted
- refund: type refund; totals are reported as magnitudes
- void:   any other row of type void or status deleted (a voided sale)

Period, employee and category breakdowns ignore voided rows. Category and
top-item figures come from transaction lines of counted sales.
"""

from __future__ import annotations

from datetime import datetime, timedelta

from sqlalchemy import and_, case, func, or_

from ..extensions import db
from ..models import Category, Employee, Item, Transaction, TransactionLine
from ..models.sales import (
    TRANSACTION_STATUS_DELETED,
    TRANSACTION_TYPE_REFUND,
    TRANSACTION_TYPE_SALE,
    TRANSACTION_TYPE_VOID,
)
from ..validation import ValidationError
from retailpos.time_utils import parse_iso_datetime, to_utc_z


GROUP_BY_OPTIONS = ("day", "week", "month", "category", "employee")
TOP_ITEM_LIMIT = 10

PERIOD_FORMATS = {
    "day": "%Y-%m-%d",
    "week": "%Y-W%W",
    "month": "%Y-%m",
}


class ReportError(ValidationError):
    """Raised when report parameters are invalid."""
    pass


def _parse_range(start: str | None, end: str | None) -> tuple[datetime | None, datetime | None]:
    """A date-only end covers that whole day."""
    try:
        start_dt = parse_iso_datetime(start) if start else None
        end_dt = parse_iso_datetime(end) if end else None
    except ValueError:
        raise ReportError("start and end must be ISO-8601 dates")

    if end_dt is not None and len(end.strip()) == 10:
        end_dt = end_dt + timedelta(days=1) - timedelta(microseconds=1)
    return start_dt, end_dt


def _sum_if(condition, column):
    return func.coalesce(func.sum(case((condition, column), else_=0)), 0)


def _count_if(condition):
    return func.coalesce(func.sum(case((condition, 1), else_=0)), 0)


IS_SALE = and_(
    Transaction.type == TRANSACTION_TYPE_SALE,
    Transaction.status != TRANSACTION_STATUS_DELETED,
)
IS_REFUND = Transaction.type == TRANSACTION_TYPE_REFUND
IS_VOID = and_(
    Transaction.type != TRANSACTION_TYPE_REFUND,
    or_(
        Transaction.type == TRANSACTION_TYPE_VOID,
        Transaction.status == TRANSACTION_STATUS_DELETED,
    ),
)
NOT_VOIDED = Transaction.status != TRANSACTION_STATUS_DELETED


def _in_range(query, start_dt, end_dt):
    if start_dt:
        query = query.filter(Transaction.created_at >= start_dt)
    if end_dt:
        query = query.filter(Transaction.created_at <= end_dt)
    return query


def _summary(company_id: int, start_dt, end_dt) -> tuple[dict, int]:
    row = _in_range(
        db.session.query(
            _sum_if(IS_SALE, Transaction.total_cents).label("sales"),
            _count_if(IS_SALE).label("sale_count"),
            _sum_if(IS_SALE, Transaction.tax_cents).label("tax"),
            _sum_if(and_(IS_SALE, Transaction.payment_method == "cash"), Transaction.total_cents).label("cash"),
            _sum_if(and_(IS_SALE, Transaction.payment_method == "card"), Transaction.total_cents).label("card"),
            _sum_if(IS_REFUND, func.abs(Transaction.total_cents)).label("refunds"),
            _count_if(IS_REFUND).label("refund_count"),
            _sum_if(IS_VOID, func.abs(Transaction.total_cents)).label("voids"),
            _count_if(IS_VOID).label("void_count"),
            func.count(Transaction.id).label("transaction_count"),
        ).filter(Transaction.company_id == company_id),
        start_dt,
        end_dt,
    ).one()

    sales = int(row.sales)
    sale_count = int(row.sale_count)
    refunds = int(row.refunds)
    return {
        "total_sales_cents": sales,
        "total_refunds_cents": refunds,
        "total_voids_cents": int(row.voids),
        "net_sales_cents": sales - refunds,
        "total_tax_cents": int(row.tax),
        "sale_count": sale_count,
        "refund_count": int(row.refund_count),
        "void_count": int(row.void_count),
        "cash_sales_cents": int(row.cash),
        "card_sales_cents": int(row.card),
        "average_transaction_cents": round(sales / sale_count, 2) if sale_count else 0.0,
    }, int(row.transaction_count)


def _period_breakdown(company_id: int, start_dt, end_dt, group_by: str) -> list[dict]:
    period_expr = func.strftime(PERIOD_FORMATS[group_by], Transaction.created_at)

    rows = _in_range(
        db.session.query(
            period_expr.label("period"),
            _sum_if(IS_SALE, Transaction.total_cents).label("sales"),
            _count_if(IS_SALE).label("count"),
            _sum_if(IS_SALE, Transaction.tax_cents).label("tax"),
            _sum_if(IS_REFUND, func.abs(Transaction.total_cents)).label("refunds"),
        ).filter(
            Transaction.company_id == company_id,
            NOT_VOIDED,
        ),
        start_dt,
        end_dt,
    ).group_by("period").order_by("period").all()

    return [
        {
            "period": row.period,
            "sales_cents": int(row.sales),
            "refunds_cents": int(row.refunds),
            "net_cents": int(row.sales) - int(row.refunds),
            "tax_cents": int(row.tax),
            "count": int(row.count),
        }
        for row in rows
    ]


def _employee_breakdown(company_id: int, start_dt, end_dt) -> list[dict]:
    sales = _sum_if(IS_SALE, Transaction.total_cents)
    rows = _in_range(
        db.session.query(
            Employee.id,
            Employee.name,
            sales.label("sales"),
            _count_if(IS_SALE).label("count"),
            _sum_if(IS_REFUND, func.abs(Transaction.total_cents)).label("refunds"),
            _count_if(IS_REFUND).label("refund_count"),
        ).select_from(Transaction).join(
            Employee, Employee.id == Transaction.employee_id
        ).filter(
            Transaction.company_id == company_id,
            NOT_VOIDED,
        ),
        start_dt,
        end_dt,
    ).group_by(Employee.id, Employee.name).order_by(sales.desc(), Employee.id).all()

    return [
        {
            "id": row.id,
            "name": row.name,
            "sales_cents": int(row.sales),
            "refunds_cents": int(row.refunds),
            "net_cents": int(row.sales) - int(row.refunds),
            "count": int(row.count),
            "refund_count": int(row.refund_count),
        }
        for row in rows
    ]


def _sale_lines(company_id: int, start_dt, end_dt, *columns):
    return _in_range(
        db.session.query(*columns).select_from(TransactionLine).join(
            Transaction, TransactionLine.transaction_id == Transaction.id
        ).filter(
            Transaction.company_id == company_id,
            IS_SALE,
        ),
        start_dt,
        end_dt,
    )


def _category_breakdown(company_id: int, start_dt, end_dt) -> list[dict]:
    sales = func.coalesce(func.sum(TransactionLine.line_total_cents), 0)
    rows = _sale_lines(
        company_id,
        start_dt,
        end_dt,
        Category.id.label("category_id"),
        func.coalesce(Category.name, "Uncategorized").label("name"),
        sales.label("sales"),
        func.coalesce(func.sum(TransactionLine.quantity), 0).label("quantity"),
        func.count(TransactionLine.id).label("count"),
    ).outerjoin(
        Item, Item.id == TransactionLine.item_id
    ).outerjoin(
        Category, Category.id == Item.category_id
    ).group_by(Category.id, Category.name).order_by(sales.desc(), Category.id).all()

    return [
        {
            "category_id": row.category_id,
            "name": row.name,
            "sales_cents": int(row.sales),
            "quantity": float(row.quantity),
            "count": int(row.count),
        }
        for row in rows
    ]


def _top_items(company_id: int, start_dt, end_dt) -> list[dict]:
    revenue = func.coalesce(func.sum(TransactionLine.line_total_cents), 0)
    rows = _sale_lines(
        company_id,
        start_dt,
        end_dt,
        TransactionLine.item_id,
        func.max(TransactionLine.item_name).label("name"),
        func.coalesce(func.sum(TransactionLine.quantity), 0).label("quantity"),
        revenue.label("revenue"),
    ).group_by(TransactionLine.item_id).order_by(
        revenue.desc(), TransactionLine.item_id
    ).limit(TOP_ITEM_LIMIT).all()

    return [
        {
            "id": row.item_id,
            "name": row.name,
            "quantity": float(row.quantity),
            "revenue_cents": int(row.revenue),
        }
        for row in rows
    ]


def sales_report(
    company_id: int,
    *,
    start: str | None = None,
    end: str | None = None,
    group_by: str = "day",
) -> dict:
    """
    Summary, breakdown and top ten items for the company's transactions.

    group_by: day, week, month, category or employee.
    """
    if group_by not in GROUP_BY_OPTIONS:
        raise ReportError("group_by must be day, week, month, category, or employee")

    start_dt, end_dt = _parse_range(start, end)
    summary, transaction_count = _summary(company_id, start_dt, end_dt)

    if group_by == "category":
        breakdown = _category_breakdown(company_id, start_dt, end_dt)
    elif group_by == "employee":
        breakdown = _employee_breakdown(company_id, start_dt, end_dt)
    else:
        breakdown = _period_breakdown(company_id, start_dt, end_dt, group_by)

    return {
        "group_by": group_by,
        "start": to_utc_z(start_dt) if start_dt else None,
        "end": to_utc_z(end_dt) if end_dt else None,
        "summary": summary,
        "breakdown": breakdown,
        "top_items": _top_items(company_id, start_dt, end_dt),
        "transaction_count": transaction_count,
    }
