# Overview: Service-layer operations for employees; encapsulates business logic and database work.

"""
Employee Service - staff records and sales performance

COMPARISON RULES:
- Peers are employees with is_active AND in_sales (back-office staff would
  skew averages)
- refund_rate      = total_refunds / total_sales * 100   (0 with no sales)
- store_credit_rate = store_credit_count / sale_count * 100 (0 with no sales)
- Store credits count toward the employee whose transaction issued them
  (store_credits.transaction_id -> transactions.employee_id)
- Peer averages use non-managers only; every row, managers included, is
  annotated against them
- Ordering: total sales descending; ties keep employee id order
"""

from __future__ import annotations

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError

from ..extensions import db
from ..models import Category, Company, Employee, Item, StoreCredit, Transaction, TransactionLine
from ..models.sales import (
    TRANSACTION_STATUS_DELETED,
    TRANSACTION_TYPE_SALE,
    TRANSACTION_TYPE_REFUND,
    TRANSACTION_TYPE_VOID,
)
from ..validation import ConflictError, NotFoundError, ValidationError
from retailpos.time_utils import to_utc_z
from . import identifier_service


UPDATABLE_FIELDS = ("name", "is_manager", "is_active", "in_sales", "pin")


# =============================================================================
# EMPLOYEE RECORDS
# =============================================================================

def create_employee(
    company_id: int,
    name: str,
    is_manager: bool = False,
    in_sales: bool = True,
    pin: str | None = None,
) -> Employee:
    """
    Create an employee with a generated EMP- barcode.

    Raises ConflictError if the barcode still collides at insert time
    (retry budget exhausted).
    """
    if not name or not name.strip():
        raise ValidationError("Name is required")
    if db.session.get(Company, company_id) is None:
        raise NotFoundError("Company not found")

    barcode = identifier_service.generate_unique_code(
        identifier_service.KIND_EMPLOYEE, company_id
    )

    employee = Employee(
        company_id=company_id,
        name=name.strip(),
        barcode=barcode,
        is_manager=bool(is_manager),
        in_sales=bool(in_sales),
        is_active=True,
        pin=pin,
    )
    db.session.add(employee)
    try:
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        raise ConflictError("Failed to generate unique barcode")

    return employee


def get_employee(employee_id: int, company_id: int | None = None) -> Employee:
    query = db.session.query(Employee).filter_by(id=employee_id)
    if company_id is not None:
        query = query.filter_by(company_id=company_id)
    employee = query.first()
    if employee is None:
        raise NotFoundError("Employee not found")
    return employee


def get_employee_by_barcode(company_id: int, barcode: str) -> Employee:
    """Terminal sign-in by scanned badge. Inactive staff are not found."""
    employee = db.session.query(Employee).filter_by(
        company_id=company_id,
        barcode=barcode.strip().upper(),
        is_active=True,
    ).first()
    if employee is None:
        raise NotFoundError("Employee not found")
    return employee


def list_employees(company_id: int) -> list[Employee]:
    return db.session.query(Employee).filter_by(
        company_id=company_id
    ).order_by(Employee.name, Employee.id).all()


def update_employee(employee_id: int, data: dict, company_id: int | None = None) -> Employee:
    """companyId in the body names the tenant and is not an updatable field."""
    employee = get_employee(employee_id, company_id)

    data = {key: value for key, value in data.items() if key != "companyId"}
    for key in data:
        if key not in UPDATABLE_FIELDS:
            raise ValidationError(f"Field not allowed: {key}")

    if "name" in data:
        if not data["name"] or not str(data["name"]).strip():
            raise ValidationError("name cannot be blank")
        employee.name = str(data["name"]).strip()
    for flag in ("is_manager", "is_active", "in_sales"):
        if flag in data:
            setattr(employee, flag, bool(data[flag]))
    if "pin" in data:
        employee.pin = data["pin"] or None

    db.session.commit()
    return employee


# =============================================================================
# PERFORMANCE
# =============================================================================

def _rate(numerator: float, denominator: float) -> float:
    return (numerator / denominator) * 100 if denominator > 0 else 0.0


def build_comparison(rows: list[dict], focus_employee_id: int | None) -> dict:
    """
    Turn per-employee aggregates into the comparison payload.

    rows: dicts with id, name, is_manager, total_sales_cents, sale_count,
    total_refunds_cents, refund_count, total_store_credits_cents,
    store_credit_count, in the order ties should keep.
    """
    records = []
    for row in rows:
        records.append({
            **row,
            "is_current_employee": row["id"] == focus_employee_id,
            "refund_rate": _rate(row["total_refunds_cents"], row["total_sales_cents"]),
            "store_credit_rate": _rate(row["store_credit_count"], row["sale_count"]),
        })

    # list.sort is stable: equal totals keep input order
    records.sort(key=lambda r: r["total_sales_cents"], reverse=True)

    peers = [r for r in records if not r["is_manager"]]
    avg_refund_rate = sum(r["refund_rate"] for r in peers) / len(peers) if peers else 0.0
    avg_store_credit_rate = sum(r["store_credit_rate"] for r in peers) / len(peers) if peers else 0.0

    for r in records:
        r["refund_rate_vs_average"] = round(r["refund_rate"] - avg_refund_rate, 2)
        r["store_credit_rate_vs_average"] = round(r["store_credit_rate"] - avg_store_credit_rate, 2)
        r["refund_rate"] = round(r["refund_rate"], 2)
        r["store_credit_rate"] = round(r["store_credit_rate"], 2)

    return {
        "employees": records,
        "averages": {
            "refund_rate": round(avg_refund_rate, 2),
            "store_credit_rate": round(avg_store_credit_rate, 2),
        },
    }


def _transaction_aggregates(employee_ids: list[int], tx_type: str) -> dict[int, tuple[int, int]]:
    rows = db.session.query(
        Transaction.employee_id,
        func.coalesce(func.sum(Transaction.total_cents), 0),
        func.count(Transaction.id),
    ).filter(
        Transaction.employee_id.in_(employee_ids),
        Transaction.type == tx_type,
    ).group_by(Transaction.employee_id).all()
    return {emp_id: (int(total), int(count)) for emp_id, total, count in rows}


def _store_credit_aggregates(employee_ids: list[int]) -> dict[int, tuple[int, int]]:
    rows = db.session.query(
        Transaction.employee_id,
        func.coalesce(func.sum(StoreCredit.amount_cents), 0),
        func.count(StoreCredit.id),
    ).join(
        Transaction, StoreCredit.transaction_id == Transaction.id
    ).filter(
        Transaction.employee_id.in_(employee_ids),
    ).group_by(Transaction.employee_id).all()
    return {emp_id: (int(total), int(count)) for emp_id, total, count in rows}


def compare_employees(company_id: int, focus_employee_id: int) -> dict:
    """Sales comparison of the focus employee against in-sales peers."""
    get_employee(focus_employee_id, company_id)

    employees = db.session.query(Employee).filter_by(
        company_id=company_id,
        is_active=True,
        in_sales=True,
    ).order_by(Employee.id).all()

    ids = [e.id for e in employees]
    if not ids:
        return build_comparison([], focus_employee_id)

    sales = _transaction_aggregates(ids, TRANSACTION_TYPE_SALE)
    refunds = _transaction_aggregates(ids, TRANSACTION_TYPE_REFUND)
    credits = _store_credit_aggregates(ids)

    rows = []
    for emp in employees:
        sale_total, sale_count = sales.get(emp.id, (0, 0))
        refund_total, refund_count = refunds.get(emp.id, (0, 0))
        credit_total, credit_count = credits.get(emp.id, (0, 0))
        rows.append({
            "id": emp.id,
            "name": emp.name,
            "is_manager": emp.is_manager,
            "total_sales_cents": sale_total,
            "sale_count": sale_count,
            "total_refunds_cents": abs(refund_total),
            "refund_count": refund_count,
            "total_store_credits_cents": credit_total,
            "store_credit_count": credit_count,
        })

    return build_comparison(rows, focus_employee_id)


def get_employee_stats(employee_id: int, company_id: int | None = None) -> dict:
    """Lifetime totals for one employee's profile page."""
    get_employee(employee_id, company_id)

    ids = [employee_id]
    sale_total, sale_count = _transaction_aggregates(ids, TRANSACTION_TYPE_SALE).get(employee_id, (0, 0))
    refund_total, refund_count = _transaction_aggregates(ids, TRANSACTION_TYPE_REFUND).get(employee_id, (0, 0))
    void_total, void_count = _transaction_aggregates(ids, TRANSACTION_TYPE_VOID).get(employee_id, (0, 0))

    credit_total, credit_count = db.session.query(
        func.coalesce(func.sum(StoreCredit.amount_cents), 0),
        func.count(StoreCredit.id),
    ).filter(StoreCredit.issued_by_employee_id == employee_id).one()

    return {
        "total_sales_cents": sale_total,
        "total_refunds_cents": abs(refund_total),
        "total_voids_cents": abs(void_total),
        "total_store_credits_cents": int(credit_total),
        "transaction_count": sale_count,
        "refund_count": refund_count,
        "void_count": void_count,
        "store_credit_count": int(credit_count),
    }


# =============================================================================
# CATEGORY SALES
# =============================================================================

FLAGGED_TRANSACTION_LIMIT = 50


def _category_line_query(company_id: int, category_id: int | None, *columns):
    """Lines of the company's non-deleted sales, limited to one category if given."""
    query = db.session.query(*columns).select_from(Transaction).join(
        TransactionLine, TransactionLine.transaction_id == Transaction.id
    ).filter(
        Transaction.company_id == company_id,
        Transaction.type == TRANSACTION_TYPE_SALE,
        Transaction.status != TRANSACTION_STATUS_DELETED,
    )
    if category_id is not None:
        query = query.join(Item, Item.id == TransactionLine.item_id).filter(
            Item.category_id == category_id
        )
    return query


def get_category_sales(company_id: int, employee_id: int, category_id: int | None = None) -> dict:
    """
    How much of one category an employee sells, and which sales contain it.

    A sale counts when at least one of its lines is in the category (any
    line when category_id is None); only those lines add to its
    category_total_cents. With a category, every active employee is ranked
    by category sales and the team average is taken over non-managers.
    """
    get_employee(employee_id, company_id)
    if category_id is not None:
        category = db.session.query(Category.id).filter_by(
            id=category_id,
            company_id=company_id,
        ).first()
        if category is None:
            raise NotFoundError("Category not found")

    category_total = func.coalesce(func.sum(TransactionLine.line_total_cents), 0)
    rows = _category_line_query(
        company_id,
        category_id,
        Transaction.id,
        Transaction.transaction_number,
        Transaction.total_cents,
        Transaction.created_at,
        category_total.label("category_total"),
    ).filter(
        Transaction.employee_id == employee_id,
    ).group_by(
        Transaction.id,
        Transaction.transaction_number,
        Transaction.total_cents,
        Transaction.created_at,
    ).order_by(Transaction.created_at.desc(), Transaction.id.desc()).all()

    flagged = [
        {
            "id": row.id,
            "transaction_number": row.transaction_number,
            "total_cents": row.total_cents,
            "category_total_cents": int(row.category_total),
            "date": to_utc_z(row.created_at),
        }
        for row in rows[:FLAGGED_TRANSACTION_LIMIT]
    ]

    team_comparison = []
    team_average = 0.0
    if category_id is not None:
        totals = {
            emp_id: (int(total), int(count))
            for emp_id, total, count in _category_line_query(
                company_id,
                category_id,
                Transaction.employee_id,
                category_total,
                func.count(TransactionLine.id),
            ).group_by(Transaction.employee_id).all()
        }
        employees = db.session.query(Employee).filter_by(
            company_id=company_id,
            is_active=True,
        ).order_by(Employee.id).all()

        for emp in employees:
            sales_cents, item_count = totals.get(emp.id, (0, 0))
            team_comparison.append({
                "id": emp.id,
                "name": emp.name,
                "is_manager": emp.is_manager,
                "category_sales_cents": sales_cents,
                "category_item_count": item_count,
                "is_current_employee": emp.id == employee_id,
            })
        team_comparison.sort(key=lambda r: r["category_sales_cents"], reverse=True)

        non_managers = [r for r in team_comparison if not r["is_manager"]]
        if non_managers:
            team_average = round(
                sum(r["category_sales_cents"] for r in non_managers) / len(non_managers), 2
            )

    return {
        "employee_category_sales_cents": sum(int(row.category_total) for row in rows),
        "employee_category_transactions": len(rows),
        "flagged_transactions": flagged,
        "team_comparison": team_comparison,
        "team_average_cents": team_average,
    }
