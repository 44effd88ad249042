"""
Return Policy Service

WHY: Decide at the refund screen whether a purchase may come back and for how
long, and let admins override the window per item or per category.

PRECEDENCE: item override > category override > company default (30 days
when the company has none).

MIRRORING: A ReturnPolicy row is the source of record. The same values are
copied onto items.return_period_days / items.no_returns and
categories.return_period_days so eligibility checks avoid a join. Both writes
go in one DB transaction; a failure rolls back both.
"""

from __future__ import annotations

from datetime import datetime, timedelta

from flask import current_app

from ..extensions import db
from ..models import Company, Category, Item, ReturnPolicy, Transaction
from ..models.sales import (
    TRANSACTION_TYPE_SALE,
    TRANSACTION_STATUS_REFUNDED,
    TRANSACTION_STATUS_DELETED,
)
from ..validation import ValidationError, NotFoundError
from retailpos.time_utils import utcnow


TARGET_ITEM = "item"
TARGET_CATEGORY = "category"
TARGET_TYPES = (TARGET_ITEM, TARGET_CATEGORY)

SOURCE_ITEM = "item"
SOURCE_CATEGORY = "category"
SOURCE_DEFAULT = "default"

FALLBACK_RETURN_PERIOD_DAYS = 30


def _fallback_period() -> int:
    try:
        return int(current_app.config.get("DEFAULT_RETURN_PERIOD_DAYS", FALLBACK_RETURN_PERIOD_DAYS))
    except RuntimeError:
        return FALLBACK_RETURN_PERIOD_DAYS


def get_company_default_period(company_id: int) -> int:
    company = db.session.get(Company, company_id)
    if company is None or company.default_return_period_days is None:
        return _fallback_period()
    return company.default_return_period_days


def days_since(created_at: datetime, now: datetime | None = None) -> int:
    """Whole days elapsed, floored (29.9 days -> 29)."""
    now = now or utcnow()
    return (now - created_at) // timedelta(days=1)


def resolve_effective_period(item: Item, default_period: int) -> tuple[int, str]:
    """
    Apply item > category > default precedence.

    Uses None checks, so an explicit 0 on the item still wins.
    """
    if item.return_period_days is not None:
        return item.return_period_days, SOURCE_ITEM
    if item.category is not None and item.category.return_period_days is not None:
        return item.category.return_period_days, SOURCE_CATEGORY
    return default_period, SOURCE_DEFAULT


def check_transaction_eligibility(
    transaction: Transaction | None,
    default_period: int,
    *,
    now: datetime | None = None,
) -> dict:
    if transaction is None:
        return {"allowed": False, "reason": "Transaction not found"}

    if transaction.type != TRANSACTION_TYPE_SALE:
        return {"allowed": False, "reason": "Only sale transactions can be returned"}

    if transaction.status in (TRANSACTION_STATUS_REFUNDED, TRANSACTION_STATUS_DELETED):
        return {"allowed": False, "reason": "Transaction has already been refunded or voided"}

    age = days_since(transaction.created_at, now)
    if age > default_period:
        return {
            "allowed": False,
            "reason": f"Transaction is {age} days old. Maximum return period is {default_period} days.",
            "days_since_purchase": age,
            "max_days": default_period,
        }

    return {
        "allowed": True,
        "days_since_purchase": age,
        "max_days": default_period,
    }


def check_item_eligibility(item: Item | None, default_period: int) -> dict:
    if item is None:
        return {"allowed": False, "reason": "Item not found"}

    if item.no_returns:
        return {
            "allowed": False,
            "reason": f'"{item.name}" is marked as non-returnable',
            "is_non_returnable": True,
        }

    period, source = resolve_effective_period(item, default_period)
    return {
        "allowed": True,
        "effective_return_period": period,
        "source": source,
    }


def resolve_return_eligibility(
    company_id: int,
    transaction_id: int | None = None,
    item_id: int | None = None,
    *,
    now: datetime | None = None,
) -> dict:
    """
    Decide whether a return is allowed.

    Transaction path wins when both ids are given. Pure read.
    """
    default_period = get_company_default_period(company_id)

    if transaction_id:
        transaction = db.session.query(Transaction).filter_by(
            id=transaction_id,
            company_id=company_id,
        ).first()
        return check_transaction_eligibility(transaction, default_period, now=now)

    if item_id:
        item = db.session.query(Item).filter_by(id=item_id, company_id=company_id).first()
        return check_item_eligibility(item, default_period)

    return {"allowed": True, "default_return_period_days": default_period}


# =============================================================================
# POLICY MUTATION
# =============================================================================

def _get_target(company_id: int, target_type: str, target_id: int):
    model = Item if target_type == TARGET_ITEM else Category
    target = db.session.query(model).filter_by(id=target_id, company_id=company_id).first()
    if target is None:
        raise NotFoundError(f"{target_type.capitalize()} not found")
    return target


def upsert_return_policy(
    company_id: int,
    target_type: str,
    target_id: int,
    return_period_days: int | None,
    no_returns: bool | None = None,
) -> ReturnPolicy:
    """
    Create or update the policy for one item or category and mirror it.

    Category rows carry only a period; a category policy without one mirrors
    the fallback period onto the category.
    """
    if target_type not in TARGET_TYPES:
        raise ValidationError(f"target_type must be one of: {', '.join(TARGET_TYPES)}")

    no_returns = bool(no_returns)
    target = _get_target(company_id, target_type, target_id)

    try:
        policy = db.session.query(ReturnPolicy).filter_by(
            company_id=company_id,
            target_type=target_type,
            target_id=target_id,
        ).first()

        if policy is None:
            policy = ReturnPolicy(
                company_id=company_id,
                target_type=target_type,
                target_id=target_id,
            )
            db.session.add(policy)

        policy.return_period_days = return_period_days
        policy.no_returns = no_returns

        if target_type == TARGET_ITEM:
            target.return_period_days = return_period_days
            target.no_returns = no_returns
        else:
            target.return_period_days = (
                return_period_days if return_period_days is not None else _fallback_period()
            )

        db.session.commit()
    except Exception:
        db.session.rollback()
        raise

    return policy


def delete_return_policy(
    company_id: int,
    policy_id: int | None = None,
    target_type: str | None = None,
    target_id: int | None = None,
) -> None:
    """
    Remove a policy and clear the mirrored override on its target.

    Either policy_id or (target_type, target_id) identifies the policy.
    """
    query = db.session.query(ReturnPolicy).filter_by(company_id=company_id)
    if policy_id:
        policy = query.filter_by(id=policy_id).first()
    elif target_type and target_id:
        policy = query.filter_by(target_type=target_type, target_id=target_id).first()
    else:
        raise ValidationError("policy id or targetType and targetId required")

    if policy is None and policy_id:
        raise NotFoundError("Return policy not found")

    if policy is not None:
        target_type = policy.target_type
        target_id = policy.target_id

    try:
        if policy is not None:
            db.session.delete(policy)

        if target_type == TARGET_ITEM and target_id:
            item = db.session.query(Item).filter_by(id=target_id, company_id=company_id).first()
            if item is not None:
                item.return_period_days = None
                item.no_returns = False
        elif target_type == TARGET_CATEGORY and target_id:
            category = db.session.query(Category).filter_by(id=target_id, company_id=company_id).first()
            if category is not None:
                category.return_period_days = None

        db.session.commit()
    except Exception:
        db.session.rollback()
        raise


def set_company_default_period(company_id: int, days: int | None) -> Company:
    company = db.session.get(Company, company_id)
    if company is None:
        raise NotFoundError("Company not found")
    company.default_return_period_days = days
    db.session.commit()
    return company


def list_policies(company_id: int) -> dict:
    """Everything the policy admin screen needs in one payload."""
    policies = db.session.query(ReturnPolicy).filter_by(
        company_id=company_id
    ).order_by(ReturnPolicy.created_at.desc(), ReturnPolicy.id.desc()).all()

    categories = db.session.query(Category).filter_by(
        company_id=company_id
    ).order_by(Category.name).all()

    items_with_override = db.session.query(Item).filter(
        Item.company_id == company_id,
        db.or_(Item.return_period_days.isnot(None), Item.no_returns.is_(True)),
    ).order_by(Item.name).all()

    return {
        "default_return_period_days": get_company_default_period(company_id),
        "policies": [p.to_dict() for p in policies],
        "categories": [
            {"id": c.id, "name": c.name, "return_period_days": c.return_period_days}
            for c in categories
        ],
        "items_with_custom_policy": [
            {
                "id": i.id,
                "name": i.name,
                "barcode": i.barcode,
                "return_period_days": i.return_period_days,
                "no_returns": i.no_returns,
                "category_name": i.category.name if i.category else None,
            }
            for i in items_with_override
        ],
    }
