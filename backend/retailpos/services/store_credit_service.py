# Overview: Service-layer operations for store credit; encapsulates business logic and database work.

"""
Store Credit Service

SINGLE USE: A credit is redeemed with one conditional UPDATE
(... WHERE id = :id AND is_used = false). If the update touches no row,
another request already redeemed it and the caller gets a ConflictError;
used_at is never overwritten.
"""

from __future__ import annotations

import logging
from datetime import datetime

from sqlalchemy.exc import IntegrityError

from ..extensions import db
from ..models import StoreCredit, Transaction
from ..validation import ConflictError, NotFoundError, ValidationError
from retailpos.time_utils import to_utc_z, utcnow
from . import identifier_service
from .concurrency import conditional_update


logger = logging.getLogger(__name__)


def issue_store_credit(
    company_id: int,
    amount_cents: int,
    transaction_id: int | None = None,
    description: str | None = None,
    issued_by_employee_id: int | None = None,
    authorized_by_employee_id: int | None = None,
    *,
    commit: bool = True,
) -> StoreCredit:
    """
    Issue a new credit with a generated SC- barcode.

    With commit=False the caller owns the DB transaction (refund flow).
    """
    if amount_cents <= 0:
        raise ValidationError("amount must be positive")

    if transaction_id is not None:
        linked = db.session.query(Transaction.id).filter_by(
            id=transaction_id,
            company_id=company_id,
        ).first()
        if linked is None:
            raise NotFoundError("Transaction not found")

    credit = StoreCredit(
        company_id=company_id,
        barcode=identifier_service.generate_unique_code(identifier_service.KIND_STORE_CREDIT),
        amount_cents=amount_cents,
        transaction_id=transaction_id,
        description=description or None,
        issued_by_employee_id=issued_by_employee_id,
        authorized_by_employee_id=authorized_by_employee_id,
        is_used=False,
        created_at=utcnow(),
    )
    db.session.add(credit)

    if not commit:
        db.session.flush()
        return credit

    try:
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        raise ConflictError("Store credit barcode collision, try again")
    return credit


def get_store_credit(barcode: str, company_id: int | None = None) -> StoreCredit:
    query = db.session.query(StoreCredit).filter_by(barcode=barcode.strip().upper())
    if company_id is not None:
        query = query.filter_by(company_id=company_id)
    credit = query.first()
    if credit is None:
        raise NotFoundError("Store credit not found")
    return credit


def lookup_store_credit(barcode: str, company_id: int | None = None) -> StoreCredit:
    """Terminal scan: a used credit is reported as a conflict."""
    credit = get_store_credit(barcode, company_id)
    if credit.is_used:
        raise ConflictError("Store credit already used", {"used_at": to_utc_z(credit.used_at)})
    return credit


def list_store_credits(company_id: int) -> list[StoreCredit]:
    return db.session.query(StoreCredit).filter_by(
        company_id=company_id
    ).order_by(StoreCredit.created_at.desc(), StoreCredit.id.desc()).all()


def redeem_store_credit(
    barcode: str,
    redeemed_transaction_id: int | None = None,
    company_id: int | None = None,
    *,
    now: datetime | None = None,
) -> StoreCredit:
    """Mark a credit used exactly once. Another company's credit is not found."""
    credit = get_store_credit(barcode, company_id)

    affected = conditional_update(
        db.session.query(StoreCredit).filter(
            StoreCredit.id == credit.id,
            StoreCredit.is_used.is_(False),
        ),
        {
            "is_used": True,
            "used_at": now or utcnow(),
            "redeemed_transaction_id": redeemed_transaction_id,
        },
    )

    if affected == 0:
        db.session.rollback()
        db.session.refresh(credit)
        logger.info("Rejected second redemption of store credit %s", credit.barcode)
        raise ConflictError("Store credit already used", {"used_at": to_utc_z(credit.used_at)})

    db.session.commit()
    db.session.refresh(credit)
    return credit
