# Overview: Service-layer operations for gift cards; encapsulates business logic and database work.

"""
Gift Card Service

LIFECYCLE: created (printed stock) -> activated when sold -> redeemed in one
or more partial amounts until the balance reaches zero.

CONCURRENCY: Redemption is a compare-and-swap on the balance that was read
(UPDATE ... WHERE id = :id AND balance_cents = :read_balance). Losing the race
raises ConflictError instead of double-spending.
"""

from __future__ import annotations

from sqlalchemy.exc import IntegrityError

from ..extensions import db
from ..models import GiftCard, GiftCardUsage
from ..validation import ConflictError, NotFoundError, ValidationError
from retailpos.time_utils import utcnow
from .concurrency import conditional_update


def create_gift_card(company_id: int, barcode: str, initial_value_cents: int) -> GiftCard:
    barcode = barcode.strip()
    if not barcode:
        raise ValidationError("barcode is required")
    if initial_value_cents <= 0:
        raise ValidationError("initial value must be positive")

    if db.session.query(GiftCard.id).filter_by(barcode=barcode).first() is not None:
        raise ConflictError("Gift card with this barcode already exists")

    card = GiftCard(
        company_id=company_id,
        barcode=barcode,
        initial_value_cents=initial_value_cents,
        balance_cents=initial_value_cents,
        is_active=True,
    )
    db.session.add(card)
    try:
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        raise ConflictError("Gift card with this barcode already exists")
    return card


def get_gift_card(barcode: str, company_id: int | None = None) -> GiftCard:
    query = db.session.query(GiftCard).filter_by(barcode=barcode.strip())
    if company_id is not None:
        query = query.filter_by(company_id=company_id)
    card = query.first()
    if card is None:
        raise NotFoundError("Gift card not found")
    return card


def list_gift_cards(company_id: int) -> list[GiftCard]:
    return db.session.query(GiftCard).filter_by(
        company_id=company_id
    ).order_by(GiftCard.created_at.desc(), GiftCard.id.desc()).all()


def activate_gift_card(
    barcode: str,
    transaction_id: int | None = None,
    company_id: int | None = None,
) -> GiftCard:
    """Mark a card as sold so it can be redeemed."""
    card = get_gift_card(barcode, company_id)
    if card.purchased_at is not None:
        raise ConflictError("Gift card already activated")

    card.purchased_at = utcnow()
    card.purchase_transaction_id = transaction_id
    db.session.commit()
    return card


def deactivate_gift_card(barcode: str, company_id: int | None = None) -> GiftCard:
    card = get_gift_card(barcode, company_id)
    card.is_active = False
    db.session.commit()
    return card


def redeem_gift_card(
    barcode: str,
    amount_cents: int,
    transaction_id: int | None = None,
    company_id: int | None = None,
) -> dict:
    """
    Take up to amount_cents from the card.

    Redeems min(amount, balance); the balance never goes negative.
    """
    if amount_cents <= 0:
        raise ValidationError("amount must be positive")

    card = get_gift_card(barcode, company_id)

    if card.purchased_at is None:
        raise ValidationError("Gift card not yet activated")
    if not card.is_active:
        raise ValidationError("Gift card is inactive")

    read_balance = card.balance_cents
    if read_balance <= 0:
        raise ConflictError("Gift card has no remaining balance")

    redeemed = min(amount_cents, read_balance)
    new_balance = read_balance - redeemed

    affected = conditional_update(
        db.session.query(GiftCard).filter(
            GiftCard.id == card.id,
            GiftCard.balance_cents == read_balance,
        ),
        {"balance_cents": new_balance},
    )
    if affected == 0:
        db.session.rollback()
        raise ConflictError("Gift card balance changed during redemption, try again")

    db.session.add(GiftCardUsage(
        gift_card_id=card.id,
        transaction_id=transaction_id,
        amount_cents=redeemed,
        balance_after_cents=new_balance,
    ))
    db.session.commit()
    db.session.refresh(card)

    return {
        "success": True,
        "redeemed_amount_cents": redeemed,
        "remaining_balance_cents": new_balance,
        "gift_card": card.to_dict(),
    }
