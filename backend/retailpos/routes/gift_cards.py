# Overview: Flask API routes for gift card operations; parses input and returns JSON responses.

from flask import Blueprint, request, jsonify, g

from ..services import gift_card_service
from ..validation import parse_cents, require_fields
from ..decorators import require_company, require_json
from .errors import error_response


gift_cards_bp = Blueprint("gift_cards", __name__, url_prefix="/api/gift-cards")


@gift_cards_bp.get("")
@require_company
def list_gift_cards_route():
    try:
        cards = gift_card_service.list_gift_cards(g.company_id)
        return jsonify([c.to_dict(include_usage=True) for c in cards]), 200
    except Exception as e:
        return error_response(e, "Failed to fetch gift cards")


@gift_cards_bp.get("/<barcode>")
@require_company
def get_gift_card_route(barcode: str):
    try:
        card = gift_card_service.get_gift_card(barcode, g.company_id)
        return jsonify(card.to_dict(include_usage=True)), 200
    except Exception as e:
        return error_response(e, "Failed to fetch gift card")


@gift_cards_bp.post("")
@require_json
@require_company
def create_gift_card_route():
    """
    Register printed gift card stock.

    Request body:
    {
        "companyId": 1,
        "barcode": "GC-0001",
        "initial_value_cents": 5000
    }

    Returns 409 on a duplicate barcode.
    """
    try:
        data = require_fields(request.get_json(), "barcode", "initial_value_cents")
        card = gift_card_service.create_gift_card(
            g.company_id,
            str(data["barcode"]),
            parse_cents(data["initial_value_cents"], "initial_value_cents"),
        )
        return jsonify(card.to_dict()), 201
    except Exception as e:
        return error_response(e, "Failed to create gift card")


@gift_cards_bp.post("/<barcode>/activate")
@require_company
def activate_gift_card_route(barcode: str):
    """Mark a card sold. Body: {"companyId": 1, "transaction_id": 91 (optional)}"""
    try:
        data = request.get_json(silent=True) or {}
        card = gift_card_service.activate_gift_card(barcode, data.get("transaction_id"), g.company_id)
        return jsonify(card.to_dict()), 200
    except Exception as e:
        return error_response(e, "Failed to activate gift card")


@gift_cards_bp.post("/redeem")
@require_json
@require_company
def redeem_gift_card_route():
    """
    Redeem up to amount_cents from a card.

    Request body:
    {
        "companyId": 1,
        "barcode": "GC-0001",
        "amount_cents": 1200,
        "transaction_id": 91  (optional)
    }
    """
    try:
        data = require_fields(request.get_json(), "barcode", "amount_cents")
        result = gift_card_service.redeem_gift_card(
            str(data["barcode"]),
            parse_cents(data["amount_cents"], "amount_cents"),
            data.get("transaction_id"),
            g.company_id,
        )
        return jsonify(result), 200
    except Exception as e:
        return error_response(e, "Failed to redeem gift card")


@gift_cards_bp.post("/<barcode>/deactivate")
@require_company
def deactivate_gift_card_route(barcode: str):
    """Block a lost or stolen card. The balance is kept."""
    try:
        card = gift_card_service.deactivate_gift_card(barcode, g.company_id)
        return jsonify(card.to_dict()), 200
    except Exception as e:
        return error_response(e, "Failed to deactivate gift card")
