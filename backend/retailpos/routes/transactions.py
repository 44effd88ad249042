# Overview: Flask API routes for transaction operations; parses input and returns JSON responses.

# backend/retailpos/routes/transactions.py
"""
Transaction API Routes

DESIGN:
- Sales are created in one request with all lines and the tender
- Voids and refunds only move status; nothing is deleted
- Refunds re-check the return policy server-side
"""

from flask import Blueprint, request, jsonify, g

from ..services import transaction_service
from ..validation import parse_cents, require_fields
from ..decorators import require_company, require_json
from .errors import error_response


transactions_bp = Blueprint("transactions", __name__, url_prefix="/api/transactions")


@transactions_bp.post("")
@require_json
@require_company
def create_transaction_route():
    """
    Record a sale.

    Request body:
    {
        "companyId": 1,
        "employee_id": 7,
        "shift_id": 12,  (optional)
        "lines": [{"item_id": 3, "quantity": 2, "unit_price_cents": 499}],
        "payment_method": "cash",  (cash, card, store_credit, gift_card)
        "cash_given_cents": 2000,  (optional)
        "customer_id": 4,  (optional)
        "loyalty_points_redeemed": 0  (optional)
    }
    """
    try:
        data = require_fields(request.get_json(), "employee_id", "lines")
        if not isinstance(data["lines"], list):
            return jsonify({"error": "lines must be a list"}), 400

        transaction = transaction_service.create_transaction(
            company_id=g.company_id,
            employee_id=data["employee_id"],
            lines=data["lines"],
            shift_id=data.get("shift_id"),
            payment_method=data.get("payment_method") or "cash",
            cash_given_cents=parse_cents(data.get("cash_given_cents"), "cash_given_cents", allow_none=True),
            tx_type=data.get("type") or "sale",
            customer_id=data.get("customer_id"),
            loyalty_points_redeemed=data.get("loyalty_points_redeemed") or 0,
        )
        return jsonify(transaction.to_dict(include_lines=True)), 201
    except Exception as e:
        return error_response(e, "Failed to create transaction")


@transactions_bp.get("")
@require_company
def list_transactions_route():
    """Filters: start_date, end_date (YYYY-MM-DD, inclusive), type."""
    try:
        transactions = transaction_service.list_transactions(
            company_id=g.company_id,
            start_date=request.args.get("start_date"),
            end_date=request.args.get("end_date"),
            tx_type=request.args.get("type"),
        )
        return jsonify([t.to_dict() for t in transactions]), 200
    except Exception as e:
        return error_response(e, "Failed to fetch transactions")


@transactions_bp.get("/<int:transaction_id>")
@require_company
def get_transaction_route(transaction_id: int):
    try:
        transaction = transaction_service.get_transaction(transaction_id, g.company_id)
        return jsonify(transaction.to_dict(include_lines=True)), 200
    except Exception as e:
        return error_response(e, "Failed to get transaction")


@transactions_bp.post("/<int:transaction_id>/void")
@require_company
def void_transaction_route(transaction_id: int):
    """
    Void a completed sale. The row is kept (status "deleted").

    Returns 409 if the sale is already refunded or voided.
    """
    try:
        data = request.get_json(silent=True) or {}
        transaction = transaction_service.void_transaction(
            transaction_id,
            g.company_id,
            authorized_by_employee_id=data.get("authorized_by_employee_id"),
        )
        return jsonify(transaction.to_dict()), 200
    except Exception as e:
        return error_response(e, "Failed to void transaction")


@transactions_bp.post("/<int:transaction_id>/refund")
@require_json
@require_company
def refund_transaction_route(transaction_id: int):
    """
    Refund a whole sale.

    Request body:
    {
        "companyId": 1,
        "employee_id": 7,
        "shift_id": 12,  (optional)
        "payment_method": "store_credit",  (default cash)
        "authorized_by_employee_id": 3  (optional)
    }

    Returns 409 when the return policy refuses the refund.
    """
    try:
        data = require_fields(request.get_json(), "employee_id")
        result = transaction_service.refund_transaction(
            transaction_id,
            g.company_id,
            data["employee_id"],
            shift_id=data.get("shift_id"),
            payment_method=data.get("payment_method") or "cash",
            authorized_by_employee_id=data.get("authorized_by_employee_id"),
        )
        return jsonify(result), 201
    except Exception as e:
        return error_response(e, "Failed to refund transaction")
