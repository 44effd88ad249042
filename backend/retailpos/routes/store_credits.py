# Overview: Flask API routes for store credit operations; parses input and returns JSON responses.

from flask import Blueprint, request, jsonify, g

from ..services import store_credit_service
from ..validation import parse_cents, require_fields
from ..decorators import require_company, require_json
from .errors import error_response


store_credits_bp = Blueprint("store_credits", __name__, url_prefix="/api/store-credits")


@store_credits_bp.get("")
@require_company
def get_store_credits_route():
    """
    ?companyId=1&barcode=SC-...   scan lookup (404 unknown, 409 already used)
    ?companyId=1                  list the company's credits, newest first
    """
    try:
        barcode = request.args.get("barcode")
        if barcode:
            credit = store_credit_service.lookup_store_credit(barcode, g.company_id)
            return jsonify(credit.to_dict()), 200
        credits = store_credit_service.list_store_credits(g.company_id)
        return jsonify([c.to_dict() for c in credits]), 200
    except Exception as e:
        return error_response(e, "Failed to fetch store credits")


@store_credits_bp.post("")
@require_json
@require_company
def issue_store_credit_route():
    """
    Issue a store credit.

    Request body:
    {
        "companyId": 1,
        "amount_cents": 2599,
        "transaction_id": 88,  (optional; the transaction that issued it)
        "description": "Refund - damaged",  (optional)
        "issued_by_employee_id": 7,  (optional)
        "authorized_by_employee_id": 3  (optional)
    }
    """
    try:
        data = require_fields(request.get_json(), "amount_cents")
        credit = store_credit_service.issue_store_credit(
            company_id=g.company_id,
            amount_cents=parse_cents(data["amount_cents"], "amount_cents"),
            transaction_id=data.get("transaction_id"),
            description=data.get("description"),
            issued_by_employee_id=data.get("issued_by_employee_id"),
            authorized_by_employee_id=data.get("authorized_by_employee_id"),
        )
        return jsonify(credit.to_dict()), 201
    except Exception as e:
        return error_response(e, "Failed to create store credit")


@store_credits_bp.post("/redeem")
@require_json
@require_company
def redeem_store_credit_route():
    """
    Redeem a credit against a transaction.

    Request body:
    {
        "companyId": 1,
        "barcode": "SC-20260101-AB12CD",
        "transaction_id": 91  (optional)
    }

    Returns 409 (with used_at) if the credit was already used.
    """
    try:
        data = require_fields(request.get_json(), "barcode")
        credit = store_credit_service.redeem_store_credit(
            data["barcode"],
            redeemed_transaction_id=data.get("transaction_id"),
            company_id=g.company_id,
        )
        return jsonify({
            "success": True,
            "amount_cents": credit.amount_cents,
            "barcode": credit.barcode,
        }), 200
    except Exception as e:
        return error_response(e, "Failed to redeem store credit")


@store_credits_bp.post("/<barcode>/use")
@require_company
def use_store_credit_route(barcode: str):
    """Mark a credit used without linking a transaction."""
    try:
        credit = store_credit_service.redeem_store_credit(barcode, company_id=g.company_id)
        return jsonify(credit.to_dict()), 200
    except Exception as e:
        return error_response(e, "Failed to use store credit")
