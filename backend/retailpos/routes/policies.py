# Overview: Flask API routes for return policy operations; parses input and returns JSON responses.

from flask import Blueprint, request, jsonify, g

from ..services import policy_service
from ..validation import parse_optional_int, require_fields
from ..decorators import require_company, require_json
from .errors import error_response


policies_bp = Blueprint("policies", __name__, url_prefix="/api/policies")


@policies_bp.get("")
@require_company
def list_policies_route():
    try:
        return jsonify(policy_service.list_policies(g.company_id)), 200
    except Exception as e:
        return error_response(e, "Failed to fetch policies")


@policies_bp.post("")
@require_json
@require_company
def upsert_policy_route():
    """
    Create or update an item/category return policy.

    Request body:
    {
        "companyId": 1,
        "target_type": "item",  (item, category)
        "target_id": 42,
        "return_period_days": 14,  (null clears the override)
        "no_returns": false
    }
    """
    try:
        data = require_fields(request.get_json(), "target_type", "target_id")
        policy = policy_service.upsert_return_policy(
            company_id=g.company_id,
            target_type=data["target_type"],
            target_id=data["target_id"],
            return_period_days=parse_optional_int(data.get("return_period_days"), "return_period_days"),
            no_returns=data.get("no_returns"),
        )
        return jsonify(policy.to_dict()), 200
    except Exception as e:
        return error_response(e, "Failed to create policy")


@policies_bp.put("")
@require_json
@require_company
def update_default_period_route():
    """Set the company-wide default return period (null falls back to 30)."""
    try:
        data = request.get_json()
        company = policy_service.set_company_default_period(
            g.company_id,
            parse_optional_int(data.get("default_return_period_days"), "default_return_period_days"),
        )
        return jsonify(company.to_dict()), 200
    except Exception as e:
        return error_response(e, "Failed to update settings")


@policies_bp.delete("")
@require_company
def delete_policy_route():
    """Query: id, or target_type + target_id."""
    try:
        policy_service.delete_return_policy(
            g.company_id,
            policy_id=request.args.get("id", type=int),
            target_type=request.args.get("target_type"),
            target_id=request.args.get("target_id", type=int),
        )
        return jsonify({"success": True}), 200
    except Exception as e:
        return error_response(e, "Failed to delete policy")


@policies_bp.post("/validate")
@require_json
@require_company
def validate_return_route():
    """
    Check return eligibility.

    Request body:
    {
        "companyId": 1,
        "transaction_id": 88  or  "item_id": 42
    }

    Always 200 for a decided answer; "allowed" carries the verdict.
    """
    try:
        data = request.get_json()
        result = policy_service.resolve_return_eligibility(
            g.company_id,
            transaction_id=data.get("transaction_id"),
            item_id=data.get("item_id"),
        )
        return jsonify(result), 200
    except Exception as e:
        return error_response(e, "Failed to validate policy")
