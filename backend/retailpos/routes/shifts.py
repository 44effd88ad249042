# Overview: Flask API routes for shift operations; parses input and returns JSON responses.

# backend/retailpos/routes/shifts.py
"""
Shift API Routes

DESIGN:
- Clock-in opens a shift, or returns the employee's already-open shift
- Cash injections top up the drawer float while open
- Close stamps end time and records counted cash against expected cash
- Summary/stats are read-only reconciliation views
"""

from flask import Blueprint, request, jsonify, g

from ..services import shift_service
from ..validation import parse_cents, require_fields
from ..decorators import require_company, require_json
from .errors import error_response


shifts_bp = Blueprint("shifts", __name__, url_prefix="/api/shifts")


@shifts_bp.post("")
@require_json
@require_company
def open_shift_route():
    """
    Open a shift (clock in).

    Request body:
    {
        "companyId": 1,
        "employee_id": 7,
        "opening_balance_cents": 10000,  (optional, default 0)
        "register": "REG-01"  (optional)
    }

    Returns:
        201: New shift opened
        200: Employee already had an open shift; that shift is returned
    """
    try:
        data = require_fields(request.get_json(), "employee_id")
        opening = parse_cents(data.get("opening_balance_cents", 0), "opening_balance_cents")

        shift, created = shift_service.open_shift(
            company_id=g.company_id,
            employee_id=data["employee_id"],
            opening_balance_cents=opening,
            register=data.get("register"),
        )
        return jsonify(shift.to_dict()), 201 if created else 200

    except Exception as e:
        return error_response(e, "Failed to open shift")


@shifts_bp.get("")
@require_company
def list_shifts_route():
    """List shifts for a company, newest first. Filters: status, employee_id."""
    try:
        shifts = shift_service.list_shifts(
            company_id=g.company_id,
            status=request.args.get("status"),
            employee_id=request.args.get("employee_id", type=int),
        )
        return jsonify([s.to_dict() for s in shifts]), 200
    except Exception as e:
        return error_response(e, "Failed to list shifts")


@shifts_bp.get("/<int:shift_id>")
@require_company
def get_shift_route(shift_id: int):
    try:
        return jsonify(shift_service.get_shift(shift_id, g.company_id).to_dict()), 200
    except Exception as e:
        return error_response(e, "Failed to get shift")


@shifts_bp.post("/<int:shift_id>/cash-injections")
@require_json
@require_company
def add_cash_injection_route(shift_id: int):
    """
    Add cash to the drawer of an open shift.

    Request body:
    {
        "companyId": 1,
        "amount_cents": 5000
    }
    """
    try:
        data = require_fields(request.get_json(), "amount_cents")
        amount = parse_cents(data["amount_cents"], "amount_cents")
        shift = shift_service.add_cash_injection(shift_id, amount, g.company_id)
        return jsonify(shift.to_dict()), 200
    except Exception as e:
        return error_response(e, "Failed to add cash injection")


@shifts_bp.post("/<int:shift_id>/close")
@require_company
def close_shift_route(shift_id: int):
    """
    Close a shift.

    Request body:
    {
        "companyId": 1,
        "closing_balance_cents": 15230,  (counted cash, optional)
        "closed_by_employee_id": 3  (optional)
    }

    Returns 409 if the shift is already closed.
    """
    try:
        data = request.get_json(silent=True) or {}
        closing = parse_cents(data.get("closing_balance_cents"), "closing_balance_cents", allow_none=True)

        shift = shift_service.close_shift(
            shift_id,
            closing_balance_cents=closing,
            closed_by_employee_id=data.get("closed_by_employee_id"),
            company_id=g.company_id,
        )
        return jsonify(shift.to_dict()), 200
    except Exception as e:
        return error_response(e, "Failed to close shift")


@shifts_bp.get("/<int:shift_id>/summary")
@require_company
def shift_summary_route(shift_id: int):
    """Cash-up view: totals, cash collected, expected drawer cash."""
    try:
        return jsonify(shift_service.summarize_shift(shift_id, g.company_id)), 200
    except Exception as e:
        return error_response(e, "Failed to fetch shift summary")


@shifts_bp.get("/<int:shift_id>/stats")
@require_company
def shift_stats_route(shift_id: int):
    """Shift report: totals, store credits issued, hourly breakdown."""
    try:
        return jsonify(shift_service.get_shift_stats(shift_id, g.company_id)), 200
    except Exception as e:
        return error_response(e, "Failed to get shift stats")
