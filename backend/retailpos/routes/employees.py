# Overview: Flask API routes for employee operations; parses input and returns JSON responses.

from flask import Blueprint, request, jsonify, g

from ..services import employee_service, shift_service
from ..validation import ValidationError, require_fields
from ..decorators import require_company, require_json
from .errors import error_response


employees_bp = Blueprint("employees", __name__, url_prefix="/api/employees")


@employees_bp.post("")
@require_json
@require_company
def create_employee_route():
    """
    Create an employee. The EMP- barcode is generated server-side.

    Request body:
    {
        "companyId": 1,
        "name": "Dana Reyes",
        "is_manager": false,  (optional)
        "in_sales": true  (optional)
    }

    Returns 409 if a unique barcode could not be generated.
    """
    try:
        data = require_fields(request.get_json(), "name")
        employee = employee_service.create_employee(
            company_id=g.company_id,
            name=data["name"],
            is_manager=data.get("is_manager", False),
            in_sales=data.get("in_sales", True),
            pin=data.get("pin"),
        )
        return jsonify(employee.to_dict()), 201
    except Exception as e:
        return error_response(e, "Failed to create employee")


@employees_bp.get("")
@require_company
def list_employees_route():
    try:
        employees = employee_service.list_employees(g.company_id)
        return jsonify([e.to_dict() for e in employees]), 200
    except Exception as e:
        return error_response(e, "Failed to fetch employees")


@employees_bp.post("/lookup")
@require_json
@require_company
def lookup_employee_route():
    """Terminal sign-in: resolve a scanned badge to an active employee."""
    try:
        data = require_fields(request.get_json(), "barcode")
        employee = employee_service.get_employee_by_barcode(g.company_id, data["barcode"])
        return jsonify(employee.to_dict()), 200
    except Exception as e:
        return error_response(e, "Failed to look up employee")


@employees_bp.get("/<int:employee_id>")
@require_company
def get_employee_route(employee_id: int):
    try:
        return jsonify(employee_service.get_employee(employee_id, g.company_id).to_dict()), 200
    except Exception as e:
        return error_response(e, "Failed to get employee")


@employees_bp.patch("/<int:employee_id>")
@require_json
@require_company
def update_employee_route(employee_id: int):
    try:
        employee = employee_service.update_employee(employee_id, request.get_json(), g.company_id)
        return jsonify(employee.to_dict()), 200
    except Exception as e:
        return error_response(e, "Failed to update employee")


@employees_bp.get("/<int:employee_id>/stats")
@require_company
def employee_stats_route(employee_id: int):
    try:
        return jsonify(employee_service.get_employee_stats(employee_id, g.company_id)), 200
    except Exception as e:
        return error_response(e, "Failed to fetch stats")


@employees_bp.get("/<int:employee_id>/comparison")
@require_company
def employee_comparison_route(employee_id: int):
    """Peer comparison for in-sales staff, focused on employee_id."""
    try:
        return jsonify(employee_service.compare_employees(g.company_id, employee_id)), 200
    except Exception as e:
        return error_response(e, "Failed to fetch comparison")


@employees_bp.get("/<int:employee_id>/shifts")
@require_company
def employee_shifts_route(employee_id: int):
    """Most recent shifts (default 20)."""
    try:
        employee_service.get_employee(employee_id, g.company_id)
        limit = request.args.get("limit", default=20, type=int)
        shifts = shift_service.get_employee_shifts(employee_id, limit=max(1, min(limit, 200)))
        return jsonify([s.to_dict() for s in shifts]), 200
    except Exception as e:
        return error_response(e, "Failed to fetch shifts")


@employees_bp.get("/<int:employee_id>/category-sales")
@require_company
def employee_category_sales_route(employee_id: int):
    """
    ?companyId=1               the employee's sales across all categories
    ?companyId=1&categoryId=4  one category, with the team ranked against it
    """
    try:
        category_id = request.args.get("categoryId")
        if category_id is not None:
            try:
                category_id = int(category_id)
            except ValueError:
                raise ValidationError("categoryId must be an integer")
        report = employee_service.get_category_sales(g.company_id, employee_id, category_id)
        return jsonify(report), 200
    except Exception as e:
        return error_response(e, "Failed to fetch category sales")
