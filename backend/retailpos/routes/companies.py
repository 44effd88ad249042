# Overview: Flask API routes for companies and their catalog; parses input and returns JSON responses.

# backend/retailpos/routes/companies.py
"""
Company & Catalog API Routes

DESIGN:
- Companies are the tenant root; everything else hangs off a company id
- Catalog endpoints (categories, vendors, items, customers) are nested
  under the company so the tenant is always part of the URL
"""

from flask import Blueprint, request, jsonify

from ..services import company_service
from ..validation import parse_cents, parse_optional_int, require_fields
from ..decorators import require_json
from .errors import error_response


companies_bp = Blueprint("companies", __name__, url_prefix="/api/companies")


@companies_bp.post("")
@require_json
def create_company_route():
    """
    Request body:
    {
        "name": "Corner Store",
        "timezone": "America/Chicago",  (optional, default UTC)
        "default_return_period_days": 30  (optional)
    }
    """
    try:
        data = require_fields(request.get_json(), "name")
        company = company_service.create_company(
            name=str(data["name"]),
            timezone=data.get("timezone") or "UTC",
            default_return_period_days=parse_optional_int(
                data.get("default_return_period_days"), "default_return_period_days"
            ),
        )
        return jsonify(company.to_dict()), 201
    except Exception as e:
        return error_response(e, "Failed to create company")


@companies_bp.get("")
def list_companies_route():
    try:
        return jsonify([c.to_dict() for c in company_service.list_companies()]), 200
    except Exception as e:
        return error_response(e, "Failed to list companies")


@companies_bp.get("/<int:company_id>")
def get_company_route(company_id: int):
    try:
        return jsonify(company_service.get_company(company_id).to_dict()), 200
    except Exception as e:
        return error_response(e, "Failed to get company")


@companies_bp.patch("/<int:company_id>")
@require_json
def update_company_route(company_id: int):
    try:
        company = company_service.update_company(company_id, request.get_json())
        return jsonify(company.to_dict()), 200
    except Exception as e:
        return error_response(e, "Failed to update company")


# =============================================================================
# CATALOG
# =============================================================================

@companies_bp.post("/<int:company_id>/categories")
@require_json
def create_category_route(company_id: int):
    try:
        data = require_fields(request.get_json(), "name")
        category = company_service.create_category(
            company_id,
            str(data["name"]),
            tax_rate=data.get("tax_rate", 0.0),
            return_period_days=parse_optional_int(data.get("return_period_days"), "return_period_days"),
        )
        return jsonify(category.to_dict()), 201
    except Exception as e:
        return error_response(e, "Failed to create category")


@companies_bp.get("/<int:company_id>/categories")
def list_categories_route(company_id: int):
    try:
        company_service.get_company(company_id)
        return jsonify([c.to_dict() for c in company_service.list_categories(company_id)]), 200
    except Exception as e:
        return error_response(e, "Failed to list categories")


@companies_bp.post("/<int:company_id>/vendors")
@require_json
def create_vendor_route(company_id: int):
    try:
        data = require_fields(request.get_json(), "name")
        vendor = company_service.create_vendor(
            company_id,
            str(data["name"]),
            contact_name=data.get("contact_name"),
            email=data.get("email"),
            phone=data.get("phone"),
        )
        return jsonify(vendor.to_dict()), 201
    except Exception as e:
        return error_response(e, "Failed to create vendor")


@companies_bp.get("/<int:company_id>/vendors")
def list_vendors_route(company_id: int):
    try:
        company_service.get_company(company_id)
        return jsonify([v.to_dict() for v in company_service.list_vendors(company_id)]), 200
    except Exception as e:
        return error_response(e, "Failed to list vendors")


@companies_bp.post("/<int:company_id>/items")
@require_json
def create_item_route(company_id: int):
    """
    Request body:
    {
        "name": "Cola 330ml",
        "price_cents": 199,
        "category_id": 2,  (optional)
        "vendor_id": 1,  (optional)
        "barcode": "0123456789012",  (optional)
        "quantity_on_hand": 24  (optional)
    }
    """
    try:
        data = require_fields(request.get_json(), "name", "price_cents")
        item = company_service.create_item(
            company_id,
            str(data["name"]),
            parse_cents(data["price_cents"], "price_cents"),
            category_id=parse_optional_int(data.get("category_id"), "category_id"),
            vendor_id=parse_optional_int(data.get("vendor_id"), "vendor_id"),
            barcode=data.get("barcode"),
            quantity_on_hand=parse_optional_int(data.get("quantity_on_hand"), "quantity_on_hand") or 0,
        )
        return jsonify(item.to_dict()), 201
    except Exception as e:
        return error_response(e, "Failed to create item")


@companies_bp.get("/<int:company_id>/items")
def list_items_route(company_id: int):
    try:
        company_service.get_company(company_id)
        return jsonify([i.to_dict() for i in company_service.list_items(company_id)]), 200
    except Exception as e:
        return error_response(e, "Failed to list items")


@companies_bp.post("/<int:company_id>/customers")
@require_json
def create_customer_route(company_id: int):
    try:
        data = require_fields(request.get_json(), "name")
        customer = company_service.create_customer(
            company_id,
            str(data["name"]),
            email=data.get("email"),
            phone=data.get("phone"),
        )
        return jsonify(customer.to_dict()), 201
    except Exception as e:
        return error_response(e, "Failed to create customer")
