# Overview: Request decorators for API routes.

from functools import wraps
from flask import request, jsonify, g

from .extensions import db
from .models import Company


def _read_company_id():
    raw = request.args.get("companyId")
    if raw is None and request.is_json:
        body = request.get_json(silent=True)
        if isinstance(body, dict):
            raw = body.get("companyId")
    return raw


def require_company(f):
    """
    Require a companyId and establish tenant context.

    Accepts companyId from the query string or, for JSON bodies, the body.

    Sets the following Flask g attributes:
    - g.company_id: The tenant ID
    - g.company: The Company row

    Returns 400 when companyId is absent or not an integer and 404 when no
    such company exists.
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        raw = _read_company_id()
        if raw is None or raw == "":
            return jsonify({"error": "Company ID required"}), 400

        try:
            company_id = int(raw)
        except (TypeError, ValueError):
            return jsonify({"error": "Company ID must be an integer"}), 400

        company = db.session.get(Company, company_id)
        if company is None:
            return jsonify({"error": "Company not found"}), 404

        g.company_id = company.id
        g.company = company

        return f(*args, **kwargs)

    return decorated_function


def require_json(f):
    """Reject non-object JSON bodies with 400 before the route runs."""
    @wraps(f)
    def decorated_function(*args, **kwargs):
        body = request.get_json(silent=True)
        if not isinstance(body, dict):
            return jsonify({"error": "Invalid JSON payload"}), 400
        return f(*args, **kwargs)
    return decorated_function
