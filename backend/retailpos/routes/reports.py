# Overview: Flask API routes for reports; parses input and returns JSON responses.

from flask import Blueprint, request, jsonify, g

from ..services import reporting_service
from ..decorators import require_company
from .errors import error_response


reports_bp = Blueprint("reports", __name__, url_prefix="/api/reports")


@reports_bp.get("/sales")
@require_company
def sales_report_route():
    """
    ?companyId=1
    &start=2026-01-01   (optional, ISO-8601)
    &end=2026-01-31     (optional; a bare date includes the whole day)
    &group_by=day       (day, week, month, category, employee)
    """
    try:
        report = reporting_service.sales_report(
            g.company_id,
            start=request.args.get("start"),
            end=request.args.get("end"),
            group_by=request.args.get("group_by", "day"),
        )
        return jsonify(report), 200
    except Exception as e:
        return error_response(e, "Failed to generate report")
