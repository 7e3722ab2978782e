from flask import Blueprint, current_app, jsonify, request

from salesledger.decorators import require_auth, require_permission
from salesledger.errors import LedgerError, error_response
from salesledger.services import reporting_service
from salesledger.validation import parse_int_arg


reports_bp = Blueprint("reports", __name__, url_prefix="/api/reports")


def _date_args() -> tuple[str | None, str | None]:
    return (
        request.args.get("startDate") or request.args.get("start"),
        request.args.get("endDate") or request.args.get("end"),
    )


@reports_bp.get("/sales")
@require_auth
@require_permission("VIEW_REPORTS")
def sales_report():
    start, end = _date_args()
    try:
        report = reporting_service.sales_report(
            start=start,
            end=end,
            tz_name=request.args.get("timezone"),
        )
        return jsonify(report), 200
    except LedgerError as exc:
        return error_response(exc)
    except Exception:
        current_app.logger.exception("Failed to build sales report")
        return jsonify({"error": "Internal server error"}), 500


@reports_bp.get("/inventory")
@require_auth
@require_permission("VIEW_REPORTS")
def inventory_report():
    try:
        return jsonify(reporting_service.inventory_report()), 200
    except Exception:
        current_app.logger.exception("Failed to build inventory report")
        return jsonify({"error": "Internal server error"}), 500


@reports_bp.get("/top-products")
@require_auth
@require_permission("VIEW_REPORTS")
def top_products_report():
    start, end = _date_args()
    try:
        rows = reporting_service.top_products(
            start=start,
            end=end,
            limit=parse_int_arg(request.args.get("limit"), "limit"),
            tz_name=request.args.get("timezone"),
        )
        return jsonify({"items": rows, "count": len(rows)}), 200
    except LedgerError as exc:
        return error_response(exc)
    except Exception:
        current_app.logger.exception("Failed to build top products report")
        return jsonify({"error": "Internal server error"}), 500


@reports_bp.get("/revenue-trends")
@require_auth
@require_permission("VIEW_REPORTS")
def revenue_trends_report():
    start, end = _date_args()
    try:
        report = reporting_service.revenue_trends(
            start=start,
            end=end,
            group_by=request.args.get("groupBy") or request.args.get("group_by") or "day",
            tz_name=request.args.get("timezone"),
        )
        return jsonify(report), 200
    except LedgerError as exc:
        return error_response(exc)
    except Exception:
        current_app.logger.exception("Failed to build revenue trends report")
        return jsonify({"error": "Internal server error"}), 500
