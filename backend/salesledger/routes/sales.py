# Overview: Flask API routes for sales operations; parses input and returns JSON responses.

# backend/salesledger/routes/sales.py
"""Sales API routes with permission enforcement"""

from flask import Blueprint, request, jsonify, g, current_app

from ..decorators import require_auth, require_permission
from ..errors import LedgerError, error_response
from ..services import reporting_service
from ..services import sales_service
from ..validation import parse_bool_arg, parse_int_arg, parse_sale_request, parse_void_request


sales_bp = Blueprint("sales", __name__, url_prefix="/api/sales")


@sales_bp.post("")
@require_auth
@require_permission("CREATE_SALE")
def create_sale_route():
    """
    Create a sale and decrement stock for every line, all or nothing.

    Requires: CREATE_SALE permission
    Available to: admin, staff, supplier
    """
    try:
        request_data = parse_sale_request(request.get_json(silent=True))
        sale = sales_service.create_sale(cashier_id=g.current_user.id, **request_data)

        current_app.logger.info(
            "Sale %s created by %s: %d item(s), total %d",
            sale.sale_number,
            g.current_user.username,
            len(sale.items),
            sale.total_cents,
        )
        return jsonify({"sale": sale.to_dict()}), 201

    except LedgerError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to create sale")
        return jsonify({"error": "Internal server error"}), 500


@sales_bp.get("")
@require_auth
@require_permission("VIEW_SALES")
def list_sales_route():
    """
    List sales newest first.

    Query params: startDate, endDate (YYYY-MM-DD, report timezone),
    includeVoid (default true), page, per_page.
    """
    try:
        start, end = reporting_service.resolve_bounds(
            request.args.get("startDate") or request.args.get("start"),
            request.args.get("endDate") or request.args.get("end"),
        )
        result = sales_service.list_sales(
            start=start,
            end=end,
            include_void=parse_bool_arg(request.args.get("includeVoid"), default=True),
            page=parse_int_arg(request.args.get("page"), "page", default=1),
            per_page=parse_int_arg(request.args.get("per_page"), "per_page", default=20),
        )
        return jsonify(result), 200

    except LedgerError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to list sales")
        return jsonify({"error": "Internal server error"}), 500


@sales_bp.get("/<int:sale_id>")
@require_auth
@require_permission("VIEW_SALES")
def get_sale_route(sale_id: int):
    """Get a sale with its line items (receipt view)."""
    try:
        sale = sales_service.get_sale(sale_id)
        return jsonify({"sale": sale.to_dict()}), 200
    except LedgerError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to get sale")
        return jsonify({"error": "Internal server error"}), 500


@sales_bp.patch("/<int:sale_id>/void")
@require_auth
@require_permission("VOID_SALE")
def void_sale_route(sale_id: int):
    """
    Void a sale and restore its stock.

    Requires: VOID_SALE permission and the supervisor code in the body
    Available to: admin, staff
    """
    try:
        void_data = parse_void_request(request.get_json(silent=True))
        sale = sales_service.void_sale(
            sale_id=sale_id,
            user_id=g.current_user.id,
            **void_data,
        )

        current_app.logger.info(
            "Sale %s voided by %s: %s",
            sale.sale_number,
            g.current_user.username,
            sale.void_reason,
        )
        return jsonify({"message": "Sale voided successfully", "sale": sale.to_dict()}), 200

    except LedgerError as e:
        if e.code == "UNAUTHORIZED":
            current_app.logger.warning(
                "Rejected void of sale %s by %s: invalid supervisor code",
                sale_id,
                g.current_user.username,
            )
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to void sale")
        return jsonify({"error": "Internal server error"}), 500
