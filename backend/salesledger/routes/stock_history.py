# Overview: Flask API routes for supplier deliveries (stock additions).

from flask import Blueprint, request, jsonify, g, current_app

from ..decorators import require_auth, require_permission
from ..errors import LedgerError, error_response
from ..services import inventory_service
from ..services import reporting_service
from ..validation import parse_delivery_request, parse_int_arg


stock_history_bp = Blueprint("stock_history", __name__, url_prefix="/api/stock-history")


@stock_history_bp.get("")
@require_auth
@require_permission("VIEW_PRODUCTS")
def list_deliveries_route():
    """
    Delivery records newest first.

    Query params: product_id, startDate, endDate, limit (default 100).
    """
    try:
        start, end = reporting_service.resolve_bounds(
            request.args.get("startDate") or request.args.get("start"),
            request.args.get("endDate") or request.args.get("end"),
        )
        entries = inventory_service.list_deliveries(
            product_id=parse_int_arg(request.args.get("product_id"), "product_id"),
            start=start,
            end=end,
            limit=parse_int_arg(request.args.get("limit"), "limit", default=100),
        )
        return jsonify({"items": [e.to_dict() for e in entries], "count": len(entries)}), 200
    except LedgerError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to list stock history")
        return jsonify({"error": "Internal server error"}), 500


@stock_history_bp.post("")
@require_auth
@require_permission("RECORD_DELIVERY")
def record_delivery_route():
    """
    Record a delivery and add its quantity to the product's stock.

    Requires: RECORD_DELIVERY permission
    Available to: admin, supplier
    """
    try:
        delivery = parse_delivery_request(request.get_json(silent=True))
        entry = inventory_service.record_delivery(added_by_user_id=g.current_user.id, **delivery)

        current_app.logger.info(
            "Delivery %s recorded by %s: +%d %s",
            entry.transaction_id,
            g.current_user.username,
            entry.stock_quantity,
            entry.product_name,
        )
        return jsonify({"stock_history": entry.to_dict()}), 201

    except LedgerError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to record delivery")
        return jsonify({"error": "Internal server error"}), 500
