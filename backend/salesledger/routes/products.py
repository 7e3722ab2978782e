# Overview: Flask API routes for products operations; parses input and returns JSON responses.

# backend/salesledger/routes/products.py
"""
Product management routes.

SECURITY: All routes require authentication.
- Read operations require VIEW_PRODUCTS permission
- Write operations require MANAGE_PRODUCTS permission
"""
from flask import Blueprint, request, jsonify, current_app

from ..decorators import require_auth, require_permission
from ..errors import LedgerError, error_response
from ..services import pricing_service
from ..services import products_service
from ..validation import parse_bool_arg


products_bp = Blueprint("products", __name__, url_prefix="/api/products")


@products_bp.get("")
@require_auth
@require_permission("VIEW_PRODUCTS")
def list_products():
    """
    List products.

    Query params:
    - category: exact category match
    - lowStock: true to return only products at or below their threshold
    - includeInactive: true to include archived products
    """
    try:
        include_inactive = parse_bool_arg(request.args.get("includeInactive"), default=False)
        products = products_service.list_products(
            category=request.args.get("category") or None,
            low_stock=parse_bool_arg(request.args.get("lowStock"), default=False),
            is_active=None if include_inactive else True,
        )
        return jsonify({"items": [p.to_dict() for p in products], "count": len(products)}), 200
    except Exception:
        current_app.logger.exception("Failed to list products")
        return jsonify({"error": "Internal server error"}), 500


@products_bp.post("")
@require_auth
@require_permission("MANAGE_PRODUCTS")
def create_product():
    try:
        product = products_service.create_product(request.get_json(silent=True) or {})
        current_app.logger.info("Product %s created: %s", product.id, product.name)
        return jsonify({"product": product.to_dict(include_history=True)}), 201
    except LedgerError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to create product")
        return jsonify({"error": "Internal server error"}), 500


@products_bp.get("/<int:product_id>")
@require_auth
@require_permission("VIEW_PRODUCTS")
def get_product(product_id: int):
    try:
        product = products_service.get_product(product_id)
        return jsonify({"product": product.to_dict(include_history=True)}), 200
    except LedgerError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to get product")
        return jsonify({"error": "Internal server error"}), 500


@products_bp.patch("/<int:product_id>")
@require_auth
@require_permission("MANAGE_PRODUCTS")
def update_product(product_id: int):
    """
    Partial update. Changing price_cents or markup_percentage appends a
    pricing history entry; stock moves only through sales and deliveries.
    """
    try:
        product = products_service.update_product(product_id, request.get_json(silent=True) or {})
        current_app.logger.info("Product %s updated", product.id)
        return jsonify({"product": product.to_dict(include_history=True)}), 200
    except LedgerError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to update product")
        return jsonify({"error": "Internal server error"}), 500


@products_bp.delete("/<int:product_id>")
@require_auth
@require_permission("MANAGE_PRODUCTS")
def archive_product(product_id: int):
    """Archive (deactivate) a product; past sales keep referencing it."""
    try:
        product = products_service.archive_product(product_id)
        current_app.logger.info("Product %s archived", product.id)
        return jsonify({"product": product.to_dict()}), 200
    except LedgerError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to archive product")
        return jsonify({"error": "Internal server error"}), 500


@products_bp.get("/<int:product_id>/pricing-history")
@require_auth
@require_permission("VIEW_PRODUCTS")
def get_pricing_history(product_id: int):
    try:
        current = pricing_service.current_price(product_id)
        return jsonify({
            "product_id": product_id,
            "current": current.to_dict(),
            "history": pricing_service.pricing_history(product_id),
        }), 200
    except LedgerError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to get pricing history")
        return jsonify({"error": "Internal server error"}), 500
