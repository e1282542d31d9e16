# Overview: Flask API routes for inventory operations; parses input and returns JSON responses.

from flask import Blueprint, request, jsonify, current_app

from ..errors import BusinessRuleError, NotFoundError
from ..services import inventory_service
from ..validation import ValidationError


inventory_bp = Blueprint("inventory", __name__, url_prefix="/api/inventory")


@inventory_bp.get("/low-stock")
def low_stock_route():
    limit = request.args.get("limit", 100, type=int)
    offset = request.args.get("offset", 0, type=int)
    rows, total = inventory_service.list_low_stock(limit=limit, offset=offset)
    return jsonify({"items": [row.to_dict() for row in rows], "total": total}), 200


@inventory_bp.get("/<int:product_id>")
def get_inventory_route(product_id: int):
    warehouse_id = request.args.get("warehouse_id", type=int)
    inventory = inventory_service.get_inventory(product_id, warehouse_id=warehouse_id)
    if inventory is None:
        return jsonify({"error": "No inventory record"}), 404
    return jsonify({"inventory": inventory.to_dict()}), 200


@inventory_bp.get("/<int:product_id>/movements")
def movements_route(product_id: int):
    limit = request.args.get("limit", 100, type=int)
    movements = inventory_service.list_movements(product_id, limit=limit)
    return jsonify({"movements": [m.to_dict() for m in movements]}), 200


@inventory_bp.post("/<int:product_id>/receive")
def receive_route(product_id: int):
    data = request.get_json(silent=True) or {}
    try:
        inventory = inventory_service.receive(
            product_id,
            data.get("quantity"),
            warehouse_id=data.get("warehouse_id"),
            reason=data.get("reason"),
        )
        return jsonify({"inventory": inventory.to_dict()}), 200
    except ValidationError as e:
        return jsonify({"error": str(e), "errors": e.errors}), 400
    except NotFoundError as e:
        return jsonify({"error": e.message}), 404
    except Exception:
        current_app.logger.exception("Failed to receive inventory")
        return jsonify({"error": "Internal server error"}), 500


@inventory_bp.post("/<int:product_id>/adjust")
def adjust_route(product_id: int):
    data = request.get_json(silent=True) or {}
    try:
        inventory = inventory_service.adjust(
            product_id,
            data.get("type"),
            data.get("quantity"),
            warehouse_id=data.get("warehouse_id"),
            reason=data.get("reason"),
        )
        return jsonify({"inventory": inventory.to_dict()}), 200
    except ValidationError as e:
        return jsonify({"error": str(e), "errors": e.errors}), 400
    except BusinessRuleError as e:
        return jsonify({"error": e.message, "details": e.details}), 400
    except Exception:
        current_app.logger.exception("Failed to adjust inventory")
        return jsonify({"error": "Internal server error"}), 500
