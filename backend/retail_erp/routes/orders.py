# Overview: Flask API routes for orders; parses input and returns JSON responses.

from flask import Blueprint, request, jsonify, current_app

from ..errors import NotFoundError
from ..services import order_service
from ..time_utils import parse_iso_datetime


orders_bp = Blueprint("orders", __name__, url_prefix="/api/orders")


@orders_bp.post("")
def create_order_route():
    """
    POS checkout.

    Business failures (stock, payment, unknown references) come back as 400
    with the structured result; only infrastructure faults are 500.
    """
    data = request.get_json(silent=True)
    result = order_service.create_order(data)

    if result.success:
        return jsonify(result.to_dict()), 201
    if result.infrastructure_error:
        return jsonify(result.to_dict()), 500
    return jsonify(result.to_dict()), 400


@orders_bp.get("")
def list_orders_route():
    try:
        page = int(request.args.get("page", 1))
        page_size = int(request.args.get("page_size", 10))
        customer_id = request.args.get("customer_id", type=int)
        start_date = parse_iso_datetime(request.args.get("start_date"))
        end_date = parse_iso_datetime(request.args.get("end_date"))
    except ValueError:
        return jsonify({"error": "Invalid query parameters"}), 400

    orders, pagination = order_service.list_orders(
        page=page,
        page_size=page_size,
        search=request.args.get("search"),
        status=request.args.get("status"),
        payment_status=request.args.get("payment_status"),
        customer_id=customer_id,
        start_date=start_date,
        end_date=end_date,
    )
    return jsonify({
        "orders": [order.to_dict() for order in orders],
        "pagination": pagination,
    }), 200


@orders_bp.get("/stats")
def order_stats_route():
    try:
        start_date = parse_iso_datetime(request.args.get("start_date"))
        end_date = parse_iso_datetime(request.args.get("end_date"))
    except ValueError:
        return jsonify({"error": "Invalid date"}), 400

    return jsonify(order_service.get_order_stats(start_date=start_date, end_date=end_date)), 200


@orders_bp.get("/<int:order_id>")
def get_order_route(order_id: int):
    try:
        order = order_service.get_order(order_id)
    except NotFoundError as e:
        return jsonify({"error": e.message}), 404
    except Exception:
        current_app.logger.exception("Failed to load order")
        return jsonify({"error": "Internal server error"}), 500

    return jsonify({"order": order.to_dict(include_lines=True)}), 200
