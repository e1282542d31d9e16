# Overview: Flask API routes for numbering rules; parses input and returns JSON responses.

from flask import Blueprint, request, jsonify, current_app

from ..errors import BusinessRuleError, NotFoundError
from ..services import numbering_service
from ..validation import ConflictError, ValidationError


numbering_bp = Blueprint("numbering", __name__, url_prefix="/api/numbering-rules")


@numbering_bp.get("")
def list_rules_route():
    active_only = request.args.get("active_only", "false").lower() == "true"
    rules = numbering_service.list_rules(active_only=active_only)
    return jsonify({"rules": [rule.to_dict() for rule in rules]}), 200


@numbering_bp.post("")
def create_rule_route():
    data = request.get_json(silent=True) or {}
    try:
        rule = numbering_service.create_rule(
            code=data.get("code"),
            name=data.get("name"),
            prefix=data.get("prefix") or "",
            date_format=data.get("date_format"),
            sequence_length=data.get("sequence_length", 4),
            reset_period=data.get("reset_period"),
            is_active=bool(data.get("is_active", True)),
        )
        return jsonify({"rule": rule.to_dict()}), 201
    except ValidationError as e:
        return jsonify({"error": str(e), "errors": e.errors}), 400
    except ConflictError as e:
        return jsonify({"error": str(e)}), 409
    except Exception:
        current_app.logger.exception("Failed to create numbering rule")
        return jsonify({"error": "Internal server error"}), 500


@numbering_bp.put("/<int:rule_id>")
def update_rule_route(rule_id: int):
    data = request.get_json(silent=True) or {}
    try:
        rule = numbering_service.update_rule(rule_id, **data)
        return jsonify({"rule": rule.to_dict()}), 200
    except NotFoundError as e:
        return jsonify({"error": e.message}), 404
    except ValidationError as e:
        return jsonify({"error": str(e), "errors": e.errors}), 400
    except Exception:
        current_app.logger.exception("Failed to update numbering rule")
        return jsonify({"error": "Internal server error"}), 500


@numbering_bp.post("/<int:rule_id>/reset")
def reset_rule_route(rule_id: int):
    try:
        rule = numbering_service.reset_sequence(rule_id)
        return jsonify({"rule": rule.to_dict()}), 200
    except NotFoundError as e:
        return jsonify({"error": e.message}), 404
    except Exception:
        current_app.logger.exception("Failed to reset numbering rule")
        return jsonify({"error": "Internal server error"}), 500


@numbering_bp.get("/<string:code>/preview")
def preview_route(code: str):
    """Advisory only: does not reserve the number."""
    try:
        return jsonify({"code": code, "preview": numbering_service.preview_next(code)}), 200
    except NotFoundError as e:
        return jsonify({"error": e.message}), 404
    except BusinessRuleError as e:
        return jsonify({"error": e.message, "details": e.details}), 400
