# Overview: Flask API routes for category tree operations; parses input and returns JSON responses.

from flask import Blueprint, jsonify, request, current_app

from ..services import category_service
from ..services.category_service import CategoryError
from ..services.tenant_service import TenantAccessError
from ..validation import ValidationError, parse_int, require_fields
from ..decorators import store_scoped


categories_bp = Blueprint("categories", __name__, url_prefix="/api/stores/<int:store_id>/categories")


@categories_bp.get("/tree")
@store_scoped
def category_tree_route(store_id: int):
    try:
        return jsonify({"categories": category_service.get_tree_options(store_id)}), 200
    except CategoryError as exc:
        return jsonify({"error": str(exc)}), 400


@categories_bp.post("/")
@store_scoped
def create_category_route(store_id: int):
    try:
        data = require_fields(request.get_json(silent=True), "name")
        parent_id = data.get("parent_id")
        category = category_service.create_category(
            store_id,
            data["name"],
            parse_int(parent_id, "parent_id") if parent_id is not None else None,
        )
        return jsonify({"category": category.to_dict()}), 201
    except (ValidationError, CategoryError) as exc:
        return jsonify({"error": str(exc)}), 400
    except TenantAccessError as exc:
        return jsonify({"error": str(exc)}), 404
    except Exception:
        current_app.logger.exception("Failed to create category")
        return jsonify({"error": "Internal server error"}), 500


@categories_bp.patch("/<int:category_id>/parent")
@store_scoped
def move_category_route(store_id: int, category_id: int):
    try:
        data = request.get_json(silent=True) or {}
        parent_id = data.get("parent_id")
        category = category_service.move_category(
            store_id,
            category_id,
            parse_int(parent_id, "parent_id") if parent_id is not None else None,
        )
        return jsonify({"category": category.to_dict()}), 200
    except (ValidationError, CategoryError) as exc:
        return jsonify({"error": str(exc)}), 400
    except TenantAccessError as exc:
        return jsonify({"error": str(exc)}), 404
    except Exception:
        current_app.logger.exception("Failed to move category")
        return jsonify({"error": "Internal server error"}), 500


@categories_bp.get("/<int:category_id>/descendants")
@store_scoped
def category_descendants_route(store_id: int, category_id: int):
    try:
        ids = category_service.get_descendant_ids(store_id, category_id)
        return jsonify({"category_id": category_id, "descendant_ids": sorted(ids)}), 200
    except CategoryError as exc:
        return jsonify({"error": str(exc)}), 400
    except TenantAccessError as exc:
        return jsonify({"error": str(exc)}), 404


@categories_bp.get("/<int:category_id>/breadcrumb")
@store_scoped
def category_breadcrumb_route(store_id: int, category_id: int):
    try:
        return jsonify({
            "category_id": category_id,
            "breadcrumb": category_service.get_breadcrumb(store_id, category_id),
        }), 200
    except CategoryError as exc:
        return jsonify({"error": str(exc)}), 400
    except TenantAccessError as exc:
        return jsonify({"error": str(exc)}), 404
