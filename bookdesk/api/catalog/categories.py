from flask import Blueprint, jsonify
from sqlalchemy import select

from ...constants.user_roles import SYSTEM_ADMIN
from ...extensions import db
from ...models import ServiceCategory
from ...repositories.base import transaction
from ...schemas import CategorySchema, CategoryUpdateSchema
from ...utils.auth import require_role, token_required
from ...utils.errors import NotFoundError
from ...utils.validation import validate_body

categories_bp = Blueprint("categories", __name__, url_prefix="/api/categories")


def serialize_category(category):
    return {
        "id": category.id,
        "name": category.name,
        "description": category.description,
        "icon": category.icon,
        "isActive": bool(category.is_active),
    }


@categories_bp.route("/", methods=["GET"])
def list_categories():
    """
    List active service categories
    ---
    tags:
      - Services
    responses:
      200:
        description: Categories ordered by name
    """
    categories = db.session.scalars(
        select(ServiceCategory)
        .where(ServiceCategory.is_active.is_(True))
        .order_by(ServiceCategory.name)
    ).all()
    return jsonify({"success": True, "data": [serialize_category(c) for c in categories]}), 200


@categories_bp.route("/", methods=["POST"])
@token_required
@require_role(SYSTEM_ADMIN)
@validate_body(CategorySchema)
def create_category(body):
    with transaction("creating category"):
        category = ServiceCategory(**body.model_dump())
        db.session.add(category)
        db.session.flush()

    return jsonify({"success": True, "data": serialize_category(category)}), 201


@categories_bp.route("/<int:category_id>", methods=["PUT"])
@token_required
@require_role(SYSTEM_ADMIN)
@validate_body(CategoryUpdateSchema)
def update_category(category_id, body):
    category = db.session.get(ServiceCategory, category_id)
    if category is None:
        raise NotFoundError("Category")

    with transaction(f"updating category {category_id}"):
        for key, value in body.model_dump(exclude_unset=True).items():
            setattr(category, key, value)

    return jsonify({"success": True, "data": serialize_category(category)}), 200
