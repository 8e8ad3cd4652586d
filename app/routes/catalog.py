from flask import Blueprint, jsonify
from sqlalchemy import select

from app.extensions import db
from ..models import Style, Tag

catalog_bp = Blueprint("catalog", __name__, url_prefix="/api")


@catalog_bp.route("/styles", methods=["GET"])
def get_styles():
    """
    All tattoo styles for the filter sidebar
    ---
    tags:
      - Catalog
    responses:
      200:
        description: Styles ordered by name
    """
    try:
        styles = db.session.scalars(select(Style).order_by(Style.name)).all()
        return jsonify({
            "styles": [
                {
                    "id": s.id,
                    "name": s.name,
                    "description": s.description,
                    "image_url": s.image_url,
                }
                for s in styles
            ]
        }), 200

    except Exception as e:
        return jsonify({"error": "Database error", "details": str(e)}), 500


@catalog_bp.route("/tags", methods=["GET"])
def get_tags():
    """
    All design tags, grouped by category
    ---
    tags:
      - Catalog
    responses:
      200:
        description: Tags ordered by category then name
    """
    try:
        tags = db.session.scalars(select(Tag).order_by(Tag.category, Tag.name)).all()

        grouped = {}
        for tag in tags:
            grouped.setdefault(tag.category or "other", []).append(
                {"id": tag.id, "name": tag.name}
            )

        return jsonify({
            "tags": [{"id": t.id, "name": t.name, "category": t.category} for t in tags],
            "by_category": grouped,
        }), 200

    except Exception as e:
        return jsonify({"error": "Database error", "details": str(e)}), 500
