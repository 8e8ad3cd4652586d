from flask import Blueprint, jsonify, request, current_app, g
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError

from app.extensions import db
from ..models import ArtistProfile, Design, Favorite, Studio
from ..utils.auth_utils import role_required, token_required
from ..utils.serializers import serialize_artist, serialize_design, serialize_studio

favorites_bp = Blueprint("favorites", __name__, url_prefix="/api/favorites")

# target field -> model
FAVORITE_TARGETS = {
    "design_id": Design,
    "artist_id": ArtistProfile,
    "studio_id": Studio,
}


def serialize_favorite(favorite):
    data = {
        "id": favorite.id,
        "design_id": favorite.design_id,
        "artist_id": favorite.artist_id,
        "studio_id": favorite.studio_id,
        "created_at": favorite.created_at.isoformat() if favorite.created_at else None,
    }
    if favorite.design_id:
        data["type"] = "design"
        data["design"] = serialize_design(favorite.design) if favorite.design else None
    elif favorite.artist_id:
        data["type"] = "artist"
        data["artist"] = serialize_artist(favorite.artist) if favorite.artist else None
    else:
        data["type"] = "studio"
        data["studio"] = serialize_studio(favorite.studio) if favorite.studio else None
    return data


def _target_from(data):
    """(field, id) for the single target given, or None."""
    given = [(field, data.get(field)) for field in FAVORITE_TARGETS if data.get(field)]
    if len(given) != 1:
        return None
    field, value = given[0]
    try:
        return field, int(value)
    except (TypeError, ValueError):
        return None


@favorites_bp.route("", methods=["GET"])
@token_required
@role_required("client")
def list_favorites():
    """
    The signed-in client's favorites
    ---
    tags:
      - Favorites
    security:
      - Bearer: []
    parameters:
      - {in: query, name: type, type: string, enum: [design, artist, studio]}
    responses:
      200:
        description: Favorites, newest first
    """
    query = select(Favorite).where(Favorite.client_id == g.current_user.id)
    kind = request.args.get("type")
    if kind in ("design", "artist", "studio"):
        query = query.where(getattr(Favorite, f"{kind}_id").isnot(None))

    favorites = db.session.scalars(
        query.order_by(Favorite.created_at.desc(), Favorite.id.desc())
    ).all()
    return jsonify({"status": "success", "favorites": [serialize_favorite(f) for f in favorites]}), 200


@favorites_bp.route("", methods=["POST"])
@token_required
@role_required("client")
def add_favorite():
    """
    Save a design, artist or studio
    ---
    tags:
      - Favorites
    security:
      - Bearer: []
    parameters:
      - in: body
        name: body
        required: true
        schema:
          type: object
          description: exactly one of the ids
          properties:
            design_id: {type: integer}
            artist_id: {type: integer}
            studio_id: {type: integer}
    responses:
      201:
        description: Saved
      400:
        description: Zero or several targets given
      404:
        description: Target not found
      409:
        description: Already a favorite
    """
    try:
        data = request.get_json(force=True)
        target = _target_from(data)
        if not target:
            return jsonify({
                "status": "error",
                "message": "Provide exactly one of design_id, artist_id or studio_id"
            }), 400

        field, target_id = target
        if not db.session.get(FAVORITE_TARGETS[field], target_id):
            return jsonify({"status": "error", "message": "Item not found"}), 404

        client_id = g.current_user.id
        existing = db.session.scalar(
            select(Favorite.id).where(
                Favorite.client_id == client_id,
                getattr(Favorite, field) == target_id,
            )
        )
        if existing:
            return jsonify({"status": "error", "message": "Already in your favorites"}), 409

        favorite = Favorite(client_id=client_id, **{field: target_id})
        db.session.add(favorite)
        db.session.commit()
        return jsonify({"status": "success", "favorite": serialize_favorite(favorite)}), 201

    except IntegrityError:
        db.session.rollback()
        return jsonify({"status": "error", "message": "Already in your favorites"}), 409

    except Exception as e:
        db.session.rollback()
        current_app.logger.error(f"Favorite add failed: {e}")
        return jsonify({"status": "error", "message": "Internal server error", "details": str(e)}), 500


@favorites_bp.route("/<int:favorite_id>", methods=["DELETE"])
@token_required
@role_required("client")
def remove_favorite(favorite_id):
    try:
        favorite = db.session.get(Favorite, favorite_id)
        if not favorite or favorite.client_id != g.current_user.id:
            return jsonify({"status": "error", "message": "Favorite not found"}), 404

        db.session.delete(favorite)
        db.session.commit()
        return jsonify({"status": "success", "message": "Removed from favorites"}), 200

    except Exception as e:
        db.session.rollback()
        return jsonify({"status": "error", "message": "Internal server error", "details": str(e)}), 500


@favorites_bp.route("/check", methods=["GET"])
@token_required
@role_required("client")
def check_favorite():
    """
    GET /api/favorites/check?design_id=12
    Purpose: Whether the heart icon on a card should be filled.
    """
    target = _target_from(request.args)
    if not target:
        return jsonify({
            "status": "error",
            "message": "Provide exactly one of design_id, artist_id or studio_id"
        }), 400

    field, target_id = target
    favorite_id = db.session.scalar(
        select(Favorite.id).where(
            Favorite.client_id == g.current_user.id,
            getattr(Favorite, field) == target_id,
        )
    )
    return jsonify({"status": "success", "favorited": favorite_id is not None, "favorite_id": favorite_id}), 200
