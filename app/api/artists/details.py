from flask import Blueprint, request, jsonify, current_app
from sqlalchemy import select

from ...extensions import db
from ...models import ArtistProfile, Design, Review
from ...services.search_service import page_to_offset, parse_search_params, search_artists
from ...utils.serializers import serialize_artist, serialize_design, serialize_review

artist_details_bp = Blueprint("artist_details", __name__, url_prefix="/api/artists")


@artist_details_bp.route("", methods=["GET"])
def list_artists():
    """
    Browse artists
    ---
    tags:
      - Artists
    parameters:
      - {in: query, name: styles, type: string, description: Comma separated style ids}
      - {in: query, name: location, type: string, description: City, state or country}
      - {in: query, name: min_rating, type: number}
      - {in: query, name: page, type: integer}
      - {in: query, name: limit, type: integer}
    responses:
      200:
        description: Artists ordered by rating
    """
    try:
        params = parse_search_params(request.args)
        limit, offset = page_to_offset(params.get("page"), params.get("limit"))
        rows, total = search_artists(
            style_ids=params.get("styles"),
            location=params.get("location"),
            min_rating=params.get("min_rating"),
            limit=limit,
            offset=offset,
        )
        return jsonify({
            "status": "success",
            "artists": rows,
            "total": total,
            "limit": limit,
            "offset": offset,
        }), 200

    except Exception as e:
        current_app.logger.error(f"Artist search failed: {e}")
        return jsonify({"status": "error", "message": "Database error", "details": str(e)}), 500


@artist_details_bp.route("/<int:artist_id>", methods=["GET"])
def get_artist(artist_id):
    """
    Artist page: profile, portfolio and reviews
    ---
    tags:
      - Artists
    parameters:
      - in: path
        name: artist_id
        type: integer
        required: true
    responses:
      200:
        description: Artist details
      404:
        description: Artist not found
    """
    try:
        artist = db.session.get(ArtistProfile, artist_id)
        if not artist:
            return jsonify({"status": "error", "message": "Artist not found"}), 404

        designs = db.session.scalars(
            select(Design)
            .where(Design.artist_id == artist.id)
            .order_by(Design.created_at.desc(), Design.id.desc())
        ).all()
        reviews = db.session.scalars(
            select(Review)
            .where(Review.artist_id == artist.id)
            .order_by(Review.created_at.desc(), Review.id.desc())
        ).all()

        studios = [
            {
                "id": m.studio.id,
                "name": m.studio.name,
                "city": m.studio.city,
                "role": m.role,
            }
            for m in artist.memberships
            if m.is_active
        ]

        return jsonify({
            "status": "success",
            "artist": serialize_artist(artist),
            "studios": studios,
            "designs": [serialize_design(d) for d in designs],
            "reviews": [serialize_review(r) for r in reviews],
            "review_count": len(reviews),
        }), 200

    except Exception as e:
        return jsonify({"status": "error", "message": "Database error", "details": str(e)}), 500
