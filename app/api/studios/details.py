from flask import Blueprint, request, jsonify, current_app, g
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
import datetime

from ...extensions import db
from ...models import ArtistProfile, Design, Review, Studio, StudioArtist
from ...services.search_service import page_to_offset, search_studios
from ...utils.auth_utils import token_required
from ...utils.serializers import serialize_artist, serialize_design, serialize_review, serialize_studio

studio_details_bp = Blueprint("studio_details", __name__, url_prefix="/api/studios")


def _owned_studio(studio_id):
    studio = db.session.get(Studio, studio_id)
    if not studio:
        return None, (jsonify({"status": "error", "message": "Studio not found"}), 404)
    profile = g.current_user
    if studio.created_by != profile.id and not profile.is_admin:
        return None, (jsonify({"status": "error", "message": "Only the studio owner can manage its roster"}), 403)
    return studio, None


@studio_details_bp.route("", methods=["GET"])
def list_studios():
    """
    Browse studios
    ---
    tags:
      - Studios
    parameters:
      - {in: query, name: location, type: string, description: City}
      - {in: query, name: q, type: string, description: Name or description}
      - {in: query, name: page, type: integer}
      - {in: query, name: limit, type: integer}
    responses:
      200:
        description: Studios ordered by name with the exact total
    """
    try:
        limit, offset = page_to_offset(request.args.get("page"), request.args.get("limit"))
        rows, total = search_studios(
            location=(request.args.get("location") or "").strip() or None,
            term=(request.args.get("q") or "").strip() or None,
            limit=limit,
            offset=offset,
        )
        return jsonify({
            "status": "success",
            "studios": rows,
            "total": total,
            "limit": limit,
            "offset": offset,
        }), 200

    except Exception as e:
        current_app.logger.error(f"Studio search failed: {e}")
        return jsonify({"status": "error", "message": "Database error", "details": str(e)}), 500


@studio_details_bp.route("/<int:studio_id>", methods=["GET"])
def get_studio(studio_id):
    """
    Studio page: details, resident artists, designs and reviews
    ---
    tags:
      - Studios
    parameters:
      - {in: path, name: studio_id, type: integer, required: true}
    responses:
      200:
        description: Studio details
      404:
        description: Studio not found
    """
    try:
        studio = db.session.get(Studio, studio_id)
        if not studio:
            return jsonify({"status": "error", "message": "Studio not found"}), 404

        artists = []
        for membership in studio.studio_artists:
            if not membership.is_active:
                continue
            row = serialize_artist(membership.artist)
            row["role"] = membership.role
            artists.append(row)

        designs = db.session.scalars(
            select(Design)
            .where(Design.studio_id == studio.id, Design.is_available.is_(True))
            .order_by(Design.created_at.desc(), Design.id.desc())
        ).all()
        reviews = db.session.scalars(
            select(Review)
            .where(Review.studio_id == studio.id)
            .order_by(Review.created_at.desc(), Review.id.desc())
        ).all()

        return jsonify({
            "status": "success",
            "studio": serialize_studio(studio),
            "artists": artists,
            "designs": [serialize_design(d) for d in designs],
            "reviews": [serialize_review(r) for r in reviews],
        }), 200

    except Exception as e:
        return jsonify({"status": "error", "message": "Database error", "details": str(e)}), 500


@studio_details_bp.route("/<int:studio_id>/artists", methods=["POST"])
@token_required
def add_studio_artist(studio_id):
    """
    POST /api/studios/<studio_id>/artists
    Purpose: Add an artist to the studio roster.
    Input: JSON { "artist_id": int, "role": optional str, "commission_split": optional number }

    Behavior:
    - Re-activates a previous membership instead of duplicating it
    - The studio becomes the artist's primary studio and the artist stops being independent
    """
    try:
        studio, error = _owned_studio(studio_id)
        if error:
            return error

        data = request.get_json(force=True)
        artist = db.session.get(ArtistProfile, data.get("artist_id"))
        if not artist:
            return jsonify({"status": "error", "message": "Artist not found"}), 404

        membership = db.session.scalar(
            select(StudioArtist).where(
                StudioArtist.studio_id == studio.id,
                StudioArtist.artist_id == artist.id,
            )
        )
        if membership and membership.is_active:
            return jsonify({"status": "error", "message": "Artist is already on the roster"}), 409

        today = datetime.date.today()
        if not membership:
            membership = StudioArtist(studio_id=studio.id, artist_id=artist.id)
            db.session.add(membership)
        membership.is_active = True
        membership.role = (data.get("role") or "").strip() or "resident"
        membership.commission_split = data.get("commission_split")
        membership.start_date = today
        membership.end_date = None
        membership.updated_at = datetime.datetime.now()

        artist.primary_studio_id = studio.id
        artist.is_independent = False
        artist.updated_at = datetime.datetime.now()

        db.session.commit()
        return jsonify({
            "status": "success",
            "message": "Artist added to studio",
            "membership": {
                "studio_id": studio.id,
                "artist_id": artist.id,
                "role": membership.role,
                "start_date": membership.start_date.isoformat(),
            },
        }), 201

    except IntegrityError as e:
        db.session.rollback()
        return jsonify({"status": "error", "message": "Database integrity error", "details": str(e.orig)}), 400

    except Exception as e:
        db.session.rollback()
        current_app.logger.error(f"Roster add failed: {e}")
        return jsonify({"status": "error", "message": "Internal server error", "details": str(e)}), 500


@studio_details_bp.route("/<int:studio_id>/artists/<int:artist_id>", methods=["DELETE"])
@token_required
def remove_studio_artist(studio_id, artist_id):
    """
    DELETE /api/studios/<studio_id>/artists/<artist_id>
    Purpose: End an artist's membership.

    Behavior:
    - The membership is kept but deactivated, with today's end_date
    - If this was the artist's primary studio the artist becomes independent again
    """
    try:
        studio, error = _owned_studio(studio_id)
        if error:
            return error

        membership = db.session.scalar(
            select(StudioArtist).where(
                StudioArtist.studio_id == studio.id,
                StudioArtist.artist_id == artist_id,
                StudioArtist.is_active.is_(True),
            )
        )
        if not membership:
            return jsonify({"status": "error", "message": "Artist is not on the roster"}), 404

        now = datetime.datetime.now()
        membership.is_active = False
        membership.end_date = now.date()
        membership.updated_at = now

        artist = membership.artist
        if artist.primary_studio_id == studio.id:
            artist.primary_studio_id = None
            artist.is_independent = True
            artist.updated_at = now

        db.session.commit()
        return jsonify({"status": "success", "message": "Artist removed from studio"}), 200

    except Exception as e:
        db.session.rollback()
        current_app.logger.error(f"Roster removal failed: {e}")
        return jsonify({"status": "error", "message": "Internal server error", "details": str(e)}), 500
