from flask import Blueprint, jsonify, request, current_app, g
from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from decimal import Decimal, ROUND_HALF_UP
import datetime

from app.extensions import db
from ..models import ArtistProfile, Booking, Design, Review, Studio
from ..utils.auth_utils import role_required, token_required
from ..utils.serializers import serialize_review

reviews_bp = Blueprint("reviews", __name__, url_prefix="/api/reviews")


def recompute_artist_rating(artist_id):
    """Store the mean review rating (2 dp) on the artist, or None without reviews."""
    artist = db.session.get(ArtistProfile, artist_id)
    if not artist:
        return None

    average = db.session.scalar(
        select(func.avg(Review.rating)).where(Review.artist_id == artist_id)
    )
    artist.average_rating = (
        Decimal(str(average)).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)
        if average is not None
        else None
    )
    return artist.average_rating


# -------------------------------------------------------------------------
# POST /api/reviews
# Purpose: A client reviews an artist, studio or design, optionally tied to
#          one of their completed bookings.
# -------------------------------------------------------------------------
@reviews_bp.route("", methods=["POST"])
@token_required
@role_required("client")
def post_review():
    """
    Handles creating a new review.
    Expects JSON with:
    - rating (int 1-5)
    - review_text (string, optional)
    - booking_id (int, optional; fills in the artist/studio/design it was for)
    - artist_id / studio_id / design_id (at least one unless booking_id is given)
    """
    try:
        data = request.get_json(force=True)
        client_id = g.current_user.id

        try:
            rating = int(data.get("rating"))
        except (TypeError, ValueError):
            rating = None
        if rating is None or not 1 <= rating <= 5:
            return jsonify({
                "status": "error",
                "message": "Rating must be an integer between 1 and 5"
            }), 400

        artist_id = data.get("artist_id")
        studio_id = data.get("studio_id")
        design_id = data.get("design_id")
        booking_id = data.get("booking_id")

        if booking_id:
            booking = db.session.get(Booking, booking_id)
            if not booking or booking.client_id != client_id:
                return jsonify({"status": "error", "message": "Booking not found"}), 404
            if booking.status != "completed":
                return jsonify({
                    "status": "error",
                    "message": "You can only review a completed appointment"
                }), 400
            already = db.session.scalar(select(Review.id).where(Review.booking_id == booking.id))
            if already:
                return jsonify({"status": "error", "message": "This booking was already reviewed"}), 409
            booked = {
                "artist_id": booking.artist_id,
                "studio_id": booking.studio_id,
                "design_id": booking.design_id,
            }
            for field, value in booked.items():
                given = data.get(field)
                if given not in (None, "") and str(given) != str(value):
                    return jsonify({
                        "status": "error",
                        "message": f"{field} does not match the booking being reviewed"
                    }), 400
            artist_id = booking.artist_id
            studio_id = booking.studio_id
            design_id = booking.design_id

        if not (artist_id or studio_id or design_id):
            return jsonify({
                "status": "error",
                "message": "Provide an artist_id, studio_id, design_id or booking_id"
            }), 400

        if design_id:
            design = db.session.get(Design, design_id)
            if not design:
                return jsonify({"status": "error", "message": "Design not found"}), 404
            # design reviews count toward the artist who drew it
            artist_id = artist_id or design.artist_id
        if artist_id and not db.session.get(ArtistProfile, artist_id):
            return jsonify({"status": "error", "message": "Artist not found"}), 404
        if studio_id and not db.session.get(Studio, studio_id):
            return jsonify({"status": "error", "message": "Studio not found"}), 404

        review = Review(
            client_id=client_id,
            artist_id=artist_id,
            studio_id=studio_id,
            design_id=design_id,
            booking_id=booking_id,
            rating=rating,
            review_text=(data.get("review_text") or "").strip() or None,
        )
        db.session.add(review)
        db.session.flush()

        if artist_id:
            recompute_artist_rating(artist_id)

        db.session.commit()
        return jsonify({
            "status": "success",
            "message": "Review posted",
            "review": serialize_review(review),
        }), 201

    except IntegrityError as e:
        db.session.rollback()
        return jsonify({
            "status": "error",
            "message": "Database integrity error",
            "details": str(e.orig)
        }), 400

    except Exception as e:
        db.session.rollback()
        current_app.logger.error(f"Review post failed: {e}")
        return jsonify({
            "status": "error",
            "message": "Internal server error",
            "details": str(e)
        }), 500


# -------------------------------------------------------------------------
# GET /api/reviews?artist_id= | studio_id= | design_id=
# Purpose: Reviews of one subject with the average and count.
# -------------------------------------------------------------------------
@reviews_bp.route("", methods=["GET"])
def list_reviews():
    filters = []
    for field in ("artist_id", "studio_id", "design_id"):
        value = request.args.get(field, type=int)
        if value:
            filters.append(getattr(Review, field) == value)
    if not filters:
        return jsonify({
            "status": "error",
            "message": "Provide artist_id, studio_id or design_id"
        }), 400

    try:
        reviews = db.session.scalars(
            select(Review).where(*filters).order_by(Review.created_at.desc(), Review.id.desc())
        ).all()
        count = len(reviews)
        average = round(sum(r.rating for r in reviews) / count, 2) if count else None

        return jsonify({
            "status": "success",
            "reviews": [serialize_review(r) for r in reviews],
            "summary": {"count": count, "average_rating": average},
        }), 200

    except Exception as e:
        return jsonify({"status": "error", "message": "Database error", "details": str(e)}), 500


# -------------------------------------------------------------------------
# POST /api/reviews/<review_id>/response
# Purpose: The reviewed artist (or the studio owner) answers a review.
# -------------------------------------------------------------------------
@reviews_bp.route("/<int:review_id>/response", methods=["POST"])
@token_required
def respond_to_review(review_id):
    try:
        review = db.session.get(Review, review_id)
        if not review:
            return jsonify({"status": "error", "message": "Review not found"}), 404

        profile = g.current_user
        studio = db.session.get(Studio, review.studio_id) if review.studio_id else None
        is_artist = review.artist_id is not None and review.artist_id == profile.id
        is_owner = studio is not None and studio.created_by == profile.id
        if not (is_artist or is_owner):
            return jsonify({
                "status": "error",
                "message": "Only the reviewed artist or studio can respond"
            }), 403

        data = request.get_json(force=True)
        text = (data.get("response_text") or "").strip()
        if not text:
            return jsonify({"status": "error", "message": "response_text is required"}), 400

        review.response_text = text
        review.responded_at = datetime.datetime.now()
        db.session.commit()
        return jsonify({"status": "success", "review": serialize_review(review)}), 200

    except Exception as e:
        db.session.rollback()
        return jsonify({
            "status": "error",
            "message": "Internal server error",
            "details": str(e)
        }), 500
