from flask import Blueprint, jsonify, current_app, g
from sqlalchemy import select
import datetime

from app.extensions import db
from ..models import ACTIVE_BOOKING_STATUSES, Booking, Favorite
from ..utils.auth_utils import role_required, token_required
from ..utils.serializers import serialize_booking
from .favorites import serialize_favorite

dashboard_bp = Blueprint("dashboard", __name__, url_prefix="/api/dashboard")


@dashboard_bp.route("/client", methods=["GET"])
@token_required
@role_required("client")
def client_dashboard():
    """
    Client dashboard
    ---
    tags:
      - Dashboard
    security:
      - Bearer: []
    responses:
      200:
        description: Profile, bookings (newest date first) and favorites
      401:
        description: Not signed in (includes redirect_to)
      403:
        description: No client profile yet (includes redirect_to)
    """
    try:
        profile = g.current_user
        client = profile.client_profile

        bookings = db.session.scalars(
            select(Booking)
            .where(Booking.client_id == client.id)
            .order_by(Booking.booking_date.desc(), Booking.start_time.desc())
        ).all()
        favorites = db.session.scalars(
            select(Favorite)
            .where(Favorite.client_id == client.id)
            .order_by(Favorite.created_at.desc(), Favorite.id.desc())
        ).all()

        today = datetime.date.today()
        upcoming = [
            b for b in bookings
            if b.status in ACTIVE_BOOKING_STATUSES and b.booking_date >= today
        ]

        return jsonify({
            "status": "success",
            "profile": {
                "id": profile.id,
                "email": profile.email,
                "full_name": profile.full_name,
                "avatar_url": profile.avatar_url,
                "phone": profile.phone,
                "city": client.city,
                "country": client.country,
            },
            "bookings": [serialize_booking(b) for b in bookings],
            "favorites": [serialize_favorite(f) for f in favorites],
            "stats": {
                "upcoming_count": len(upcoming),
                "completed_count": len([b for b in bookings if b.status == "completed"]),
                "favorite_count": len(favorites),
            },
        }), 200

    except Exception as e:
        current_app.logger.error(f"Client dashboard failed: {e}")
        return jsonify({"status": "error", "message": "Internal server error", "details": str(e)}), 500
